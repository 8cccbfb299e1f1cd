from __future__ import annotations

from typing import TYPE_CHECKING

from rethink.schemas import Subject

if TYPE_CHECKING:
    from rethink.memory import SessionState


SUBJECT_CONTEXT: dict[Subject, str] = {
    Subject.writing: "grammar, factual accuracy, logical consistency, and clarity",
    Subject.math: "mathematical correctness, calculation errors, and logical steps in equations or proofs",
    Subject.science: "scientific accuracy and factual correctness in biology, chemistry, or physics",
    Subject.other: "logical consistency, factual accuracy, and general correctness",
}


ANALYZE_SYSTEM = """You are an educational error-detection assistant. Analyze student work for {context}.

You will receive:
- Full text: the complete document (for context only)
- New content: the newly completed sentence or line (what to actually check)

Respond ONLY with a JSON object, no other text.

If an error exists in the new content:
{{"hasError": true, "internalError": "<detailed description of the error, for tutor use only>", "location": "<vague hint of where to look, e.g. 'In your most recent sentence.' or 'On the most recent step.'>"}}

If there is no error:
{{"hasError": false}}

Rules:
- Only check the new content for errors; use the full text for context.
- The location must say WHERE to look, never WHAT is wrong.
- internalError must be detailed enough for a Socratic tutor to guide the student.
"""


CHAT_SYSTEM = """You are a Socratic tutor helping a student find and correct their own mistake.

Student's work:
\"\"\"
{full_text}
\"\"\"

The mistake the student made (never reveal this directly):
\"\"\"
{error_internal}
\"\"\"

Rules:
1. Never state what the error is.
2. Guide only with questions so the student discovers the error themselves.
3. Start broad; get more specific only if the student is still stuck after several turns.
4. Be encouraging and patient.
5. If the student identifies the error, warmly confirm they are on the right track.
6. Keep replies to 2-3 sentences.
"""


def subject_context(subject: Subject | str | None) -> str:
    try:
        return SUBJECT_CONTEXT[Subject(subject)]
    except ValueError:
        return SUBJECT_CONTEXT[Subject.other]


def build_analyze_system(subject: Subject | str | None) -> str:
    return ANALYZE_SYSTEM.format(context=subject_context(subject))


def build_analyze_user(full_text: str, new_content: str) -> str:
    return (
        "Full text:\n"
        f'"""\n{full_text}\n"""\n\n'
        "Newly completed content to analyze:\n"
        f'"""\n{new_content}\n"""'
    )


def build_analyze_messages(subject: Subject | str | None, full_text: str, new_content: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": build_analyze_system(subject)},
        {"role": "user", "content": build_analyze_user(full_text, new_content)},
    ]


def build_chat_system(full_text: str, error_internal: str) -> str:
    return CHAT_SYSTEM.format(full_text=full_text, error_internal=error_internal)


def build_chat_messages(state: "SessionState", message: str) -> list[dict[str, str]]:
    """System turn, then the episode's history in order, then the new user message."""
    state.require_active_error()
    messages = [{"role": "system", "content": build_chat_system(state.full_text, state.error_internal or "")}]
    messages.extend({"role": t.role.value, "content": t.content} for t in state.chat_history)
    messages.append({"role": "user", "content": message})
    return messages
