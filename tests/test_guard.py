from __future__ import annotations

from rethink.guard import DispatchGuard, Verdict


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_guard(clock: FakeClock) -> DispatchGuard:
    return DispatchGuard(min_chars=8, cooldown=8.0, clock=clock)


def test_short_document_is_rejected() -> None:
    guard = make_guard(FakeClock())
    assert guard.admit("  tiny  ", "tiny") is Verdict.too_short
    assert guard.last_sent_at is None


def test_first_unit_is_accepted_and_recorded() -> None:
    clock = FakeClock(100.0)
    guard = make_guard(clock)
    assert guard.admit("The cat sat on the mat.", "The cat sat on the mat.") is Verdict.accept
    assert guard.last_sent_at == 100.0
    assert guard.last_sent_text == "The cat sat on the mat."


def test_identical_units_within_cooldown_dispatch_once() -> None:
    clock = FakeClock()
    guard = make_guard(clock)
    text = "Two plus two is five."
    verdicts = [guard.admit(text, text)]
    clock.now += 1.0
    verdicts.append(guard.admit(text, text))
    assert [v.accepted for v in verdicts] == [True, False]
    assert verdicts[1] is Verdict.cooling_down


def test_new_unit_inside_cooldown_is_rejected() -> None:
    clock = FakeClock()
    guard = make_guard(clock)
    guard.admit("First sentence here.", "First sentence here.")
    clock.now += 7.9
    assert guard.admit("First sentence here. Second.", "Second sentence here.") is Verdict.cooling_down


def test_duplicate_after_cooldown_is_rejected() -> None:
    clock = FakeClock()
    guard = make_guard(clock)
    guard.admit("First sentence here.", "First sentence here.")
    clock.now += 9.0
    assert guard.admit("First sentence here.", "First sentence here.") is Verdict.duplicate


def test_new_unit_after_cooldown_is_accepted() -> None:
    clock = FakeClock()
    guard = make_guard(clock)
    guard.admit("First sentence here.", "First sentence here.")
    clock.now += 8.0
    assert guard.admit("First sentence here. Second one.", "Second one.") is Verdict.accept
    assert guard.last_sent_text == "Second one."
    assert guard.last_sent_at == clock.now


def test_check_does_not_record() -> None:
    guard = make_guard(FakeClock())
    assert guard.check("Long enough text.", "Long enough text.") is Verdict.accept
    assert guard.last_sent_at is None
    assert guard.last_sent_text == ""


def test_empty_unit_is_rejected() -> None:
    guard = make_guard(FakeClock())
    assert guard.admit("Long enough text.", "") is Verdict.empty
