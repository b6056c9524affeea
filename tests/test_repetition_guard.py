"""Tests for the repetition window and guard."""

from fakes import make_candidate
from ranking import RepetitionGuard
from storage import RepetitionWindow


def _ranked(*ids):
    return [make_candidate(f"https://c/v/{i}") for i in ids]


def test_select_skips_recently_used():
    window = RepetitionWindow(capacity=6)
    guard = RepetitionGuard(window)
    guard.mark_used("https://c/v/1", 0)

    chosen = guard.select(_ranked(1, 2, 3), sequence_index=1)

    assert chosen.identity == "https://c/v/2"
    assert guard.repeats_allowed == 0


def test_select_returns_top_when_everything_was_used():
    guard = RepetitionGuard(RepetitionWindow())
    for i in (1, 2):
        guard.mark_used(f"https://c/v/{i}", 0)

    chosen = guard.select(_ranked(1, 2), sequence_index=1)

    assert chosen.identity == "https://c/v/1"
    assert guard.repeats_allowed == 1


def test_select_on_empty_list():
    assert RepetitionGuard(RepetitionWindow()).select([]) is None


def test_window_evicts_oldest_beyond_capacity():
    window = RepetitionWindow(capacity=6)
    for i in range(7):
        window.record(f"id{i}", i)

    assert len(window) == 6
    assert "id0" not in window
    assert window.identities()[0] == "id6"


def test_reuse_moves_identity_to_newest():
    window = RepetitionWindow(capacity=2)
    window.record("a", 0)
    window.record("b", 1)
    window.record("a", 2)
    window.record("c", 3)

    assert window.identities() == ["c", "a"]
    assert window.last_used("a") == 2


def test_sequence_gap_unblocks_identity():
    window = RepetitionWindow(capacity=6)
    window.record("a", 0)

    assert window.is_blocked("a", 6)
    assert not window.is_blocked("a", 7)
    assert window.is_blocked("a")


def test_filter_available_puts_used_last():
    guard = RepetitionGuard(RepetitionWindow())
    guard.mark_used("https://c/v/1", 0)

    ordered = guard.filter_available(_ranked(1, 2, 3), sequence_index=1)

    assert [c.identity for c in ordered] == ["https://c/v/2", "https://c/v/3", "https://c/v/1"]
