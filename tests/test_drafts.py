import pytest

from rollcall.schemas.attendance import AttendanceStatus, CellValue, DraftContext
from rollcall.sync.cache import AttendanceCache
from rollcall.sync.drafts import DraftOverlay

P = AttendanceStatus.PRESENT
F = AttendanceStatus.ABSENT
J = AttendanceStatus.JUSTIFIED


@pytest.fixture
def overlay():
    cache = AttendanceCache()
    cache.apply_local_mutation("S1", "2025-06-07", P)
    return DraftOverlay(cache)


@pytest.mark.parametrize("status, note", [(F, ""), (P, ""), (J, "dentista"), (None, "")])
def test_effective_value_follows_draft_then_cache(overlay, status, note):
    overlay.set_draft("S1", "2025-06-07", status, note)
    expected = None if status is None else CellValue(status=status, note=note)
    assert overlay.effective_value("S1", "2025-06-07") == expected
    assert overlay.is_dirty("S1", "2025-06-07")

    overlay.clear()
    assert overlay.effective_value("S1", "2025-06-07") == CellValue(status=P)
    assert not overlay.is_dirty("S1", "2025-06-07")


def test_unmarked_cell_without_draft(overlay):
    assert overlay.effective_value("S2", "2025-06-07") is None
    assert overlay.pending_count() == 0


def test_drafts_never_touch_the_cache(overlay):
    overlay.set_draft("S1", "2025-06-07", None)
    overlay.set_draft("S2", "2025-06-07", F)
    assert overlay.cache.lookup("S1", "2025-06-07").status == P
    assert overlay.cache.lookup("S2", "2025-06-07") is None
    assert overlay.pending_count() == 2


def test_note_only_kept_for_justified(overlay):
    overlay.set_draft("S2", "2025-06-07", F, "esqueceu")
    assert overlay.effective_value("S2", "2025-06-07").note == ""


def test_pending_diff_only_skips_unchanged_cells(overlay):
    overlay.set_draft("S1", "2025-06-07", P)
    overlay.set_draft("S2", "2025-06-07", None)
    overlay.set_draft("S3", "2025-06-07", F)

    assert len(overlay.pending()) == 3
    pending = overlay.pending(diff_only=True)
    assert [(u.student_id, u.status) for u in pending] == [("S3", F)]


def test_discard_single_draft(overlay):
    overlay.set_draft("S2", "2025-06-07", F)
    overlay.discard("S2", "2025-06-07")
    overlay.discard("S2", "2025-06-07")
    assert overlay.pending_count() == 0


def test_context_change_resets_drafts(overlay):
    june = DraftContext(program="arena", year=2025, month=6)
    assert overlay.bind_context(june) is False

    overlay.set_draft("S2", "2025-06-07", F)
    assert overlay.bind_context(DraftContext(program="arena", year=2025, month=6)) is False
    assert overlay.pending_count() == 1

    assert overlay.bind_context(DraftContext(program="arena", year=2025, month=6, class_id="c1")) is True
    assert overlay.pending_count() == 0
