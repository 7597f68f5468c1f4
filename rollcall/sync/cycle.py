"""
Status cycle for repeated taps on a grid cell:

    unmarked -> F -> P -> A -> J -> unmarked

Entering J needs a note from a prompt collaborator. Without a prompt the
justified step is skipped (A -> unmarked); a cancelled prompt leaves the
cell as it was.
"""

from typing import Awaitable, Callable, Optional

from rollcall.core.dates import to_date_key
from rollcall.schemas.attendance import AttendanceStatus, CellValue
from rollcall.schemas.auth import Identity
from rollcall.sync.engine import SyncEngine

STATUS_CYCLE = (
    None,
    AttendanceStatus.ABSENT,
    AttendanceStatus.PRESENT,
    AttendanceStatus.EXCUSED_PRESENT,
    AttendanceStatus.JUSTIFIED,
)

# Receives the current note, returns the justification or None on cancel.
NotePrompt = Callable[[str], Awaitable[Optional[str]]]


def next_status(
    current: Optional[AttendanceStatus], allow_justified: bool = True
) -> Optional[AttendanceStatus]:
    nxt = STATUS_CYCLE[(STATUS_CYCLE.index(current) + 1) % len(STATUS_CYCLE)]
    if nxt == AttendanceStatus.JUSTIFIED and not allow_justified:
        return None
    return nxt


async def toggle_cell(
    engine: SyncEngine,
    student_id: str,
    date,
    prompt: Optional[NotePrompt] = None,
    locked: bool = False,
    draft: bool = False,
    identity: Optional[Identity] = None,
) -> Optional[CellValue]:
    """
    Advance a cell one step through the cycle and return its new value.

    In draft mode the step is staged on the overlay; otherwise it is synced
    right away. Both start from the value the grid shows, draft over cache.
    Locked cells (before the student's registration) never move.
    """
    date = to_date_key(date)
    current = engine.drafts.effective_value(student_id, date)
    if locked:
        return current

    status = next_status(current.status if current else None, allow_justified=prompt is not None)
    note = ""
    if status == AttendanceStatus.JUSTIFIED:
        note = await prompt(current.note if current else "")
        if note is None:
            return current

    if draft:
        engine.set_draft(student_id, date, status, note)
        return engine.drafts.effective_value(student_id, date)

    await engine.sync_one(student_id, date, status, note, identity=identity)
    # The synced value supersedes any draft on the cell.
    engine.discard_draft(student_id, date)
    return engine.drafts.effective_value(student_id, date)
