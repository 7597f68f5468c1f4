"""
Absence alerts and dashboard counters.

Absences (F or J) only count from the student's registration date, so a
reactivated student starts a fresh cycle.
"""

from rollcall.schemas.attendance import ABSENT_STATUSES
from rollcall.schemas.grid import AbsenceAlert, AlertsReport, DashboardStats, InactiveStudent
from rollcall.services.roster import Roster
from rollcall.sync.cache import AttendanceCache


def absence_counts(roster: Roster, cache: AttendanceCache) -> dict[str, int]:
    active = {s.id: s for s in roster.students if s.is_active}
    counts = {student_id: 0 for student_id in active}
    for record in cache.records():
        student = active.get(record.student_id)
        if student is None or record.status not in ABSENT_STATUSES:
            continue
        if record.date >= student.registration_date:
            counts[student.id] += 1
    return counts


def absence_alerts(roster: Roster, cache: AttendanceCache, threshold: int) -> AlertsReport:
    counts = absence_counts(roster, cache)
    alerts = [
        AbsenceAlert(
            student_id=s.id,
            name=s.name,
            class_name=roster.class_name(s.class_id),
            absences=counts[s.id],
            critical=counts[s.id] >= threshold,
            cycle_start=s.registration_date,
        )
        for s in roster.students
        if s.is_active and counts.get(s.id, 0) > 0
    ]
    alerts.sort(key=lambda a: a.absences, reverse=True)

    inactive = sorted(
        (s for s in roster.students if not s.is_active),
        key=lambda s: s.deactivation_date or "",
        reverse=True,
    )
    return AlertsReport(
        threshold=threshold,
        alerts=alerts,
        inactive=[
            InactiveStudent(student_id=s.id, name=s.name, deactivation_date=s.deactivation_date)
            for s in inactive
        ],
    )


def dashboard_stats(roster: Roster, cache: AttendanceCache, threshold: int) -> DashboardStats:
    counts = absence_counts(roster, cache)
    return DashboardStats(
        active_students=len(counts),
        critical_alerts=sum(1 for n in counts.values() if n >= threshold),
        classes=len(roster.classes),
    )
