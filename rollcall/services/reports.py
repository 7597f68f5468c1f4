"""
Period reports over the cached attendance.

A report ends with the selected month and reaches back 1, 3, 6 or 12
months. It has active students per class, presences (P/A) against
absences (F/J) per class, and a presence trend: weekly for a single
month, monthly otherwise.
"""

import calendar

from rollcall.schemas.attendance import ABSENT_STATUSES, PRESENT_STATUSES
from rollcall.schemas.reports import ClassCount, ClassPresence, PeriodReport, TrendPoint
from rollcall.services.roster import Roster
from rollcall.sync.cache import AttendanceCache

REPORT_PERIODS = (1, 3, 6, 12)
MONTHS_SHORT = ("JAN", "FEV", "MAR", "ABR", "MAI", "JUN", "JUL", "AGO", "SET", "OUT", "NOV", "DEZ")


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def period_bounds(year: int, month: int, period: int) -> tuple[str, str]:
    """First and last date key covered by a report ending in year/month."""
    if period not in REPORT_PERIODS:
        raise ValueError(f"Unknown report period: {period}")
    start_year, start_month = shift_month(year, month, 1 - period)
    last_day = calendar.monthrange(year, month)[1]
    return f"{start_year:04d}-{start_month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}"


def period_report(
    roster: Roster, cache: AttendanceCache, year: int, month: int, period: int = 1
) -> PeriodReport:
    start, end = period_bounds(year, month, period)
    classes = roster.classes
    names = {c.id: c.name for c in classes}

    # Every student of a class counts, active or not.
    class_of = {s.id: s.class_id for s in roster.students if s.class_id in names}
    records = [
        r for r in cache.records() if start <= r.date <= end and r.student_id in class_of
    ]

    tallies = {c.id: ClassPresence(class_id=c.id, name=c.name) for c in classes}
    for r in records:
        tally = tallies[class_of[r.student_id]]
        if r.status in PRESENT_STATUSES:
            tally.presences += 1
        elif r.status in ABSENT_STATUSES:
            tally.absences += 1

    present = [(r.date, names[class_of[r.student_id]]) for r in records if r.status in PRESENT_STATUSES]
    if period == 1:
        trend = _weekly_trend(present, year, month, names.values())
    else:
        trend = _monthly_trend(present, year, month, period, names.values())

    return PeriodReport(
        year=year,
        month=month,
        period=period,
        start=start,
        end=end,
        active_by_class=[
            ClassCount(class_id=c.id, name=c.name, active_students=c.student_count)
            for c in classes
            if c.student_count > 0
        ],
        presence_by_class=list(tallies.values()),
        trend=trend,
    )


def _weekly_trend(present, year, month, class_names) -> list[TrendPoint]:
    # Days 1-7 are week 1 and so on; days 29-31 make a fifth week.
    last_day = calendar.monthrange(year, month)[1]
    weeks = (last_day + 6) // 7
    points = [
        TrendPoint(label=f"Sem. {i + 1}", values={name: 0 for name in class_names})
        for i in range(weeks)
    ]
    for date, class_name in present:
        points[(int(date[8:10]) - 1) // 7].values[class_name] += 1
    return points


def _monthly_trend(present, year, month, period, class_names) -> list[TrendPoint]:
    points = {}
    for offset in range(1 - period, 1):
        y, m = shift_month(year, month, offset)
        points[f"{y:04d}-{m:02d}"] = TrendPoint(
            label=f"{MONTHS_SHORT[m - 1]}/{y % 100:02d}",
            values={name: 0 for name in class_names},
        )
    for date, class_name in present:
        points[date[:7]].values[class_name] += 1
    return list(points.values())
