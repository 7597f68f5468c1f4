import pytest

from rollcall.schemas.attendance import AttendanceStatus
from rollcall.services.alerts import absence_alerts, dashboard_stats
from rollcall.services.grid import attendance_days, build_grid, mark_all_updates
from rollcall.services.reports import period_bounds, period_report

P = AttendanceStatus.PRESENT
F = AttendanceStatus.ABSENT
A = AttendanceStatus.EXCUSED_PRESENT
J = AttendanceStatus.JUSTIFIED


@pytest.fixture
async def loaded(context, store):
    store.tables["attendance"] = [
        {"student_id": "S1", "attendance_date": "2025-06-07", "status": "P"},
        {"student_id": "S1", "attendance_date": "2025-06-14", "status": "F"},
        {"student_id": "S1", "attendance_date": "2025-06-21", "status": "J", "note": "gripe"},
        {"student_id": "S2", "attendance_date": "2025-06-14", "status": "A"},
        # before S2's registration: ignored by alerts
        {"student_id": "S2", "attendance_date": "2025-06-07", "status": "F"},
        {"student_id": "S3", "attendance_date": "2025-05-03", "status": "F"},
        {"student_id": "S3", "attendance_date": "2025-05-10", "status": "F"},
        {"student_id": "S3", "attendance_date": "2025-05-17", "status": "F"},
        {"student_id": "S3", "attendance_date": "2025-05-24", "status": "J"},
        {"student_id": "S4", "attendance_date": "2025-02-01", "status": "F"},
    ]
    await context.refresh()
    return context


def test_arena_meets_on_saturdays():
    days = attendance_days(2025, 6, "arena")
    assert [d.date for d in days] == ["2025-06-07", "2025-06-14", "2025-06-21", "2025-06-28"]
    assert {d.weekday for d in days} == {"SÁB"}


def test_projeto_meets_tuesday_friday_saturday():
    days = attendance_days(2025, 6, "projeto")
    assert [d.day for d in days[:3]] == ["03", "06", "07"]
    assert [d.weekday for d in days[:3]] == ["TER", "SEX", "SÁB"]
    assert len(days) == 12


def test_unknown_program_is_rejected():
    with pytest.raises(ValueError):
        attendance_days(2025, 6, "natacao")


async def test_roster_enriches_classes(loaded):
    counts = {c.id: c.student_count for c in loaded.roster.classes}
    assert counts == {"c1": 2, "c2": 1}
    assert loaded.roster.classes[1].capacity == 25


async def test_grid_rows_cells_and_counts(loaded):
    loaded.engine.set_draft("S3", "2025-06-07", P)

    grid = build_grid(loaded.engine, loaded.roster, "arena", 2025, 6)

    assert [r.name for r in grid.rows] == ["ana", "Bruno", "Caio"]
    bruno = grid.rows[1]
    assert bruno.class_name == "SUB-11"
    assert bruno.absences == 2
    assert [c.status for c in bruno.cells] == [P, F, J, None]

    ana = grid.rows[0]
    assert ana.cells[0].locked and ana.cells[0].status == F
    assert not ana.cells[1].locked

    caio = grid.rows[2]
    assert caio.cells[0].dirty and caio.cells[0].status == P

    assert grid.day_presence == {"2025-06-07": 2, "2025-06-14": 1, "2025-06-21": 0, "2025-06-28": 0}
    assert grid.pending_drafts == 1


async def test_grid_class_filter(loaded):
    grid = build_grid(loaded.engine, loaded.roster, "arena", 2025, 6, class_id="c2")
    assert [r.student_id for r in grid.rows] == ["S3"]
    assert grid.rows[0].class_name == "SUB-15"


async def test_mark_all_skips_students_not_yet_registered(loaded):
    updates = mark_all_updates(loaded.roster, "2025-06-07", P, class_id="c1")
    assert [u.student_id for u in updates] == ["S1"]

    updates = mark_all_updates(loaded.roster, "2025-06-14", None)
    assert sorted(u.student_id for u in updates) == ["S1", "S2", "S3"]
    assert all(u.status is None for u in updates)


async def test_absence_alerts(loaded):
    report = absence_alerts(loaded.roster, loaded.cache, threshold=4)

    assert [(a.student_id, a.absences, a.critical) for a in report.alerts] == [
        ("S3", 4, True),
        ("S1", 2, False),
    ]
    assert report.alerts[1].cycle_start == "2025-01-01"
    assert [s.student_id for s in report.inactive] == ["S4"]


async def test_dashboard_stats(loaded):
    stats = dashboard_stats(loaded.roster, loaded.cache, threshold=4)
    assert (stats.active_students, stats.critical_alerts, stats.classes) == (3, 1, 2)


async def test_roster_skips_unusable_rows(context, store, caplog):
    store.tables["classes"].append({"id": 7, "name": "SUB-17", "capacity": 30})
    store.tables["students"] += [
        {"id": "S5", "name": "Edu", "class_id": 7, "registration_date": "2025-01-01", "status": "ativo"},
        {"id": "S6", "name": "Fabi", "class_id": "c1", "registration_date": "2025-01-01", "status": "pendente"},
        {"name": "sem id", "class_id": "c1"},
    ]

    await context.refresh()

    roster = context.roster
    assert [s.id for s in roster.students] == ["S1", "S2", "S3", "S4", "S5"]
    assert roster.get_student("S5").class_id == "7"
    assert roster.class_name("7") == "SUB-17"
    assert caplog.text.count("Skipping Student row") == 2


def test_period_bounds_cross_year():
    assert period_bounds(2025, 2, 3) == ("2024-12-01", "2025-02-28")
    assert period_bounds(2025, 6, 1) == ("2025-06-01", "2025-06-30")
    with pytest.raises(ValueError):
        period_bounds(2025, 6, 2)


async def test_monthly_report_counts_and_weekly_trend(loaded):
    report = period_report(loaded.roster, loaded.cache, 2025, 6, period=1)

    assert [(c.name, c.active_students) for c in report.active_by_class] == [("SUB-11", 2), ("SUB-15", 1)]
    assert [(c.name, c.presences, c.absences) for c in report.presence_by_class] == [
        ("SUB-11", 2, 3),
        ("SUB-15", 0, 0),
    ]
    assert [p.label for p in report.trend] == ["Sem. 1", "Sem. 2", "Sem. 3", "Sem. 4", "Sem. 5"]
    assert [p.values["SUB-11"] for p in report.trend] == [1, 1, 0, 0, 0]


async def test_half_year_report_trend_by_month(loaded):
    report = period_report(loaded.roster, loaded.cache, 2025, 6, period=6)

    assert report.start == "2025-01-01"
    # S4 is inactive but still counts for its class
    assert [(c.presences, c.absences) for c in report.presence_by_class] == [(2, 3), (0, 5)]
    assert [p.label for p in report.trend] == ["JAN/25", "FEV/25", "MAR/25", "ABR/25", "MAI/25", "JUN/25"]
    assert report.trend[-1].values == {"SUB-11": 2, "SUB-15": 0}
