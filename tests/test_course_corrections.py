import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from booking_engine import create_app
from booking_engine.extensions import db
from booking_engine.services.attributes import (
    COURSE_DAY,
    END_DATE,
    HOLIDAY_DATES,
    SESSIONS_COUNTED,
    START_DATE,
    TOTAL_SESSIONS,
    InMemoryAttributeStore,
    SqlAttributeStore,
)
from booking_engine.services.courses import check_course_consistency, fix_inflated_holiday_counts


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def _add_course(store, entity_id, total, holidays=(), start="2025-01-06", day="monday"):
    store.set(entity_id, START_DATE, start)
    store.set(entity_id, COURSE_DAY, day)
    store.set(entity_id, TOTAL_SESSIONS, total)
    store.set(entity_id, HOLIDAY_DATES, list(holidays))


@pytest.fixture
def courses(app):
    with app.app_context():
        store = SqlAttributeStore()
        # 101: total inflado con 2 feriados en lunes
        _add_course(store, 101, 12, ["2025-02-17", "2025-03-03"])
        _add_course(store, 102, 10)
        # 103: al restar los feriados quedaría en negativo
        _add_course(store, 103, 1, ["2025-02-17", "2025-03-03"])
        db.session.commit()
    return app


def test_fix_holidays_dry_run_changes_nothing(courses):
    runner = courses.test_cli_runner()

    result = runner.invoke(args=["courses", "fix-holidays", "--dry-run"])

    assert result.exit_code == 0
    assert "Would fix course 101: 12 -> 10 (holidays 2)" in result.output
    assert "1 course(s) to fix." in result.output
    with courses.app_context():
        assert SqlAttributeStore().get(101, TOTAL_SESSIONS) == 12


def test_fix_holidays_updates_sessions_and_end_date(courses):
    runner = courses.test_cli_runner()

    result = runner.invoke(args=["courses", "fix-holidays"])

    assert result.exit_code == 0
    assert "Fixed course 101: 12 -> 10 (holidays 2)" in result.output
    with courses.app_context():
        store = SqlAttributeStore()
        assert store.get(101, TOTAL_SESSIONS) == 10
        assert store.get(101, END_DATE) == "2025-03-24"
        assert store.get(102, TOTAL_SESSIONS) == 10
        assert store.get(103, TOTAL_SESSIONS) == 1


def test_check_reports_stale_and_broken_courses(courses):
    with courses.app_context():
        store = SqlAttributeStore()
        _add_course(store, 104, 10)
        store.set(104, SESSIONS_COUNTED, 12)
        _add_course(store, 105, 10, start="06/01/2025")
        db.session.commit()
    runner = courses.test_cli_runner()

    result = runner.invoke(args=["courses", "check"])

    assert "Course 104: configured 10, computed 12" in result.output
    assert "Course 105: configured 10, computed 0" in result.output
    assert "Course 101" not in result.output

    result = runner.invoke(args=["courses", "recompute-end-dates"])
    assert "Course 104: ends 2025-03-10" in result.output
    assert "Course 105: not schedulable" in result.output

    result = runner.invoke(args=["courses", "check", "104"])
    assert "All courses consistent." in result.output


def test_check_course_consistency_in_memory():
    store = InMemoryAttributeStore()
    _add_course(store, 1, 10, ["2025-02-17"])
    _add_course(store, 2, 10, start="not-a-date")

    issues = check_course_consistency(store, [1, 2])

    assert [(i.entity_id, i.configured, i.computed) for i in issues] == [(2, 10, 0)]


def test_fix_holidays_only_counts_holidays_on_course_day():
    store = InMemoryAttributeStore()
    # martes y un lunes anterior al inicio no cuentan
    _add_course(store, 1, 11, ["2025-02-18", "2024-12-30", "2025-02-17"])

    fixes = fix_inflated_holiday_counts(store, [1])

    assert [(f.previous_sessions, f.corrected_sessions, f.holidays_on_weekday) for f in fixes] == [(11, 10, 1)]
    assert store.get(1, TOTAL_SESSIONS) == 10
    assert store.get(1, END_DATE) == "2025-03-17"
