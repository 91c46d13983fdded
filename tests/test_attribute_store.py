import sys
from datetime import date
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from booking_engine import create_app
from booking_engine.date_utils import parse_iso_date, parse_weekday
from booking_engine.extensions import db
from booking_engine.models import CourseAttribute
from booking_engine.services.attributes import (
    COURSE_DAY,
    END_DATE,
    HOLIDAY_DATES,
    SCHEDULE_SIGNATURE,
    START_DATE,
    TOTAL_SESSIONS,
    InMemoryAttributeStore,
    SqlAttributeStore,
    load_course_definition,
)
from booking_engine.services.courses import get_course_schedule
from booking_engine.signals import attribute_changed


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


@pytest.mark.parametrize(
    "value, expected",
    [(1, 1), ("3", 3), ("monday", 1), ("Mercredi", 3), ("sonntag", 7), ("8", None),
     ("someday", None), (True, None), (None, None)],
)
def test_parse_weekday(value, expected):
    assert parse_weekday(value) == expected


def test_parse_iso_date():
    assert parse_iso_date("2025-01-06") == date(2025, 1, 6)
    assert parse_iso_date("") is None
    with pytest.raises(ValueError):
        parse_iso_date("06.01.2025")


def test_load_course_definition_from_store():
    store = InMemoryAttributeStore({
        (7, START_DATE): "2025-01-06",
        (7, COURSE_DAY): "lundi",
        (7, TOTAL_SESSIONS): "10",
        (7, HOLIDAY_DATES): ["2025-02-17", "17/02/2025", "2025-03-03"],
    })

    course = load_course_definition(store, 7)

    assert course.start_date == date(2025, 1, 6)
    assert course.weekday == 1
    assert course.total_paid_sessions == 10
    assert course.holiday_dates == frozenset({date(2025, 2, 17), date(2025, 3, 3)})


def test_load_course_definition_never_raises():
    store = InMemoryAttributeStore({
        (8, START_DATE): "soon",
        (8, COURSE_DAY): "funday",
        (8, TOTAL_SESSIONS): "ten",
        (8, HOLIDAY_DATES): "2025-02-17",
    })

    course = load_course_definition(store, 8)

    assert course.start_date is None
    assert course.weekday is None
    assert course.total_paid_sessions == 0
    assert course.holiday_dates == frozenset()


def test_persisted_schedule_is_reused_until_inputs_change():
    store = InMemoryAttributeStore({
        (9, START_DATE): "2025-01-06",
        (9, COURSE_DAY): 1,
        (9, TOTAL_SESSIONS): 10,
    })

    assert get_course_schedule(store, 9).end_date == date(2025, 3, 10)
    assert store.get(9, END_DATE) == "2025-03-10"

    store.set(9, END_DATE, "2030-01-01")
    assert get_course_schedule(store, 9).end_date == date(2030, 1, 1)

    store.set(9, TOTAL_SESSIONS, 11)
    assert get_course_schedule(store, 9).end_date == date(2025, 3, 17)


def test_unschedulable_course_clears_persisted_schedule():
    store = InMemoryAttributeStore({
        (9, START_DATE): "2025-01-06",
        (9, COURSE_DAY): 1,
        (9, TOTAL_SESSIONS): 10,
    })
    get_course_schedule(store, 9)

    store.set(9, COURSE_DAY, None)

    assert get_course_schedule(store, 9) is None
    assert store.get(9, END_DATE) is None
    assert store.get(9, SCHEDULE_SIGNATURE) is None


def test_store_notifies_changes():
    received = []

    def receiver(entity_id, key=None, **kwargs):
        received.append((entity_id, key))

    attribute_changed.connect(receiver)
    try:
        InMemoryAttributeStore().set(3, TOTAL_SESSIONS, 4)
    finally:
        attribute_changed.disconnect(receiver)

    assert received == [(3, TOTAL_SESSIONS)]


def test_sql_store_round_trips_json_values(app):
    with app.app_context():
        store = SqlAttributeStore()
        store.set(11, HOLIDAY_DATES, ["2025-02-17"])
        store.set(11, TOTAL_SESSIONS, 10)
        store.set(12, TOTAL_SESSIONS, 8)
        store.set(11, TOTAL_SESSIONS, 9)
        db.session.commit()

        assert store.get(11, HOLIDAY_DATES) == ["2025-02-17"]
        assert store.get(11, TOTAL_SESSIONS) == 9
        assert store.get(11, START_DATE) is None
        assert store.entity_ids(TOTAL_SESSIONS) == [11, 12]
        assert CourseAttribute.query.filter_by(entity_id=11).count() == 2
