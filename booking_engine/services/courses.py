# services/courses.py
"""Calendario persistido de cada curso y herramientas de corrección."""

import logging
from dataclasses import dataclass

from ..domain import CourseDefinition, ScheduleResult
from ..date_utils import parse_iso_date
from ..errors import ConsistencyError
from . import scheduler
from .attributes import (
    AttributeStore,
    END_DATE,
    SCHEDULE_SIGNATURE,
    SESSIONS_COUNTED,
    TOTAL_OCCURRENCES,
    TOTAL_SESSIONS,
    load_course_definition,
)

logger = logging.getLogger(__name__)


def get_course_schedule(store: AttributeStore, entity_id) -> ScheduleResult | None:
    """Devuelve el calendario guardado si sus entradas no cambiaron; si no, lo recalcula y lo guarda."""
    course = load_course_definition(store, entity_id)
    signature = scheduler.schedule_signature(course)

    if store.get(entity_id, SCHEDULE_SIGNATURE) == signature:
        end_date = parse_iso_date(store.get(entity_id, END_DATE))
        if end_date is not None:
            return ScheduleResult(
                end_date=end_date,
                total_occurrences_needed=int(store.get(entity_id, TOTAL_OCCURRENCES) or 0),
                sessions_counted=int(store.get(entity_id, SESSIONS_COUNTED) or 0),
            )

    return refresh_course_schedule(store, entity_id, course)


def refresh_course_schedule(store: AttributeStore, entity_id,
                            course: CourseDefinition | None = None) -> ScheduleResult | None:
    course = course or load_course_definition(store, entity_id)
    result = scheduler.schedule_course(course)
    if result is None:
        logger.warning("Course %s is not schedulable; withhold it from sale", entity_id)
        store.set(entity_id, END_DATE, None)
        store.set(entity_id, SCHEDULE_SIGNATURE, None)
        return None

    store.set(entity_id, END_DATE, result.end_date.isoformat())
    store.set(entity_id, TOTAL_OCCURRENCES, result.total_occurrences_needed)
    store.set(entity_id, SESSIONS_COUNTED, result.sessions_counted)
    store.set(entity_id, SCHEDULE_SIGNATURE, scheduler.schedule_signature(course))
    return result


def check_course_consistency(store: AttributeStore, entity_ids) -> list[ConsistencyError]:
    """Cursos cuyo total de sesiones (recalculado o guardado) no coincide con el configurado."""
    issues = []
    for entity_id in entity_ids:
        course = load_course_definition(store, entity_id)
        if course.total_paid_sessions <= 0:
            continue
        computed = scheduler.calculate_total_sessions(course)
        stored = store.get(entity_id, SESSIONS_COUNTED)
        if computed == course.total_paid_sessions and stored is not None:
            # calendario guardado con datos anteriores
            computed = int(stored)
        if computed != course.total_paid_sessions:
            issue = ConsistencyError(entity_id, course.total_paid_sessions, computed)
            logger.warning("Course %s: %s", entity_id, issue)
            issues.append(issue)
    return issues


@dataclass
class HolidayFix:
    entity_id: int
    previous_sessions: int
    corrected_sessions: int
    holidays_on_weekday: int


def fix_inflated_holiday_counts(store: AttributeStore, entity_ids,
                                dry_run: bool = False) -> list[HolidayFix]:
    """Corrige cursos creados con la lógica antigua de feriados.

    Antes los feriados se sumaban a mano al total de sesiones; ahora el
    calendario los salta solo, así que el total quedó inflado en la cantidad
    de feriados que caen en el día del curso. Correr una sola vez.
    """
    fixes = []
    for entity_id in entity_ids:
        course = load_course_definition(store, entity_id)
        holidays = course.holidays_on_weekday()
        if holidays == 0 or course.total_paid_sessions <= 0:
            continue

        corrected = course.total_paid_sessions - holidays
        if corrected <= 0:
            logger.info(
                "Course %s skipped: corrected total would be %d (current %d, holidays %d)",
                entity_id, corrected, course.total_paid_sessions, holidays,
            )
            continue

        fixes.append(HolidayFix(entity_id, course.total_paid_sessions, corrected, holidays))
        if dry_run:
            continue

        store.set(entity_id, TOTAL_SESSIONS, corrected)
        refresh_course_schedule(store, entity_id)
        logger.info(
            "Course %s fixed: %d -> %d sessions (subtracted %d holidays)",
            entity_id, course.total_paid_sessions, corrected, holidays,
        )
    return fixes
