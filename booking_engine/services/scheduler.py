# services/scheduler.py
"""Calendario de cursos semanales.

Un feriado en el día del curso no descuenta una sesión pagada: el curso se
extiende una semana más. Todas las funciones devuelven un valor centinela
(None / 0) en vez de lanzar cuando la definición del curso es inválida.
"""

import logging
from datetime import date, timedelta
from typing import Iterator

from ..domain import CourseDefinition, ScheduleResult

logger = logging.getLogger(__name__)

# Límite de días escaneados por ocurrencia requerida
SCAN_DAYS_PER_OCCURRENCE = 10


# ---------------------------------------------------------
# Helper: iterate date range
# ---------------------------------------------------------
def _daterange(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def _is_computable(course: CourseDefinition) -> bool:
    if course.start_date is None:
        logger.debug("Course %s: missing start date", course.id)
        return False
    if course.weekday is None or not 1 <= course.weekday <= 7:
        logger.debug("Course %s: course weekday cannot be determined", course.id)
        return False
    if course.total_paid_sessions <= 0:
        logger.debug("Course %s: no paid sessions configured", course.id)
        return False
    return True


def count_sessions(course: CourseDefinition, start: date, end: date) -> int:
    """Días del curso que no son feriado entre ``start`` y ``end`` (inclusive)."""
    return sum(
        1
        for d in _daterange(start, end)
        if d.isoweekday() == course.weekday and d not in course.holiday_dates
    )


# ---------------------------------------------------------
# MAIN FUNCTION: schedule a course
# ---------------------------------------------------------
def schedule_course(course: CourseDefinition) -> ScheduleResult | None:
    """Recorre el calendario desde la fecha de inicio hasta cubrir todas las ocurrencias.

    Cada coincidencia con el día del curso suma una ocurrencia, y una sesión si
    no es feriado. El recorrido termina en la ocurrencia que completa
    ``total_paid_sessions`` sesiones, es decir tras
    ``total_paid_sessions + feriados dentro del curso`` ocurrencias. Un feriado
    posterior a la última sesión no extiende el curso.
    Devuelve None si el curso no es calculable o se supera el límite de días.
    """
    if not _is_computable(course):
        return None

    max_occurrences = course.total_paid_sessions + course.holidays_on_weekday()
    limit = max_occurrences * SCAN_DAYS_PER_OCCURRENCE

    occurrences = 0
    sessions = 0
    cur = course.start_date
    for _ in range(limit):
        if cur.isoweekday() == course.weekday:
            occurrences += 1
            if cur not in course.holiday_dates:
                sessions += 1
                if sessions == course.total_paid_sessions:
                    return ScheduleResult(
                        end_date=cur,
                        total_occurrences_needed=occurrences,
                        sessions_counted=sessions,
                    )
        cur += timedelta(days=1)

    logger.warning(
        "Course %s: end date not found within %d days (%d occurrences max)",
        course.id, limit, max_occurrences,
    )
    return None


def calculate_end_date(course: CourseDefinition) -> date | None:
    result = schedule_course(course)
    return result.end_date if result else None


def calculate_total_sessions(course: CourseDefinition) -> int:
    """Sesiones entre inicio y fin (inclusive) que no son feriado.

    Debe coincidir con ``total_paid_sessions``; si no, hay datos corruptos.
    """
    end_date = calculate_end_date(course)
    if end_date is None:
        return 0
    return count_sessions(course, course.start_date, end_date)


def calculate_remaining_sessions(course: CourseDefinition, today: date) -> int:
    """Sesiones que quedan desde ``max(today, start_date)`` hasta el fin del curso."""
    end_date = calculate_end_date(course)
    if end_date is None:
        return 0
    start = max(today, course.start_date)
    if start > end_date:
        return 0
    return count_sessions(course, start, end_date)


def schedule_signature(course: CourseDefinition) -> str:
    """Firma determinista de las entradas del calendario (para el caché persistido)."""
    holidays = ",".join(sorted(d.isoformat() for d in course.holiday_dates))
    return "|".join([
        course.start_date.isoformat() if course.start_date else "no-start",
        str(course.weekday or 0),
        str(course.total_paid_sessions),
        holidays,
    ])
