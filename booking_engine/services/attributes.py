# services/attributes.py
"""Almacén de atributos de curso (entity_id, key) -> valor.

Los almacenes deben ser intercambiables: el motor solo usa ``get`` y ``set``.
Cada ``set`` envía la señal ``attribute_changed`` para invalidar cachés.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from ..date_utils import parse_iso_date, parse_weekday
from ..domain import CourseDefinition
from ..errors import DataError
from ..extensions import db
from ..models import CourseAttribute
from ..signals import attribute_changed

logger = logging.getLogger(__name__)

# Claves de atributos
START_DATE = "start_date"
COURSE_DAY = "course_day"
TOTAL_SESSIONS = "total_sessions"
HOLIDAY_DATES = "holiday_dates"
BASE_PRICE = "base_price"
SESSION_RATE = "session_rate"
SEASON = "season"

# Caché persistido del calendario
END_DATE = "end_date"
TOTAL_OCCURRENCES = "total_occurrences"
SESSIONS_COUNTED = "sessions_counted"
SCHEDULE_SIGNATURE = "schedule_signature"

SCHEDULE_INPUT_KEYS = frozenset({START_DATE, COURSE_DAY, TOTAL_SESSIONS, HOLIDAY_DATES})
PRICING_INPUT_KEYS = SCHEDULE_INPUT_KEYS | {BASE_PRICE, SESSION_RATE}


class AttributeStore(ABC):
    """Interface for course attribute persistence."""

    @abstractmethod
    def get(self, entity_id, key):
        """Return the stored value, or None if absent."""
        ...

    @abstractmethod
    def set(self, entity_id, key, value) -> None:
        """Store a value and notify subscribers."""
        ...

    def _notify(self, entity_id, key) -> None:
        attribute_changed.send(entity_id, key=key)


class InMemoryAttributeStore(AttributeStore):
    def __init__(self, values: dict | None = None):
        self._values: dict = {}
        for (entity_id, key), value in (values or {}).items():
            self._values[(entity_id, key)] = value

    def get(self, entity_id, key):
        return self._values.get((entity_id, key))

    def set(self, entity_id, key, value) -> None:
        self._values[(entity_id, key)] = value
        self._notify(entity_id, key)

    def entity_ids(self, key: str) -> list:
        return sorted({entity_id for (entity_id, k) in self._values if k == key})


class SqlAttributeStore(AttributeStore):
    """Almacén respaldado por la tabla course_attributes.

    No hace commit: igual que los servicios, deja la transacción al llamador.
    """

    def get(self, entity_id, key):
        record = CourseAttribute.query.filter_by(entity_id=entity_id, key=key).first()
        if record is None:
            return None
        return record.value

    def set(self, entity_id, key, value) -> None:
        record = CourseAttribute.query.filter_by(entity_id=entity_id, key=key).first()
        if record is None:
            record = CourseAttribute(entity_id=entity_id, key=key)
            db.session.add(record)
        record.value = value
        self._notify(entity_id, key)

    def entity_ids(self, key: str) -> list:
        rows = (
            db.session.query(CourseAttribute.entity_id)
            .filter(CourseAttribute.key == key)
            .order_by(CourseAttribute.entity_id)
            .all()
        )
        return [row.entity_id for row in rows]


# -------- Lectura de cursos --------
def _read_int(store: AttributeStore, entity_id, key) -> int:
    raw = store.get(entity_id, key)
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise DataError(entity_id, f"{key} is not an integer: {raw!r}")


def read_money(store: AttributeStore, entity_id, key) -> Decimal:
    raw = store.get(entity_id, key)
    if raw is None or raw == "":
        return Decimal("0")
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise DataError(entity_id, f"{key} is not a number: {raw!r}")
    if not value.is_finite():
        raise DataError(entity_id, f"{key} is not a finite number: {raw!r}")
    return value


def read_base_price(store: AttributeStore, entity_id) -> Decimal:
    """Precio base del catálogo; ausente o <= 0 es un error de datos (no se vende)."""
    price = read_money(store, entity_id, BASE_PRICE)
    if price <= 0:
        raise DataError(entity_id, f"{BASE_PRICE} missing or not positive: {price}")
    return price


def _read_holidays(store: AttributeStore, entity_id) -> frozenset:
    raw = store.get(entity_id, HOLIDAY_DATES) or []
    if not isinstance(raw, (list, tuple, set, frozenset)):
        logger.warning("Course %s: holiday list is not a list, ignoring it", entity_id)
        return frozenset()
    holidays = set()
    for item in raw:
        try:
            parsed = parse_iso_date(item)
        except ValueError:
            logger.warning("Course %s: skipping invalid holiday %r", entity_id, item)
            continue
        if parsed is not None:
            holidays.add(parsed)
    return frozenset(holidays)


def load_course_definition(store: AttributeStore, entity_id) -> CourseDefinition:
    """Construye la definición del curso desde el almacén.

    Un dato mal formado nunca lanza: se registra y el campo queda vacío, de modo
    que el calendario resulte "no calculable" y el curso se venda a precio base.
    """
    try:
        start_date = parse_iso_date(store.get(entity_id, START_DATE))
    except ValueError as exc:
        logger.warning("Course %s: %s", entity_id, exc)
        start_date = None

    weekday = parse_weekday(store.get(entity_id, COURSE_DAY))
    if weekday is None:
        logger.debug("Course %s: course day not set or not recognised", entity_id)

    try:
        total_sessions = _read_int(store, entity_id, TOTAL_SESSIONS)
    except DataError as exc:
        logger.warning("%s (course %s)", exc, entity_id)
        total_sessions = 0

    return CourseDefinition(
        id=entity_id,
        start_date=start_date,
        weekday=weekday,
        total_paid_sessions=max(0, total_sessions),
        holiday_dates=_read_holidays(store, entity_id),
    )
