# services/pricing.py
"""Precio de cursos según las sesiones restantes.

El prorrateo solo se aplica estrictamente dentro de la ventana del curso: antes
del inicio, y una vez terminado, se cobra el precio base del catálogo.
"""

import logging
from datetime import date
from decimal import Decimal

from ..domain import CourseDefinition, to_money
from ..errors import DataError
from . import scheduler as default_scheduler
from .attributes import (
    AttributeStore,
    PRICING_INPUT_KEYS,
    SESSION_RATE,
    load_course_definition,
    read_base_price,
    read_money,
)
from .cache import PriceCache
from .locale import IdentityLocaleResolver, LocaleResolver

logger = logging.getLogger(__name__)


class PricingEngine:
    def __init__(self, locale_resolver: LocaleResolver | None = None,
                 cache: PriceCache | None = None, scheduler=None):
        self.locale_resolver = locale_resolver or IdentityLocaleResolver()
        self.cache = cache if cache is not None else PriceCache()
        self.scheduler = scheduler or default_scheduler

    def calculate_price(self, entity_id, base_price, per_session_rate,
                        course: CourseDefinition, today: date,
                        stale_remaining_hint: int | None = None) -> Decimal:
        """Precio de una inscripción para ``today``.

        ``stale_remaining_hint`` se acepta por compatibilidad con los llamadores
        pero nunca se usa: las sesiones restantes siempre se recalculan aquí.
        """
        canonical_id = self.locale_resolver.canonical_id(entity_id)

        cached = self.cache.get(canonical_id, today)
        if cached is not None:
            return cached

        base_price = to_money(base_price)
        per_session_rate = Decimal(str(per_session_rate or 0))

        # un solo recorrido del calendario por cálculo
        schedule = self.scheduler.schedule_course(course)
        if schedule is None:
            logger.warning("Course %s: schedule not computable, using base price", canonical_id)
            price = base_price
        else:
            total = schedule.sessions_counted
            remaining = self.scheduler.count_sessions(
                course, max(today, course.start_date), schedule.end_date
            )
            if today >= schedule.end_date:
                # el día de término ya no se prorratea
                price = base_price
            elif remaining <= 0 or remaining > total:
                # no empezó o ya terminó
                price = base_price
            elif remaining == total:
                price = base_price
            elif per_session_rate > 0:
                price = to_money(per_session_rate * remaining)
            else:
                price = base_price

        price = max(price, to_money(0))
        self.cache.set(canonical_id, today, price)
        return price

    def price_enrollment(self, store: AttributeStore, entity_id, today: date) -> Decimal | None:
        """Lee precio base, tarifa por sesión y calendario desde el almacén y calcula el precio.

        Devuelve None si el precio base falta o es inválido: el curso no debe venderse.
        """
        canonical_id = self.locale_resolver.canonical_id(entity_id)
        cached = self.cache.get(canonical_id, today)
        if cached is not None:
            return cached

        try:
            base_price = read_base_price(store, canonical_id)
        except DataError as exc:
            logger.error("%s (course %s); withholding it from sale", exc, canonical_id)
            return None
        try:
            session_rate = read_money(store, canonical_id, SESSION_RATE)
        except DataError as exc:
            logger.warning("%s (course %s), ignoring session rate", exc, canonical_id)
            session_rate = Decimal("0")

        course = load_course_definition(store, canonical_id)
        return self.calculate_price(canonical_id, base_price, session_rate, course, today)

    def invalidate(self, entity_id) -> None:
        canonical_id = self.locale_resolver.canonical_id(entity_id)
        dropped = self.cache.invalidate(entity_id)
        if canonical_id != entity_id:
            dropped += self.cache.invalidate(canonical_id)
        if dropped:
            logger.debug("Invalidated %d cached prices for course %s", dropped, canonical_id)

    def on_attribute_changed(self, entity_id, key=None, **kwargs) -> None:
        if key is None or key in PRICING_INPUT_KEYS:
            self.invalidate(entity_id)
