# services/discounts.py
"""Descuentos combinados por carrito (y por compras previas del cliente).

Cada inscripción del carrito recibe a lo sumo una regla: la de mayor tasa entre
las que aplican. Las compras previas solo aportan posición en las secuencias
(semana 2, segundo día, segundo día de curso distinto); su precio nunca se
ajusta. Un fallo aquí nunca bloquea el pago: la inscripción queda a precio
completo.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..domain import (
    CENT,
    ZERO,
    BookingType,
    DiscountAllocation,
    DiscountCondition,
    DiscountMode,
    DiscountRule,
    Enrollment,
    ProductFamily,
    to_money,
)
from .cache import HistoryCache
from .history import OrderHistoryQuery, clamp_lookback_months, lookback_since
from .messages import discount_note
from .rules import DiscountRuleTable

logger = logging.getLogger(__name__)

WEEK_PATTERN = re.compile(r"week-(\d+)", re.IGNORECASE)


def parse_camp_week(series_term: str | None) -> int | None:
    """Número de semana en términos como ``summer-week-2-july-1-july-5-5-days``."""
    if not series_term:
        return None
    match = WEEK_PATTERN.search(series_term)
    if match is None:
        return None
    return int(match.group(1))


def camp_week(enrollment: Enrollment) -> int | None:
    if enrollment.week_or_day_index is not None:
        return enrollment.week_or_day_index
    return parse_camp_week(enrollment.series_term)


def season_key(enrollment: Enrollment):
    return enrollment.season or enrollment.series_id


@dataclass
class DiscountSettings:
    lookback_months: int = 6
    retroactive_families: frozenset = frozenset(
        {ProductFamily.camp, ProductFamily.course, ProductFamily.tournament}
    )
    language: str = "en"
    history_cache_ttl: int = 0

    def __post_init__(self):
        self.lookback_months = clamp_lookback_months(self.lookback_months)

    @classmethod
    def from_config(cls, config) -> "DiscountSettings":
        families = set()
        if config.get("RETROACTIVE_CAMPS_ENABLED", True):
            families.add(ProductFamily.camp)
        if config.get("RETROACTIVE_COURSES_ENABLED", True):
            families.add(ProductFamily.course)
        if config.get("RETROACTIVE_TOURNAMENTS_ENABLED", True):
            families.add(ProductFamily.tournament)
        return cls(
            lookback_months=config.get("DISCOUNT_LOOKBACK_MONTHS", 6),
            retroactive_families=frozenset(families),
            language=config.get("DEFAULT_LANGUAGE", "en"),
            history_cache_ttl=config.get("HISTORY_CACHE_TTL", 0),
        )


@dataclass
class _Candidate:
    rule: DiscountRule
    season: str | None = None


@dataclass
class _Pass:
    """Estado de una pasada de cálculo."""

    mode: DiscountMode
    customer_id: object
    today: date
    history_cache: HistoryCache
    candidates: dict = field(default_factory=dict)

    def add(self, enrollment: Enrollment, rule: DiscountRule | None, season=None) -> None:
        if rule is None:
            return
        self.candidates.setdefault(enrollment.id, []).append(_Candidate(rule, season))


class DiscountEngine:
    def __init__(self, rule_table: DiscountRuleTable | None = None,
                 history: OrderHistoryQuery | None = None,
                 settings: DiscountSettings | None = None,
                 history_cache: HistoryCache | None = None):
        self.rule_table = rule_table or DiscountRuleTable()
        self.history = history
        self.settings = settings or DiscountSettings()
        # Solo se comparte entre pasadas si se inyecta (con TTL corto)
        self.history_cache = history_cache

    # -------- API --------
    def compute_discounts(self, enrollments, mode: DiscountMode = DiscountMode.cart,
                          customer_id=None, today: date | None = None) -> list[DiscountAllocation]:
        """Una asignación por inscripción del carrito, en el mismo orden.

        Las inscripciones sin regla aplicable reciben una asignación de 0.
        """
        cart = list(enrollments)
        state = _Pass(
            mode=mode,
            customer_id=customer_id,
            today=today or date.today(),
            history_cache=self.history_cache if self.history_cache is not None else HistoryCache(),
        )

        eligible = [e for e in cart if self._is_eligible(e)]
        for family in ProductFamily:
            members = [e for e in eligible if e.product_family == family]
            if members:
                self._evaluate_family(family, members, state)

        return [self._allocate(e, state.candidates.get(e.id, [])) for e in cart]

    # -------- Elegibilidad --------
    @staticmethod
    def _is_eligible(enrollment: Enrollment) -> bool:
        if not enrollment.assigned_child_id:
            logger.debug("Enrollment %s has no assigned child; full price", enrollment.id)
            return False
        if enrollment.series_id is None:
            logger.debug("Enrollment %s has no series; full price", enrollment.id)
            return False
        return True

    def _evaluate_family(self, family: ProductFamily, members, state: _Pass) -> None:
        match family:
            case ProductFamily.camp:
                self._progressive_week(members, state)
                self._siblings(family, members, state)
            case ProductFamily.course:
                self._same_season_course(members, state)
                self._siblings(family, members, state)
            case ProductFamily.tournament:
                self._same_child_multiple_days(members, state)
                self._siblings(family, members, state)
            case ProductFamily.birthday:
                return
            case _:
                raise ValueError(f"Unknown product family: {family!r}")

    # -------- Historial --------
    def _previous(self, state: _Pass, family: ProductFamily, series_id, child_id) -> list[Enrollment]:
        if state.mode != DiscountMode.retroactive or self.history is None:
            return []
        if state.customer_id is None or family not in self.settings.retroactive_families:
            return []

        months = self.settings.lookback_months
        key = HistoryCache.key(state.customer_id, series_id, child_id, months)
        found = state.history_cache.get(key)
        if found is None:
            since = lookback_since(state.today, months)
            try:
                found = self.history.find(state.customer_id, series_id, child_id, since)
            except Exception as exc:
                logger.error(
                    "Previous order lookup failed for customer %s, series %s: %s",
                    state.customer_id, series_id, exc, exc_info=True,
                )
                found = []
            state.history_cache.set(key, found)
        return [e for e in found if e.product_family == family]

    def _previous_for_group(self, state: _Pass, family, items) -> list[Enrollment]:
        child_id = items[0].assigned_child_id
        previous = []
        seen = set()
        for series_id in dict.fromkeys(e.series_id for e in items):
            for enrollment in self._previous(state, family, series_id, child_id):
                if enrollment.id not in seen:
                    seen.add(enrollment.id)
                    previous.append(enrollment)
        return previous

    # -------- Reglas --------
    def _siblings(self, family: ProductFamily, members, state: _Pass) -> None:
        """Un representante por niño (el más caro), ordenados por precio descendente.

        El primero paga completo, el segundo recibe ``2nd_child`` y el resto
        ``3rd_plus_child``; la tasa del niño aplica a todas sus inscripciones.
        """
        second = self.rule_table.rule_for(family, DiscountCondition.second_child)
        third = self.rule_table.rule_for(family, DiscountCondition.third_plus_child)
        if second is None and third is None:
            return

        if family == ProductFamily.camp:
            members = [e for e in members if e.booking_type != BookingType.single_day]

        by_child: dict = {}
        for e in members:
            by_child.setdefault(e.assigned_child_id, []).append(e)
        if len(by_child) < 2:
            return

        ranking = []
        for index, (child_id, items) in enumerate(by_child.items()):
            representative = max(items, key=lambda e: to_money(e.unit_price))
            ranking.append((-to_money(representative.unit_price), index, child_id))
        ranking.sort()

        for position, (_, _, child_id) in enumerate(ranking):
            if position == 0:
                continue
            rule = second if position == 1 else third
            for e in by_child[child_id]:
                state.add(e, rule)

    def _progressive_week(self, members, state: _Pass) -> None:
        week_2 = self.rule_table.rule_for(ProductFamily.camp, DiscountCondition.progressive_week_2)
        week_3 = self.rule_table.rule_for(ProductFamily.camp, DiscountCondition.progressive_week_3_plus)
        if week_2 is None and week_3 is None:
            return

        for (_, key), items in _group(members, season_key).items():
            previous = [
                e for e in self._previous_for_group(state, ProductFamily.camp, items)
                if season_key(e) == key
            ]
            sequence = []
            for index, e in enumerate(previous + items):
                week = camp_week(e)
                if week is None:
                    logger.debug("Enrollment %s: unparsable camp week, skipped", e.id)
                    continue
                sequence.append((week, 0 if e.is_historical else 1, index, e))
            sequence.sort(key=lambda entry: entry[:3])

            for position, (_, _, _, e) in enumerate(sequence):
                if position == 0 or e.is_historical:
                    continue
                state.add(e, week_2 if position == 1 else week_3)

    def _same_season_course(self, members, state: _Pass) -> None:
        rule = self.rule_table.rule_for(ProductFamily.course, DiscountCondition.same_season_course)
        if rule is None:
            return

        for (_, key), items in _group(members, season_key).items():
            previous = [
                e for e in self._previous_for_group(state, ProductFamily.course, items)
                if season_key(e) == key
            ]
            # el descuento cae sobre el curso más barato del carrito
            current = sorted(items, key=lambda e: -to_money(e.unit_price))
            counted_days = set()
            for e in previous + current:
                if e.course_weekday is None or e.course_weekday in counted_days:
                    continue
                if counted_days and not e.is_historical:
                    state.add(e, rule, season=items[0].season)
                counted_days.add(e.course_weekday)

    def _same_child_multiple_days(self, members, state: _Pass) -> None:
        rule = self.rule_table.rule_for(ProductFamily.tournament,
                                        DiscountCondition.same_child_multiple_days)
        if rule is None:
            return

        for (_, series_id), items in _group(members, lambda e: e.series_id).items():
            previous = self._previous(state, ProductFamily.tournament, series_id,
                                      items[0].assigned_child_id)
            for position, e in enumerate(previous + items):
                if position >= 1 and not e.is_historical:
                    state.add(e, rule)

    # -------- Asignación --------
    def _allocate(self, enrollment: Enrollment, candidates) -> DiscountAllocation:
        if not candidates:
            return DiscountAllocation(enrollment_id=enrollment.id, amount=ZERO)

        # la primera con la tasa más alta gana; nunca se acumulan
        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.rule.rate_percent > best.rule.rate_percent:
                best = candidate

        price = to_money(enrollment.unit_price)
        discount = to_money(price * best.rule.rate_percent / Decimal(100))
        if discount < CENT:
            return DiscountAllocation(enrollment_id=enrollment.id, amount=ZERO)
        discount = min(discount, price)

        return DiscountAllocation(
            enrollment_id=enrollment.id,
            amount=-discount,
            rule_id=best.rule.id,
            note=discount_note(best.rule, self.settings.language, season=best.season),
            condition=best.rule.condition,
        )


def _group(items, key_func) -> dict:
    groups: dict = {}
    for e in items:
        groups.setdefault((e.assigned_child_id, key_func(e)), []).append(e)
    return groups


def ledger_lines(allocations) -> list[DiscountAllocation]:
    """Solo las asignaciones distintas de cero (las que generan línea contable)."""
    return [a for a in allocations if a.amount != ZERO]


def total_discount(allocations) -> Decimal:
    return sum((a.amount for a in allocations), ZERO)
