# services/rules.py
"""Tabla de reglas de descuento.

La tabla configurada es la fuente de verdad; las tasas por defecto solo se usan
para familias sin ninguna regla configurada.
"""

import logging
from decimal import Decimal

from ..domain import DiscountCondition, DiscountRule, ProductFamily
from ..errors import ConfigurationError
from ..extensions import db
from ..models import DiscountRuleRecord

logger = logging.getLogger(__name__)

MAX_RATE = Decimal("100")


def _rule(rule_id, family, condition, rate, name):
    return DiscountRule(
        id=rule_id,
        product_family=family,
        condition=condition,
        rate_percent=Decimal(rate),
        active=True,
        name=name,
    )


DEFAULT_RULES = (
    _rule("camp-2nd-child", ProductFamily.camp, DiscountCondition.second_child, "20",
          "Camp Sibling Discount"),
    _rule("camp-3rd-plus-child", ProductFamily.camp, DiscountCondition.third_plus_child, "25",
          "Camp Multi-Child Discount"),
    _rule("camp-progressive-week-2", ProductFamily.camp, DiscountCondition.progressive_week_2, "10",
          "Camp Progressive Week 2 Discount"),
    _rule("camp-progressive-week-3-plus", ProductFamily.camp,
          DiscountCondition.progressive_week_3_plus, "20", "Camp Progressive Week 3+ Discount"),
    _rule("course-2nd-child", ProductFamily.course, DiscountCondition.second_child, "20",
          "Course Sibling Discount"),
    _rule("course-3rd-plus-child", ProductFamily.course, DiscountCondition.third_plus_child, "30",
          "Course Multi-Child Discount"),
    _rule("course-same-season", ProductFamily.course, DiscountCondition.same_season_course, "50",
          "Same Season Course Discount"),
    _rule("tournament-2nd-child", ProductFamily.tournament, DiscountCondition.second_child, "20",
          "Tournament Sibling Discount"),
    _rule("tournament-3rd-plus-child", ProductFamily.tournament,
          DiscountCondition.third_plus_child, "30", "Tournament Multi-Child Discount"),
    _rule("tournament-same-child-multiple-days", ProductFamily.tournament,
          DiscountCondition.same_child_multiple_days, "33.33",
          "Tournament Same Child Multiple Days Discount"),
)


def validate_rule(rule: DiscountRule) -> None:
    if rule.rate_percent < 0 or rule.rate_percent >= MAX_RATE:
        raise ConfigurationError(rule.id, rule.rate_percent)


class DiscountRuleTable:
    def __init__(self, rules=DEFAULT_RULES):
        self._rules: list[DiscountRule] = list(rules)

    @property
    def rules(self) -> list[DiscountRule]:
        return list(self._rules)

    def active_rules(self, product_family: ProductFamily) -> list[DiscountRule]:
        """Reglas activas y bien configuradas de una familia.

        Una tasa negativa o >= 100 % deja la regla inactiva.
        """
        active = []
        for rule in self._rules:
            if rule.product_family != product_family or not rule.active:
                continue
            if rule.condition == DiscountCondition.none:
                continue
            try:
                validate_rule(rule)
            except ConfigurationError as exc:
                logger.warning("%s; treating it as inactive", exc)
                continue
            active.append(rule)
        return active

    def rule_for(self, product_family: ProductFamily,
                 condition: DiscountCondition) -> DiscountRule | None:
        for rule in self.active_rules(product_family):
            if rule.condition == condition:
                return rule
        return None

    def invalid_rules(self) -> list[DiscountRule]:
        invalid = []
        for rule in self._rules:
            try:
                validate_rule(rule)
            except ConfigurationError:
                invalid.append(rule)
        return invalid


def rule_from_record(record: DiscountRuleRecord) -> DiscountRule:
    return DiscountRule(
        id=record.rule_id,
        product_family=record.product_family,
        condition=record.condition,
        rate_percent=Decimal(str(record.rate_percent)),
        active=bool(record.is_active),
        name=record.name or "",
    )


def load_rule_table() -> DiscountRuleTable:
    """Carga las reglas guardadas; las familias sin reglas usan las tasas por defecto."""
    records = DiscountRuleRecord.query.order_by(DiscountRuleRecord.id).all()
    rules = [rule_from_record(record) for record in records]
    configured = {rule.product_family for rule in rules}
    for default in DEFAULT_RULES:
        if default.product_family not in configured:
            rules.append(default)
    return DiscountRuleTable(rules)


def seed_default_rules() -> list[DiscountRuleRecord]:
    """Guarda las reglas por defecto que aún no existen (no hace commit)."""
    created = []
    for rule in DEFAULT_RULES:
        if DiscountRuleRecord.query.filter_by(rule_id=rule.id).first():
            continue
        record = DiscountRuleRecord(
            rule_id=rule.id,
            name=rule.name,
            product_family=rule.product_family,
            condition=rule.condition,
            rate_percent=rule.rate_percent,
            is_active=rule.active,
        )
        db.session.add(record)
        created.append(record)
    return created
