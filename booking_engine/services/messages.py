# services/messages.py
"""Notas legibles para cada descuento, en inglés, francés y alemán."""

import logging
from decimal import Decimal

from ..domain import DiscountCondition, DiscountRule

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

NOTE_TEMPLATES = {
    DiscountCondition.second_child: {
        "en": "{rate}% Sibling {family} Discount",
        "fr": "Réduction fratrie {family} de {rate}%",
        "de": "{rate}% Geschwisterrabatt {family}",
    },
    DiscountCondition.third_plus_child: {
        "en": "{rate}% Multi-Child {family} Discount",
        "fr": "Réduction multi-enfants {family} de {rate}%",
        "de": "{rate}% Mehrkinderrabatt {family}",
    },
    DiscountCondition.same_season_course: {
        "en": "{rate}% Same Season Course Discount ({season})",
        "fr": "Réduction cours même saison de {rate}% ({season})",
        "de": "{rate}% Rabatt für Kurse derselben Saison ({season})",
    },
    DiscountCondition.progressive_week_2: {
        "en": "{rate}% Camp Week 2 Discount",
        "fr": "Réduction stage semaine 2 de {rate}%",
        "de": "{rate}% Camp-Rabatt für die 2. Woche",
    },
    DiscountCondition.progressive_week_3_plus: {
        "en": "{rate}% Camp Week 3+ Discount",
        "fr": "Réduction stage semaine 3+ de {rate}%",
        "de": "{rate}% Camp-Rabatt ab der 3. Woche",
    },
    DiscountCondition.same_child_multiple_days: {
        "en": "{rate}% Tournament Multiple Days Discount",
        "fr": "Réduction tournoi plusieurs jours de {rate}%",
        "de": "{rate}% Turnierrabatt für mehrere Tage",
    },
}

FAMILY_LABELS = {
    "en": {"camp": "Camp", "course": "Course", "tournament": "Tournament", "birthday": "Birthday"},
    "fr": {"camp": "stage", "course": "cours", "tournament": "tournoi", "birthday": "anniversaire"},
    "de": {"camp": "Camp", "course": "Kurs", "tournament": "Turnier", "birthday": "Geburtstag"},
}


def _format_rate(rate: Decimal) -> str:
    # 20 -> "20", 33.330 -> "33.33"
    return f"{rate.normalize():f}"


def discount_note(rule: DiscountRule, language: str = FALLBACK_LANGUAGE,
                  season: str | None = None) -> str:
    templates = NOTE_TEMPLATES.get(rule.condition)
    if templates is None:
        return rule.name

    template = templates.get(language)
    if template is None:
        logger.debug("No %s note for %s, falling back to %s", language, rule.id, FALLBACK_LANGUAGE)
        language = FALLBACK_LANGUAGE
        template = templates[FALLBACK_LANGUAGE]

    family = FAMILY_LABELS[language][rule.product_family.value]
    return template.format(
        rate=_format_rate(rule.rate_percent),
        family=family,
        season=season or "-",
    )
