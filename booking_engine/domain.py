"""Domain objects shared by the scheduler, pricing and discount services.

These are plain value objects with no persistence concerns. The ORM models
live in booking_engine/models.py.
"""

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Normaliza un importe a Decimal con dos decimales (redondeo half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------- Enums ----------
class ProductFamily(enum.Enum):
    camp = "camp"
    course = "course"
    tournament = "tournament"
    birthday = "birthday"


class DiscountCondition(enum.Enum):
    second_child = "2nd_child"
    third_plus_child = "3rd_plus_child"
    same_season_course = "same_season_course"
    progressive_week_2 = "progressive_week_2"
    progressive_week_3_plus = "progressive_week_3_plus"
    same_child_multiple_days = "same_child_multiple_days"
    none = "none"


class DiscountMode(enum.Enum):
    cart = "cart"
    retroactive = "retroactive"


class BookingType(enum.Enum):
    full_week = "full-week"
    single_day = "single-day"


# ---------- Cursos ----------
@dataclass(frozen=True)
class CourseDefinition:
    """Weekly recurring course as authored in the catalog."""

    id: int
    start_date: date | None
    weekday: int | None
    total_paid_sessions: int
    holiday_dates: frozenset[date] = frozenset()

    def holidays_on_weekday(self) -> int:
        """Feriados que caen en el día del curso a partir de la fecha de inicio."""
        if self.start_date is None or self.weekday is None:
            return 0
        return sum(
            1
            for holiday in self.holiday_dates
            if holiday >= self.start_date and holiday.isoweekday() == self.weekday
        )


@dataclass(frozen=True)
class ScheduleResult:
    end_date: date
    total_occurrences_needed: int
    sessions_counted: int


# ---------- Descuentos ----------
@dataclass(frozen=True)
class Enrollment:
    """One child's booking of one offering instance (cart line or order item)."""

    id: str
    product_family: ProductFamily
    series_id: int | None
    assigned_child_id: str | None
    unit_price: Decimal
    order_id: int | None = None
    booking_date: date | None = None
    customer_id: int | None = None
    season: str | None = None
    series_term: str | None = None
    week_or_day_index: int | None = None
    course_weekday: int | None = None
    booking_type: BookingType | None = None

    @property
    def is_historical(self) -> bool:
        return self.order_id is not None


@dataclass(frozen=True)
class DiscountRule:
    id: str
    product_family: ProductFamily
    condition: DiscountCondition
    rate_percent: Decimal
    active: bool = True
    name: str = ""


@dataclass(frozen=True)
class DiscountAllocation:
    enrollment_id: str
    amount: Decimal
    rule_id: str | None = None
    note: str = ""
    condition: DiscountCondition = field(default=DiscountCondition.none, compare=False)

    def net_price(self, unit_price: Decimal) -> Decimal:
        return to_money(unit_price) + self.amount
