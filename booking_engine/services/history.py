# services/history.py
"""Consulta de compras previas de un cliente para descuentos retroactivos."""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from decimal import Decimal

from config import MAX_LOOKBACK_MONTHS, MIN_LOOKBACK_MONTHS

from ..date_utils import months_before
from ..domain import Enrollment
from ..models import COUNTED_ORDER_STATUSES, Order, OrderItem


def clamp_lookback_months(months) -> int:
    try:
        months = int(months)
    except (TypeError, ValueError):
        return MIN_LOOKBACK_MONTHS
    return max(MIN_LOOKBACK_MONTHS, min(MAX_LOOKBACK_MONTHS, months))


def lookback_since(today: date, months) -> date:
    return months_before(today, clamp_lookback_months(months))


class OrderHistoryQuery(ABC):
    @abstractmethod
    def find(self, customer_id, series_id, child_id, since: date) -> list[Enrollment]:
        """Return the child's enrollments of a series bought on or after `since`,
        in original acquisition order."""
        ...


class InMemoryOrderHistory(OrderHistoryQuery):
    def __init__(self, enrollments=()):
        self._enrollments = list(enrollments)

    def add(self, enrollment: Enrollment) -> None:
        self._enrollments.append(enrollment)

    def find(self, customer_id, series_id, child_id, since: date) -> list[Enrollment]:
        return [
            e for e in self._enrollments
            if e.customer_id == customer_id
            and e.series_id == series_id
            and e.assigned_child_id == child_id
            and (e.booking_date is None or e.booking_date >= since)
        ]


def enrollment_from_item(item: OrderItem) -> Enrollment:
    order = item.order
    booked_at = order.created_at
    return Enrollment(
        id=f"order-{order.id}-item-{item.id}",
        product_family=item.product_family,
        series_id=item.series_id,
        assigned_child_id=item.assigned_child_id,
        unit_price=Decimal(str(item.unit_price)),
        order_id=order.id,
        booking_date=booked_at.date() if booked_at else None,
        customer_id=order.customer_id,
        season=item.season,
        series_term=item.series_term,
        week_or_day_index=item.week_or_day_index,
        course_weekday=item.course_weekday,
        booking_type=item.booking_type,
    )


class SqlOrderHistoryQuery(OrderHistoryQuery):
    """Historial desde orders/order_items; solo cuentan órdenes en proceso o completadas."""

    def find(self, customer_id, series_id, child_id, since: date) -> list[Enrollment]:
        since_dt = datetime.combine(since, time.min, tzinfo=timezone.utc)
        items = (
            OrderItem.query.join(Order)
            .filter(
                Order.customer_id == customer_id,
                Order.status.in_(COUNTED_ORDER_STATUSES),
                Order.created_at >= since_dt,
                OrderItem.series_id == series_id,
                OrderItem.assigned_child_id == str(child_id),
            )
            .order_by(Order.created_at, OrderItem.id)
            .all()
        )
        return [enrollment_from_item(item) for item in items]
