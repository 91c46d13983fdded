# booking_engine/models.py
import enum
import json
from datetime import datetime, timezone

from .extensions import db
from .domain import ProductFamily, DiscountCondition, BookingType


# ---------- Mixins ----------
class UtcTimestampMixin:
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


# ---------- Enums ----------
class OrderStatus(enum.Enum):
    pending = "Pending"
    processing = "Processing"
    completed = "Completed"
    canceled = "Canceled"
    refunded = "Refunded"


# Órdenes que cuentan como compras previas para descuentos retroactivos
COUNTED_ORDER_STATUSES = (OrderStatus.processing, OrderStatus.completed)


# ---------- Catálogo ----------
class CourseAttribute(UtcTimestampMixin, db.Model):
    __tablename__ = "course_attributes"

    id = db.Column(db.Integer, primary_key=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)
    key = db.Column(db.String(64), nullable=False)
    value_json = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("entity_id", "key", name="uq_course_attribute_entity_key"),
    )

    @property
    def value(self):
        if self.value_json is None:
            return None
        return json.loads(self.value_json)

    @value.setter
    def value(self, new_value):
        self.value_json = None if new_value is None else json.dumps(new_value)

    def __repr__(self):
        return f"<CourseAttribute {self.entity_id}.{self.key}>"


class ProductTranslation(UtcTimestampMixin, db.Model):
    __tablename__ = "product_translations"

    id = db.Column(db.Integer, primary_key=True)
    entity_id = db.Column(db.Integer, nullable=False, unique=True, index=True)
    canonical_id = db.Column(db.Integer, nullable=False, index=True)
    language = db.Column(db.String(8), nullable=False)

    def __repr__(self):
        return f"<ProductTranslation {self.entity_id}->{self.canonical_id} {self.language}>"


class DiscountRuleRecord(UtcTimestampMixin, db.Model):
    __tablename__ = "discount_rules"

    id = db.Column(db.Integer, primary_key=True)
    rule_id = db.Column(db.String(80), nullable=False, unique=True)
    name = db.Column(db.String(160), nullable=False, default="")
    product_family = db.Column(db.Enum(ProductFamily), nullable=False, index=True)
    condition = db.Column(db.Enum(DiscountCondition), nullable=False)
    rate_percent = db.Column(db.Numeric(5, 2), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<DiscountRuleRecord {self.rule_id} {self.rate_percent}%>"


# ---------- Órdenes ----------
class Order(UtcTimestampMixin, db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=False, index=True)
    status = db.Column(db.Enum(OrderStatus), default=OrderStatus.pending, nullable=False)
    currency = db.Column(db.String(3), default="CHF", nullable=False)

    items = db.relationship("OrderItem", back_populates="order",
                            cascade="all, delete-orphan", order_by="OrderItem.id")

    def __repr__(self):
        return f"<Order {self.id} customer={self.customer_id} {self.status.name}>"


class OrderItem(UtcTimestampMixin, db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    product_family = db.Column(db.Enum(ProductFamily), nullable=False)
    series_id = db.Column(db.Integer, nullable=True, index=True)
    assigned_child_id = db.Column(db.String(64), nullable=True, index=True)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    season = db.Column(db.String(80), nullable=True)
    series_term = db.Column(db.String(200), nullable=True)
    week_or_day_index = db.Column(db.Integer, nullable=True)
    course_weekday = db.Column(db.Integer, nullable=True)
    booking_type = db.Column(db.Enum(BookingType), nullable=True)

    order = db.relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.id} order={self.order_id} child={self.assigned_child_id}>"
