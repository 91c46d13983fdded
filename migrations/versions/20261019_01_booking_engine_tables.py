"""create course attribute, translation, discount rule and order tables

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None

PRODUCT_FAMILY = sa.Enum("camp", "course", "tournament", "birthday", name="productfamily")
DISCOUNT_CONDITION = sa.Enum(
    "second_child",
    "third_plus_child",
    "same_season_course",
    "progressive_week_2",
    "progressive_week_3_plus",
    "same_child_multiple_days",
    "none",
    name="discountcondition",
)
ORDER_STATUS = sa.Enum(
    "pending", "processing", "completed", "canceled", "refunded", name="orderstatus"
)
BOOKING_TYPE = sa.Enum("full_week", "single_day", name="bookingtype")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "course_attributes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("value_json", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("entity_id", "key", name="uq_course_attribute_entity_key"),
    )
    op.create_index("ix_course_attributes_entity_id", "course_attributes", ["entity_id"])
    op.create_index("ix_course_attributes_created_at", "course_attributes", ["created_at"])

    op.create_table(
        "product_translations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("canonical_id", sa.Integer(), nullable=False),
        sa.Column("language", sa.String(length=8), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_product_translations_entity_id", "product_translations",
                    ["entity_id"], unique=True)
    op.create_index("ix_product_translations_canonical_id", "product_translations",
                    ["canonical_id"])
    op.create_index("ix_product_translations_created_at", "product_translations", ["created_at"])

    op.create_table(
        "discount_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rule_id", sa.String(length=80), nullable=False, unique=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("product_family", PRODUCT_FAMILY, nullable=False),
        sa.Column("condition", DISCOUNT_CONDITION, nullable=False),
        sa.Column("rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_discount_rules_product_family", "discount_rules", ["product_family"])
    op.create_index("ix_discount_rules_created_at", "discount_rules", ["created_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(),
                  sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_family", PRODUCT_FAMILY, nullable=False),
        sa.Column("series_id", sa.Integer(), nullable=True),
        sa.Column("assigned_child_id", sa.String(length=64), nullable=True),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("season", sa.String(length=80), nullable=True),
        sa.Column("series_term", sa.String(length=200), nullable=True),
        sa.Column("week_or_day_index", sa.Integer(), nullable=True),
        sa.Column("course_weekday", sa.Integer(), nullable=True),
        sa.Column("booking_type", BOOKING_TYPE, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_series_id", "order_items", ["series_id"])
    op.create_index("ix_order_items_assigned_child_id", "order_items", ["assigned_child_id"])
    op.create_index("ix_order_items_created_at", "order_items", ["created_at"])


def downgrade() -> None:
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("discount_rules")
    op.drop_table("product_translations")
    op.drop_table("course_attributes")
    bind = op.get_bind()
    for enum_type in (BOOKING_TYPE, ORDER_STATUS, DISCOUNT_CONDITION, PRODUCT_FAMILY):
        enum_type.drop(bind, checkfirst=True)
