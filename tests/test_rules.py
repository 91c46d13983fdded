import sys
from decimal import Decimal
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from booking_engine import create_app
from booking_engine.domain import DiscountCondition, DiscountRule, ProductFamily
from booking_engine.errors import ConfigurationError, ErrorCode
from booking_engine.extensions import db
from booking_engine.models import DiscountRuleRecord
from booking_engine.services.messages import discount_note
from booking_engine.services.rules import (
    DEFAULT_RULES,
    DiscountRuleTable,
    load_rule_table,
    seed_default_rules,
    validate_rule,
)


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def _rule(rule_id, condition, rate, active=True, family=ProductFamily.camp):
    return DiscountRule(rule_id, family, condition, Decimal(rate), active=active)


def test_default_rates():
    table = DiscountRuleTable()

    def rate(family, condition):
        return table.rule_for(family, condition).rate_percent

    assert rate(ProductFamily.camp, DiscountCondition.second_child) == Decimal("20")
    assert rate(ProductFamily.camp, DiscountCondition.third_plus_child) == Decimal("25")
    assert rate(ProductFamily.camp, DiscountCondition.progressive_week_2) == Decimal("10")
    assert rate(ProductFamily.camp, DiscountCondition.progressive_week_3_plus) == Decimal("20")
    assert rate(ProductFamily.course, DiscountCondition.third_plus_child) == Decimal("30")
    assert rate(ProductFamily.course, DiscountCondition.same_season_course) == Decimal("50")
    assert rate(ProductFamily.tournament, DiscountCondition.same_child_multiple_days) == Decimal("33.33")
    assert table.active_rules(ProductFamily.birthday) == []


@pytest.mark.parametrize("rate", ["-5", "100", "150"])
def test_out_of_range_rate_is_a_configuration_error(rate):
    with pytest.raises(ConfigurationError) as excinfo:
        validate_rule(_rule("bad", DiscountCondition.second_child, rate))

    assert excinfo.value.code == ErrorCode.INVALID_DISCOUNT_RATE
    assert excinfo.value.rule_id == "bad"


def test_inactive_and_invalid_rules_are_skipped():
    table = DiscountRuleTable([
        _rule("off", DiscountCondition.second_child, "20", active=False),
        _rule("bad", DiscountCondition.third_plus_child, "100"),
        _rule("noop", DiscountCondition.none, "5"),
        _rule("ok", DiscountCondition.progressive_week_2, "10"),
    ])

    assert [r.id for r in table.active_rules(ProductFamily.camp)] == ["ok"]
    assert [r.id for r in table.invalid_rules()] == ["bad"]
    assert table.rule_for(ProductFamily.camp, DiscountCondition.second_child) is None


def test_seed_default_rules_is_idempotent(app):
    with app.app_context():
        created = seed_default_rules()
        db.session.commit()
        assert len(created) == len(DEFAULT_RULES)

        assert seed_default_rules() == []
        assert DiscountRuleRecord.query.count() == len(DEFAULT_RULES)


def test_stored_rules_replace_defaults_per_family(app):
    with app.app_context():
        db.session.add(DiscountRuleRecord(
            rule_id="course-2nd-child",
            name="Course Sibling Discount",
            product_family=ProductFamily.course,
            condition=DiscountCondition.second_child,
            rate_percent=Decimal("15.00"),
            is_active=True,
        ))
        db.session.commit()

        table = load_rule_table()

        assert table.rule_for(ProductFamily.course, DiscountCondition.second_child).rate_percent == Decimal("15.00")
        assert table.rule_for(ProductFamily.course, DiscountCondition.same_season_course) is None
        assert table.rule_for(ProductFamily.camp, DiscountCondition.second_child).rate_percent == Decimal("20")


def test_discount_cli_seeds_and_lists_rules(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["discounts", "seed-defaults"])
    assert f"Created {len(DEFAULT_RULES)} discount rule(s)." in result.output

    result = runner.invoke(args=["discounts", "seed-defaults"])
    assert "already exist" in result.output

    with app.app_context():
        record = DiscountRuleRecord.query.filter_by(rule_id="camp-2nd-child").first()
        record.rate_percent = Decimal("100")
        db.session.commit()

    result = runner.invoke(args=["discounts", "show"])
    assert result.exit_code == 0
    lines = {line.split()[0]: line for line in result.output.splitlines()}
    assert lines["camp-2nd-child"].endswith("invalid")
    assert lines["course-same-season"].endswith("active")


@pytest.mark.parametrize(
    "language, expected",
    [
        ("en", "33.33% Tournament Multiple Days Discount"),
        ("de", "33.33% Turnierrabatt für mehrere Tage"),
        ("it", "33.33% Tournament Multiple Days Discount"),
    ],
)
def test_discount_note_languages(language, expected):
    rule = next(r for r in DEFAULT_RULES if r.id == "tournament-same-child-multiple-days")

    assert discount_note(rule, language) == expected
