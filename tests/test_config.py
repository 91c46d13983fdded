import importlib
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from booking_engine.domain import ProductFamily
from booking_engine.services.discounts import DiscountSettings

ENV_KEYS = [
    "DISCOUNT_LOOKBACK_MONTHS",
    "RETROACTIVE_CAMPS_ENABLED",
    "RETROACTIVE_COURSES_ENABLED",
    "RETROACTIVE_TOURNAMENTS_ENABLED",
    "HISTORY_CACHE_TTL",
    "LOG_LEVEL",
]


@pytest.fixture
def reset_config_module(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    sys.modules.pop("config", None)
    yield
    sys.modules.pop("config", None)


def _reload_config():
    config_module = importlib.import_module("config")
    return importlib.reload(config_module)


@pytest.mark.usefixtures("reset_config_module")
def test_defaults():
    config_module = _reload_config()

    assert config_module.Config.DISCOUNT_LOOKBACK_MONTHS == 6
    assert config_module.Config.RETROACTIVE_CAMPS_ENABLED is True
    assert config_module.Config.HISTORY_CACHE_TTL == 0
    assert config_module.Config.CURRENCY == "CHF"
    assert config_module.Config.LOG_LEVEL == "INFO"


@pytest.mark.usefixtures("reset_config_module")
@pytest.mark.parametrize("raw, expected", [("48", 24), ("0", 1), ("3", 3), ("many", 6)])
def test_lookback_months_clamped(monkeypatch, raw, expected):
    monkeypatch.setenv("DISCOUNT_LOOKBACK_MONTHS", raw)

    config_module = _reload_config()

    assert config_module.Config.DISCOUNT_LOOKBACK_MONTHS == expected


@pytest.mark.usefixtures("reset_config_module")
def test_retroactive_toggles_from_environment(monkeypatch):
    monkeypatch.setenv("RETROACTIVE_CAMPS_ENABLED", "false")
    monkeypatch.setenv("RETROACTIVE_TOURNAMENTS_ENABLED", "no")
    monkeypatch.setenv("HISTORY_CACHE_TTL", "-5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config_module = _reload_config()
    settings = DiscountSettings.from_config(vars(config_module.Config))

    assert config_module.Config.HISTORY_CACHE_TTL == 0
    assert config_module.Config.LOG_LEVEL == "DEBUG"
    assert settings.retroactive_families == frozenset({ProductFamily.course})


def test_app_factory_registers_engines_and_commands():
    from booking_engine import create_app

    class TestConfig:
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
        LOG_LEVEL = "WARNING"
        DISCOUNT_LOOKBACK_MONTHS = 12
        HISTORY_CACHE_TTL = 30

    app = create_app(TestConfig)

    assert "pricing_engine" in app.extensions
    assert app.extensions["discount_engine_settings"].lookback_months == 12
    assert app.extensions["history_cache"].ttl == 30
    assert {"courses", "discounts"} <= set(app.cli.commands)
    assert app.logger.level == 30
