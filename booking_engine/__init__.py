from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, current_app, has_app_context

from .extensions import db, migrate
from .signals import attribute_changed
from .services.cache import HistoryCache
from .services.discounts import DiscountEngine, DiscountSettings
from .services.history import SqlOrderHistoryQuery
from .services.locale import SqlLocaleResolver
from .services.pricing import PricingEngine
from .services.rules import load_rule_table

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env", override=False)
load_dotenv(BASE_DIR / "instance" / ".env", override=False)


def create_app(config_class="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_class)
    # Los loggers de los servicios (booking_engine.*) propagan a app.logger
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Inicializar extensiones
    db.init_app(app)
    migrate.init_app(app, db)

    _register_engines(app)

    # Comandos de mantenimiento
    from . import cli
    cli.register(app)

    return app


def _register_engines(app: Flask) -> None:
    pricing_engine = PricingEngine(locale_resolver=SqlLocaleResolver())

    def invalidate_prices(entity_id, **kwargs):
        # solo cambios hechos dentro de esta app
        if has_app_context() and current_app.extensions.get("pricing_engine") is pricing_engine:
            pricing_engine.on_attribute_changed(entity_id, **kwargs)

    # Referencia débil: el receptor vive mientras viva la app
    attribute_changed.connect(invalidate_prices)
    app.extensions["pricing_engine"] = pricing_engine
    app.extensions["pricing_invalidator"] = invalidate_prices

    settings = DiscountSettings.from_config(app.config)
    history_cache = None
    if settings.history_cache_ttl:
        history_cache = HistoryCache(ttl=settings.history_cache_ttl)
    app.extensions["discount_engine_settings"] = settings
    app.extensions["history_cache"] = history_cache


def get_pricing_engine(app: Flask) -> PricingEngine:
    return app.extensions["pricing_engine"]


def get_discount_engine(app: Flask) -> DiscountEngine:
    """Motor de descuentos con las reglas vigentes en la base (requiere app context)."""
    return DiscountEngine(
        rule_table=load_rule_table(),
        history=SqlOrderHistoryQuery(),
        settings=app.extensions["discount_engine_settings"],
        history_cache=app.extensions["history_cache"],
    )
