import os


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


BASE_DIR = os.path.abspath(os.path.dirname(__file__))

MIN_LOOKBACK_MONTHS = 1
MAX_LOOKBACK_MONTHS = 24


class Config:
    SQLALCHEMY_DATABASE_URI = (
        os.environ.get("SQLALCHEMY_DATABASE_URI")
        or os.environ.get("DATABASE_URL")
        or "sqlite:///" + os.path.join(BASE_DIR, "booking.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Catálogo
    CURRENCY = os.environ.get("CURRENCY", "CHF")
    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "en")

    # Descuentos retroactivos
    DISCOUNT_LOOKBACK_MONTHS = _env_int("DISCOUNT_LOOKBACK_MONTHS", 6)
    RETROACTIVE_CAMPS_ENABLED = _env_bool("RETROACTIVE_CAMPS_ENABLED", True)
    RETROACTIVE_COURSES_ENABLED = _env_bool("RETROACTIVE_COURSES_ENABLED", True)
    RETROACTIVE_TOURNAMENTS_ENABLED = _env_bool("RETROACTIVE_TOURNAMENTS_ENABLED", True)
    # 0 = el caché de historial vive solo durante una pasada
    HISTORY_CACHE_TTL = _env_int("HISTORY_CACHE_TTL", 0)


Config.DISCOUNT_LOOKBACK_MONTHS = max(
    MIN_LOOKBACK_MONTHS, min(MAX_LOOKBACK_MONTHS, Config.DISCOUNT_LOOKBACK_MONTHS)
)
Config.HISTORY_CACHE_TTL = max(0, Config.HISTORY_CACHE_TTL)
