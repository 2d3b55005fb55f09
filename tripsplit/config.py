import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; tripsplit/.env is a fallback for local overrides.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_origins_env(name: str) -> tuple[str, ...]:
    """Comma-separated origins, e.g. "https://trip.example.com,https://m.example.com"."""
    raw = _first_non_empty_env(name, default="")
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    JSON_SORT_KEYS: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")

    # Upper bounds for one snapshot. Realistic trips have tens of
    # participants and hundreds of expenses.
    MAX_PARTICIPANTS: int = _parse_int_env("MAX_PARTICIPANTS", default=200)
    MAX_EXPENSES:     int = _parse_int_env("MAX_EXPENSES", default=5000)

    # Used only outside DEBUG/TESTING. Empty means no CORS headers.
    CORS_ALLOWED_ORIGINS: tuple[str, ...] = _parse_origins_env("CORS_ALLOWED_ORIGINS")


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # Small limits so the PAYLOAD_TOO_LARGE path is cheap to exercise.
    MAX_PARTICIPANTS: int = 10
    MAX_EXPENSES:     int = 20


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="WARNING")


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if app.config.get("MAX_PARTICIPANTS", 0) < 1 or app.config.get("MAX_EXPENSES", 0) < 1:
        raise ValueError(
            "MAX_PARTICIPANTS and MAX_EXPENSES must be positive integers."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from tripsplit.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

