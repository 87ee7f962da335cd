"""Django settings for the donation market core.

Values come from environment variables with development defaults. Domain
modules never read settings; the ``providers`` module of each app does,
through ``getattr(settings, NAME, default)``.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent  # .../web


def _bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-not-secret")
DEBUG = _bool("DJANGO_DEBUG", "0")
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.members",
    "apps.notifications",
    "apps.tokens",
    "apps.inventory",
    "apps.orders",
    "apps.token_requests",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

# ---- Database ----
# SQLite for local runs and tests; Postgres in deployment (``postgres`` extra).
if os.getenv("DB_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "HOST": os.getenv("DB_HOST"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "NAME": os.getenv("DB_NAME", "market"),
            "USER": os.getenv("DB_USER", "market_user"),
            "PASSWORD": os.getenv("DB_PASSWORD", "market-pass"),
            "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

# ---- REST framework ----
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": ["apps.common.api.GatewayHeaderAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["apps.common.api.IsMember"],
    "DEFAULT_THROTTLE_RATES": {
        "orders_list": os.getenv("THROTTLE_ORDERS_LIST", "120/min"),
        "orders_create": os.getenv("THROTTLE_ORDERS_CREATE", "30/min"),
        "orders_detail": os.getenv("THROTTLE_ORDERS_DETAIL", "240/min"),
    },
}

API_MAX_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))

# ---- Market rules ----
TOKEN_WEEKLY_QUOTA = int(os.getenv("TOKEN_WEEKLY_QUOTA", "3"))
MARKET_MAX_ITEMS_PER_ORDER = int(os.getenv("MARKET_MAX_ITEMS_PER_ORDER", "3"))
TOKEN_REQUEST_MAX = int(os.getenv("TOKEN_REQUEST_MAX", "5"))
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

MARKET_PICKUP_TIMEZONE = os.getenv("MARKET_PICKUP_TIMEZONE", "UTC")
MARKET_PICKUP_OPEN_HOUR = int(os.getenv("MARKET_PICKUP_OPEN_HOUR", "9"))
MARKET_PICKUP_CLOSE_HOUR = int(os.getenv("MARKET_PICKUP_CLOSE_HOUR", "16"))
MARKET_PICKUP_SLOT_MINUTES = int(os.getenv("MARKET_PICKUP_SLOT_MINUTES", "10"))
MARKET_PICKUP_DAYS_AHEAD = int(os.getenv("MARKET_PICKUP_DAYS_AHEAD", "5"))

# ---- Ledger conditional-write retry ----
LEDGER_RETRY_MAX = int(os.getenv("LEDGER_RETRY_MAX", "5"))
LEDGER_RETRY_BACKOFF_BASE = float(os.getenv("LEDGER_RETRY_BACKOFF_BASE", "0.02"))
LEDGER_RETRY_MAX_SLEEP = float(os.getenv("LEDGER_RETRY_MAX_SLEEP", "0.5"))

# ---- Notification push (optional; polling is the primary contract) ----
USE_HTTP_DELIVERY = _bool("USE_HTTP_DELIVERY", "0")
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "2.0"))
HTTP_RETRY_MAX = int(os.getenv("HTTP_RETRY_MAX", "3"))
HTTP_RETRY_BACKOFF_BASE = float(os.getenv("HTTP_RETRY_BACKOFF_BASE", "0.15"))
HTTP_RETRY_MAX_SLEEP = float(os.getenv("HTTP_RETRY_MAX_SLEEP", "0.5"))
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30"))

# ---- Logging ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(user_id)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        name: {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False}
        for name in ("orders", "inventory", "tokens", "token_requests", "notifications", "members", "ledger")
    },
}
