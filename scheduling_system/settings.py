"""
Django settings for the infrastructure scheduling project.

Values come from environment variables with development defaults. Settings
that admins may want to tune at runtime (guest limits, cancel cutoff) can also
be overridden per-key in the configmgr.SystemSetting table.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    # Project apps
    "booking",
    "notifications",
    "configmgr",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "scheduling_system.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# Database
# The lifecycle engine relies on row locks (select_for_update) for the claim
# race; use PostgreSQL or MySQL in production. SQLite is fine for dev/tests.
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DB_NAME", BASE_DIR / "db.sqlite3"),
        "USER": os.environ.get("DB_USER", ""),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", ""),
        "PORT": os.environ.get("DB_PORT", ""),
    }
}

if DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3":
    # Writers lock the database at BEGIN; concurrent claims wait on "timeout".
    DATABASES["default"]["OPTIONS"] = {"transaction_mode": "IMMEDIATE", "timeout": 20}
    DATABASES["default"]["TEST"] = {"NAME": BASE_DIR / "test_db.sqlite3"}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "Europe/Helsinki")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "media/"
MEDIA_ROOT = Path(os.environ.get("MEDIA_ROOT", BASE_DIR / "media"))

# Email
EMAIL_BACKEND = os.environ.get(
    "EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"
)
EMAIL_HOST = os.environ.get("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.environ.get("EMAIL_PORT", 25))
EMAIL_HOST_USER = os.environ.get("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.environ.get("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = os.environ.get("EMAIL_USE_TLS", "0") == "1"
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "no-reply@infra-booking.local")

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticatedOrReadOnly",
    ],
    "EXCEPTION_HANDLER": "booking.api_errors.booking_exception_handler",
}

# Celery (broker/result backend come from the environment)
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = os.environ.get("CELERY_TASK_ALWAYS_EAGER", "0") == "1"

# Booking rules (defaults; configmgr.SystemSetting rows override at runtime)
GUEST_MAX_BOOKINGS_PER_DAY = int(os.environ.get("GUEST_MAX_BOOKINGS_PER_DAY", 1))
USER_CANCEL_CUTOFF_HOURS = int(os.environ.get("USER_CANCEL_CUTOFF_HOURS", 24))
ACTION_TOKEN_TTL_HOURS = int(os.environ.get("ACTION_TOKEN_TTL_HOURS", 24))
STATUS_SWEEP_INTERVAL_SECONDS = int(os.environ.get("STATUS_SWEEP_INTERVAL_SECONDS", 300))

# Advance elapsed windows: approved -> completed, pending/available -> expired
CELERY_BEAT_SCHEDULE = {
    "sweep-window-statuses": {
        "task": "booking.sweep_statuses",
        "schedule": float(STATUS_SWEEP_INTERVAL_SECONDS),
        "options": {"expires": 240},
    },
}

BOOKING_UPLOAD_DIR = os.environ.get("BOOKING_UPLOAD_DIR", "booking_uploads")

FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
GUEST_CONFIRM_URL_TEMPLATE = os.environ.get(
    "GUEST_CONFIRM_URL_TEMPLATE", FRONTEND_URL + "/guest-confirm/{token}"
)
EMAIL_ACTION_URL_TEMPLATE = os.environ.get(
    "EMAIL_ACTION_URL_TEMPLATE", FRONTEND_URL + "/email-action/{action}/{token}"
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "[{asctime}] {levelname} {name}: {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "booking": {
            "handlers": ["console"],
            "level": os.environ.get("BOOKING_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "notifications": {
            "handlers": ["console"],
            "level": os.environ.get("BOOKING_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
