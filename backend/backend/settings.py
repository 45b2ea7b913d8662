"""
Django settings for the civic complaint intake backend.

Every deploy-specific value is read from the process environment with a
development-friendly default, so a bare checkout runs against SQLite with
dry-run email delivery.
"""

import os
from datetime import timedelta
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in {"1", "true", "yes"}


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS") or ["localhost", "127.0.0.1", "testserver"]


# ── Applications ─────────────────────────────────────────────────────

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    # Local apps
    "core",
    "accounts",
    "complaints.apps.ComplaintsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"

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

WSGI_APPLICATION = "backend.wsgi.application"


# ── Database ─────────────────────────────────────────────────────────
# SQLite for local development; set DB_ENGINE=postgresql (plus DB_* vars)
# for a managed database.

if os.getenv("DB_ENGINE", "sqlite") == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DB_NAME", "civic"),
            "USER": os.getenv("DB_USER", "civic"),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", "localhost"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", 60)),
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


# ── Authentication ───────────────────────────────────────────────────

AUTH_USER_MODEL = "accounts.User"

AUTHENTICATION_BACKENDS = [
    "accounts.backends.UsernameOrEmailBackend",
    "django.contrib.auth.backends.ModelBackend",
]

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# ── Internationalisation ─────────────────────────────────────────────

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# ── Django REST Framework ────────────────────────────────────────────

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.getenv("JWT_ACCESS_MINUTES", 60))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv("JWT_REFRESH_DAYS", 7))),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Civic Complaint Intake API",
    "DESCRIPTION": "Citizen complaint submission, admin triage, worker reports and verification.",
    "VERSION": "0.1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# ── Email ────────────────────────────────────────────────────────────

EMAIL_HOST = os.getenv("SMTP_HOST", "")
EMAIL_PORT = int(os.getenv("SMTP_PORT", 587))
EMAIL_HOST_USER = os.getenv("SMTP_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("SMTP_PASS", "")
EMAIL_USE_SSL = _env_bool("SMTP_SECURE", False)
EMAIL_USE_TLS = not EMAIL_USE_SSL and _env_bool("SMTP_STARTTLS", True)
EMAIL_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", 10))
DEFAULT_FROM_EMAIL = os.getenv("MAIL_FROM", "Pune Pulse <noreply@punepulse.dev>")
EMAIL_BACKEND = os.getenv(
    "EMAIL_BACKEND",
    "django.core.mail.backends.smtp.EmailBackend",
)

NOTIFICATIONS = {
    # No SMTP host configured means nothing could be delivered anyway.
    "DRY_RUN": _env_bool("DRY_RUN_EMAIL", False) or not EMAIL_HOST,
    "ASYNC": _env_bool("NOTIFICATIONS_ASYNC", True),
    "MAX_WORKERS": int(os.getenv("NOTIFICATION_WORKERS", 4)),
    "ADMIN_RECIPIENTS": _env_list("ADMIN_NOTIFICATION_EMAILS"),
    "REPLY_TO": os.getenv("MAIL_REPLY_TO", "noreply@punepulse.dev"),
    "APP_URL": os.getenv("APP_PUBLIC_URL", "http://localhost:3000"),
}


# ── Blob storage ─────────────────────────────────────────────────────

STORAGE = {
    "BUCKET": os.getenv("STORAGE_BUCKET", "complaint-attachments"),
    "BASE_URL": os.getenv("STORAGE_BASE_URL", "http://localhost:8000/storage"),
    "UPLOAD_URL_TTL_SECONDS": int(os.getenv("UPLOAD_URL_TTL_SECONDS", 300)),
    "SIGNED_URL_TTL_SECONDS": int(os.getenv("SIGNED_URL_TTL_SECONDS", 3600)),
}


# ── Complaint lifecycle ──────────────────────────────────────────────

COMPLAINTS = {
    "TRACKING_TOKEN_PREFIX": os.getenv("TRACKING_TOKEN_PREFIX", "PMC"),
    "TRACKING_TOKEN_LENGTH": 6,
    "REQUIRE_REPORT_CONTENT": _env_bool("REQUIRE_REPORT_CONTENT", True),
    "DEFAULT_PAGE_SIZE": 50,
    "MAX_PAGE_SIZE": 200,
}


# ── Logging ──────────────────────────────────────────────────────────

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "core": {"level": LOG_LEVEL},
        "accounts": {"level": LOG_LEVEL},
        "complaints": {"level": LOG_LEVEL},
    },
}
