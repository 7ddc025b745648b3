"""
Django settings for the evidence management backend.

Deployment values are read and validated by ``backend.env.EnvSettings``
(Pydantic Settings).  Outside DEBUG a ``DJANGO_SECRET_KEY`` is required;
the test suite runs on ``backend.settings_test``, which supplies one.
"""

from datetime import timedelta
from pathlib import Path

from .env import env

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = env.DJANGO_SECRET_KEY

DEBUG = env.DJANGO_DEBUG

ALLOWED_HOSTS = env.allowed_hosts


# ── Applications ─────────────────────────────────────────────────────

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",

    # Local apps
    "core",
    "accounts",
    "cases",
    "evidence",
    "comments",
    "audit",
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
# PostgreSQL when POSTGRES_DB is set, SQLite otherwise.

if env.POSTGRES_DB:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": env.POSTGRES_DB,
            "USER": env.POSTGRES_USER,
            "PASSWORD": env.POSTGRES_PASSWORD,
            "HOST": env.POSTGRES_HOST,
            "PORT": env.POSTGRES_PORT,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ── Authentication ───────────────────────────────────────────────────

AUTH_USER_MODEL = "accounts.User"

AUTHENTICATION_BACKENDS = [
    "accounts.backends.UsernameOrEmailBackend",
]

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# ── Internationalisation ─────────────────────────────────────────────

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# ── Django REST Framework ────────────────────────────────────────────

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=env.JWT_ACCESS_MINUTES),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=env.JWT_REFRESH_DAYS),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Evidence Management API",
    "DESCRIPTION": (
        "Cases, evidence, comments and tags behind a single access policy, "
        "with an append-only audit trail and a hash-chained custody ledger."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
}


# ── Access policy & audit trail ──────────────────────────────────────

ACCESS_POLICY = {
    # True: a denied resource is reported as 404 unless the requester may
    # at least view it.  False: denials are always 403.
    "HIDE_EXISTENCE": env.ACCESS_POLICY_HIDE_EXISTENCE,
    # Number of reverse proxies whose X-Forwarded-For entries are trusted
    # for the audited client address.  0: use REMOTE_ADDR only.
    "TRUSTED_PROXY_COUNT": env.ACCESS_POLICY_TRUSTED_PROXY_COUNT,
}

AUDIT_TRAIL = {
    "DETAIL_TEXT_LIMIT": env.AUDIT_DETAIL_TEXT_LIMIT,
    "DETAIL_MAX_KEYS": 32,
    "DETAIL_MAX_DEPTH": 4,
    "LIST_DEFAULT_LIMIT": 50,
    "LIST_MAX_LIMIT": 500,
}


# ── Logging ──────────────────────────────────────────────────────────

LOG_LEVEL = env.LOG_LEVEL

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        **{
            app: {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False}
            for app in ("core", "accounts", "cases", "evidence", "comments", "audit")
        },
    },
}
