import os
from pathlib import Path

import environ

env = environ.Env(
    DEBUG=(bool, False),
    SECRET_KEY=(str, ""),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    SECURE_SSL_REDIRECT=(bool, False),
    CORS_ALLOWED_ORIGINS=(list, []),
    SURVEYTRACK_PUBLIC_HOST=(str, "www.surveysgalore.com"),
    SURVEYTRACK_PARAMETER_PREFIX=(str, "enc_"),
    SURVEYTRACK_PARAMETER_SECRET=(str, "survey_tracking_secret_key_2024"),
    SURVEYTRACK_AUDIT_LOG_LIMIT=(int, 1000),
    SURVEYTRACK_STORAGE_BACKEND=(
        str,
        "surveytrack_app.core.storage.DatabaseStorage",
    ),
)

BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"
if env_file.exists():
    environ.Env.read_env(env_file)

DEBUG = env("DEBUG")
SECRET_KEY = env("SECRET_KEY") or os.urandom(32)
ALLOWED_HOSTS = env("ALLOWED_HOSTS")

DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # Third party
    "corsheaders",
    "rest_framework",
    # Local apps
    "surveytrack_app.core",
    "surveytrack_app.surveys",
    "surveytrack_app.api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "surveytrack_app.urls"

WSGI_APPLICATION = "surveytrack_app.wsgi.application"

LANGUAGE_CODE = "en-gb"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Security headers
SECURE_HSTS_SECONDS = 31536000 if not DEBUG else 0
SECURE_HSTS_INCLUDE_SUBDOMAINS = not DEBUG
SECURE_SSL_REDIRECT = env("SECURE_SSL_REDIRECT")
X_FRAME_OPTIONS = "DENY"
SECURE_CONTENT_TYPE_NOSNIFF = True

# When running behind a reverse proxy, trust forwarded proto/host
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True

# Embedding sites call the respondent endpoints cross-origin
CORS_ALLOWED_ORIGINS = env("CORS_ALLOWED_ORIGINS")

# DRF defaults. There are no accounts: every endpoint is open and
# acting user ids come from the SURVEYTRACK_*_USER_ID settings below.
REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": "120/minute",
    },
}

# Disable throttling during tests to prevent rate limit errors
if os.environ.get("PYTEST_CURRENT_TEST"):
    REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []

# Survey tracking configuration
# Host of the canonical public survey URL (https://<host>/<SLUG>)
SURVEYTRACK_PUBLIC_HOST = env("SURVEYTRACK_PUBLIC_HOST")
# Parameter obfuscation. The secret ships with every deployment, so tagged
# values are reversible by anyone holding the code: this is not encryption.
SURVEYTRACK_PARAMETER_PREFIX = env("SURVEYTRACK_PARAMETER_PREFIX")
SURVEYTRACK_PARAMETER_SECRET = env("SURVEYTRACK_PARAMETER_SECRET")
# Number of most recent audit entries kept in storage
SURVEYTRACK_AUDIT_LOG_LIMIT = env("SURVEYTRACK_AUDIT_LOG_LIMIT")
# Dotted path of the CollectionStorage used when none is injected
SURVEYTRACK_STORAGE_BACKEND = env("SURVEYTRACK_STORAGE_BACKEND")
SURVEYTRACK_MANAGER_USER_ID = "current-user"
SURVEYTRACK_RESPONDENT_USER_ID = "anonymous-user"

# Logging Configuration
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {asctime} {name} {message}",
            "style": "{",
        },
        "simple": {
            "format": "[{levelname}] {message}",
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
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "surveytrack_app": {
            "handlers": ["console"],
            "level": "DEBUG" if DEBUG else "INFO",
            "propagate": False,
        },
    },
}
