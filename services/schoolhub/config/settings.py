"""Django settings for SchoolHub.

Key idea:
- The browser portals (teacher, student, admin) are separate static clients.
- This service is their JSON backend under `/api/...`, authenticated with a
  signed bearer token issued at login.
- Every row that matters is scoped to one Organization (school/program).
"""

from pathlib import Path
import environ

BASE_DIR = Path(__file__).resolve().parent.parent
env = environ.Env(
    DJANGO_DEBUG=(bool, False),
)

DEBUG = env.bool("DJANGO_DEBUG", default=False)
SECRET_KEY = env("DJANGO_SECRET_KEY", default="dev-only-change-me")
ALLOWED_HOSTS = [h.strip() for h in env("DJANGO_ALLOWED_HOSTS", default="*").split(",") if h.strip()]

CSRF_TRUSTED_ORIGINS = []
_origins = env("CSRF_TRUSTED_ORIGINS", default="")
if _origins:
    CSRF_TRUSTED_ORIGINS = [o.strip() for o in _origins.split(",") if o.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "portal",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # Login/register throttling runs before any token work.
    "config.middleware.AuthRateLimitMiddleware",
    # Resolves `Authorization: Bearer` into request.api_user for /api/ paths.
    "portal.middleware.ApiTokenMiddleware",
    # Last, so it sees exceptions raised by views.
    "config.middleware.ApiErrorMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ]
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": env.db(default=f"sqlite:///{BASE_DIR/'db.sqlite3'}")
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/uploads/"
MEDIA_ROOT = Path(env("SCHOOLHUB_MEDIA_ROOT", default=str(BASE_DIR / "uploads")))
STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Resource uploads can be lesson videos; keep large bodies on disk, not in memory.
FILE_UPLOAD_MAX_MEMORY_SIZE = 5 * 1024 * 1024
DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024

# When behind a reverse proxy, Django should respect forwarded proto for secure cookies.
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG

REQUEST_SAFETY_TRUST_PROXY_HEADERS = env.bool("REQUEST_SAFETY_TRUST_PROXY_HEADERS", default=False)
REQUEST_SAFETY_XFF_INDEX = env.int("REQUEST_SAFETY_XFF_INDEX", default=0)

# API bearer tokens (see portal.services.api_tokens).
SCHOOLHUB_API_TOKEN_SIGNING_KEY = env("SCHOOLHUB_API_TOKEN_SIGNING_KEY", default="")
SCHOOLHUB_API_TOKEN_MAX_AGE_SECONDS = env.int("SCHOOLHUB_API_TOKEN_MAX_AGE_SECONDS", default=24 * 60 * 60)

# Accounts listed here may manage organizations even without the ADMIN role.
SCHOOLHUB_SUPERUSER_EMAILS = [
    e.strip().lower() for e in env("SCHOOLHUB_SUPERUSER_EMAILS", default="").split(",") if e.strip()
]
SCHOOLHUB_DEFAULT_ORG_CODE = env("SCHOOLHUB_DEFAULT_ORG_CODE", default="pbs")

SCHOOLHUB_RESOURCE_MAX_UPLOAD_MB = env.int("SCHOOLHUB_RESOURCE_MAX_UPLOAD_MB", default=100)
SCHOOLHUB_IMAGE_MAX_UPLOAD_MB = env.int("SCHOOLHUB_IMAGE_MAX_UPLOAD_MB", default=5)
SCHOOLHUB_ACTIVITY_RETENTION_DAYS = env.int("SCHOOLHUB_ACTIVITY_RETENTION_DAYS", default=0)

SCHOOLHUB_AUTH_RATE_LIMIT_WINDOW_SECONDS = env.int("SCHOOLHUB_AUTH_RATE_LIMIT_WINDOW_SECONDS", default=60)
SCHOOLHUB_LOGIN_RATE_LIMIT_PER_MINUTE = env.int("SCHOOLHUB_LOGIN_RATE_LIMIT_PER_MINUTE", default=20)
SCHOOLHUB_REGISTER_RATE_LIMIT_PER_MINUTE = env.int("SCHOOLHUB_REGISTER_RATE_LIMIT_PER_MINUTE", default=10)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {
        "handlers": ["console"],
        "level": env("DJANGO_LOG_LEVEL", default="INFO"),
    },
}
