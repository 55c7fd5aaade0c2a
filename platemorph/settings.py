# settings.py
from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

def _env_list(name, default=None):
    raw = os.getenv(name, "")
    vals = [x.strip() for x in raw.split(",") if x.strip()]
    return vals or (default or [])

def _env_bool(name, default="False"):
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")

# ─────────────────────────────────────────────────────────────
# Core
# ─────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv("SECRET_KEY", "platemorph-insecure-dev-key")
DEBUG = _env_bool("DEBUG")
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", ["*"])

APPEND_SLASH = False  # avoid 301/308 on OPTIONS preflight (CORS killer)

# ─────────────────────────────────────────────────────────────
# Apps
# ─────────────────────────────────────────────────────────────
INSTALLED_APPS = [
    "corsheaders",  # keep high
    "django.contrib.auth",
    "django.contrib.contenttypes",

    # your apps
    "plates",

    # third-party
    "rest_framework",
]

# ─────────────────────────────────────────────────────────────
# Middleware (CORS must be before CommonMiddleware)
# ─────────────────────────────────────────────────────────────
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "platemorph.api_urls"

WSGI_APPLICATION = "platemorph.wsgi.application"

# Nothing is persisted; auth/contenttypes only need somewhere to live.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ─────────────────────────────────────────────────────────────
# DRF
# ─────────────────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
}

# uploads are read into memory anyway
DATA_UPLOAD_MAX_MEMORY_SIZE = int(os.getenv("DATA_UPLOAD_MAX_MEMORY_SIZE", 20 * 1024 * 1024))
FILE_UPLOAD_MAX_MEMORY_SIZE = DATA_UPLOAD_MAX_MEMORY_SIZE

# ─────────────────────────────────────────────────────────────
# I18N / TZ
# ─────────────────────────────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ─────────────────────────────────────────────────────────────
# Cache (job progress lives here)
# ─────────────────────────────────────────────────────────────
# shared between web and worker processes
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": os.getenv("REDIS_CACHE_URL", "redis://redis:6379/1"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}

# ─────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "plates": {"handlers": ["console"], "level": os.getenv("PLATE_LOG_LEVEL", "INFO"), "propagate": False},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}

# ─────────────────────────────────────────────────────────────
# External
# ─────────────────────────────────────────────────────────────
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

# ─────────────────────────────────────────────────────────────
# App specific
# ─────────────────────────────────────────────────────────────
PLATE_VISION_BACKEND = os.getenv("PLATE_VISION_BACKEND", "openai")  # "openai" | "gemini"
PLATE_VISION_MODEL = os.getenv("PLATE_VISION_MODEL") or None        # backend default when unset
PLATE_IMAGE_MODEL = os.getenv("PLATE_IMAGE_MODEL", "gemini-2.5-flash-image")
PLATE_MAX_RETRIES = int(os.getenv("PLATE_MAX_RETRIES", 4))
PLATE_NORMALIZE_IMAGES = _env_bool("PLATE_NORMALIZE_IMAGES", "True")
PLATE_JOB_TTL = int(os.getenv("PLATE_JOB_TTL", 3600))
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ─────────────────────────────────────────────────────────────
# CORS (credentials-friendly + local IPs)
# ─────────────────────────────────────────────────────────────
# Exact origins via env (comma-separated), e.g.:
# CORS_ALLOWED_ORIGINS="http://localhost:3000,http://192.168.40.90:3000"
CORS_ALLOWED_ORIGINS = _env_list(
    "CORS_ALLOWED_ORIGINS",
    [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
)

# Also accept common local IP ranges & ports (3000/5173/8080/4200 etc)
CORS_ALLOWED_ORIGIN_REGEXES = [
    r"^https?://(?:localhost|127\.0\.0\.1)(?::\d+)?$",
    r"^https?://(?:10\.\d{1,3}\.\d{1,3}\.\d{1,3})(?::\d+)?$",
    r"^https?://(?:192\.168\.\d{1,3}\.\d{1,3})(?::\d+)?$",
    r"^https?://(?:172\.(?:1[6-9]|2\d|3[0-1])\.\d{1,3}\.\d{1,3})(?::\d+)?$",
]

CORS_EXPOSE_HEADERS = ["Content-Disposition", "X-Plate-Verified", "X-Plate-Attempts"]

CSRF_TRUSTED_ORIGINS = _env_list("CSRF_TRUSTED_ORIGINS", ["http://localhost:3000"])
