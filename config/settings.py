from datetime import timedelta
from pathlib import Path
import os
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
APPEND_SLASH = True

ALLOWED_HOSTS = ["*", "localhost", "127.0.0.1"]

TENANT_PROVISIONING_TOKEN = os.getenv("TENANT_PROVISIONING_TOKEN", "")
ADMIN_PROVISIONING_TOKEN = os.getenv("ADMIN_PROVISIONING_TOKEN", "")


INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",

    "rest_framework",
    "drf_spectacular",
    "corsheaders",

    "commons",     # health endpoints, middlewares, envelope de resposta
    "tenants",     # tenants + vínculo usuário/tenant
    "financeiro",  # clientes e faturas
    "fiscal",      # NF-e
]


MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "commons.middleware.RequestLogMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "commons.middleware.TenantHeaderMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

CORS_ALLOW_ALL_ORIGINS = True

if os.getenv("PGDATABASE"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("PGDATABASE"),
            "USER": os.getenv("PGUSER", "postgres"),
            "PASSWORD": os.getenv("PGPASSWORD", ""),
            "HOST": os.getenv("PGHOST", "127.0.0.1"),
            "PORT": os.getenv("PGPORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
            "TEST": {
                "NAME": "test_" + os.getenv("PGDATABASE"),
            },
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

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "commons.exceptions.envelope_exception_handler",
    "DEFAULT_THROTTLE_CLASSES": ["rest_framework.throttling.UserRateThrottle"],
    "DEFAULT_THROTTLE_RATES": {
        "user": os.getenv("API_THROTTLE_USER", "1000/hour"),
    },
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "SIGNING_KEY": SECRET_KEY,
    "AUTH_HEADER_TYPES": ("Bearer",),
}

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"

SPECTACULAR_SETTINGS = {
    "TITLE": "Vet Fiscal API",
    "VERSION": "1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

sentry_sdk.init(
    dsn=os.getenv("SENTRY_DSN", ""),
    integrations=[DjangoIntegration()],
    traces_sample_rate=0.1,
    send_default_pii=False,
)

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
            ],
        },
    },
]

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "vet-default",
    }
}

# =============================
# NF-e
# =============================
NFE_JANELA_CANCELAMENTO_HORAS = int(os.getenv("NFE_JANELA_CANCELAMENTO_HORAS", "24"))
NFE_MOTIVO_MINIMO = int(os.getenv("NFE_MOTIVO_MINIMO", "15"))
NFE_MAX_TENTATIVAS = int(os.getenv("NFE_MAX_TENTATIVAS", "10"))
NFE_PROCESSANDO_EXPIRA_SEGUNDOS = int(os.getenv("NFE_PROCESSANDO_EXPIRA_SEGUNDOS", "300"))
NFE_SEFAZ_TIMEOUT_SEGUNDOS = float(os.getenv("NFE_SEFAZ_TIMEOUT_SEGUNDOS", "30"))
# autorizar | rejeitar | indisponivel (apenas homologação)
NFE_SIMULADOR_MODO = os.getenv("NFE_SIMULADOR_MODO", "autorizar")
NFE_CERTIFICATE_VALIDATOR = os.getenv(
    "NFE_CERTIFICATE_VALIDATOR",
    "fiscal.certificado.Pkcs12CertificateValidator",
)
# chave usada para cifrar a senha do certificado (padrão: SECRET_KEY)
NFE_CERTIFICADO_SECRET = os.getenv("NFE_CERTIFICADO_SECRET", "")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.json.JsonFormatter",
        },
        "simple": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "level": "INFO",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "vet.fiscal": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": True,
        },
        "vet.tenants": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "vet.financeiro": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
    },
}

if not DEBUG:
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = 63072000
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
