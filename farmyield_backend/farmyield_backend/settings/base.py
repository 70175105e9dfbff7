"""
Base settings for the FarmYield backend.

Everything environment-specific is read from environment variables so the
same module serves local development, workers and production.
"""

import os
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-insecure-change-me')
DEBUG = _env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'django_filters',

    # Local apps
    'apps.accounts',
    'apps.reports',
    'apps.transactions',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'farmyield_backend.urls'
WSGI_APPLICATION = 'farmyield_backend.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DB_USER', ''),
        'PASSWORD': os.environ.get('DB_PASSWORD', ''),
        'HOST': os.environ.get('DB_HOST', ''),
        'PORT': os.environ.get('DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# ---------------------------------------------------------------------------
# REST framework
# ---------------------------------------------------------------------------
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.accounts.authentication.WalletAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'UNAUTHENTICATED_USER': None,
}

# Wallet tokens (HS256, wallet_address claim)
WALLET_TOKEN_LIFETIME = timedelta(days=int(os.environ.get('WALLET_TOKEN_LIFETIME_DAYS', '7')))
WALLET_TOKEN_SIGNING_KEY = os.environ.get('JWT_SECRET', SECRET_KEY)

# ---------------------------------------------------------------------------
# Celery
# ---------------------------------------------------------------------------
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', False)

# ---------------------------------------------------------------------------
# Verification & settlement
# ---------------------------------------------------------------------------
VERIFICATION_APPROVE_THRESHOLD = int(os.environ.get('VERIFICATION_APPROVE_THRESHOLD', '3'))
VERIFICATION_REJECT_THRESHOLD = int(os.environ.get('VERIFICATION_REJECT_THRESHOLD', '3'))
VERIFICATION_REJECTION_REASON = 'Community rejected'
VOTE_CONFLICT_MAX_RETRIES = int(os.environ.get('VOTE_CONFLICT_MAX_RETRIES', '5'))

VERIFICATION_REWARD_AMOUNT = Decimal(os.environ.get('VERIFICATION_REWARD_AMOUNT', '0.01'))
SETTLEMENT_TIMEOUT_SECONDS = int(os.environ.get('SETTLEMENT_TIMEOUT_SECONDS', '30'))

BADGE_VERIFIED_THRESHOLD = 10
BADGE_TOP_CONTRIBUTOR_THRESHOLD = 25

PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://localhost:8000')
IPFS_GATEWAY_URL = os.environ.get('IPFS_GATEWAY_URL', 'https://nftstorage.link/ipfs/')

# ---------------------------------------------------------------------------
# Chain collaborator
# ---------------------------------------------------------------------------
CHAIN_BACKEND = os.environ.get('CHAIN_BACKEND', 'integrations.celo.blockchain.CeloBlockchain')
CELO_ENABLED = _env_bool('CELO_ENABLED', False)
CELO_RPC_URL = os.environ.get('CELO_RPC_URL', 'https://alfajores-forno.celo-testnet.org')
CELO_PRIVATE_KEY = os.environ.get('CELO_PRIVATE_KEY')
CELO_NFT_CONTRACT = os.environ.get('CELO_NFT_CONTRACT')
CELO_CHAIN_ID = int(os.environ.get('CELO_CHAIN_ID', '44787'))
BADGE_METADATA_BASE_URL = os.environ.get('BADGE_METADATA_BASE_URL', 'https://farmyield.app/badges/')

CHAIN_WEBHOOK_AUTH_TOKEN = os.environ.get('CHAIN_WEBHOOK_AUTH_TOKEN', '')
CHAIN_BASE_UNITS_PER_TOKEN = 10 ** 9

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'farmyield': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'farmyield',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': os.environ.get('APP_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'integrations': {
            'handlers': ['console'],
            'level': os.environ.get('APP_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
