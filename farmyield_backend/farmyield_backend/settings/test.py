from .base import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'
DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

WALLET_TOKEN_SIGNING_KEY = 'test-wallet-signing-key'

CELO_ENABLED = False
CHAIN_WEBHOOK_AUTH_TOKEN = 'test-webhook-token'
PUBLIC_BASE_URL = 'https://api.farmyield.test'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
