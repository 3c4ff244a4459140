"""Settings used by the test suite.

Secrets get throwaway values here so the main settings module can keep
failing fast when they are missing in real deployments.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-only-insecure-secret-key")

from config.settings import *  # noqa: E402,F401,F403

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

PAYMENT_GATEWAY_URL = "https://payments.test"
PAYMENT_GATEWAY_API_KEY = "test-gateway-key"
ANALYTICS_EVENTS_URL = "https://analytics.test/events"
