"""
Root pytest configuration.

Sets environment defaults before Django settings are imported so the
test run needs no .env file, Redis or Postgres. Project fixtures live in
app/conftest.py and each app's tests/conftest.py.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
os.environ.setdefault("SESSION_COOKIE_SECURE", "False")
os.environ.setdefault("CSRF_COOKIE_SECURE", "False")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "True")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_fake")
os.environ.setdefault("PLATFORM_FEE_PERCENT", "5.00")
os.environ.setdefault("MANAGEMENT_FEE_PERCENT", "0.00")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_DIR", "/tmp/rental-platform-test-logs")
os.environ.setdefault("ENV_FILE", "/nonexistent/.env.test")
