from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"
TESTING = True
DEBUG = False

SQLALCHEMY_DATABASE_URI = "sqlite://"

PAYSTACK_SECRET_KEY = "sk_test_secret"
CRON_SECRET = "cron-secret"
MAIL_SERVER = ""

AUTO_INIT_DB = True
AUTO_SEED_DB = False

RATE_LIMIT_ENABLED = True
RATE_LIMIT_GENERAL = "1000/900"
RATE_LIMIT_AUTH = "5/900"
RATE_LIMIT_PAYMENT = "3/60"

LOG_LEVEL = "WARNING"
