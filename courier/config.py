"""Configuration loaded from environment variables."""

import os


# Database
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "courier")

# Session tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Pagination
PAGINATION_DEFAULT_LIMIT = int(os.getenv("PAGINATION_DEFAULT_LIMIT", "20"))
PAGINATION_MAX_LIMIT = int(os.getenv("PAGINATION_MAX_LIMIT", "50"))

# Localization
SUPPORTED_LOCALES = [
    locale.strip()
    for locale in os.getenv("SUPPORTED_LOCALES", "en,fi,de,es,fr,ru,pt,it,nl").split(",")
    if locale.strip()
]
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "en")

# Unread message notifications, 0 disables the periodic job
UNREAD_NOTIFY_INTERVAL_SECONDS = int(os.getenv("UNREAD_NOTIFY_INTERVAL_SECONDS", "0"))
UNREAD_NOTIFY_DELAY_MINUTES = int(os.getenv("UNREAD_NOTIFY_DELAY_MINUTES", "10"))

# Optional integrations
REDIS_URL = os.getenv("REDIS_URL", "")
FCM_SERVICE_ACCOUNT_FILE = os.getenv("FCM_SERVICE_ACCOUNT_FILE", "")
FCM_PROJECT_ID = os.getenv("FCM_PROJECT_ID", "")
