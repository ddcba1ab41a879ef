# colony_backend/config.py
# Environment-aware configuration for the colony inventory backend

import os
from typing import Literal

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT configuration
SECRET_KEY = os.environ.get("SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_MINUTES = int(os.environ.get("ACCESS_TOKEN_MINUTES", str(60 * 24)))

# Database configuration (relative paths resolve beside this package)
DATABASE_PATH = os.environ.get("DATABASE_PATH", "colony.db")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if IS_DEV else "INFO").upper()

# Pagination
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

DEFAULT_COUNTRY = "India"

# CORS origins (admin panel + user app in dev, expand for staging/prod)
CORS_ORIGINS = [
    os.environ.get("FRONTEND_URL", "http://localhost:5173"),
    os.environ.get("USER_APP_URL", "http://localhost:5174"),
    "http://localhost:3000",
]

if IS_STAGING or IS_PROD:
    extra_origins = os.environ.get("CORS_ORIGINS", "")
    if extra_origins:
        CORS_ORIGINS.extend(o.strip() for o in extra_origins.split(",") if o.strip())

# Served as-is by GET /api/v1/settings
COMPANY_SETTINGS = {
    "company": {
        "name": os.environ.get("COMPANY_NAME", "Jayshri Group"),
        "email": os.environ.get("COMPANY_EMAIL", "admin@jayshree.com"),
        "phone": "+91 9876543210",
        "address": "Jayshri Group Office, City, State",
        "website": "https://jayshrigroup.com",
    },
    "features": {
        "enableNotifications": True,
        "enableCommissions": True,
        "enableRegistry": True,
        "enableReports": True,
    },
    "defaults": {
        "currency": "INR",
        "dateFormat": "DD/MM/YYYY",
        "timezone": "Asia/Kolkata",
    },
}
