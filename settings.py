import json
import os
from typing import Optional

PORT = int(os.getenv("PORT", 5000))
FRONTEND_URL = os.getenv("FRONTEND_URL")
DEPLOYMENT_URL = "https://e-srent-yphpzl7d9-esrentals-projects.vercel.app"

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "carrental")

ENVIRONMENT = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "production"))
DEBUG = ENVIRONMENT == "development"

# Staff email suffixes accepted by the per-router admin guards
CARS_ADMIN_DOMAIN = os.getenv("CARS_ADMIN_DOMAIN", "@autoluxe.com")
CATEGORIES_ADMIN_DOMAIN = os.getenv("CATEGORIES_ADMIN_DOMAIN", "@esrent.ae")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", 30))
ANALYTICS_TIMEOUT_SECONDS = float(os.getenv("ANALYTICS_TIMEOUT_SECONDS", 30))

IDENTITY_CREDENTIALS_FILE = os.getenv("IDENTITY_CREDENTIALS_FILE", "serviceAccountKey.json")


def load_identity_credentials() -> Optional[dict]:
    """Credential material for the identity verifier.

    Inline JSON in IDENTITY_CREDENTIALS_JSON (or FIREBASE_SERVICE_ACCOUNT_JSON)
    wins; otherwise the local key file is read if present. Returns None
    when neither is available.
    """
    inline = os.getenv("IDENTITY_CREDENTIALS_JSON") or os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON")
    if inline:
        return json.loads(inline)
    if os.path.exists(IDENTITY_CREDENTIALS_FILE):
        with open(IDENTITY_CREDENTIALS_FILE) as fh:
            return json.load(fh)
    return None
