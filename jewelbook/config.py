# jewelbook/config.py
import logging
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent   # project root

DB_URL = os.getenv("JEWELBOOK_DB_URL", f"sqlite:///{BASE_DIR / 'jewelbook.db'}")

SECRET_KEY = os.getenv("JEWELBOOK_SECRET_KEY", "CHANGE_ME_SECRET")
ALGO = "HS256"
ACCESS_TOKEN_MIN = int(os.getenv("JEWELBOOK_TOKEN_MINUTES", str(60 * 24)))  # 1 day

CORS_ORIGINS = [
    o.strip() for o in os.getenv("JEWELBOOK_CORS_ORIGINS", "*").split(",") if o.strip()
]

LOG_LEVEL = os.getenv("JEWELBOOK_LOG_LEVEL", "INFO").upper()

# GST invoice numbers look like "HJ/24-25-1000"
GST_PREFIX = os.getenv("JEWELBOOK_GST_PREFIX", "HJ")

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = os.getenv("JEWELBOOK_ADMIN_PASSWORD", "admin123")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
