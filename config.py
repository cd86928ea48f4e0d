import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    mongodb_uri: Optional[str] = field(default_factory=lambda: os.getenv("MONGODB_URI"))
    db_name: str = field(default_factory=lambda: os.getenv("DB_NAME", "scholarLinkDB"))
    # base64-encoded service account JSON
    fb_service_key: Optional[str] = field(default_factory=lambda: os.getenv("FB_SERVICE_KEY"))
    stripe_secret_key: Optional[str] = field(default_factory=lambda: os.getenv("STRIPE_SECRET_KEY"))
    payment_currency: str = field(default_factory=lambda: os.getenv("PAYMENT_CURRENCY", "usd"))
    cors_origins: List[str] = field(default_factory=lambda: _split(os.getenv("CORS_ORIGINS", "*")))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "4000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
