"""Configuration utilities.

Central place to load environment driven settings (collection window, store backend, kiosk, email).
Avoids scattering os.getenv calls around the codebase.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .models import ROUTES, Route

# Load .env once on module import
load_dotenv()

# Maximum requests to the kiosk site at a time
MAXIMUM_REQUESTS = 30


@dataclass(slots=True)
class Settings:
    default_route: Route = ROUTES[os.getenv("DEFAULT_ROUTE", "to-moscow")]
    timespan: int = int(os.getenv("TIMESPAN", "60"))
    tickets_count_threshold: int = int(os.getenv("TICKETS_COUNT_THRESHOLD", "200"))

    store_backend: str = os.getenv("STORE_BACKEND", "pickle")
    data_dir: Path = Path(os.getenv("DATA_DIR", "data"))
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    mongodb_db: str = os.getenv("MONGODB_DB", "railkiosk")

    kiosk_url: str = os.getenv("KIOSK_URL", "https://ticket.rzd.ru/searchresults/v/1/{origin}/{destination}/{date}")
    kiosk_timeout_ms: int = int(os.getenv("KIOSK_TIMEOUT_MS", str(30 * 1000)))
    headless: bool = os.getenv("HEADLESS", "1") not in ("0", "false", "False")

    max_stay_days: int = int(os.getenv("MAX_STAY_DAYS", "3"))
    early_morning_until: int = int(os.getenv("EARLY_MORNING_UNTIL", "9"))

    src_mail: str | None = os.getenv("SRC_MAIL")
    src_pwd: str | None = os.getenv("SRC_PWD")
    dst_mail: str | None = os.getenv("DST_MAIL")
    output_html: Path = Path(os.getenv("OUTPUT_HTML", "roundtrip.html"))
    log_file: Path | None = Path(os.environ["LOG_FILE"]) if os.getenv("LOG_FILE") else None

    def email_configured(self) -> bool:
        return all([self.src_mail, self.src_pwd, self.dst_mail])


settings = Settings()
