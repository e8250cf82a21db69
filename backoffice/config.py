from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv
import os

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")  # .env можно не создавать: возьмутся дефолты

APP_NAME = "WebDaddy Backoffice"
ENV = os.getenv("ENV", "local")

# SQLite-файл рядом с проектом, в проде: postgresql+psycopg2://...
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{(BASE_DIR / 'backoffice.db').as_posix()}"
)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SITE_NAME = os.getenv("SITE_NAME", "WebDaddy Empire")
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₦")

# === Партнёрка ===
# доля партнёра от суммы оплаты и скидка покупателю по партнёрскому коду
AFFILIATE_COMMISSION_RATE = Decimal(os.getenv("AFFILIATE_COMMISSION_RATE", "0.30"))
CUSTOMER_DISCOUNT_RATE = Decimal(os.getenv("CUSTOMER_DISCOUNT_RATE", "0.20"))

# === Почта (HTTP API в стиле Resend) ===
MAIL_API_URL = os.getenv("MAIL_API_URL", "https://api.resend.com/emails")
MAIL_API_KEY = os.getenv("MAIL_API_KEY", "")
MAIL_FROM = os.getenv("MAIL_FROM", "WebDaddy Empire <noreply@example.com>")
MAIL_TIMEOUT = float(os.getenv("MAIL_TIMEOUT", "10"))
