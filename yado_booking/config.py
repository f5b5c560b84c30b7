import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
]

# Reference zone for "today" and for backend timestamp -> calendar date conversion
TIMEZONE = os.getenv("TIMEZONE", "Asia/Tokyo")

# Pricing (amounts in the smallest unit of CURRENCY)
CURRENCY = os.getenv("CURRENCY", "JPY")
RATE_ONE_NIGHT = int(os.getenv("RATE_ONE_NIGHT", "18000"))
RATE_TWO_NIGHTS = int(os.getenv("RATE_TWO_NIGHTS", "15000"))
RATE_THREE_PLUS_NIGHTS = int(os.getenv("RATE_THREE_PLUS_NIGHTS", "12000"))
BASE_GUEST_COUNT = int(os.getenv("BASE_GUEST_COUNT", "2"))
ADDITIONAL_GUEST_RATE = int(os.getenv("ADDITIONAL_GUEST_RATE", "5000"))
MAX_GUESTS = int(os.getenv("MAX_GUESTS", "6"))

# Booking restrictions
RESTRICTION_POLICY = os.getenv("RESTRICTION_POLICY", "prior_month_cutoff").lower()
if RESTRICTION_POLICY not in ("prior_month_cutoff", "open"):
    raise ValueError("RESTRICTION_POLICY must be one of: prior_month_cutoff, open")

RESTRICTION_CUTOFF_DAY = int(os.getenv("RESTRICTION_CUTOFF_DAY", "20"))
if not 1 <= RESTRICTION_CUTOFF_DAY <= 28:
    raise ValueError("RESTRICTION_CUTOFF_DAY must be between 1 and 28")

RESTRICTED_MIN_NIGHTS = int(os.getenv("RESTRICTED_MIN_NIGHTS", "3"))

# Records backend (Lark Base)
LARK_API_BASE_URL = os.getenv("LARK_API_BASE_URL", "https://open.larksuite.com/open-apis/")
LARK_APP_ID = os.getenv("LARK_APP_ID", "")
LARK_APP_SECRET = os.getenv("LARK_APP_SECRET", "")
LARK_BASE_ID = os.getenv("LARK_BASE_ID", "")
LARK_RESERVATIONS_TABLE_ID = os.getenv("LARK_RESERVATIONS_TABLE_ID", "")
LARK_SPECIAL_RATES_TABLE_ID = os.getenv("LARK_SPECIAL_RATES_TABLE_ID", "")
LARK_PAYMENT_MASTERS_TABLE_ID = os.getenv("LARK_PAYMENT_MASTERS_TABLE_ID", "")

# Notifications
LARK_WEBHOOK_URL = os.getenv("LARK_WEBHOOK_URL", "")
EMAIL_API_URL = os.getenv("EMAIL_API_URL", "")
EMAIL_API_KEY = os.getenv("EMAIL_API_KEY", "")

# Payments (Square)
SQUARE_ACCESS_TOKEN = os.getenv("SQUARE_ACCESS_TOKEN", "")
SQUARE_LOCATION_ID = os.getenv("SQUARE_LOCATION_ID", "")
SQUARE_ENVIRONMENT = os.getenv("SQUARE_ENVIRONMENT", "production").lower()
SQUARE_API_VERSION = os.getenv("SQUARE_API_VERSION", "2024-01-18")
