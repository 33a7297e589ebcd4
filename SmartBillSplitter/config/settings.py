"""Configuration settings for the smart bill splitter."""
import os

from dotenv import load_dotenv

load_dotenv(override=False)

# Logging
LOG_LEVEL_ENV = "SMART_BILL_SPLITTER_LOG_LEVEL"

# Firebase
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")

BILLS_COLLECTION = "bills"
SHARES_COLLECTION = "temporary_shared_bills"

# Temporary share links
SHARE_EXPIRY_HOURS = int(os.getenv("SHARE_EXPIRY_HOURS", "24"))

# Statistics
MONTH_WINDOW = 6
TOP_CATEGORY_LIMIT = 6
POPULAR_CATEGORY_LIMIT = 5
DEFAULT_CATEGORY = "other"

# Display
DEFAULT_BILL_TITLE = "Untitled bill"
NO_DATA_LABEL = "No data"
CURRENCY_SYMBOL = "฿"
