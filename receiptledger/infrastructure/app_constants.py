APP_NAME = "Receipt Ledger"
APP_VERSION = "1.4.0"
APP_TITLE = f"{APP_NAME} v{APP_VERSION}"

# Keep QSettings identifiers consistent to avoid breaking existing settings.
SETTINGS_ORG = "ReceiptLedger"
SETTINGS_APP = "ReceiptLedgerApp"

# Default paths
DB_PATH = "database/receipts.db"
LOG_DIR = "logs"
