import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/agrotrace_db")

# Application Metadata
PROJECT_NAME = "AgroTrace Supply Chain"
VERSION = "1.0.0"

# Outbox Poller Configuration
POLLING_INTERVAL = int(os.getenv("POLLING_INTERVAL", 1)) # Poller checks for new events every N seconds
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 5)) # Max retries for an event
BATCH_SIZE = int(os.getenv("BATCH_SIZE", 50)) # How many events to fetch per poll

# Inventory
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 10)) # Units at or below which stock is low

# Notifications
LOW_STOCK_RENOTIFY_HOURS = int(os.getenv("LOW_STOCK_RENOTIFY_HOURS", 24))
DEFAULT_NOTIFICATION_LIMIT = int(os.getenv("DEFAULT_NOTIFICATION_LIMIT", 50))
NOTIFICATION_REFRESH_INTERVAL = int(os.getenv("NOTIFICATION_REFRESH_INTERVAL", 30)) # Client refresh hint, seconds

# Blockchain explorer used to build transaction links
CHAIN_EXPLORER_URL = os.getenv("CHAIN_EXPLORER_URL", "https://sepolia.etherscan.io")

# Traceability
TRACE_VERIFY_BASE_URL = os.getenv("TRACE_VERIFY_BASE_URL", "http://localhost:3000") # Public site serving /verify/<batch id>
