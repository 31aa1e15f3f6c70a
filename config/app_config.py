import os
from dotenv import load_dotenv

load_dotenv()

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

# Lifecycle Settings
REVIEW_AUTO_COMPLETE_DAYS = int(os.getenv("REVIEW_AUTO_COMPLETE_DAYS", 14))
DEADLINE_REMINDER_HOURS = int(os.getenv("DEADLINE_REMINDER_HOURS", 48))

# Worker Settings
LIFECYCLE_SWEEP_MINUTES = int(os.getenv("LIFECYCLE_SWEEP_MINUTES", 15))
REMINDER_SWEEP_MINUTES = int(os.getenv("REMINDER_SWEEP_MINUTES", 60))
WORKER_LOG_FILE = os.getenv("WORKER_LOG_FILE", "lifecycle_worker.log")

# Budget Settings
# When off, payout changes after invite time only warn about the budget ceiling
ENFORCE_BUDGET_ON_PAYOUT_CHANGES = os.getenv("ENFORCE_BUDGET_ON_PAYOUT_CHANGES", "false").lower() in ("1", "true", "yes")

# Admin account seeded on API startup (optional)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
