import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

# Frontend base URL (calendar UI) for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# Flow webhook (external messaging automation). Unset disables dispatch.
FLOW_WEBHOOK_URL = os.getenv("FLOW_WEBHOOK_URL") or None
FLOW_WEBHOOK_TIMEOUT = float(os.getenv("FLOW_WEBHOOK_TIMEOUT", "10.0"))

# Daily renewal job, in civil (UTC-3) time
RENEWAL_CRON_HOUR = int(os.getenv("RENEWAL_CRON_HOUR", "0"))
RENEWAL_CRON_MINUTE = int(os.getenv("RENEWAL_CRON_MINUTE", "5"))

# Grid scanned when a renewed session has to slide to another time
RENEWAL_SEARCH_START = os.getenv("RENEWAL_SEARCH_START", "08:00")
RENEWAL_SEARCH_END = os.getenv("RENEWAL_SEARCH_END", "20:00")
RENEWAL_SEARCH_STEP = int(os.getenv("RENEWAL_SEARCH_STEP", "30"))

# ARQ worker tuning
WORKER_MAX_JOBS = int(os.getenv("WORKER_MAX_JOBS", "10"))
WORKER_JOB_TIMEOUT = int(os.getenv("WORKER_JOB_TIMEOUT", "600"))
WORKER_KEEP_RESULT = int(os.getenv("WORKER_KEEP_RESULT", "3600"))
