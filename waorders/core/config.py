import os

from dotenv import load_dotenv

# Loads .env from the project root
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./waorders.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# Process-wide webhook handshake secret (hub.verify_token)
META_VERIFY_TOKEN = os.getenv("META_VERIFY_TOKEN", os.getenv("META_WA_VERIFY_TOKEN", "")).strip()

# Tenant used when the event phone_number_id matches no configured store
DEFAULT_TENANT_ID = int(os.getenv("DEFAULT_TENANT_ID", "1"))

# Process webhook batches inside the request instead of BackgroundTasks
WEBHOOK_PROCESS_INLINE = os.getenv("WEBHOOK_PROCESS_INLINE", "").strip().lower() in _TRUTHY

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
