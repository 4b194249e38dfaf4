import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root (parent of punktual/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
IS_PROD = ENVIRONMENT == "prod"

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

# Supabase signs its access tokens with the project JWT secret
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

MONTHLY_EVENT_LIMIT = int(os.getenv("MONTHLY_EVENT_LIMIT", 5))
