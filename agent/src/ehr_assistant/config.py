"""Configuration for the EHR assistant.

Loads settings from environment variables (via a .env file or the system
environment). Uses sensible defaults so the module can be imported even
when env vars are not set, which lets tests and CI import everything
without real API keys or a database.

At *runtime* (when actually serving requests), missing keys surface as
"degraded" on the chat health endpoint and as user-safe error messages.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists (it won't exist in CI or Docker, that's fine)
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

# --- EHR backend ---
# Base URL of the EHR REST API. Every tool call goes through this API
# using the caller's own bearer token.
EHR_API_BASE_URL: str = os.getenv("EHR_API_BASE_URL", "http://localhost:3000/api/v1")

# Socket timeout (seconds) applied to every outbound EHR API call.
EHR_API_TIMEOUT: float = float(os.getenv("EHR_API_TIMEOUT", "30"))

# Postgres connection string. Empty means the read-only SQL tools and the
# schema section of the system prompt are disabled.
DATABASE_URL: str = os.getenv("DATABASE_URL", "")

# --- LLM (Large Language Model) ---
ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")

# --- Authentication ---
# Secret used to verify the bearer JWTs issued by the EHR backend.
JWT_SECRET: str = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

# --- Agent behaviour ---
# Maximum number of model calls in one run of the tool-calling loop.
AGENT_MAX_ITERATIONS: int = int(os.getenv("AGENT_MAX_ITERATIONS", "15"))

# Messages kept per conversation (one turn = human + assistant).
CHAT_HISTORY_LIMIT: int = int(os.getenv("CHAT_HISTORY_LIMIT", "20"))

# Fixed-window rate limit per user.
CHAT_RATE_LIMIT: int = int(os.getenv("CHAT_RATE_LIMIT", "30"))
CHAT_RATE_WINDOW_SECONDS: float = float(os.getenv("CHAT_RATE_WINDOW_SECONDS", "60"))

# Row cap appended to read-only SQL queries that carry no LIMIT clause.
QUERY_DEFAULT_LIMIT: int = int(os.getenv("QUERY_DEFAULT_LIMIT", "50"))

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
