"""Load environment variables early for the FastAPI app.

For local dev, loads a .env.dev file. In staging and prod, env vars are
injected by the deployment, so no .env file is loaded.

Required:
    DATABASE_URL            Postgres connection string.
    GOOGLE_CLIENT_ID        OAuth client used to refresh calendar tokens.
    GOOGLE_CLIENT_SECRET

Optional (see OPTIONAL_ENV_VARS for defaults):
    CORS_ALLOW_ORIGINS      Comma-separated list of web origins.
    DB_CONNECT_TIMEOUT_SECONDS
    LOG_LEVEL               DEBUG, INFO, WARNING, ERROR or CRITICAL.
"""

import os
import sys
from typing import Literal
from dotenv import load_dotenv

EnvironmentName = Literal["dev", "staging", "prod"]

REQUIRED_ENV_VARS = [
    "DATABASE_URL",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
]

OPTIONAL_ENV_VARS = {
    "CORS_ALLOW_ORIGINS": "http://localhost:5173",
    "DB_CONNECT_TIMEOUT_SECONDS": "10",
}


def validate_required_env_vars() -> None:
    """Exit with a readable message if a required variable is missing."""
    missing = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
    if missing:
        print(
            f"ERROR: Missing required environment variables: {', '.join(missing)}",
            file=sys.stderr,
        )
        print(
            "Set them in .env.dev for local dev, or in the deployment's environment.",
            file=sys.stderr,
        )
        sys.exit(1)


env = os.getenv("ENV", "dev")
if env in ("staging", "prod"):
    print(f"Running in {env} environment (env vars from deployment)")
elif env == "dev":
    print("Loading environment variables from .env.dev")
    load_dotenv(".env.dev", verbose=True)
else:
    raise ValueError(f"Invalid ENV value: {env}. Must be 'dev', 'staging', or 'prod'.")

validate_required_env_vars()
for name, default in OPTIONAL_ENV_VARS.items():
    os.environ.setdefault(name, default)


def get_current_environment() -> EnvironmentName:
    env = os.getenv("ENV", "dev")
    if env in ("dev", "staging", "prod"):
        return env  # type: ignore[return-value]
    raise ValueError(f"Invalid ENV value: {env}. Must be 'dev', 'staging', or 'prod'.")


def get_cors_origins() -> list[str]:
    """Origins allowed to call the API from a browser."""
    raw = os.environ["CORS_ALLOW_ORIGINS"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
