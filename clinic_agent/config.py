"""Centralized configuration for the Clinic SDR agent.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/clinic-sdr/<VARIABLE_NAME>``.

Unlike a typical service, a missing provider key is *not* a start-up error:
the chat client answers with a fixed "not configured" reply and the vector
memory degrades to no-ops.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 — lazy import, only needed on AWS

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/clinic-sdr/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str:
    """Return a secret from env-var or SSM, or ``""`` when it is not set."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    logger.warning("%s is not set; dependent features will be degraded", name)
    return ""


# ── LLM / embeddings provider ────────────────────────────────────────
OPENAI_API_KEY: str = _optional_secret("OPENAI_API_KEY")
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4o")
# Lower-tier model used once when the primary hits a rate limit / quota
FALLBACK_CHAT_MODEL: str = os.getenv("FALLBACK_CHAT_MODEL", "gpt-3.5-turbo")
EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002")

# ── Vector index (Pinecone) ──────────────────────────────────────────
PINECONE_API_KEY: str = _optional_secret("PINECONE_API_KEY")
PINECONE_INDEX_NAME: str = os.getenv("PINECONE_INDEX_NAME", "high-agents-memory")
PINECONE_ENVIRONMENT: str = os.getenv("PINECONE_ENVIRONMENT", "us-east1-gcp")
PINECONE_INDEX_HOST: str = os.getenv("PINECONE_INDEX_HOST", "")

# ── Conversation flow ────────────────────────────────────────────────
SLOT_LANGUAGE: str = os.getenv("SLOT_LANGUAGE", "en")

# ── Server ──────────────────────────────────────────────────────────
APP_ENV: str = os.getenv("APP_ENV", "development")
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


def pinecone_index_host() -> str:
    """Base URL of the Pinecone index (explicit host wins over name+env)."""
    if PINECONE_INDEX_HOST:
        return PINECONE_INDEX_HOST.rstrip("/")
    return f"https://{PINECONE_INDEX_NAME}-{PINECONE_ENVIRONMENT}.svc.pinecone.io"


def is_development() -> bool:
    return APP_ENV.lower() in ("development", "dev", "local")
