import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from twamp_ingest.ingestion.errors import StartupError
from twamp_ingest.ingestion.es_bulk import DEFAULT_INDEX
from twamp_ingest.ingestion.record_mapper import ARITY_POLICIES

logger = logging.getLogger(__name__)


def str2bool(v):
    if isinstance(v, bool):
        return v
    return str(v).lower() in ("1", "true", "t", "yes", "y")


@dataclass
class Settings:
    watch_dir: str
    es_url: str
    es_user: Optional[str] = None
    es_password: Optional[str] = None
    es_index: str = DEFAULT_INDEX
    es_verify_certs: bool = False
    es_request_timeout: float = 30.0
    es_wait_timeout: float = 0.0
    arity_policy: str = "skip"
    settle_seconds: float = 0.0
    log_level: str = "INFO"


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise StartupError(f"Missing required setting {name}")
    return value


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise StartupError(f"Invalid value for {name}: {raw!r}") from e
    if value < 0:
        raise StartupError(f"{name} must be >= 0, got {value}")
    return value


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """
    Read the ingester settings from the environment (after loading `env_file`).

    Variables already set in the process environment take precedence over the
    file. Raises StartupError for missing or malformed values.
    """
    if env_file:
        if load_dotenv(env_file):
            logger.info(f"Loaded environment from {env_file}")
        else:
            logger.info(f"No env file at {env_file}, using process environment")

    es_user = os.getenv("ES_USER") or None
    es_password = os.getenv("ES_PASSWORD") or None
    if bool(es_user) != bool(es_password):
        raise StartupError("ES_USER and ES_PASSWORD must be set together")

    arity_policy = os.getenv("ROW_ARITY_POLICY", "skip").strip().lower()
    if arity_policy not in ARITY_POLICIES:
        raise StartupError(
            f"Invalid ROW_ARITY_POLICY {arity_policy!r} (expected one of {ARITY_POLICIES})"
        )

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise StartupError(f"Invalid LOG_LEVEL {log_level!r}")

    return Settings(
        watch_dir=_require("FILE_PATH"),
        es_url=_require("ES_SERVER"),
        es_user=es_user,
        es_password=es_password,
        es_index=os.getenv("ES_INDEX", DEFAULT_INDEX).strip() or DEFAULT_INDEX,
        es_verify_certs=str2bool(os.getenv("ES_VERIFY_CERTS", "false")),
        es_request_timeout=_float("ES_REQUEST_TIMEOUT", 30.0),
        es_wait_timeout=_float("ES_WAIT_TIMEOUT", 0.0),
        arity_policy=arity_policy,
        settle_seconds=_float("SETTLE_SECONDS", 0.0),
        log_level=log_level,
    )
