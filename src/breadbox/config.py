import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from breadbox.errors import ConfigError

# Load the appropriate .env file on module import
env = os.environ.get("BREADBOX_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()

DEFAULT_POOL_SIZE = 10

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    text = raw.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass
class Config:
    environment: str
    database_url: str | None
    pool_size: int = DEFAULT_POOL_SIZE
    case_sensitive_search: bool = False
    numeric_as_float: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Config":
        log_level = os.environ.get("BREADBOX_LOG_LEVEL", "WARNING").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"BREADBOX_LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            environment=env,
            database_url=os.environ.get("DATABASE_URL") or None,
            pool_size=_env_positive_int("BREADBOX_POOL_SIZE", DEFAULT_POOL_SIZE),
            case_sensitive_search=_env_bool("BREADBOX_CASE_SENSITIVE_SEARCH", False),
            numeric_as_float=_env_bool("BREADBOX_NUMERIC_AS_FLOAT", True),
            log_level=log_level,
        )

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigError("DATABASE_URL is not set")
        return self.database_url


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger (CLI entry points only)."""
    logging.basicConfig(
        level=level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


config = Config.from_env()
