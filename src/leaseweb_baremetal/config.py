"""Configuration and logging setup for the bare-metal API client."""

import json
import logging
import os
import pathlib

import pydantic
import structlog

from . import baremetalapi

CONFIG_ENV_VAR = "LEASEWEB_CLIENT_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for the bare-metal API client."""

    api_url: str = pydantic.Field(
        baremetalapi.DEFAULT_BASE_URL,
        description="Base URL of the Leaseweb API",
        min_length=1,
    )
    api_token: str | None = pydantic.Field(None, description="API auth token")
    api_token_file: str | None = pydantic.Field(
        None,
        description="Path to file containing API auth token",
    )
    timeout: float | None = pydantic.Field(
        None,
        description="Request timeout in seconds, none when unset",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")

    @pydantic.model_validator(mode="after")
    def _require_token(self) -> "ClientConfig":
        if not self.api_token and not self.api_token_file:
            msg = "either api_token or api_token_file must be set"
            raise ValueError(msg)
        return self


def configure_logging(log_level_name: str) -> None:
    """Render structlog events to stdout as logfmt.

    Events below ``log_level_name`` are dropped, so the per-request
    "Executing API request" events only show at DEBUG. Unknown level names
    fall back to INFO.
    """
    log_level = logging.getLevelName(log_level_name.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg", "method", "url"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ClientConfig:
    """Read client settings (API URL, token or token file, timeout) from JSON.

    Raises:
        FileNotFoundError: If config_path does not exist.
        pydantic.ValidationError: If the settings are invalid, e.g. no token.
    """
    path = pathlib.Path(config_path)
    if not path.is_file():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    return ClientConfig.model_validate(json.loads(path.read_text()))


def build_client(config: ClientConfig) -> baremetalapi.LeasewebClient:
    """Construct an API client from validated config."""
    client = baremetalapi.LeasewebClient(
        base_url=config.api_url,
        token=config.api_token,
        token_file=config.api_token_file,
        timeout=config.timeout,
    )
    logger.info("Created API client", base_url=client.base_url)
    return client


def create_client(config_path: str | None = None) -> baremetalapi.LeasewebClient:
    """Create an API client using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    return build_client(config)
