"""
Logging setup for the CMS application.

Minimal configuration writes to stderr and to a rotating file in the log
directory. Optional JSON files (logging.config.dictConfig schema) can then
extend or override it: first the shipped config file, then the user file.

Enrichers are logging filters that stamp request details onto every record
that reaches the root handlers.
"""

from __future__ import annotations

import json
import logging
import logging.config
import logging.handlers
import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .request_context import REQUEST_ID_KEY, REQUEST_NUMBER_KEY, RequestCache, SessionIdResolver

if TYPE_CHECKING:
    from ..config import HostingSettings
    from .hosting import HostingEnvironment

logger = logging.getLogger(__name__)

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[req %(http_request_number)s %(http_request_id)s session %(http_session_id)s] - %(message)s"
)
# Records that did not pass through the request enrichers
LOG_RECORD_DEFAULTS = {"http_request_id": None, "http_request_number": None, "http_session_id": None}
LOG_FILE_NAME = "cms.log"

_pushed_enrichers: list[logging.Filter] = []


@dataclass
class LoggingConfiguration:
    """Locations used by configure_logging."""

    log_directory: str
    config_file: str
    user_config_file: str

    @classmethod
    def for_hosting(
        cls, hosting_environment: HostingEnvironment, hosting_settings: HostingSettings
    ) -> "LoggingConfiguration":
        return cls(
            log_directory=hosting_environment.map_path_content_root(hosting_settings.log_directory),
            config_file=hosting_environment.map_path_content_root(hosting_settings.logging_config_file),
            user_config_file=hosting_environment.map_path_content_root(
                hosting_settings.logging_user_config_file
            ),
        )


def configure_logging(
    hosting_environment: HostingEnvironment,
    logging_configuration: LoggingConfiguration,
    level: str = "WARNING",
) -> logging.Logger:
    """Configure process-wide logging and return the root logger.

    Debug mode lowers the level to DEBUG regardless of the configured level.
    """
    log_level = logging.DEBUG if hosting_environment.is_debug_mode else logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    try:
        os.makedirs(logging_configuration.log_directory, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(logging_configuration.log_directory, LOG_FILE_NAME),
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )
    except OSError as e:
        print(f"Cannot write logs to {logging_configuration.log_directory}: {e}", file=sys.stderr)

    formatter = logging.Formatter(LOG_FORMAT, defaults=LOG_RECORD_DEFAULTS)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    _read_config_file(logging_configuration.config_file)
    _read_config_file(logging_configuration.user_config_file)

    return logging.getLogger()


def _read_config_file(path: str) -> None:
    if not os.path.isfile(path):
        return
    with open(path, encoding="utf-8") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Logging config file {path} is not valid JSON: {e}") from e
    config.setdefault("version", 1)
    config.setdefault("incremental", False)
    config.setdefault("disable_existing_loggers", False)
    logging.config.dictConfig(config)
    logger.debug(f"Applied logging config from {path}")


class HttpRequestIdEnricher(logging.Filter):
    def __init__(self, request_cache: RequestCache) -> None:
        super().__init__()
        self.request_cache = request_cache

    def filter(self, record: logging.LogRecord) -> bool:
        record.http_request_id = self.request_cache.get(REQUEST_ID_KEY)
        return True


class HttpRequestNumberEnricher(logging.Filter):
    def __init__(self, request_cache: RequestCache) -> None:
        super().__init__()
        self.request_cache = request_cache

    def filter(self, record: logging.LogRecord) -> bool:
        record.http_request_number = self.request_cache.get(REQUEST_NUMBER_KEY)
        return True


class HttpSessionIdEnricher(logging.Filter):
    def __init__(self, session_id_resolver: SessionIdResolver) -> None:
        super().__init__()
        self.session_id_resolver = session_id_resolver

    def filter(self, record: logging.LogRecord) -> bool:
        record.http_session_id = self.session_id_resolver.session_id
        return True


def push_log_enricher(enricher: logging.Filter) -> None:
    """Attach an enricher to every current root handler."""
    for handler in logging.getLogger().handlers:
        handler.addFilter(enricher)
    _pushed_enrichers.append(enricher)


def clear_log_enrichers() -> None:
    for handler in logging.getLogger().handlers:
        for enricher in _pushed_enrichers:
            handler.removeFilter(enricher)
    _pushed_enrichers.clear()
