"""
Process-wide application state.

Holds the singletons built once per process before the runtime boots, and
the service factory once the runtime has been configured. Only application
lifecycle code should write here.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import Configs
    from ..core.hosting import BackOfficeInfo, HostingEnvironment
    from ..core.profiling import Profiler
    from .register import ServiceFactory


class Current:
    """Global state holder. Never instantiated."""

    _lock = threading.Lock()
    _initialized = False

    logger: Optional[logging.Logger] = None
    configs: Optional[Configs] = None
    hosting_environment: Optional[HostingEnvironment] = None
    backoffice_info: Optional[BackOfficeInfo] = None
    profiler: Optional[Profiler] = None
    factory: Optional[ServiceFactory] = None

    def __new__(cls):  # type: ignore[no-untyped-def]
        raise TypeError("Current is not instantiable")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._initialized

    @classmethod
    def initialize(
        cls,
        logger: logging.Logger,
        configs: Configs,
        hosting_environment: HostingEnvironment,
        backoffice_info: BackOfficeInfo,
        profiler: Profiler,
    ) -> None:
        """Set the process-wide singletons.

        Raises:
            RuntimeError: If already initialized
        """
        with cls._lock:
            if cls._initialized:
                raise RuntimeError("Current has already been initialized")
            cls.logger = logger
            cls.configs = configs
            cls.hosting_environment = hosting_environment
            cls.backoffice_info = backoffice_info
            cls.profiler = profiler
            cls._initialized = True

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return cls.logger or logging.getLogger("cms_backoffice")

    @classmethod
    def reset(cls) -> None:
        """Dispose the factory and forget every singleton."""
        with cls._lock:
            if cls.factory is not None:
                cls.factory.dispose()
            cls.factory = None
            cls.logger = None
            cls.configs = None
            cls.hosting_environment = None
            cls.backoffice_info = None
            cls.profiler = None
            cls._initialized = False
