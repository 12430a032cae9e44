"""
Runtime: the object that composes services and runs the application.

The application base only talks to the Runtime protocol. CoreRuntime is the
default implementation: it determines the runtime level, registers the core
services, lets composers add their own, and starts/terminates components.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import Any, Optional, Protocol

from ..composing.register import Lifetime, ServiceFactory, ServiceRegister
from ..config import Configs, GlobalSettings
from ..version import __version__
from .hosting import BackOfficeInfo, HostingEnvironment
from .profiling import Profiler
from .request_context import RequestCache, SessionIdResolver

logger = logging.getLogger(__name__)

Composer = Callable[[ServiceRegister, "CoreRuntime"], None]


class BootFailedError(RuntimeError):
    """Raised when the runtime could not be configured or started."""


class RuntimeLevel(Enum):
    UNKNOWN = "unknown"
    BOOT = "boot"
    INSTALL = "install"
    UPGRADE = "upgrade"
    RUN = "run"
    BOOT_FAILED = "boot_failed"


class CmsVersion:
    """Running code version versus the version recorded in configuration."""

    def __init__(self, global_settings: GlobalSettings) -> None:
        self.current = __version__
        self.configured = global_settings.configuration_status.strip() or None

    def determine_level(self) -> RuntimeLevel:
        if self.configured is None:
            return RuntimeLevel.INSTALL
        if self.configured != self.current:
            return RuntimeLevel.UPGRADE
        return RuntimeLevel.RUN


class Component(Protocol):
    def initialize(self, factory: ServiceFactory) -> None: ...

    def terminate(self) -> None: ...


class Runtime(Protocol):
    """Runtime interface driven by the application lifecycle."""

    def configure(self, register: ServiceRegister) -> ServiceFactory:
        """Register services and return the factory resolving them."""
        ...

    def start(self) -> None: ...

    def terminate(self) -> None: ...


class CoreRuntime:
    """Default runtime.

    Args:
        configs: All settings sections
        version: Code/configuration version
        logger: Application logger
        profiler: Profiler timing the boot
        hosting_environment: Hosting environment
        backoffice_info: Back-office location
        composers: Callables adding registrations to the register
        components: Started in order on start, terminated in reverse order
    """

    def __init__(
        self,
        configs: Configs,
        version: CmsVersion,
        logger: logging.Logger,
        profiler: Profiler,
        hosting_environment: HostingEnvironment,
        backoffice_info: BackOfficeInfo,
        composers: Sequence[Composer] = (),
        components: Iterable[Component] = (),
    ) -> None:
        self.configs = configs
        self.version = version
        self.logger = logger
        self.profiler = profiler
        self.hosting_environment = hosting_environment
        self.backoffice_info = backoffice_info
        self.composers = list(composers)
        self.components = list(components)
        self.level = RuntimeLevel.UNKNOWN
        self.factory: Optional[ServiceFactory] = None
        self._started: list[Component] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def configure(self, register: ServiceRegister) -> ServiceFactory:
        self.level = RuntimeLevel.BOOT
        self.logger.info(
            f"Booting CMS {self.version.current} "
            f"(debug={self.hosting_environment.is_debug_mode}, "
            f"path={self.hosting_environment.application_physical_path})"
        )
        try:
            with self.profiler.step("Configure runtime"):
                register.register_instance(Configs, self.configs)
                register.register_instance(HostingEnvironment, self.hosting_environment)
                register.register_instance(BackOfficeInfo, self.backoffice_info)
                register.register_instance(CmsVersion, self.version)
                register.register_instance(CoreRuntime, self)
                register.register(RequestCache, lifetime=Lifetime.SINGLETON)
                register.register(SessionIdResolver, lifetime=Lifetime.SINGLETON)

                for composer in self.composers:
                    composer(register, self)

                self.factory = register.create_factory()
        except Exception as e:
            self.level = RuntimeLevel.BOOT_FAILED
            self.logger.error(f"Runtime configuration failed: {e}", exc_info=True)
            raise BootFailedError(f"Runtime configuration failed: {e}") from e

        self.level = self.version.determine_level()
        self.logger.info(f"Runtime level: {self.level.value}")
        return self.factory

    def start(self) -> None:
        if self.factory is None or self.level is RuntimeLevel.BOOT_FAILED:
            raise BootFailedError("Runtime must be configured before it is started")

        try:
            with self.profiler.step("Start runtime"):
                for component in self.components:
                    component.initialize(self.factory)
                    self._started.append(component)
        except Exception as e:
            self.level = RuntimeLevel.BOOT_FAILED
            self.logger.error(f"Runtime start failed: {e}", exc_info=True)
            self._terminate_components()
            raise BootFailedError(f"Runtime start failed: {e}") from e
        finally:
            self.profiler.stop()

        self._running = True
        self.logger.info(f"Started {len(self._started)} components")

    def terminate(self) -> None:
        self.logger.info("Terminating runtime")
        self._running = False
        self._terminate_components()

    def close(self) -> None:
        self.factory = None

    def _terminate_components(self) -> None:
        while self._started:
            component = self._started.pop()
            try:
                component.terminate()
            except Exception as e:
                self.logger.error(
                    f"Error terminating component {type(component).__name__}: {e}", exc_info=True
                )

    def describe(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "version": self.version.current,
            "configured_version": self.version.configured,
            "components": [type(c).__name__ for c in self.components],
        }
