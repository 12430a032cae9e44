"""
Service register and factory handed to the runtime.

The register collects service registrations while the runtime composes;
create_factory() then locks it and returns the factory used to resolve
services for the rest of the application's life.
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, TypeVar

if TYPE_CHECKING:
    from ..config import GlobalSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Lifetime(Enum):
    """How long a resolved service instance lives."""

    TRANSIENT = "transient"  # New instance per resolution
    SINGLETON = "singleton"  # One instance per factory


class ServiceRegister:
    """Collects service registrations."""

    def __init__(self) -> None:
        self._registrations: dict[type, tuple[Callable[[ServiceFactory], Any], Lifetime]] = {}
        self._instances: dict[type, Any] = {}
        self._locked = False

    def _ensure_unlocked(self) -> None:
        if self._locked:
            raise RuntimeError("Cannot register services after the factory has been created")

    def register(
        self,
        service_type: type,
        factory: Optional[Callable[[ServiceFactory], Any]] = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None:
        """Register a service.

        Args:
            service_type: Type used to resolve the service
            factory: Callable receiving the ServiceFactory and returning an
                instance; defaults to calling service_type with no arguments
            lifetime: Instance lifetime
        """
        self._ensure_unlocked()
        if factory is None:
            factory = lambda _: service_type()  # noqa: E731
        self._instances.pop(service_type, None)
        self._registrations[service_type] = (factory, lifetime)

    def register_instance(self, service_type: type, instance: Any) -> None:
        self._ensure_unlocked()
        self._registrations.pop(service_type, None)
        self._instances[service_type] = instance

    def is_registered(self, service_type: type) -> bool:
        return service_type in self._registrations or service_type in self._instances

    def create_factory(self) -> ServiceFactory:
        self._locked = True
        return ServiceFactory(dict(self._registrations), dict(self._instances))


class ServiceFactory:
    """Resolves registered services."""

    def __init__(
        self,
        registrations: dict[type, tuple[Callable[[ServiceFactory], Any], Lifetime]],
        instances: dict[type, Any],
    ) -> None:
        self._registrations = registrations
        self._instances = instances
        self._singletons: dict[type, Any] = {}
        self._lock = threading.RLock()
        self._disposed = False

    def get_instance(self, service_type: type[T]) -> T:
        if self._disposed:
            raise RuntimeError("Service factory has been disposed")

        if service_type in self._instances:
            return self._instances[service_type]

        registration = self._registrations.get(service_type)
        if registration is None:
            raise LookupError(f"No service registered for {service_type.__name__}")

        factory, lifetime = registration
        if lifetime is Lifetime.TRANSIENT:
            return factory(self)

        with self._lock:
            if service_type not in self._singletons:
                self._singletons[service_type] = factory(self)
            return self._singletons[service_type]

    def try_get_instance(self, service_type: type[T]) -> Optional[T]:
        try:
            return self.get_instance(service_type)
        except LookupError:
            return None

    def dispose(self) -> None:
        """Close singletons created by this factory, most recent first."""
        if self._disposed:
            return
        self._disposed = True
        for service in reversed(list(self._singletons.values())):
            close = getattr(service, "close", None)
            if callable(close):
                try:
                    close()
                except Exception as e:
                    logger.error(f"Error disposing {type(service).__name__}: {e}", exc_info=True)
        self._singletons.clear()


class RegisterFactory:
    """Creates the application register, honouring a configured register type."""

    @staticmethod
    def create(global_settings: GlobalSettings) -> ServiceRegister:
        register_type = global_settings.register_type
        if not register_type:
            return ServiceRegister()

        cls = _import_dotted(register_type)
        if not (isinstance(cls, type) and issubclass(cls, ServiceRegister)):
            raise ValueError(f"Register type {register_type} is not a ServiceRegister")

        logger.info(f"Using register type {register_type}")
        return cls()


def _import_dotted(path: str) -> Any:
    if ":" in path:
        module_name, attr = path.split(":", 1)
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Invalid type path: {path}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import {module_name}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ValueError(f"{module_name} has no attribute {attr}") from e
