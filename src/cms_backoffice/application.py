"""
Application base wiring the web server lifecycle to the CMS runtime.

Lifecycle (in the order events trigger):
- construction: build config, hosting, logging and profiler once per process
- start: create the register and runtime, configure it, start it
- init: raise the application init event
- error: log unhandled exceptions, raise the application error event
- end: raise the application end event, terminate the runtime, reset global state
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any, ClassVar, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import BaseRoute

from .backoffice import BackOfficeEndpoints, schemes_from_settings
from .composing.current import Current
from .composing.register import RegisterFactory, ServiceFactory, ServiceRegister
from .config import Configs, ConfigsFactory, GlobalSettings
from .core.hosting import BackOfficeInfo, HostingEnvironment
from .core.logging_setup import (
    HttpRequestIdEnricher,
    HttpRequestNumberEnricher,
    HttpSessionIdEnricher,
    LoggingConfiguration,
    clear_log_enrichers,
    configure_logging,
    push_log_enricher,
)
from .core.profiling import Profiler, VoidProfiler, WebProfiler
from .core.request_context import RequestCache, RequestContextMiddleware, SessionIdResolver
from .core.runtime import BootFailedError, CmsVersion, Component, Composer, CoreRuntime, Runtime

EventHandler = Callable[[Any], None]
ErrorEventHandler = Callable[[Any, BaseException], None]


class ApplicationBase(ABC):
    """Abstract base class for the CMS web application.

    Subclasses provide the runtime via get_runtime(). Construction
    initializes process-wide state unless it already is: either from the
    environment, or from the collaborators passed in.

    Events are class-wide because many application instances may exist over
    the process lifetime:
        application_init_handlers: once per application instance, after start
        application_error_handlers: once per unhandled error
        application_end_handlers: once, before the application is unloaded
    """

    application_init_handlers: ClassVar[list[EventHandler]] = []
    application_error_handlers: ClassVar[list[ErrorEventHandler]] = []
    application_end_handlers: ClassVar[list[EventHandler]] = []

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        configs: Optional[Configs] = None,
        hosting_environment: Optional[HostingEnvironment] = None,
        backoffice_info: Optional[BackOfficeInfo] = None,
        profiler: Optional[Profiler] = None,
    ) -> None:
        self._runtime: Optional[Runtime] = None
        self._factory: Optional[ServiceFactory] = None

        if Current.is_initialized():
            self.logger = Current.get_logger()
            return

        explicit = (logger, configs, hosting_environment, backoffice_info, profiler)
        if any(item is not None for item in explicit):
            if any(item is None for item in explicit):
                raise ValueError(
                    "logger, configs, hosting_environment, backoffice_info and profiler "
                    "must all be given together"
                )
            Current.initialize(logger, configs, hosting_environment, backoffice_info, profiler)  # type: ignore[arg-type]
            self.logger = logger  # type: ignore[assignment]
            return

        configs_factory = ConfigsFactory()
        hosting_settings = configs_factory.hosting_settings
        global_settings = configs_factory.global_settings

        hosting_environment = HostingEnvironment(hosting_settings)
        logging_configuration = LoggingConfiguration.for_hosting(hosting_environment, hosting_settings)
        configure_logging(hosting_environment, logging_configuration, global_settings.log_level)
        app_logger = logging.getLogger(__name__)

        configs = configs_factory.create()
        backoffice_info = BackOfficeInfo(
            global_settings, hosting_environment, configs_factory.web_routing_settings
        )
        profiler = self._get_web_profiler(hosting_environment)
        Current.initialize(app_logger, configs, hosting_environment, backoffice_info, profiler)
        self.logger = app_logger

    def _get_web_profiler(self, hosting_environment: HostingEnvironment) -> Profiler:
        # Started as early as possible to profile the boot
        if not hosting_environment.is_debug_mode:
            return VoidProfiler()

        web_profiler = WebProfiler()
        web_profiler.start()
        return web_profiler

    @property
    def runtime(self) -> Optional[Runtime]:
        return self._runtime

    @abstractmethod
    def get_runtime(
        self,
        configs: Configs,
        version: CmsVersion,
        logger: logging.Logger,
        profiler: Profiler,
        hosting_environment: HostingEnvironment,
        backoffice_info: BackOfficeInfo,
    ) -> Runtime:
        """Gets a runtime."""

    def get_register(self, global_settings: GlobalSettings) -> ServiceRegister:
        """Gets the application register."""
        return RegisterFactory.create(global_settings)

    # start

    def handle_application_start(self) -> None:
        """Create the register and the runtime, then boot."""
        if not Current.is_initialized() or Current.configs is None:
            raise BootFailedError("Application state has not been initialized")

        configs = Current.configs
        version = CmsVersion(configs.global_settings)

        register = self.get_register(configs.global_settings)
        self._runtime = self.get_runtime(
            configs,
            version,
            Current.get_logger(),
            Current.profiler or VoidProfiler(),
            Current.hosting_environment,  # type: ignore[arg-type]
            Current.backoffice_info,  # type: ignore[arg-type]
        )
        self._factory = Current.factory = self._runtime.configure(register)

        # Request based logging enrichers, applied globally
        session_id_resolver = self._factory.try_get_instance(SessionIdResolver) or SessionIdResolver()
        request_cache = self._factory.try_get_instance(RequestCache) or RequestCache()
        push_log_enricher(HttpSessionIdEnricher(session_id_resolver))
        push_log_enricher(HttpRequestNumberEnricher(request_cache))
        push_log_enricher(HttpRequestIdEnricher(request_cache))

        self._runtime.start()

    def application_start(self, sender: Any) -> None:
        self.handle_application_start()

    # init

    def init(self) -> None:
        self._try_invoke(self.application_init_handlers, "application_init", self)

    # end

    def on_application_end(self, sender: Any) -> None:
        for handler in list(self.application_end_handlers):
            handler(self)

    def handle_application_end(self) -> None:
        if self._runtime is not None:
            self._runtime.terminate()
            close = getattr(self._runtime, "close", None)
            if callable(close):
                close()
            self._runtime = None
        self._factory = None

        hosting_environment = Current.hosting_environment
        reason = hosting_environment.shutdown_reason if hosting_environment else None
        Current.get_logger().info(f"Application shutdown. Reason: {reason or 'unspecified'}")

        clear_log_enrichers()
        # Dispose the factory and everything it created
        Current.reset()

    def application_end(self, sender: Any) -> None:
        self.on_application_end(sender)
        self.handle_application_end()

    # error

    def on_application_error(self, sender: Any, exc: BaseException) -> None:
        for handler in list(self.application_error_handlers):
            handler(self, exc)

    def handle_application_error(self, exc: BaseException) -> None:
        # HTTP errors are responses, not failures
        if isinstance(exc, HTTPException):
            return
        Current.get_logger().error("An unhandled exception occurred", exc_info=exc)

    def application_error(self, sender: Any, exc: BaseException) -> None:
        self.handle_application_error(exc)
        self.on_application_error(sender, exc)

    # utilities

    @staticmethod
    def _try_invoke(handlers: Sequence[EventHandler], name: str, sender: Any) -> None:
        try:
            for handler in list(handlers):
                handler(sender)
        except Exception:
            Current.get_logger().error(f"Error in {name} handler.", exc_info=True)
            raise

    @staticmethod
    def _set_shutdown_reason(reason: str) -> None:
        hosting_environment = Current.hosting_environment
        if hosting_environment is not None and not hosting_environment.shutdown_reason:
            hosting_environment.shutdown_reason = reason

    # web application

    def create_app(
        self,
        routes: Optional[Sequence[BaseRoute]] = None,
        middleware: Optional[Sequence[Middleware]] = None,
    ) -> Starlette:
        """Create the Starlette application driving this lifecycle.

        The lifespan runs start then init on startup and end on shutdown.
        Unhandled exceptions go through application_error and produce a 500.
        """
        configs = Current.configs
        if configs is None:
            raise BootFailedError("Application state has not been initialized")

        endpoints = BackOfficeEndpoints(
            schemes_from_settings(configs.security),
            Current.backoffice_info,
            configs.global_settings.backoffice_path,
        )

        @asynccontextmanager
        async def lifespan(app: Starlette):  # type: ignore[no-untyped-def]
            # A failed start or init still ends the application
            try:
                self.application_start(app)
                self.init()
            except Exception:
                self._set_shutdown_reason("Boot failed")
                self.application_end(app)
                raise

            try:
                yield
            finally:
                self._set_shutdown_reason("Server shutdown")
                self.application_end(app)

        async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
            self.application_error(request, exc)
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        return Starlette(
            routes=[*endpoints.routes(), *(routes or [])],
            middleware=[Middleware(RequestContextMiddleware), *(middleware or [])],
            exception_handlers={Exception: handle_unhandled_exception},
            lifespan=lifespan,
        )


class CmsApplication(ApplicationBase):
    """Application running the default CoreRuntime."""

    composers: ClassVar[list[Composer]] = []
    components: ClassVar[list[Component]] = []

    def get_runtime(
        self,
        configs: Configs,
        version: CmsVersion,
        logger: logging.Logger,
        profiler: Profiler,
        hosting_environment: HostingEnvironment,
        backoffice_info: BackOfficeInfo,
    ) -> Runtime:
        return CoreRuntime(
            configs,
            version,
            logger,
            profiler,
            hosting_environment,
            backoffice_info,
            composers=self.composers,
            components=self.components,
        )
