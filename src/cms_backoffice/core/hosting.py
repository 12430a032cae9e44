"""
Hosting environment and back-office location.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from ..config import GlobalSettings, HostingSettings, WebRoutingSettings

logger = logging.getLogger(__name__)


class HostingEnvironment:
    """Where and how the application is hosted."""

    def __init__(self, hosting_settings: HostingSettings) -> None:
        self._settings = hosting_settings
        self.application_physical_path = os.path.abspath(hosting_settings.application_physical_path)
        self.application_virtual_path = hosting_settings.application_virtual_path or "/"
        # Set by the server when it begins shutting down
        self.shutdown_reason: Optional[str] = None

    @property
    def is_debug_mode(self) -> bool:
        return self._settings.debug

    def map_path_content_root(self, path: str) -> str:
        """Map a "~/" prefixed or relative path onto the application's physical path.

        Absolute filesystem paths are returned unchanged.
        """
        if path.startswith("~/"):
            path = path[2:]
        elif path == "~":
            path = ""
        elif os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self.application_physical_path, path))


class BackOfficeInfo:
    """Absolute location of the back-office."""

    def __init__(
        self,
        global_settings: GlobalSettings,
        hosting_environment: HostingEnvironment,
        web_routing_settings: WebRoutingSettings,
    ) -> None:
        self._global_settings = global_settings
        self._hosting_environment = hosting_environment
        self._web_routing_settings = web_routing_settings

    @property
    def absolute_url(self) -> str:
        """Configured application URL joined with the back-office path.

        Falls back to a root-relative URL when no application URL is configured.
        """
        path = "/" + self._global_settings.backoffice_path.strip("/")
        base = (self._web_routing_settings.application_url or "").rstrip("/")
        if not base:
            logger.debug("No application URL configured, back-office URL is relative")
        return f"{base}{path}"
