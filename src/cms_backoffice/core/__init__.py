"""Core runtime services: hosting, logging, profiling, request scope and runtime"""

from .hosting import BackOfficeInfo, HostingEnvironment
from .profiling import Profiler, VoidProfiler, WebProfiler
from .runtime import BootFailedError, CmsVersion, CoreRuntime, Runtime, RuntimeLevel

__all__ = [
    "BackOfficeInfo",
    "BootFailedError",
    "CmsVersion",
    "CoreRuntime",
    "HostingEnvironment",
    "Profiler",
    "Runtime",
    "RuntimeLevel",
    "VoidProfiler",
    "WebProfiler",
]
