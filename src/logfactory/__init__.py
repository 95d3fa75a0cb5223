# logfactory/__init__.py
__version__ = "1.0.0"

from ._state import current_context, use_context
from .api import (
    default_engine,
    get_attribute,
    get_attribute_names,
    get_factory,
    get_log,
    release,
    release_all,
    reset,
    set_attribute,
)
from .config_resolver import ConfigurationResolver
from .config_sources import ConfigSource
from .context import BASELINE, IsolationContext, LoadedType
from .diagnostics import DiagnosticsSink
from .engine import CURRENT, ResolutionEngine, ResolutionState
from .exceptions import (
    ConfigParseError,
    DiscoveryError,
    InstantiationError,
    LogFactoryError,
    OverrideInstantiationError,
    ResolutionError,
    TypeIdentityConflict,
)
from .facility import LogFactory
from .instantiation import ImplementationResolver
from .registry import RegistryCache, RegistryEntry

__all__ = [
    "__version__",
    "LogFactory",
    "IsolationContext",
    "LoadedType",
    "BASELINE",
    "CURRENT",
    "ConfigSource",
    "ConfigurationResolver",
    "ImplementationResolver",
    "RegistryCache",
    "RegistryEntry",
    "ResolutionEngine",
    "ResolutionState",
    "DiagnosticsSink",
    "LogFactoryError",
    "ConfigParseError",
    "DiscoveryError",
    "ResolutionError",
    "TypeIdentityConflict",
    "InstantiationError",
    "OverrideInstantiationError",
    "get_factory",
    "get_log",
    "release",
    "release_all",
    "set_attribute",
    "get_attribute",
    "get_attribute_names",
    "use_context",
    "current_context",
    "default_engine",
    "reset",
]
