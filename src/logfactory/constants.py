"""Constants used throughout logfactory.

This module defines the well-known environment keys, resource names and
configuration keys consulted during resolution, the default implementation
identifier, and the library logger.
"""

import logging

LOGGER_NAME: str = "logfactory"
"""Default logger name for the library."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Library logger for warnings that are not part of the lookup trace."""

FACTORY_ENV: str = "LOGFACTORY_FACTORY"
"""Environment key naming an implementation identifier that overrides every other source."""

FACTORY_DEFAULT: str = "logfactory.impl.StdlibLogFactory"
"""Identifier loaded through the baseline context when nothing else is found."""

FACTORY_PROPERTIES: str = "logfactory.properties"
"""Logical name of the configuration file searched in every context."""

SERVICE_ID: str = "services/logfactory.LogFactory"
"""Service-registry resource whose first line names an implementation identifier."""

FACTORY_KEY: str = "factory"
"""Configuration key holding the implementation identifier."""

PRIORITY_KEY: str = "priority"
"""Configuration key holding the numeric priority of a configuration file."""

USE_CONTEXT_KEY: str = "use_context"
"""Configuration key; anything but ``"true"`` loads implementations through the baseline context."""

DIAGNOSTICS_DEST_ENV: str = "LOGFACTORY_DIAGNOSTICS_DEST"
"""Environment key naming the diagnostics destination (a path, ``STDOUT`` or ``STDERR``)."""

CACHE_IMPL_ENV: str = "LOGFACTORY_CACHE_IMPL"
"""Environment key naming a ``MutableMapping`` class used as the registry store."""

DEST_STDOUT: str = "STDOUT"
DEST_STDERR: str = "STDERR"

FATAL_ERRORS = (MemoryError, RecursionError, SystemError)
"""Runtime failures that are always re-raised, never absorbed."""
