"""Exception hierarchy for logfactory.

All library exceptions inherit from :class:`LogFactoryError`. Only
:class:`ResolutionError` and its subclasses ever reach callers of
``resolve()``; configuration and discovery problems are absorbed and
reported through the diagnostics sink.
"""

from typing import Any, Optional

from .constants import FATAL_ERRORS


class LogFactoryError(Exception):
    """Base exception for all logfactory errors."""

    pass


class ConfigParseError(LogFactoryError):
    """Raised when a configuration file cannot be read or has a malformed value.

    Attributes:
        origin: Location of the offending configuration file.
    """

    def __init__(self, origin: str, msg: str):
        super().__init__(f"Invalid configuration at '{origin}': {msg}")
        self.origin = origin


class DiscoveryError(LogFactoryError):
    """Raised when enumerating configuration resources is denied or fails.

    Attributes:
        name: The logical resource name being enumerated.
        cause: The original exception.
    """

    def __init__(self, name: str, cause: Exception):
        super().__init__(f"Unable to enumerate resources named '{name}': {cause.__class__.__name__}: {cause}")
        self.name = name
        self.cause = cause


class ResolutionError(LogFactoryError):
    """Raised when no facility implementation can be produced.

    Attributes:
        identifier: The implementation identifier that failed, if any.
    """

    def __init__(self, msg: str, identifier: Optional[str] = None):
        super().__init__(msg)
        self.identifier = identifier


class TypeIdentityConflict(ResolutionError):
    """Raised when a loaded implementation is not the facility type this library knows.

    Attributes:
        identifier: The implementation identifier.
        duplicate_definition: ``True`` if the implementation does satisfy the
            facility type of its own context, meaning two definitions of the
            facility live in incompatible contexts.
    """

    def __init__(self, identifier: str, msg: str, duplicate_definition: bool):
        super().__init__(msg, identifier)
        self.duplicate_definition = duplicate_definition


class InstantiationError(ResolutionError):
    """Raised when an implementation cannot be found, loaded or constructed.

    Attributes:
        identifier: The implementation identifier.
        cause: The original exception.
    """

    def __init__(self, identifier: str, cause: Exception):
        super().__init__(
            f"Unable to create facility implementation '{identifier}'; cause: {cause.__class__.__name__}: {cause}",
            identifier,
        )
        self.cause = cause


class OverrideInstantiationError(ResolutionError):
    """Raised when the implementation named by the environment override fails.

    No further lookup step is attempted after this error.

    Attributes:
        identifier: The override identifier.
        cause: The underlying resolution error.
    """

    def __init__(self, identifier: str, cause: Exception):
        super().__init__(
            f"Override implementation '{identifier}' could not be created: {cause}",
            identifier,
        )
        self.cause = cause


def handle_fatal(error: BaseException) -> None:
    """Re-raise *error* if it is a process-fatal condition."""
    if isinstance(error, FATAL_ERRORS) or not isinstance(error, Exception):
        raise error


def describe(error: Any) -> str:
    return f"{error.__class__.__name__}: {str(error).strip()}"
