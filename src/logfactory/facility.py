"""The abstract facility every implementation must extend."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional


class LogFactory(ABC):
    """A factory of named loggers.

    One instance is resolved per isolation context. Configuration entries
    found during resolution are applied as attributes before the instance is
    published.
    """

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[Any]: ...

    @abstractmethod
    def get_attribute_names(self) -> List[str]: ...

    @abstractmethod
    def set_attribute(self, name: str, value: Any) -> None:
        """Set *name* to *value*; a ``None`` value removes the attribute."""

    @abstractmethod
    def remove_attribute(self, name: str) -> None: ...

    @abstractmethod
    def get_instance(self, name: str) -> Any:
        """Return the logger for *name*."""

    @abstractmethod
    def release(self) -> None:
        """Drop any loggers this factory holds; called when its context is released."""
