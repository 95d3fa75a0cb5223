"""Default facility implementation backed by the standard :mod:`logging` package."""

import logging
import threading
from typing import Any, Dict, List, Optional

from .facility import LogFactory

_logger = logging.getLogger(__name__)

LEVEL_ATTRIBUTE = "level"


def parse_level(value: Any) -> Optional[int]:
    """Return the numeric logging level named by *value*, or ``None`` if it names none.

    Accepts ints, numeric strings and level names in any case (``"debug"``).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else None


class FactoryLogger(logging.LoggerAdapter):
    """A view of a shared :class:`logging.Logger` with its own threshold.

    Records below ``level`` are dropped here; the rest go to the underlying
    logger, which applies its own configuration. The underlying logger is
    never modified, so factories serving other contexts are unaffected.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.NOTSET) -> None:
        super().__init__(logger, {})
        self.level = level

    def process(self, msg, kwargs):
        return msg, kwargs

    def setLevel(self, level: Any) -> None:
        parsed = parse_level(level)
        if parsed is None:
            raise ValueError(f"Unknown level: {level!r}")
        self.level = parsed

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.level and self.logger.isEnabledFor(level)

    def getEffectiveLevel(self) -> int:
        return max(self.level, self.logger.getEffectiveLevel())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({logging.getLevelName(self.getEffectiveLevel())})>"


class StdlibLogFactory(LogFactory):
    """Hands out :class:`FactoryLogger` views and keeps them per name.

    The ``level`` attribute, when set to a known level, is the threshold of
    every logger handed out afterwards. Unknown levels are logged and ignored.
    """

    def __init__(self) -> None:
        self._attributes: Dict[str, Any] = {}
        self._instances: Dict[str, FactoryLogger] = {}
        self._level = logging.NOTSET
        self._lock = threading.Lock()

    def get_attribute(self, name: str) -> Optional[Any]:
        return self._attributes.get(name)

    def get_attribute_names(self) -> List[str]:
        return list(self._attributes.keys())

    def set_attribute(self, name: str, value: Any) -> None:
        if value is None:
            self.remove_attribute(name)
            return
        if name == LEVEL_ATTRIBUTE:
            level = parse_level(value)
            if level is None:
                _logger.warning("Ignoring unknown logging level %r for %s", value, type(self).__name__)
            else:
                self._level = level
        self._attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        if name == LEVEL_ATTRIBUTE:
            self._level = logging.NOTSET
        self._attributes.pop(name, None)

    def get_instance(self, name: str) -> FactoryLogger:
        if isinstance(name, type):
            name = f"{name.__module__}.{name.__qualname__}"
        with self._lock:
            log = self._instances.get(name)
            if log is None:
                log = FactoryLogger(logging.getLogger(name), self._level)
                self._instances[name] = log
            return log

    def release(self) -> None:
        with self._lock:
            self._instances.clear()
