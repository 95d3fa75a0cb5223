import logging
from typing import Any, List, Optional

from . import _state
from .engine import CURRENT, ResolutionEngine

_logger = logging.getLogger(__name__)


def default_engine() -> ResolutionEngine:
    """Return the process-wide engine, creating it on first use."""
    return _state.get_engine()


def get_factory(context: Any = CURRENT) -> Any:
    """Return the facility instance serving *context* (default: the current context)."""
    return default_engine().resolve(context)


def get_log(name: Any) -> Any:
    """Return a logger for *name* (a string or a class) from the current context's factory."""
    return get_factory().get_instance(name)


def release(context: Any) -> bool:
    """Release the factory cached for *context*; ``None`` releases the root context's."""
    return default_engine().release(context)


def release_all() -> int:
    return default_engine().release_all()


def set_attribute(instance: Any, name: str, value: Optional[Any]) -> None:
    """Set attribute *name* on *instance*; a ``None`` value removes it."""
    if value is None:
        instance.remove_attribute(name)
    else:
        instance.set_attribute(name, value)


def get_attribute(instance: Any, name: str) -> Optional[Any]:
    return instance.get_attribute(name)


def get_attribute_names(instance: Any) -> List[str]:
    return list(instance.get_attribute_names())


def reset() -> None:
    """Release every cached factory and discard the process-wide engine."""
    engine = _state.set_engine(None)
    if engine is not None:
        engine.release_all()
        _logger.debug("Default engine discarded")
