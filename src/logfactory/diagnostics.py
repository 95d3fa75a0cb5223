"""Diagnostics sink for tracing the resolution process.

The sink is configured once per process from ``LOGFACTORY_DIAGNOSTICS_DEST``
and injected into every :class:`~logfactory.engine.ResolutionEngine`. It
writes through a single :class:`logging.Handler`, whose lock serializes
concurrent writers. A disabled sink does nothing, and no emission ever raises.
"""

import logging
import sys
from typing import Any, Mapping, Optional

from .constants import DEST_STDERR, DEST_STDOUT, DIAGNOSTICS_DEST_ENV

_logger = logging.getLogger(__name__)


def object_id(obj: Any) -> str:
    """Return ``<qualified type name>@<identity>`` for diagnostics, ``root`` for ``None``."""
    if obj is None:
        return "root"
    cls = type(obj)
    return f"{cls.__module__}.{cls.__qualname__}@{id(obj):x}"


class DiagnosticsSink:
    """Line-oriented diagnostics destination.

    Args:
        handler: Handler that receives each line, or ``None`` for a disabled
            sink.
        prefix: Text prepended to every line written with :meth:`emit`.
    """

    def __init__(self, handler: Optional[logging.Handler] = None, prefix: str = "") -> None:
        self._handler = handler
        self._prefix = prefix
        if handler is not None:
            handler.setFormatter(logging.Formatter("%(message)s"))

    @classmethod
    def disabled(cls) -> "DiagnosticsSink":
        return cls(None)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], prefix: Optional[str] = None) -> "DiagnosticsSink":
        """Create a sink from the destination named in *environ*.

        ``STDOUT`` and ``STDERR`` select the standard streams; any other value
        is a file path opened for appending. A missing key, or a path that
        cannot be opened, yields a disabled sink.
        """
        dest = environ.get(DIAGNOSTICS_DEST_ENV)
        if not dest:
            return cls.disabled()
        if prefix is None:
            from .context import BASELINE

            prefix = f"[LogFactory from {object_id(BASELINE)}] "
        handler: logging.Handler
        if dest == DEST_STDOUT:
            handler = logging.StreamHandler(sys.stdout)
        elif dest == DEST_STDERR:
            handler = logging.StreamHandler(sys.stderr)
        else:
            try:
                handler = logging.FileHandler(dest, mode="a", encoding="utf-8")
            except OSError as e:
                _logger.debug("Diagnostics destination %s cannot be opened: %s", dest, e)
                return cls.disabled()
        return cls(handler, prefix)

    @property
    def enabled(self) -> bool:
        return self._handler is not None

    def emit(self, message: str) -> None:
        self._write(self._prefix + message)

    def emit_raw(self, message: str) -> None:
        self._write(message)

    def _write(self, line: str) -> None:
        handler = self._handler
        if handler is None:
            return
        try:
            record = logging.LogRecord(_logger.name, logging.DEBUG, __file__, 0, line, None, None)
            handler.handle(record)
            handler.flush()
        except Exception:
            pass

    def log_hierarchy(self, prefix: str, context: Any) -> None:
        """Emit *context* and the chain of its ancestors."""
        if not self.enabled:
            return
        if context is None:
            self.emit(prefix + "root context")
            return
        self.emit(f"{prefix}{object_id(context)} == '{context!r}'")
        try:
            chain = " --> ".join(object_id(c) for c in context.ancestry())
        except Exception as e:
            self.emit(f"{prefix}Context ancestry cannot be determined: {e}")
            return
        self.emit(f"{prefix}Context tree: {chain} --> ROOT")

    def log_environment(self, baseline: Any) -> None:
        if not self.enabled:
            return
        self.emit(f"[ENV] Module search path (sys.path): {list(sys.path)}")
        self.emit(f"[ENV] logfactory was loaded via context {object_id(baseline)}")
        self.log_hierarchy("[ENV] Ancestry of the baseline context is ", baseline)

    def close(self) -> None:
        handler, self._handler = self._handler, None
        if handler is not None:
            handler.close()
