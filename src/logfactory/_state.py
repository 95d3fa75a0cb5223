# logfactory/_state.py
import os
import threading
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Any, Optional

_current_context: ContextVar[Any] = ContextVar("logfactory_context", default=None)

_lock = threading.Lock()
_diagnostics = None
_engine = None


def current_context() -> Any:
    """Return the isolation context bound to the running thread or task (``None`` is the root)."""
    return _current_context.get()


@contextmanager
def use_context(context: Any):
    """Context manager: resolve against *context* within the block."""
    tok = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(tok)


def get_diagnostics():
    """Return the process-wide diagnostics sink, creating it from the environment once."""
    global _diagnostics
    if _diagnostics is None:
        with _lock:
            if _diagnostics is None:
                from .diagnostics import DiagnosticsSink

                _diagnostics = DiagnosticsSink.from_environ(os.environ)
    return _diagnostics


def get_engine():
    global _engine
    if _engine is None:
        # _lock is not reentrant; the sink must exist before it is taken.
        diagnostics = get_diagnostics()
        with _lock:
            if _engine is None:
                from .engine import ResolutionEngine

                engine = ResolutionEngine(diagnostics=diagnostics)
                engine.log_bootstrap()
                _engine = engine
    return _engine


def set_engine(engine: Optional[Any]) -> Optional[Any]:
    global _engine
    with _lock:
        previous, _engine = _engine, engine
    return previous
