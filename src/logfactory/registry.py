"""Per-context registry of resolved facility instances.

Provides :class:`RegistryEntry` and :class:`RegistryCache`: the map from
isolation context to the one facility instance serving it. Contexts are held
weakly so a context torn down by its host takes its entry with it.
"""

import logging
import os
import threading
import weakref
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Tuple

from .constants import CACHE_IMPL_ENV
from .context import import_identifier
from .exceptions import describe, handle_fatal

_logger = logging.getLogger(__name__)


def _context_ref(context: Any) -> Callable[[], Any]:
    if context is None:
        return lambda: None
    try:
        return weakref.ref(context)
    except TypeError:
        return lambda: context


class RegistryEntry:
    """One cached facility instance.

    Attributes:
        instance: The resolved facility.
        attributes: Configuration entries applied when the instance was created.
        origin: Lookup step that produced the instance (``override``,
            ``service``, ``config`` or ``default``).
    """

    __slots__ = ("_context", "instance", "attributes", "origin")

    def __init__(self, context: Any, instance: Any, attributes: Optional[Mapping[str, Any]] = None, origin: Optional[str] = None):
        self._context = _context_ref(context)
        self.instance = instance
        self.attributes = dict(attributes or {})
        self.origin = origin

    @property
    def context(self) -> Any:
        """The served context, or ``None`` once it has been collected (or for the root)."""
        return self._context()

    def __repr__(self) -> str:
        return f"RegistryEntry(instance={self.instance!r}, origin={self.origin!r})"


def create_store(environ: Optional[Mapping[str, str]] = None) -> MutableMapping:
    """Create the mapping that backs a :class:`RegistryCache`.

    A ``MutableMapping`` class named by ``LOGFACTORY_CACHE_IMPL`` is used if
    it loads; otherwise a :class:`weakref.WeakKeyDictionary`.
    """
    env = os.environ if environ is None else environ
    name = env.get(CACHE_IMPL_ENV)
    if not name:
        return weakref.WeakKeyDictionary()
    try:
        store = import_identifier(name)()
        if not isinstance(store, MutableMapping):
            raise TypeError(f"{name} is not a MutableMapping")
        return store
    except Exception as e:
        handle_fatal(e)
        _logger.error("Load of custom registry store %s failed: %s", name, describe(e))
    return weakref.WeakKeyDictionary()


class RegistryCache:
    """Thread-safe map from isolation context to :class:`RegistryEntry`.

    The root context (``None``) has a dedicated slot. Contexts that cannot be
    weakly referenced are pinned in a strong map and stay alive until they
    are released explicitly.

    Args:
        store: Mapping used for ordinary contexts. Defaults to a
            :class:`weakref.WeakKeyDictionary`.
    """

    def __init__(self, store: Optional[MutableMapping] = None) -> None:
        self._entries: MutableMapping = store if store is not None else weakref.WeakKeyDictionary()
        self._pinned: Dict[int, Tuple[Any, RegistryEntry]] = {}
        self._root: Optional[RegistryEntry] = None
        self._lock = threading.RLock()

    def _lookup(self, context: Any) -> Optional[RegistryEntry]:
        if context is None:
            return self._root
        try:
            return self._entries.get(context)
        except TypeError:
            pinned = self._pinned.get(id(context))
            return pinned[1] if pinned else None

    def _store(self, context: Any, entry: RegistryEntry) -> None:
        if context is None:
            self._root = entry
            return
        try:
            self._entries[context] = entry
        except TypeError:
            _logger.warning(
                "Context %r cannot be weakly referenced; its facility stays cached until released", context
            )
            self._pinned[id(context)] = (context, entry)

    def _remove(self, context: Any) -> None:
        if context is None:
            self._root = None
            return
        try:
            self._entries.pop(context, None)
        except TypeError:
            self._pinned.pop(id(context), None)

    def get(self, context: Any) -> Optional[RegistryEntry]:
        with self._lock:
            return self._lookup(context)

    def put(
        self,
        context: Any,
        instance: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        origin: Optional[str] = None,
    ) -> Tuple[RegistryEntry, bool]:
        """Store *instance* for *context* unless an entry already exists.

        Returns:
            The entry now cached for *context*, and ``True`` if it was
            created by this call. When another resolver got there first its
            entry is returned with ``False``.
        """
        with self._lock:
            existing = self._lookup(context)
            if existing is not None:
                return existing, False
            entry = RegistryEntry(context, instance, attributes, origin)
            self._store(context, entry)
            return entry, True

    def release(self, context: Any) -> bool:
        """Tear down and evict the entry for *context*. Returns ``True`` if one existed."""
        with self._lock:
            entry = self._lookup(context)
            if entry is None:
                return False
            self.teardown(entry.instance)
            self._remove(context)
            return True

    def release_all(self) -> int:
        """Tear down and evict every entry. Returns the number evicted."""
        with self._lock:
            entries: List[RegistryEntry] = list(self._entries.values())
            entries.extend(entry for _, entry in self._pinned.values())
            if self._root is not None:
                entries.append(self._root)
            for entry in entries:
                self.teardown(entry.instance)
            self._entries.clear()
            self._pinned.clear()
            self._root = None
            return len(entries)

    def teardown(self, instance: Any) -> None:
        """Invoke the release hook of *instance*, logging any failure."""
        hook = getattr(instance, "release", None)
        if not callable(hook):
            return
        try:
            hook()
        except Exception as e:
            handle_fatal(e)
            _logger.warning("Release of %s failed: %s", type(instance).__name__, e)

    def contexts(self) -> List[Any]:
        with self._lock:
            out = list(self._entries.keys())
            out.extend(ctx for ctx, _ in self._pinned.values())
            if self._root is not None:
                out.append(None)
            return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries) + len(self._pinned) + (1 if self._root is not None else 0)
