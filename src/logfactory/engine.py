# logfactory/engine.py
import enum
import logging
import os
import threading
import time
from typing import Any, Dict, Mapping, Optional

from ._state import current_context
from .config_resolver import ConfigurationResolver
from .config_sources import ConfigSource
from .constants import (
    FACTORY_DEFAULT,
    FACTORY_ENV,
    FACTORY_KEY,
    FACTORY_PROPERTIES,
    SERVICE_ID,
    USE_CONTEXT_KEY,
)
from .context import BASELINE, IsolationContext
from .diagnostics import DiagnosticsSink, object_id
from .exceptions import OverrideInstantiationError, ResolutionError, describe, handle_fatal
from .instantiation import ImplementationResolver
from .registry import RegistryCache, RegistryEntry, create_store

_logger = logging.getLogger(__name__)

CURRENT: Any = object()
"""Sentinel: resolve for the context bound with :func:`logfactory.use_context`."""


class ResolutionState(enum.Enum):
    UNRESOLVED = "unresolved"
    LOOKING_UP = "looking_up"
    RESOLVED = "resolved"
    FAILED = "failed"


class _Lookup:
    __slots__ = ("context", "state", "origin", "started")

    def __init__(self, context: Any) -> None:
        self.context = context
        self.state = ResolutionState.UNRESOLVED
        self.origin: Optional[str] = None
        self.started = time.perf_counter()

    def advance(self, state: ResolutionState) -> None:
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Resolution for %s: %s -> %s", object_id(self.context), self.state.value, state.value)
        self.state = state


def _check_context(context: Any) -> None:
    if context is None or isinstance(context, IsolationContext):
        return
    missing = [
        name for name in ("find_type", "find_resources", "ancestry") if not callable(getattr(context, name, None))
    ]
    if missing:
        raise TypeError(
            f"{type(context).__name__} is not an isolation context; it lacks {', '.join(missing)}. "
            "Pass an IsolationContext (or an object with the same interface) or None for the root."
        )


class ResolutionEngine:
    """Resolves and caches one facility instance per isolation context.

    Lookup order on a cache miss:

    1. the identifier in ``LOGFACTORY_FACTORY`` (failures are raised),
    2. the first line of the ``services/logfactory.LogFactory`` resource,
    3. the ``factory`` key of the winning ``logfactory.properties`` file,
    4. :data:`~logfactory.constants.FACTORY_DEFAULT` through the baseline context.

    Contexts must be :class:`~logfactory.context.IsolationContext` objects,
    or objects offering ``find_type``, ``find_resources`` and ``ancestry``.

    Args:
        diagnostics: Sink receiving the lookup trace.
        environ: Environment consulted at resolution time. Defaults to
            ``os.environ``.
        cache: Registry used to store resolved instances.
        baseline: The library's own context.
        config_name: Logical name of the configuration file.
        default_identifier: Identifier of the last-resort implementation.
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        environ: Optional[Mapping[str, str]] = None,
        cache: Optional[RegistryCache] = None,
        baseline: IsolationContext = BASELINE,
        config_name: str = FACTORY_PROPERTIES,
        default_identifier: str = FACTORY_DEFAULT,
    ) -> None:
        self._diag = diagnostics or DiagnosticsSink.disabled()
        self._environ = environ
        self._cache = cache if cache is not None else RegistryCache(create_store(self.environ))
        self._baseline = baseline
        self._config_name = config_name
        self._default = default_identifier
        self._configs = ConfigurationResolver(self._diag, baseline)
        self._instantiator = ImplementationResolver(self._diag, baseline)
        self._stats_lock = threading.Lock()
        self._resolve_count = 0
        self._cache_hit_count = 0
        self._created_at = time.time()

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    @property
    def cache(self) -> RegistryCache:
        return self._cache

    @property
    def diagnostics(self) -> DiagnosticsSink:
        return self._diag

    def log_bootstrap(self) -> None:
        if self._diag.enabled:
            self._diag.log_environment(self._baseline)
            self._diag.emit("BOOTSTRAP COMPLETED")

    def resolve(self, context: Any = CURRENT) -> Any:
        """Return the facility instance serving *context*.

        Args:
            context: The isolation context to serve. Defaults to the context
                bound by :func:`logfactory.use_context`; ``None`` is the root.

        Raises:
            TypeError: If *context* is not an isolation context.
            OverrideInstantiationError: If the override identifier fails.
            TypeIdentityConflict: If the default implementation is not a
                compatible facility.
            InstantiationError: If the default implementation fails.
        """
        if context is CURRENT:
            context = current_context()
        _check_context(context)
        if context is None and self._diag.enabled:
            self._diag.emit("Context is root (no isolation context bound).")

        entry = self._cache.get(context)
        if entry is not None:
            with self._stats_lock:
                self._cache_hit_count += 1
            return entry.instance

        lookup = _Lookup(context)
        lookup.advance(ResolutionState.LOOKING_UP)
        try:
            entry = self._look_up(lookup)
        except BaseException:
            lookup.advance(ResolutionState.FAILED)
            raise
        lookup.advance(ResolutionState.RESOLVED)
        return entry.instance

    def _look_up(self, lookup: _Lookup) -> RegistryEntry:
        context = lookup.context
        diag = self._diag
        if diag.enabled:
            diag.emit(
                "[LOOKUP] LogFactory implementation requested for the first time for context "
                + object_id(context)
            )
            diag.log_hierarchy("[LOOKUP] ", context)

        source = self._configs.locate(context, self._config_name)
        load_context = self._load_context(context, source)

        factory = self._from_override(context, load_context)
        if factory is not None:
            lookup.origin = "override"
        if factory is None:
            factory = self._from_service_registry(context, load_context)
            if factory is not None:
                lookup.origin = "service"
        if factory is None:
            factory = self._from_config(context, load_context, source)
            if factory is not None:
                lookup.origin = "config"
        if factory is None:
            if diag.enabled:
                diag.emit(
                    f"[LOOKUP] Loading the default LogFactory implementation '{self._default}' via the "
                    "baseline context (ie not looking in the requesting context)."
                )
            factory = self._instantiator.instantiate(self._default, self._baseline, context)
            lookup.origin = "default"

        return self._publish(lookup, factory, source)

    def _load_context(self, context: Any, source: Optional[ConfigSource]) -> IsolationContext:
        load_context = context if context is not None else self._baseline
        if source is not None:
            flag = source.get(USE_CONTEXT_KEY)
            if flag is not None and flag.strip().lower() != "true":
                load_context = self._baseline
        return load_context

    def _from_override(self, context: Any, load_context: IsolationContext) -> Optional[Any]:
        diag = self._diag
        if diag.enabled:
            diag.emit(
                f"[LOOKUP] Looking for environment variable [{FACTORY_ENV}] to define the LogFactory "
                "subclass to use..."
            )
        identifier = (self.environ.get(FACTORY_ENV) or "").strip()
        if not identifier:
            if diag.enabled:
                diag.emit(f"[LOOKUP] No environment variable [{FACTORY_ENV}] defined.")
            return None
        if diag.enabled:
            diag.emit(
                f"[LOOKUP] Creating an instance of LogFactory class '{identifier}' as specified by "
                f"environment variable {FACTORY_ENV}"
            )
        try:
            return self._instantiator.instantiate(identifier, load_context, context)
        except ResolutionError as e:
            if diag.enabled:
                diag.emit(
                    "[LOOKUP] An exception occurred while trying to create an instance of the custom "
                    f"factory class: [{describe(e)}] as specified by an environment variable."
                )
            raise OverrideInstantiationError(identifier, e) from e

    def read_service_entry(self, context: Any) -> Optional[str]:
        """Return the identifier named by the service-registry resource visible to *context*."""
        ctx = context if context is not None else self._baseline
        locations = ctx.find_resources(SERVICE_ID)
        if not locations:
            return None
        with open(locations[0], encoding="utf-8") as f:
            first = f.readline()
        return first.strip() or None

    def _from_service_registry(self, context: Any, load_context: IsolationContext) -> Optional[Any]:
        diag = self._diag
        if diag.enabled:
            diag.emit(
                f"[LOOKUP] Looking for a resource file of name [{SERVICE_ID}] to define the LogFactory "
                "subclass to use..."
            )
        try:
            identifier = self.read_service_entry(context)
            if identifier is None:
                if diag.enabled:
                    diag.emit(f"[LOOKUP] No resource file with name '{SERVICE_ID}' found.")
                return None
            if diag.enabled:
                diag.emit(
                    f"[LOOKUP] Creating an instance of LogFactory class {identifier} as specified by file "
                    f"'{SERVICE_ID}' which was present in the path of the context."
                )
            return self._instantiator.instantiate(identifier, load_context, context)
        except Exception as e:
            handle_fatal(e)
            if diag.enabled:
                diag.emit(
                    "[LOOKUP] An exception occurred while trying to create an instance of the custom factory "
                    f"class: [{describe(e)}]. Trying alternative implementations..."
                )
            return None

    def _from_config(
        self, context: Any, load_context: IsolationContext, source: Optional[ConfigSource]
    ) -> Optional[Any]:
        diag = self._diag
        if source is None:
            if diag.enabled:
                diag.emit("[LOOKUP] No properties file available to determine LogFactory subclass from..")
            return None
        if diag.enabled:
            diag.emit(
                f"[LOOKUP] Looking in properties file for entry with key '{FACTORY_KEY}' to define the "
                "LogFactory subclass to use..."
            )
        identifier = (source.get(FACTORY_KEY) or "").strip()
        if not identifier:
            if diag.enabled:
                diag.emit("[LOOKUP] Properties file has no entry specifying LogFactory subclass.")
            return None
        if diag.enabled:
            diag.emit(f"[LOOKUP] Properties file specifies LogFactory subclass '{identifier}'")
        try:
            return self._instantiator.instantiate(identifier, load_context, context)
        except ResolutionError as e:
            if diag.enabled:
                diag.emit(
                    f"[LOOKUP] Properties file at '{source.origin}' names an unusable implementation: "
                    f"{describe(e)}. Trying alternative implementations..."
                )
            return None

    def _publish(self, lookup: _Lookup, factory: Any, source: Optional[ConfigSource]) -> RegistryEntry:
        attributes: Dict[str, Any] = {}
        if source is not None:
            for name, value in source.entries.items():
                if name == FACTORY_KEY:
                    continue
                factory.set_attribute(name, value)
                attributes[name] = value

        entry, created = self._cache.put(lookup.context, factory, attributes, lookup.origin)
        if not created:
            if self._diag.enabled:
                self._diag.emit(
                    f"Discarding {object_id(factory)}; context {object_id(lookup.context)} was resolved "
                    f"concurrently to {object_id(entry.instance)}"
                )
            self._cache.teardown(factory)
            with self._stats_lock:
                self._cache_hit_count += 1
            return entry

        with self._stats_lock:
            self._resolve_count += 1
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug(
                "Resolved %s for %s from %s in %.2f ms",
                object_id(factory),
                object_id(lookup.context),
                lookup.origin,
                (time.perf_counter() - lookup.started) * 1000,
            )
        return entry

    def release(self, context: Any) -> bool:
        """Tear down and forget the instance serving *context*."""
        if self._diag.enabled:
            self._diag.emit(f"Releasing factory for context {object_id(context)}")
        return self._cache.release(context)

    def release_all(self) -> int:
        """Tear down and forget every cached instance."""
        if self._diag.enabled:
            self._diag.emit("Releasing factory for all contexts.")
        return self._cache.release_all()

    def stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            resolves = self._resolve_count
            hits = self._cache_hit_count
        total = resolves + hits
        return {
            "uptime_seconds": time.time() - self._created_at,
            "total_resolves": resolves,
            "cache_hits": hits,
            "cache_hit_rate": (hits / total) if total > 0 else 0.0,
            "cached_contexts": len(self._cache),
        }
