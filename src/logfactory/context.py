"""Isolation contexts and identifier loading.

An :class:`IsolationContext` is the boundary a host application uses to group
related plugin code and resources. Each context carries its own constructor
registry, a resource search path and the facility type it sees. Contexts form
a tree through ``parent``; lookups delegate to the parent before importing.

The :data:`BASELINE` context is this library's own context: it imports
identifiers with :mod:`importlib` and searches ``sys.path`` for resources.
"""

import importlib
import os
import sys
from typing import Any, Callable, Dict, Iterator, List, Mapping, NamedTuple, Optional, Tuple, Union

Target = Union[type, Callable[[], Any]]


class TypeNotFoundError(LookupError):
    """Raised when a context cannot find an implementation identifier."""

    def __init__(self, identifier: str, context: Any = None):
        where = f" in context '{getattr(context, 'name', context)}'" if context is not None else ""
        super().__init__(f"No implementation named '{identifier}'{where}")
        self.identifier = identifier


class TypeLinkError(LookupError):
    """Raised when an identifier exists but one of its dependencies cannot be loaded."""

    def __init__(self, identifier: str, cause: Exception):
        super().__init__(f"'{identifier}' depends on something that cannot be loaded: {cause}")
        self.identifier = identifier
        self.cause = cause


class LoadedType(NamedTuple):
    """A class or zero-argument factory tagged with the context that supplied it."""

    target: Target
    origin: "IsolationContext"


def split_identifier(identifier: str) -> Tuple[str, str]:
    """Split ``pkg.mod.Name`` or ``pkg.mod:Name`` into module and attribute path."""
    if ":" in identifier:
        module_name, _, attr = identifier.partition(":")
    else:
        module_name, _, attr = identifier.rpartition(".")
    if not module_name or not attr:
        raise TypeNotFoundError(identifier)
    return module_name, attr


def import_identifier(identifier: str) -> Target:
    """Import the object named by *identifier*.

    Raises:
        TypeNotFoundError: If the module or attribute does not exist.
        TypeLinkError: If the module exists but fails to import one of its
            own dependencies.
    """
    module_name, attr = split_identifier(identifier)
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        missing = e.name or ""
        if missing and (module_name == missing or module_name.startswith(missing + ".")):
            raise TypeNotFoundError(identifier) from e
        raise TypeLinkError(identifier, e) from e
    except ImportError as e:
        raise TypeLinkError(identifier, e) from e

    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise TypeNotFoundError(identifier) from e
    return target


class IsolationContext:
    """A plugin realm that supplies implementations and resources.

    Args:
        name: Human-readable name used in diagnostics.
        parent: Context consulted before this one's own registry falls back
            to importing.
        types: Constructor registry mapping identifiers to classes or
            zero-argument factories.
        search_path: Directories searched for resources, after the parent's.
        facility_type: The facility base class as defined inside this
            context. Defaults to the parent's, and at the top of the tree to
            :class:`logfactory.LogFactory`.

    Contexts compare and hash by identity and may be weakly referenced, so
    a torn-down context never stays alive through the registry cache.
    """

    def __init__(
        self,
        name: str,
        parent: Optional["IsolationContext"] = None,
        *,
        types: Optional[Mapping[str, Target]] = None,
        search_path: Tuple[str, ...] = (),
        facility_type: Optional[type] = None,
    ) -> None:
        self.name = name
        self.parent = parent
        self._types: Dict[str, Target] = dict(types or {})
        self._search_path = tuple(os.fspath(p) for p in search_path)
        self._facility_type = facility_type

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    @property
    def facility_type(self) -> type:
        if self._facility_type is not None:
            return self._facility_type
        if self.parent is not None:
            return self.parent.facility_type
        from .facility import LogFactory

        return LogFactory

    def register(self, identifier: str, target: Target) -> None:
        """Bind *identifier* to a class or zero-argument factory in this context."""
        self._types[identifier] = target

    def find_type(self, identifier: str) -> LoadedType:
        """Look *identifier* up in this context, then its ancestors, then by import.

        Raises:
            TypeNotFoundError: If no context in the chain knows the identifier.
            TypeLinkError: If importing the identifier fails on a dependency.
        """
        target = self._types.get(identifier)
        if target is not None:
            return LoadedType(target, self)
        if self.parent is not None:
            return self.parent.find_type(identifier)
        return LoadedType(import_identifier(identifier), self)

    def search_path(self) -> Tuple[str, ...]:
        return self._search_path

    def find_resources(self, name: str) -> List[str]:
        """Return every location of resource *name* visible to this context.

        Ancestor locations come first, in the order the ancestors report them.
        """
        found: List[str] = list(self.parent.find_resources(name)) if self.parent is not None else []
        for directory in self.search_path():
            candidate = os.path.join(directory, name)
            if os.path.isfile(candidate) and candidate not in found:
                found.append(candidate)
        return found

    def ancestry(self) -> Iterator["IsolationContext"]:
        ctx: Optional[IsolationContext] = self
        while ctx is not None:
            yield ctx
            ctx = ctx.parent


class BaselineContext(IsolationContext):
    """The library's own context: ``importlib`` for types, ``sys.path`` for resources."""

    def search_path(self) -> Tuple[str, ...]:
        dirs = []
        for entry in sys.path:
            path = entry or os.getcwd()
            if os.path.isdir(path) and path not in dirs:
                dirs.append(path)
        return tuple(dirs)


BASELINE = BaselineContext("baseline")
"""The context this library itself was loaded through."""
