"""Loading and constructing facility implementations."""

from typing import Any, Optional

from .context import BASELINE, IsolationContext, LoadedType, TypeLinkError, TypeNotFoundError
from .diagnostics import DiagnosticsSink, object_id
from .exceptions import InstantiationError, ResolutionError, TypeIdentityConflict, describe, handle_fatal
from .facility import LogFactory


class _Incompatible(Exception):
    def __init__(self, loaded: LoadedType, subject: Any):
        super().__init__(f"{subject!r} is not a {LogFactory.__qualname__}")
        self.loaded = loaded
        self.subject = subject


def _name_of(obj: Any) -> str:
    cls = obj if isinstance(obj, type) else type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


class ImplementationResolver:
    """Turns an identifier into a facility instance.

    The identifier is looked up through the requested load context first.
    If that context cannot supply a usable implementation, the baseline
    context gets the final attempt; failures there are raised.

    Args:
        diagnostics: Sink receiving the lookup trace.
        baseline: The library's own context.
        facility_type: The type every implementation must be an instance
            of. Defaults to the facility type the baseline context sees.
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        baseline: IsolationContext = BASELINE,
        facility_type: Optional[type] = None,
    ) -> None:
        self._diag = diagnostics or DiagnosticsSink.disabled()
        self._baseline = baseline
        self._facility = facility_type or baseline.facility_type

    @property
    def facility_type(self) -> type:
        return self._facility

    def instantiate(self, identifier: str, load_context: Any, report_context: Any = None) -> Any:
        """Create an instance of *identifier*.

        Args:
            identifier: ``package.module.Name`` or ``package.module:Name``.
            load_context: Context the implementation is loaded through;
                ``None`` means the baseline context.
            report_context: Context the instance will serve, used in
                diagnostics only.

        Raises:
            TypeIdentityConflict: If the implementation is not this library's
                facility type.
            InstantiationError: For any other failure.
        """
        try:
            instance = self._create(identifier, load_context)
        except ResolutionError as e:
            if self._diag.enabled:
                self._diag.emit(f"An error occurred while loading the factory class: {e}")
            raise
        if self._diag.enabled:
            self._diag.emit(f"Created object {object_id(instance)} to manage context {object_id(report_context)}")
        return instance

    def _create(self, identifier: str, load_context: Any) -> Any:
        ctx = load_context if load_context is not None else self._baseline
        diag = self._diag
        rejected: Optional[_Incompatible] = None
        if ctx is not self._baseline:
            try:
                loaded = ctx.find_type(identifier)
            except TypeNotFoundError:
                if diag.enabled:
                    diag.emit(f"Unable to locate any class called '{identifier}' via context {object_id(ctx)}")
            except TypeLinkError as e:
                if diag.enabled:
                    diag.emit(
                        f"Class '{identifier}' cannot be loaded via context {object_id(ctx)}"
                        f" - it depends on something that cannot be found: {e.cause}"
                    )
            except Exception as e:
                handle_fatal(e)
                raise InstantiationError(identifier, e) from e
            else:
                try:
                    return self._construct(identifier, loaded)
                except _Incompatible as e:
                    rejected = e
                    if diag.enabled:
                        diag.emit(
                            f"Factory class {_name_of(e.subject)} loaded from context {object_id(loaded.origin)}"
                            f" does not extend '{_name_of(self._facility)}' as loaded by this context."
                        )
                        diag.log_hierarchy("[BAD CONTEXT TREE] ", ctx)
            if diag.enabled:
                diag.emit(
                    f"Unable to load factory class via context {object_id(ctx)}"
                    " - trying the context associated with this LogFactory."
                )
        return self._create_final(identifier, rejected)

    def _create_final(self, identifier: str, rejected: Optional[_Incompatible]) -> Any:
        diag = self._diag
        try:
            loaded = self._baseline.find_type(identifier)
        except (TypeNotFoundError, TypeLinkError) as e:
            if rejected is not None:
                raise self._conflict(identifier, rejected) from None
            if diag.enabled:
                if isinstance(e, TypeLinkError):
                    diag.emit(
                        f"Class '{identifier}' cannot be loaded via context {object_id(self._baseline)}"
                        " - it depends on some other class that cannot be found."
                    )
                else:
                    diag.emit(
                        f"Unable to locate any class called '{identifier}' via context {object_id(self._baseline)}"
                    )
            raise InstantiationError(identifier, e) from e
        except Exception as e:
            handle_fatal(e)
            if diag.enabled:
                diag.emit("Unable to create LogFactory instance.")
            raise InstantiationError(identifier, e) from e
        try:
            return self._construct(identifier, loaded)
        except _Incompatible as e:
            raise self._conflict(identifier, e) from None

    def _construct(self, identifier: str, loaded: LoadedType) -> Any:
        target = loaded.target
        if isinstance(target, type):
            if not issubclass(target, self._facility):
                raise _Incompatible(loaded, target)
            if self._diag.enabled:
                self._diag.emit(f"Loaded class {_name_of(target)} from context {object_id(loaded.origin)}")
        try:
            instance = target()
        except Exception as e:
            handle_fatal(e)
            if self._diag.enabled:
                self._diag.emit(f"Unable to create LogFactory instance: {describe(e)}")
            raise InstantiationError(identifier, e) from e
        if not isinstance(instance, self._facility):
            raise _Incompatible(loaded, instance)
        return instance

    def _implements_own_facility(self, loaded: LoadedType, subject: Any) -> bool:
        cls = subject if isinstance(subject, type) else type(subject)
        diag = self._diag
        try:
            own = loaded.origin.facility_type
        except Exception as e:
            handle_fatal(e)
            if diag.enabled:
                diag.emit(
                    "[CUSTOM LOG FACTORY] Error while trying to determine whether the incompatibility "
                    f"was caused by a context conflict: {describe(e)}"
                )
            return False
        if own is not self._facility and issubclass(cls, own):
            if diag.enabled:
                diag.emit(
                    f"[CUSTOM LOG FACTORY] {_name_of(cls)} implements LogFactory but was loaded "
                    "by an incompatible context."
                )
                diag.log_hierarchy("[CUSTOM LOG FACTORY] ", loaded.origin)
            return True
        for base in cls.__mro__:
            if base is not self._facility and base.__qualname__ == self._facility.__qualname__:
                if diag.enabled:
                    diag.emit(
                        f"[CUSTOM LOG FACTORY] {_name_of(cls)} implements a different definition of "
                        f"LogFactory ({base.__module__}.{base.__qualname__})."
                    )
                return True
        if diag.enabled:
            diag.emit(f"[CUSTOM LOG FACTORY] {_name_of(cls)} does not implement LogFactory.")
        return False

    def _conflict(self, identifier: str, rejected: _Incompatible) -> TypeIdentityConflict:
        duplicate = self._implements_own_facility(rejected.loaded, rejected.subject)
        parts = [
            "The application has specified that a custom LogFactory implementation should be used "
            f"but '{identifier}' cannot be converted to '{_name_of(self._facility)}'. "
        ]
        if duplicate:
            parts.append(
                "The conflict is caused by the presence of multiple LogFactory definitions "
                "in incompatible isolation contexts. If you have not explicitly specified a custom "
                "LogFactory then it is likely that the host environment has set one without your "
                "knowledge. In this case, consider naming the standard implementation through "
                "the LOGFACTORY_FACTORY environment variable."
            )
        else:
            parts.append("Please check the custom implementation.")
        msg = "".join(parts)
        if self._diag.enabled:
            self._diag.emit(msg)
        return TypeIdentityConflict(identifier, msg, duplicate)
