import pytest

from logfactory.context import IsolationContext, TypeNotFoundError
from logfactory.exceptions import InstantiationError, TypeIdentityConflict
from logfactory.facility import LogFactory
from logfactory.impl import StdlibLogFactory
from logfactory.instantiation import ImplementationResolver

from conftest import CustomFactory, NotAFactory, OtherFactory, log_capture

# A same-named facility defined somewhere else, e.g. a vendored copy.
VendoredLogFactory = type("LogFactory", (), {"__module__": "vendored.logging"})
VendoredImpl = type("VendoredImpl", (VendoredLogFactory,), {"__module__": "vendored.logging"})


class ShadowFacility:
    pass


class ShadowImpl(ShadowFacility):
    pass


class NeedsArgs(StdlibLogFactory):
    def __init__(self, required):
        super().__init__()


@pytest.fixture
def resolver(baseline, diagnostics):
    return ImplementationResolver(diagnostics, baseline=baseline)


def test_instantiates_from_load_context(resolver, app):
    app.register("custom.Factory", CustomFactory)
    instance = resolver.instantiate("custom.Factory", app, app)
    assert isinstance(instance, CustomFactory)
    assert any("Created object" in line for line in log_capture)


def test_imports_dotted_identifier(resolver):
    assert isinstance(resolver.instantiate("logfactory.impl.StdlibLogFactory", None), StdlibLogFactory)


def test_falls_back_to_baseline_when_context_lacks_identifier(resolver, baseline):
    baseline.register("custom.Factory", OtherFactory)
    detached = IsolationContext("detached", parent=IsolationContext("top"))

    instance = resolver.instantiate("custom.Factory", detached, detached)
    assert type(instance) is OtherFactory
    assert any("trying the context associated with this LogFactory" in line for line in log_capture)


def test_missing_everywhere_raises_instantiation_error(resolver, app):
    with pytest.raises(InstantiationError) as exc:
        resolver.instantiate("no_such_pkg_xyz.Factory", app, app)
    assert isinstance(exc.value.cause, TypeNotFoundError)
    assert exc.value.identifier == "no_such_pkg_xyz.Factory"


def test_incompatible_type_at_baseline_is_a_defect(resolver, baseline):
    baseline.register("bad.Factory", NotAFactory)
    with pytest.raises(TypeIdentityConflict) as exc:
        resolver.instantiate("bad.Factory", baseline)
    assert exc.value.duplicate_definition is False
    assert "Please check the custom implementation" in str(exc.value)


def test_incompatible_in_context_falls_back_to_baseline(resolver, baseline, app):
    app.register("dual.Factory", NotAFactory)
    baseline.register("dual.Factory", CustomFactory)
    assert isinstance(resolver.instantiate("dual.Factory", app, app), CustomFactory)


def test_shadow_facility_in_nested_context_reports_duplicate(resolver, baseline):
    shadow = IsolationContext("shadow", parent=baseline, facility_type=ShadowFacility)
    shadow.register("shadow.Factory", ShadowImpl)

    with pytest.raises(TypeIdentityConflict) as exc:
        resolver.instantiate("shadow.Factory", shadow, shadow)
    assert exc.value.duplicate_definition is True
    assert "multiple LogFactory definitions" in str(exc.value)
    assert any("loaded by an incompatible context" in line for line in log_capture)


def test_same_named_facility_definition_reports_duplicate(resolver, baseline):
    baseline.register("vendored.Factory", VendoredImpl)
    with pytest.raises(TypeIdentityConflict) as exc:
        resolver.instantiate("vendored.Factory", None)
    assert exc.value.duplicate_definition is True


def test_constructor_requiring_arguments(resolver, baseline):
    baseline.register("args.Factory", NeedsArgs)
    with pytest.raises(InstantiationError) as exc:
        resolver.instantiate("args.Factory", baseline)
    assert isinstance(exc.value.cause, TypeError)


def test_abstract_implementation_cannot_be_created(resolver, baseline):
    baseline.register("abstract.Factory", LogFactory)
    with pytest.raises(InstantiationError):
        resolver.instantiate("abstract.Factory", baseline)


def test_constructor_error_in_context_is_not_retried(resolver, baseline, app):
    def boom():
        raise RuntimeError("no backend")

    app.register("boom.Factory", boom)
    baseline.register("boom.Factory", CustomFactory)
    with pytest.raises(InstantiationError) as exc:
        resolver.instantiate("boom.Factory", app, app)
    assert isinstance(exc.value.cause, RuntimeError)


def test_zero_argument_factory_functions(resolver, baseline):
    baseline.register("fn.Factory", lambda: CustomFactory())
    baseline.register("fn.Wrong", lambda: object())

    assert isinstance(resolver.instantiate("fn.Factory", None), CustomFactory)
    with pytest.raises(TypeIdentityConflict):
        resolver.instantiate("fn.Wrong", None)


def test_fatal_errors_propagate(resolver, baseline):
    def exhausted():
        raise MemoryError()

    baseline.register("oom.Factory", exhausted)
    with pytest.raises(MemoryError):
        resolver.instantiate("oom.Factory", baseline)


def test_facility_type_defaults_to_baseline_view(resolver):
    assert resolver.facility_type is LogFactory
