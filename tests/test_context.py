import sys

import pytest

from logfactory.context import (
    BASELINE,
    BaselineContext,
    IsolationContext,
    TypeLinkError,
    TypeNotFoundError,
    import_identifier,
    split_identifier,
)
from logfactory.facility import LogFactory
from logfactory.impl import StdlibLogFactory

from conftest import CustomFactory, write_file


def test_split_identifier_forms():
    assert split_identifier("pkg.mod.Name") == ("pkg.mod", "Name")
    assert split_identifier("pkg.mod:Outer.Inner") == ("pkg.mod", "Outer.Inner")


@pytest.mark.parametrize("bad", ["Name", ":Name", "pkg:", ""])
def test_split_identifier_rejects_unqualified(bad):
    with pytest.raises(TypeNotFoundError):
        split_identifier(bad)


def test_import_identifier_both_forms():
    assert import_identifier("logfactory.impl.StdlibLogFactory") is StdlibLogFactory
    assert import_identifier("logfactory.impl:StdlibLogFactory") is StdlibLogFactory


def test_import_identifier_missing_module_or_attribute():
    with pytest.raises(TypeNotFoundError):
        import_identifier("no_such_package_xyz.Factory")
    with pytest.raises(TypeNotFoundError):
        import_identifier("logfactory.impl.Missing")


def test_import_identifier_missing_dependency(tmp_path, monkeypatch):
    write_file(tmp_path, "broken_plugin_mod.py", "import no_such_dependency_xyz\n\nclass Factory:\n    pass\n")
    monkeypatch.syspath_prepend(str(tmp_path))
    with pytest.raises(TypeLinkError) as exc:
        import_identifier("broken_plugin_mod.Factory")
    assert exc.value.identifier == "broken_plugin_mod.Factory"
    sys.modules.pop("broken_plugin_mod", None)


def test_find_type_prefers_own_registry_and_tags_origin():
    parent = IsolationContext("parent", types={"x.F": StdlibLogFactory})
    child = IsolationContext("child", parent=parent, types={"x.F": CustomFactory})

    loaded = child.find_type("x.F")
    assert loaded.target is CustomFactory
    assert loaded.origin is child

    parent_loaded = IsolationContext("other", parent=parent).find_type("x.F")
    assert parent_loaded.target is StdlibLogFactory
    assert parent_loaded.origin is parent


def test_find_type_imports_at_top_of_tree():
    ctx = IsolationContext("child", parent=IsolationContext("top"))
    loaded = ctx.find_type("logfactory.impl.StdlibLogFactory")
    assert loaded.target is StdlibLogFactory
    assert loaded.origin is ctx.parent


def test_register_binds_identifier():
    ctx = IsolationContext("ctx")
    ctx.register("custom.F", CustomFactory)
    assert ctx.find_type("custom.F").target is CustomFactory


def test_facility_type_is_inherited_and_overridable():
    class ShadowFacility:
        pass

    root = IsolationContext("root")
    shadow = IsolationContext("shadow", parent=root, facility_type=ShadowFacility)
    nested = IsolationContext("nested", parent=shadow)

    assert root.facility_type is LogFactory
    assert shadow.facility_type is ShadowFacility
    assert nested.facility_type is ShadowFacility


def test_find_resources_lists_ancestors_first(tmp_path):
    top_dir, child_dir = tmp_path / "top", tmp_path / "child"
    write_file(top_dir, "logfactory.properties", "a=1")
    write_file(child_dir, "logfactory.properties", "a=2")
    top = IsolationContext("top", search_path=(str(top_dir),))
    child = IsolationContext("child", parent=top, search_path=(str(child_dir), str(top_dir)))

    assert child.find_resources("logfactory.properties") == [
        str(top_dir / "logfactory.properties"),
        str(child_dir / "logfactory.properties"),
    ]
    assert child.find_resources("missing.properties") == []


def test_ancestry_walks_to_the_top():
    a = IsolationContext("a")
    b = IsolationContext("b", parent=a)
    c = IsolationContext("c", parent=b)
    assert list(c.ancestry()) == [c, b, a]


def test_contexts_compare_by_identity():
    assert IsolationContext("same") != IsolationContext("same")
    ctx = IsolationContext("same")
    assert {ctx: 1}[ctx] == 1


def test_baseline_searches_sys_path(tmp_path, monkeypatch):
    write_file(tmp_path, "logfactory.properties", "factory=x.Y")
    monkeypatch.syspath_prepend(str(tmp_path))
    assert str(tmp_path / "logfactory.properties") in BaselineContext("b").find_resources("logfactory.properties")


def test_baseline_singleton():
    assert isinstance(BASELINE, BaselineContext)
    assert BASELINE.facility_type is LogFactory
