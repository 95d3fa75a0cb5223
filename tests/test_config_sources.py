import json

import pytest

from logfactory.config_sources import (
    ConfigSource,
    JsonFileSource,
    PropertiesFileSource,
    YamlFileSource,
    open_source,
    parse_properties,
)
from logfactory.exceptions import ConfigParseError


def test_parse_properties_separators():
    text = "a=1\nb: 2\nc 3\nd = 4\ne\n"
    assert parse_properties(text) == {"a": "1", "b": "2", "c": "3", "d": "4", "e": ""}


def test_parse_properties_comments_and_blank_lines():
    text = "# comment\n! also a comment\n\n   key=value\n"
    assert parse_properties(text) == {"key": "value"}


def test_parse_properties_continuation_and_escapes():
    text = "long=first \\\n    second\npath=C:\\\\logs\nweird\\=key=x\n"
    entries = parse_properties(text)
    assert entries["long"] == "first second"
    assert entries["path"] == "C:\\logs"
    assert entries["weird=key"] == "x"


def test_parse_properties_later_duplicates_win():
    assert parse_properties("k=1\nk=2\n") == {"k": "2"}


def test_parse_properties_decodes_unicode_escapes():
    text = "greeting=caf\\u00e9\nemoji=\\uD83D\\uDE00\n\\u006bey=v\n"
    entries = parse_properties(text)
    assert entries["greeting"] == "café"
    assert entries["emoji"] == "\U0001F600"
    assert entries["key"] == "v"


@pytest.mark.parametrize("value", ["\\u12", "\\u12G4", "\\u"])
def test_malformed_unicode_escape_is_a_parse_error(tmp_path, value):
    f = tmp_path / "logfactory.properties"
    f.write_text(f"name={value}\n", encoding="utf-8")
    with pytest.raises(ConfigParseError, match="uxxxx"):
        PropertiesFileSource(str(f)).load()


def test_config_source_priority_defaults_to_zero():
    src = ConfigSource.from_entries("here", {"factory": "x.Y"})
    assert src.priority == 0.0
    assert src.get("factory") == "x.Y"


def test_config_source_parses_priority():
    src = ConfigSource.from_entries("here", {"priority": " 2.5 "})
    assert src.priority == 2.5
    assert src.entries["priority"] == " 2.5 "


@pytest.mark.parametrize("raw", ["high", "", "1,5", "nan"])
def test_config_source_rejects_bad_priority(raw):
    with pytest.raises(ConfigParseError) as exc:
        ConfigSource.from_entries("somewhere.properties", {"priority": raw})
    assert exc.value.origin == "somewhere.properties"


def test_config_source_entries_are_read_only():
    src = ConfigSource.from_entries("here", {"a": "1"})
    with pytest.raises(TypeError):
        src.entries["a"] = "2"


def test_properties_file_source_load(tmp_path):
    f = tmp_path / "logfactory.properties"
    f.write_text("factory=pkg.Impl\npriority=3\nlevel=debug\n", encoding="utf-8")
    src = PropertiesFileSource(str(f)).load()
    assert src.origin == str(f)
    assert src.priority == 3.0
    assert dict(src.entries) == {"factory": "pkg.Impl", "priority": "3", "level": "debug"}


def test_missing_file_raises_parse_error(tmp_path):
    with pytest.raises(ConfigParseError):
        PropertiesFileSource(str(tmp_path / "absent.properties")).get_entries()


def test_json_file_source_flattens_scalars(tmp_path):
    f = tmp_path / "logfactory.json"
    f.write_text(json.dumps({"factory": "a.B", "priority": 4, "verbose": True, "skip": None}), encoding="utf-8")
    entries = JsonFileSource(str(f)).get_entries()
    assert entries == {"factory": "a.B", "priority": "4", "verbose": "true"}


def test_json_file_source_invalid(tmp_path):
    f = tmp_path / "bad.json"
    f.write_text("{ not json }", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        JsonFileSource(str(f)).get_entries()


def test_json_file_source_rejects_nested_values(tmp_path):
    f = tmp_path / "nested.json"
    f.write_text(json.dumps({"db": {"host": "x"}}), encoding="utf-8")
    with pytest.raises(ConfigParseError):
        JsonFileSource(str(f)).get_entries()


def test_yaml_file_source(tmp_path):
    pytest.importorskip("yaml")
    f = tmp_path / "logfactory.yaml"
    f.write_text("factory: a.B\npriority: 1.5\n", encoding="utf-8")
    src = YamlFileSource(str(f)).load()
    assert src.priority == 1.5
    assert src.get("factory") == "a.B"


def test_yaml_file_source_empty_document(tmp_path):
    pytest.importorskip("yaml")
    f = tmp_path / "empty.yml"
    f.write_text("", encoding="utf-8")
    assert YamlFileSource(str(f)).get_entries() == {}


def test_open_source_picks_reader_by_suffix():
    assert isinstance(open_source("x/logfactory.properties"), PropertiesFileSource)
    assert isinstance(open_source("x/logfactory.JSON"), JsonFileSource)
    assert isinstance(open_source("x/logfactory.yml"), YamlFileSource)
    assert isinstance(open_source("x/logfactory"), PropertiesFileSource)
