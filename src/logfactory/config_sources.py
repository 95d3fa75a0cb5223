"""Configuration file sources.

Provides :class:`ConfigSource`, the parsed form of one discovered
configuration file, and the file readers that produce its entries:
:class:`PropertiesFileSource`, :class:`JsonFileSource` and
:class:`YamlFileSource`.
"""

import json
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from .constants import PRIORITY_KEY
from .exceptions import ConfigParseError


@dataclass(frozen=True)
class ConfigSource:
    """One parsed configuration file.

    Attributes:
        origin: Location the file was read from.
        priority: Ranking among competing files; higher wins.
        entries: Every key/value pair of the file, ``priority`` included.
    """

    origin: str
    priority: float = 0.0
    entries: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_entries(cls, origin: str, entries: Mapping[str, str]) -> "ConfigSource":
        """Build a source, reading the priority out of *entries*.

        Raises:
            ConfigParseError: If the priority is not a floating-point number.
        """
        raw = entries.get(PRIORITY_KEY)
        priority = 0.0
        if raw is not None:
            try:
                priority = float(raw)
            except (TypeError, ValueError):
                raise ConfigParseError(origin, f"priority {raw!r} is not a number") from None
            if math.isnan(priority):
                raise ConfigParseError(origin, "priority must not be NaN")
        return cls(origin=origin, priority=priority, entries=MappingProxyType(dict(entries)))

    def get(self, key: str) -> Any:
        return self.entries.get(key)


class FileSource:
    """Base class for configuration file readers.

    Subclasses must implement :meth:`parse` to turn file text into a flat
    mapping of strings.
    """

    def __init__(self, path: str):
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def get_entries(self) -> Mapping[str, str]:
        """Read and parse the file.

        Raises:
            ConfigParseError: If the file cannot be read or parsed.
        """
        try:
            with open(self._path, encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(self._path, f"unable to read: {e}") from e
        return self.parse(text)

    def parse(self, text: str) -> Mapping[str, str]:
        raise NotImplementedError

    def load(self) -> ConfigSource:
        return ConfigSource.from_entries(self._path, self.get_entries())


_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(s: str) -> str:
    out: List[str] = []
    i, n = 0, len(s)
    while i < n:
        ch = s[i]
        i += 1
        if ch != "\\":
            out.append(ch)
            continue
        nxt = s[i:i + 1]
        i += 1
        if nxt == "u":
            digits = s[i:i + 4]
            if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
                raise ValueError(f"Malformed \\uxxxx encoding: \\u{digits}")
            out.append(chr(int(digits, 16)))
            i += 4
        else:
            out.append(_ESCAPES.get(nxt, nxt))
    # Escaped surrogate pairs combine into one character.
    return "".join(out).encode("utf-16", "surrogatepass").decode("utf-16")


def _logical_lines(text: str) -> List[str]:
    lines: List[str] = []
    pending = ""
    for raw in text.splitlines():
        line = raw.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        lines.append(pending + line)
        pending = ""
    if pending:
        lines.append(pending)
    return lines


def parse_properties(text: str) -> Dict[str, str]:
    """Parse ``key=value`` / ``key: value`` / ``key value`` text.

    Supports ``#`` and ``!`` comments, backslash continuation lines and the
    usual backslash escapes, including ``\\uXXXX``. Later duplicates
    overwrite earlier ones.

    Raises:
        ValueError: On a malformed ``\\uXXXX`` escape.
    """
    entries: Dict[str, str] = {}
    for line in _logical_lines(text):
        idx = 0
        escaped = False
        while idx < len(line):
            ch = line[idx]
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch in "=: \t\f":
                break
            idx += 1
        key = line[:idx]
        rest = line[idx:].lstrip(" \t\f")
        if rest[:1] in ("=", ":") and (idx >= len(line) or line[idx] in " \t\f"):
            rest = rest[1:].lstrip(" \t\f")
        elif line[idx:idx + 1] in ("=", ":"):
            rest = line[idx + 1:].lstrip(" \t\f")
        entries[_unescape(key)] = _unescape(rest)
    return entries


def _flatten_scalars(origin: str, data: Any) -> Dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(origin, "top level must be a mapping")
    out: Dict[str, str] = {}
    for k, v in data.items():
        if isinstance(v, bool):
            out[str(k)] = "true" if v else "false"
        elif isinstance(v, (str, int, float)):
            out[str(k)] = str(v)
        elif v is None:
            continue
        else:
            raise ConfigParseError(origin, f"value of '{k}' must be a scalar")
    return out


class PropertiesFileSource(FileSource):
    """Reads ``key=value`` properties files."""

    def parse(self, text: str) -> Mapping[str, str]:
        try:
            return parse_properties(text)
        except ValueError as e:
            raise ConfigParseError(self._path, str(e)) from e


class JsonFileSource(FileSource):
    """Reads a flat JSON object; scalar values are converted to strings."""

    def parse(self, text: str) -> Mapping[str, str]:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigParseError(self._path, f"Failed to load JSON config: {e}") from e
        return _flatten_scalars(self._path, data)


class YamlFileSource(FileSource):
    """Reads a flat YAML mapping.

    Requires ``PyYAML`` to be installed (``pip install logfactory[yaml]``).
    """

    def parse(self, text: str) -> Mapping[str, str]:
        try:
            import yaml
        except ImportError:
            raise ConfigParseError(self._path, "PyYAML not installed")
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigParseError(self._path, f"Failed to load YAML config: {e}") from e
        return _flatten_scalars(self._path, data)


def open_source(path: str) -> FileSource:
    """Return the reader matching the suffix of *path*."""
    lower = path.lower()
    if lower.endswith(".json"):
        return JsonFileSource(path)
    if lower.endswith((".yaml", ".yml")):
        return YamlFileSource(path)
    return PropertiesFileSource(path)
