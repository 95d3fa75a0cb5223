"""Discovery of the winning configuration file for a context."""

from typing import Any, Callable, List, Optional

from .config_sources import ConfigSource, FileSource, open_source
from .context import BASELINE, IsolationContext
from .diagnostics import DiagnosticsSink
from .exceptions import ConfigParseError, DiscoveryError, describe, handle_fatal


class ConfigurationResolver:
    """Finds every configuration file of a logical name and picks one.

    The file with the highest ``priority`` wins. On equal priorities the file
    enumerated first wins, so a centrally placed file can outrank nested ones
    only by declaring a higher priority.

    Args:
        diagnostics: Sink receiving the lookup trace.
        baseline: Context used for discovery on behalf of the root context.
        opener: Maps a location to the reader that parses it.
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        baseline: IsolationContext = BASELINE,
        opener: Callable[[str], FileSource] = open_source,
    ) -> None:
        self._diag = diagnostics or DiagnosticsSink.disabled()
        self._baseline = baseline
        self._opener = opener

    def discover(self, context: Any, name: str) -> List[str]:
        """Enumerate the locations of *name* visible to *context*.

        Raises:
            DiscoveryError: If enumeration is denied or fails.
        """
        ctx = context if context is not None else self._baseline
        try:
            return list(ctx.find_resources(name))
        except OSError as e:
            raise DiscoveryError(name, e) from e

    def parse(self, location: str) -> ConfigSource:
        return self._opener(location).load()

    def locate(self, context: Any, name: str) -> Optional[ConfigSource]:
        """Return the winning configuration source for *context*, or ``None``."""
        diag = self._diag
        try:
            locations = self.discover(context, name)
        except DiscoveryError as e:
            if diag.enabled:
                diag.emit(f"[LOOKUP] {describe(e)}; continuing without configuration files.")
            return None

        winner: Optional[ConfigSource] = None
        for location in locations:
            try:
                source = self.parse(location)
            except ConfigParseError as e:
                if diag.enabled:
                    diag.emit(f"[LOOKUP] Skipping properties file at '{location}': {e}")
                continue
            except Exception as e:
                handle_fatal(e)
                if diag.enabled:
                    diag.emit(f"[LOOKUP] Unable to read properties file at '{location}': {describe(e)}")
                continue

            if winner is None:
                winner = source
                if diag.enabled:
                    diag.emit(f"[LOOKUP] Properties file found at '{location}' with priority {source.priority}")
            elif source.priority > winner.priority:
                if diag.enabled:
                    diag.emit(
                        f"[LOOKUP] Properties file at '{location}' with priority {source.priority} "
                        f"overrides file at '{winner.origin}' with priority {winner.priority}"
                    )
                winner = source
            elif diag.enabled:
                diag.emit(
                    f"[LOOKUP] Properties file at '{location}' with priority {source.priority} "
                    f"does not override file at '{winner.origin}' with priority {winner.priority}"
                )

        if diag.enabled:
            if winner is None:
                diag.emit(f"[LOOKUP] No properties file of name '{name}' found.")
            else:
                diag.emit(f"[LOOKUP] Properties file of name '{name}' found at '{winner.origin}'")
        return winner
