import logging
from pathlib import Path

import pytest

from logfactory import DiagnosticsSink, IsolationContext, RegistryCache, ResolutionEngine
from logfactory.impl import StdlibLogFactory

log_capture: list = []


class ListLogHandler(logging.Handler):
    def emit(self, record):
        log_capture.append(self.format(record))


@pytest.fixture(autouse=True)
def reset_logging_capture():
    log_capture.clear()


class CustomFactory(StdlibLogFactory):
    def __init__(self):
        super().__init__()
        self.released = 0

    def release(self):
        self.released += 1
        super().release()


class OtherFactory(CustomFactory):
    pass


class NotAFactory:
    pass


def write_file(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def diagnostics():
    return DiagnosticsSink(ListLogHandler(), prefix="[test] ")


@pytest.fixture
def baseline_dir(tmp_path):
    d = tmp_path / "baseline"
    d.mkdir()
    return d


@pytest.fixture
def baseline(baseline_dir):
    return IsolationContext("baseline", search_path=(str(baseline_dir),))


@pytest.fixture
def app_dir(tmp_path):
    d = tmp_path / "app"
    d.mkdir()
    return d


@pytest.fixture
def app(baseline, app_dir):
    return IsolationContext("app", parent=baseline, search_path=(str(app_dir),))


@pytest.fixture
def environ():
    return {}


@pytest.fixture
def engine(baseline, diagnostics, environ):
    return ResolutionEngine(diagnostics=diagnostics, environ=environ, cache=RegistryCache(), baseline=baseline)
