import json
import logging
import sys
from pathlib import Path

import json5
import pytest

from buildrules.core.logging import clearLogContext
from buildrules.descriptors.descriptor import TargetContext



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture(autouse=True)
def restore_root_logging():
    # configureLogging() replaces root handlers; put pytest's back afterwards
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clearLogContext()



@pytest.fixture()
def editor_context() -> TargetContext:
    return TargetContext.create("Editor", "5.1")



@pytest.fixture()
def write_descriptor():
    def _write(dir_path: Path, payload: dict, *, suffix: str = ".module.json5") -> Path:
        dir_path.mkdir(parents=True, exist_ok=True)
        path = dir_path / f"{payload['name']}{suffix}"
        dumps = json.dumps if suffix.endswith(".json") else json5.dumps
        path.write_text(dumps(payload, indent=2), encoding="utf-8")
        return path
    return _write
