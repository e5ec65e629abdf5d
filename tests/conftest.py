# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
import sys
from pathlib import Path

import pytest


def _add_src_to_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_add_src_to_path()

from codesession.dispatcher import Dispatcher  # noqa: E402
from codesession.session import Session  # noqa: E402


@pytest.fixture
def dispatcher() -> Dispatcher:
    """Dispatcher over a fresh session with default configuration."""
    return Dispatcher(Session.create())
