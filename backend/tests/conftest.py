import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture(autouse=True)
def reset_icon_reports(monkeypatch):
    """Each test sees unknown icon keys reported afresh."""
    from services import service_icons

    monkeypatch.setattr(service_icons, "_reported_unknown", set())
