"""
Test configuration for the beneficiary backend tests.

sys.path is configured so 'from backend...' resolves whether pytest is run
from the project root or from backend/.

Shared fixtures:
  store    - a fresh InMemoryFieldStore per test (no database needed)
  engine   - CustomFieldsEngine over that store
"""
import sys
from pathlib import Path

import pytest

_backend_dir = Path(__file__).parent.parent        # .../backend/
_project_root = _backend_dir.parent               # .../

for _path in (_project_root, _backend_dir):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from backend.customfields.inmemory import InMemoryFieldStore  # noqa: E402
from backend.customfields.service import CustomFieldsEngine  # noqa: E402


@pytest.fixture
def store() -> InMemoryFieldStore:
    return InMemoryFieldStore()


@pytest.fixture
def engine(store: InMemoryFieldStore) -> CustomFieldsEngine:
    return CustomFieldsEngine(store)
