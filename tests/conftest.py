import sys
import os

import pytest

# Add project root to sys.path so tests can import top-level modules like 'ingest', 'scoring', 'aggregate', etc.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ingest.retry import reset_retry_configuration  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_retry_configuration():
    # the CLI writes runtime overrides into module globals
    reset_retry_configuration()
    yield
    reset_retry_configuration()
