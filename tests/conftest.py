from unittest.mock import Mock

import pytest

from es_sync.aws.exports import ExportResolver
from es_sync.config_manager import EsSyncConfig
from tests.helpers import TESTS_DIR, RecordingTransport


@pytest.fixture
def fixtures_cwd(monkeypatch):
    """Run the test from the tests directory so ./fixtures/... paths resolve."""
    monkeypatch.chdir(TESTS_DIR)
    return TESTS_DIR


@pytest.fixture
def es_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def export_resolver():
    """ExportResolver stand-in that finds the endpoint export as ABCD123."""
    resolver = Mock(spec=ExportResolver)
    resolver.find_export.return_value = "ABCD123"
    resolver.resolve.return_value = None
    return resolver


@pytest.fixture
def settings() -> EsSyncConfig:
    return EsSyncConfig()
