"""Pytest configuration and fixtures for carbone-storage tests."""

from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import HttpResponseError

from carbone_storage.config import StorageCredentials, StoreConfig, set_config

ENV_VARS = (
    "CARBONE_AST_CONFIG",
    "CARBONE_AST_CONFIG_PATH",
    "AZURE_STORAGE_ACCOUNT",
    "AZURE_STORAGE_KEY",
    "AZURE_STORAGE_BLOB_ENDPOINT",
    "CONTAINER_RENDERS",
    "CONTAINER_TEMPLATES",
    "STORAGE_MAX_TRIES",
    "STORAGE_TRY_TIMEOUT_MS",
    "STORAGE_RETRY_DELAY_MS",
    "STORAGE_MAX_RETRY_DELAY_MS",
    "STORAGE_RETRY_POLICY",
)

TEMPLATES_CONTAINER = "templates-container"
RENDERS_CONTAINER = "renders-container"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test without storage env vars, from an empty directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def http_error():
    """Factory for azure HTTP errors with a given status."""

    def _make(status_code: int, message: str = "request failed", cls=HttpResponseError):
        error = cls(message=message)
        error.status_code = status_code
        return error

    return _make


@pytest.fixture
def template_dir(tmp_path):
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture
def render_dir(tmp_path):
    path = tmp_path / "renders"
    path.mkdir()
    return path


@pytest.fixture
def remote_config(template_dir, render_dir):
    """Config with credentials and both containers."""
    return StoreConfig(
        credentials=StorageCredentials("whateverAccountName", "whateverAccountKey"),
        templates_container=TEMPLATES_CONTAINER,
        renders_container=RENDERS_CONTAINER,
        template_path=template_dir,
        render_path=render_dir,
    )


@pytest.fixture
def local_config(template_dir, render_dir):
    """Config without credentials or containers."""
    return StoreConfig(template_path=template_dir, render_path=render_dir)


@pytest.fixture
def mock_service():
    """Patch BlobServiceClient and yield the client class mock."""
    with patch("carbone_storage.storage.blob.BlobServiceClient") as mock:
        mock.return_value = MagicMock()
        yield mock


@pytest.fixture
def blob_client(mock_service):
    """Blob client mock returned for every container/blob pair."""
    return mock_service.return_value.get_blob_client.return_value
