"""Tests for the storage error taxonomy."""

from azure.core.exceptions import ResourceNotFoundError, ServiceRequestError

from carbone_storage.errors import (
    AccessDeniedError,
    ArtifactNotFoundError,
    ErrorKind,
    StorageError,
    UpstreamError,
    classify_azure_error,
)


class TestClassifyAzureError:
    """Tests for classify_azure_error."""

    def test_403_is_access_denied(self, http_error):
        error = classify_azure_error(http_error(403, "This request is not authorized"))

        assert isinstance(error, AccessDeniedError)
        assert error.kind is ErrorKind.ACCESS_DENIED
        assert error.status_code == 403
        assert "AccessDenied" in str(error)
        assert "403" in str(error)

    def test_404_is_not_found(self, http_error):
        error = classify_azure_error(http_error(404, "The specified blob does not exist.", ResourceNotFoundError))

        assert isinstance(error, ArtifactNotFoundError)
        assert error.kind is ErrorKind.NOT_FOUND
        assert error.message == "The specified blob does not exist."

    def test_404_on_write_path_is_upstream(self, http_error):
        error = classify_azure_error(http_error(404), not_found=False)

        assert isinstance(error, UpstreamError)
        assert error.status_code == 404

    def test_other_status_is_upstream(self, http_error):
        error = classify_azure_error(http_error(503, "Server busy"))

        assert isinstance(error, UpstreamError)
        assert error.status_code == 503
        assert "Server busy" in str(error)

    def test_transport_error_is_upstream(self):
        error = classify_azure_error(ServiceRequestError("Server unavailable"))

        assert isinstance(error, UpstreamError)
        assert error.status_code is None
        assert error.message == "Server unavailable"

    def test_error_code_is_kept(self, http_error):
        exc = http_error(404)
        exc.error_code = "BlobNotFound"

        error = classify_azure_error(exc)

        assert error.error_code == "BlobNotFound"
        assert "BlobNotFound" in str(error)


class TestStorageError:
    """Tests for StorageError subclasses."""

    def test_subclasses_share_base(self):
        for cls in (AccessDeniedError, ArtifactNotFoundError, UpstreamError):
            assert issubclass(cls, StorageError)

    def test_str_without_status(self):
        assert str(UpstreamError("connection reset")) == "Upstream: connection reset"
