"""Azure Blob Storage client."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import AzureError
from azure.storage.blob import (
    BlobServiceClient,
    ContentSettings,
    ExponentialRetry,
    LinearRetry,
)

from ..config import RetryOptions, StorageCredentials
from ..errors import classify_azure_error

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class CappedExponentialRetry(ExponentialRetry):
    """Exponential retry whose delay never exceeds ``max_backoff`` seconds."""

    def __init__(self, max_backoff: Optional[float] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.max_backoff = max_backoff

    def get_backoff_time(self, settings: dict) -> float:
        backoff = super().get_backoff_time(settings)
        if self.max_backoff is not None:
            return min(backoff, self.max_backoff)
        return backoff


def build_retry_policy(options: RetryOptions):
    """Translate retry options into an azure retry policy.

    Args:
        options: Retry options from configuration

    Returns:
        Retry policy, or None to keep the SDK default
    """
    if options.max_tries is None and options.retry_delay_ms is None and not options.retry_policy_type:
        return None

    kwargs: dict = {}
    if options.max_tries is not None:
        kwargs["retry_total"] = max(options.max_tries - 1, 0)

    delay = options.retry_delay_ms / 1000 if options.retry_delay_ms is not None else None
    policy_type = (options.retry_policy_type or "EXPONENTIAL").upper()

    if policy_type == "FIXED":
        if delay is not None:
            kwargs["backoff"] = delay
            kwargs["random_jitter_range"] = min(3, delay / 2)
        return LinearRetry(**kwargs)

    if policy_type != "EXPONENTIAL":
        raise ValueError(f"Unknown retry policy type: {options.retry_policy_type}")

    if delay is not None:
        kwargs["initial_backoff"] = delay
        kwargs["random_jitter_range"] = min(3, delay / 2)
    max_backoff = None
    if options.max_retry_delay_ms is not None:
        max_backoff = options.max_retry_delay_ms / 1000
    return CappedExponentialRetry(max_backoff=max_backoff, **kwargs)


class BlobStore:
    """Async facade over a shared ``BlobServiceClient``.

    SDK calls are blocking; each one runs on the event loop's default
    executor. Failures are raised as ``StorageError`` subclasses.
    """

    def __init__(
        self,
        credentials: StorageCredentials,
        account_url: Optional[str] = None,
        retry: Optional[RetryOptions] = None,
    ):
        """Initialize the blob client.

        Args:
            credentials: Shared-key credentials for the account
            account_url: Blob service URL (defaults to the public account URL)
            retry: Retry options passed through to the SDK
        """
        retry = retry or RetryOptions()
        self.account_url = account_url or credentials.account_url

        client_kwargs: dict = {}
        policy = build_retry_policy(retry)
        if policy is not None:
            client_kwargs["retry_policy"] = policy
        if retry.try_timeout_ms is not None:
            client_kwargs["read_timeout"] = retry.try_timeout_ms / 1000

        self.client = BlobServiceClient(
            account_url=self.account_url,
            credential=AzureNamedKeyCredential(credentials.account_name, credentials.account_key),
            **client_kwargs,
        )
        logger.info(f"Blob storage client created for {self.account_url}")

    async def _run(self, func: Callable[[], Any], not_found: bool = True) -> Any:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, func)
        except AzureError as e:
            raise classify_azure_error(e, not_found=not_found) from e

    async def upload_file(
        self,
        container: str,
        key: str,
        source_path: Path,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Upload a local file as a block blob, overwriting any existing blob.

        The file is read on the executor, not on the event loop.

        Args:
            container: Container name
            key: Blob name
            source_path: Local file to upload
            content_type: Content-Type stored with the blob

        Raises:
            OSError: The source file cannot be read
        """
        blob = self.client.get_blob_client(container=container, blob=key)

        def _upload() -> int:
            with open(source_path, "rb") as f:
                data = f.read()
            blob.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )
            return len(data)

        logger.info(f"Uploading {source_path} to {container}/{key} ({content_type})")
        size = await self._run(_upload, not_found=False)
        logger.debug(f"Uploaded {size} bytes to {container}/{key}")

    async def download_to_file(self, container: str, key: str, dest_path: Path) -> Path:
        """Download a blob into a local file.

        Args:
            container: Container name
            key: Blob name
            dest_path: Local path to write (overwritten)

        Returns:
            *dest_path* after the download completes
        """
        blob = self.client.get_blob_client(container=container, blob=key)

        def _download() -> int:
            downloader = blob.download_blob()
            with open(dest_path, "wb") as f:
                return downloader.readinto(f)

        logger.info(f"Downloading {container}/{key} to {dest_path}")
        size = await self._run(_download)
        logger.debug(f"Downloaded {size} bytes from {container}/{key}")
        return dest_path

    async def delete(self, container: str, key: str) -> None:
        """Delete a blob.

        Args:
            container: Container name
            key: Blob name
        """
        blob = self.client.get_blob_client(container=container, blob=key)
        logger.info(f"Deleting {container}/{key}")
        await self._run(blob.delete_blob)

    def close(self) -> None:
        """Close the underlying HTTP pipeline."""
        self.client.close()
