"""Storage hooks for the render service.

The local cache directory is authoritative when no container is configured
for an artifact class. When a container is configured, the blob store is the
source of truth: templates are fetched only on a local miss, and renders are
purged from the container once handed to the caller.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from .config import StoreConfig
from .storage.blob import DEFAULT_CONTENT_TYPE, BlobStore
from .storage.cache import LocalCache, validate_artifact_id

logger = logging.getLogger(__name__)

TEMPLATE_MIMETYPE_HEADER = "carbone-template-mimetype"


def template_content_type(request: Any = None) -> str:
    """Get the content type to store an uploaded template with.

    Args:
        request: Incoming request; only its ``headers`` mapping is consulted

    Returns:
        Value of the carbone-template-mimetype header, or octet-stream
    """
    headers = getattr(request, "headers", None) or {}
    return headers.get(TEMPLATE_MIMETYPE_HEADER) or DEFAULT_CONTENT_TYPE


class StorageAdapter:
    """Two-tier template and render store.

    Attributes:
        config: Resolved storage configuration
        blob_store: Blob client, None when no credentials are configured
        templates: Local template cache
        renders: Local render cache
    """

    def __init__(
        self,
        config: StoreConfig,
        blob_store: Optional[BlobStore] = None,
    ):
        """Initialize the adapter.

        Args:
            config: Resolved storage configuration
            blob_store: Blob client to use instead of building one from config
        """
        self.config = config
        self.templates = LocalCache(config.template_dir)
        self.renders = LocalCache(config.render_dir)

        if blob_store is None and config.credentials is not None:
            blob_store = BlobStore(
                config.credentials,
                account_url=config.account_url,
                retry=config.retry,
            )
        self.blob_store = blob_store

        if self.blob_store is None and (config.templates_container or config.renders_container):
            logger.warning("Containers are configured without storage credentials; using local storage only")

    @property
    def templates_container(self) -> Optional[str]:
        return self.config.templates_container if self.blob_store else None

    @property
    def renders_container(self) -> Optional[str]:
        return self.config.renders_container if self.blob_store else None

    async def write_template(
        self,
        template_id: str,
        source_path: Union[str, Path],
        *,
        request: Any = None,
        response: Any = None,
    ) -> str:
        """Persist an uploaded template.

        Args:
            template_id: Template id (blob name)
            source_path: Local file holding the uploaded template
            request: Incoming request, for the template mimetype header
            response: Outgoing response (unused)

        Returns:
            The template id

        Raises:
            AccessDeniedError: The account refused the upload
            UpstreamError: Any other upload failure
            OSError: The source file cannot be read
        """
        validate_artifact_id(template_id)
        container = self.templates_container
        if not container:
            logger.debug(f"No templates container, keeping template {template_id} local")
            return template_id

        await self.blob_store.upload_file(
            container, template_id, Path(source_path), template_content_type(request)
        )
        return template_id

    async def read_template(
        self,
        template_id: str,
        *,
        request: Any = None,
        response: Any = None,
    ) -> Path:
        """Get the local path of a template, fetching it on a cache miss.

        Args:
            template_id: Template id
            request: Incoming request (unused)
            response: Outgoing response (unused)

        Returns:
            Local template path

        Raises:
            ArtifactNotFoundError: The template is not in the container
            AccessDeniedError: The account refused the download
            UpstreamError: Any other download failure
        """
        lookup = self.templates.lookup(template_id)
        container = self.templates_container
        if not container:
            return lookup.path
        if lookup.hit:
            logger.debug(f"Template {template_id} served from local cache")
            return lookup.path

        with self.templates.staging(template_id) as tmp_path:
            await self.blob_store.download_to_file(container, template_id, tmp_path)
        return lookup.path

    async def delete_template(
        self,
        template_id: str,
        *,
        request: Any = None,
        response: Any = None,
    ) -> Path:
        """Delete a template from the container.

        The local file is left in place; removing it is up to the caller.

        Args:
            template_id: Template id
            request: Incoming request (unused)
            response: Outgoing response (unused)

        Returns:
            Local template path

        Raises:
            ArtifactNotFoundError: The template is not in the container
            AccessDeniedError: The account refused the delete
            UpstreamError: Any other failure
        """
        path = self.templates.path_for(template_id)
        container = self.templates_container
        if not container:
            return path

        await self.blob_store.delete(container, template_id)
        return path

    async def read_render(
        self,
        render_id: str,
        *,
        request: Any = None,
        response: Any = None,
    ) -> Path:
        """Get the local path of a render and purge it from the container.

        Args:
            render_id: Render id (file name)
            request: Incoming request (unused)
            response: Outgoing response (unused)

        Returns:
            Local render path

        Raises:
            ArtifactNotFoundError: The render is not in the container (download or purge)
            AccessDeniedError: The account refused the download or delete
            UpstreamError: Any other failure
        """
        lookup = self.renders.lookup(render_id)
        container = self.renders_container
        if not container:
            return lookup.path

        if lookup.needs_fetch:
            with self.renders.staging(render_id) as tmp_path:
                await self.blob_store.download_to_file(container, render_id, tmp_path)

        await self.blob_store.delete(container, render_id)
        return lookup.path

    async def after_render(
        self,
        report_path: Union[str, Path],
        report_name: Optional[str] = None,
        render_error: Optional[BaseException] = None,
        stats: Any = None,
        *,
        request: Any = None,
        response: Any = None,
    ) -> None:
        """Persist a finished render.

        Args:
            report_path: Local path of the generated report
            report_name: Blob name (defaults to the file name of report_path)
            render_error: Error raised by rendering, re-raised unchanged
            stats: Render statistics (unused)
            request: Incoming request (unused)
            response: Outgoing response (unused)

        Raises:
            AccessDeniedError: The account refused the upload
            UpstreamError: Any other upload failure
            OSError: The report file cannot be read
        """
        if render_error is not None:
            raise render_error

        container = self.renders_container
        if not container:
            return

        name = report_name or os.path.basename(report_path)
        validate_artifact_id(name)
        await self.blob_store.upload_file(container, name, Path(report_path), DEFAULT_CONTENT_TYPE)

    def close(self) -> None:
        """Release the blob client."""
        if self.blob_store is not None:
            self.blob_store.close()
