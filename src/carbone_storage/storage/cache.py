"""Local filesystem tier of the artifact store."""

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheLookup:
    """Result of a local cache lookup.

    Attributes:
        artifact_id: Requested artifact id
        path: Local path the artifact lives (or will live) at
        hit: True if a readable file is already at ``path``
    """

    artifact_id: str
    path: Path
    hit: bool

    @property
    def needs_fetch(self) -> bool:
        return not self.hit


def validate_artifact_id(artifact_id: str) -> str:
    """Check that an artifact id names a single file.

    Args:
        artifact_id: Template or render id

    Returns:
        The id unchanged

    Raises:
        ValueError: If the id is empty or would escape the cache directory
    """
    if not artifact_id or artifact_id in (".", ".."):
        raise ValueError(f"Invalid artifact id: {artifact_id!r}")
    if "/" in artifact_id or "\\" in artifact_id or "\x00" in artifact_id:
        raise ValueError(f"Artifact id must not contain path separators: {artifact_id!r}")
    return artifact_id


class LocalCache:
    """Flat directory of artifacts, one file per id."""

    def __init__(self, root: Path):
        """Initialize the cache.

        Args:
            root: Directory holding the cached files (created lazily)
        """
        self.root = Path(root)

    def path_for(self, artifact_id: str) -> Path:
        """Get the local path for an artifact id."""
        return self.root / validate_artifact_id(artifact_id)

    def lookup(self, artifact_id: str) -> CacheLookup:
        """Decide whether an artifact can be served locally.

        Args:
            artifact_id: Template or render id

        Returns:
            CacheLookup describing the hit or miss
        """
        path = self.path_for(artifact_id)
        hit = os.access(path, os.R_OK) and path.is_file()
        return CacheLookup(artifact_id=artifact_id, path=path, hit=hit)

    @contextmanager
    def staging(self, artifact_id: str) -> Iterator[Path]:
        """Stage a file that replaces the artifact on success.

        Bytes are written to a temporary file in the cache directory, which is
        moved onto the artifact path when the block exits cleanly and removed
        otherwise, so a partial download is never visible at the final path.

        Args:
            artifact_id: Template or render id

        Yields:
            Path of the temporary file to write
        """
        final_path = self.path_for(artifact_id)
        self.root.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(prefix=f".{artifact_id}.", suffix=".part", dir=self.root)
        os.close(fd)
        tmp_path = Path(tmp)
        try:
            yield tmp_path
            os.replace(tmp_path, final_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def remove(self, artifact_id: str) -> bool:
        """Remove a cached artifact.

        Returns:
            True if a file was removed
        """
        path = self.path_for(artifact_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Removed cached artifact {path}")
        return True
