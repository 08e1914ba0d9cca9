"""Storage layer for Azure Blob Storage and the local cache."""

from .blob import BlobStore, build_retry_policy
from .cache import CacheLookup, LocalCache, validate_artifact_id

__all__ = ["BlobStore", "build_retry_policy", "CacheLookup", "LocalCache", "validate_artifact_id"]
