"""
Blob store that keeps objects as files under a storage root.
"""
import logging
from pathlib import Path

from synlitics.services.collaborators import BlobStore, CollaboratorError

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Objects live at ``<root>/<bucket>/<path>``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def resolve(self, bucket: str, path: str) -> Path:
        """Absolute file location for an object, rejecting paths that escape the bucket."""
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise CollaboratorError(f"Invalid object path: {path}")
        return target

    def put_object(self, bucket: str, path: str, content: bytes, overwrite: bool = False) -> None:
        target = self.resolve(bucket, path)
        if target.exists() and not overwrite:
            raise CollaboratorError("The resource already exists")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # Write then rename so readers never see a half-written export
            tmp = target.with_name(target.name + ".part")
            tmp.write_bytes(content)
            tmp.replace(target)
        except OSError as e:
            logger.warning(f"Failed to store {bucket}/{path}: {e}")
            raise CollaboratorError(f"Failed to store file: {e.strerror or e}") from e

        logger.debug(f"Stored {len(content)} bytes at {bucket}/{path}")
