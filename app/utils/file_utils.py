"""
Object storage utilities for uploaded images.
Objects are written under a local directory tree laid out as {bucket}/{path}.
"""

from pathlib import Path, PurePosixPath
from typing import Optional, Union
import aiofiles
import aiofiles.os

from app.utils.exceptions import StorageError

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def split_extension(filename: str) -> tuple:
    """
    Split a filename into (stem, lowercase extension).

    Args:
        filename: Original filename, possibly without an extension

    Returns:
        Tuple of stem and extension (extension includes the dot or is "")
    """
    path = PurePosixPath(filename or "")
    if path.name.startswith(".") and path.name.count(".") == 1:
        # A bare ".avif" is all extension
        return "", path.name.lower()
    return path.stem, path.suffix.lower()


def replace_extension(filename: str, extension: str) -> str:
    """Replace (or append) the filename extension."""
    stem, _ = split_extension(filename)
    return f"{stem}{extension}"


def safe_object_name(filename: str) -> str:
    """Strip directory components and spaces from a client-supplied filename."""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    return name.replace(" ", "_") or "image"


class ObjectStore:
    """Local object store used as the binary side of the Storage Gateway."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def resolve_path(self, bucket: str, path: str) -> Path:
        """
        Map a bucket and object path onto the filesystem.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket

        Returns:
            Absolute filesystem path

        Raises:
            StorageError: If the path escapes the bucket directory
        """
        if not bucket or not path:
            raise StorageError("resolve", "bucket and path are required")

        bucket_dir = (self.base_dir / bucket).resolve()
        full_path = (bucket_dir / path).resolve()
        if bucket_dir != full_path and bucket_dir not in full_path.parents:
            raise StorageError("resolve", f"invalid object path '{path}'")
        return full_path

    async def put(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> dict:
        """
        Store an object, refusing to overwrite an existing one.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            data: Object bytes
            content_type: MIME type recorded by the caller (informational)

        Returns:
            Dictionary with the stored path

        Raises:
            StorageError: If the object exists or cannot be written
        """
        full_path = self.resolve_path(bucket, path)
        if full_path.exists():
            raise StorageError("upload", f"object already exists: {bucket}/{path}")

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "xb") as f:
                await f.write(data)
        except FileExistsError:
            raise StorageError("upload", f"object already exists: {bucket}/{path}")
        except OSError as e:
            raise StorageError("upload", str(e))

        return {"path": path}

    async def exists(self, bucket: str, path: str) -> bool:
        return await aiofiles.os.path.exists(self.resolve_path(bucket, path))

