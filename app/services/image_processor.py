"""
Image processor for candidate uploads.
Validates format and size, converts AVIF to JPEG and downsizes files above the
compression threshold before they reach object storage.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from fastapi import UploadFile
from PIL import Image, ImageOps, UnidentifiedImageError

from app.config import Settings
from app.utils.exceptions import (
    FileSizeExceededError,
    ImageProcessingError,
    UnsupportedFileTypeError,
)
from app.utils.file_utils import GENERIC_MIME_TYPES, replace_extension, split_extension

logger = logging.getLogger(__name__)

AVIF_MIME_TYPE = "image/avif"
JPEG_MIME_TYPE = "image/jpeg"

# MIME type -> Pillow encoder name
PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

# Pillow decoder name -> canonical MIME type
MIME_FOR_PIL_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "AVIF": AVIF_MIME_TYPE,
}


@dataclass
class ImageFile:
    """In-memory candidate file."""

    filename: str
    content_type: str
    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return split_extension(self.filename)[1]

    @property
    def mime_type(self) -> str:
        """Declared MIME type, lower-cased and without parameters."""
        return (self.content_type or "").split(";")[0].strip().lower()

    @classmethod
    async def from_upload(cls, upload: UploadFile) -> "ImageFile":
        await upload.seek(0)
        data = await upload.read()
        return cls(
            filename=upload.filename or "",
            content_type=upload.content_type or "",
            data=data,
        )


class ImageProcessor:
    """
    Validates candidate images and normalises them for upload.

    Validation is synchronous and never touches the network; processing runs
    Pillow in a worker thread.
    """

    def __init__(self, settings: Settings):
        self.max_file_size = settings.max_file_size
        self.allowed_types = [t.lower() for t in settings.allowed_file_types]
        self.allowed_extensions = [e.lower() for e in settings.allowed_file_extensions]
        self.quality = settings.image_quality
        self.max_width = settings.image_max_width
        self.max_height = settings.image_max_height
        self.compress_threshold = settings.image_compress_threshold

    @property
    def supported_formats(self) -> List[str]:
        """Human-readable format names, e.g. ['JPG', 'JPEG', 'PNG', 'WEBP', 'AVIF']."""
        return [ext.lstrip(".").upper() for ext in self.allowed_extensions]

    def is_avif(self, file: ImageFile) -> bool:
        return file.mime_type == AVIF_MIME_TYPE or file.extension == ".avif"

    def _check_format(self, file: ImageFile) -> None:
        mime_type = file.mime_type
        if mime_type not in GENERIC_MIME_TYPES:
            if mime_type in self.allowed_types:
                return
            raise UnsupportedFileTypeError(mime_type, self.supported_formats)

        # Missing or generic MIME type (common for AVIF): trust the extension
        if file.extension not in self.allowed_extensions:
            raise UnsupportedFileTypeError(file.extension or "unknown", self.supported_formats)

    def ensure_valid_image(self, file: ImageFile) -> None:
        """
        Validate a candidate file against the format and size policy.

        Raises:
            UnsupportedFileTypeError: If neither MIME type nor extension is allowed
            FileSizeExceededError: If the file exceeds the size ceiling
        """
        self._check_format(file)
        if file.size > self.max_file_size:
            raise FileSizeExceededError(file.size, self.max_file_size)

    def validate_image_file(self, file: ImageFile) -> Optional[str]:
        """
        Validate a candidate file.

        Returns:
            None if the file is acceptable, otherwise a message naming the
            violated constraint
        """
        try:
            self.ensure_valid_image(file)
        except (UnsupportedFileTypeError, FileSizeExceededError) as e:
            return e.detail
        return None

    async def process_image(self, file: ImageFile) -> ImageFile:
        """
        Normalise a validated file for upload.

        AVIF files are always converted to JPEG; other files above the
        compression threshold are downsized; everything else passes through.

        Raises:
            ImageProcessingError: If decoding or encoding fails
        """
        if self.is_avif(file):
            logger.info(f"Converting AVIF image {file.filename} to JPEG")
            return await self.convert_to_jpeg(file)

        if file.size > self.compress_threshold:
            logger.info(f"Compressing image {file.filename} ({file.size} bytes)")
            return await self.compress_image(file)

        return file

    async def convert_to_jpeg(self, file: ImageFile) -> ImageFile:
        """Re-encode any image as JPEG, compositing transparency onto white."""
        data, width, height = await asyncio.to_thread(self._encode_jpeg, file)
        return ImageFile(
            filename=replace_extension(file.filename or "image", ".jpg"),
            content_type=JPEG_MIME_TYPE,
            data=data,
            width=width,
            height=height,
        )

    async def compress_image(self, file: ImageFile) -> ImageFile:
        """Downsize within the configured bounds and re-encode in the original format."""
        data, width, height, content_type = await asyncio.to_thread(self._encode_compressed, file)
        return ImageFile(
            filename=file.filename,
            content_type=content_type,
            data=data,
            width=width,
            height=height,
        )

    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        """
        Scale dimensions to fit the configured bounds, preserving aspect ratio.
        Images already within bounds keep their size.
        """
        ratio = min(self.max_width / width, self.max_height / height, 1.0)
        if ratio >= 1.0:
            return width, height
        return max(1, round(width * ratio)), max(1, round(height * ratio))

    def _open(self, file: ImageFile) -> Tuple[Image.Image, Optional[str]]:
        """Decode the file; returns the oriented image and the decoder format name."""
        try:
            image = Image.open(io.BytesIO(file.data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageProcessingError(file.filename, f"could not decode image ({e})")
        # Apply camera orientation so the re-encoded pixels match what viewers show
        return ImageOps.exif_transpose(image), image.format

    @staticmethod
    def _flatten(image: Image.Image) -> Image.Image:
        """Composite onto an opaque white background and drop alpha."""
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return image.convert("RGB")

    def _encode_jpeg(self, file: ImageFile) -> Tuple[bytes, int, int]:
        image, _ = self._open(file)
        with image:
            flattened = self._flatten(image)
            output = io.BytesIO()
            try:
                flattened.save(output, format="JPEG", quality=self.quality, optimize=True)
            except (OSError, ValueError) as e:
                raise ImageProcessingError(file.filename, f"JPEG encoding failed ({e})")
            return output.getvalue(), flattened.width, flattened.height

    def _encode_compressed(self, file: ImageFile) -> Tuple[bytes, int, int, str]:
        image, source_format = self._open(file)
        with image:
            content_type = file.mime_type
            if content_type not in PIL_FORMATS:
                content_type = MIME_FOR_PIL_FORMAT.get(source_format or "", JPEG_MIME_TYPE)
            pil_format = PIL_FORMATS.get(content_type, "JPEG")

            resized = image
            size = self.target_size(image.width, image.height)
            if size != image.size:
                resized = image.resize(size, Image.Resampling.LANCZOS)

            if pil_format == "JPEG":
                resized = self._flatten(resized)

            output = io.BytesIO()
            try:
                resized.save(output, format=pil_format, quality=self.quality, optimize=True)
            except (OSError, ValueError) as e:
                raise ImageProcessingError(file.filename, f"{pil_format} encoding failed ({e})")
            return output.getvalue(), resized.width, resized.height, content_type


async def read_image_uploads(uploads: Optional[Sequence[UploadFile]]) -> List[ImageFile]:
    """Read multipart uploads into memory, skipping empty file inputs."""
    files = []
    for upload in uploads or []:
        if upload is None or not upload.filename:
            continue
        files.append(await ImageFile.from_upload(upload))
    return files
