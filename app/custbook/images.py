from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from app.custbook.constants import MAX_IMAGE_BYTES, UPLOAD_PREFIX
from app.custbook.errors import InvalidImage, UploadFailed
from app.custbook.storage import Storage, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    content_type: str
    filename: str


@dataclass(frozen=True)
class UploadResult:
    key: str
    public_url: str


def sanitize_upload_filename(filename: str) -> str:
    fn = secure_filename(filename or "")
    return fn or "image.bin"


def asset_from_file(f: FileStorage | None) -> ImageAsset | None:
    """
    Read a bound multipart file. Browsers submit an empty part when no file was chosen;
    that counts as "no asset".
    """
    if f is None or not f.filename:
        return None
    data = f.read()
    if not data:
        return None
    return ImageAsset(
        data=data,
        content_type=(f.mimetype or "application/octet-stream").strip(),
        filename=f.filename,
    )


@dataclass(frozen=True)
class AssetUploader:
    storage: Storage
    prefix: str = UPLOAD_PREFIX
    max_bytes: int = MAX_IMAGE_BYTES

    def object_key(self, filename: str) -> str:
        # millisecond prefix keeps keys roughly time-ordered; the random part avoids collisions
        stamp = int(time.time() * 1000)
        return f"{self.prefix}/{stamp}-{uuid.uuid4().hex[:8]}-{sanitize_upload_filename(filename)}"

    def upload(self, asset: ImageAsset) -> UploadResult:
        size = len(asset.data)
        if size == 0:
            raise InvalidImage("Uploaded image is empty.")
        if size > self.max_bytes:
            raise InvalidImage(f"Uploaded image is too large ({size} bytes, limit {self.max_bytes}).")

        key = self.object_key(asset.filename)
        try:
            self.storage.put_bytes(key, asset.data, content_type=asset.content_type)
            url = self.storage.public_url(key)
        except StorageError as e:
            logger.warning("Image upload failed key=%s: %s", key, e)
            raise UploadFailed(f"Could not store uploaded image: {e}") from e
        logger.info("Image uploaded key=%s size=%s content_type=%s", key, size, asset.content_type)
        return UploadResult(key=key, public_url=url)
