import logging
import os
import uuid

from fastapi import UploadFile

from .config import MAX_UPLOAD_BYTES, UPLOAD_DIR, UPLOAD_URL_PREFIX
from .errors import ValidationError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """
    Stores uploaded images on local disk and hands back a public URL.

    Files get a random name (keeping the original extension) so uploads can
    never overwrite each other or escape ``directory``.
    """

    def __init__(self, directory: str, url_prefix: str, max_bytes: int = MAX_UPLOAD_BYTES):
        self.directory = directory
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        os.makedirs(self.directory, exist_ok=True)

    def save(self, upload: UploadFile) -> str:
        """
        Persist an image upload.

        Returns
        -------
        str
            URL under which the file is served.

        Raises
        ------
        ValidationError
            If the file is not an image, is empty, or is larger than
            ``max_bytes``.
        """
        if not (upload.content_type or "").startswith("image/"):
            raise ValidationError("Only image files are allowed")

        data = upload.file.read(self.max_bytes + 1)
        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > self.max_bytes:
            raise ValidationError(f"File too large (max {self.max_bytes} bytes)")

        _, ext = os.path.splitext(upload.filename or "")
        filename = f"{uuid.uuid4().hex}{ext.lower()}"
        with open(os.path.join(self.directory, filename), "wb") as fh:
            fh.write(data)

        logger.info("Stored upload %s (%d bytes)", filename, len(data))
        return f"{self.url_prefix}/{filename}"

    def delete(self, url: str) -> None:
        """Remove a file previously returned by ``save``; unknown URLs are ignored."""
        filename = os.path.basename(url)
        if not url.startswith(f"{self.url_prefix}/") or not filename:
            return
        path = os.path.join(self.directory, filename)
        if os.path.exists(path):
            os.remove(path)
            logger.info("Removed upload %s", filename)


blob_store = LocalBlobStore(UPLOAD_DIR, UPLOAD_URL_PREFIX)


def get_blob_store() -> LocalBlobStore:
    return blob_store
