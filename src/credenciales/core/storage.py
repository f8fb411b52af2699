# src/credenciales/core/storage.py
"""
Storage for uploaded images (photos, signatures, the president's signature).

Paths handed to and returned from storage are relative strings such as
``photos/<member-id>-<hex>.png``; they are what the database rows keep.
"""
import asyncio
import io
import logging
import posixpath
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

from fastapi import UploadFile
from minio import Minio
from minio.error import S3Error

from credenciales.core import errors
from credenciales.core.config import Settings, async_retry

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/png": "png", "image/jpeg": "jpg"}
ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg"}
CONTENT_TYPES_BY_EXTENSION = {"png": "image/png", "jpg": "image/jpeg", "jpeg": "image/jpeg"}


class FileStorage(Protocol):
    async def save(self, relative_path: str, data: bytes, content_type: str) -> None:
        ...

    async def load(self, relative_path: str) -> Optional[bytes]:
        ...


def _clean_relative_path(relative_path: str) -> str:
    normalized = posixpath.normpath(relative_path.replace("\\", "/"))
    if normalized.startswith(("/", "..")) or normalized in (".", ""):
        raise ValueError(f"Unsafe storage path: {relative_path!r}")
    return normalized


def content_type_for(relative_path: str) -> str:
    extension = relative_path.rsplit(".", 1)[-1].lower()
    return CONTENT_TYPES_BY_EXTENSION.get(extension, "application/octet-stream")


def member_file_path(folder: str, member_id: str, extension: str) -> str:
    return f"{folder}/{member_id}-{uuid4().hex}.{extension}"


async def read_image_upload(upload: UploadFile, max_bytes: int) -> tuple[bytes, str]:
    """
    Validate an uploaded image and return its bytes and file extension.

    Nothing is written anywhere until this has returned.
    """
    filename = upload.filename or ""
    if upload.content_type not in ALLOWED_IMAGE_TYPES:
        logger.info("Rejected upload %r with content type %s", filename, upload.content_type)
        raise errors.UploadRejected("Only PNG or JPEG files are allowed")
    if "." in filename and filename.rsplit(".", 1)[-1].lower() not in ALLOWED_EXTENSIONS:
        logger.info("Rejected upload %r by extension", filename)
        raise errors.UploadRejected("Only PNG or JPEG files are allowed")

    limit_mb = max_bytes // (1024 * 1024)
    if upload.size is not None and upload.size > max_bytes:
        logger.info("Rejected upload %r of %d bytes", filename, upload.size)
        raise errors.UploadRejected(f"File must be smaller than {limit_mb}MB")
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        logger.info("Rejected upload %r larger than %d bytes", filename, max_bytes)
        raise errors.UploadRejected(f"File must be smaller than {limit_mb}MB")
    if not data:
        raise errors.UploadRejected("The uploaded file is empty")
    return data, ALLOWED_IMAGE_TYPES[upload.content_type]


class LocalFileStorage:
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, relative_path: str) -> Path:
        return self.root / _clean_relative_path(relative_path)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def _read(self, target: Path) -> Optional[bytes]:
        if not target.is_file():
            return None
        return target.read_bytes()

    async def save(self, relative_path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(relative_path)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, target, data)
        logger.info("Stored %s (%d bytes)", relative_path, len(data))

    async def load(self, relative_path: str) -> Optional[bytes]:
        target = self._resolve(relative_path)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, target)


class MinioFileStorage:
    def __init__(self, client: Minio, bucket: str):
        self.client = client
        self.bucket = bucket

    @async_retry(max_attempts=3, base_delay=0.3, max_delay=2.0)
    async def ensure_bucket(self) -> None:
        loop = asyncio.get_running_loop()
        exists = await loop.run_in_executor(None, self.client.bucket_exists, self.bucket)
        if not exists:
            await loop.run_in_executor(None, self.client.make_bucket, self.bucket)
            logger.info("Created MinIO bucket %s", self.bucket)

    def _put(self, name: str, data: bytes, content_type: str) -> None:
        self.client.put_object(
            self.bucket, name, io.BytesIO(data), length=len(data), content_type=content_type
        )

    def _get(self, name: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(self.bucket, name)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return None
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    async def save(self, relative_path: str, data: bytes, content_type: str) -> None:
        name = _clean_relative_path(relative_path)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._put, name, data, content_type)
        logger.info("Stored %s in bucket %s (%d bytes)", name, self.bucket, len(data))

    async def load(self, relative_path: str) -> Optional[bytes]:
        name = _clean_relative_path(relative_path)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get, name)


async def build_storage(settings: Settings) -> FileStorage:
    if settings.MINIO_URL:
        secure = settings.MINIO_URL.startswith("https://")
        endpoint = settings.MINIO_URL.replace("https://", "").replace("http://", "")
        client = Minio(
            endpoint=endpoint,
            access_key=settings.MINIO_ROOT_USER or "",
            secret_key=settings.MINIO_ROOT_PASSWORD or "",
            secure=secure,
        )
        storage = MinioFileStorage(client, settings.MINIO_BUCKET)
        await storage.ensure_bucket()
        logger.info("MinIO storage initialized (secure=%s)", secure)
        return storage
    logger.info("Local storage rooted at %s", settings.STORAGE_ROOT)
    return LocalFileStorage(settings.STORAGE_ROOT)
