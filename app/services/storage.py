"""
Object storage for video and thumbnail blobs.

Two backends behind one interface:
- LocalObjectStorage: files on disk; signed URLs carry a short-lived JWT and are served by
  GET /api/storage/{bucket}/{key} (see routers/storage.py).
- SupabaseObjectStorage: Supabase Storage REST API via httpx; Supabase signs the URL.

Callers must authorize the user before asking for a signed URL.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import BinaryIO, Protocol
from urllib.parse import quote

import httpx
from jose import JWTError, jwt

from app.config import get_settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

PUBLIC_OBJECT_MARKER = "/storage/v1/object/public/"
OBJECT_READ_TOKEN_TYPE = "object_read"
CHUNK_SIZE = 1024 * 1024  # 1 MB


class StorageError(Exception):
    pass


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_at: datetime


def normalize_object_key(stored_path: str, bucket: str) -> str:
    """
    Map any stored path representation to the object key inside `bucket`:
    - full public URL  https://x.supabase.co/storage/v1/object/public/videos/a/b.mp4 -> a/b.mp4
    - bucket prefixed  videos/a/b.mp4 -> a/b.mp4
    - bare key         a/b.mp4 -> a/b.mp4
    """
    marker = f"{PUBLIC_OBJECT_MARKER}{bucket}/"
    if marker in stored_path:
        return stored_path.split(marker, 1)[1]
    if stored_path.startswith(f"{bucket}/"):
        return stored_path[len(bucket) + 1:]
    return stored_path


class ObjectStorage(Protocol):
    async def save(self, bucket: str, key: str, fileobj: BinaryIO, content_type: str) -> None:
        ...

    async def exists(self, bucket: str, key: str) -> bool:
        ...

    async def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> SignedUrl:
        ...

    async def delete(self, bucket: str, key: str) -> None:
        ...


# ---------- Local filesystem ----------


def create_object_token(bucket: str, key: str, expires_at: datetime) -> str:
    settings = get_settings()
    payload = {"bucket": bucket, "key": key, "exp": expires_at, "type": OBJECT_READ_TOKEN_TYPE}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def verify_object_token(token: str, bucket: str, key: str) -> bool:
    """True if token is unexpired and was issued for exactly this bucket/key."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return False
    return (
        payload.get("type") == OBJECT_READ_TOKEN_TYPE
        and payload.get("bucket") == bucket
        and payload.get("key") == key
    )


class LocalObjectStorage:
    def __init__(self, root: Path, public_base_url: str):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, bucket: str, key: str) -> Path | None:
        """Resolve bucket/key under root. None if the key escapes the bucket (path traversal)."""
        base = (self.root / bucket).resolve()
        try:
            full = (base / key).resolve()
            full.relative_to(base)
        except (ValueError, OSError):
            return None
        return full

    async def save(self, bucket: str, key: str, fileobj: BinaryIO, content_type: str) -> None:
        path = self.path_for(bucket, key)
        if path is None:
            raise StorageError(f"Invalid object key: {key}")
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as f:
            while chunk := fileobj.read(CHUNK_SIZE):
                f.write(chunk)

    async def exists(self, bucket: str, key: str) -> bool:
        path = self.path_for(bucket, key)
        return path is not None and path.is_file()

    async def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> SignedUrl:
        path = self.path_for(bucket, key)
        if path is None or not path.is_file():
            raise StorageError(f"Object not found: {bucket}/{key}")
        expires_at = utcnow() + timedelta(seconds=ttl_seconds)
        token = create_object_token(bucket, key, expires_at)
        url = f"{self.public_base_url}/api/storage/{bucket}/{quote(key)}?token={token}"
        return SignedUrl(url=url, expires_at=expires_at)

    async def delete(self, bucket: str, key: str) -> None:
        path = self.path_for(bucket, key)
        if path is not None and path.is_file():
            path.unlink()


# ---------- Supabase Storage ----------


class SupabaseObjectStorage:
    def __init__(self, base_url: str, service_key: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.service_key}", "apikey": self.service_key}

    async def save(self, bucket: str, key: str, fileobj: BinaryIO, content_type: str) -> None:
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(key)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                res = await client.post(
                    url,
                    content=fileobj.read(),
                    headers={**self._headers(), "Content-Type": content_type, "x-upsert": "false"},
                )
                res.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Upload failed for {bucket}/{key}: {e}") from e

    async def exists(self, bucket: str, key: str) -> bool:
        url = f"{self.base_url}/storage/v1/object/authenticated/{bucket}/{quote(key)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                res = await client.head(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise StorageError(f"Lookup failed for {bucket}/{key}: {e}") from e
        if res.status_code in (400, 404):
            return False
        if res.is_error:
            raise StorageError(f"Lookup failed for {bucket}/{key}: HTTP {res.status_code}")
        return True

    async def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> SignedUrl:
        url = f"{self.base_url}/storage/v1/object/sign/{bucket}/{quote(key)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                res = await client.post(url, json={"expiresIn": ttl_seconds}, headers=self._headers())
                res.raise_for_status()
                data = res.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"Signing failed for {bucket}/{key}: {e}") from e
        signed_path = data.get("signedURL") or data.get("signedUrl")
        if not signed_path:
            raise StorageError(f"Signing response without URL for {bucket}/{key}")
        return SignedUrl(
            url=f"{self.base_url}/storage/v1{signed_path}",
            expires_at=utcnow() + timedelta(seconds=ttl_seconds),
        )

    async def delete(self, bucket: str, key: str) -> None:
        url = f"{self.base_url}/storage/v1/object/{bucket}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                res = await client.request("DELETE", url, json={"prefixes": [key]}, headers=self._headers())
                res.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Delete failed for {bucket}/{key}: {e}") from e


def local_storage_dir() -> Path:
    settings = get_settings()
    if settings.storage_dir:
        return Path(settings.storage_dir)
    return Path(__file__).resolve().parent.parent.parent / "uploads"


@lru_cache
def get_storage() -> ObjectStorage:
    settings = get_settings()
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise RuntimeError("storage_backend=supabase requires supabase_url and supabase_service_key")
        return SupabaseObjectStorage(settings.supabase_url, settings.supabase_service_key)
    return LocalObjectStorage(local_storage_dir(), settings.public_base_url)
