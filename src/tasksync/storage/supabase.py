"""Supabase Storage adapter over its REST API.

Learn: Supabase Storage is S3-like object storage fronted by a small HTTP
API, so httpx is all we need:

    POST   /storage/v1/object/{bucket}/{path}        upload bytes
    DELETE /storage/v1/object/{bucket}               {"prefixes": [path]}
    POST   /storage/v1/object/sign/{bucket}/{path}   {"expiresIn": seconds}

Uploaded files are renamed to `{uuid}-{epoch_ms}.{ext}` so user-supplied
names never reach the bucket. The returned "url" is that object path;
clients exchange it for a signed URL via GET /avatar/url/{key}.
"""

import re
import uuid
from datetime import timedelta
from typing import Optional

import httpx
import structlog

from tasksync.core.clock import utcnow
from tasksync.ports.services import FileStorage, SignedUrl, UploadedFile

logger = structlog.get_logger()

ALLOWED_CONTENT_TYPES = re.compile(r"^(image/(jpeg|jpg|png|webp|gif)|application/pdf)$")


class StorageError(Exception):
    """Raised when the storage API rejects a request."""


class SupabaseStorage(FileStorage):
    def __init__(
        self,
        url: str,
        key: str,
        bucket: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = url.rstrip("/") + "/storage/v1"
        self.bucket = bucket
        self._headers = {"Authorization": f"Bearer {key}", "apikey": key}
        self._client = client
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        url = f"{self.base_url}{path}"
        if self._client is not None:
            resp = await self._client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, headers=headers, **kwargs)

        if resp.status_code >= 400:
            logger.warning(
                "storage.request_failed",
                method=method,
                path=path,
                status=resp.status_code,
                body=resp.text[:200],
            )
            raise StorageError(f"Storage API error {resp.status_code}: {resp.text[:200]}")
        return resp

    async def upload(self, filename: str, content_type: str, body: bytes) -> UploadedFile:
        if not ALLOWED_CONTENT_TYPES.match(content_type or ""):
            raise StorageError(f"Unsupported file type: {content_type}")

        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
        path = f"{uuid.uuid4()}-{int(utcnow().timestamp() * 1000)}.{extension}"

        await self._request(
            "POST",
            f"/object/{self.bucket}/{path}",
            content=body,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        logger.info("storage.uploaded", path=path, size=len(body))
        return UploadedFile(url=path)

    async def delete(self, path: str) -> None:
        await self._request(
            "DELETE",
            f"/object/{self.bucket}",
            json={"prefixes": [path]},
        )

    async def get_signed_url(self, path: str, expires_in: int = 3600) -> SignedUrl:
        expires_at = utcnow() + timedelta(seconds=expires_in)
        resp = await self._request(
            "POST",
            f"/object/sign/{self.bucket}/{path}",
            json={"expiresIn": expires_in},
        )
        signed_path = resp.json()["signedURL"]
        return SignedUrl(url=f"{self.base_url}{signed_path}", expires_at=expires_at)
