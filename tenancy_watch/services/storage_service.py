"""Document archive backed by Supabase storage."""

import re
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import AppError
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def archive_key(source_type: str, case_ref: Optional[str], url: str) -> str:
    """Deterministic archive path for a case document.

    ``disputes/DR0124-12345/Determination.pdf``: the reference with
    whitespace replaced by ``_`` and other unsafe characters dropped, then
    the last path segment of the original URL.
    """
    clean_ref = _UNSAFE_KEY_CHARS.sub("", re.sub(r"\s+", "_", (case_ref or "unknown").strip())) or "unknown"
    filename = unquote(urlparse(url).path.rstrip("/").split("/")[-1]) or "document.pdf"
    return f"{source_type}/{clean_ref}/{filename}"


class StorageService:
    """Reads and writes archived documents in a Supabase storage bucket."""

    def __init__(
        self,
        bucket: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = settings.storage.url.rstrip("/")
        self.service_role_key = settings.storage.service_role_key
        self.bucket = bucket or settings.storage.archive_bucket
        self.timeout = timeout or settings.llm.document_timeout_seconds
        self.transport = transport
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.service_role_key)

    async def download(self, path: str) -> Optional[bytes]:
        """Fetch an archived object; None when it isn't in the archive.

        Raises:
            AppError: On transport failures or unexpected status codes
        """
        if not self.enabled:
            return None

        object_url = f"{self.base_api_url}/object/{self.bucket}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(object_url, headers=self.headers)
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading {path} from archive: {str(e)}")
            raise AppError(f"Storage download error: {str(e)}", original_error=e)

        # Supabase answers 400 "Object not found" as well as 404
        if response.status_code in (400, 404):
            return None
        if response.status_code != 200:
            LOGGER.error(
                f"Archive download failed: {response.text[:200]}",
                extra={"bucket": self.bucket, "path": path, "status_code": response.status_code}
            )
            raise AppError(f"Archive download failed with HTTP {response.status_code}")
        return response.content

    async def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> None:
        """Store ``data`` at ``path``, overwriting any existing object.

        Raises:
            AppError: If the upload fails
        """
        if not self.enabled:
            return

        upload_url = f"{self.base_api_url}/object/{self.bucket}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    upload_url,
                    headers={**self.headers, "Content-Type": content_type, "x-upsert": "true"},
                    content=data,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading {path} to archive: {str(e)}", exc_info=True)
            raise AppError(f"Storage upload error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload document to archive: {response.text[:200]}",
                extra={"bucket": self.bucket, "path": path, "status_code": response.status_code}
            )
            raise AppError(f"Upload failed: {response.text[:200]}")
