"""
Ebook Shelf Backend — Cloudinary Image Store Implementation
=============================================================

What:  Concrete ImageStore backed by the official Cloudinary SDK.
Why:   Covers are served straight from Cloudinary's CDN; the backend only keeps
       the secure URL and the public_id needed to delete the image later.
How:   cloudinary.uploader.upload / cloudinary.uploader.destroy / cloudinary.api.ping,
       run in a worker thread (asyncio.to_thread) because the SDK is blocking.
Who:   Created once in the application lifespan; shared by all requests.

Credentials:
    Passed as per-call options (cloud_name, api_key, api_secret, upload_prefix,
    timeout) built from Settings, so two stores with different settings never
    share the SDK's global configuration.

Failure Policy:
    No retries. Any SDK error (cloudinary.exceptions.Error, which also wraps
    transport failures) or malformed response becomes ImageStoreError with the
    provider detail in `context`.
    A destroy answered with {"result": "not found"} is reported as False.
"""

import asyncio
import base64
import logging
import time
import uuid
from typing import Any, Callable, Dict, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.config import Settings, settings as default_settings
from app.exceptions import ImageStoreError
from app.services.image_store import ImageStore, ImageUpload, StoredImage

logger = logging.getLogger(__name__)


def to_data_uri(image: ImageUpload) -> str:
    encoded = base64.b64encode(image.content).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


class CloudinaryImageStore(ImageStore):
    """
    Cloudinary-backed cover storage.

    Args:
        settings: Source of credentials, API base URL and timeout.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        logger.info(
            "CloudinaryImageStore initialized (cloud=%s, configured=%s)",
            self.settings.cloudinary_cloud_name or "<unset>",
            self.settings.image_store_configured,
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    @property
    def options(self) -> Dict[str, Any]:
        return {
            "cloud_name": self.settings.cloudinary_cloud_name,
            "api_key": self.settings.cloudinary_api_key,
            "api_secret": self.settings.cloudinary_api_secret,
            "upload_prefix": self.settings.cloudinary_api_base,
            "timeout": self.settings.image_store_timeout,
        }

    def _require_credentials(self) -> None:
        if not self.settings.image_store_configured:
            raise ImageStoreError(
                message="Image uploads are not configured on this server.",
                context={"reason": "missing_cloudinary_credentials"},
            )

    async def _call(self, action: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Dict[str, Any]:
        """Run a blocking SDK call off the event loop and translate its failures."""
        call_id = str(uuid.uuid4())[:8]
        start = time.perf_counter()
        try:
            body = await asyncio.to_thread(func, *args, **kwargs, **self.options)
        except CloudinaryError as e:
            logger.error("[%s] Cloudinary %s failed: %s", call_id, action, str(e))
            raise ImageStoreError(
                context={
                    "call_id": call_id,
                    "action": action,
                    "error_type": type(e).__name__,
                    "provider_message": str(e),
                },
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        if not isinstance(body, dict):
            logger.error("[%s] Cloudinary %s returned a malformed response", call_id, action)
            raise ImageStoreError(
                context={"call_id": call_id, "action": action, "reason": "malformed_response"},
            )

        logger.debug("[%s] Cloudinary %s completed in %.0fms", call_id, action, duration_ms)
        return body

    # ── ImageStore API ────────────────────────────────────────────────────

    async def upload(self, image: ImageUpload, namespace: str) -> StoredImage:
        """
        Upload a cover into the `namespace` folder.

        Returns:
            StoredImage(url=secure_url, ref=public_id)

        Raises:
            ImageStoreError on any provider or transport failure.
        """
        self._require_credentials()

        body = await self._call(
            "upload",
            cloudinary.uploader.upload,
            to_data_uri(image),
            folder=namespace,
            resource_type="image",
        )

        url = body.get("secure_url")
        ref = body.get("public_id")
        if not url or not ref:
            logger.error("Cloudinary upload response missing secure_url/public_id")
            raise ImageStoreError(
                context={"action": "upload", "reason": "malformed_response"},
            )

        logger.info("Uploaded cover %s (%d bytes)", ref, image.size)
        return StoredImage(url=url, ref=ref)

    async def delete(self, ref: str) -> bool:
        """
        Destroy an uploaded cover.

        Returns:
            True  — {"result": "ok"}
            False — {"result": "not found"} (already gone; not an error)

        Raises:
            ImageStoreError for SDK failures or any other result.
        """
        self._require_credentials()

        body = await self._call("destroy", cloudinary.uploader.destroy, ref, invalidate=True)

        result = body.get("result")
        if result == "ok":
            logger.info("Deleted cover %s", ref)
            return True
        if result == "not found":
            logger.info("Cover %s was already gone", ref)
            return False

        raise ImageStoreError(
            message="The image service could not delete the cover image.",
            context={"action": "destroy", "result": result, "ref": ref},
        )

    async def health_check(self) -> bool:
        """
        Ping the Cloudinary admin API.

        Returns False (never raises) when credentials are missing, the host is
        unreachable, or it answers with anything other than {"status": "ok"}.
        """
        if not self.settings.image_store_configured:
            return False
        try:
            body = await self._call("ping", cloudinary.api.ping)
        except Exception as e:
            logger.warning("Cloudinary health check failed: %s", str(e))
            return False
        return body.get("status") == "ok"
