# image_upload.py
# Description: Upload of visit photos to the image host (one multipart POST per photo)
#
# Imports
from typing import Optional, TYPE_CHECKING
#
# Third-party imports
import httpx
from loguru import logger
#
if TYPE_CHECKING:
    from visittrack_API.app.core.config import MediaConfig
#
#######################################################################################################################
#
# Functions:


class ImageUploadError(Exception):
    """Raised when a photo cannot be hosted."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def upload_image(
    data: bytes,
    filename: str,
    config: "MediaConfig",
    content_type: str = "application/octet-stream",
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Upload one image and return its hosted URL.

    Args:
        data: Raw image bytes.
        filename: Name sent with the multipart part.
        config: Image host settings (API key, endpoint, timeout).
        content_type: MIME type of the image.
        client: Optional shared httpx client (a temporary one is used otherwise).

    Raises:
        ImageUploadError: Missing key, network failure, non-2xx status or a failed upload.
    """
    if not config.imgbb_api_key:
        raise ImageUploadError("No image host API key is configured")
    if not data:
        raise ImageUploadError("Refusing to upload an empty image")

    files = {"image": (filename or "photo.jpg", data, content_type)}
    params = {"key": config.imgbb_api_key}
    logger.debug(f"Uploading image '{filename}' ({len(data)} bytes) to {config.upload_url}")

    try:
        if client is not None:
            response = await client.post(config.upload_url, params=params, files=files)
        else:
            async with httpx.AsyncClient(timeout=config.timeout_seconds) as temp_client:
                response = await temp_client.post(config.upload_url, params=params, files=files)
    except httpx.HTTPError as e:
        logger.error(f"Image upload network error: {e}")
        raise ImageUploadError(f"Image upload network error: {e}") from e

    if not response.is_success:
        logger.error(f"Image upload failed: HTTP {response.status_code}")
        raise ImageUploadError(f"Image upload failed: HTTP {response.status_code}", status_code=response.status_code)

    try:
        result = response.json()
    except ValueError as e:
        raise ImageUploadError("Image host returned a non-JSON response", status_code=response.status_code) from e

    if not result.get("success"):
        message = (result.get("error") or {}).get("message", "unknown error")
        logger.error(f"Image host rejected upload: {message}")
        raise ImageUploadError(f"Image upload failed: {message}", status_code=response.status_code)

    url = (result.get("data") or {}).get("url")
    if not url:
        raise ImageUploadError("Image host response carries no URL", status_code=response.status_code)
    logger.info(f"Image '{filename}' hosted at {url}")
    return url

#
# End of image_upload.py
########################################################################################################################
