# test_image_upload.py
# Description: Tests for the photo upload client against a mocked image host
#
# Imports
#
# 3rd-party Libraries
import httpx
import pytest
#
# Local Imports
from visittrack_API.app.core.config import MediaConfig
from visittrack_API.app.core.Media.image_upload import ImageUploadError, upload_image
#
#######################################################################################################################
#
# Helpers:

HOSTED_URL = "https://i.ibb.co/abc123/visit.jpg"


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def media_config():
    return MediaConfig(imgbb_api_key="test-key", upload_url="https://api.imgbb.test/1/upload")


#######################################################################################################################
#
# Tests:

@pytest.mark.asyncio
async def test_upload_returns_hosted_url(media_config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"url": HOSTED_URL}})

    url = await upload_image(b"\xff\xd8\xffdata", "visit.jpg", media_config, "image/jpeg", client=mock_client(handler))
    assert url == HOSTED_URL
    request = seen[0]
    assert request.url.params["key"] == "test-key"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="image"' in request.content
    assert b'filename="visit.jpg"' in request.content


@pytest.mark.asyncio
async def test_missing_key_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ImageUploadError):
        await upload_image(b"data", "p.jpg", MediaConfig(), client=mock_client(handler))


@pytest.mark.asyncio
async def test_empty_image_is_refused(media_config):
    with pytest.raises(ImageUploadError):
        await upload_image(b"", "p.jpg", media_config, client=mock_client(lambda r: httpx.Response(200)))


@pytest.mark.asyncio
@pytest.mark.parametrize("response, status_code", [
    (httpx.Response(400, json={"success": False, "error": {"message": "Invalid API key"}}), 400),
    (httpx.Response(200, json={"success": False, "error": {"message": "Image too large"}}), 200),
    (httpx.Response(200, text="<html>oops</html>"), 200),
    (httpx.Response(200, json={"success": True, "data": {}}), 200),
])
async def test_failed_uploads(media_config, response, status_code):
    with pytest.raises(ImageUploadError) as exc_info:
        await upload_image(b"data", "p.jpg", media_config, client=mock_client(lambda r: response))
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_network_error(media_config):
    def handler(request):
        raise httpx.ConnectError("unreachable")

    with pytest.raises(ImageUploadError) as exc_info:
        await upload_image(b"data", "p.jpg", media_config, client=mock_client(handler))
    assert exc_info.value.status_code is None
