import pytest

from storefront.client.api import unwrap
from storefront.client.errors import ApiError, TransportError
from storefront.client.transport import AiohttpTransport, Response


def test_unwrap_returns_data_of_success_envelope():
    assert unwrap(Response(200, {"success": True, "data": {"a": 1}, "error": None})) == {"a": 1}


def test_unwrap_raises_api_error_with_fields():
    body = {"success": False, "data": None, "error": "Bad", "code": "VALIDATION_ERROR", "errors": [{"field": "phone", "msg": "Bad"}]}
    with pytest.raises(ApiError) as exc:
        unwrap(Response(400, body))
    assert exc.value.code == "VALIDATION_ERROR"
    assert exc.value.field_errors == [{"field": "phone", "msg": "Bad"}]
    assert not exc.value.is_token_expired


def test_unwrap_handles_non_json_error():
    with pytest.raises(ApiError) as exc:
        unwrap(Response(502, None))
    assert exc.value.code == "HTTP_ERROR"
    assert "502" in exc.value.message


@pytest.mark.asyncio
async def test_aiohttp_transport_maps_connection_failure():
    transport = AiohttpTransport("http://127.0.0.1:9", timeout=2)
    try:
        with pytest.raises(TransportError):
            await transport.request("GET", "/health")
    finally:
        await transport.close()
