import httpx
import pytest

from app.core.constants import RefundStatusEnum
from app.core.exceptions import GatewayError
from app.services.sslcommerz import SSLCommerzClient, map_refund_status


def _client(handler):
    return SSLCommerzClient(
        base_url="https://sandbox.test",
        store_id="store",
        store_password="secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("refunded", RefundStatusEnum.REFUNDED),
        ("success", RefundStatusEnum.REFUNDED),
        ("Processing", RefundStatusEnum.PROCESSING),
        ("initiated", RefundStatusEnum.INITIATED),
        ("cancelled", RefundStatusEnum.FAILED),
        ("failed", RefundStatusEnum.FAILED),
    ],
)
def test_map_refund_status(raw, expected):
    assert map_refund_status(raw) == expected


def test_unknown_refund_status_is_a_gateway_error():
    with pytest.raises(GatewayError):
        map_refund_status("on_hold")


@pytest.mark.asyncio
async def test_create_session_returns_redirect():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={
            "status": "SUCCESS",
            "sessionkey": "SESSION123",
            "GatewayPageURL": "https://sandbox.test/pay/SESSION123",
        })

    result = await _client(handler).create_session({"tran_id": "T1", "total_amount": "100.00"})

    assert result == {"session_key": "SESSION123", "gateway_url": "https://sandbox.test/pay/SESSION123"}
    assert seen["path"] == "/gwprocess/v4/api.php"
    assert "store_id=store" in seen["body"]


@pytest.mark.asyncio
async def test_create_session_failure():
    def handler(request):
        return httpx.Response(200, json={"status": "FAILED", "failedreason": "Store is de-active"})

    with pytest.raises(GatewayError) as exc_info:
        await _client(handler).create_session({"tran_id": "T1"})
    assert "de-active" in exc_info.value.message


@pytest.mark.asyncio
async def test_validate_transaction():
    def handler(request):
        assert request.url.params["val_id"] == "VAL1"
        return httpx.Response(200, json={"status": "VALID"})

    assert await _client(handler).validate_transaction("VAL1") is True


@pytest.mark.asyncio
async def test_initiate_refund():
    def handler(request):
        params = request.url.params
        assert params["bank_tran_id"] == "BANK1"
        assert params["refund_amount"] == "250.00"
        return httpx.Response(200, json={
            "APIConnect": "DONE",
            "status": "success",
            "refund_ref_id": "RR-1",
            "bank_tran_id": "BANK1",
            "trans_id": "REF_1",
        })

    result = await _client(handler).initiate_refund(
        bank_tran_id="BANK1", refund_transaction_id="REF_1", refund_amount=250, refund_remarks="duplicate"
    )
    assert result["refund_ref_id"] == "RR-1"


@pytest.mark.asyncio
async def test_initiate_refund_rejected():
    def handler(request):
        return httpx.Response(200, json={"APIConnect": "DONE", "status": "failed", "errorReason": "Already refunded"})

    with pytest.raises(GatewayError):
        await _client(handler).initiate_refund(
            bank_tran_id="BANK1", refund_transaction_id="REF_1", refund_amount=250, refund_remarks="duplicate"
        )


@pytest.mark.asyncio
async def test_query_refund_status_maps_status():
    def handler(request):
        return httpx.Response(200, json={
            "APIConnect": "DONE",
            "refund_ref_id": "RR-1",
            "status": "refunded",
            "initiated_on": "2024-03-01 10:00:00",
            "refunded_on": "2024-03-02 10:00:00",
        })

    result = await _client(handler).query_refund_status("RR-1")
    assert result["status"] == RefundStatusEnum.REFUNDED
    assert result["refunded_on"] == "2024-03-02 10:00:00"


@pytest.mark.asyncio
async def test_http_error_becomes_gateway_error():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    with pytest.raises(GatewayError):
        await _client(handler).query_refund_status("RR-1")


@pytest.mark.asyncio
async def test_network_error_becomes_gateway_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError):
        await _client(handler).validate_transaction("VAL1")


@pytest.mark.asyncio
async def test_non_json_response_is_a_gateway_error():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(GatewayError):
        await _client(handler).query_refund_status("RR-1")
