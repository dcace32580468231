import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.constants import RefundStatusEnum
from app.core.exceptions import GatewayError

logger = logging.getLogger(__name__)

REFUND_STATUS_MAP = {
    "initiated": RefundStatusEnum.INITIATED,
    "processing": RefundStatusEnum.PROCESSING,
    "refunded": RefundStatusEnum.REFUNDED,
    "success": RefundStatusEnum.REFUNDED,
    "failed": RefundStatusEnum.FAILED,
    "cancelled": RefundStatusEnum.FAILED,
}


def map_refund_status(raw_status: Optional[str]) -> RefundStatusEnum:
    mapped = REFUND_STATUS_MAP.get((raw_status or "").strip().lower())
    if mapped is None:
        raise GatewayError(f"Unknown refund status from gateway: {raw_status!r}")
    return mapped


class SSLCommerzClient:
    def __init__(
        self,
        base_url: str = None,
        store_id: str = None,
        store_password: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.sslcommerz_base_url
        self.store_id = store_id or settings.SSLCOMMERZ_STORE_ID
        self.store_password = store_password or settings.SSLCOMMERZ_STORE_PASSWORD
        self.timeout = timeout or settings.SSLCOMMERZ_TIMEOUT_SECONDS
        self.transport = transport

    def _credentials(self) -> Dict[str, str]:
        return {"store_id": self.store_id, "store_passwd": self.store_password}

    async def _make_request(self, method: str, path: str, params: Optional[dict] = None, data: Optional[dict] = None) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            url = f"{self.base_url}{path}"
            try:
                response = await client.request(method, url, params=params, data=data)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"SSLCOMMERZ {path} returned HTTP {e.response.status_code}")
                raise GatewayError(f"Gateway error: HTTP {e.response.status_code}")
            except httpx.RequestError as e:
                logger.error(f"SSLCOMMERZ {path} unreachable: {e}")
                raise GatewayError(f"Failed to connect to payment gateway: {e}")

            try:
                return response.json()
            except ValueError:
                raise GatewayError("Gateway returned a non-JSON response")

    async def create_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = {**payload, **self._credentials()}
        result = await self._make_request("POST", "/gwprocess/v4/api.php", data=data)
        if result.get("status") != "SUCCESS" or not result.get("GatewayPageURL"):
            raise GatewayError(result.get("failedreason") or "Failed to create payment session")
        return {
            "session_key": result.get("sessionkey"),
            "gateway_url": result["GatewayPageURL"],
        }

    async def validate_transaction(self, val_id: str) -> bool:
        params = {"val_id": val_id, "format": "json", **self._credentials()}
        result = await self._make_request("GET", "/validator/api/validationserverAPI.php", params=params)
        return result.get("status") in ("VALID", "VALIDATED")

    async def initiate_refund(
        self, *, bank_tran_id: str, refund_transaction_id: str, refund_amount: float, refund_remarks: str
    ) -> Dict[str, Any]:
        params = {
            "bank_tran_id": bank_tran_id,
            "refund_trans_id": refund_transaction_id,
            "refund_amount": f"{refund_amount:.2f}",
            "refund_remarks": refund_remarks,
            "v": "1",
            "format": "json",
            **self._credentials(),
        }
        result = await self._make_request("GET", "/validator/api/merchantTransIDvalidationAPI.php", params=params)
        if result.get("APIConnect") != "DONE" or result.get("status") != "success" or not result.get("refund_ref_id"):
            raise GatewayError(result.get("errorReason") or "Refund initiation failed")
        return {
            "refund_ref_id": result["refund_ref_id"],
            "bank_tran_id": result.get("bank_tran_id"),
            "trans_id": result.get("trans_id"),
        }

    async def query_refund_status(self, refund_ref_id: str) -> Dict[str, Any]:
        params = {"refund_ref_id": refund_ref_id, "format": "json", **self._credentials()}
        result = await self._make_request("GET", "/validator/api/merchantTransIDvalidationAPI.php", params=params)
        if result.get("APIConnect") != "DONE":
            raise GatewayError(result.get("errorReason") or "Failed to query refund status")
        return {
            "refund_ref_id": result.get("refund_ref_id", refund_ref_id),
            "status": map_refund_status(result.get("status")),
            "initiated_on": result.get("initiated_on"),
            "refunded_on": result.get("refunded_on"),
        }


sslcommerz_client = SSLCommerzClient()
