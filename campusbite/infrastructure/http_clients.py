import httpx
import logging
from typing import Dict, List, Optional, Sequence

from campusbite.application.interfaces import PaymentAuthorizer, PushTransport
from campusbite.domain.models import PaymentVerdict

logger = logging.getLogger(__name__)


class HTTPPaymentAuthorizer(PaymentAuthorizer):
    """Asks the payment gateway whether a payment reference was authorized"""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    async def verify(self, payment_reference: str) -> PaymentVerdict:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    f"{self._base_url}/api/payments/{payment_reference}",
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )

                if response.status_code == 200:
                    status = str(response.json().get("status", "")).lower()
                    if status in ("succeeded", "success", "paid", "authorized"):
                        return PaymentVerdict.AUTHORIZED
                    if status in ("failed", "rejected", "cancelled"):
                        return PaymentVerdict.REJECTED
                    return PaymentVerdict.UNKNOWN
                elif response.status_code == 404:
                    return PaymentVerdict.REJECTED
                else:
                    logger.warning(f"Payment gateway returned {response.status_code} for {payment_reference}")
                    return PaymentVerdict.UNKNOWN

        except httpx.RequestError as e:
            logger.error(f"Payment gateway connection error: {e}")
            return PaymentVerdict.UNKNOWN


class HTTPPushTransport(PushTransport):
    """Multicast sender backed by the push gateway"""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    async def send_multicast(
        self, tokens: Sequence[str], title: str, body: str, data: Dict[str, str]
    ) -> List[dict]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self._base_url}/api/push/multicast",
                json={
                    "tokens": list(tokens),
                    "notification": {"title": title, "body": body},
                    "data": data
                },
                headers={
                    "X-API-Key": self._api_token,
                    "Content-Type": "application/json"
                },
                timeout=self._timeout
            )
            response.raise_for_status()
            results = response.json().get("responses", [])

        delivered = []
        for index, token in enumerate(tokens):
            if index < len(results):
                result = results[index]
                delivered.append({
                    "token": token,
                    "success": bool(result.get("success")),
                    "error": result.get("error")
                })
            else:
                # Gateway answered for fewer tokens than were sent
                delivered.append({"token": token, "success": False, "error": "no result from push gateway"})
        return delivered
