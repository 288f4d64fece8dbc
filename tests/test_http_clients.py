import httpx
import pytest

from campusbite.domain.models import PaymentVerdict
from campusbite.infrastructure.http_clients import HTTPPaymentAuthorizer, HTTPPushTransport


def gateway(handler):
    return httpx.MockTransport(handler)


async def test_push_results_are_matched_to_tokens():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["api_key"] = request.headers["X-API-Key"]
        return httpx.Response(200, json={"responses": [
            {"success": True},
            {"success": False, "error": "unregistered"},
        ]})

    push = HTTPPushTransport("http://push", "secret", transport=gateway(handler))

    results = await push.send_multicast(["phone", "laptop"], "Order #abc123 Update", "Your order is now Preparing", {})

    assert seen == {"path": "/api/push/multicast", "api_key": "secret"}
    assert results == [
        {"token": "phone", "success": True, "error": None},
        {"token": "laptop", "success": False, "error": "unregistered"},
    ]


async def test_missing_push_results_count_as_failures():
    def handler(request):
        return httpx.Response(200, json={"responses": [{"success": True}]})

    push = HTTPPushTransport("http://push", "secret", transport=gateway(handler))

    results = await push.send_multicast(["phone", "laptop", "tablet"], "title", "body", {})

    assert [r["token"] for r in results] == ["phone", "laptop", "tablet"]
    assert [r["success"] for r in results] == [True, False, False]
    assert results[2]["error"]


async def test_push_gateway_error_is_raised():
    push = HTTPPushTransport("http://push", "secret", transport=gateway(lambda request: httpx.Response(500)))

    with pytest.raises(httpx.HTTPStatusError):
        await push.send_multicast(["phone"], "title", "body", {})


@pytest.mark.parametrize("response, verdict", [
    (httpx.Response(200, json={"status": "succeeded"}), PaymentVerdict.AUTHORIZED),
    (httpx.Response(200, json={"status": "failed"}), PaymentVerdict.REJECTED),
    (httpx.Response(200, json={"status": "processing"}), PaymentVerdict.UNKNOWN),
    (httpx.Response(404), PaymentVerdict.REJECTED),
    (httpx.Response(502), PaymentVerdict.UNKNOWN),
])
async def test_payment_verdicts(response, verdict):
    payments = HTTPPaymentAuthorizer("http://payments", "secret", transport=gateway(lambda request: response))

    assert await payments.verify("pay_123") == verdict


async def test_payment_gateway_unreachable_is_unknown():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    payments = HTTPPaymentAuthorizer("http://payments", "secret", transport=gateway(handler))

    assert await payments.verify("pay_123") == PaymentVerdict.UNKNOWN
