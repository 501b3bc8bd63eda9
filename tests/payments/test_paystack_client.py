import json

import pytest
import requests

from lms_portal.core.exceptions import PaymentGatewayError
from lms_portal.payments.paystack import PaystackClient, compute_signature, to_minor_units


class FakeResponse:
    def __init__(self, body, status_code: int = 200):
        self._body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def request(self, method, url, *, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_initialize_sends_amount_in_minor_units_with_bearer_key():
    session = FakeSession(FakeResponse({"status": True, "data": {"authorization_url": "https://checkout/abc"}}))
    client = PaystackClient("sk_test", base_url="https://api.test/", session=session)

    data = client.initialize_transaction(email="a@b.co", amount=1500.5, reference="LMS_1", callback_url="http://cb")

    assert data["authorization_url"] == "https://checkout/abc"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.test/transaction/initialize"
    assert call["headers"]["Authorization"] == "Bearer sk_test"
    assert call["json"]["amount"] == 150050
    assert call["json"]["callback_url"] == "http://cb"


def test_rejected_request_raises_gateway_error():
    client = PaystackClient("sk_test", session=FakeSession(FakeResponse({"status": False, "message": "Invalid key"})))
    with pytest.raises(PaymentGatewayError, match="Invalid key"):
        client.verify_transaction("LMS_1")


def test_network_failure_raises_gateway_error():
    client = PaystackClient("sk_test", session=FakeSession(requests.exceptions.ConnectionError("down")))
    with pytest.raises(PaymentGatewayError):
        client.refund(transaction="123", amount=10, reason="test")


def test_unconfigured_client_refuses_requests():
    session = FakeSession(FakeResponse({"status": True, "data": {}}))
    with pytest.raises(PaymentGatewayError):
        PaystackClient("", session=session).verify_transaction("LMS_1")
    assert session.calls == []


def test_verify_signature_uses_hmac_sha512_of_raw_body():
    client = PaystackClient("sk_test", session=FakeSession(None))
    body = json.dumps({"event": "charge.success"}).encode()

    assert client.verify_signature(body, compute_signature("sk_test", body))
    assert not client.verify_signature(body, compute_signature("other", body))
    assert not client.verify_signature(body + b" ", compute_signature("sk_test", body))
    assert not client.verify_signature(body, None)


def test_to_minor_units_rounds():
    assert to_minor_units(19.999) == 2000
    assert to_minor_units(0.1 + 0.2) == 30
