"""Thin Paystack REST client (transaction initialize / verify / refund, webhook signatures)."""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import requests

from ..core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"


def to_minor_units(amount: float) -> int:
    return int(round(float(amount) * 100))


def compute_signature(secret_key: str, raw_body: bytes) -> str:
    return hmac.new(secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


class PaystackClient:
    def __init__(
        self,
        secret_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self._secret_key = secret_key or ""
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, *, json: Optional[dict] = None) -> Dict[str, Any]:
        if not self._secret_key:
            raise PaymentGatewayError("Payment gateway is not configured")

        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._session.request(method, f"{self._base_url}{path}", headers=headers, json=json, timeout=self._timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning("Paystack %s %s failed: %s", method, path, e)
            raise PaymentGatewayError("Payment gateway request failed") from e
        except ValueError as e:
            raise PaymentGatewayError("Payment gateway returned an invalid response") from e

        if not body.get("status"):
            raise PaymentGatewayError(body.get("message") or "Payment gateway rejected the request")
        return body.get("data") or {}

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: float,
        reference: str,
        metadata: Optional[dict] = None,
        callback_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url
        return self._request("POST", "/transaction/initialize", json=payload)

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        return self._request("GET", f"/transaction/verify/{reference}")

    def refund(self, *, transaction: str, amount: float, reason: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/refund",
            json={"transaction": transaction, "amount": to_minor_units(amount), "merchant_note": reason},
        )

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        if not signature or not self._secret_key:
            return False
        return hmac.compare_digest(compute_signature(self._secret_key, raw_body), signature)
