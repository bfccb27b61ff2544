# app/services/payment/signature.py
"""Gateway callback signatures: hex HMAC-SHA256 of "{order_id}|{payment_id}"."""

import hashlib
import hmac


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Constant-time comparison against the expected signature."""
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
