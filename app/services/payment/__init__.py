# app/services/payment/__init__.py
from .gateway import PaymentGatewayClient
from .reconciliation import PaymentReconciliationService

__all__ = [
    "PaymentGatewayClient",
    "PaymentReconciliationService",
]
