from .checkout import CheckoutReceipt, CheckoutService
from .crm import SqlCRMClient
from .events import event_from_payload
from .payments import ChargeCustomer, StripePaymentClient
from .reconciliation import get_crm_client, get_engine, get_payment_client

__all__ = [
    "ChargeCustomer",
    "CheckoutReceipt",
    "CheckoutService",
    "SqlCRMClient",
    "StripePaymentClient",
    "event_from_payload",
    "get_crm_client",
    "get_engine",
    "get_payment_client",
]
