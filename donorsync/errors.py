"""Exception types raised across donorsync."""

from __future__ import annotations

from typing import Dict, List, Optional


class DonorSyncError(Exception):
    """Base class for errors raised by donorsync."""


class ContactNotReady(DonorSyncError):
    """The CRM has no contact (with a record id) for the donor yet; retry later."""

    def __init__(self, email: Optional[str]):
        super().__init__(f"contact not ready: {email or '(no email)'}")
        self.email = email


class PaymentError(DonorSyncError):
    """The payment processor refused or failed to create a charge."""


class FormValidationError(DonorSyncError):
    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}
