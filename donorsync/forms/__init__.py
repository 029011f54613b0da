from .donation_form import CheckoutRequest, DonationForm, normalize_payload, parse_cents

__all__ = ["CheckoutRequest", "DonationForm", "normalize_payload", "parse_cents"]
