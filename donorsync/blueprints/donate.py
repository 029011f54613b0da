"""
Checkout endpoint.

  POST /donate   form-encoded or JSON; dashed field names accepted

Responses are API-style JSON: {ok, message, ...}.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, cast

from flask import Blueprint, current_app, jsonify, request

from donorsync.errors import FormValidationError, PaymentError
from donorsync.forms import DonationForm, normalize_payload
from donorsync.reconcile.notify import Notifier, NotifySettings
from donorsync.services import CheckoutService, get_crm_client, get_payment_client
from donorsync.services.reconciliation import local_clock

bp = Blueprint("donate", __name__)


def _request_payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data:
        return cast(Dict[str, Any], data)
    if request.form:
        return cast(Dict[str, Any], request.form.to_dict(flat=True))
    return {}


def _json_response(payload: Dict[str, Any], status: int = 200):
    resp = jsonify(payload)
    resp.status_code = int(status)
    resp.headers.setdefault("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
    return resp


def _json_ok(payload: Dict[str, Any], status: int = 200):
    payload.setdefault("ok", True)
    return _json_response(payload, status)


def _json_error(message: str, status: int, extra: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {"ok": False, "message": message, "error": {"message": message}}
    if extra:
        body["error"].update(extra)
    return _json_response(body, status)


@bp.errorhandler(FormValidationError)
def _invalid_form(err: FormValidationError):
    return _json_error(err.message, 400, extra={"fields": err.errors})


@bp.post("/donate")
def donate():
    cfg = current_app.config

    form = DonationForm(formdata=normalize_payload(_request_payload()))
    form.min_amount_cents = int(cfg.get("MIN_DONATION_CENTS") or 51)
    if not form.validate():
        current_app.logger.info("donate: rejected form: %s", form.errors)
        raise FormValidationError("Please correct the highlighted fields.", form.errors)

    crm = get_crm_client()
    service = CheckoutService(get_payment_client(), crm, Notifier(crm, NotifySettings.from_config(cfg)))
    today = local_clock(str(cfg.get("TIMEZONE") or "UTC"))().date()

    try:
        receipt = service.begin(form.to_request(), today)
    except PaymentError as e:
        current_app.logger.warning("donate: payment refused: %s", e)
        return _json_error(str(e) or "Payment failed", 402)

    if not receipt.crm_ok:
        # the card was charged; the donor has to confirm the rest with staff
        contact = str(cfg.get("EMAIL_REPLY_TO") or cfg.get("MAIL_DEFAULT_SENDER") or "")
        return _json_ok(
            {
                "message": (
                    "Something went wrong recording your donation. Your card may have been charged; "
                    f"please get in contact at {contact} to confirm your donation went through."
                ),
                "warning": True,
                "contact_email": contact,
                "stripe_id": receipt.stripe_id,
                "amount": receipt.amount_string,
                "recurrence": receipt.recurrence,
            }
        )

    return _json_ok(
        {
            "message": "Thank you for your donation!",
            "stripe_id": receipt.stripe_id,
            "amount": receipt.amount_string,
            "recurrence": receipt.recurrence,
        }
    )
