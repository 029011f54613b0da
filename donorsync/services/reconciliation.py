"""Wiring: build the reconciliation engine and its collaborators from app config."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pytz
from flask import current_app

from donorsync.reconcile.engine import ReconciliationEngine
from donorsync.reconcile.locks import ContactLocks
from donorsync.reconcile.notify import NotifySettings
from donorsync.reconcile.ports import CRMClient, PaymentClient
from donorsync.services.crm import SqlCRMClient
from donorsync.services.payments import StripePaymentClient

# Tests (and alternate deployments) can install their own collaborators here.
PAYMENT_CLIENT_KEY = "donorsync.payment_client"
CRM_CLIENT_KEY = "donorsync.crm_client"
ENGINE_KEY = "donorsync.engine"
LOCKS_KEY = "donorsync.contact_locks"


def local_clock(tz_name: str) -> Callable[[], datetime]:
    tz = pytz.timezone(tz_name or "UTC")

    def _now() -> datetime:
        return datetime.now(tz=tz)

    return _now


def get_payment_client() -> PaymentClient:
    client = current_app.extensions.get(PAYMENT_CLIENT_KEY)
    return client if client is not None else StripePaymentClient.from_app()


def get_crm_client() -> CRMClient:
    client = current_app.extensions.get(CRM_CLIENT_KEY)
    return client if client is not None else SqlCRMClient.from_app()


def get_engine() -> ReconciliationEngine:
    engine = current_app.extensions.get(ENGINE_KEY)
    if engine is not None:
        return engine

    cfg = current_app.config
    # one lock registry per app so request threads share it
    locks = current_app.extensions.setdefault(LOCKS_KEY, ContactLocks())
    return ReconciliationEngine(
        get_crm_client(),
        get_payment_client(),
        notify_settings=NotifySettings.from_config(cfg),
        site_url=str(cfg.get("PUBLIC_BASE_URL") or ""),
        clock=local_clock(str(cfg.get("TIMEZONE") or "UTC")),
        locks=locks,
    )
