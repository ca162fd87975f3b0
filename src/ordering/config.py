"""Runtime settings for the guest-side client, read from the environment."""

import os
from decimal import Decimal

from pydantic import BaseModel, Field

from ordering.checkout.assembly import DEFAULT_DELIVERY_FEE, MAX_CODE_ATTEMPTS
from ordering.tracking.tracker import BACKOFF, MAX_FETCH_ATTEMPTS, POLL_INTERVAL


class OrderingSettings(BaseModel):
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    delivery_fee: Decimal = Field(default=DEFAULT_DELIVERY_FEE, ge=0)
    order_code_attempts: int = Field(default=MAX_CODE_ATTEMPTS, ge=1)
    tracker_poll_interval: float = Field(default=POLL_INTERVAL, gt=0)
    tracker_fetch_attempts: int = Field(default=MAX_FETCH_ATTEMPTS, ge=1)
    tracker_backoff: float = Field(default=BACKOFF, ge=0)
    http_timeout: float = Field(default=10.0, gt=0)

    @classmethod
    def from_env(cls, environ=None) -> "OrderingSettings":
        environ = os.environ if environ is None else environ
        names = {
            "supabase_url": "SUPABASE_URL",
            "supabase_anon_key": "SUPABASE_ANON_KEY",
            "delivery_fee": "DELIVERY_FEE",
            "order_code_attempts": "ORDER_CODE_ATTEMPTS",
            "tracker_poll_interval": "TRACKER_POLL_INTERVAL",
            "tracker_fetch_attempts": "TRACKER_FETCH_ATTEMPTS",
            "tracker_backoff": "TRACKER_BACKOFF",
            "http_timeout": "HTTP_TIMEOUT",
        }
        values = {field: environ[var] for field, var in names.items() if environ.get(var)}
        return cls(**values)
