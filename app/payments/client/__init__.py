"""
Client library for following a payment until it settles.

Usage:
    from payments.client import PaymentStatusClient, ReconciliationPoller

    poller = ReconciliationPoller(PaymentStatusClient(base_url, token=token), on_update=render)
    poller.start(order_id, "phonepe")
"""

from payments.client.messages import status_message
from payments.client.poller import PollerState, PollUpdate, ReconciliationPoller
from payments.client.scheduler import PollScheduler
from payments.client.transport import (
    PaymentStatusClient,
    PollingAuthorizationError,
    PollingError,
    PollingRequestError,
)

__all__ = [
    "PaymentStatusClient",
    "PollScheduler",
    "PollUpdate",
    "PollerState",
    "PollingAuthorizationError",
    "PollingError",
    "PollingRequestError",
    "ReconciliationPoller",
    "status_message",
]
