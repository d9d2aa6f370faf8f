"""
Client-side reconciliation poller.

Follows one order's payment until it settles:

    idle -> processing -> complete

start() sends one return probe when the page was reached from a provider
redirect, then polls order-info. Requests for an order are serialized:
the next poll is scheduled only after the previous response arrived.
The delay follows the server's nextPollAt hint while reconciliation is
pending (clamped to 1-60 s), otherwise 5 s.

Polling stops when the latest transaction is completed or failed, the
order is paid, or reconciliation is completed, failed or expired. A 401
or 403 stops polling immediately. stop() or starting another order makes
in-flight responses stale; stale responses are dropped.

Usage:
    poller = ReconciliationPoller(
        PaymentStatusClient(base_url, token=token),
        on_update=lambda update: print(update.view_status, update.message),
    )
    poller.start(order_id, "cashfree", return_params=request_query)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable

from payments.client import messages
from payments.client.scheduler import PollScheduler
from payments.client.transport import PollingAuthorizationError, PollingRequestError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from payments.client.transport import PaymentStatusClient

logger = logging.getLogger(__name__)

PROVIDER_METHODS = frozenset({"upi", "cashfree", "phonepe"})
MIN_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 60.0
FALLBACK_DELAY_SECONDS = 5.0


class PollerState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETE = "complete"


@dataclass
class PollUpdate:
    """Snapshot handed to on_update after every state change."""

    order_id: str
    state: PollerState
    view_status: str
    order_info: dict[str, Any] | None = None

    @property
    def message(self) -> str:
        return messages.status_message(self.view_status)

    @property
    def can_retry(self) -> bool:
        return self.view_status == messages.EXPIRED


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def view_status_for(info: Mapping[str, Any]) -> str:
    """Map an order-info response to a view status."""
    order = info.get("order") or {}
    latest = info.get("latestTransaction") or {}
    reconciliation = info.get("reconciliation") or {}
    latest_status = latest.get("status")
    reconciliation_status = reconciliation.get("status")

    if order.get("paymentStatus") == "paid" or latest_status == "completed":
        return messages.PAID
    if latest_status in ("failed", "cancelled") or reconciliation_status == "failed":
        return messages.FAILED
    if reconciliation_status == "expired":
        return messages.EXPIRED
    if reconciliation_status == "completed":
        return messages.PAID
    if not reconciliation and not latest:
        return messages.PENDING
    return messages.PROCESSING


def is_settled(view_status: str) -> bool:
    return view_status != messages.PROCESSING


class ReconciliationPoller:
    """
    Polls order-info for one order at a time.

    Args:
        client: PaymentStatusClient
        scheduler: PollScheduler owning the single timer per order
        on_update: Called with a PollUpdate after each state change
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        client: PaymentStatusClient,
        scheduler: PollScheduler | None = None,
        on_update: Callable[[PollUpdate], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.client = client
        self.scheduler = scheduler or PollScheduler()
        self.on_update = on_update
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.state = PollerState.IDLE
        self.view_status = messages.PENDING
        self.order_id: str | None = None
        self.provider: str | None = None
        self.last_info: dict[str, Any] | None = None

        self._lock = threading.RLock()
        self._generation = 0
        self._in_flight: int | None = None

    # =========================================================================
    # Public API
    # =========================================================================

    def start(
        self,
        order_id: str,
        payment_method: str,
        return_params: Mapping[str, str] | None = None,
    ) -> None:
        """Begin following order_id; replaces any order being followed."""
        self.stop()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.order_id = str(order_id)
            self.provider = payment_method if payment_method in PROVIDER_METHODS - {"upi"} else None
            self.last_info = None

        if payment_method not in PROVIDER_METHODS and not return_params:
            self._set_state(generation, PollerState.COMPLETE, messages.PENDING)
            return

        self._set_state(generation, PollerState.PROCESSING, messages.PROCESSING)

        provider = self.provider or (return_params or {}).get("provider")
        if return_params and provider:
            try:
                self.client.probe_return(provider, return_params)
            except PollingAuthorizationError:
                self._unauthorized(generation)
                return
            except PollingRequestError as e:
                logger.warning(
                    "Return probe failed, polling anyway",
                    extra={"order_id": self.order_id, "error": e.message},
                )

        self._poll(generation)

    def stop(self) -> None:
        """Cancel the pending timer; in-flight responses become stale."""
        with self._lock:
            order_id = self.order_id
            self._generation += 1
        if order_id:
            self.scheduler.cancel(order_id)

    def retry(self) -> dict[str, Any] | None:
        """
        Start a new payment attempt after reconciliation expired.

        Returns:
            The retry response, or None when retry is not available
        """
        with self._lock:
            if self.view_status != messages.EXPIRED or not self.order_id:
                return None
            order_id = self.order_id
            provider = self.provider or ((self.last_info or {}).get("order") or {}).get("paymentMethod")
            generation = self._generation

        try:
            response = self.client.retry(provider, order_id)
        except PollingAuthorizationError:
            self._unauthorized(generation)
            return None

        if response.get("shouldStartPolling"):
            with self._lock:
                self._generation += 1
                generation = self._generation
            self._set_state(generation, PollerState.PROCESSING, messages.PROCESSING)
            self._schedule(generation, self._delay_for(response.get("reconciliation")))
        return response

    # =========================================================================
    # Polling
    # =========================================================================

    def _poll(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self.state != PollerState.PROCESSING:
                return
            if self._in_flight == generation:
                return
            self._in_flight = generation
            order_id = self.order_id

        try:
            info = self.client.get_order_info(order_id)
        except PollingAuthorizationError:
            self._finish_request(generation)
            self._unauthorized(generation)
            return
        except PollingRequestError as e:
            self._finish_request(generation)
            logger.warning("Order info request failed", extra={"order_id": order_id, "error": e.message})
            self._schedule(generation, FALLBACK_DELAY_SECONDS)
            return

        if not self._finish_request(generation):
            logger.debug("Dropping stale order info response", extra={"order_id": order_id})
            return

        view_status = view_status_for(info)
        with self._lock:
            self.last_info = info

        if is_settled(view_status):
            self._set_state(generation, PollerState.COMPLETE, view_status)
            return

        self._set_state(generation, PollerState.PROCESSING, view_status)
        self._schedule(generation, self._delay_for(info.get("reconciliation")))

    def _finish_request(self, generation: int) -> bool:
        """Clear the in-flight marker. Returns False if the response is stale."""
        with self._lock:
            if self._in_flight == generation:
                self._in_flight = None
            return generation == self._generation

    def _schedule(self, generation: int, delay: float) -> None:
        with self._lock:
            if generation != self._generation:
                return
            order_id = self.order_id
        self.scheduler.schedule(order_id, delay, lambda: self._poll(generation))

    def _delay_for(self, reconciliation: Mapping[str, Any] | None) -> float:
        if not reconciliation or reconciliation.get("status") != "pending":
            return FALLBACK_DELAY_SECONDS
        next_poll_at = parse_timestamp(reconciliation.get("nextPollAt"))
        if next_poll_at is None:
            return FALLBACK_DELAY_SECONDS
        seconds = (next_poll_at - self.clock()).total_seconds()
        return min(max(seconds, MIN_DELAY_SECONDS), MAX_DELAY_SECONDS)

    # =========================================================================
    # State
    # =========================================================================

    def _unauthorized(self, generation: int) -> None:
        self._set_state(generation, PollerState.COMPLETE, messages.AUTHORIZATION)
        self.stop()

    def _set_state(self, generation: int, state: PollerState, view_status: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self.state = state
            self.view_status = view_status
            update = PollUpdate(
                order_id=self.order_id,
                state=state,
                view_status=view_status,
                order_info=self.last_info,
            )
        if self.on_update:
            self.on_update(update)
