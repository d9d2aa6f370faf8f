"""
Tests for payments app.

This package contains test modules for:
- test_models.py / test_state_transitions.py: PaymentTransaction FSM, jobs, events
- test_order_sync.py / test_transaction_state.py: Order payment projection
- test_payment_initiation.py / test_payment_retry.py / test_payment_return.py
- test_reconciliation_service.py / test_tasks.py: Server-side polling
- test_adapters.py / test_providers.py: Cashfree and PhonePe integration
- test_webhooks.py / test_views.py: HTTP endpoints
- test_poller.py: Client-side reconciliation poller

Usage:
    pytest payments/tests/
    pytest payments/tests/test_reconciliation_service.py
"""
