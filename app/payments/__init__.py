"""
Payments app for UPI order payments.

This app handles:
- Payment initiation with Cashfree and PhonePe
- Transaction lifecycle (initiated, pending, completed, failed, cancelled)
- Webhook event handling
- Server-side reconciliation polling and retry after expiry
- The order payment status projection

Related apps:
    - orders: Order model whose payment_status this app maintains

Usage:
    from payments.services import PaymentInitiationService

    # Start a payment for an order
    result = PaymentInitiationService.initiate(order, PaymentProvider.CASHFREE)

    # Apply a provider-reported status
    TransactionStateService.apply_provider_status(transaction, update)
"""
