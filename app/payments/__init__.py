"""
Payments app for rental checkout and payouts.

This app handles:
- Splitting payments between platform, management company and owner
- Creating Stripe PaymentIntents for approved rental applications
- Settling payments from the confirm endpoint and from webhooks
- Transferring shares to Stripe Connect accounts

Related apps:
    - rentals: applications, properties and agreements moved by settlement
    - authentication: User/Profile for tenants and payout recipients

Usage:
    from payments.services import SettlementReconciler

    outcome = SettlementReconciler().settle_success(payment_intent_id)
"""
