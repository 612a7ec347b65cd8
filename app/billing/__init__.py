"""
Billing app: monthly charges, late fees and gateway reconciliation.

This app handles:
- Monthly charge generation for active subscribers
- Late fee application on overdue charges
- Order creation and gateway payment links (PagueloFacil, Yappy)
- Idempotent reconciliation of gateway webhooks and return callbacks

Usage:
    from billing.services import ChargeGenerator, LateFeeEngine
    from billing.webhooks import WebhookReconciler

    ChargeGenerator.generate("2025-11")
    LateFeeEngine.apply()
"""
