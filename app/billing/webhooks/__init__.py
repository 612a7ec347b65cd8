"""
Gateway notification handling.

Modules:
    - approval: the approval/denial decision rule
    - reconciler: WebhookReconciler, notification -> ledger
    - views: HTTP endpoints for webhooks and return callbacks
"""

from .approval import ApprovalDecision, decide, decide_notification
from .reconciler import ReconciliationResult, WebhookReconciler

__all__ = [
    "ApprovalDecision",
    "ReconciliationResult",
    "WebhookReconciler",
    "decide",
    "decide_notification",
]
