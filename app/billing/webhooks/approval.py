"""
Approval decision for gateway notifications.

Gateways are inconsistent about which field they fill in, so any single
positive signal approves a notification. An explicit denial signal always
wins over every positive signal, including a stale status code.

    approved = (status == 1 or auth == "00" or total_paid > 0
                or message matches /aprobad|approved/i)
               and not (status == 0
                        or (auth and auth != "00")
                        or message matches /denegad|denied/i)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from billing.adapters import NormalizedNotification

APPROVED_AUTH_CODE = "00"
APPROVED_MESSAGE_RE = re.compile(r"aprobad|approved", re.IGNORECASE)
DENIED_MESSAGE_RE = re.compile(r"denegad|denied", re.IGNORECASE)

# Gateway amounts beyond this are treated as unparseable
MAX_AMOUNT = Decimal("99999999.99")


@dataclass(frozen=True)
class ApprovalDecision:
    """Outcome of the approval rule with the signals that produced it."""

    approved: bool
    denied: bool
    status_approved: bool
    auth_approved: bool
    amount_approved: bool
    message_approved: bool

    def as_log_fields(self) -> dict[str, bool]:
        return {
            "approved": self.approved,
            "denied": self.denied,
            "status_approved": self.status_approved,
            "auth_approved": self.auth_approved,
            "amount_approved": self.amount_approved,
            "message_approved": self.message_approved,
        }


def parse_amount(value: str) -> Decimal:
    """
    Parse a gateway amount string.

    Unparseable values and magnitudes above MAX_AMOUNT count as zero.
    """
    try:
        amount = Decimal(value.strip().replace(",", ""))
    except (InvalidOperation, AttributeError):
        return Decimal("0")
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return Decimal("0")
    return amount


def decide(
    status_code: int | None,
    auth_status_code: str,
    total_paid: str,
    human_message: str,
) -> ApprovalDecision:
    auth = (auth_status_code or "").strip()
    message = human_message or ""

    status_approved = status_code == 1
    auth_approved = auth == APPROVED_AUTH_CODE
    amount_approved = parse_amount(total_paid or "") > 0
    message_approved = APPROVED_MESSAGE_RE.search(message) is not None

    denied = (
        status_code == 0
        or (auth != "" and auth != APPROVED_AUTH_CODE)
        or DENIED_MESSAGE_RE.search(message) is not None
    )
    approved = (
        status_approved or auth_approved or amount_approved or message_approved
    ) and not denied

    return ApprovalDecision(
        approved=approved,
        denied=denied,
        status_approved=status_approved,
        auth_approved=auth_approved,
        amount_approved=amount_approved,
        message_approved=message_approved,
    )


def decide_notification(notification: NormalizedNotification) -> ApprovalDecision:
    return decide(
        notification.status_code,
        notification.auth_status_code,
        notification.total_paid,
        notification.human_message,
    )
