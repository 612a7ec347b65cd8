"""
Checkout: create an order and issue a gateway payment link.

The order intent is stored first so the reconciler can resolve the subject
when the notification arrives. Storing it is best-effort: if the store is
down the link is still issued, and the failure is logged at ERROR because
the resulting payment will arrive unattributed.

Usage:
    from billing.services import CheckoutService, CreateOrderParams

    result = CheckoutService.create_order(CreateOrderParams(
        gateway="paguelofacil",
        amount=Decimal("130.00"),
        description="Mensualidad noviembre",
        order_id="pay-8f3a-1702",
        return_url="https://example.com/pagos/retorno",
        subject_ref=str(subscriber.id),
        kind=OrderKind.MONTHLY,
        extra={"period": "2025-11"},
    ))
    if result.success:
        redirect(result.data.payment_url)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.db import DatabaseError

from core.services import BaseService, ServiceResult

from billing.adapters import PaymentLinkRequest, get_adapter
from billing.exceptions import GatewayError, OrderValidationError
from billing.ledger import Money, ledger
from billing.state_machines import OrderKind

from .order_registry import OrderIntent, OrderRegistry


@dataclass
class CreateOrderParams:
    gateway: str
    amount: Decimal
    description: str
    order_id: str
    return_url: str
    subject_ref: str | None = None
    kind: str = OrderKind.MONTHLY
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class CreateOrderResult:
    order_id: str
    payment_url: str
    gateway: str
    stored: bool


class CheckoutService(BaseService):
    """Create orders and payment links."""

    @classmethod
    def minimum_amount(cls, gateway: str) -> Decimal:
        adapter = get_adapter(gateway)
        return max(Decimal(str(settings.BILLING_MIN_ORDER_AMOUNT)), adapter.minimum_amount)

    @classmethod
    def validate(cls, params: CreateOrderParams) -> None:
        """
        Raises:
            OrderValidationError: On amount below minimum, empty description,
                a bad order id, or an order id that was already paid
            GatewayNotConfigured: If the gateway is unknown
        """
        minimum = cls.minimum_amount(params.gateway)
        if params.amount is None or params.amount < minimum:
            raise OrderValidationError(
                f"Amount must be at least {minimum}",
                details={"amount": [f"Ensure this value is greater than or equal to {minimum}."]},
            )
        if not params.description or not params.description.strip():
            raise OrderValidationError(
                "Description is required",
                details={"description": ["This field may not be blank."]},
            )
        if params.kind not in OrderKind.values:
            raise OrderValidationError(
                f"Unknown order kind '{params.kind}'",
                details={"kind": [f'"{params.kind}" is not a valid choice.']},
            )
        OrderRegistry.validate_order_id(params.order_id)
        if ledger.gateway_payment_exists(params.gateway, params.order_id):
            raise OrderValidationError(
                f"Order {params.order_id} was already paid",
                error_code="ORDER_ALREADY_PAID",
                details={"order_id": ["An order with this id was already paid."]},
            )

    @classmethod
    def custom_params(cls, params: CreateOrderParams) -> dict[str, str]:
        custom = {
            "kind": str(params.kind),
            "amount": str(params.amount),
        }
        if params.subject_ref:
            custom["subject_ref"] = params.subject_ref
        if params.extra.get("period"):
            custom["period"] = params.extra["period"]
        return custom

    @classmethod
    def create_order(cls, params: CreateOrderParams) -> ServiceResult[CreateOrderResult]:
        """
        Validate, store the intent, and issue the payment link.

        Returns:
            ServiceResult with CreateOrderResult, or a failure carrying the
            validation or gateway error code
        """
        logger = cls.get_logger()
        try:
            cls.validate(params)
        except OrderValidationError as e:
            return ServiceResult.failure(
                e.message,
                error_code=e.error_code,
                errors=e.details or None,
            )
        except GatewayError as e:
            return ServiceResult.failure(e.message, error_code=e.error_code)

        intent = OrderIntent(
            amount_cents=Money.from_decimal(params.amount).cents,
            kind=params.kind,
            subject_ref=params.subject_ref,
            extra=params.extra,
        )
        stored = True
        try:
            OrderRegistry.put(params.order_id, intent)
        except DatabaseError:
            stored = False
            logger.error(
                "Failed to store order intent; payment will arrive unattributed",
                exc_info=True,
                extra={
                    "order_id": params.order_id,
                    "subject_ref": params.subject_ref,
                    "gateway": params.gateway,
                },
            )

        try:
            link = get_adapter(params.gateway).create_payment_link(
                PaymentLinkRequest(
                    order_id=params.order_id,
                    amount=params.amount,
                    description=params.description.strip(),
                    return_url=params.return_url,
                    custom_params=cls.custom_params(params),
                )
            )
        except GatewayError as e:
            return cls.handle_exception(
                e,
                f"Payment link creation failed for order {params.order_id}",
                log_level=logging.WARNING,
            )

        logger.info(
            "Payment link issued",
            extra={"order_id": params.order_id, "gateway": params.gateway, "stored": stored},
        )
        return ServiceResult.success(
            CreateOrderResult(
                order_id=params.order_id,
                payment_url=link.payment_url,
                gateway=params.gateway,
                stored=stored,
            )
        )
