"""
DRF views for the billing app.

Endpoints:
    POST /api/v1/billing/orders/ - Create order and payment link
    POST /api/v1/billing/charges/generate/ - Run charge generation (admin)
    POST /api/v1/billing/late-fees/apply/ - Run late fee engine (admin)
    GET /api/v1/billing/subscribers/{id}/balance/ - Account balance (admin)
    POST /api/v1/billing/payments/{id}/link/ - Link payment to subscriber (admin)

Gateway webhooks and return callbacks are plain Django views in
billing.webhooks.views.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import ConflictError, NotFoundError

from billing.ledger import ledger
from billing.serializers import (
    AccountBalanceSerializer,
    ChargeRunSerializer,
    CreateOrderResponseSerializer,
    CreateOrderSerializer,
    LateFeeRunSerializer,
    LinkPaymentSerializer,
    PaymentSerializer,
)
from billing.services import (
    ChargeGenerator,
    CheckoutService,
    CreateOrderParams,
    LateFeeEngine,
    account_balance,
)

logger = logging.getLogger(__name__)

GATEWAY_ERROR_CODES = {"GATEWAY_ERROR", "GATEWAY_NOT_CONFIGURED", "UNKNOWN_GATEWAY"}


class CreateOrderView(APIView):
    """
    Create an order and return the gateway payment link.

    POST /api/v1/billing/orders/

    Request body:
        {
            "gateway": "paguelofacil",
            "amount": "130.00",
            "description": "Mensualidad noviembre",
            "order_id": "pay-8f3a-1702",
            "return_url": "https://example.com/pagos/retorno",
            "subject_ref": "<subscriber uuid>",
            "kind": "monthly",
            "extra": {"period": "2025-11"}
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_billing_order",
        summary="Create order",
        request=CreateOrderSerializer,
        responses={
            201: CreateOrderResponseSerializer,
            400: OpenApiResponse(description="Validation failed"),
            502: OpenApiResponse(description="Gateway error"),
        },
        tags=["Billing"],
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = CheckoutService.create_order(CreateOrderParams(**serializer.validated_data))
        if not result.success:
            status_code = (
                status.HTTP_502_BAD_GATEWAY
                if result.error_code in GATEWAY_ERROR_CODES
                else status.HTTP_400_BAD_REQUEST
            )
            return Response(result.to_response(), status=status_code)

        data = CreateOrderResponseSerializer(
            {
                "order_id": result.data.order_id,
                "payment_url": result.data.payment_url,
                "gateway": result.data.gateway,
            }
        ).data
        return Response(data, status=status.HTTP_201_CREATED)


class GenerateChargesView(APIView):
    """
    Run monthly charge generation.

    POST /api/v1/billing/charges/generate/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="generate_billing_charges",
        summary="Generate monthly charges",
        request=ChargeRunSerializer,
        tags=["Billing - Admin"],
    )
    def post(self, request):
        serializer = ChargeRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChargeGenerator.generate(
            period=serializer.validated_data.get("period"),
            force=serializer.validated_data["force"],
        )
        logger.info(
            "Charge generation triggered",
            extra={"user_id": request.user.pk, "period": result.period},
        )
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class ApplyLateFeesView(APIView):
    """
    Run the late fee engine.

    POST /api/v1/billing/late-fees/apply/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="apply_billing_late_fees",
        summary="Apply late fees",
        request=LateFeeRunSerializer,
        tags=["Billing - Admin"],
    )
    def post(self, request):
        serializer = LateFeeRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = LateFeeEngine.apply(
            period=serializer.validated_data.get("period"),
            force=serializer.validated_data["force"],
        )
        logger.info(
            "Late fee run triggered",
            extra={"user_id": request.user.pk, "applied": result.applied},
        )
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class AccountBalanceView(APIView):
    """GET /api/v1/billing/subscribers/{id}/balance/"""

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="get_subscriber_balance",
        summary="Get subscriber balance",
        responses={200: AccountBalanceSerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Billing - Admin"],
    )
    def get(self, request, subscriber_id):
        try:
            balance = account_balance(subscriber_id)
        except NotFoundError as e:
            return Response(e.to_dict(), status=status.HTTP_404_NOT_FOUND)
        return Response(AccountBalanceSerializer(balance.to_dict()).data)


class LinkPaymentView(APIView):
    """
    Attribute an unlinked payment to a confirmed subscriber.

    POST /api/v1/billing/payments/{id}/link/

    Request body:
        {"subscriber_id": "<uuid>"}
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="link_billing_payment",
        summary="Link payment to subscriber",
        request=LinkPaymentSerializer,
        responses={
            200: PaymentSerializer,
            404: OpenApiResponse(description="Payment or subscriber not found"),
            409: OpenApiResponse(description="Payment already linked"),
        },
        tags=["Billing - Admin"],
    )
    def post(self, request, payment_id):
        serializer = LinkPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = ledger.link_payment_to_subscriber(
                payment_id,
                serializer.validated_data["subscriber_id"],
            )
        except NotFoundError as e:
            return Response(e.to_dict(), status=status.HTTP_404_NOT_FOUND)
        except ConflictError as e:
            return Response(e.to_dict(), status=status.HTTP_409_CONFLICT)
        return Response(PaymentSerializer(payment).data)
