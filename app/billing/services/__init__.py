"""
Billing services.

Services:
    - OrderRegistry: order id -> billing intent
    - CheckoutService: order creation and payment links
    - ChargeGenerator: monthly charge batch
    - LateFeeEngine: late fee batch
    - account_balance: balance summary per subscriber
"""

from .account import AccountBalance, account_balance
from .charge_generator import ChargeGenerator, ChargeRunResult
from .checkout import CheckoutService, CreateOrderParams, CreateOrderResult
from .fees import monthly_fee_for
from .late_fee_engine import LateFeeEngine, LateFeeRunResult, compute_late_fee
from .order_registry import OrderIntent, OrderRegistry

__all__ = [
    "AccountBalance",
    "ChargeGenerator",
    "ChargeRunResult",
    "CheckoutService",
    "CreateOrderParams",
    "CreateOrderResult",
    "LateFeeEngine",
    "LateFeeRunResult",
    "OrderIntent",
    "OrderRegistry",
    "account_balance",
    "compute_late_fee",
    "monthly_fee_for",
]
