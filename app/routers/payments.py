"""
routers/payments.py — PayPal and Square payment operations

Business Rules:
- Signed-in users only
- Gateway failures surface as PaymentProcessingError, which main.py turns
  into a 502 carrying the processor's fixed message
- Every successful money movement goes to the transaction log channel

Called by: main.py (router mount)
Depends on: connectors/paypal, connectors/square, logging_config
"""

from fastapi import APIRouter, Depends

from ..connectors.paypal import paypal
from ..connectors.square import square
from ..dependencies import require_user
from ..logging_config import transaction
from ..models import User
from ..schemas.payments import (
    PayPalOrderCreate,
    PayPalRefundCreate,
    SquareCustomerCreate,
    SquarePaymentCreate,
    SquareRefundCreate,
)

router = APIRouter(tags=["payments"])


# ── PayPal ────────────────────────────────────────────────────────────


@router.post("/api/payments/paypal/orders", status_code=201)
async def paypal_create_order(payload: PayPalOrderCreate, user: User = Depends(require_user)):
    order = await paypal.create_order(
        payload.amount, payload.currency, payload.return_url, payload.cancel_url,
        description=payload.description,
    )
    transaction("PayPal order created", payload.amount, payload.currency,
                user_id=user.id, order_id=order.get("id"))
    return order


@router.post("/api/payments/paypal/orders/{order_id}/capture")
async def paypal_capture_order(order_id: str, user: User = Depends(require_user)):
    capture = await paypal.capture_order(order_id)
    transaction("PayPal order captured", None, None, user_id=user.id, order_id=order_id,
                status=capture.get("status"))
    return capture


@router.post("/api/payments/paypal/refunds")
async def paypal_refund(payload: PayPalRefundCreate, user: User = Depends(require_user)):
    refund = await paypal.process_refund(payload.capture_id, payload.amount, payload.currency)
    transaction("PayPal refund", payload.amount, payload.currency, user_id=user.id,
                capture_id=payload.capture_id, refund_id=refund.get("id"))
    return refund


# ── Square ────────────────────────────────────────────────────────────


@router.post("/api/payments/square/payments", status_code=201)
async def square_create_payment(payload: SquarePaymentCreate, user: User = Depends(require_user)):
    payment = await square.create_payment(
        payload.amount, payload.currency, payload.source_id,
        customer_id=payload.customer_id, note=payload.note,
    )
    transaction("Square payment", payload.amount, payload.currency, user_id=user.id,
                payment_id=payment.get("id"), status=payment.get("status"))
    return payment


@router.post("/api/payments/square/customers", status_code=201)
async def square_create_customer(payload: SquareCustomerCreate, user: User = Depends(require_user)):
    return await square.create_customer(payload.given_name, payload.family_name, payload.email_address)


@router.post("/api/payments/square/refunds")
async def square_refund(payload: SquareRefundCreate, user: User = Depends(require_user)):
    refund = await square.process_refund(payload.payment_id, payload.amount, payload.currency)
    transaction("Square refund", payload.amount, payload.currency, user_id=user.id,
                payment_id=payload.payment_id, refund_id=refund.get("id"))
    return refund
