"""
CheckoutService
===============

Two-phase checkout against an external payment provider:

1. :meth:`CheckoutService.place_order` validates the cart against the live
   product rows, prices it, opens a provider order and parks the computed
   order as a *pending order* keyed by the checkout session id.
2. :meth:`CheckoutService.verify_payment` checks the provider signature and
   turns the pending order into a durable :class:`~storefront.models.order.Order`
   exactly once per provider order id.

:meth:`CheckoutService.payment_failed` drops the pending order when the
payment is abandoned; the cart is left intact.

Nothing here is locked. Two tabs placing orders for the same session simply
overwrite each other's pending record; double verification is bounded by the
unique ``razorpay_order_id`` on ``order_payments``.
"""

from __future__ import annotations

import hmac
import logging
import time
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError

from storefront.models.address import Address
from storefront.models.base import utcnow
from storefront.models.cart import CartItem
from storefront.models.order import (
    PAYMENT_METHODS,
    Order,
    OrderItem,
    OrderPayment,
    generate_order_number,
)
from storefront.models.product import Product
from storefront.services._shared.base import BaseService, ServiceContext
from storefront.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    IntegrityViolationError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    violates,
)
from storefront.services._shared.policies.common import coerce_id, is_owner, sanitize_text
from storefront.services._shared.ports.payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
)
from storefront.services._shared.ports.pending_order_store import (
    PendingOrder,
    PendingOrderStore,
)
from storefront.services.checkout import pricing
from storefront.services.checkout.dto import (
    CheckoutRules,
    PlaceOrderIn,
    PlaceOrderOut,
    VerifyPaymentIn,
    VerifyPaymentOut,
)

log = logging.getLogger(__name__)

# Store-side eviction runs a little after the absolute expiry so an expired
# record is still seen (and reported as expired) on the next access.
STORE_GRACE = timedelta(minutes=5)

# Per-field caps applied to address snapshots.
_SNAPSHOT_LIMITS = {
    "label": 30,
    "full_name": 100,
    "phone": 20,
    "alternate_phone": 20,
    "line1": 200,
    "line2": 200,
    "landmark": 120,
    "city": 80,
    "state": 80,
    "country": 60,
    "postal_code": 12,
}


def address_snapshot(address: Address) -> dict[str, Any]:
    """Sanitized, length-capped copy of ``address`` for the order record."""
    snapshot = address.snapshot()
    for key, limit in _SNAPSHOT_LIMITS.items():
        snapshot[key] = sanitize_text(snapshot.get(key) or "", limit)
    return snapshot


class CheckoutService(BaseService):
    """
    Orchestrates order placement and payment verification.
    """

    def __init__(
        self,
        *,
        payment_gateway: PaymentGateway,
        pending_orders: PendingOrderStore,
        rules: CheckoutRules | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param payment_gateway: Provider adapter (order creation, signatures).
        :param pending_orders: Session-keyed pending order storage.
        :param rules: Checkout limits and charges.
        :param ctx: Optional request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.gateway = payment_gateway
        self.pending = pending_orders
        self.rules = rules or CheckoutRules()

    # ------------------------------------------------------------------ #
    # Phase 1: place order
    # ------------------------------------------------------------------ #

    def place_order(self, dto: PlaceOrderIn, *, session_id: str) -> PlaceOrderOut:
        """
        Price the cart and open a provider order.

        :param dto: Checkout request.
        :param session_id: Checkout session the pending order is keyed by.
        :raises AuthenticationError: Anonymous caller.
        :raises ValidationError: Bad reference, empty cart, amount too low.
        :raises NotFoundError: Address or cart not owned by the caller.
        :raises IntegrityViolationError: One or more lines failed validation.
        :raises UpstreamError: The provider could not create the order.
        """
        if dto.user_id is None:
            raise AuthenticationError("Please login to continue.")
        user_id = dto.user_id

        cart_id = coerce_id(dto.cart_id)
        if cart_id is None:
            raise ValidationError("Invalid cart reference.")
        shipping_id = coerce_id(dto.shipping_address_id)
        if shipping_id is None:
            raise ValidationError("Please select a shipping address.")
        method = dto.payment_method
        if method not in PAYMENT_METHODS:
            raise ValidationError("Please select a valid payment method.")
        if dto.same_billing:
            billing_id = shipping_id
        else:
            billing_id = coerce_id(dto.billing_address_id)
            if billing_id is None:
                raise ValidationError("Please select a billing address.")
        note = sanitize_text(dto.order_note or "", self.rules.max_note_length)

        with self.ro_uow() as uow:
            shipping = uow.addresses.get_owned(shipping_id, user_id)
            if shipping is None:
                raise NotFoundError("Address", shipping_id, "Shipping address not found.")
            billing = shipping
            if billing_id != shipping_id:
                billing = uow.addresses.get_owned(billing_id, user_id)
                if billing is None:
                    raise NotFoundError("Address", billing_id, "Billing address not found.")

            cart = uow.carts.get_owned(cart_id, user_id)
            if cart is None:
                raise NotFoundError("Cart", cart_id, "Cart not found.")
            if not cart.items:
                raise ValidationError("Your cart is empty.")
            if len(cart.items) > self.rules.max_cart_items:
                raise ValidationError("Cart exceeds maximum item limit.")

            products = uow.products.get_many(item.product_id for item in cart.items)
            lines = self._price_lines(cart.items, products)

            shipping_snapshot = address_snapshot(shipping)
            billing_snapshot = address_snapshot(billing)
            prefill = {
                "name": shipping_snapshot["full_name"],
                "contact": shipping_snapshot["phone"],
                "email": dto.email,
            }

        subtotal = pricing.sum_money(
            pricing.line_total(Decimal(line["price"]), line["quantity"]) for line in lines
        )
        shipping_charge = pricing.to_money(self.rules.shipping_charge)
        discount = pricing.ZERO
        total = pricing.order_total(subtotal, shipping_charge, discount)
        if total < self.rules.min_order_amount:
            raise ValidationError("Order amount too low.")

        is_cod = method == "cod"
        if is_cod:
            advance, remaining = pricing.cod_split(total, self.rules.cod_advance_divisor)
            charge = advance
        else:
            advance, remaining = pricing.ZERO, pricing.ZERO
            charge = total

        provider_order = self._create_provider_order(charge, user_id)

        record = PendingOrder(
            razorpay_order_id=provider_order.id,
            amount=str(charge),
            user_id=user_id,
            expires_at=datetime.now(UTC) + self.rules.pending_ttl,
            payload={
                "cart_id": cart_id,
                "items": lines,
                "shipping_address": shipping_snapshot,
                "billing_address": billing_snapshot,
                "subtotal": str(subtotal),
                "shipping_charge": str(shipping_charge),
                "discount": str(discount),
                "total_amount": str(total),
                "order_note": note or None,
                "payment": {
                    "method": method,
                    "is_cod_advance": is_cod,
                    "cod_advance_amount": str(advance),
                    "cod_remaining_amount": str(remaining),
                },
            },
        )
        self.pending.save(session_id, record, ttl=self.rules.pending_ttl + STORE_GRACE)
        log.info(
            "checkout.pending_created",
            extra={"user_id": user_id, "razorpay_order_id": provider_order.id},
        )

        return PlaceOrderOut(
            razorpay_order_id=provider_order.id,
            amount=provider_order.amount,
            currency=provider_order.currency,
            key_id=self.gateway.key_id,
            payment_method=method,
            is_cod_advance=is_cod,
            cod_advance_amount=advance,
            cod_remaining_amount=remaining,
            total_amount=total,
            prefill=prefill,
        )

    def _price_lines(
        self, items: list[CartItem], products: dict[int, Product]
    ) -> list[dict[str, Any]]:
        """
        Re-validate every cart line against its product row.

        Prices come from the product, never from the cart snapshot. Every
        failing line is reported at once.
        """
        rules = self.rules
        errors: list[str] = []
        lines: list[dict[str, Any]] = []
        for item in items:
            product = products.get(item.product_id)
            if product is None or not product.is_purchasable:
                errors.append("A product in your cart is no longer available.")
                continue

            title = product.title
            stock = int(product.stock or 0)
            if not product.in_stock or stock < 1:
                errors.append(f'"{title}" is out of stock.')
                continue

            quantity = int(item.quantity or 0)
            if quantity < rules.min_item_quantity or quantity > rules.max_item_quantity:
                errors.append(f'Invalid quantity for "{title}".')
                continue
            if stock < quantity:
                errors.append(f'Only {stock} unit(s) of "{title}" available.')
                continue

            price = pricing.to_money(product.price or 0)
            if price <= 0:
                errors.append(f'Invalid price for "{title}".')
                continue

            lines.append(
                {
                    "product_id": product.id,
                    "name": sanitize_text(title, 200),
                    "image": product.primary_image or None,
                    "price": str(price),
                    "quantity": quantity,
                }
            )

        if errors:
            raise IntegrityViolationError(errors)
        return lines

    def _create_provider_order(self, charge: Decimal, user_id: int):
        receipt = f"rcpt_{int(time.time() * 1000)}"
        try:
            return self.gateway.create_order(
                amount=pricing.to_minor_units(charge),
                currency=self.rules.currency,
                receipt=receipt,
            )
        except PaymentGatewayError as exc:
            log.error(
                "checkout.provider_order_failed",
                extra={"user_id": user_id, "reason": str(exc)},
            )
            raise UpstreamError() from exc

    # ------------------------------------------------------------------ #
    # Phase 2: verify payment
    # ------------------------------------------------------------------ #

    def verify_payment(self, dto: VerifyPaymentIn, *, session_id: str | None) -> VerifyPaymentOut:
        """
        Turn a paid pending order into a durable order (at most once).

        Gates run in a fixed order and each one fails fast.

        :raises AuthenticationError: Anonymous caller.
        :raises ValidationError: Missing details, stale or mismatched session.
        :raises UpstreamError: Signature mismatch.
        :raises AuthorizationError: Pending order owned by another user.
        """
        if dto.user_id is None:
            raise AuthenticationError("Please login to continue.")
        user_id = dto.user_id
        order_id = dto.razorpay_order_id
        payment_id = dto.razorpay_payment_id
        signature = dto.razorpay_signature
        if not order_id or not payment_id or not signature:
            raise ValidationError("Missing payment details.")

        if not self.gateway.verify_signature(
            order_id=order_id, payment_id=payment_id, signature=signature
        ):
            log.warning("checkout.signature_mismatch", extra={"user_id": user_id})
            raise UpstreamError("Payment verification failed. Please try again.")

        pending = self.pending.load(session_id) if session_id else None
        if pending is None:
            existing = self._existing_order_number(order_id, user_id)
            if existing is not None:
                return VerifyPaymentOut(order_id=existing, created=False)
            raise ValidationError("Your session expired. Please start checkout again.")

        if not is_owner(actor_id=user_id, owner_id=pending.user_id):
            raise AuthorizationError("Unauthorised.")
        if not hmac.compare_digest(pending.razorpay_order_id.encode(), order_id.encode()):
            raise ValidationError("Order reference mismatch.")
        if pending.is_expired():
            self.pending.discard(session_id)
            raise ValidationError("Checkout session expired. Please start again.")

        existing = self._existing_order_number(order_id, user_id)
        if existing is not None:
            self.pending.discard(session_id)
            return VerifyPaymentOut(order_id=existing, created=False)

        try:
            with self.rw_uow() as uow:
                order = self._build_order(pending, payment_id=payment_id, signature=signature)
                uow.orders.add(order)
                order_number = order.order_number
        except IntegrityError as exc:
            if not violates(exc, "razorpay_order_id"):
                raise
            # Another request created the order first
            existing = self._existing_order_number(order_id, user_id)
            if existing is None:
                raise
            self.pending.discard(session_id)
            return VerifyPaymentOut(order_id=existing, created=False)

        self._clear_cart(pending.payload.get("cart_id"), user_id)
        self.pending.discard(session_id)
        log.info(
            "checkout.order_created",
            extra={"user_id": user_id, "order_number": order_number},
        )
        return VerifyPaymentOut(order_id=order_number, created=True)

    def _existing_order_number(self, razorpay_order_id: str, user_id: int) -> str | None:
        with self.ro_uow() as uow:
            order = uow.orders.get_by_razorpay_order_id(razorpay_order_id)
            if order is None or not is_owner(actor_id=user_id, owner_id=order.user_id):
                return None
            return order.order_number

    @staticmethod
    def _build_order(pending: PendingOrder, *, payment_id: str, signature: str) -> Order:
        payload = pending.payload
        payment = payload["payment"]
        is_cod = bool(payment.get("is_cod_advance"))
        return Order(
            order_number=generate_order_number(),
            user_id=pending.user_id,
            cart_id=payload.get("cart_id"),
            shipping_address=payload["shipping_address"],
            billing_address=payload["billing_address"],
            subtotal=Decimal(payload["subtotal"]),
            shipping_charge=Decimal(payload["shipping_charge"]),
            discount=Decimal(payload["discount"]),
            total_amount=Decimal(payload["total_amount"]),
            order_note=payload.get("order_note"),
            status="confirmed",
            items=[
                OrderItem(
                    product_id=int(line["product_id"]),
                    name=line["name"],
                    image=line.get("image"),
                    price=Decimal(line["price"]),
                    quantity=int(line["quantity"]),
                )
                for line in payload["items"]
            ],
            payment=OrderPayment(
                method=payment["method"],
                status="paid",
                razorpay_order_id=pending.razorpay_order_id,
                razorpay_payment_id=payment_id,
                razorpay_signature=signature,
                paid_at=utcnow(),
                is_cod_advance=is_cod,
                cod_advance_amount=Decimal(payment["cod_advance_amount"]),
                cod_remaining_amount=Decimal(payment["cod_remaining_amount"]),
                cod_advance_paid=is_cod,
            ),
        )

    def _clear_cart(self, cart_id: int | None, user_id: int) -> None:
        """Empty the cart; the order already exists, so failures are only logged."""
        if cart_id is None:
            return
        try:
            with self.rw_uow() as uow:
                cart = uow.carts.get_owned(int(cart_id), user_id)
                if cart is not None:
                    uow.carts.clear(cart)
        except Exception:
            log.exception("checkout.cart_clear_failed", extra={"user_id": user_id})

    # ------------------------------------------------------------------ #
    # Abandonment
    # ------------------------------------------------------------------ #

    def payment_failed(self, *, session_id: str | None) -> None:
        """Forget the pending order; the cart stays as it is."""
        if session_id:
            self.pending.discard(session_id)
