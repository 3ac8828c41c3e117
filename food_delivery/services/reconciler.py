"""
Order Status Reconciler

Applies verified payment-gateway events to orders. A completed checkout
session moves its order from ``placed`` to ``paid`` and replaces the
customer-declared total with the amount the gateway actually settled.

The transition is a compare-and-set on ``status = placed``, so a redelivered
event cannot re-apply itself. Events that cannot be applied are written to
PaymentEventLog instead of disappearing.
"""

import enum
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.core.exceptions import NotFoundError
from food_delivery.models import Order, OrderStatus, PaymentEventLog, utcnow
from food_delivery.services.payment import CHECKOUT_COMPLETED, GatewayEvent

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, enum.Enum):
    PAID = "paid"
    ALREADY_APPLIED = "already_applied"
    IGNORED = "ignored"


class OrderStatusReconciler:
    """Consumes gateway events and transitions order status."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def handle_event(self, event: GatewayEvent) -> ReconcileOutcome:
        """
        Apply one verified event.

        Returns:
            ReconcileOutcome: What happened to the order

        Raises:
            NotFoundError: A completion event names no existing order
        """
        if event.type != CHECKOUT_COMPLETED:
            logger.debug(f"Ignoring gateway event {event.id} of type {event.type}")
            return ReconcileOutcome.IGNORED

        return await self._mark_paid(event)

    async def _mark_paid(self, event: GatewayEvent) -> ReconcileOutcome:
        order_id = event.order_id
        if not order_id:
            await self._log_unapplied(event, "missing_order_id")
            raise NotFoundError("Order not found")

        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PLACED)
            .values(
                status=OrderStatus.PAID,
                total_amount=event.amount_total,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            await self.db.commit()
            logger.info(
                f"Order {order_id} paid - settled amount {event.amount_total} "
                f"(event {event.id}, session {event.session_id})"
            )
            return ReconcileOutcome.PAID

        current = (
            await self.db.execute(select(Order.status).where(Order.id == order_id))
        ).scalar_one_or_none()

        if current is None:
            logger.warning(f"Gateway event {event.id} references unknown order {order_id}")
            await self._log_unapplied(event, "order_not_found")
            raise NotFoundError("Order not found")

        logger.warning(
            f"Gateway event {event.id} for order {order_id} ignored: "
            f"order is already {current.value}"
        )
        await self._log_unapplied(event, f"order_{current.value}")
        return ReconcileOutcome.ALREADY_APPLIED

    async def _log_unapplied(self, event: GatewayEvent, reason: str) -> None:
        self.db.add(PaymentEventLog(
            event_id=event.id,
            event_type=event.type,
            order_id=event.order_id,
            session_id=event.session_id,
            amount_total=event.amount_total,
            reason=reason,
        ))
        await self.db.commit()
