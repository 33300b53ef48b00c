"""OrderLifecycle — the entry point for moving an order through its states.

Each operation takes the order's lock, runs the matching command through the
domain (load → mutate → commit), reloads the committed order and then tells
the transition sinks about it. Two callers racing on one order are
serialized; the loser sees the winner's committed state and gets an
InvalidTransitionError instead of overwriting it.

Slot capacity is reserved before a scheduled order is transitioned and given
back if the transition fails. Locks are always taken order first, then slot.
"""

import json

import structlog
from protean.utils.globals import current_domain

from dispatch.channel import get_payments, get_sinks
from dispatch.errors import InvalidTransitionError
from dispatch.locking import order_locks
from dispatch.order.assignment import AssignOrder, ReassignOrder
from dispatch.order.cancellation import CancelOrder
from dispatch.order.confirmation import ConfirmOrder
from dispatch.order.creation import CreateOrder
from dispatch.order.delivery import MarkDelivered
from dispatch.order.location import LocateOrder
from dispatch.order.order import FulfillmentMode, Order, OrderStatus
from dispatch.order.pickup import RecordPickup
from dispatch.order.quoting import AttachQuote, QuoteOrder
from dispatch.planning.planner import AssignmentPlanner
from dispatch.pricing.quote import Quote
from dispatch.slot.registry import SlotRegistry

logger = structlog.get_logger(__name__)


def _order_id(order) -> str:
    return str(order.id) if isinstance(order, Order) else str(order)


def _as_json(value):
    if value is None or isinstance(value, str):
        return value
    if hasattr(value, "to_dict"):
        value = value.to_dict()
    return json.dumps(value, default=str)


def assignment_payload(order: Order) -> dict | None:
    if order.assignment is None:
        return None
    return {
        "courier_id": order.assignment.courier_id,
        "vehicle": order.assignment.vehicle,
        "eta_minutes": order.assignment.eta_minutes,
        "slot_id": order.assignment.slot_id,
    }


class OrderLifecycle:
    def __init__(self, slots: SlotRegistry | None = None, planner: AssignmentPlanner | None = None):
        self.slots = slots or SlotRegistry()
        self.planner = planner or AssignmentPlanner(slots=self.slots)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, order_id) -> Order:
        return current_domain.repository_for(Order).get(str(order_id))

    def list_for_user(self, user_id) -> list[Order]:
        return current_domain.repository_for(Order).find_by_user(str(user_id))

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _publish(self, order: Order) -> None:
        payload = assignment_payload(order)
        for sink in get_sinks():
            try:
                sink.publish(str(order.id), order.status, payload)
            except Exception as exc:
                logger.warning(
                    "Transition sink failed",
                    sink=getattr(sink, "name", type(sink).__name__),
                    order_id=str(order.id),
                    status=order.status,
                    error=str(exc),
                )

    def _run(self, order_id: str, command) -> Order:
        """Process a command under the order lock and publish the committed state."""
        with order_locks.hold(order_id):
            current_domain.process(command, asynchronous=False)
            order = self.get(order_id)
            self._publish(order)
        logger.info("Order transitioned", order_id=order_id, status=order.status)
        return order

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def create(
        self,
        user_id,
        fulfillment_mode,
        pickup,
        dropoff,
        package=None,
        payment_method=None,
        scheduled_at=None,
        promo_code=None,
        vehicle_type=None,
    ) -> Order:
        command = CreateOrder(
            user_id=str(user_id),
            fulfillment_mode=fulfillment_mode.value if isinstance(fulfillment_mode, FulfillmentMode) else fulfillment_mode,
            scheduled_at=scheduled_at,
            pickup=_as_json(pickup),
            dropoff=_as_json(dropoff),
            package=_as_json(package),
            payment_method=payment_method,
            promo_code=promo_code,
            vehicle_type=vehicle_type,
        )
        order_id = current_domain.process(command, asynchronous=False)
        order = self.get(order_id)
        self._publish(order)
        logger.info("Order created", order_id=order_id, fulfillment_mode=order.fulfillment_mode)
        return order

    def locate(self, order) -> Order:
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            changed = current_domain.process(LocateOrder(order_id=order_id), asynchronous=False)
            located = self.get(order_id)
        if not changed:
            logger.info("Order coordinates unchanged", order_id=order_id)
        return located

    def quote(self, order) -> Order:
        order_id = _order_id(order)
        return self._run(order_id, QuoteOrder(order_id=order_id))

    def attach_quote(self, order, quote: Quote) -> Order:
        order_id = _order_id(order)
        return self._run(
            order_id,
            AttachQuote(
                order_id=order_id,
                currency=quote.currency,
                amount=quote.amount,
                distance_km=quote.distance_km,
                weight_kg=quote.weight_kg,
                promo_code=quote.promo_code,
                discount=quote.discount,
            ),
        )

    def confirm(self, order, payment_intent_id: str) -> Order:
        """Confirm a quoted order. A retry with the same intent id returns it unchanged."""
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            return self._confirm(order_id, payment_intent_id)

    def confirm_with_payment(self, order) -> Order:
        """Create a payment intent for the quoted amount, then confirm.

        An order that is already confirmed is returned unchanged, so a client
        retry neither fails nor opens a second payment intent.
        """
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            current = self.get(order_id)
            if current.status == OrderStatus.CONFIRMED.value and current.payment_intent_id:
                logger.info(
                    "Repeated confirmation ignored",
                    order_id=order_id,
                    payment_intent_id=current.payment_intent_id,
                )
                return current
            current.assert_can_transition(OrderStatus.CONFIRMED)
            intent_id = get_payments().create_intent(current.quote.amount, current.quote.currency)
            return self._confirm(order_id, intent_id)

    def _confirm(self, order_id: str, payment_intent_id: str) -> Order:
        """Confirm under an order lock the caller already holds."""
        changed = current_domain.process(
            ConfirmOrder(order_id=order_id, payment_intent_id=payment_intent_id),
            asynchronous=False,
        )
        confirmed = self.get(order_id)
        if changed:
            self._publish(confirmed)
            logger.info("Order transitioned", order_id=order_id, status=confirmed.status)
        else:
            logger.info("Repeated confirmation ignored", order_id=order_id, payment_intent_id=payment_intent_id)
        return confirmed

    def assign(self, order, assignment) -> Order:
        """Bind an already planned assignment (courier, or reserved slot) to the order."""
        order_id = _order_id(order)
        return self._run(
            order_id,
            AssignOrder(
                order_id=order_id,
                courier_id=assignment.courier_id,
                vehicle=assignment.vehicle,
                eta_minutes=assignment.eta_minutes,
                slot_id=assignment.slot_id,
            ),
        )

    def assign_on_demand(self, order, candidates) -> Order:
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            current = self.get(order_id)
            current.assert_assignable(FulfillmentMode.ON_DEMAND)
            assignment = self.planner.plan_on_demand(current, candidates)
            current_domain.process(
                AssignOrder(
                    order_id=order_id,
                    courier_id=assignment.courier_id,
                    vehicle=assignment.vehicle,
                    eta_minutes=assignment.eta_minutes,
                ),
                asynchronous=False,
            )
            assigned = self.get(order_id)
            self._publish(assigned)
        logger.info("Order assigned", order_id=order_id, courier_id=assignment.courier_id)
        return assigned

    def assign_scheduled(self, order, slot_id, courier_id: str | None = None) -> Order:
        """Reserve capacity in the slot, then transition the order to SCHEDULED.

        If the transition fails the reservation is released again, so a failed
        attempt leaves both the order and the slot as they were.
        """
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            current = self.get(order_id)
            current.assert_assignable(FulfillmentMode.SCHEDULED)
            assignment = self.planner.plan_scheduled(current, slot_id, courier_id=courier_id)
            try:
                current_domain.process(
                    AssignOrder(
                        order_id=order_id,
                        courier_id=assignment.courier_id,
                        vehicle=assignment.vehicle,
                        eta_minutes=assignment.eta_minutes,
                        slot_id=assignment.slot_id,
                    ),
                    asynchronous=False,
                )
            except Exception:
                logger.warning("Assignment failed, releasing slot", order_id=order_id, slot_id=str(slot_id))
                self.slots.release(slot_id, order_id=order_id)
                raise
            scheduled = self.get(order_id)
            self._publish(scheduled)
        logger.info("Order scheduled", order_id=order_id, slot_id=str(slot_id))
        return scheduled

    def reassign(self, order, candidates, exclude=None) -> Order:
        """Re-plan an assigned order after its courier dropped out.

        The outgoing courier (and any id in ``exclude``) is not considered.
        """
        order_id = _order_id(order)
        with order_locks.hold(order_id):
            current = self.get(order_id)
            excluded = {str(c) for c in (exclude or [])}
            if current.assignment is not None and current.assignment.courier_id:
                excluded.add(current.assignment.courier_id)
            remaining = [c for c in (candidates or []) if str(c.courier_id) not in excluded]

            if current.status != OrderStatus.ASSIGNED.value:
                raise InvalidTransitionError(
                    order_id,
                    current.status,
                    OrderStatus.ASSIGNED.value,
                    detail=f"Only Assigned orders can be reassigned, order is {current.status}",
                )
            assignment = self.planner.plan_on_demand(current, remaining)
            current_domain.process(
                ReassignOrder(
                    order_id=order_id,
                    courier_id=assignment.courier_id,
                    vehicle=assignment.vehicle,
                    eta_minutes=assignment.eta_minutes,
                ),
                asynchronous=False,
            )
            reassigned = self.get(order_id)
            self._publish(reassigned)
        logger.info("Order reassigned", order_id=order_id, courier_id=assignment.courier_id)
        return reassigned

    def record_pickup(self, order, courier_id: str | None = None) -> Order:
        order_id = _order_id(order)
        return self._run(order_id, RecordPickup(order_id=order_id, courier_id=courier_id))

    def mark_delivered(self, order, final_amount) -> Order:
        order_id = _order_id(order)
        return self._run(order_id, MarkDelivered(order_id=order_id, final_amount=final_amount))

    def cancel(self, order, reason: str) -> Order:
        """Cancel the order, giving back any slot capacity it holds first.

        The slot release is keyed by order id, so a retried cancellation
        (say, after a failure between release and commit) frees capacity once.
        """
        order_id = _order_id(order)
        command = CancelOrder(order_id=order_id, reason=reason)
        with order_locks.hold(order_id):
            current = self.get(order_id)
            current.assert_cancellable()
            slot_id = current.reserved_slot_id
            if slot_id:
                self.slots.release(slot_id, order_id=order_id)
            current_domain.process(command, asynchronous=False)
            cancelled = self.get(order_id)
            self._publish(cancelled)
        logger.info("Order cancelled", order_id=order_id, released_slot_id=slot_id)
        return cancelled
