"""BDD tests for slot reservations."""

from pytest_bdd import parsers, scenarios, when

from dispatch.errors import SlotFullError

scenarios("features/slot_booking.feature")


@when(parsers.cfparse('order "{order_id}" reserves the slot'))
def reserve(slot, order_id, error):
    try:
        slot.reserve(order_id=order_id)
    except SlotFullError as exc:
        error["exc"] = exc


@when(parsers.cfparse('order "{order_id}" releases the slot'))
def release(slot, order_id):
    slot.release(order_id=order_id)
