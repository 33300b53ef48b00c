"""Order location — fills in missing coordinates through the geocoding port."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from dispatch.channel import get_geocoder
from dispatch.domain import dispatch
from dispatch.order.order import Order

logger = structlog.get_logger(__name__)


@dispatch.command(part_of="Order")
class LocateOrder:
    order_id = Identifier(required=True)


@dispatch.command_handler(part_of=Order)
class LocateOrderHandler:
    @handle(LocateOrder)
    def locate_order(self, command):
        """Resolve pickup/dropoff coordinates that the client did not supply.

        Addresses the geocoder cannot resolve stay without coordinates; quoting
        and assignment reject such orders later instead of guessing.
        """
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        geocoder = get_geocoder()

        pickup = None if order.pickup.has_coordinates else geocoder.resolve(order.pickup.one_line())
        dropoff = None if order.dropoff.has_coordinates else geocoder.resolve(order.dropoff.one_line())

        if pickup is None and dropoff is None:
            logger.info(
                "Nothing to geocode",
                order_id=str(order.id),
                pickup_located=order.pickup.has_coordinates,
                dropoff_located=order.dropoff.has_coordinates,
            )
            return False

        order.update_coordinates(pickup=pickup, dropoff=dropoff)
        repo.add(order)
        return True
