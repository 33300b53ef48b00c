"""Repository for the Order aggregate."""

from dispatch.domain import dispatch
from dispatch.order.order import Order
from dispatch.utils.clock import as_utc
from dispatch.utils.query import fetch_all


@dispatch.repository(part_of=Order)
class OrderRepository:
    def find_by_user(self, user_id: str) -> list[Order]:
        """All orders placed by a user, oldest first."""
        query = self._dao.query.filter(user_id=str(user_id)).order_by("created_at")
        orders = fetch_all(query)
        return sorted(orders, key=lambda o: (as_utc(o.created_at), str(o.id)))
