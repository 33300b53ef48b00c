"""Tests for on-demand courier selection in the AssignmentPlanner."""

import pytest
from protean.exceptions import ValidationError

from dispatch.config import PlanningSettings
from dispatch.errors import NoCourierAvailableError
from dispatch.geo import distance_km
from dispatch.order.order import Order
from dispatch.planning.planner import AssignmentPlanner, Courier

PICKUP = (28.6315, 77.2167)


def _order(pickup_coords=PICKUP, vehicle_type=None):
    pickup = {"addr1": "Connaught Place"}
    if pickup_coords is not None:
        pickup.update(lat=pickup_coords[0], lng=pickup_coords[1])
    return Order.create(
        user_id="user-1",
        fulfillment_mode="ON_DEMAND",
        pickup=pickup,
        dropoff={"addr1": "India Gate", "lat": 28.6129, "lng": 77.2295},
        vehicle_type=vehicle_type,
    )


def _planner(speed=30.0):
    return AssignmentPlanner(settings=PlanningSettings(average_speed_kmh=speed))


class TestPlanOnDemand:
    def test_nearest_courier_wins(self):
        near = Courier("c-near", 28.6300, 77.2160, vehicle="bike")
        far = Courier("c-far", 28.7000, 77.3000, vehicle="van")
        assignment = _planner().plan_on_demand(_order(), [far, near])
        assert assignment.courier_id == "c-near"
        assert assignment.vehicle == "bike"
        assert assignment.slot_id is None

    def test_eta_uses_average_speed(self):
        courier = Courier("c-1", 28.6500, 77.2300)
        expected = distance_km((courier.latitude, courier.longitude), PICKUP) / 20.0 * 60
        assignment = _planner(speed=20.0).plan_on_demand(_order(), [courier])
        assert assignment.eta_minutes == pytest.approx(expected)

    def test_courier_at_pickup_has_zero_eta(self):
        assignment = _planner().plan_on_demand(_order(), [Courier("c-1", *PICKUP)])
        assert assignment.eta_minutes == 0.0

    def test_ties_broken_by_lowest_id(self):
        couriers = [Courier("c-b", 28.64, 77.22), Courier("c-a", 28.64, 77.22)]
        assert _planner().plan_on_demand(_order(), couriers).courier_id == "c-a"

    def test_numeric_ids_compare_as_numbers(self):
        couriers = [Courier("10", 28.64, 77.22), Courier("9", 28.64, 77.22)]
        assert _planner().plan_on_demand(_order(), couriers).courier_id == "9"

    def test_selection_is_order_independent(self):
        couriers = [
            Courier("c-1", 28.70, 77.10),
            Courier("c-2", 28.62, 77.21),
            Courier("c-3", 28.50, 77.40),
        ]
        planner = _planner()
        first = planner.plan_on_demand(_order(), couriers).courier_id
        assert planner.plan_on_demand(_order(), list(reversed(couriers))).courier_id == first

    def test_no_candidates(self):
        order = _order()
        with pytest.raises(NoCourierAvailableError) as exc_info:
            _planner().plan_on_demand(order, [])
        assert exc_info.value.candidates_considered == 0
        assert exc_info.value.order_id == str(order.id)

    def test_missing_pickup_coordinates(self):
        with pytest.raises(ValidationError):
            _planner().plan_on_demand(_order(pickup_coords=None), [Courier("c-1", *PICKUP)])

    def test_vehicle_falls_back_to_requested_type(self):
        assignment = _planner().plan_on_demand(_order(vehicle_type="bike"), [Courier("c-1", *PICKUP)])
        assert assignment.vehicle == "bike"
