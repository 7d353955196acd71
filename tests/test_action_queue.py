"""Inventory-wide action queue and the signals it derives per vehicle."""

from __future__ import annotations

from datetime import date

import pytest

from engine import (
    build_action_queue,
    build_inventory_metrics,
    days_on_market_since,
    demand_score_for_trend,
    price_deviation_percent,
    summarize_queue,
)
from models import ActionType, DemandTrend, VehicleSnapshot

TODAY = date(2026, 3, 1)


@pytest.fixture()
def inventory(sedan, hatchback):
    """Sedan listing that is stale, hatchback that is overpriced, a fresh sedan, an orphan."""
    profiles = [
        sedan,
        hatchback,
        sedan.model_copy(update={"car_id": "car-fresh"}),
    ]
    snapshots = [
        VehicleSnapshot(
            car_id="car-sedan", title="2019 Honda City", current_price=550000,
            avg_market_price=550000, days_on_market=400, lead_velocity=1.0,
            segment_demand_score=100,
        ),
        VehicleSnapshot(
            car_id="car-hatch", title="2020 Maruti Swift", current_price=110000,
            avg_market_price=100000, days_on_market=10, lead_velocity=0.2,
            segment_demand_score=50,
        ),
        VehicleSnapshot(
            car_id="car-fresh", current_price=550000, avg_market_price=550000,
            days_on_market=40, lead_velocity=1.0, segment_demand_score=100,
        ),
        VehicleSnapshot(car_id="car-orphan", current_price=300000, days_on_market=200),
    ]
    return snapshots, profiles


class TestSignalDerivation:
    def test_price_deviation(self):
        assert price_deviation_percent(110, 100) == pytest.approx(10)
        assert price_deviation_percent(90, 100) == pytest.approx(-10)

    def test_price_deviation_without_market(self):
        assert price_deviation_percent(110, None) == 0
        assert price_deviation_percent(110, 0) == 0

    def test_days_on_market_since(self):
        assert days_on_market_since(date(2026, 2, 1), TODAY) == 28
        assert days_on_market_since(date(2026, 3, 5), TODAY) == 0

    def test_demand_from_trend(self):
        assert demand_score_for_trend(DemandTrend.up) == 90
        assert demand_score_for_trend(DemandTrend.down) == 50
        assert demand_score_for_trend(None) == 50

    def test_metrics_from_listing_date(self):
        snap = VehicleSnapshot(
            car_id="c1", current_price=105000, avg_market_price=100000,
            listed_on=date(2026, 1, 30), lead_velocity=0.4, demand_trend=DemandTrend.up,
        )
        metrics = build_inventory_metrics(snap, TODAY)
        assert metrics.days_on_market == 30
        assert metrics.price_deviation_percent == pytest.approx(5)
        assert metrics.segment_demand_score == 90
        assert metrics.lead_velocity == 0.4

    def test_explicit_values_win(self):
        snap = VehicleSnapshot(
            car_id="c1", current_price=100000, listed_on=date(2025, 1, 1),
            days_on_market=12, segment_demand_score=33, demand_trend=DemandTrend.up,
        )
        metrics = build_inventory_metrics(snap, TODAY)
        assert metrics.days_on_market == 12
        assert metrics.segment_demand_score == 33

    def test_missing_market_price_means_priced_at_market(self):
        snap = VehicleSnapshot(car_id="c1", current_price=100000)
        metrics = build_inventory_metrics(snap, TODAY)
        assert metrics.price_deviation_percent == 0
        assert metrics.days_on_market == 0


class TestBuildActionQueue:
    def test_skips_cars_without_profile_and_holds(self, inventory, dealer_cost):
        snapshots, profiles = inventory
        queue = build_action_queue(snapshots, profiles, dealer_cost, TODAY)
        assert {a.car_id for a in queue} == {"car-sedan", "car-hatch"}

    def test_ranked_by_impact(self, inventory, dealer_cost):
        snapshots, profiles = inventory
        queue = build_action_queue(snapshots, profiles, dealer_cost, TODAY)
        assert [a.car_id for a in queue] == ["car-hatch", "car-sedan"]
        assert queue[0].action_type == ActionType.reduce_price
        assert queue[1].action_type == ActionType.liquidate
        assert queue[0].impact_score > queue[1].impact_score

    def test_titles_carried_through(self, inventory, dealer_cost):
        snapshots, profiles = inventory
        queue = build_action_queue(snapshots, profiles, dealer_cost, TODAY)
        assert queue[0].title == "2020 Maruti Swift"

    def test_empty_inventory(self, dealer_cost):
        assert build_action_queue([], [], dealer_cost, TODAY) == []

    def test_no_profiles(self, inventory, dealer_cost):
        snapshots, _ = inventory
        assert build_action_queue(snapshots, [], dealer_cost, TODAY) == []


class TestSummarizeQueue:
    def test_summary(self, inventory, dealer_cost):
        snapshots, profiles = inventory
        summary = summarize_queue(build_action_queue(snapshots, profiles, dealer_cost, TODAY))
        assert summary.pending_actions == 2
        assert summary.liquidate_count == 1
        assert summary.total_expected_gain == pytest.approx(5328.77, abs=0.01)

    def test_empty(self):
        summary = summarize_queue([])
        assert summary.pending_actions == 0
        assert summary.liquidate_count == 0
        assert summary.total_expected_gain == 0
