"""Shared fixtures — reference vehicles, dealer cost profile, API client."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from main import app, get_engine_config
from models import CarEconomicProfile, DealerCostProfile, InventoryMetrics


@pytest.fixture()
def dealer_cost() -> DealerCostProfile:
    return DealerCostProfile(cost_of_capital_percentage=12, average_marketing_cost_per_car=5000)


@pytest.fixture()
def sedan() -> CarEconomicProfile:
    """Reference vehicle: true ROI ~12.39% after 40 days with `dealer_cost`."""
    return CarEconomicProfile(
        car_id="car-sedan",
        acquisition_cost=500000,
        reconditioning_cost=20000,
        expected_margin=80000,
        daily_holding_cost=100,
    )


@pytest.fixture()
def hatchback() -> CarEconomicProfile:
    """Cheap car with a heavy daily burn, so price drops pay for themselves."""
    return CarEconomicProfile(
        car_id="car-hatch",
        acquisition_cost=100000,
        reconditioning_cost=0,
        expected_margin=30000,
        daily_holding_cost=2500,
    )


@pytest.fixture()
def no_marketing() -> DealerCostProfile:
    return DealerCostProfile(cost_of_capital_percentage=12, average_marketing_cost_per_car=0)


@pytest.fixture()
def strong_listing() -> InventoryMetrics:
    """Scores 98: one lead a day, priced at market, top demand, 40 days old."""
    return InventoryMetrics(
        days_on_market=40, lead_velocity=1.0, price_deviation_percent=0, segment_demand_score=100
    )


@pytest.fixture()
def client():
    app.dependency_overrides.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def override_config():
    """Swap the engine config served to routes for the duration of a test."""

    def _apply(config):
        app.dependency_overrides[get_engine_config] = lambda: config

    yield _apply
    app.dependency_overrides.pop(get_engine_config, None)
