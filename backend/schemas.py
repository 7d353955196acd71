# backend/schemas.py — Request / Response Schemas for the HTTP API
#
# Request bodies carry the validation the engine itself does not do: bad
# data is rejected here with a 422 before any scoring runs.

from datetime import date
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field

from models import (
    DemandTrend,
    InventoryStatus,
    PortfolioHealth,
    PricingSimulationResult,
    QueueSummary,
    RankedAction,
)


# ---------------------------------------------------------------------------
# SHARED INPUTS
# ---------------------------------------------------------------------------
class CarEconomicProfileIn(BaseModel):
    car_id: str = Field(..., min_length=1)
    acquisition_cost: float = Field(..., ge=0)
    reconditioning_cost: float = Field(0, ge=0)
    expected_margin: float
    daily_holding_cost: float = Field(0, ge=0)


class DealerCostProfileIn(BaseModel):
    cost_of_capital_percentage: float = Field(..., ge=0)
    average_marketing_cost_per_car: float = Field(0, ge=0)


class InventoryMetricsIn(BaseModel):
    days_on_market: int = Field(..., ge=0)
    lead_velocity: float = Field(..., ge=0)
    price_deviation_percent: float
    segment_demand_score: float = Field(..., ge=0, le=100)


class CapitalMetricsIn(BaseModel):
    total_inventory_value: float = Field(..., ge=0)
    cars_sold_last_30_days: int = Field(0, ge=0)


# ---------------------------------------------------------------------------
# HEALTH SCORE
# ---------------------------------------------------------------------------
class HealthScoreRequest(BaseModel):
    metrics: InventoryMetricsIn
    profile: Optional[CarEconomicProfileIn] = None


class HealthScoreOut(BaseModel):
    health_score: int
    status: InventoryStatus


# ---------------------------------------------------------------------------
# TRUE ROI
# ---------------------------------------------------------------------------
class TrueRoiRequest(BaseModel):
    profile: CarEconomicProfileIn
    dealer_cost: DealerCostProfileIn
    days_on_market: int = Field(..., ge=0)


class TrueRoiOut(BaseModel):
    car_id: str
    days_on_market: int
    true_roi: float


# ---------------------------------------------------------------------------
# PORTFOLIO
# ---------------------------------------------------------------------------
class PortfolioHealthRequest(BaseModel):
    profiles: List[CarEconomicProfileIn]
    metrics: CapitalMetricsIn
    dealer_cost: DealerCostProfileIn
    days_on_market: Dict[str, Annotated[int, Field(ge=0)]] = {}  # car_id -> days; missing ids count as 0


class PortfolioHealthOut(PortfolioHealth):
    vehicle_count: int


# ---------------------------------------------------------------------------
# PRICE SIMULATION
# ---------------------------------------------------------------------------
class PriceSimulationRequest(BaseModel):
    profile: CarEconomicProfileIn
    dealer_cost: DealerCostProfileIn
    current_price: float = Field(..., gt=0)
    avg_market_price: float = Field(..., gt=0)


class PriceSimulationOut(BaseModel):
    car_id: str
    simulations: List[PricingSimulationResult]
    best: Optional[PricingSimulationResult] = None


# ---------------------------------------------------------------------------
# SINGLE DECISION
# ---------------------------------------------------------------------------
class DecisionRequest(BaseModel):
    profile: CarEconomicProfileIn
    dealer_cost: DealerCostProfileIn
    metrics: InventoryMetricsIn
    current_price: float = Field(..., gt=0)
    avg_market_price: float = Field(..., gt=0)


# ---------------------------------------------------------------------------
# ACTION QUEUE
# ---------------------------------------------------------------------------
class VehicleSnapshotIn(BaseModel):
    car_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    current_price: float = Field(..., gt=0)
    avg_market_price: Optional[float] = Field(None, ge=0)
    listed_on: Optional[date] = None
    days_on_market: Optional[int] = None
    lead_velocity: float = Field(0, ge=0)
    segment_demand_score: Optional[float] = Field(None, ge=0, le=100)
    demand_trend: Optional[DemandTrend] = None


class ActionQueueRequest(BaseModel):
    vehicles: List[VehicleSnapshotIn]
    profiles: List[CarEconomicProfileIn]
    dealer_cost: DealerCostProfileIn
    as_of: Optional[date] = None


class ActionQueueOut(BaseModel):
    dealer_id: str
    as_of: date
    actions: List[RankedAction]
    summary: QueueSummary
