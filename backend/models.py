# backend/models.py — Domain Enums + Immutable Domain Models
#
# These are the values the engine consumes and produces. They are frozen:
# every engine function returns a new object and never edits its inputs.

import enum
from datetime import date
from typing import Optional

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------
class InventoryStatus(str, enum.Enum):
    healthy = "Healthy"
    slow_moving = "Slow Moving"
    dead_capital = "Dead Capital"


class ActionType(str, enum.Enum):
    reduce_price = "reduce_price"
    liquidate = "liquidate"
    improve_photos = "improve_photos"
    hold = "hold"


class PortfolioRisk(str, enum.Enum):
    high = "High"
    medium = "Medium"
    low = "Low"


class DemandTrend(str, enum.Enum):
    up = "up"
    flat = "flat"
    down = "down"


class _Frozen(BaseModel):
    class Config:
        frozen = True


# ---------------------------------------------------------------------------
# INPUTS
# ---------------------------------------------------------------------------
class CarEconomicProfile(_Frozen):
    car_id: str
    acquisition_cost: float
    reconditioning_cost: float = 0
    expected_margin: float  # gross margin before holding / capital costs
    daily_holding_cost: float = 0


class DealerCostProfile(_Frozen):
    cost_of_capital_percentage: float  # annualized
    average_marketing_cost_per_car: float = 0


class InventoryMetrics(_Frozen):
    days_on_market: int
    lead_velocity: float  # leads per day
    price_deviation_percent: float  # positive = overpriced vs market
    segment_demand_score: float  # 0-100


class CapitalMetrics(_Frozen):
    total_inventory_value: float
    cars_sold_last_30_days: int = 0


class VehicleSnapshot(_Frozen):
    """One inventory row as the aggregation job hands it over."""

    car_id: str
    title: Optional[str] = None
    current_price: float
    avg_market_price: Optional[float] = None
    listed_on: Optional[date] = None
    days_on_market: Optional[int] = None  # wins over listed_on when set
    lead_velocity: float = 0
    segment_demand_score: Optional[float] = None
    demand_trend: Optional[DemandTrend] = None


# ---------------------------------------------------------------------------
# OUTPUTS
# ---------------------------------------------------------------------------
class PricingSimulationResult(_Frozen):
    price_drop: float
    new_margin: float
    predicted_lead_increase: float  # percent
    predicted_days_saved: float
    net_profit_impact: float  # positive = holding savings beat the drop


class StrategicAction(_Frozen):
    car_id: str
    action_type: ActionType
    urgency: float  # 0-100
    impact_score: float
    expected_profit_gain: float
    recommendation_text: str


class RankedAction(StrategicAction):
    title: Optional[str] = None


class PortfolioHealth(_Frozen):
    total_dead_capital: float
    capital_lock_score: float
    portfolio_risk: PortfolioRisk


class QueueSummary(_Frozen):
    total_expected_gain: float
    liquidate_count: int
    pending_actions: int
