# backend/config.py — Environment settings + Engine tuning constants + Logging

import json
import logging
import os
from typing import Optional, Tuple

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# ENVIRONMENT
# ---------------------------------------------------------------------------
ENGINE_CONFIG_PATH = os.getenv("ENGINE_CONFIG_PATH", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# ENGINE CONFIG
#   Every business constant the engines use. Frozen so a single instance can
#   be shared by concurrent requests.
# ---------------------------------------------------------------------------
class EngineConfig(BaseModel):
    # Health score weights
    lead_velocity_weight: float = 0.4
    price_accuracy_weight: float = 0.3
    demand_alignment_weight: float = 0.2
    aging_penalty_weight: float = 0.1

    # Health sub-scores
    ideal_lead_velocity: float = Field(1.0, gt=0)  # leads/day that earns a full velocity score
    overpricing_penalty_per_point: float = 5.0
    aging_start_days: int = 30
    aging_penalty_per_day: float = 2.0

    # Status thresholds
    healthy_threshold: int = 70
    slow_moving_threshold: int = 40

    # Price simulation (rupees). The elasticity numbers are a business
    # heuristic, not a fitted model.
    simulation_drops: Tuple[float, ...] = (5000, 10000, 20000, 50000)
    elasticity_multiplier: float = 1.5
    calibration_lead_increase_pct: float = Field(15.0, gt=0)
    calibration_days_saved: float = 5.0

    # Decision rules
    liquidate_roi_floor: float = -5.0
    reduce_price_deviation_trigger: float = 3.0
    liquidate_urgency: float = 95.0
    liquidate_impact_multiplier: float = 10.0
    profitable_drop_urgency_base: float = 75.0
    necessary_drop_urgency_base: float = 60.0
    necessary_drop_impact_score: float = 50.0

    # Portfolio risk bands (capital lock score)
    high_risk_lock_score: float = 30.0
    medium_risk_lock_score: float = 15.0

    # Market trend -> demand score
    rising_demand_score: float = 90.0
    default_demand_score: float = 50.0

    class Config:
        frozen = True


DEFAULT_ENGINE_CONFIG = EngineConfig()


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    """
    Build the EngineConfig for this process. Fields present in the JSON file
    at `path` (or ENGINE_CONFIG_PATH) override the defaults.
    """
    path = path if path is not None else ENGINE_CONFIG_PATH
    if not path:
        return DEFAULT_ENGINE_CONFIG

    with open(path, encoding="utf-8") as fh:
        overrides = json.load(fh)
    return EngineConfig(**overrides)


# ---------------------------------------------------------------------------
# LOGGING
# ---------------------------------------------------------------------------
def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
