# backend/main.py — FastAPI App + Engine Routes
#
# Stateless: every route takes already-aggregated inputs, runs the engine
# and returns its result. Nothing is stored.

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

import engine
from config import ALLOWED_ORIGINS, EngineConfig, configure_logging, load_engine_config
from models import (
    CapitalMetrics,
    CarEconomicProfile,
    DealerCostProfile,
    InventoryMetrics,
    StrategicAction,
    VehicleSnapshot,
)
from schemas import (
    ActionQueueOut,
    ActionQueueRequest,
    CarEconomicProfileIn,
    DecisionRequest,
    HealthScoreOut,
    HealthScoreRequest,
    PortfolioHealthOut,
    PortfolioHealthRequest,
    PriceSimulationOut,
    PriceSimulationRequest,
    TrueRoiOut,
    TrueRoiRequest,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# APP INIT
# ---------------------------------------------------------------------------
ENGINE_CONFIG = load_engine_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Profit engine started (drops=%s)", ENGINE_CONFIG.simulation_drops)
    yield


app = FastAPI(title="Profit Intelligence Engine", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# DEPENDENCIES
# ---------------------------------------------------------------------------
def get_engine_config() -> EngineConfig:
    return ENGINE_CONFIG


def get_dealer_id(x_dealer_id: str = Header(default="default")) -> str:
    return x_dealer_id


# ---------------------------------------------------------------------------
# HELPERS: Request payloads -> domain models
# ---------------------------------------------------------------------------
def _profile(payload: CarEconomicProfileIn) -> CarEconomicProfile:
    return CarEconomicProfile(**payload.model_dump())


def _profiles(payloads: List[CarEconomicProfileIn]) -> List[CarEconomicProfile]:
    seen = set()
    for p in payloads:
        if p.car_id in seen:
            raise HTTPException(400, f"Duplicate economic profile for car {p.car_id}.")
        seen.add(p.car_id)
    return [_profile(p) for p in payloads]


# ---------------------------------------------------------------------------
# HEALTH
# ---------------------------------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok", "app": "profit-intelligence", "version": "1.0.0"}


@app.get("/api/engine/config", response_model=EngineConfig)
def get_config(config: EngineConfig = Depends(get_engine_config)):
    return config


# ---------------------------------------------------------------------------
# LEAF ENGINE ROUTES
# ---------------------------------------------------------------------------
@app.post("/api/engine/health-score", response_model=HealthScoreOut)
def health_score(
    payload: HealthScoreRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    metrics = InventoryMetrics(**payload.metrics.model_dump())
    profile = _profile(payload.profile) if payload.profile else None
    score = engine.calculate_health_score(metrics, profile, config)
    return {"health_score": score, "status": engine.get_inventory_status(score, config)}


@app.post("/api/engine/true-roi", response_model=TrueRoiOut)
def true_roi(payload: TrueRoiRequest):
    profile = _profile(payload.profile)
    roi = engine.calculate_true_roi(
        profile, DealerCostProfile(**payload.dealer_cost.model_dump()), payload.days_on_market,
    )
    return {"car_id": profile.car_id, "days_on_market": payload.days_on_market, "true_roi": roi}


@app.post("/api/engine/portfolio-health", response_model=PortfolioHealthOut)
def portfolio_health(
    payload: PortfolioHealthRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    profiles = _profiles(payload.profiles)
    result = engine.calculate_portfolio_health(
        profiles,
        CapitalMetrics(**payload.metrics.model_dump()),
        DealerCostProfile(**payload.dealer_cost.model_dump()),
        payload.days_on_market,
        config,
    )
    return {**result.model_dump(), "vehicle_count": len(profiles)}


@app.post("/api/engine/price-simulations", response_model=PriceSimulationOut)
def price_simulations(
    payload: PriceSimulationRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    profile = _profile(payload.profile)
    sims = engine.simulate_price_drops(
        profile,
        DealerCostProfile(**payload.dealer_cost.model_dump()),
        payload.current_price,
        payload.avg_market_price,
        config,
    )
    return {"car_id": profile.car_id, "simulations": sims, "best": engine.best_simulation(sims)}


# ---------------------------------------------------------------------------
# DECISION ROUTES
# ---------------------------------------------------------------------------
@app.post("/api/engine/decide", response_model=Optional[StrategicAction])
def decide(
    payload: DecisionRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """One vehicle, one cycle. Returns null when no action is needed."""
    return engine.generate_action_queue(
        _profile(payload.profile),
        DealerCostProfile(**payload.dealer_cost.model_dump()),
        InventoryMetrics(**payload.metrics.model_dump()),
        payload.current_price,
        payload.avg_market_price,
        config,
    )


@app.post("/api/engine/action-queue", response_model=ActionQueueOut)
def action_queue(
    payload: ActionQueueRequest,
    config: EngineConfig = Depends(get_engine_config),
    dealer_id: str = Depends(get_dealer_id),
):
    """Ranked strategic actions across a dealer's whole inventory."""
    for v in payload.vehicles:
        if v.days_on_market is not None and v.days_on_market < 0:
            raise HTTPException(400, f"Car {v.car_id}: days_on_market cannot be negative.")

    as_of = payload.as_of or date.today()
    snapshots = [VehicleSnapshot(**v.model_dump()) for v in payload.vehicles]

    actions = engine.build_action_queue(
        snapshots,
        _profiles(payload.profiles),
        DealerCostProfile(**payload.dealer_cost.model_dump()),
        today=as_of,
        config=config,
    )
    summary = engine.summarize_queue(actions)
    logger.info(
        "Dealer %s: %d action(s) from %d vehicle(s), %d to liquidate",
        dealer_id, summary.pending_actions, len(snapshots), summary.liquidate_count,
    )

    return {"dealer_id": dealer_id, "as_of": as_of, "actions": actions, "summary": summary}
