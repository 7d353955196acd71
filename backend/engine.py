# backend/engine.py — The Profit Intelligence Brain
# All math: health scoring, true ROI under holding/capital decay, price-drop
# simulation, rule-based decisioning, and the per-dealer action queue.
# Pure functions only: no I/O, no shared state.

import logging
import math
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from models import (
    ActionType,
    CapitalMetrics,
    CarEconomicProfile,
    DealerCostProfile,
    DemandTrend,
    InventoryMetrics,
    InventoryStatus,
    PortfolioHealth,
    PortfolioRisk,
    PricingSimulationResult,
    QueueSummary,
    RankedAction,
    StrategicAction,
    VehicleSnapshot,
)

logger = logging.getLogger(__name__)

DaysLookup = Union[Callable[[str], int], Mapping[str, int]]


# ---------------------------------------------------------------------------
# HELPER: Clamp
# ---------------------------------------------------------------------------
def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    # Compare the fractional part: floor(value + 0.5) rounds 0.49999999999999994 up
    whole = math.floor(value)
    return int(whole + 1 if value - whole >= 0.5 else whole)


# ---------------------------------------------------------------------------
# 1) INVENTORY ENGINE — Listing health
# ---------------------------------------------------------------------------
def calculate_health_score(
    metrics: InventoryMetrics,
    profile: Optional[CarEconomicProfile] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> int:
    """
    Weighted 0-100 score of how well a listing is performing.
    `profile` is accepted for call-site symmetry with the other engines;
    the score only depends on market signals.
    """
    velocity_score = min(metrics.lead_velocity / config.ideal_lead_velocity * 100, 100)

    # Only overpricing is penalized
    overpricing = max(0.0, metrics.price_deviation_percent)
    price_score = max(100 - overpricing * config.overpricing_penalty_per_point, 0)

    demand_score = metrics.segment_demand_score

    aging_days = max(0, metrics.days_on_market - config.aging_start_days)
    aging_score = max(100 - aging_days * config.aging_penalty_per_day, 0)

    final = (
        velocity_score * config.lead_velocity_weight
        + price_score * config.price_accuracy_weight
        + demand_score * config.demand_alignment_weight
        + aging_score * config.aging_penalty_weight
    )
    return int(clamp(round_half_up(final), 0, 100))


def get_inventory_status(
    health_score: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> InventoryStatus:
    if health_score >= config.healthy_threshold:
        return InventoryStatus.healthy
    elif health_score >= config.slow_moving_threshold:
        return InventoryStatus.slow_moving
    else:
        return InventoryStatus.dead_capital


# ---------------------------------------------------------------------------
# 2) CAPITAL ENGINE — True ROI + portfolio dead capital
# ---------------------------------------------------------------------------
def daily_capital_cost(profile: CarEconomicProfile, dealer_cost: DealerCostProfile) -> float:
    """Annual cost of capital on the acquisition, pro-rated per day."""
    return profile.acquisition_cost * (dealer_cost.cost_of_capital_percentage / 100) / 365


def calculate_true_roi(
    profile: CarEconomicProfile,
    dealer_cost: DealerCostProfile,
    days_on_market: float,
) -> float:
    """
    ROI (percent) after subtracting accumulated holding cost, marketing
    spend and pro-rated cost of capital from the expected gross margin.
    """
    holding = days_on_market * profile.daily_holding_cost
    capital = daily_capital_cost(profile, dealer_cost) * days_on_market
    net_margin = (
        profile.expected_margin
        - holding
        - dealer_cost.average_marketing_cost_per_car
        - capital
    )

    total_investment = profile.acquisition_cost + profile.reconditioning_cost
    if total_investment <= 0:
        return 0.0

    return net_margin / total_investment * 100


def _days_for(lookup: DaysLookup, car_id: str) -> int:
    if isinstance(lookup, Mapping):
        return lookup.get(car_id, 0)
    return lookup(car_id)


def calculate_portfolio_health(
    profiles: Iterable[CarEconomicProfile],
    metrics: CapitalMetrics,
    dealer_cost: DealerCostProfile,
    days_on_market_lookup: DaysLookup,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> PortfolioHealth:
    """
    Capital tied up in vehicles whose true ROI has gone negative, as a
    share of the whole inventory value.
    """
    total_dead = 0.0
    for profile in profiles:
        days = _days_for(days_on_market_lookup, profile.car_id)
        if calculate_true_roi(profile, dealer_cost, days) < 0:
            total_dead += profile.acquisition_cost

    if metrics.total_inventory_value > 0:
        lock_score = min(total_dead / metrics.total_inventory_value * 100, 100)
    else:
        lock_score = 0.0

    if lock_score > config.high_risk_lock_score:
        risk = PortfolioRisk.high
    elif lock_score > config.medium_risk_lock_score:
        risk = PortfolioRisk.medium
    else:
        risk = PortfolioRisk.low

    return PortfolioHealth(
        total_dead_capital=total_dead,
        capital_lock_score=lock_score,
        portfolio_risk=risk,
    )


# ---------------------------------------------------------------------------
# 3) PRICING ENGINE — Price drop simulation
#    Linear elasticity heuristic: each point of deviation removed lifts leads
#    by `elasticity_multiplier` percent; the calibration point converts lead
#    lift into days saved.
# ---------------------------------------------------------------------------
def simulate_price_drops(
    profile: CarEconomicProfile,
    dealer_cost: DealerCostProfile,
    current_price: float,
    avg_market_price: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> List[PricingSimulationResult]:
    """
    Returns one result per simulated drop, in step order. Drops larger than
    the expected margin are never simulated.
    """
    if avg_market_price <= 0:
        logger.warning(
            "Car %s: market average price %s is not positive, skipping simulation",
            profile.car_id, avg_market_price,
        )
        return []

    daily_burn = profile.daily_holding_cost + daily_capital_cost(profile, dealer_cost)
    current_deviation = (current_price - avg_market_price) / avg_market_price * 100

    results = []
    for drop in config.simulation_drops:
        if drop > profile.expected_margin:
            logger.debug("Car %s: drop %s exceeds margin, skipped", profile.car_id, drop)
            continue

        proposed_deviation = ((current_price - drop) - avg_market_price) / avg_market_price * 100
        lead_increase = max(0.0, (current_deviation - proposed_deviation) * config.elasticity_multiplier)
        days_saved = lead_increase / config.calibration_lead_increase_pct * config.calibration_days_saved

        holding_saved = days_saved * daily_burn

        results.append(PricingSimulationResult(
            price_drop=drop,
            new_margin=profile.expected_margin - drop,
            predicted_lead_increase=lead_increase,
            predicted_days_saved=days_saved,
            net_profit_impact=holding_saved - drop,
        ))

    return results


def best_simulation(
    simulations: List[PricingSimulationResult],
) -> Optional[PricingSimulationResult]:
    """Highest net profit impact; the earliest step wins a tie."""
    if not simulations:
        return None
    return max(simulations, key=lambda s: s.net_profit_impact)


# ---------------------------------------------------------------------------
# 4) DECISION ENGINE — Ordered rule table, first match wins
# ---------------------------------------------------------------------------
class DecisionContext(NamedTuple):
    profile: CarEconomicProfile
    dealer_cost: DealerCostProfile
    metrics: InventoryMetrics
    current_price: float
    avg_market_price: float
    health_score: int
    health_status: InventoryStatus
    true_roi: float
    config: EngineConfig


class DecisionRule(NamedTuple):
    name: str
    applies: Callable[[DecisionContext], bool]
    build: Callable[[DecisionContext], Optional[StrategicAction]]


def _is_healthy_and_profitable(ctx: DecisionContext) -> bool:
    return ctx.health_status == InventoryStatus.healthy and ctx.true_roi > 0


def _hold(ctx: DecisionContext) -> Optional[StrategicAction]:
    return None


def _is_bleeding(ctx: DecisionContext) -> bool:
    return (
        ctx.health_status == InventoryStatus.dead_capital
        or ctx.true_roi < ctx.config.liquidate_roi_floor
    )


def _liquidate(ctx: DecisionContext) -> StrategicAction:
    eroded = abs(ctx.true_roi)
    return StrategicAction(
        car_id=ctx.profile.car_id,
        action_type=ActionType.liquidate,
        urgency=ctx.config.liquidate_urgency,
        impact_score=eroded * ctx.config.liquidate_impact_multiplier,
        expected_profit_gain=0,  # stopping the bleed, not a gain
        recommendation_text=(
            f"Liquidate immediately. Margin has eroded by {eroded:.1f}% due to holding costs."
        ),
    )


def _is_overpriced(ctx: DecisionContext) -> bool:
    return ctx.metrics.price_deviation_percent > ctx.config.reduce_price_deviation_trigger


def _reduce_price(ctx: DecisionContext) -> Optional[StrategicAction]:
    sims = simulate_price_drops(
        ctx.profile, ctx.dealer_cost, ctx.current_price, ctx.avg_market_price, ctx.config,
    )
    best = best_simulation(sims)
    if best is None:
        return None

    days = ctx.metrics.days_on_market
    if best.net_profit_impact > 0:
        return StrategicAction(
            car_id=ctx.profile.car_id,
            action_type=ActionType.reduce_price,
            urgency=min(100, ctx.config.profitable_drop_urgency_base + days / 2),
            impact_score=best.net_profit_impact,
            expected_profit_gain=best.net_profit_impact,
            recommendation_text=(
                f"Reduce price by ₹{best.price_drop:,.0f}. The resulting "
                f"{best.predicted_days_saved:.0f} days saved will offset the price drop "
                f"and net +₹{best.net_profit_impact:.0f} in profit capability."
            ),
        )

    # Not strictly profitable, but the car is still overpriced
    return StrategicAction(
        car_id=ctx.profile.car_id,
        action_type=ActionType.reduce_price,
        urgency=min(100, ctx.config.necessary_drop_urgency_base + days / 2),
        impact_score=ctx.config.necessary_drop_impact_score,
        expected_profit_gain=best.new_margin,
        recommendation_text=(
            f"Overpriced by {ctx.metrics.price_deviation_percent:.1f}%. "
            f"Reduce by ₹{best.price_drop:,.0f} to accelerate sale before holding "
            f"costs erode remaining margin."
        ),
    )


DECISION_RULES = (
    DecisionRule("hold", _is_healthy_and_profitable, _hold),
    DecisionRule("liquidate", _is_bleeding, _liquidate),
    DecisionRule("reduce_price", _is_overpriced, _reduce_price),
)


def build_decision_context(
    profile: CarEconomicProfile,
    dealer_cost: DealerCostProfile,
    inventory_metrics: InventoryMetrics,
    current_price: float,
    avg_market_price: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> DecisionContext:
    score = calculate_health_score(inventory_metrics, profile, config)
    return DecisionContext(
        profile=profile,
        dealer_cost=dealer_cost,
        metrics=inventory_metrics,
        current_price=current_price,
        avg_market_price=avg_market_price,
        health_score=score,
        health_status=get_inventory_status(score, config),
        true_roi=calculate_true_roi(profile, dealer_cost, inventory_metrics.days_on_market),
        config=config,
    )


def match_rule(
    ctx: DecisionContext,
    rules: Iterable[DecisionRule] = DECISION_RULES,
) -> Optional[DecisionRule]:
    for rule in rules:
        if rule.applies(ctx):
            return rule
    return None


def generate_action_queue(
    profile: CarEconomicProfile,
    dealer_cost: DealerCostProfile,
    inventory_metrics: InventoryMetrics,
    current_price: float,
    avg_market_price: float,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    rules: Iterable[DecisionRule] = DECISION_RULES,
) -> Optional[StrategicAction]:
    """
    The single strategic action for one vehicle this cycle, or None when
    nothing needs doing.
    """
    ctx = build_decision_context(
        profile, dealer_cost, inventory_metrics, current_price, avg_market_price, config,
    )
    rule = match_rule(ctx, rules)
    if rule is None:
        logger.debug("Car %s: no rule matched (score=%s, roi=%.2f)",
                     profile.car_id, ctx.health_score, ctx.true_roi)
        return None

    action = rule.build(ctx)
    logger.debug("Car %s: rule %s -> %s", profile.car_id, rule.name,
                 action.action_type.value if action else None)
    return action


# ---------------------------------------------------------------------------
# 5) INVENTORY INPUTS — Per-cycle signal derivation
# ---------------------------------------------------------------------------
def price_deviation_percent(current_price: float, avg_market_price: Optional[float]) -> float:
    if not avg_market_price or avg_market_price <= 0:
        return 0.0
    return (current_price - avg_market_price) / avg_market_price * 100


def days_on_market_since(listed_on: date, today: date) -> int:
    return max(0, (today - listed_on).days)


def demand_score_for_trend(
    trend: Optional[DemandTrend],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    if trend == DemandTrend.up:
        return config.rising_demand_score
    return config.default_demand_score


def build_inventory_metrics(
    snapshot: VehicleSnapshot,
    today: date,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> InventoryMetrics:
    if snapshot.days_on_market is not None:
        days = max(0, snapshot.days_on_market)
    elif snapshot.listed_on is not None:
        days = days_on_market_since(snapshot.listed_on, today)
    else:
        days = 0

    if snapshot.segment_demand_score is not None:
        demand = snapshot.segment_demand_score
    else:
        demand = demand_score_for_trend(snapshot.demand_trend, config)

    return InventoryMetrics(
        days_on_market=days,
        lead_velocity=snapshot.lead_velocity,
        price_deviation_percent=price_deviation_percent(
            snapshot.current_price, market_price_for(snapshot),
        ),
        segment_demand_score=demand,
    )


def market_price_for(snapshot: VehicleSnapshot) -> float:
    """Market average, falling back to the car's own price when unknown."""
    if snapshot.avg_market_price and snapshot.avg_market_price > 0:
        return snapshot.avg_market_price
    return snapshot.current_price


# ---------------------------------------------------------------------------
# 6) ACTION QUEUE — Orchestrator
# ---------------------------------------------------------------------------
def build_action_queue(
    snapshots: Iterable[VehicleSnapshot],
    profiles: Iterable[CarEconomicProfile],
    dealer_cost: DealerCostProfile,
    today: Optional[date] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> List[RankedAction]:
    """
    Runs the decision engine over every vehicle that has an economic
    profile and returns the actions ranked by impact, highest first.
    """
    today = today or date.today()
    profiles_by_car: Dict[str, CarEconomicProfile] = {p.car_id: p for p in profiles}

    queue = []
    skipped = 0
    for snap in snapshots:
        profile = profiles_by_car.get(snap.car_id)
        if profile is None:
            skipped += 1
            continue

        action = generate_action_queue(
            profile,
            dealer_cost,
            build_inventory_metrics(snap, today, config),
            snap.current_price,
            market_price_for(snap),
            config,
        )
        if action is not None:
            queue.append(RankedAction(**action.model_dump(), title=snap.title))

    if skipped:
        logger.debug("Skipped %d vehicle(s) without an economic profile", skipped)

    queue.sort(key=lambda a: a.impact_score, reverse=True)
    return queue


def summarize_queue(actions: Iterable[StrategicAction]) -> QueueSummary:
    actions = list(actions)
    return QueueSummary(
        total_expected_gain=sum(a.expected_profit_gain for a in actions),
        liquidate_count=len([a for a in actions if a.action_type == ActionType.liquidate]),
        pending_actions=len(actions),
    )
