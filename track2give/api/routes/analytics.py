"""
Impact API routes: wraps the carbon and leaderboard query functions with HTTP endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from track2give.db.database import get_db
from track2give.models.food import User
from track2give.impact.accrual import get_user_impact, format_impact_stats
from track2give.analytics.carbon import (
    PERIODS,
    get_user_carbon_history,
    get_carbon_breakdown_by_category,
    get_global_carbon_stats,
    calculate_potential_carbon_savings,
    calculate_potential_impact,
    get_unexpired_items,
)
from track2give.analytics.leaderboard import (
    DEFAULT_LIMIT,
    clamp_limit,
    get_top_donors,
    get_top_carbon_savers,
    get_global_donation_stats,
    get_user_rank,
)

router = APIRouter()


def _require_user(user_id: int, db: Session) -> None:
    if not db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")


# ── Per-user impact ──────────────────────────────────────────────────────────

@router.get("/users/{user_id}/impact")
def user_impact(user_id: int, db: Session = Depends(get_db)):
    _require_user(user_id, db)
    stats = get_user_impact(db, user_id)
    return {**stats, "formatted": format_impact_stats(stats)}


@router.get("/users/{user_id}/carbon/history")
def carbon_history(
    user_id: int,
    period: str = Query(default="all"),
    db: Session = Depends(get_db),
):
    _require_user(user_id, db)
    if period not in PERIODS:
        period = "all"
    return {"period": period, "data": get_user_carbon_history(db, user_id, period)}


@router.get("/users/{user_id}/carbon/breakdown")
def carbon_breakdown(user_id: int, db: Session = Depends(get_db)):
    _require_user(user_id, db)
    return get_carbon_breakdown_by_category(db, user_id)


@router.get("/users/{user_id}/carbon/potential")
def carbon_potential(user_id: int, db: Session = Depends(get_db)):
    _require_user(user_id, db)
    items = get_unexpired_items(db, user_id)
    return {
        **calculate_potential_carbon_savings(items),
        "impact": calculate_potential_impact(items),
    }


@router.get("/users/{user_id}/rank")
def user_rank(user_id: int, db: Session = Depends(get_db)):
    _require_user(user_id, db)
    return get_user_rank(db, user_id)


# ── Community ────────────────────────────────────────────────────────────────

@router.get("/carbon/global")
def carbon_global(db: Session = Depends(get_db)):
    return get_global_carbon_stats(db)


@router.get("/leaderboard/top-donors")
def top_donors(limit: int = Query(default=DEFAULT_LIMIT), db: Session = Depends(get_db)):
    return get_top_donors(db, clamp_limit(limit))


@router.get("/leaderboard/top-carbon-savers")
def top_carbon_savers(limit: int = Query(default=DEFAULT_LIMIT), db: Session = Depends(get_db)):
    return get_top_carbon_savers(db, clamp_limit(limit))


@router.get("/leaderboard/stats")
def leaderboard_stats(db: Session = Depends(get_db)):
    return get_global_donation_stats(db)
