"""
Carbon analytics. Pure functions, Session in, dicts out.
Figures are recomputed from the consumed items on every call; rounding to
2 decimals happens only when a row is emitted.
"""
import calendar
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from track2give.impact.calculator import compute_item_impact
from track2give.impact.factors import CAR_CO2_PER_YEAR_KG, TREE_CO2_PER_YEAR_KG, Category
from track2give.models.food import FoodItem, ImpactStats

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "year", "all")


def _months_back(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the end of shorter months."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: str, now: datetime) -> Optional[datetime]:
    """Lower bound (midnight) for a history period, None for "all"."""
    if period == "week":
        start = now - timedelta(days=6)
    elif period == "month":
        start = _months_back(now, 1)
    elif period == "year":
        start = _months_back(now, 12)
    else:
        return None
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def _consumed_items_query(db: Session, user_id: int):
    return db.query(FoodItem).filter(
        FoodItem.user_id == user_id,
        FoodItem.consumed.is_(True),
        FoodItem.consumed_date.isnot(None),
    )


def get_user_carbon_history(
    db: Session,
    user_id: int,
    period: str = "all",
    now: Optional[datetime] = None,
) -> list[dict]:
    """
    Daily CO2 saved by the user with a running cumulative total.
    Only days with at least one consumed item are returned, oldest first.
    """
    if not user_id:
        return []
    if period not in PERIODS:
        period = "all"
    if now is None:
        now = datetime.utcnow()

    q = _consumed_items_query(db, user_id)
    start = period_start(period, now)
    if start is not None:
        q = q.filter(FoodItem.consumed_date >= start)
    items = q.order_by(FoodItem.consumed_date).all()
    logger.debug("Carbon history for user %s (%s): %d consumed items", user_id, period, len(items))

    daily_totals: dict = {}
    for item in items:
        day = item.consumed_date.date()
        daily_totals[day] = daily_totals.get(day, 0.0) + compute_item_impact(item).co2_kg

    history = []
    cumulative = 0.0
    for day in sorted(daily_totals):
        cumulative += daily_totals[day]
        history.append({
            "date": str(day),
            "co2Saved": round(daily_totals[day], 2),
            "cumulativeCO2": round(cumulative, 2),
        })
    return history


def get_carbon_breakdown_by_category(db: Session, user_id: int) -> list[dict]:
    """CO2 saved and item count per category, largest saving first."""
    if not user_id:
        return []

    totals: dict[Category, dict] = {}
    for item in _consumed_items_query(db, user_id).all():
        category = Category.parse(item.category)
        entry = totals.setdefault(category, {"co2Saved": 0.0, "itemCount": 0})
        entry["co2Saved"] += compute_item_impact(item).co2_kg
        entry["itemCount"] += 1

    rows = [
        {
            "category": category.value,
            "co2Saved": round(entry["co2Saved"], 2),
            "itemCount": entry["itemCount"],
        }
        for category, entry in totals.items()
    ]
    rows.sort(key=lambda r: r["co2Saved"], reverse=True)
    return rows


def _equivalents(co2_kg: float) -> dict:
    return {
        "equivalentCarsRemoved": round(co2_kg / CAR_CO2_PER_YEAR_KG, 2),
        "equivalentTreesPlanted": round(co2_kg / TREE_CO2_PER_YEAR_KG, 2),
    }


def get_global_carbon_stats(db: Session) -> dict:
    """Community-wide CO2 totals across every ImpactStats record."""
    row = db.query(
        func.coalesce(func.sum(ImpactStats.co2_saved_kg), 0).label("total"),
        func.count(ImpactStats.id).label("users"),
        func.avg(ImpactStats.co2_saved_kg).label("avg"),
        func.max(ImpactStats.co2_saved_kg).label("max"),
    ).one()

    total = float(row.total or 0)
    users = row.users or 0
    return {
        "totalCO2SavedKg": round(total, 2),
        "totalUsers": users,
        "avgCO2PerUser": round(float(row.avg), 2) if users and row.avg is not None else 0,
        "maxCO2PerUser": round(float(row.max), 2) if users and row.max is not None else 0,
        **_equivalents(total),
    }


def calculate_potential_carbon_savings(items: Iterable) -> dict:
    """CO2 that would be saved if every given item were eaten. Touches nothing."""
    items = list(items or [])
    if not items:
        return {
            "potentialCO2SavedKg": 0,
            "itemCount": 0,
            "equivalentCarsRemoved": 0,
            "equivalentTreesPlanted": 0,
        }

    total = sum(compute_item_impact(item).co2_kg for item in items if item is not None)
    return {
        "potentialCO2SavedKg": round(total, 2),
        "itemCount": len(items),
        **_equivalents(total),
    }


def calculate_potential_impact(items: Iterable) -> dict:
    """CO2, water and money tied up in items that have not been eaten yet."""
    items = [item for item in (items or []) if item is not None]
    co2 = water = money = 0.0
    for item in items:
        impact = compute_item_impact(item)
        co2 += impact.co2_kg
        water += impact.water_l
        money += impact.money_usd
    return {
        "itemCount": len(items),
        "co2SavedKg": round(co2, 2),
        "waterSavedLiters": round(water),
        "moneySavedDollars": round(money, 2),
    }


def get_unexpired_items(db: Session, user_id: int, now: Optional[datetime] = None) -> list[FoodItem]:
    """The user's current inventory: not consumed and not past expiry, soonest first."""
    if now is None:
        now = datetime.utcnow()
    return (
        db.query(FoodItem)
        .filter(
            FoodItem.user_id == user_id,
            FoodItem.consumed.is_(False),
            FoodItem.expiry_date >= now,
        )
        .order_by(FoodItem.expiry_date)
        .all()
    )
