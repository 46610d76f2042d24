"""
Lifetime impact accrual. The only code that writes to ImpactStats.

Increments are a single atomic `col = col + delta` UPDATE per event.
Accrual flushes but never commits: the caller commits it together with the
item state change that triggered it.
"""
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from track2give.impact.calculator import compute_item_impact, equivalents
from track2give.models.food import ImpactStats

logger = logging.getLogger(__name__)

# Display conversions
MILES_DRIVEN_PER_KG_CO2 = 4.63
DRINKING_WATER_LITERS_PER_DAY = 8


def _get_or_initialize(db: Session, user_id: int) -> ImpactStats:
    stats = db.query(ImpactStats).filter_by(user_id=user_id).first()
    if stats is None:
        stats = ImpactStats(
            user_id=user_id,
            items_saved=0,
            items_shared=0,
            co2_saved_kg=0.0,
            water_saved_liters=0.0,
            money_saved_dollars=0.0,
        )
        db.add(stats)
        db.flush()
        logger.info("Created impact stats for user %s", user_id)
    return stats


def _increment(db: Session, stats: ImpactStats, **deltas) -> ImpactStats:
    values = {name: getattr(ImpactStats, name) + delta for name, delta in deltas.items()}
    db.execute(
        update(ImpactStats)
        .where(ImpactStats.id == stats.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(stats)
    return stats


def accrue_consumption(db: Session, user_id: int, item) -> ImpactStats:
    """
    Credit the user with the impact of one consumed item.

    The caller must invoke this once per consumption event; there is no
    deduplication here.
    """
    impact = compute_item_impact(item)
    stats = _get_or_initialize(db, user_id)
    _increment(
        db,
        stats,
        items_saved=1,
        co2_saved_kg=impact.co2_kg,
        water_saved_liters=impact.water_l,
        money_saved_dollars=impact.money_usd,
    )
    logger.info(
        "Accrued consumption for user %s (item %s): co2=%.3f kg water=%.1f L money=%.2f",
        user_id, getattr(item, "id", None), impact.co2_kg, impact.water_l, impact.money_usd,
    )
    return stats


def accrue_share(db: Session, donor_id: int) -> ImpactStats:
    """Credit a donor for one claimed donation. CO2 and water are untouched."""
    stats = _get_or_initialize(db, donor_id)
    _increment(db, stats, items_shared=1)
    logger.info("Accrued share for donor %s, items_shared=%s", donor_id, stats.items_shared)
    return stats


def stats_dict(stats: ImpactStats | None) -> dict:
    if stats is None:
        return {
            "itemsSaved": 0,
            "itemsShared": 0,
            "co2SavedKg": 0,
            "waterSavedLiters": 0,
            "moneySavedDollars": 0,
        }
    return {
        "itemsSaved": stats.items_saved or 0,
        "itemsShared": stats.items_shared or 0,
        "co2SavedKg": stats.co2_saved_kg or 0,
        "waterSavedLiters": stats.water_saved_liters or 0,
        "moneySavedDollars": stats.money_saved_dollars or 0,
    }


def get_user_impact(db: Session, user_id: int) -> dict:
    """Lifetime totals for a user, all zero if nothing was ever accrued. Read-only."""
    stats = db.query(ImpactStats).filter_by(user_id=user_id).first()
    result = stats_dict(stats)
    result["equivalents"] = equivalents(result["co2SavedKg"])
    return result


def format_impact_stats(stats: dict) -> dict:
    """Human-readable version of a stats dict for the dashboard."""
    co2 = round(stats.get("co2SavedKg") or 0, 2)
    water = round(stats.get("waterSavedLiters") or 0)
    money = round(stats.get("moneySavedDollars") or 0, 2)
    return {
        "itemsSaved": stats.get("itemsSaved") or 0,
        "itemsShared": stats.get("itemsShared") or 0,
        "co2Saved": {
            "kg": co2,
            "display": f"{co2} kg",
            "equivalent": f"{round(co2 * MILES_DRIVEN_PER_KG_CO2)} miles driven",
        },
        "waterSaved": {
            "liters": water,
            "display": f"{water:,} L",
            "equivalent": f"{round(water / DRINKING_WATER_LITERS_PER_DAY)} days of drinking water",
        },
        "moneySaved": {
            "amount": money,
            "display": f"${money:.2f}",
        },
    }
