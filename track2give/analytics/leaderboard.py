"""
Leaderboard queries ranking users by donations and CO2 saved.
Ordering always ends on user_id so identical data gives identical output.
"""
import math
import os

from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session

from track2give.models.food import ImpactStats, SharedItem, User

DEFAULT_LIMIT = 10
MAX_LIMIT = int(os.getenv("LEADERBOARD_MAX_LIMIT", "50"))

ANONYMOUS_USERNAME = "Anonymous Donor"

DONOR_ORDER = (
    ImpactStats.items_shared.desc(),
    ImpactStats.co2_saved_kg.desc(),
    ImpactStats.items_saved.desc(),
    ImpactStats.user_id.asc(),
)

SAVER_ORDER = (
    ImpactStats.co2_saved_kg.desc(),
    ImpactStats.items_shared.desc(),
    ImpactStats.items_saved.desc(),
    ImpactStats.user_id.asc(),
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_limit(limit) -> int:
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def _ranked_rows(db: Session, key_column, order, limit) -> list[dict]:
    rows = (
        db.query(ImpactStats, User.username, User.profile_picture)
        .outerjoin(User, User.id == ImpactStats.user_id)
        .filter(key_column > 0)
        .order_by(*order)
        .limit(clamp_limit(limit))
        .all()
    )
    return [
        {
            "userId": stats.user_id,
            "username": username or ANONYMOUS_USERNAME,
            "profilePicture": picture or "",
            "itemsShared": stats.items_shared,
            "itemsSaved": stats.items_saved,
            "co2SavedKg": stats.co2_saved_kg,
            "waterSavedLiters": stats.water_saved_liters,
            "moneySavedDollars": stats.money_saved_dollars,
            "rank": position,
        }
        for position, (stats, username, picture) in enumerate(rows, start=1)
    ]


def get_top_donors(db: Session, limit: int = DEFAULT_LIMIT) -> list[dict]:
    """Users with at least one claimed donation, most donations first."""
    return _ranked_rows(db, ImpactStats.items_shared, DONOR_ORDER, limit)


def get_top_carbon_savers(db: Session, limit: int = DEFAULT_LIMIT) -> list[dict]:
    """Users with any CO2 saved, largest saving first."""
    return _ranked_rows(db, ImpactStats.co2_saved_kg, SAVER_ORDER, limit)


def get_user_rank(db: Session, user_id: int) -> dict:
    """
    Position of one user on the donor leaderboard.

    Non-donors are unranked (rank and percentile None). The percentile is the
    share of donors this user outranks, (total - rank) / total * 100 with halves
    rounded up, so the top donor of 4 gets 75 and the last one gets 0.
    """
    total_donors = db.query(func.count(ImpactStats.id)).filter(ImpactStats.items_shared > 0).scalar() or 0

    stats = db.query(ImpactStats).filter_by(user_id=user_id).first() if user_id else None
    if stats is None or (stats.items_shared or 0) <= 0:
        return {
            "rank": None,
            "totalDonors": total_donors,
            "percentile": None,
            "itemsShared": stats.items_shared if stats else 0,
            "co2SavedKg": stats.co2_saved_kg if stats else 0,
        }

    users_ahead = (
        db.query(func.count(ImpactStats.id))
        .filter(
            or_(
                ImpactStats.items_shared > stats.items_shared,
                and_(
                    ImpactStats.items_shared == stats.items_shared,
                    ImpactStats.co2_saved_kg > stats.co2_saved_kg,
                ),
            )
        )
        .scalar()
    )
    rank = users_ahead + 1
    percentile = _round_half_up((total_donors - rank) / total_donors * 100) if total_donors > 0 else None

    return {
        "rank": rank,
        "totalDonors": total_donors,
        "percentile": percentile,
        "itemsShared": stats.items_shared,
        "co2SavedKg": stats.co2_saved_kg,
    }


def get_global_donation_stats(db: Session) -> dict:
    """Totals and per-user averages across all ImpactStats, plus open donations."""
    row = db.query(
        func.count(ImpactStats.id).label("users"),
        func.coalesce(func.sum(ImpactStats.items_saved), 0).label("items_saved"),
        func.coalesce(func.sum(ImpactStats.items_shared), 0).label("items_shared"),
        func.coalesce(func.sum(ImpactStats.co2_saved_kg), 0).label("co2"),
        func.coalesce(func.sum(ImpactStats.water_saved_liters), 0).label("water"),
        func.coalesce(func.sum(ImpactStats.money_saved_dollars), 0).label("money"),
        func.avg(ImpactStats.items_shared).label("avg_shared"),
        func.avg(ImpactStats.co2_saved_kg).label("avg_co2"),
    ).one()

    total_available = db.query(func.count(SharedItem.id)).filter(SharedItem.status == "available").scalar() or 0

    if not row.users:
        return {
            "totalUsers": 0,
            "totalItemsSaved": 0,
            "totalItemsShared": 0,
            "totalCO2SavedKg": 0,
            "totalWaterSavedLiters": 0,
            "totalMoneySavedDollars": 0,
            "avgItemsSharedPerUser": 0,
            "avgCO2SavedPerUser": 0,
            "totalAvailableItems": total_available,
        }

    return {
        "totalUsers": row.users,
        "totalItemsSaved": row.items_saved,
        "totalItemsShared": row.items_shared,
        "totalCO2SavedKg": row.co2,
        "totalWaterSavedLiters": row.water,
        "totalMoneySavedDollars": row.money,
        "avgItemsSharedPerUser": row.avg_shared or 0,
        "avgCO2SavedPerUser": row.avg_co2 or 0,
        "totalAvailableItems": total_available,
    }
