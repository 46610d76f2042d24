"""
Per-item impact. Pure functions, usable on ORM rows, dicts, or anything with
category/quantity/unit/estimated_value attributes.
"""
import math
from collections.abc import Mapping
from typing import NamedTuple

from track2give.impact.factors import (
    CAR_CO2_PER_YEAR_KG,
    TREE_CO2_PER_YEAR_KG,
    co2_factor,
    water_factor,
)
from track2give.impact.units import to_kilograms


class ItemImpact(NamedTuple):
    co2_kg: float
    water_l: float
    money_usd: float


def _field(item, name: str, default=None):
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _money(value) -> float:
    """Estimated value in dollars; negative or non-finite values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def item_weight_kg(item) -> float:
    return to_kilograms(_field(item, "quantity"), _field(item, "unit"))


def compute_item_impact(item) -> ItemImpact:
    weight = item_weight_kg(item)
    category = _field(item, "category")
    return ItemImpact(
        co2_kg=co2_factor(category) * weight,
        water_l=water_factor(category) * weight,
        money_usd=_money(_field(item, "estimated_value")),
    )


def equivalents(co2_kg: float) -> dict:
    """Cars off the road / trees planted for one year, for a CO2 amount."""
    co2_kg = co2_kg or 0
    return {
        "carsRemoved": round(co2_kg / CAR_CO2_PER_YEAR_KG, 2),
        "treesPlanted": round(co2_kg / TREE_CO2_PER_YEAR_KG, 2),
    }
