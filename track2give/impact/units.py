"""
Quantity normalization. Every CO2/water figure in the app goes through
to_kilograms so the numbers stay consistent between views.
"""
import logging
import math

logger = logging.getLogger(__name__)

# kg per unit; keys are lowercase
KG_PER_UNIT = {
    "kg":          1.0,
    "g":           0.001,
    "lb":          0.453592,
    "lbs":         0.453592,
    "oz":          0.0283495,
    "l":           1.0,
    "liter":       1.0,
    "liters":      1.0,
    "ml":          0.001,
    "milliliter":  0.001,
    "milliliters": 0.001,
    "cup":         0.236,
    "cups":        0.236,
    "item":        0.5,
    "items":       0.5,
    "piece":       0.5,
    "pieces":      0.5,
    "unit":        0.5,
    "units":       0.5,
    "pack":        0.75,
    "packs":       0.75,
}

# One average item
DEFAULT_KG_PER_UNIT = 0.5


def _coerce_quantity(quantity) -> float:
    if isinstance(quantity, bool):
        return 0.0
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value <= 0:
        return 0.0
    return value


def to_kilograms(quantity, unit) -> float:
    """
    Convert a quantity in the given unit to kilograms.

    Never raises: non-numeric, non-finite or non-positive quantities give 0,
    and unknown units are treated as one average item (0.5 kg each).
    """
    value = _coerce_quantity(quantity)
    if value == 0.0:
        if quantity not in (None, 0):
            logger.debug("Quantity %r normalized to 0 kg", quantity)
        return 0.0

    key = unit.strip().lower() if isinstance(unit, str) else ""
    factor = KG_PER_UNIT.get(key)
    if factor is None:
        logger.debug("Unknown unit %r, assuming %s kg per unit", unit, DEFAULT_KG_PER_UNIT)
        factor = DEFAULT_KG_PER_UNIT
    return value * factor
