"""
Environmental impact factors per food category.

CO2 figures are kg of CO2 emitted to produce one kg of food; water figures
are liters used per kg. Saving an item from the bin is credited with the
full production footprint.
"""
import enum
import logging

logger = logging.getLogger(__name__)


class Category(str, enum.Enum):
    DAIRY = "dairy"
    MEAT = "meat"
    SEAFOOD = "seafood"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    BAKERY = "bakery"
    BEVERAGES = "beverages"
    SNACKS = "snacks"
    FROZEN = "frozen"
    CANNED = "canned"
    CONDIMENTS = "condiments"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> "Category":
        """Map a stored category string onto the enum, falling back to OTHER."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        logger.debug("Unknown category %r, using 'other'", value)
        return cls.OTHER


class Unit(str, enum.Enum):
    ITEM = "item"
    KG = "kg"
    G = "g"
    LB = "lb"
    OZ = "oz"
    L = "L"
    ML = "mL"
    CUP = "cup"
    PIECE = "piece"
    PACK = "pack"

    @classmethod
    def parse(cls, value) -> "Unit":
        """Case-insensitive lookup with plural aliases; anything unrecognised becomes ITEM."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value.lower() == key:
                    return member
            if key in _UNIT_ALIASES:
                return cls(_UNIT_ALIASES[key])
        logger.debug("Unknown unit %r, using 'item'", value)
        return cls.ITEM


_UNIT_ALIASES = {
    "lbs": "lb",
    "liter": "L",
    "liters": "L",
    "milliliter": "mL",
    "milliliters": "mL",
    "cups": "cup",
    "items": "item",
    "unit": "item",
    "units": "item",
    "pieces": "piece",
    "packs": "pack",
}


class StorageLocation(str, enum.Enum):
    FRIDGE = "fridge"
    FREEZER = "freezer"
    PANTRY = "pantry"
    COUNTER = "counter"


CO2_PER_KG: dict[Category, float] = {
    Category.DAIRY:      2.5,
    Category.MEAT:       27.0,
    Category.SEAFOOD:    6.0,
    Category.VEGETABLES: 0.5,
    Category.FRUITS:     0.9,
    Category.GRAINS:     1.1,
    Category.BAKERY:     0.8,
    Category.BEVERAGES:  0.3,
    Category.SNACKS:     1.5,
    Category.FROZEN:     2.0,
    Category.CANNED:     1.2,
    Category.CONDIMENTS: 0.6,
    Category.OTHER:      1.0,
}

WATER_PER_KG: dict[Category, float] = {
    Category.DAIRY:      1000,
    Category.MEAT:       15400,
    Category.SEAFOOD:    3500,
    Category.VEGETABLES: 322,
    Category.FRUITS:     962,
    Category.GRAINS:     1644,
    Category.BAKERY:     1608,
    Category.BEVERAGES:  300,
    Category.SNACKS:     800,
    Category.FROZEN:     1200,
    Category.CANNED:     900,
    Category.CONDIMENTS: 400,
    Category.OTHER:      800,
}

DEFAULT_STORAGE: dict[Category, StorageLocation] = {
    Category.DAIRY:      StorageLocation.FRIDGE,
    Category.MEAT:       StorageLocation.FRIDGE,
    Category.SEAFOOD:    StorageLocation.FRIDGE,
    Category.VEGETABLES: StorageLocation.FRIDGE,
    Category.FRUITS:     StorageLocation.COUNTER,
    Category.GRAINS:     StorageLocation.PANTRY,
    Category.BAKERY:     StorageLocation.COUNTER,
    Category.BEVERAGES:  StorageLocation.FRIDGE,
    Category.SNACKS:     StorageLocation.PANTRY,
    Category.FROZEN:     StorageLocation.FREEZER,
    Category.CANNED:     StorageLocation.PANTRY,
    Category.CONDIMENTS: StorageLocation.PANTRY,
    Category.OTHER:      StorageLocation.PANTRY,
}

for _table in (CO2_PER_KG, WATER_PER_KG, DEFAULT_STORAGE):
    _missing = set(Category) - set(_table)
    if _missing:
        raise RuntimeError(f"Factor table missing categories: {sorted(c.value for c in _missing)}")

# Yearly absorption/emission used for "equivalent to" figures
CAR_CO2_PER_YEAR_KG = 4600
TREE_CO2_PER_YEAR_KG = 21.77


def co2_factor(category) -> float:
    return CO2_PER_KG[Category.parse(category)]


def water_factor(category) -> float:
    return WATER_PER_KG[Category.parse(category)]


def default_storage(category) -> StorageLocation:
    return DEFAULT_STORAGE[Category.parse(category)]
