"""
Unit normalization, factor tables, per-item impact and lifetime accrual.
"""
import pytest

from track2give.impact.units import to_kilograms
from track2give.impact.factors import (
    CO2_PER_KG,
    WATER_PER_KG,
    Category,
    Unit,
    co2_factor,
    default_storage,
    StorageLocation,
)
from track2give.impact.calculator import compute_item_impact, equivalents
from track2give.impact.accrual import (
    accrue_consumption,
    accrue_share,
    get_user_impact,
    format_impact_stats,
)
from track2give.models.food import ImpactStats


# ── Units ────────────────────────────────────────────────────────────────────

def test_to_kilograms_known_units():
    assert to_kilograms(2, "kg") == 2
    assert to_kilograms(500, "g") == pytest.approx(0.5)
    assert to_kilograms(1, "lb") == pytest.approx(0.453592)
    assert to_kilograms(2, "pack") == pytest.approx(1.5)
    assert to_kilograms(250, "mL") == pytest.approx(0.25)


def test_to_kilograms_is_case_insensitive():
    assert to_kilograms(1, "L") == to_kilograms(1, "l") == 1
    assert to_kilograms(3, "KG") == 3


def test_to_kilograms_rejects_bad_quantities():
    assert to_kilograms(-3, "kg") == 0
    assert to_kilograms(0, "kg") == 0
    assert to_kilograms("abc", "kg") == 0
    assert to_kilograms(None, "kg") == 0
    assert to_kilograms(float("nan"), "kg") == 0
    assert to_kilograms(float("inf"), "kg") == 0


def test_to_kilograms_numeric_strings_are_accepted():
    assert to_kilograms("2", "kg") == 2


def test_to_kilograms_unknown_unit_is_one_average_item():
    assert to_kilograms(5, "banana") == pytest.approx(2.5)
    assert to_kilograms(2, None) == pytest.approx(1.0)


# ── Factors ──────────────────────────────────────────────────────────────────

def test_every_category_has_factors():
    assert len(Category) == 13
    for category in Category:
        assert category in CO2_PER_KG
        assert category in WATER_PER_KG


def test_unknown_category_falls_back_to_other():
    assert Category.parse("spaceship") is Category.OTHER
    assert Category.parse(None) is Category.OTHER
    assert Category.parse(" Meat ") is Category.MEAT
    assert co2_factor("nonsense") == CO2_PER_KG[Category.OTHER]


def test_unit_parse_aliases():
    assert Unit.parse("ml") is Unit.ML
    assert Unit.parse("lbs") is Unit.LB
    assert Unit.parse("Liters") is Unit.L
    assert Unit.parse("handful") is Unit.ITEM


def test_default_storage():
    assert default_storage("frozen") is StorageLocation.FREEZER
    assert default_storage("fruits") is StorageLocation.COUNTER
    assert default_storage("mystery") is StorageLocation.PANTRY


# ── Per-item impact ──────────────────────────────────────────────────────────

def test_meat_scenario():
    impact = compute_item_impact({"category": "meat", "quantity": 2, "unit": "kg", "estimated_value": 10})
    assert impact.co2_kg == pytest.approx(54.0)
    assert impact.water_l == pytest.approx(30800)
    assert impact.money_usd == 10


def test_item_impact_is_deterministic():
    item = {"category": "dairy", "quantity": 1.5, "unit": "L", "estimated_value": 4.2}
    assert compute_item_impact(item) == compute_item_impact(item)


def test_item_impact_with_bad_data_is_zero_not_error():
    impact = compute_item_impact({"category": None, "quantity": "lots", "unit": "kg", "estimated_value": None})
    assert impact.co2_kg == 0
    assert impact.water_l == 0
    assert impact.money_usd == 0


def test_negative_or_infinite_value_is_no_money():
    for value in (-3.0, "-3", float("inf"), float("nan")):
        impact = compute_item_impact({"category": "dairy", "quantity": 1, "unit": "kg", "estimated_value": value})
        assert impact.money_usd == 0
        assert impact.co2_kg > 0


def test_equivalents():
    eq = equivalents(150)
    assert eq["carsRemoved"] == pytest.approx(0.03)
    assert eq["treesPlanted"] == pytest.approx(6.89)


# ── Accrual ──────────────────────────────────────────────────────────────────

def test_accrue_consumption_creates_stats(db, user, make_item):
    item = make_item(user.id, category="meat", quantity=2, unit="kg", estimated_value=10)
    stats = accrue_consumption(db, user.id, item)
    db.commit()

    assert stats.items_saved == 1
    assert stats.co2_saved_kg == pytest.approx(54.0)
    assert stats.water_saved_liters == pytest.approx(30800)
    assert stats.money_saved_dollars == pytest.approx(10)
    assert db.query(ImpactStats).filter_by(user_id=user.id).count() == 1


def test_accrual_is_monotonic(db, user, make_item):
    items = [
        make_item(user.id, category="vegetables", quantity=300, unit="g", estimated_value=2),
        make_item(user.id, category="meat", quantity=-1, unit="kg"),
        make_item(user.id, category="unknown", quantity=3, unit="widget", estimated_value=1.5),
    ]
    previous = (0, 0.0, 0.0, 0.0)
    for item in items:
        s = accrue_consumption(db, user.id, item)
        current = (s.items_saved, s.co2_saved_kg, s.water_saved_liters, s.money_saved_dollars)
        assert all(c >= p for c, p in zip(current, previous))
        assert s.items_shared == 0
        previous = current
    assert previous[0] == 3


def test_accrue_share_only_touches_items_shared(db, user, make_item):
    accrue_consumption(db, user.id, make_item(user.id, category="fruits", quantity=1, unit="kg"))
    before = get_user_impact(db, user.id)

    stats = accrue_share(db, user.id)
    db.commit()

    assert stats.items_shared == 1
    assert stats.items_saved == before["itemsSaved"]
    assert stats.co2_saved_kg == pytest.approx(before["co2SavedKg"])
    assert stats.water_saved_liters == pytest.approx(before["waterSavedLiters"])


def test_accrue_share_lazily_creates_stats(db, user):
    stats = accrue_share(db, user.id)
    assert stats.items_shared == 1
    assert stats.items_saved == 0
    assert stats.co2_saved_kg == 0


def test_get_user_impact_without_stats_is_zero_and_read_only(db, user):
    result = get_user_impact(db, user.id)
    assert result["itemsSaved"] == 0
    assert result["co2SavedKg"] == 0
    assert result["equivalents"] == {"carsRemoved": 0, "treesPlanted": 0}
    assert db.query(ImpactStats).count() == 0


def test_format_impact_stats():
    formatted = format_impact_stats({
        "itemsSaved": 3,
        "itemsShared": 1,
        "co2SavedKg": 10.456,
        "waterSavedLiters": 1600.4,
        "moneySavedDollars": 12.5,
    })
    assert formatted["co2Saved"]["kg"] == 10.46
    assert formatted["co2Saved"]["equivalent"] == "48 miles driven"
    assert formatted["waterSaved"]["display"] == "1,600 L"
    assert formatted["waterSaved"]["equivalent"] == "200 days of drinking water"
    assert formatted["moneySaved"]["display"] == "$12.50"
