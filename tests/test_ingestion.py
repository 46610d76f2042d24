"""
Receipt ingestion tests. All use in-memory SQLite, no model calls, no external services.
"""
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from track2give.impact.accrual import get_user_impact
from track2give.models.food import FoodItem
from track2give.ingestion.receipt import ingest_receipt
from track2give.services.food_items import consume_food_item


def _receipt(**overrides) -> dict:
    data = {
        "storeName": "FreshMart",
        "purchaseDate": "2026-02-05",
        "items": [
            {"name": "Whole Milk", "category": "dairy", "quantity": 1, "unit": "L", "price": 3.49, "expiryDate": "2026-02-12"},
            {"name": "Chicken Thighs", "category": "meat", "quantity": 1.2, "unit": "kg", "price": 8.99, "expiryDate": "2026-02-08"},
            {"name": "Bananas", "category": "fruits", "quantity": 6, "unit": "pieces", "price": 1.99, "expiryDate": "2026-02-10"},
            {"name": "Frozen Peas", "category": "frozen", "quantity": 500, "unit": "g", "price": 2.50, "expiryDate": "2026-08-01"},
            {"name": "Mystery Sauce", "category": "sauces", "quantity": "", "unit": "jar", "price": None, "expiryDate": "2026-12-01"},
        ],
    }
    data.update(overrides)
    return data


def test_ingest_basic(db, user):
    result = ingest_receipt(_receipt(), user.id, db)
    assert result["inserted"] == 5
    assert result["skipped"] == 0
    assert len(result["itemIds"]) == 5
    assert db.query(FoodItem).filter_by(user_id=user.id).count() == 5


def test_items_share_receipt_id_and_purchase_date(db, user):
    result = ingest_receipt(_receipt(), user.id, db, receipt_id="r-123")
    items = db.query(FoodItem).filter_by(user_id=user.id).all()
    assert result["receiptId"] == "r-123"
    assert {i.receipt_id for i in items} == {"r-123"}
    assert {i.purchase_date for i in items} == {datetime(2026, 2, 5)}
    assert all(i.notes == "From FreshMart receipt" for i in items)


def test_default_storage_by_category(db, user):
    ingest_receipt(_receipt(), user.id, db)
    by_name = {i.name: i for i in db.query(FoodItem).filter_by(user_id=user.id).all()}
    assert by_name["Whole Milk"].storage_location == "fridge"
    assert by_name["Bananas"].storage_location == "counter"
    assert by_name["Frozen Peas"].storage_location == "freezer"
    assert by_name["Mystery Sauce"].storage_location == "pantry"


def test_unknown_values_are_normalized(db, user):
    ingest_receipt(_receipt(), user.id, db)
    sauce = db.query(FoodItem).filter_by(user_id=user.id, name="Mystery Sauce").first()
    assert sauce.category == "other"
    assert sauce.unit == "item"
    assert sauce.quantity == 1
    assert sauce.estimated_value == 0

    bananas = db.query(FoodItem).filter_by(user_id=user.id, name="Bananas").first()
    assert bananas.unit == "piece"
    assert bananas.estimated_value == 1.99


def test_skips_row_with_no_name(db, user):
    data = _receipt()
    data["items"].append({"name": "  ", "category": "snacks", "expiryDate": "2026-03-01"})
    result = ingest_receipt(data, user.id, db)
    assert result["skipped"] == 1
    assert result["inserted"] == 5
    assert any("blank item name" in e for e in result["errors"])


def test_skips_unparseable_expiry(db, user):
    data = _receipt()
    data["items"].append({"name": "Bad Entry", "expiryDate": "next tuesday"})
    result = ingest_receipt(data, user.id, db)
    assert result["skipped"] == 1
    assert result["inserted"] == 5
    assert len(result["errors"]) == 1


def test_bad_purchase_date_falls_back_to_now(db, user):
    ingest_receipt(_receipt(purchaseDate="??"), user.id, db)
    item = db.query(FoodItem).filter_by(user_id=user.id).first()
    assert item.purchase_date.year >= 2026


def test_ingest_doubles_on_second_import(db, user):
    """
    Known limitation: no deduplication. Submitting the same receipt twice doubles the items.
    """
    ingest_receipt(_receipt(), user.id, db)
    ingest_receipt(_receipt(), user.id, db)
    assert db.query(FoodItem).filter_by(user_id=user.id).count() == 10


def test_empty_receipt(db, user):
    result = ingest_receipt({"items": []}, user.id, db)
    assert result["inserted"] == 0
    assert result["errors"] == []


def test_negative_price_is_stored_as_zero(db, user):
    data = {"storeName": "FreshMart", "items": [
        {"name": "Milk", "category": "dairy", "quantity": 1, "unit": "L", "price": 4.00, "expiryDate": "2026-02-12"},
        {"name": "Coupon", "category": "other", "price": "-3.00", "expiryDate": "2026-02-12"},
        {"name": "Glitch", "category": "other", "price": "inf", "expiryDate": "2026-02-12"},
    ]}
    result = ingest_receipt(data, user.id, db)
    assert result["inserted"] == 3
    assert any("negative price" in e for e in result["errors"])

    by_name = {i.name: i for i in db.query(FoodItem).filter_by(user_id=user.id).all()}
    assert by_name["Coupon"].estimated_value == 0
    assert by_name["Glitch"].estimated_value == 0


def test_consuming_discount_line_never_lowers_money_saved(db, user):
    data = {"items": [
        {"name": "Milk", "category": "dairy", "price": 4.00, "expiryDate": "2099-01-01"},
        {"name": "Coupon", "category": "other", "price": "-3.00", "expiryDate": "2099-01-01"},
    ]}
    milk_id, coupon_id = ingest_receipt(data, user.id, db)["itemIds"]

    consume_food_item(db, user.id, milk_id)
    before = get_user_impact(db, user.id)["moneySavedDollars"]
    consume_food_item(db, user.id, coupon_id)
    after = get_user_impact(db, user.id)["moneySavedDollars"]

    assert before == pytest.approx(4.0)
    assert after == pytest.approx(before)


def test_failed_commit_rolls_back_and_raises(db, user, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(OperationalError):
        ingest_receipt(_receipt(), user.id, db)
    assert db.query(FoodItem).filter_by(user_id=user.id).count() == 0
