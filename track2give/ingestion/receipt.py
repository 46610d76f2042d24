"""
Receipt ingestion.

Takes the structured output of the receipt scanner (already parsed upstream)
and bulk-inserts it as food items:

  {
    "storeName": "FreshMart",
    "purchaseDate": "2026-02-05",
    "items": [
      {"name": "Milk", "category": "dairy", "quantity": 1, "unit": "L",
       "price": 3.49, "expiryDate": "2026-02-12"},
      ...
    ]
  }

- Category and unit are normalized (unknown → "other" / "item")
- Storage location defaults by category
- Receipt price becomes the item's estimated value (negative or non-finite prices become 0)
- Rows with no name or an unparseable expiry date are skipped and reported
"""
import logging
import math
import uuid
from datetime import datetime, date

from sqlalchemy.orm import Session

from track2give.impact.factors import Category, Unit, default_storage
from track2give.models.food import FoodItem
from track2give.services.food_items import commit_or_rollback

logger = logging.getLogger(__name__)

KEY_STORE      = "storeName"
KEY_PURCHASED  = "purchaseDate"
KEY_ITEMS      = "items"
KEY_NAME       = "name"
KEY_CATEGORY   = "category"
KEY_QTY        = "quantity"
KEY_UNIT       = "unit"
KEY_PRICE      = "price"
KEY_EXPIRY     = "expiryDate"


def _parse_float(value) -> float | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value or "").strip()
    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S.%fZ"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Cannot parse date: {text!r}")


def ingest_receipt(data: dict, user_id: int, db: Session, receipt_id: str | None = None) -> dict:
    """
    Insert every usable line of a parsed receipt for the user.

    Returns: {"receiptId": str, "inserted": int, "skipped": int, "itemIds": list[int], "errors": list[str]}
    """
    receipt_id = receipt_id or uuid.uuid4().hex
    store = (data.get(KEY_STORE) or "").strip() or "unknown store"

    try:
        purchase_date = _parse_datetime(data.get(KEY_PURCHASED))
    except ValueError:
        purchase_date = datetime.utcnow()

    inserted: list[FoodItem] = []
    skipped = 0
    errors: list[str] = []

    for line_num, row in enumerate(data.get(KEY_ITEMS) or [], start=1):
        name = str(row.get(KEY_NAME) or "").strip()
        if not name:
            skipped += 1
            errors.append(f"Line {line_num}: blank item name, skipped")
            continue

        try:
            expiry_date = _parse_datetime(row.get(KEY_EXPIRY))
        except ValueError as e:
            skipped += 1
            errors.append(f"Line {line_num} ({name!r}): {e}")
            continue

        quantity = _parse_float(row.get(KEY_QTY))
        if quantity is None or quantity <= 0:
            quantity = 1.0

        price = _parse_float(row.get(KEY_PRICE))
        if price is not None and price < 0:
            errors.append(f"Line {line_num} ({name!r}): negative price {price}, value set to 0")
            price = None

        category = Category.parse(row.get(KEY_CATEGORY))
        item = FoodItem(
            user_id          = user_id,
            receipt_id       = receipt_id,
            name             = name,
            category         = category.value,
            quantity         = quantity,
            unit             = Unit.parse(row.get(KEY_UNIT)).value,
            purchase_date    = purchase_date,
            expiry_date      = expiry_date,
            storage_location = default_storage(category).value,
            estimated_value  = price or 0,
            notes            = f"From {store} receipt",
            consumed         = False,
            shared           = False,
        )
        db.add(item)
        inserted.append(item)

    commit_or_rollback(db, f"ingest receipt {receipt_id} for user {user_id}")
    logger.info("Receipt %s for user %s: %d inserted, %d skipped", receipt_id, user_id, len(inserted), skipped)

    return {
        "receiptId": receipt_id,
        "inserted": len(inserted),
        "skipped": skipped,
        "itemIds": [item.id for item in inserted],
        "errors": errors,
    }
