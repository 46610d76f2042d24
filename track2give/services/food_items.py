"""
Food item lifecycle: create, edit, delete, consume, donate, claim, complete, cancel.

An item state change and the impact accrual it triggers are committed together.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from track2give.errors import InvalidStateError, NotFoundError
from track2give.impact.accrual import accrue_consumption, accrue_share
from track2give.impact.factors import Category, StorageLocation, Unit
from track2give.models.food import FoodItem, ImpactStats, SharedItem, User

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = "available"
STATUS_CLAIMED = "claimed"
STATUS_COMPLETED = "completed"


def commit_or_rollback(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to %s", action)
        raise


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def get_owned_item(db: Session, user_id: int, item_id: int) -> FoodItem:
    item = db.query(FoodItem).filter_by(id=item_id, user_id=user_id).first()
    if not item:
        raise NotFoundError(f"Food item {item_id} not found")
    return item


def create_food_item(db: Session, user_id: int, data: dict) -> FoodItem:
    """Insert one manually entered item. Category and unit are normalized to the enums."""
    get_user_or_404(db, user_id)
    storage = data.get("storage_location") or StorageLocation.FRIDGE.value
    item = FoodItem(
        user_id          = user_id,
        receipt_id       = data.get("receipt_id"),
        name             = data["name"].strip(),
        category         = Category.parse(data.get("category")).value,
        quantity         = data.get("quantity", 1),
        unit             = Unit.parse(data.get("unit")).value,
        purchase_date    = data.get("purchase_date") or datetime.utcnow(),
        expiry_date      = data["expiry_date"],
        storage_location = StorageLocation(storage).value,
        estimated_value  = data.get("estimated_value") or 0,
        notes            = data.get("notes") or "",
    )
    db.add(item)
    commit_or_rollback(db, f"create food item for user {user_id}")
    db.refresh(item)
    return item


def list_food_items(db: Session, user_id: int, consumed: Optional[bool] = None) -> list[FoodItem]:
    q = db.query(FoodItem).filter(FoodItem.user_id == user_id)
    if consumed is not None:
        q = q.filter(FoodItem.consumed.is_(consumed))
    return q.order_by(FoodItem.expiry_date).all()


EDITABLE_FIELDS = (
    "name", "category", "quantity", "unit", "expiry_date",
    "storage_location", "estimated_value", "notes",
)


def update_food_item(db: Session, user_id: int, item_id: int, changes: dict) -> FoodItem:
    """
    Edit an item still in the inventory. Only keys present in `changes` are touched.
    Consumed items already accrued their impact and shared items have a snapshot,
    so both are frozen.
    """
    item = get_owned_item(db, user_id, item_id)
    if item.consumed:
        raise InvalidStateError("Consumed items cannot be edited")
    if item.shared:
        raise InvalidStateError("Shared items cannot be edited")

    for field in EDITABLE_FIELDS:
        if field not in changes or changes[field] is None:
            continue
        value = changes[field]
        if field == "name":
            value = value.strip()
        elif field == "category":
            value = Category.parse(value).value
        elif field == "unit":
            value = Unit.parse(value).value
        elif field == "storage_location":
            value = StorageLocation(value).value
        setattr(item, field, value)

    commit_or_rollback(db, f"update item {item_id} for user {user_id}")
    db.refresh(item)
    return item


def delete_food_item(db: Session, user_id: int, item_id: int) -> None:
    """Remove an item. Impact already credited for it stays on the user's stats."""
    item = get_owned_item(db, user_id, item_id)
    if item.shared:
        open_donation = (
            db.query(SharedItem)
            .filter(SharedItem.food_item_id == item.id, SharedItem.status == STATUS_AVAILABLE)
            .first()
        )
        if open_donation is not None:
            raise InvalidStateError("Cancel the donation before deleting the item")
    db.delete(item)
    commit_or_rollback(db, f"delete item {item_id} for user {user_id}")
    logger.info("Deleted food item %s for user %s", item_id, user_id)


def consume_food_item(
    db: Session,
    user_id: int,
    item_id: int,
    now: Optional[datetime] = None,
) -> tuple[FoodItem, ImpactStats]:
    """Mark an item eaten and credit its impact to the owner."""
    item = get_owned_item(db, user_id, item_id)
    if item.consumed:
        raise InvalidStateError("Item is already consumed")
    if item.shared:
        raise InvalidStateError("Item has been donated")

    item.consumed = True
    item.consumed_date = now or datetime.utcnow()
    db.flush()
    stats = accrue_consumption(db, user_id, item)
    commit_or_rollback(db, f"consume item {item_id} for user {user_id}")
    db.refresh(item)
    return item, stats


def share_food_item(
    db: Session,
    user_id: int,
    item_id: int,
    pickup_location: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SharedItem:
    """Offer an item to the community. No impact is credited until someone claims it."""
    user = get_user_or_404(db, user_id)
    item = get_owned_item(db, user_id, item_id)
    if item.consumed:
        logger.warning("User %s tried to share consumed item %s", user_id, item_id)
        raise InvalidStateError("Consumed items cannot be shared")
    if item.shared:
        raise InvalidStateError("Item is already shared")

    now = now or datetime.utcnow()
    shared = SharedItem(
        food_item_id    = item.id,
        user_id         = user_id,
        username        = user.username,
        name            = item.name,
        category        = item.category,
        quantity        = item.quantity,
        unit            = item.unit,
        expiry_date     = item.expiry_date,
        pickup_location = pickup_location or "Not specified",
        notes           = notes or "",
        status          = STATUS_AVAILABLE,
    )
    db.add(shared)
    item.shared = True
    item.shared_date = now
    commit_or_rollback(db, f"share item {item_id} for user {user_id}")
    db.refresh(shared)
    return shared


def claim_shared_item(
    db: Session,
    claimer_id: int,
    shared_item_id: int,
    now: Optional[datetime] = None,
) -> SharedItem:
    """
    Claim an available donation. The status check and the write are a single
    conditional UPDATE, so only the first claimer succeeds.
    """
    claimer = get_user_or_404(db, claimer_id)
    result = db.execute(
        update(SharedItem)
        .where(
            SharedItem.id == shared_item_id,
            SharedItem.status == STATUS_AVAILABLE,
            SharedItem.user_id != claimer_id,
        )
        .values(
            status=STATUS_CLAIMED,
            claimed_by=claimer_id,
            claimed_by_username=claimer.username,
            claimed_date=now or datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        db.rollback()
        shared = db.get(SharedItem, shared_item_id)
        if shared is None:
            raise NotFoundError(f"Shared item {shared_item_id} not found")
        if shared.user_id == claimer_id:
            raise InvalidStateError("You cannot claim your own donation")
        logger.warning("User %s tried to claim shared item %s in status %s", claimer_id, shared_item_id, shared.status)
        raise InvalidStateError("Item not available")

    shared = db.get(SharedItem, shared_item_id)
    db.refresh(shared)
    accrue_share(db, shared.user_id)
    commit_or_rollback(db, f"claim shared item {shared_item_id} for user {claimer_id}")
    db.refresh(shared)
    return shared


def complete_shared_item(db: Session, donor_id: int, shared_item_id: int) -> SharedItem:
    """Donor confirms the claimed item was picked up."""
    shared = db.query(SharedItem).filter_by(id=shared_item_id, user_id=donor_id).first()
    if not shared:
        raise NotFoundError(f"Shared item {shared_item_id} not found")
    if shared.status != STATUS_CLAIMED:
        raise InvalidStateError(f"Only claimed items can be completed (status is {shared.status})")
    shared.status = STATUS_COMPLETED
    commit_or_rollback(db, f"complete shared item {shared_item_id}")
    db.refresh(shared)
    return shared


def cancel_donation(db: Session, donor_id: int, shared_item_id: int) -> None:
    """Withdraw a donation nobody has claimed yet and give the item back to its owner."""
    shared = db.query(SharedItem).filter_by(id=shared_item_id, user_id=donor_id).first()
    if not shared:
        raise NotFoundError(f"Shared item {shared_item_id} not found")
    if shared.status != STATUS_AVAILABLE:
        raise InvalidStateError("Donation has already been claimed")

    item = db.get(FoodItem, shared.food_item_id)
    if item is not None:
        item.shared = False
        item.shared_date = None
    db.delete(shared)
    commit_or_rollback(db, f"cancel donation {shared_item_id}")


def list_available_donations(db: Session, exclude_user_id: Optional[int] = None) -> list[SharedItem]:
    q = db.query(SharedItem).filter(SharedItem.status == STATUS_AVAILABLE)
    if exclude_user_id is not None:
        q = q.filter(SharedItem.user_id != exclude_user_id)
    return q.order_by(SharedItem.created_at.desc(), SharedItem.id.desc()).all()


def list_user_donations(db: Session, donor_id: int) -> list[SharedItem]:
    return (
        db.query(SharedItem)
        .filter(SharedItem.user_id == donor_id)
        .order_by(SharedItem.created_at.desc(), SharedItem.id.desc())
        .all()
    )
