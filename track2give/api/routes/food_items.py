"""
Food item API routes.
Users, item tracking, consumption, receipt ingestion, donations.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from track2give.db.database import get_db
from track2give.errors import InvalidStateError, NotFoundError
from track2give.models.food import User, FoodItem, SharedItem
from track2give.ingestion.receipt import ingest_receipt
from track2give.impact.accrual import stats_dict
from track2give.services import food_items as service
from track2give.api.schemas import UserIn, FoodItemIn, FoodItemUpdate, ShareIn, ReceiptIn

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────────────────────

def _user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "profile_picture": u.profile_picture,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def _item_dict(i: FoodItem) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "category": i.category,
        "quantity": i.quantity,
        "unit": i.unit,
        "purchase_date": i.purchase_date.isoformat() if i.purchase_date else None,
        "expiry_date": i.expiry_date.isoformat(),
        "storage_location": i.storage_location,
        "estimated_value": i.estimated_value,
        "consumed": i.consumed,
        "consumed_date": i.consumed_date.isoformat() if i.consumed_date else None,
        "shared": i.shared,
        "shared_date": i.shared_date.isoformat() if i.shared_date else None,
        "receipt_id": i.receipt_id,
        "notes": i.notes,
    }


def _shared_dict(s: SharedItem) -> dict:
    return {
        "id": s.id,
        "food_item_id": s.food_item_id,
        "user_id": s.user_id,
        "username": s.username,
        "name": s.name,
        "category": s.category,
        "quantity": s.quantity,
        "unit": s.unit,
        "expiry_date": s.expiry_date.isoformat(),
        "pickup_location": s.pickup_location,
        "notes": s.notes,
        "status": s.status,
        "claimed_by": s.claimed_by,
        "claimed_by_username": s.claimed_by_username,
        "claimed_date": s.claimed_date.isoformat() if s.claimed_date else None,
    }


def _raise_http(e: Exception):
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def _get_user_or_404(user_id: int, db: Session) -> User:
    try:
        return service.get_user_or_404(db, user_id)
    except NotFoundError as e:
        _raise_http(e)


# ── Users ────────────────────────────────────────────────────────────────────

@router.post("/users", status_code=201)
def create_user(data: UserIn, db: Session = Depends(get_db)):
    if db.query(User).filter_by(username=data.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")
    u = User(username=data.username, email=data.email, profile_picture=data.profile_picture)
    db.add(u)
    db.commit()
    db.refresh(u)
    return _user_dict(u)


@router.get("/users/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _user_dict(_get_user_or_404(user_id, db))


# ── Items ────────────────────────────────────────────────────────────────────

@router.post("/users/{user_id}/items", status_code=201)
def create_item(user_id: int, data: FoodItemIn, db: Session = Depends(get_db)):
    try:
        item = service.create_food_item(db, user_id, data.model_dump())
    except NotFoundError as e:
        _raise_http(e)
    return _item_dict(item)


@router.get("/users/{user_id}/items")
def list_items(user_id: int, consumed: bool | None = None, db: Session = Depends(get_db)):
    _get_user_or_404(user_id, db)
    return [_item_dict(i) for i in service.list_food_items(db, user_id, consumed)]


@router.put("/users/{user_id}/items/{item_id}")
def update_item(user_id: int, item_id: int, data: FoodItemUpdate, db: Session = Depends(get_db)):
    try:
        item = service.update_food_item(db, user_id, item_id, data.model_dump(exclude_unset=True))
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
    return _item_dict(item)


@router.delete("/users/{user_id}/items/{item_id}", status_code=204)
def delete_item(user_id: int, item_id: int, db: Session = Depends(get_db)):
    try:
        service.delete_food_item(db, user_id, item_id)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)


@router.post("/users/{user_id}/items/{item_id}/consume")
def consume_item(user_id: int, item_id: int, db: Session = Depends(get_db)):
    try:
        item, stats = service.consume_food_item(db, user_id, item_id)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
    return {"item": _item_dict(item), "impact": stats_dict(stats)}


@router.post("/users/{user_id}/receipts", status_code=201)
def upload_receipt(user_id: int, data: ReceiptIn, db: Session = Depends(get_db)):
    _get_user_or_404(user_id, db)
    return ingest_receipt(data.model_dump(), user_id, db)


# ── Donations ────────────────────────────────────────────────────────────────

@router.post("/users/{user_id}/items/{item_id}/share", status_code=201)
def share_item(
    user_id: int,
    item_id: int,
    data: ShareIn | None = None,
    db: Session = Depends(get_db),
):
    data = data or ShareIn()
    try:
        shared = service.share_food_item(db, user_id, item_id, data.pickup_location, data.notes)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
    return _shared_dict(shared)


@router.get("/donations/available")
def available_donations(exclude_user_id: int | None = None, db: Session = Depends(get_db)):
    return [_shared_dict(s) for s in service.list_available_donations(db, exclude_user_id)]


@router.get("/users/{user_id}/donations")
def my_donations(user_id: int, db: Session = Depends(get_db)):
    _get_user_or_404(user_id, db)
    return [_shared_dict(s) for s in service.list_user_donations(db, user_id)]


@router.post("/users/{user_id}/donations/{shared_id}/claim")
def claim_donation(user_id: int, shared_id: int, db: Session = Depends(get_db)):
    try:
        shared = service.claim_shared_item(db, user_id, shared_id)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
    return _shared_dict(shared)


@router.post("/users/{user_id}/donations/{shared_id}/complete")
def complete_donation(user_id: int, shared_id: int, db: Session = Depends(get_db)):
    try:
        shared = service.complete_shared_item(db, user_id, shared_id)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
    return _shared_dict(shared)


@router.delete("/users/{user_id}/donations/{shared_id}", status_code=204)
def cancel_donation(user_id: int, shared_id: int, db: Session = Depends(get_db)):
    try:
        service.cancel_donation(db, user_id, shared_id)
    except (NotFoundError, InvalidStateError) as e:
        _raise_http(e)
