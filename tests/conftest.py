"""
Shared fixtures: in-memory SQLite, no external services.
"""
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from track2give.db.database import Base
from track2give.models.food import User, FoodItem


@pytest.fixture
def db():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


def _make_user(db, username):
    u = User(username=username)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def user(db):
    return _make_user(db, "alice")


@pytest.fixture
def other_user(db):
    return _make_user(db, "bob")


@pytest.fixture
def make_item(db):
    """Factory for food items; consumed_date implies consumed=True."""
    def _make(user_id, category="other", quantity=1, unit="item", estimated_value=0,
              consumed_date=None, expiry_date=datetime(2099, 1, 1), name="Thing"):
        item = FoodItem(
            user_id=user_id,
            name=name,
            category=category,
            quantity=quantity,
            unit=unit,
            estimated_value=estimated_value,
            expiry_date=expiry_date,
            consumed=consumed_date is not None,
            consumed_date=consumed_date,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make


@pytest.fixture
def third_user(db):
    return _make_user(db, "carol")
