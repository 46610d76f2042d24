"""
SQLite models for Track2Give.
Users, their tracked food items, one running impact record per user, and
community donations.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from track2give.db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String)
    profile_picture = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    food_items = relationship("FoodItem", back_populates="user")
    impact_stats = relationship("ImpactStats", back_populates="user", uselist=False)


class FoodItem(Base):
    """One tracked grocery item. Category and unit are parsed through the enums in impact.factors."""
    __tablename__ = "food_items"
    __table_args__ = (
        Index("ix_food_items_user_consumed_expiry", "user_id", "consumed", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receipt_id = Column(String)  # null if manually added

    # What
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="other")
    quantity = Column(Float, nullable=False, default=1)
    unit = Column(String, nullable=False, default="item")

    # When / where
    purchase_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    expiry_date = Column(DateTime, nullable=False, index=True)
    storage_location = Column(String, nullable=False, default="fridge")

    estimated_value = Column(Float, default=0)

    # Lifecycle
    consumed = Column(Boolean, nullable=False, default=False, index=True)
    consumed_date = Column(DateTime)
    shared = Column(Boolean, nullable=False, default=False)
    shared_date = Column(DateTime)

    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="food_items")


class ImpactStats(Base):
    """Lifetime running totals per user. Only impact.accrual writes to it."""
    __tablename__ = "impact_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)

    items_saved = Column(Integer, nullable=False, default=0)
    items_shared = Column(Integer, nullable=False, default=0)
    co2_saved_kg = Column(Float, nullable=False, default=0)
    water_saved_liters = Column(Float, nullable=False, default=0)
    money_saved_dollars = Column(Float, nullable=False, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="impact_stats")


class SharedItem(Base):
    """Snapshot of a FoodItem offered to the community. Status only moves forward."""
    __tablename__ = "shared_items"
    __table_args__ = (
        Index("ix_shared_items_status_expiry", "status", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    food_item_id = Column(Integer, ForeignKey("food_items.id"), nullable=False)

    # Donor
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    username = Column(String, nullable=False)

    # Copied from the food item
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    expiry_date = Column(DateTime, nullable=False)

    pickup_location = Column(String, default="")
    notes = Column(Text, default="")

    status = Column(String, nullable=False, default="available", index=True)  # available, claimed, completed
    claimed_by = Column(Integer, ForeignKey("users.id"))
    claimed_by_username = Column(String)
    claimed_date = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
