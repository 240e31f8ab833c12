"""
Catalog models: restaurants, categories, food items.

Read-only from the conversation core's point of view; maintained by the
catalog administration surface.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from foodbot.db.base import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    is_active = Column(Boolean, default=True)
    delivery_time = Column(String(64), default="30-45 mins")
    rating = Column(Float, default=4.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), unique=True, nullable=False)
    description = Column(String(512), nullable=True)
    is_active = Column(Boolean, default=True)


class FoodItem(Base):
    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    image = Column(String(512), nullable=True)
    is_available = Column(Boolean, default=True)
    preparation_time = Column(String(64), default="15-20 mins")
    tags = Column(JSON, nullable=False, default=list)

    category = relationship("Category", backref="food_items")
    restaurant = relationship("Restaurant", backref="food_items")
