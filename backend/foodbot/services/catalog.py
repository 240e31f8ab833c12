"""Read-only catalog lookups used by the conversation engine."""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, joinedload

from foodbot.core.config import settings
from foodbot.models.catalog import Category, FoodItem


class CatalogReader:
    """Categories and available food items. Never writes."""

    def __init__(self, db: Session):
        self.db = db

    def _available_foods(self):
        return (
            self.db.query(FoodItem)
            .options(joinedload(FoodItem.restaurant))
            .filter(FoodItem.is_available.is_(True))
        )

    def active_categories(self) -> List[Category]:
        return (
            self.db.query(Category)
            .filter(Category.is_active.is_(True))
            .order_by(Category.name)
            .all()
        )

    def get_category(self, category_id: int) -> Optional[Category]:
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.is_active.is_(True))
            .first()
        )

    def get_food(self, food_id: int) -> Optional[FoodItem]:
        """Available food by id, None when missing or switched off."""
        return self._available_foods().filter(FoodItem.id == food_id).first()

    def get_foods(self, food_ids: Iterable[int]) -> Dict[int, FoodItem]:
        ids = list(set(food_ids))
        if not ids:
            return {}
        foods = self._available_foods().filter(FoodItem.id.in_(ids)).all()
        return {food.id: food for food in foods}

    def foods_in_category(self, category_id: int, limit: int | None = None) -> List[FoodItem]:
        return (
            self._available_foods()
            .filter(FoodItem.category_id == category_id)
            .order_by(FoodItem.name)
            .limit(limit or settings.SEARCH_RESULT_LIMIT)
            .all()
        )

    def search_foods(self, query: str, limit: int | None = None) -> List[FoodItem]:
        """Case-insensitive match on name, description or tags."""
        query = (query or "").strip()
        if not query:
            return []
        pattern = f"%{query.lower()}%"
        return (
            self._available_foods()
            .filter(
                or_(
                    FoodItem.name.ilike(pattern),
                    FoodItem.description.ilike(pattern),
                    cast(FoodItem.tags, String).ilike(pattern),
                )
            )
            .order_by(FoodItem.name)
            .limit(limit or settings.SEARCH_RESULT_LIMIT)
            .all()
        )
