"""Seed the catalog with a few restaurants, categories and dishes."""
from decimal import Decimal

from foodbot.db.init_db import init_db
from foodbot.db.session import SessionLocal
from foodbot.models.catalog import Category, FoodItem, Restaurant

RESTAURANTS = [
    {"name": "Mama Put Kitchen", "location": "Yaba, Lagos", "delivery_time": "30-45 mins", "rating": 4.5},
    {"name": "Suya Spot", "location": "Lekki, Lagos", "delivery_time": "25-40 mins", "rating": 4.3},
    {"name": "Slice House", "location": "Ikeja, Lagos", "delivery_time": "35-50 mins", "rating": 4.1},
]

CATEGORIES = [
    {"name": "Rice Dishes", "description": "Jollof, fried rice and more"},
    {"name": "Grills", "description": "Suya, chicken and fish off the grill"},
    {"name": "Pizza & Burgers", "description": "Fast food favourites"},
    {"name": "Soups & Swallow", "description": "Egusi, efo riro, pounded yam"},
    {"name": "Drinks", "description": "Juices, smoothies and soft drinks"},
]

FOODS = [
    ("Jollof Rice & Chicken", "Smoky party jollof with fried chicken", "3500", "Rice Dishes", "Mama Put Kitchen", ["jollof", "rice", "chicken"]),
    ("Fried Rice & Turkey", "Vegetable fried rice with peppered turkey", "4200", "Rice Dishes", "Mama Put Kitchen", ["rice", "turkey"]),
    ("Ofada Rice & Ayamase", "Local rice with green pepper sauce", "3800", "Rice Dishes", "Mama Put Kitchen", ["rice", "ofada"]),
    ("Beef Suya", "Spicy grilled beef skewers with yaji", "2500", "Grills", "Suya Spot", ["suya", "beef", "grill"]),
    ("Chicken Suya", "Grilled chicken strips, onions and yaji", "2800", "Grills", "Suya Spot", ["suya", "chicken"]),
    ("Grilled Croaker Fish", "Whole croaker with plantain", "6500", "Grills", "Suya Spot", ["fish", "grill"]),
    ("Pepperoni Pizza", "12-inch pizza with beef pepperoni", "7000", "Pizza & Burgers", "Slice House", ["pizza"]),
    ("Classic Beef Burger", "Beef patty, cheese, lettuce, fries", "4500", "Pizza & Burgers", "Slice House", ["burger", "fries"]),
    ("Egusi & Pounded Yam", "Melon seed soup with assorted meat", "4000", "Soups & Swallow", "Mama Put Kitchen", ["egusi", "soup", "pounded yam"]),
    ("Chapman", "Nigerian fruity cocktail (non-alcoholic)", "1500", "Drinks", "Slice House", ["drink"]),
    ("Zobo", "Chilled hibiscus drink", "800", "Drinks", "Mama Put Kitchen", ["drink", "zobo"]),
]


def seed_catalog():
    init_db()
    db = SessionLocal()
    try:
        if db.query(FoodItem).count():
            print("ℹ️ Catalog already seeded, skipping")
            return

        restaurants = {}
        for data in RESTAURANTS:
            restaurant = Restaurant(**data)
            db.add(restaurant)
            restaurants[data["name"]] = restaurant

        categories = {}
        for data in CATEGORIES:
            category = Category(**data)
            db.add(category)
            categories[data["name"]] = category
        db.flush()

        for name, description, price, category, restaurant, tags in FOODS:
            db.add(FoodItem(
                name=name,
                description=description,
                price=Decimal(price),
                category_id=categories[category].id,
                restaurant_id=restaurants[restaurant].id,
                tags=tags,
            ))

        db.commit()
        print(f"✅ Seeded {len(RESTAURANTS)} restaurants, {len(CATEGORIES)} categories, {len(FOODS)} dishes")
    finally:
        db.close()


if __name__ == "__main__":
    seed_catalog()
