import logging
import uuid
from datetime import datetime, timezone

from campusbite.domain.models import MenuItem

logger = logging.getLogger(__name__)


# (name, description, price in paise, category, preparation minutes)
DEFAULT_MENU = [
    ("Chicken Biryani", "Fragrant basmati rice with tender chicken pieces and aromatic spices", 18000, "Main Course", 20),
    ("Veg Fried Rice", "Stir-fried rice with fresh vegetables and soy sauce", 12000, "Main Course", 15),
    ("Chicken Curry", "Spicy chicken curry with onions, tomatoes and traditional spices", 15000, "Main Course", 20),
    ("Dal Tadka", "Yellow lentils tempered with spices and herbs", 8000, "Main Course", 10),
    ("Chicken Sandwich", "Grilled chicken with fresh vegetables and mayo on whole wheat bread", 9000, "Snacks", 10),
    ("Veg Burger", "Vegetarian patty with lettuce, tomato, and special sauce", 7500, "Snacks", 10),
    ("Chicken Noodles", "Hakka noodles tossed with chicken and vegetables", 11000, "Main Course", 15),
    ("Mango Lassi", "Chilled yoghurt drink blended with mango", 5000, "Beverages", 5),
    ("Masala Chai", "Spiced Indian tea", 2500, "Beverages", 5),
    ("Chocolate Cake", "Slice of rich chocolate cake", 6000, "Desserts", 2),
]


async def seed_menu(unit_of_work) -> int:
    """Loads DEFAULT_MENU into an empty catalog. Returns the number of items inserted"""
    async with unit_of_work() as uow:
        if await uow.menu.count() > 0:
            logger.info("Menu already populated, skipping seed")
            return 0

        now = datetime.now(timezone.utc)
        for name, description, price, category, preparation_time in DEFAULT_MENU:
            await uow.menu.create(MenuItem(
                id=str(uuid.uuid4()),
                name=name,
                description=description,
                price=price,
                category=category,
                preparation_time=preparation_time,
                created_at=now,
                updated_at=now
            ))
        await uow.commit()

    logger.info(f"Seeded {len(DEFAULT_MENU)} menu items")
    return len(DEFAULT_MENU)
