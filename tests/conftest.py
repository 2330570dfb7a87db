"""
Shared fixtures: a small electronics / books / furniture catalog
"""

import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from graphrec.models.entities import Interaction, InteractionType, Product, User
from graphrec.services.recommendation_service import RecommendationService

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

CATALOG = [
    Product(1, "Laptop A", "Electronics", "Dell", 1200.0, 4.5, tags={"laptop", "work"}),
    Product(2, "Laptop B", "Electronics", "Dell", 1300.0, 4.2, tags={"laptop", "gaming"}),
    Product(3, "Phone", "Electronics", "Apple", 900.0, 4.8, tags={"phone"}),
    Product(4, "Headphones", "Electronics", "Sony", 200.0, 4.1, tags={"audio"}),
    Product(5, "Novel", "Books", "Penguin", 20.0, 3.9, tags={"fiction"}),
    Product(6, "Cookbook", "Books", "Penguin", 35.0, 4.6, tags={"cooking"}),
    Product(7, "Desk", "Furniture", "Ikea", 250.0, 4.0, tags={"work"}),
    Product(8, "Chair", "Furniture", "Ikea", 150.0, 3.5, tags={"work"}),
]

# user 1 and 2 are hybrid tier, 3-5 content tier, 6 has no history
INTERACTIONS = [
    (1, 1, InteractionType.VIEW),
    (1, 2, InteractionType.PURCHASE),
    (1, 3, InteractionType.VIEW),
    (1, 4, InteractionType.VIEW),
    (1, 7, InteractionType.WISHLIST),
    (2, 1, InteractionType.VIEW),
    (2, 3, InteractionType.PURCHASE),
    (2, 4, InteractionType.VIEW),
    (2, 5, InteractionType.VIEW),
    (3, 1, InteractionType.VIEW),
    (3, 2, InteractionType.VIEW),
    (4, 5, InteractionType.PURCHASE),
    (4, 6, InteractionType.VIEW),
    (4, 8, InteractionType.VIEW),
    (5, 2, InteractionType.VIEW),
]


def make_interaction(user_id, product_id, interaction_type, offset_hours=0, value=0.0):
    return Interaction(user_id, product_id, interaction_type, value=value,
                       timestamp=BASE_TIME + timedelta(hours=offset_hours))


@pytest.fixture
def catalog_service():
    """Service populated with the sample catalog"""
    service = RecommendationService()
    service.add_users(User(user_id, username=f"user{user_id}") for user_id in range(1, 7))
    service.add_products(
        Product(p.product_id, p.name, p.category, p.brand, p.price, p.rating, tags=set(p.tags))
        for p in CATALOG
    )
    service.ingest_interactions(
        make_interaction(user_id, product_id, interaction_type, offset_hours=idx)
        for idx, (user_id, product_id, interaction_type) in enumerate(INTERACTIONS)
    )
    return service
