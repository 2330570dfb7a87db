"""
Catalog entities: users, products and the interactions between them
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Set


class InteractionType(str, Enum):
    VIEW = "VIEW"
    PURCHASE = "PURCHASE"
    WISHLIST = "WISHLIST"
    RATING = "RATING"
    SEARCH = "SEARCH"
    CART_ADD = "CART_ADD"
    CART_REMOVE = "CART_REMOVE"


# RATING uses the interaction value; unlisted types weigh 1.0
INTERACTION_WEIGHTS = {
    InteractionType.VIEW: 1.0,
    InteractionType.WISHLIST: 2.0,
    InteractionType.CART_ADD: 3.0,
    InteractionType.PURCHASE: 5.0,
}

IMPLICIT_TYPES = frozenset({InteractionType.VIEW, InteractionType.SEARCH, InteractionType.CART_ADD})
EXPLICIT_TYPES = frozenset({InteractionType.RATING, InteractionType.PURCHASE, InteractionType.WISHLIST})


@dataclass
class User:
    """Catalog customer with interaction history"""
    user_id: int
    username: str = ""
    email: str = ""
    viewed_products: Set[int] = field(default_factory=set)
    purchased_products: Set[int] = field(default_factory=set)
    wishlist_products: Set[int] = field(default_factory=set)
    category_preferences: Dict[str, float] = field(default_factory=dict)
    average_rating: float = 0.0
    registration_date: datetime = field(default_factory=datetime.now)

    def add_viewed_product(self, product_id: int):
        self.viewed_products.add(product_id)

    def add_purchased_product(self, product_id: int):
        # Purchased items are also viewed
        self.purchased_products.add(product_id)
        self.viewed_products.add(product_id)

    def add_to_wishlist(self, product_id: int):
        self.wishlist_products.add(product_id)

    def update_category_preference(self, category: str, score: float):
        self.category_preferences[category] = score

    def has_interacted_with(self, product_id: int) -> bool:
        return (product_id in self.viewed_products or
                product_id in self.purchased_products or
                product_id in self.wishlist_products)

    @property
    def seen_products(self) -> Set[int]:
        """Products excluded from this user's candidates"""
        return self.viewed_products | self.purchased_products

    @property
    def total_interactions(self) -> int:
        return len(self.viewed_products) + len(self.purchased_products) + len(self.wishlist_products)


@dataclass
class Product:
    """Catalog item with descriptive attributes and interaction counters"""
    product_id: int
    name: str = ""
    category: str = ""
    brand: str = ""
    price: float = 0.0
    rating: float = 0.0
    review_count: int = 0
    tags: Set[str] = field(default_factory=set)
    attributes: Dict[str, str] = field(default_factory=dict)
    view_count: int = 0
    purchase_count: int = 0
    wishlist_count: int = 0
    in_stock: bool = True
    description: Optional[str] = None
    added_date: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.tags = {tag.lower() for tag in self.tags if tag}

    def add_tag(self, tag: str):
        self.tags.add(tag.lower())

    def add_attribute(self, key: str, value: str):
        self.attributes[key] = value

    def increment_view_count(self):
        self.view_count += 1

    def increment_purchase_count(self):
        self.purchase_count += 1

    def increment_wishlist_count(self):
        self.wishlist_count += 1

    @property
    def popularity_score(self) -> float:
        return (self.view_count * 0.1 +
                self.purchase_count * 0.5 +
                self.wishlist_count * 0.3 +
                self.rating * self.review_count * 0.1)

    def matches_category(self, category_pattern: str) -> bool:
        return category_pattern.lower() in self.category.lower()

    def has_tags(self, search_tags: Set[str]) -> bool:
        return not self.tags.isdisjoint(tag.lower() for tag in search_tags)


@dataclass(frozen=True)
class Interaction:
    """Immutable entry of the append-only interaction log"""
    user_id: int
    product_id: int
    type: InteractionType
    value: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    context: str = ""

    @property
    def weight(self) -> float:
        if self.type == InteractionType.RATING:
            return self.value
        return INTERACTION_WEIGHTS.get(self.type, 1.0)

    @property
    def is_implicit(self) -> bool:
        return self.type in IMPLICIT_TYPES

    @property
    def is_explicit(self) -> bool:
        return self.type in EXPLICIT_TYPES

    def is_recent(self, threshold_hours: float, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        return now - self.timestamp <= timedelta(hours=threshold_hours)
