"""
Pydantic input models validated at the ingestion boundary
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from graphrec.models.entities import Interaction, InteractionType, Product, User


class UserInput(BaseModel):
    id: int = Field(gt=0)
    username: str = ""
    email: str = ""

    def to_entity(self) -> User:
        return User(user_id=self.id, username=self.username, email=self.email)


class ProductInput(BaseModel):
    id: int = Field(gt=0)
    name: str = ""
    category: str = ""
    brand: str = ""
    price: float = Field(default=0.0, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    review_count: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)
    attributes: Dict[str, str] = Field(default_factory=dict)
    in_stock: bool = True

    def to_entity(self) -> Product:
        return Product(
            product_id=self.id,
            name=self.name,
            category=self.category,
            brand=self.brand,
            price=self.price,
            rating=self.rating or 0.0,
            review_count=self.review_count or 0,
            tags=set(self.tags),
            attributes=dict(self.attributes),
            in_stock=self.in_stock,
        )


class InteractionInput(BaseModel):
    user_id: int = Field(gt=0)
    product_id: int = Field(gt=0)
    type: InteractionType
    value: Optional[float] = None
    timestamp: Optional[datetime] = None
    context: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def to_entity(self) -> Interaction:
        return Interaction(
            user_id=self.user_id,
            product_id=self.product_id,
            type=self.type,
            value=self.value if self.value is not None else 0.0,
            timestamp=self.timestamp or datetime.now(),
            context=self.context,
        )
