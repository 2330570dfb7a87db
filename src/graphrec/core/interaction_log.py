"""
Append-only interaction log with per-user and per-product indexes
"""

from collections import defaultdict
from typing import Dict, Iterator, List, Tuple

from graphrec.models.entities import Interaction


class InteractionLog:
    """Ordered record of every ingested interaction"""

    def __init__(self):
        self._entries: List[Interaction] = []
        self._by_user: Dict[int, List[Interaction]] = defaultdict(list)
        self._by_product: Dict[int, List[Interaction]] = defaultdict(list)

    def append(self, interaction: Interaction):
        self._entries.append(interaction)
        self._by_user[interaction.user_id].append(interaction)
        self._by_product[interaction.product_id].append(interaction)

    def for_user(self, user_id: int) -> Tuple[Interaction, ...]:
        return tuple(self._by_user.get(user_id, ()))

    def for_product(self, product_id: int) -> Tuple[Interaction, ...]:
        return tuple(self._by_product.get(product_id, ()))

    def snapshot(self) -> Tuple[Interaction, ...]:
        return tuple(self._entries)

    def user_ids(self):
        return set(self._by_user)

    def product_ids(self):
        return set(self._by_product)

    def __iter__(self) -> Iterator[Interaction]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._entries)
