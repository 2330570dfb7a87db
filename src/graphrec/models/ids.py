"""
Typed identifiers for the two id spaces of the bipartite graph

User ids and product ids are both plain integers and overlap, so the graph
keys every node by (kind, id).
"""
from enum import Enum
from typing import NamedTuple, NewType

UserId = NewType("UserId", int)
ProductId = NewType("ProductId", int)


class NodeKind(Enum):
    USER = "user"
    PRODUCT = "product"


class NodeKey(NamedTuple):
    """Composite arena key for a graph node"""
    kind: NodeKind
    id: int

    @classmethod
    def user(cls, user_id: UserId) -> "NodeKey":
        return cls(NodeKind.USER, user_id)

    @classmethod
    def product(cls, product_id: ProductId) -> "NodeKey":
        return cls(NodeKind.PRODUCT, product_id)
