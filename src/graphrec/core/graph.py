"""
Weighted bipartite user-item interaction graph
Adjacency sets per node, BFS/DFS neighbour discovery and popularity ranking
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

from graphrec.core.similarity import jaccard
from graphrec.models.ids import NodeKey, NodeKind, ProductId, UserId


@dataclass
class Node:
    """User or product vertex; neighbours are ids of the opposite kind"""
    key: NodeKey
    neighbors: Set[int] = field(default_factory=set)
    weight: float = 1.0

    @property
    def id(self) -> int:
        return self.key.id

    @property
    def kind(self) -> NodeKind:
        return self.key.kind

    @property
    def degree(self) -> int:
        return len(self.neighbors)


class UserItemGraph:
    """
    Bipartite graph of users and products

    Edge weights are stored once, keyed by (user_id, product_id), so both
    adjacency views always read the same value. Re-adding an edge overwrites
    its weight rather than accumulating it.
    """

    def __init__(self):
        self._nodes: Dict[NodeKey, Node] = {}
        self._weights: Dict[Tuple[int, int], float] = {}
        self._user_ids: Set[UserId] = set()
        self._product_ids: Set[ProductId] = set()
        self.edge_count = 0

    # Construction

    def add_user(self, user_id: UserId):
        key = NodeKey.user(user_id)
        if key not in self._nodes:
            self._nodes[key] = Node(key)
            self._user_ids.add(user_id)

    def add_product(self, product_id: ProductId):
        key = NodeKey.product(product_id)
        if key not in self._nodes:
            self._nodes[key] = Node(key)
            self._product_ids.add(product_id)

    def add_interaction(self, user_id: UserId, product_id: ProductId, weight: float):
        self.add_user(user_id)
        self.add_product(product_id)

        user_node = self._nodes[NodeKey.user(user_id)]
        product_node = self._nodes[NodeKey.product(product_id)]

        if product_id not in user_node.neighbors:
            user_node.neighbors.add(product_id)
            product_node.neighbors.add(user_id)
            self.edge_count += 1

        self._weights[(user_id, product_id)] = weight

    def update_interaction_weight(self, user_id: UserId, product_id: ProductId, weight: float):
        """Change the weight of an existing edge; unknown edges are ignored"""
        if self.has_edge(user_id, product_id):
            self._weights[(user_id, product_id)] = weight

    # Queries

    def has_user(self, user_id: UserId) -> bool:
        return user_id in self._user_ids

    def has_product(self, product_id: ProductId) -> bool:
        return product_id in self._product_ids

    def has_edge(self, user_id: UserId, product_id: ProductId) -> bool:
        node = self._nodes.get(NodeKey.user(user_id))
        return node is not None and product_id in node.neighbors

    def weight(self, user_id: UserId, product_id: ProductId) -> float:
        return self._weights.get((user_id, product_id), 0.0)

    def neighbors(self, kind: NodeKind, node_id: int) -> Set[int]:
        node = self._nodes.get(NodeKey(kind, node_id))
        return set(node.neighbors) if node is not None else set()

    def user_products(self, user_id: UserId) -> Set[ProductId]:
        return self.neighbors(NodeKind.USER, user_id)

    def product_users(self, product_id: ProductId) -> Set[UserId]:
        return self.neighbors(NodeKind.PRODUCT, product_id)

    def degree(self, kind: NodeKind, node_id: int) -> int:
        node = self._nodes.get(NodeKey(kind, node_id))
        return node.degree if node is not None else 0

    def user_degree(self, user_id: UserId) -> int:
        return self.degree(NodeKind.USER, user_id)

    def product_degree(self, product_id: ProductId) -> int:
        return self.degree(NodeKind.PRODUCT, product_id)

    def node(self, key: NodeKey):
        return self._nodes.get(key)

    def users(self) -> Set[UserId]:
        return set(self._user_ids)

    def products(self) -> Set[ProductId]:
        return set(self._product_ids)

    @property
    def user_count(self) -> int:
        return len(self._user_ids)

    @property
    def product_count(self) -> int:
        return len(self._product_ids)

    # Traversal

    def find_similar_users(self, user_id: UserId, max_depth: int = 2) -> List[UserId]:
        """
        Breadth-first search alternating user -> product -> user hops

        Args:
            user_id: Start user
            max_depth: Maximum number of user-to-user hops

        Returns:
            Co-interacting users in discovery order, self excluded
        """
        if not self.has_user(user_id):
            return []

        similar_users = []
        depth = {user_id: 0}
        queue = deque([user_id])

        while queue:
            current = queue.popleft()
            current_depth = depth[current]
            if current_depth >= max_depth:
                continue

            for product_id in sorted(self.user_products(current)):
                for other in sorted(self.product_users(product_id)):
                    if other in depth:
                        continue
                    depth[other] = current_depth + 1
                    queue.append(other)
                    similar_users.append(other)

        return similar_users

    def explore_neighborhood(self, user_id: UserId) -> Set[UserId]:
        """Depth-first reachable set of users through shared products, self excluded"""
        if not self.has_user(user_id):
            return set()

        visited = {user_id}
        stack = [user_id]
        while stack:
            current = stack.pop()
            for product_id in self.user_products(current):
                for other in self.product_users(product_id):
                    if other not in visited:
                        visited.add(other)
                        stack.append(other)

        visited.discard(user_id)
        return visited

    def graph_similarity(self, user_a: UserId, user_b: UserId) -> float:
        """Jaccard similarity of the two users' product sets"""
        if not self.has_user(user_a) or not self.has_user(user_b):
            return 0.0
        return jaccard(self.user_products(user_a), self.user_products(user_b))

    # Analysis

    def _top_by_degree(self, kind: NodeKind, ids: Iterable[int], k: int) -> List[int]:
        if k <= 0:
            return []
        ranked = sorted(ids, key=lambda node_id: (-self.degree(kind, node_id), node_id))
        return ranked[:k]

    def most_popular(self, k: int) -> List[ProductId]:
        """Top-k products by degree, ties broken by ascending id"""
        return self._top_by_degree(NodeKind.PRODUCT, self._product_ids, k)

    def most_active_users(self, k: int) -> List[UserId]:
        return self._top_by_degree(NodeKind.USER, self._user_ids, k)

    def density(self) -> float:
        max_edges = len(self._user_ids) * len(self._product_ids)
        return self.edge_count / max_edges if max_edges > 0 else 0.0

    def __repr__(self) -> str:
        return (f"UserItemGraph(users={self.user_count}, products={self.product_count}, "
                f"edges={self.edge_count}, density={self.density():.4f})")
