"""
Graph traversal analytics over the user-item graph
Shortest paths, k-hop neighbourhoods, components, clustering and random walks
"""

import random
from collections import defaultdict, deque
from itertools import combinations
from typing import Dict, List, Optional, Set

from graphrec.core.graph import UserItemGraph
from graphrec.models.ids import NodeKey, NodeKind, ProductId, UserId


def _adjacent(graph: UserItemGraph, key: NodeKey) -> List[NodeKey]:
    if key.kind == NodeKind.USER:
        return [NodeKey.product(pid) for pid in sorted(graph.user_products(key.id))]
    return [NodeKey.user(uid) for uid in sorted(graph.product_users(key.id))]


def find_shortest_path(graph: UserItemGraph, user_id: UserId, product_id: ProductId) -> List[NodeKey]:
    """
    Breadth-first shortest path from a user to a product

    Returns:
        Node keys from the user to the product inclusive, empty if unreachable
    """
    start = NodeKey.user(user_id)
    target = NodeKey.product(product_id)
    if graph.node(start) is None or graph.node(target) is None:
        return []

    parent: Dict[NodeKey, Optional[NodeKey]] = {start: None}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current == target:
            path = []
            node = current
            while node is not None:
                path.append(node)
                node = parent[node]
            path.reverse()
            return path

        for neighbor in _adjacent(graph, current):
            if neighbor not in parent:
                parent[neighbor] = current
                queue.append(neighbor)

    return []


def find_k_hop_neighbors(graph: UserItemGraph, user_id: UserId, k: int) -> Set[NodeKey]:
    """Users and products within k hops of the user, the user excluded"""
    start = NodeKey.user(user_id)
    if k <= 0 or graph.node(start) is None:
        return set()

    distance = {start: 0}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if distance[current] >= k:
            continue
        for neighbor in _adjacent(graph, current):
            if neighbor not in distance:
                distance[neighbor] = distance[current] + 1
                queue.append(neighbor)

    del distance[start]
    return set(distance)


def find_connected_components(graph: UserItemGraph) -> List[Set[int]]:
    """Groups of users connected through shared products"""
    components = []
    visited: Set[int] = set()

    for user_id in sorted(graph.users()):
        if user_id in visited:
            continue
        component = graph.explore_neighborhood(user_id)
        component.add(user_id)
        visited |= component
        components.append(component)

    return components


def clustering_coefficient(graph: UserItemGraph, user_id: UserId) -> float:
    """Fraction of co-interacting neighbour pairs that share a product themselves"""
    user_products = graph.user_products(user_id)
    if len(user_products) < 2:
        return 0.0

    neighbors: Set[int] = set()
    for product_id in user_products:
        neighbors |= graph.product_users(product_id)
    neighbors.discard(user_id)

    if len(neighbors) < 2:
        return 0.0

    products = {neighbor: graph.user_products(neighbor) for neighbor in neighbors}
    triangles = sum(
        1 for user_a, user_b in combinations(sorted(neighbors), 2)
        if products[user_a] & products[user_b]
    )
    possible = len(neighbors) * (len(neighbors) - 1) // 2
    return triangles / possible


def find_influential_users(graph: UserItemGraph, k: int) -> List[int]:
    """Users ranked by degree * (1 + clustering coefficient)"""
    centrality = {
        user_id: graph.user_degree(user_id) * (1 + clustering_coefficient(graph, user_id))
        for user_id in graph.users()
    }
    ranked = sorted(centrality, key=lambda user_id: (-centrality[user_id], user_id))
    return ranked[:max(k, 0)]


def random_walk(graph: UserItemGraph, user_id: UserId, walk_length: int,
                num_walks: int, seed: Optional[int] = None) -> Dict[int, float]:
    """
    Alternating user -> product -> user random walks

    Returns:
        product_id -> visit frequency, normalised to sum to 1
    """
    rng = random.Random(seed)
    visits = defaultdict(float)

    for _ in range(num_walks):
        current_user = user_id
        for _ in range(walk_length):
            user_products = sorted(graph.user_products(current_user))
            if not user_products:
                break
            product_id = rng.choice(user_products)
            visits[product_id] += 1.0

            product_users = sorted(graph.product_users(product_id))
            if not product_users:
                break
            current_user = rng.choice(product_users)

    total = sum(visits.values())
    if total > 0:
        return {product_id: count / total for product_id, count in visits.items()}
    return {}
