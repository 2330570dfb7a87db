"""
Core data structures: interaction graph, similarity engine, top-k selector
"""

from .graph import UserItemGraph, Node
from .top_k import TopKSelector
from .cache import AdvisoryCache, PairCache
from .locks import ReadWriteLock
from .interaction_log import InteractionLog

__all__ = [
    'UserItemGraph',
    'Node',
    'TopKSelector',
    'AdvisoryCache',
    'PairCache',
    'ReadWriteLock',
    'InteractionLog',
]
