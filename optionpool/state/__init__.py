"""
State tables shared by the option ledger and the pool engine
"""

from .balances import TokenTable
from .journal import Environment, EnvironmentSnapshot, transactional
from .keys import MarketKey, PositionType, sort_tokens
from .positions import PositionTable

__all__ = [
    "TokenTable",
    "Environment",
    "EnvironmentSnapshot",
    "transactional",
    "MarketKey",
    "PositionType",
    "sort_tokens",
    "PositionTable",
]
