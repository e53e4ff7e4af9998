"""
optionpool: option ledger and interest-rate pool engine over two-token markets.

Markets are keyed by (token0, token1, strike, maturity). The option ledger
issues Long0/Long1/Short claims against token collateral; the pool engine
trades those claims along a square-root-interest-rate curve. Every mutating
call is all-or-nothing and settles through caller-supplied callbacks.
"""

from .core.errors import OptionPoolError
from .core.fees import FeeParams
from .core.option import OptionLedger
from .core.pool import PoolEngine
from .integration import EngineConfig, Quoter, System, build_system, load_engine_config
from .state import Environment, MarketKey, PositionType

__all__ = [
    "OptionPoolError",
    "FeeParams",
    "OptionLedger",
    "PoolEngine",
    "EngineConfig",
    "Quoter",
    "System",
    "build_system",
    "load_engine_config",
    "Environment",
    "MarketKey",
    "PositionType",
]
