"""Pool engine: square-root-interest-rate liquidity markets over option positions.

Public API:
- `PoolEngine(env, ledger, address, protocol_owner, default_fees)` with
  `initialize`, `mint`, `burn`, `leverage`, `deleverage`, `rebalance`,
  `add_fees`, `collect_transaction_fees`, `collect_protocol_fees`,
  `transfer_liquidity` and the views `sqrt_interest_rate`, `total_liquidity`,
  `liquidity_of`, `fee_growth`, `short_returned_growth`, `fees_earned_of`,
  `protocol_fees_earned`, `total_long_balance`, `total_positions`, `pool_state`.
"""

from .engine import DEFAULT_POOL_ADDRESS, DEFAULT_PROTOCOL_OWNER, PoolEngine
from .types import (
    FeesEarned,
    LiquidityPosition,
    PoolAddFeesParam,
    PoolBurnMode,
    PoolBurnParam,
    PoolBurnResult,
    PoolCallbackContext,
    PoolCollectParam,
    PoolCollectResult,
    PoolDeleverageMode,
    PoolDeleverageParam,
    PoolDeleverageResult,
    PoolLeverageMode,
    PoolLeverageParam,
    PoolLeverageResult,
    PoolMintMode,
    PoolMintParam,
    PoolMintResult,
    PoolRebalanceMode,
    PoolRebalanceParam,
    PoolRebalanceResult,
    PoolState,
)

__all__ = [
    "DEFAULT_POOL_ADDRESS",
    "DEFAULT_PROTOCOL_OWNER",
    "PoolEngine",
    "FeesEarned",
    "LiquidityPosition",
    "PoolAddFeesParam",
    "PoolBurnMode",
    "PoolBurnParam",
    "PoolBurnResult",
    "PoolCallbackContext",
    "PoolCollectParam",
    "PoolCollectResult",
    "PoolDeleverageMode",
    "PoolDeleverageParam",
    "PoolDeleverageResult",
    "PoolLeverageMode",
    "PoolLeverageParam",
    "PoolLeverageResult",
    "PoolMintMode",
    "PoolMintParam",
    "PoolMintResult",
    "PoolRebalanceMode",
    "PoolRebalanceParam",
    "PoolRebalanceResult",
    "PoolState",
]
