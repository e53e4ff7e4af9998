"""Option ledger: Long0/Long1/Short issuance, redemption and swaps per market.

Public API:
- `OptionLedger(env, address)` with `mint`, `burn`, `swap`, `collect`,
  `transfer_position` and the views `option_state`, `total_position`,
  `position_of`, `number_of_options`, `get_by_index`.
"""

from .ledger import DEFAULT_OPTION_ADDRESS, OptionLedger
from .types import (
    OptionBurnMode,
    OptionBurnParam,
    OptionBurnResult,
    OptionCallbackContext,
    OptionCollectMode,
    OptionCollectParam,
    OptionCollectResult,
    OptionMintMode,
    OptionMintParam,
    OptionMintResult,
    OptionState,
    OptionSwapMode,
    OptionSwapParam,
    OptionSwapResult,
)

__all__ = [
    "DEFAULT_OPTION_ADDRESS",
    "OptionLedger",
    "OptionBurnMode",
    "OptionBurnParam",
    "OptionBurnResult",
    "OptionCallbackContext",
    "OptionCollectMode",
    "OptionCollectParam",
    "OptionCollectResult",
    "OptionMintMode",
    "OptionMintParam",
    "OptionMintResult",
    "OptionState",
    "OptionSwapMode",
    "OptionSwapParam",
    "OptionSwapResult",
]
