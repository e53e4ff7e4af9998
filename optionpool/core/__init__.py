"""
Core option/pool algorithms: exact integer math, strike conversion, the
bonding curve, fees and callback settlement.

The option ledger and the pool engine live in the `option` and `pool`
subpackages.
"""

from .errors import OptionPoolError
from .fees import FeeParams
from .fullmath import add512, div, div512, div512_to_256, mul512, mul_div, sqrt, sqrt512, sub512
from .settlement import ChoiceContext, Phase, SettlementRequest, long0_first, long1_first
from .strike import STRIKE_ONE, combine, convert, dif, is_token0_base, turn

__all__ = [
    "OptionPoolError",
    "FeeParams",
    "add512",
    "div",
    "div512",
    "div512_to_256",
    "mul512",
    "mul_div",
    "sqrt",
    "sqrt512",
    "sub512",
    "ChoiceContext",
    "Phase",
    "SettlementRequest",
    "long0_first",
    "long1_first",
    "STRIKE_ONE",
    "combine",
    "convert",
    "dif",
    "is_token0_base",
    "turn",
]
