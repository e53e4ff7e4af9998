"""
Engine configuration and system wiring.

`EngineConfig` is read from a YAML mapping such as:

    transaction_fee_bps: 30
    protocol_fee_bps: 1000
    protocol_owner: treasury
    option_address: optionpool:option
    pool_address: optionpool:pool

Unknown keys are rejected so a typo cannot silently fall back to a default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..core.fees import FeeParams
from ..core.option.ledger import DEFAULT_OPTION_ADDRESS, OptionLedger
from ..core.pool.engine import DEFAULT_POOL_ADDRESS, DEFAULT_PROTOCOL_OWNER, PoolEngine
from ..state.journal import Environment
from .quoter import Quoter


@dataclass(frozen=True)
class EngineConfig:
    # Fee rates frozen into each pool at initialization (unless overridden per pool).
    transaction_fee_bps: int = 0
    protocol_fee_bps: int = 0

    # Only this caller may collect protocol fees.
    protocol_owner: str = DEFAULT_PROTOCOL_OWNER

    # Holders of the ledger's token collateral and the pool's positions.
    option_address: str = DEFAULT_OPTION_ADDRESS
    pool_address: str = DEFAULT_POOL_ADDRESS

    def __post_init__(self) -> None:
        # FeeParams owns the bps domain checks.
        self.fee_params()
        for name in ("protocol_owner", "option_address", "pool_address"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v:
                raise ValueError(f"{name} must be a non-empty string")
        if self.option_address == self.pool_address:
            raise ValueError("option_address and pool_address must differ")

    def fee_params(self) -> FeeParams:
        return FeeParams(
            transaction_fee_bps=self.transaction_fee_bps,
            protocol_fee_bps=self.protocol_fee_bps,
        )


def engine_config_from_mapping(obj: Mapping[str, Any]) -> EngineConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("engine config must be a mapping")
    allowed = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(obj) - allowed)
    if unknown:
        raise ValueError(f"unknown engine config keys: {', '.join(map(str, unknown))}")
    return EngineConfig(**dict(obj))


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return EngineConfig()
    return engine_config_from_mapping(obj)


@dataclass(frozen=True)
class System:
    env: Environment
    ledger: OptionLedger
    pool: PoolEngine
    quoter: Quoter


def build_system(config: EngineConfig = EngineConfig(), now: int = 0) -> System:
    """Fresh environment with a ledger, a pool engine and a quoter bound to it."""
    env = Environment(now)
    ledger = OptionLedger(env, config.option_address)
    pool = PoolEngine(
        env,
        ledger,
        address=config.pool_address,
        protocol_owner=config.protocol_owner,
        default_fees=config.fee_params(),
    )
    return System(env=env, ledger=ledger, pool=pool, quoter=Quoter(ledger, pool))
