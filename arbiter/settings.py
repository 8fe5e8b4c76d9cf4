"""How an environment moves its blocks forward and prices gas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = [
    "UserControlledBlocks",
    "RandomlySampledBlocks",
    "UserControlledGas",
    "RandomlySampledGas",
    "ConstantGas",
    "BlockSettings",
    "GasSettings",
    "EnvironmentParameters",
]


def _check_uint(name: str, value: object, bits: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in an unsigned {bits}-bit integer, got {value}")


def _as_float(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    return float(value)


@dataclass(frozen=True)
class UserControlledBlocks:
    """Block number and timestamp are moved forward by the user."""


@dataclass(frozen=True)
class RandomlySampledBlocks:
    """Transactions per block are drawn from a seeded Poisson distribution.

    ``block_rate`` is the mean number of transactions per block,
    ``block_time`` the timestamp increase per block, and ``seed`` makes the
    sequence of block sizes repeatable.
    """

    block_rate: float
    block_time: int
    seed: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "block_rate", _as_float("block_rate", self.block_rate))
        _check_uint("block_time", self.block_time, 32)
        _check_uint("seed", self.seed, 64)


@dataclass(frozen=True)
class UserControlledGas:
    """The gas price is set by the user and starts at zero."""


@dataclass(frozen=True)
class RandomlySampledGas:
    """The gas price is the block's transaction count times ``multiplier``.

    This requires randomly sampled blocks.
    """

    multiplier: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "multiplier", _as_float("multiplier", self.multiplier))


@dataclass(frozen=True)
class ConstantGas:
    """Every transaction pays the same ``gas_price``."""

    gas_price: int

    def __post_init__(self) -> None:
        _check_uint("gas_price", self.gas_price, 128)


BlockSettings = Union[UserControlledBlocks, RandomlySampledBlocks]
GasSettings = Union[UserControlledGas, RandomlySampledGas, ConstantGas]


@dataclass
class EnvironmentParameters:
    """Everything needed to create an environment, apart from its state."""

    label: Optional[str] = None
    block_settings: BlockSettings = UserControlledBlocks()
    gas_settings: GasSettings = UserControlledGas()