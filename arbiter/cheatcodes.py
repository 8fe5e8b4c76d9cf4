"""Cheatcodes give direct access to the environment's state, and their results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = [
    "Deal",
    "Load",
    "Store",
    "LoadReturn",
    "StoreReturn",
    "DealReturn",
    "Cheatcodes",
    "CheatcodesReturn",
]

ADDRESS_SIZE = 20
WORD_SIZE = 32
_U256_LIMIT = 1 << 256


def _check_bytes(name: str, value: object, size: int) -> bytes:
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    if not isinstance(value, bytes):
        raise TypeError(f"{name} must be bytes, got {type(value).__name__}")
    if len(value) != size:
        raise ValueError(f"{name} must be {size} bytes long, got {len(value)}")
    return value


def _check_u256(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value < _U256_LIMIT:
        raise ValueError(f"{name} must fit in an unsigned 256-bit integer, got {value}")
    return value


@dataclass(frozen=True)
class Deal:
    """Increase the balance of ``address`` by ``amount``."""

    address: bytes
    amount: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", _check_bytes("address", self.address, ADDRESS_SIZE))
        _check_u256("amount", self.amount)


@dataclass(frozen=True)
class Load:
    """Fetch the storage slot ``key`` of ``account``.

    ``block`` is accepted but not yet used: storage is always read at the
    current state.
    """

    account: bytes
    key: bytes
    block: Optional[Union[int, str]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "account", _check_bytes("account", self.account, ADDRESS_SIZE))
        object.__setattr__(self, "key", _check_bytes("key", self.key, WORD_SIZE))


@dataclass(frozen=True)
class Store:
    """Overwrite the storage slot ``key`` of ``account`` with ``value``."""

    account: bytes
    key: bytes
    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "account", _check_bytes("account", self.account, ADDRESS_SIZE))
        object.__setattr__(self, "key", _check_bytes("key", self.key, WORD_SIZE))
        object.__setattr__(self, "value", _check_bytes("value", self.value, WORD_SIZE))


@dataclass(frozen=True)
class LoadReturn:
    """The value found in a storage slot."""

    value: int

    def __post_init__(self) -> None:
        _check_u256("value", self.value)


@dataclass(frozen=True)
class StoreReturn:
    """A store completed; it carries nothing."""


@dataclass(frozen=True)
class DealReturn:
    """A deal completed; it carries nothing."""


Cheatcodes = Union[Deal, Load, Store]
CheatcodesReturn = Union[LoadReturn, StoreReturn, DealReturn]