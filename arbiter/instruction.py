"""Instructions sent to an environment and the outcomes it answers with."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .cheatcodes import Deal, DealReturn, Load, LoadReturn, Store, StoreReturn

__all__ = [
    "Log",
    "ReceiptData",
    "DataKind",
    "EnvironmentData",
    "ExecutionResult",
    "AddAccount",
    "BlockUpdate",
    "Call",
    "Cheatcode",
    "Query",
    "SetGasPrice",
    "Stop",
    "Transaction",
    "AddAccountCompleted",
    "BlockUpdateCompleted",
    "CheatcodeReturn",
    "CallCompleted",
    "SetGasPriceCompleted",
    "TransactionCompleted",
    "QueryReturn",
    "StopCompleted",
    "Instruction",
    "Outcome",
]

ADDRESS_SIZE = 20
TOPIC_SIZE = 32


def _check_uint(name: str, value: object, bits: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in an unsigned {bits}-bit integer, got {value}")


def _check_bytes(name: str, value: object, size: Optional[int] = None) -> bytes:
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    if not isinstance(value, bytes):
        raise TypeError(f"{name} must be bytes, got {type(value).__name__}")
    if size is not None and len(value) != size:
        raise ValueError(f"{name} must be {size} bytes long, got {len(value)}")
    return value


@dataclass(frozen=True)
class Log:
    """An event emitted by a contract during a transaction."""

    address: bytes
    topics: tuple[bytes, ...] = ()
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", _check_bytes("address", self.address, ADDRESS_SIZE))
        topics = tuple(_check_bytes("topic", topic, TOPIC_SIZE) for topic in self.topics)
        object.__setattr__(self, "topics", topics)
        object.__setattr__(self, "data", _check_bytes("data", self.data))


@dataclass(frozen=True)
class ReceiptData:
    """Where a transaction landed: its block, its index and the gas used so far."""

    block_number: int
    transaction_index: int
    cumulative_gas_per_block: int

    def __post_init__(self) -> None:
        _check_uint("block_number", self.block_number, 64)
        _check_uint("transaction_index", self.transaction_index, 64)
        _check_uint("cumulative_gas_per_block", self.cumulative_gas_per_block, 256)


class DataKind(Enum):
    """What a query asks the environment for."""

    BLOCK_NUMBER = "block_number"
    BLOCK_TIMESTAMP = "block_timestamp"
    GAS_PRICE = "gas_price"
    BALANCE = "balance"
    TRANSACTION_COUNT = "transaction_count"


_NEEDS_ADDRESS = frozenset({DataKind.BALANCE, DataKind.TRANSACTION_COUNT})


@dataclass(frozen=True)
class EnvironmentData:
    """A query target; balance and transaction count name an account."""

    kind: DataKind
    address: Optional[bytes] = None

    def __post_init__(self) -> None:
        kind = DataKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind in _NEEDS_ADDRESS:
            if self.address is None:
                raise ValueError(f"a {kind.value} query needs an address")
            object.__setattr__(
                self, "address", _check_bytes("address", self.address, ADDRESS_SIZE)
            )
        elif self.address is not None:
            raise ValueError(f"a {kind.value} query takes no address")

    @classmethod
    def block_number(cls) -> EnvironmentData:
        return cls(DataKind.BLOCK_NUMBER)

    @classmethod
    def block_timestamp(cls) -> EnvironmentData:
        return cls(DataKind.BLOCK_TIMESTAMP)

    @classmethod
    def gas_price(cls) -> EnvironmentData:
        return cls(DataKind.GAS_PRICE)

    @classmethod
    def balance(cls, address: bytes) -> EnvironmentData:
        return cls(DataKind.BALANCE, address)

    @classmethod
    def transaction_count(cls, address: bytes) -> EnvironmentData:
        return cls(DataKind.TRANSACTION_COUNT, address)


@dataclass(frozen=True)
class ExecutionResult:
    """The result of executing a call or transaction.

    A failed execution (revert or halt) emits no logs and may carry a reason.
    """

    gas_used: int
    logs: tuple[Log, ...] = ()
    output: bytes = b""
    success: bool = True
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        _check_uint("gas_used", self.gas_used, 64)
        logs = tuple(self.logs)
        for log in logs:
            if not isinstance(log, Log):
                raise TypeError(f"logs must hold Log values, got {type(log).__name__}")
        object.__setattr__(self, "logs", logs)
        object.__setattr__(self, "output", _check_bytes("output", self.output))
        if not self.success and logs:
            raise ValueError("a failed execution cannot emit logs")
        if self.success and self.reason is not None:
            raise ValueError("a successful execution carries no failure reason")


@dataclass(frozen=True)
class AddAccount:
    """Add a default, unfunded account."""

    address: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", _check_bytes("address", self.address, ADDRESS_SIZE))


@dataclass(frozen=True)
class BlockUpdate:
    """Move the block number and timestamp to the given values."""

    block_number: int
    block_timestamp: int

    def __post_init__(self) -> None:
        _check_uint("block_number", self.block_number, 256)
        _check_uint("block_timestamp", self.block_timestamp, 256)


@dataclass(frozen=True)
class Call:
    """Execute without changing state or emitting events."""

    tx_env: Any


@dataclass(frozen=True)
class Cheatcode:
    """Apply a cheatcode directly to the environment's state."""

    cheatcode: Union[Deal, Load, Store]

    def __post_init__(self) -> None:
        if not isinstance(self.cheatcode, (Deal, Load, Store)):
            raise TypeError(f"not a cheatcode: {type(self.cheatcode).__name__}")


@dataclass(frozen=True)
class Query:
    """Ask the environment for a piece of data."""

    environment_data: EnvironmentData

    def __post_init__(self) -> None:
        if not isinstance(self.environment_data, EnvironmentData):
            raise TypeError("environment_data must be an EnvironmentData")


@dataclass(frozen=True)
class SetGasPrice:
    """Set the gas price paid by transactions."""

    gas_price: int

    def __post_init__(self) -> None:
        _check_uint("gas_price", self.gas_price, 256)


@dataclass(frozen=True)
class Stop:
    """Stop the environment."""


@dataclass(frozen=True)
class Transaction:
    """Execute, changing state and emitting events."""

    tx_env: Any


@dataclass(frozen=True)
class AddAccountCompleted:
    """An account was added."""


@dataclass(frozen=True)
class BlockUpdateCompleted:
    """The block was updated."""

    receipt_data: ReceiptData


@dataclass(frozen=True)
class CheatcodeReturn:
    """The value a cheatcode returned."""

    value: Union[LoadReturn, StoreReturn, DealReturn]

    def __post_init__(self) -> None:
        if not isinstance(self.value, (LoadReturn, StoreReturn, DealReturn)):
            raise TypeError(f"not a cheatcode return: {type(self.value).__name__}")


@dataclass(frozen=True)
class CallCompleted:
    """The result of a call."""

    result: ExecutionResult


@dataclass(frozen=True)
class SetGasPriceCompleted:
    """The gas price was set."""


@dataclass(frozen=True)
class TransactionCompleted:
    """The result of a transaction and where it landed."""

    result: ExecutionResult
    receipt_data: ReceiptData = field()


@dataclass(frozen=True)
class QueryReturn:
    """The answer to a query, as a decimal string."""

    value: str


@dataclass(frozen=True)
class StopCompleted:
    """The environment stopped."""


Instruction = Union[AddAccount, BlockUpdate, Call, Cheatcode, Query, SetGasPrice, Stop, Transaction]
Outcome = Union[
    AddAccountCompleted,
    BlockUpdateCompleted,
    CheatcodeReturn,
    CallCompleted,
    SetGasPriceCompleted,
    TransactionCompleted,
    QueryReturn,
    StopCompleted,
]