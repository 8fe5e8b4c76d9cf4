"""A sandboxed execution environment that serves instructions on its own thread."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from .broadcast import EventBroadcaster, EventSender, convert_uint_to_u64
from .cheatcodes import Deal, DealReturn, Load, LoadReturn, Store, StoreReturn
from .database import Database, DbAccount
from .errors import (
    AccountError,
    BroadcastError,
    CommunicationError,
    ConversionError,
    ExecutionError,
    NotRandomlySampledBlockSettings,
    NotUserControlledBlockSettings,
    NotUserControlledGasSettings,
    SimulationError,
    StopError,
    TransactionError,
)
from .fork import Fork
from .instruction import (
    AddAccount,
    AddAccountCompleted,
    BlockUpdate,
    BlockUpdateCompleted,
    Call,
    CallCompleted,
    Cheatcode,
    CheatcodeReturn,
    DataKind,
    EnvironmentData,
    ExecutionResult,
    Query,
    QueryReturn,
    ReceiptData,
    SetGasPrice,
    SetGasPriceCompleted,
    Stop,
    StopCompleted,
    Transaction,
    TransactionCompleted,
)
from .math import SeededPoisson
from .settings import (
    BlockSettings,
    ConstantGas,
    EnvironmentParameters,
    GasSettings,
    RandomlySampledBlocks,
    RandomlySampledGas,
    UserControlledBlocks,
    UserControlledGas,
)

__all__ = ["Executor", "Environment", "EnvironmentBuilder"]

_log = logging.getLogger(__name__)

_U256_MASK = (1 << 256) - 1
_U128_MAX = (1 << 128) - 1
_INITIAL_TIMESTAMP = 1
_REPLY_POLL_SECONDS = 0.05
_INSTRUCTIONS = (AddAccount, BlockUpdate, Call, Cheatcode, Query, SetGasPrice, Stop, Transaction)


class Executor(Protocol):
    """Runs a transaction environment against the database.

    ``commit`` is true for transactions, which may change state and emit
    logs, and false for calls, which must not. An invalid transaction is
    reported by raising TransactionError; any other exception is treated as
    a failure of the executor itself.
    """

    def execute(
        self,
        db: Database,
        tx_env: Any,
        *,
        block_number: int,
        block_timestamp: int,
        gas_price: int,
        commit: bool,
    ) -> ExecutionResult: ...


def _saturating_u128(value: float) -> int:
    if value != value or value <= 0.0:
        return 0
    if value >= float(1 << 128):
        return _U128_MAX
    return int(value)


def _as_database(db: Union[Database, Fork, None]) -> Database:
    if db is None:
        return Database()
    if isinstance(db, Fork):
        return db.db
    if isinstance(db, Database):
        return db
    raise TypeError(f"db must be a Database or a Fork, got {type(db).__name__}")


class _Fatal(Exception):
    """An error that ends the instruction loop."""

    def __init__(self, error: SimulationError) -> None:
        super().__init__(str(error))
        self.error = error


@dataclass
class _BlockState:
    number: int = 0
    timestamp: int = _INITIAL_TIMESTAMP
    gas_price: int = 0


class _Worker:
    """The state of a running environment and the handling of each instruction."""

    def __init__(
        self,
        parameters: EnvironmentParameters,
        db: Database,
        executor: Optional[Executor],
        broadcaster: EventBroadcaster,
    ) -> None:
        self.db = db
        self.executor = executor
        self.broadcaster = broadcaster
        self.block_settings: BlockSettings = parameters.block_settings
        self.gas_settings: GasSettings = parameters.gas_settings

        blocks = self.block_settings
        self.poisson: Optional[SeededPoisson] = (
            SeededPoisson(blocks.block_rate, blocks.block_time, blocks.seed)
            if isinstance(blocks, RandomlySampledBlocks)
            else None
        )
        if isinstance(self.gas_settings, RandomlySampledGas) and self.poisson is None:
            raise NotRandomlySampledBlockSettings()

        self.transactions_per_block: Optional[int] = (
            self.poisson.sample() if self.poisson is not None else None
        )
        self.state = _BlockState()
        gas = self.gas_settings
        if isinstance(gas, RandomlySampledGas):
            self.state.gas_price = self._sampled_gas_price()
        elif isinstance(gas, ConstantGas):
            self.state.gas_price = gas.gas_price
        self.transaction_index = 0
        self.cumulative_gas = 0

    def _sampled_gas_price(self) -> int:
        if self.transactions_per_block is None:
            raise NotRandomlySampledBlockSettings()
        return _saturating_u128(self.transactions_per_block * self.gas_settings.multiplier)

    def _account(self, address: bytes) -> DbAccount:
        account = self.db.accounts.get(address)
        if account is None:
            raise AccountError("Account is missing!")
        return account

    def handle(self, instruction: Any) -> Any:
        match instruction:
            case AddAccount(address=address):
                if address in self.db.accounts:
                    raise AccountError("Account already exists!")
                self.db.accounts[address] = DbAccount()
                return AddAccountCompleted()
            case BlockUpdate(block_number=number, block_timestamp=timestamp):
                return self._update_block(number, timestamp)
            case Cheatcode(cheatcode=cheatcode):
                return CheatcodeReturn(self._cheat(cheatcode))
            case Call(tx_env=tx_env):
                return CallCompleted(self._execute(tx_env, commit=False))
            case SetGasPrice(gas_price=gas_price):
                if not isinstance(self.gas_settings, UserControlledGas):
                    raise NotUserControlledGasSettings()
                self.state.gas_price = gas_price
                return SetGasPriceCompleted()
            case Transaction(tx_env=tx_env):
                return self._transact(tx_env)
            case Query(environment_data=data):
                return QueryReturn(self._query(data))
        raise TypeError(f"not an instruction: {type(instruction).__name__}")

    def _update_block(self, number: int, timestamp: int) -> BlockUpdateCompleted:
        if not isinstance(self.block_settings, UserControlledBlocks):
            raise NotUserControlledBlockSettings()
        block_number = convert_uint_to_u64(number)
        self.state.number = number
        self.state.timestamp = timestamp
        self.transaction_index = 0
        self.cumulative_gas = 0
        return BlockUpdateCompleted(ReceiptData(block_number, 0, 0))

    def _cheat(self, cheatcode: Any) -> Any:
        match cheatcode:
            case Load(account=account, key=key):
                slot = int.from_bytes(key, "big")
                return LoadReturn(self._account(account).storage.get(slot, 0))
            case Store(account=account, key=key, value=value):
                slot = int.from_bytes(key, "big")
                self._account(account).storage[slot] = int.from_bytes(value, "big")
                return StoreReturn()
            case Deal(address=address, amount=amount):
                info = self._account(address).info
                info.balance = (info.balance + amount) & _U256_MASK
                return DealReturn()
        raise TypeError(f"not a cheatcode: {type(cheatcode).__name__}")

    def _query(self, data: EnvironmentData) -> str:
        kind = data.kind
        if kind is DataKind.BLOCK_NUMBER:
            return str(self.state.number)
        if kind is DataKind.BLOCK_TIMESTAMP:
            return str(self.state.timestamp)
        if kind is DataKind.GAS_PRICE:
            return str(self.state.gas_price)
        info = self._account(data.address).info
        return str(info.balance if kind is DataKind.BALANCE else info.nonce)

    def _execute(self, tx_env: Any, *, commit: bool) -> ExecutionResult:
        gas_price = getattr(tx_env, "gas_price", None)
        if isinstance(gas_price, int) and not isinstance(gas_price, bool):
            self.state.gas_price = gas_price
        if self.executor is None:
            raise ExecutionError("no executor is configured")
        try:
            result = self.executor.execute(
                self.db,
                tx_env,
                block_number=self.state.number,
                block_timestamp=self.state.timestamp,
                gas_price=self.state.gas_price,
                commit=commit,
            )
        except (TransactionError, ExecutionError):
            if commit:
                raise
            raise ExecutionError(
                "the executor rejected the call"
            ) from None
        except Exception as exc:
            raise ExecutionError(exc) from exc
        if not isinstance(result, ExecutionResult):
            raise ExecutionError(f"executor returned {type(result).__name__}")
        return result

    def _transact(self, tx_env: Any) -> TransactionCompleted:
        result = self._execute(tx_env, commit=True)
        try:
            block_number = convert_uint_to_u64(self.state.number)
        except ConversionError as exc:
            raise _Fatal(exc) from exc
        self.cumulative_gas = (self.cumulative_gas + result.gas_used) & _U256_MASK
        receipt = ReceiptData(block_number, self.transaction_index, self.cumulative_gas)
        try:
            self.broadcaster.broadcast(result.logs)
        except BroadcastError as exc:
            raise _Fatal(exc) from exc
        outcome = TransactionCompleted(result, receipt)
        self.transaction_index += 1
        if self.transactions_per_block == self.transaction_index:
            self._next_block()
        return outcome

    def _next_block(self) -> None:
        poisson = self.poisson
        self.transaction_index = 0
        self.state.number += 1
        self.state.timestamp += poisson.time_step
        while (sample := poisson.sample()) == 0:
            self.state.number += 1
        self.transactions_per_block = sample
        if isinstance(self.gas_settings, RandomlySampledGas):
            self.state.gas_price = self._sampled_gas_price()


class Environment:
    """A simulated chain whose state is served by a background thread.

    Instructions go in through :meth:`request`, which blocks until the
    environment answers and raises the error it reports. Logs of every
    transaction are broadcast to the senders registered with
    :meth:`add_sender`.
    """

    def __init__(
        self,
        parameters: EnvironmentParameters,
        db: Union[Database, Fork, None] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        if not isinstance(parameters, EnvironmentParameters):
            raise TypeError("parameters must be EnvironmentParameters")
        self.parameters = parameters
        self.executor = executor
        self._db = _as_database(db)
        self._broadcaster = EventBroadcaster()
        self._instructions: queue.SimpleQueue = queue.SimpleQueue()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[SimulationError] = None
        self._stopped = False

    @property
    def db(self) -> Database:
        """The database the environment executes against."""
        return self._db

    @property
    def error(self) -> Optional[SimulationError]:
        """The error that ended the instruction loop, if any."""
        return self._error

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        """Start serving instructions on a background thread."""
        if self._stopped:
            raise StopError("the environment has already been stopped")
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._serve,
            name=f"environment-{self.parameters.label or 'unlabelled'}",
            daemon=True,
        )
        self._thread.start()

    def _serve(self) -> None:
        try:
            worker = _Worker(self.parameters, self._db, self.executor, self._broadcaster)
        except SimulationError as exc:
            self._error = exc
            return
        while True:
            instruction, reply = self._instructions.get()
            if isinstance(instruction, Stop):
                reply.put(StopCompleted())
                return
            try:
                outcome = worker.handle(instruction)
            except _Fatal as fatal:
                self._error = fatal.error
                return
            except SimulationError as exc:
                reply.put(exc)
            else:
                reply.put(outcome)

    def request(self, instruction: Any) -> Any:
        """Send an instruction and return its outcome, raising any reported error."""
        if not isinstance(instruction, _INSTRUCTIONS):
            raise TypeError(f"not an instruction: {type(instruction).__name__}")
        if self._stopped:
            raise CommunicationError("sending on a disconnected channel: the environment is stopped")
        thread = self._thread
        if thread is None:
            raise CommunicationError("sending on a disconnected channel: the environment is not running")
        reply: queue.SimpleQueue = queue.SimpleQueue()
        self._instructions.put((instruction, reply))
        while True:
            try:
                answer = reply.get(timeout=_REPLY_POLL_SECONDS)
                break
            except queue.Empty:
                if thread.is_alive():
                    continue
                try:
                    answer = reply.get_nowait()
                    break
                except queue.Empty:
                    raise CommunicationError("receiving on a closed channel") from self._error
        if isinstance(answer, BaseException):
            raise answer
        return answer

    def add_sender(self, sender: EventSender) -> None:
        """Register a subscriber for the logs of every later transaction."""
        self._broadcaster.add_sender(sender)

    def stop(self) -> None:
        """Stop the environment; it cannot be started again."""
        if self._stopped or self._thread is None:
            raise StopError(
                "Stop request failed to send due to a disconnected channel.\n"
                "Is the environment already stopped?"
            )
        outcome = self.request(Stop())
        if not isinstance(outcome, StopCompleted):
            raise StopError("Failed to stop environment!")
        self._stopped = True
        if self.parameters.label is not None:
            _log.warning("Stopped environment with label: %s", self.parameters.label)
        else:
            _log.warning("Stopped environment with no label.")
        self._thread.join()
        if self._error is not None:
            raise self._error

    def __repr__(self) -> str:
        return (
            f"Environment(parameters={self.parameters!r}, "
            f"running={self.is_running}, senders={len(self._broadcaster)})"
        )


class EnvironmentBuilder:
    """Configures an :class:`Environment` and starts it on :meth:`build`."""

    def __init__(self) -> None:
        self.label: Optional[str] = None
        self.block_settings: BlockSettings = UserControlledBlocks()
        self.gas_settings: GasSettings = UserControlledGas()
        self.db: Optional[Database] = None
        self.executor: Optional[Executor] = None

    def with_label(self, label: str) -> EnvironmentBuilder:
        self.label = str(label)
        return self

    def with_block_settings(self, block_settings: BlockSettings) -> EnvironmentBuilder:
        if not isinstance(block_settings, (UserControlledBlocks, RandomlySampledBlocks)):
            raise TypeError(f"not block settings: {type(block_settings).__name__}")
        self.block_settings = block_settings
        return self

    def with_gas_settings(self, gas_settings: GasSettings) -> EnvironmentBuilder:
        if not isinstance(gas_settings, (UserControlledGas, RandomlySampledGas, ConstantGas)):
            raise TypeError(f"not gas settings: {type(gas_settings).__name__}")
        self.gas_settings = gas_settings
        return self

    def with_db(self, db: Union[Database, Fork]) -> EnvironmentBuilder:
        self.db = _as_database(db)
        return self

    def with_executor(self, executor: Executor) -> EnvironmentBuilder:
        self.executor = executor
        return self

    def build(self) -> Environment:
        """Create the environment and start it."""
        parameters = EnvironmentParameters(
            label=self.label,
            block_settings=self.block_settings,
            gas_settings=self.gas_settings,
        )
        environment = Environment(parameters, self.db, self.executor)
        environment.run()
        return environment