# arbiter

`arbiter` provides a sandboxed, in-process environment for agent-based
simulations of smart contracts. An `Environment` serves instructions on its
own background thread, one after another: adding accounts, moving the block
forward, applying cheatcodes, answering queries, and running calls and
transactions through an executor you supply. Each instruction gets an
outcome back, errors are raised to the caller, and the logs of every
transaction are broadcast to subscribers.

It has no dependencies outside the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `arbiter.math`: `SeededPoisson(rate_parameter, time_step, seed)`, whose
  `sample()` returns a repeatable sequence of Poisson samples for a given
  seed, and `float_to_wad` / `wad_to_float` for 18-decimal fixed-point
  conversion (`float_to_wad` truncates and saturates to the 128-bit range).
- `arbiter.settings`: block settings (`UserControlledBlocks`,
  `RandomlySampledBlocks`), gas settings (`UserControlledGas`,
  `RandomlySampledGas`, `ConstantGas`) and `EnvironmentParameters`.
- `arbiter.environment`: `EnvironmentBuilder` (`with_label`,
  `with_block_settings`, `with_gas_settings`, `with_db`, `with_executor`,
  `build`), `Environment` (`run`, `request`, `add_sender`, `stop`) and the
  `Executor` protocol.
- `arbiter.instruction`: the instructions an environment accepts
  (`AddAccount`, `BlockUpdate`, `Call`, `Cheatcode`, `Query`, `SetGasPrice`,
  `Stop`, `Transaction`), the outcomes it returns, `ReceiptData`,
  `EnvironmentData`, `ExecutionResult` and `Log`.
- `arbiter.cheatcodes`: `Deal`, `Load` and `Store`, which reach straight into
  the environment's database, and their results `DealReturn`, `LoadReturn`
  and `StoreReturn`.
- `arbiter.database`: `Database`, `DbAccount` and `AccountInfo`, the
  in-memory account state.
- `arbiter.fork`: `Fork.from_disk(path)` loads a saved database, contract
  metadata (`ContractMetadata`) and named accounts from a JSON file relative
  to the working directory.
- `arbiter.broadcast`: `EventBroadcaster`, which sends logs to subscribers
  (objects with a `put` method such as `queue.Queue`, or callables), and
  `convert_uint_to_u64`.
- `arbiter.data_collection`: `EventLogger`, which writes streams of events to
  `<path>/<name>/<Kind>.csv` (the path defaults to `events`), one header of
  sorted field names per kind followed by one line of JSON-encoded values per
  event.
- `arbiter.errors`: `SimulationError` and its subclasses.

## Example

```python
from arbiter.cheatcodes import Deal
from arbiter.environment import EnvironmentBuilder
from arbiter.instruction import AddAccount, Cheatcode, EnvironmentData, Query
from arbiter.math import SeededPoisson, float_to_wad, wad_to_float
from arbiter.settings import RandomlySampledBlocks, RandomlySampledGas

poisson = SeededPoisson(10.0, 12, 321)
print(poisson.sample(), poisson.sample())  # the same two numbers every time

assert wad_to_float(float_to_wad(10.5)) == 10.5

environment = (
    EnvironmentBuilder()
    .with_label("example")
    .with_block_settings(RandomlySampledBlocks(block_rate=2.0, block_time=12, seed=1))
    .with_gas_settings(RandomlySampledGas(multiplier=2.0))
    .build()
)

account = bytes(20)
environment.request(AddAccount(account))
environment.request(Cheatcode(Deal(address=account, amount=100)))
print(environment.request(Query(EnvironmentData.balance(account))).value)  # "100"

environment.stop()
```

Choosing `RandomlySampledGas` without `RandomlySampledBlocks` is an error,
and so is setting the gas price or moving the block forward by hand when the
matching settings are not user controlled. A stopped environment cannot be
started again; further requests raise `CommunicationError`.

## What it does not do

The package contains no contract bytecode interpreter. `Call` and
`Transaction` instructions are handed to the `Executor` given with
`EnvironmentBuilder.with_executor`; without one they fail with
`ExecutionError`. There are no contract bindings, no signing clients and no
RPC-style middleware: interaction happens through `Environment.request` with
the instruction classes above.