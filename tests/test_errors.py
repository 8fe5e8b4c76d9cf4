import pytest

from arbiter.errors import (
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


def test_account_error_quotes_reason():
    error = AccountError("Account already exists!")
    assert str(error) == 'account error! due to: "Account already exists!"'
    assert error.reason == "Account already exists!"


def test_stop_error_quotes_reason():
    error = StopError("Failed to stop environment!")
    assert str(error) == 'error stopping! due to: "Failed to stop environment!"'


def test_debug_quoting_escapes_quotes():
    error = AccountError('say "hi"')
    assert str(error).endswith('"say \\"hi\\""')


def test_communication_error_is_plain():
    error = CommunicationError("receiving on a closed channel")
    assert str(error) == "error communicating! due to: receiving on a closed channel"


def test_conversion_error_message():
    error = ConversionError("U256 value is too large to fit into u64")
    assert str(error) == (
        "conversion error! the source error is: U256 value is too large to fit into u64"
    )


def test_execution_error_keeps_source():
    source = ValueError("boom")
    error = ExecutionError(source)
    assert error.source is source
    assert str(error) == f"execution error! the source error is: {source!r}"


def test_transaction_error_keeps_reason():
    error = TransactionError("LackOfFundForMaxFee")
    assert error.reason == "LackOfFundForMaxFee"
    assert str(error).startswith("transaction error! the source error is: ")


def test_broadcast_error_keeps_logs():
    logs = [{"topics": []}]
    error = BroadcastError(logs)
    assert error.logs is logs
    assert str(error) == "error broadcasting! the source error is: sending on a closed channel"


def test_settings_errors_messages():
    assert str(NotUserControlledGasSettings()) == (
        "error in the environment! attempted to set a gas price when the "
        "`GasSettings` is not `GasSettings::UserControlled`"
    )
    assert str(NotUserControlledBlockSettings()) == (
        "error in the environment! attempted to externally change block number and "
        "timestamp when `BlockSettings` is not `BlockSettings::UserControlled`."
    )
    assert str(NotRandomlySampledBlockSettings()) == (
        "error in the environment! attempted to set a gas price via a multiplier when "
        "the `BlockSettings` is not `BlockSettings::RandomlySampled`."
    )


@pytest.mark.parametrize(
    "error",
    [
        ExecutionError("x"),
        TransactionError("x"),
        AccountError("x"),
        StopError("x"),
        CommunicationError("x"),
        BroadcastError([]),
        ConversionError("x"),
        NotUserControlledGasSettings(),
        NotUserControlledBlockSettings(),
        NotRandomlySampledBlockSettings(),
    ],
)
def test_every_error_is_caught_as_simulation_error(error):
    with pytest.raises(SimulationError) as caught:
        raise error
    assert caught.value is error