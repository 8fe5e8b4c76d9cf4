"""Errors raised while managing or talking to the simulated environment."""

from __future__ import annotations

from typing import Any

__all__ = [
    "SimulationError",
    "ExecutionError",
    "TransactionError",
    "AccountError",
    "StopError",
    "CommunicationError",
    "BroadcastError",
    "ConversionError",
    "NotUserControlledGasSettings",
    "NotUserControlledBlockSettings",
    "NotRandomlySampledBlockSettings",
]

_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})


def _debug(value: Any) -> str:
    """Render a value the way a debug formatter shows it: strings quoted."""
    if isinstance(value, str):
        return '"' + value.translate(_ESCAPES) + '"'
    return repr(value)


class SimulationError(Exception):
    """Base class of every environment error."""


class ExecutionError(SimulationError):
    """The execution engine itself failed; this is not a contract revert."""

    def __init__(self, source: Any) -> None:
        self.source = source
        super().__init__(f"execution error! the source error is: {_debug(source)}")


class TransactionError(SimulationError):
    """A transaction could not be processed (bad nonce, missing funds, ...)."""

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        super().__init__(f"transaction error! the source error is: {_debug(reason)}")


class AccountError(SimulationError):
    """An account could not be handled, e.g. it already exists or is missing."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"account error! due to: {_debug(reason)}")


class StopError(SimulationError):
    """The environment failed to stop."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"error stopping! due to: {_debug(reason)}")


class CommunicationError(SimulationError):
    """A channel used to talk to the environment failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"error communicating! due to: {reason}")


class BroadcastError(SimulationError):
    """Logs could not be delivered to a subscriber."""

    def __init__(self, logs: Any) -> None:
        self.logs = logs
        super().__init__("error broadcasting! the source error is: sending on a closed channel")


class ConversionError(SimulationError):
    """A value could not be converted between representations."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"conversion error! the source error is: {reason}")


class NotUserControlledGasSettings(SimulationError):
    """A gas price was set while gas is not user controlled."""

    def __init__(self) -> None:
        super().__init__(
            "error in the environment! attempted to set a gas price when the "
            "`GasSettings` is not `GasSettings::UserControlled`"
        )


class NotUserControlledBlockSettings(SimulationError):
    """Block number and timestamp were changed while blocks are not user controlled."""

    def __init__(self) -> None:
        super().__init__(
            "error in the environment! attempted to externally change block number "
            "and timestamp when `BlockSettings` is not `BlockSettings::UserControlled`."
        )


class NotRandomlySampledBlockSettings(SimulationError):
    """A gas multiplier was chosen without randomly sampled blocks."""

    def __init__(self) -> None:
        super().__init__(
            "error in the environment! attempted to set a gas price via a multiplier "
            "when the `BlockSettings` is not `BlockSettings::RandomlySampled`."
        )