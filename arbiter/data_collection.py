"""Streams of decoded events written out as one CSV file per event kind."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, TextIO, Union

__all__ = ["EventLogger"]

_log = logging.getLogger(__name__)

_DEFAULT_DIRECTORY = "events"


def _encode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot serialise a value of type {type(value).__name__}")


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=_encode)


def _split_event(event: Any) -> tuple[str, Mapping[str, Any]]:
    """Return the event's kind and its fields.

    An event is either a mapping from its kind to its fields, or a dataclass
    instance whose class name is its kind.
    """
    if dataclasses.is_dataclass(event) and not isinstance(event, type):
        return type(event).__name__, dataclasses.asdict(event)
    if not isinstance(event, Mapping):
        raise TypeError(f"an event must be a mapping or a dataclass, got {type(event).__name__}")
    if not event:
        raise ValueError("an event mapping must name its kind")
    kind = min(event)
    fields = event[kind]
    if dataclasses.is_dataclass(fields) and not isinstance(fields, type):
        fields = dataclasses.asdict(fields)
    if not isinstance(fields, Mapping):
        raise TypeError(f"the fields of {kind!r} must be a mapping, got {type(fields).__name__}")
    return str(kind), fields


def _write_events(directory: Path, events: Iterable[Any]) -> None:
    with ExitStack() as stack:
        files: dict[str, TextIO] = {}
        for event in events:
            kind, fields = _split_event(event)
            columns = sorted(fields)
            handle = files.get(kind)
            if handle is None:
                handle = stack.enter_context(
                    open(directory / f"{kind}.csv", "w", encoding="utf-8", newline="")
                )
                files[kind] = handle
                handle.write(",".join(columns) + "\n")
            handle.write(",".join(_to_json(fields[column]) for column in columns) + "\n")
            handle.flush()


class _Task:
    """One stream of events being written on its own thread."""

    def __init__(self, name: str, directory: Path, events: Iterable[Any]) -> None:
        self.name = name
        self.directory = directory
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(
            target=self._work, args=(events,), name=f"event-logger-{name}", daemon=True
        )

    def _work(self, events: Iterable[Any]) -> None:
        try:
            _write_events(self.directory, events)
        except Exception as exc:
            self.error = exc

    def __repr__(self) -> str:
        outcome = "ok" if self.error is None else repr(self.error)
        return f"_Task(name={self.name!r}, outcome={outcome})"


class EventLogger:
    """Writes each added stream of events into ``<path>/<name>/<Kind>.csv``.

    ``path`` is relative to the working directory and defaults to
    ``events``. Each stream starts being consumed as soon as it is added;
    the first event of each kind writes a header of its sorted field names,
    and every event writes a line of its JSON-encoded field values.
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path: Optional[str] = None if path is None else str(path)
        self._tasks: list[_Task] = []
        self._monitor: Optional[threading.Thread] = None

    def add(self, events: Iterable[Any], name: str) -> EventLogger:
        """Start writing ``events`` into a directory called ``name``."""
        base = self.path if self.path is not None else _DEFAULT_DIRECTORY
        directory = Path.cwd() / base / str(name)
        directory.mkdir(parents=True, exist_ok=True)
        task = _Task(str(name), directory, events)
        self._tasks.append(task)
        task.thread.start()
        return self

    def run(self) -> None:
        """Watch the streams in the background and log each one as it finishes."""
        if self._monitor is not None:
            return
        tasks = list(self._tasks)

        def watch() -> None:
            for task in tasks:
                task.thread.join()
                _log.info("task completed: %r", task)

        self._monitor = threading.Thread(target=watch, name="event-logger-monitor", daemon=True)
        self._monitor.start()

    def join(self) -> None:
        """Wait until every stream has been written out."""
        for task in self._tasks:
            task.thread.join()
        if self._monitor is not None:
            self._monitor.join()

    @property
    def errors(self) -> list[BaseException]:
        """The errors that ended streams early, in the order they were added."""
        return [task.error for task in self._tasks if task.error is not None]

    def __repr__(self) -> str:
        return f"EventLogger(path={self.path!r}, streams={len(self._tasks)})"