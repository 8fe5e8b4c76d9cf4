"""Forked state loaded from disk, with the metadata that describes it."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Union

from .database import AccountInfo, Database

__all__ = ["ContractMetadata", "Fork"]

_log = logging.getLogger(__name__)
_U256_LIMIT = 1 << 256


def _parse_address(text: Any) -> bytes:
    if not isinstance(text, str):
        raise TypeError(f"an address must be a hex string, got {type(text).__name__}")
    digits = text[2:] if text[:2] in ("0x", "0X") else text
    if len(digits) != 40:
        raise ValueError(f"an address needs 40 hex digits, got {text!r}")
    try:
        return bytes.fromhex(digits)
    except ValueError:
        raise ValueError(f"invalid address: {text!r}") from None


def _parse_decimal(text: Any) -> int:
    if not isinstance(text, str) or not text or not text.isascii() or not text.isdigit():
        raise ValueError(f"not a decimal number: {text!r}")
    value = int(text)
    if value >= _U256_LIMIT:
        raise ValueError(f"number does not fit in 256 bits: {text}")
    return value


@dataclass
class ContractMetadata:
    """Where a forked contract lives, its artifacts and its storage mappings."""

    address: bytes
    artifacts_path: str
    mappings: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ContractMetadata:
        return cls(
            address=_parse_address(data["address"]),
            artifacts_path=str(data["artifacts_path"]),
            mappings={name: list(keys) for name, keys in data.get("mappings", {}).items()},
        )


@dataclass
class Fork:
    """A database to load into an environment, with contract and account names."""

    db: Database
    contracts_meta: dict[str, ContractMetadata] = field(default_factory=dict)
    eoa: dict[str, bytes] = field(default_factory=dict)

    @classmethod
    def from_disk(cls, path: Union[str, Path]) -> Fork:
        """Load a fork from a JSON file, relative to the working directory."""
        location = Path.cwd() / path
        _log.info("Reading db from: %s", location)
        disk_data = json.loads(location.read_text(encoding="utf-8"))

        db = Database()
        for address_text, entry in disk_data["raw"].items():
            info_data, storage = entry
            address = _parse_address(address_text)
            db.insert_account_info(address, AccountInfo.from_json(info_data))
            for key_text, value_text in storage.items():
                db.insert_account_storage(
                    address, _parse_decimal(key_text), _parse_decimal(value_text)
                )

        return cls(
            db=db,
            contracts_meta={
                name: ContractMetadata.from_json(meta)
                for name, meta in disk_data["meta"].items()
            },
            eoa={
                name: _parse_address(address)
                for name, address in disk_data["externally_owned_accounts"].items()
            },
        )