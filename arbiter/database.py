"""An in-memory account database that an environment executes against."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

__all__ = ["EMPTY_CODE_HASH", "AccountInfo", "DbAccount", "Database"]

EMPTY_CODE_HASH = bytes.fromhex(
    "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
)
ADDRESS_SIZE = 20


def _check_uint(name: str, value: object, bits: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in an unsigned {bits}-bit integer, got {value}")
    return value


def _check_address(value: object) -> bytes:
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    if not isinstance(value, bytes):
        raise TypeError(f"address must be bytes, got {type(value).__name__}")
    if len(value) != ADDRESS_SIZE:
        raise ValueError(f"address must be {ADDRESS_SIZE} bytes long, got {len(value)}")
    return value


def _parse_hex_bytes(text: str) -> bytes:
    digits = text[2:] if text[:2] in ("0x", "0X") else text
    return bytes.fromhex(digits)


def _parse_uint(name: str, value: Any) -> int:
    if isinstance(value, str):
        digits = value[2:] if value[:2] in ("0x", "0X") else value
        if not digits:
            return 0
        try:
            return int(digits, 16)
        except ValueError:
            raise ValueError(f"{name} is not a hex number: {value!r}") from None
    return value


def _parse_code(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    if isinstance(value, str):
        return _parse_hex_bytes(value)
    if isinstance(value, Mapping):
        if "bytecode" in value:
            return _parse_hex_bytes(value["bytecode"])
        for inner in value.values():
            if isinstance(inner, Mapping) and "bytecode" in inner:
                return _parse_hex_bytes(inner["bytecode"])
    raise ValueError(f"unrecognised code: {value!r}")


@dataclass
class AccountInfo:
    """Balance, nonce and code of an account."""

    balance: int = 0
    nonce: int = 0
    code_hash: bytes = EMPTY_CODE_HASH
    code: Optional[bytes] = b""

    def __post_init__(self) -> None:
        _check_uint("balance", self.balance, 256)
        _check_uint("nonce", self.nonce, 64)
        if not isinstance(self.code_hash, bytes) or len(self.code_hash) != 32:
            raise ValueError("code_hash must be 32 bytes")

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> AccountInfo:
        """Build account info from its JSON form (hex balance and code hash)."""
        code_hash = data.get("code_hash")
        return cls(
            balance=_parse_uint("balance", data.get("balance", 0)),
            nonce=_parse_uint("nonce", data.get("nonce", 0)),
            code_hash=EMPTY_CODE_HASH if code_hash is None else _parse_hex_bytes(code_hash),
            code=_parse_code(data.get("code")),
        )


@dataclass
class DbAccount:
    """An account held in the database: its info and its storage slots."""

    info: AccountInfo = field(default_factory=AccountInfo)
    storage: dict[int, int] = field(default_factory=dict)


class Database:
    """Accounts keyed by their 20-byte address."""

    def __init__(self) -> None:
        self.accounts: dict[bytes, DbAccount] = {}

    def insert_account_info(self, address: bytes, info: AccountInfo) -> None:
        """Set an account's info, creating the account if needed and keeping its storage."""
        address = _check_address(address)
        if not isinstance(info, AccountInfo):
            raise TypeError("info must be an AccountInfo")
        self.accounts.setdefault(address, DbAccount()).info = info

    def insert_account_storage(self, address: bytes, key: int, value: int) -> None:
        """Write a storage slot, creating an empty account if needed."""
        address = _check_address(address)
        _check_uint("key", key, 256)
        _check_uint("value", value, 256)
        self.accounts.setdefault(address, DbAccount()).storage[key] = value

    def __contains__(self, address: object) -> bool:
        return address in self.accounts

    def __len__(self) -> int:
        return len(self.accounts)

    def __repr__(self) -> str:
        return f"Database(accounts={len(self.accounts)})"