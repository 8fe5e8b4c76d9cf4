import pytest

from arbiter.database import EMPTY_CODE_HASH, AccountInfo, Database, DbAccount

ADDRESS = b"\x11" * 20


def test_new_database_is_empty():
    db = Database()
    assert len(db) == 0
    assert ADDRESS not in db


def test_insert_account_info_creates_account():
    db = Database()
    info = AccountInfo(balance=500, nonce=2)
    db.insert_account_info(ADDRESS, info)
    assert ADDRESS in db
    assert db.accounts[ADDRESS].info == info
    assert db.accounts[ADDRESS].storage == {}


def test_insert_storage_creates_default_account():
    db = Database()
    db.insert_account_storage(ADDRESS, 1, 42)
    account = db.accounts[ADDRESS]
    assert account.storage == {1: 42}
    assert account.info == AccountInfo()


def test_insert_info_keeps_existing_storage():
    db = Database()
    db.insert_account_storage(ADDRESS, 3, 9)
    db.insert_account_info(ADDRESS, AccountInfo(balance=7))
    assert db.accounts[ADDRESS].storage == {3: 9}
    assert db.accounts[ADDRESS].info.balance == 7


def test_storage_overwrite():
    db = Database()
    db.insert_account_storage(ADDRESS, 0, 1)
    db.insert_account_storage(ADDRESS, 0, 2)
    assert db.accounts[ADDRESS].storage == {0: 2}


def test_bad_address_rejected():
    db = Database()
    with pytest.raises(ValueError):
        db.insert_account_storage(b"\x00" * 19, 0, 0)
    with pytest.raises(TypeError):
        db.insert_account_info("0x" + "11" * 20, AccountInfo())


def test_storage_value_limited_to_u256():
    db = Database()
    with pytest.raises(ValueError):
        db.insert_account_storage(ADDRESS, 0, 1 << 256)


def test_account_info_defaults_to_empty_code():
    info = AccountInfo()
    assert info.code_hash == EMPTY_CODE_HASH
    assert (info.balance, info.nonce) == (0, 0)


def test_account_info_nonce_limited():
    with pytest.raises(ValueError):
        AccountInfo(nonce=1 << 64)


def test_account_info_from_json_hex_balance():
    balance = 934034962177715175765
    info = AccountInfo.from_json({"balance": hex(balance), "nonce": 3})
    assert info.balance == balance
    assert info.nonce == 3
    assert info.code_hash == EMPTY_CODE_HASH


def test_account_info_from_json_code():
    info = AccountInfo.from_json(
        {"balance": "0x0", "nonce": 0, "code_hash": "0x" + EMPTY_CODE_HASH.hex(), "code": "0x6001"}
    )
    assert info.code == bytes([0x60, 0x01])


def test_account_info_from_json_bad_balance():
    with pytest.raises(ValueError):
        AccountInfo.from_json({"balance": "0xzz"})


def test_db_account_default_is_independent():
    first, second = DbAccount(), DbAccount()
    first.storage[1] = 1
    assert second.storage == {}