import dataclasses

import pytest

from arbiter.cheatcodes import Deal, DealReturn, Load, LoadReturn, Store, StoreReturn

ADDRESS = b"\x11" * 20
OTHER_ADDRESS = b"\x22" * 20
ZERO_KEY = bytes(32)
VALUE = b"\x07" * 32


def test_deal_keeps_fields():
    deal = Deal(ADDRESS, 1)
    assert deal.address == ADDRESS
    assert deal.amount == 1


def test_deal_accepts_bytearray_and_normalises():
    deal = Deal(bytearray(ADDRESS), 5)
    assert deal == Deal(ADDRESS, 5)
    assert isinstance(deal.address, bytes)


def test_deal_accepts_maximum_amount():
    deal = Deal(ADDRESS, (1 << 256) - 1)
    assert deal.amount == (1 << 256) - 1


@pytest.mark.parametrize("amount", [-1, 1 << 256])
def test_deal_rejects_out_of_range_amount(amount):
    with pytest.raises(ValueError):
        Deal(ADDRESS, amount)


def test_deal_rejects_non_integer_amount():
    with pytest.raises(TypeError):
        Deal(ADDRESS, 1.0)


def test_address_length_is_checked():
    with pytest.raises(ValueError):
        Deal(b"\x11" * 19, 1)


def test_address_type_is_checked():
    with pytest.raises(TypeError):
        Load("0x" + "11" * 20, ZERO_KEY)


def test_load_block_defaults_to_none():
    load = Load(ADDRESS, ZERO_KEY)
    assert load.block is None
    assert load == Load(ADDRESS, ZERO_KEY, None)


def test_load_key_length_is_checked():
    with pytest.raises(ValueError):
        Load(ADDRESS, b"\x00" * 31)


def test_store_value_length_is_checked():
    with pytest.raises(ValueError):
        Store(ADDRESS, ZERO_KEY, b"\x00" * 33)


def test_store_equality_and_hash():
    first = Store(ADDRESS, ZERO_KEY, VALUE)
    second = Store(ADDRESS, ZERO_KEY, VALUE)
    assert first == second
    assert hash(first) == hash(second)
    assert first != Store(OTHER_ADDRESS, ZERO_KEY, VALUE)


def test_cheatcodes_are_immutable():
    deal = Deal(ADDRESS, 1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        deal.amount = 2
    assert deal.amount == 1
    assert deal == Deal(ADDRESS, 1)


def test_replace_revalidates():
    deal = Deal(ADDRESS, 1)
    assert dataclasses.replace(deal, amount=3) == Deal(ADDRESS, 3)
    with pytest.raises(ValueError):
        dataclasses.replace(deal, amount=-3)


def test_load_return_value():
    assert LoadReturn(42).value == 42
    with pytest.raises(ValueError):
        LoadReturn(-1)


def test_unit_returns_compare_equal():
    assert StoreReturn() == StoreReturn()
    assert DealReturn() == DealReturn()
    assert StoreReturn() != DealReturn()