import dataclasses

import pytest

from arbiter.settings import (
    ConstantGas,
    EnvironmentParameters,
    RandomlySampledBlocks,
    RandomlySampledGas,
    UserControlledBlocks,
    UserControlledGas,
)

TEST_ENV_LABEL = "test"


def test_default_parameters_are_user_controlled():
    params = EnvironmentParameters()
    assert params.label is None
    assert params.block_settings == UserControlledBlocks()
    assert params.gas_settings == UserControlledGas()


def test_custom_parameters():
    params = EnvironmentParameters(
        label=TEST_ENV_LABEL,
        block_settings=RandomlySampledBlocks(block_rate=1.0, block_time=12, seed=1),
        gas_settings=RandomlySampledGas(multiplier=1.0),
    )
    assert params.label == TEST_ENV_LABEL
    assert params.block_settings == RandomlySampledBlocks(1.0, 12, 1)
    assert params.gas_settings == RandomlySampledGas(1.0)


def test_block_settings_variants_differ():
    assert UserControlledBlocks() != RandomlySampledBlocks(2.0, 12, 1)
    assert RandomlySampledBlocks(2.0, 12, 1) != RandomlySampledBlocks(2.0, 12, 2)


def test_gas_settings_variants_differ():
    assert ConstantGas(100) == ConstantGas(100)
    assert ConstantGas(100) != UserControlledGas()
    assert RandomlySampledGas(2.0) != RandomlySampledGas(1.0)


def test_numbers_are_coerced_to_float():
    blocks = RandomlySampledBlocks(1, 12, 1)
    gas = RandomlySampledGas(2)
    assert blocks.block_rate == 1.0 and isinstance(blocks.block_rate, float)
    assert gas.multiplier == 2.0 and isinstance(gas.multiplier, float)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"block_rate": 1.0, "block_time": -1, "seed": 1},
        {"block_rate": 1.0, "block_time": 1 << 32, "seed": 1},
        {"block_rate": 1.0, "block_time": 12, "seed": 1 << 64},
    ],
)
def test_randomly_sampled_blocks_ranges(kwargs):
    with pytest.raises(ValueError):
        RandomlySampledBlocks(**kwargs)


def test_randomly_sampled_blocks_rejects_bool_seed():
    with pytest.raises(TypeError):
        RandomlySampledBlocks(1.0, 12, True)


def test_constant_gas_range():
    assert ConstantGas((1 << 128) - 1).gas_price == (1 << 128) - 1
    with pytest.raises(ValueError):
        ConstantGas(1 << 128)
    with pytest.raises(ValueError):
        ConstantGas(-1)


def test_multiplier_must_be_numeric():
    with pytest.raises(TypeError):
        RandomlySampledGas("2.0")


def test_settings_are_immutable_and_hashable():
    blocks = RandomlySampledBlocks(2.0, 12, 1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        blocks.seed = 3
    assert len({blocks, RandomlySampledBlocks(2.0, 12, 1)}) == 1


def test_parameters_defaults_are_independent_of_edits():
    first = EnvironmentParameters()
    first.gas_settings = ConstantGas(100)
    assert EnvironmentParameters().gas_settings == UserControlledGas()