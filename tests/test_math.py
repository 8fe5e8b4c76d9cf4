import math

import pytest

from arbiter.math import SeededPoisson, float_to_wad, wad_to_float


def test_seeded_poisson_reference_samples():
    test_dist_1 = SeededPoisson(10.0, 10, 321)
    test_dist_2 = SeededPoisson(10000.0, 11, 123)
    test_dist_3 = SeededPoisson(10000.0, 12, 123)

    result_1 = test_dist_1.sample()
    result_2 = test_dist_1.sample()
    result_3 = test_dist_2.sample()
    result_4 = test_dist_2.sample()
    result_5 = test_dist_3.sample()
    result_6 = test_dist_3.sample()

    assert result_1 == 15
    assert result_2 == 12
    assert result_3 == 9914
    assert result_4 == 10143
    assert result_5 == result_3
    assert result_6 == result_4


@pytest.mark.parametrize("rate", [1.0, 2.0, 10.0, 45.5, 10000.0])
def test_same_seed_gives_same_sequence(rate):
    first = SeededPoisson(rate, 12, 12345)
    second = SeededPoisson(rate, 12, 12345)
    assert [first.sample() for _ in range(20)] == [second.sample() for _ in range(20)]


def test_samples_are_non_negative_integers():
    poisson = SeededPoisson(2.0, 12, 1)
    samples = [poisson.sample() for _ in range(200)]
    assert all(isinstance(s, int) and s >= 0 for s in samples)


def test_large_rate_samples_cluster_around_rate():
    poisson = SeededPoisson(10000.0, 12, 7)
    samples = [poisson.sample() for _ in range(50)]
    mean = sum(samples) / len(samples)
    assert 9800 < mean < 10200


def test_time_step_is_kept():
    poisson = SeededPoisson(10.0, 12, 12345)
    assert poisson.time_step == 12
    assert poisson.rate_parameter == 10.0


@pytest.mark.parametrize("rate", [0.0, -1.0, math.nan])
def test_invalid_rate_is_rejected(rate):
    with pytest.raises(ValueError):
        SeededPoisson(rate, 12, 1)


def test_seed_out_of_range_is_rejected():
    with pytest.raises(ValueError):
        SeededPoisson(1.0, 12, 1 << 64)


def test_time_step_out_of_range_is_rejected():
    with pytest.raises(ValueError):
        SeededPoisson(1.0, -1, 1)


def test_non_integer_seed_is_rejected():
    with pytest.raises(TypeError):
        SeededPoisson(1.0, 12, 1.5)


@pytest.mark.parametrize("value", [10.5, 1.23])
def test_wad_round_trip(value):
    assert wad_to_float(float_to_wad(value)) == value


def test_float_to_wad_of_one():
    assert float_to_wad(1.0) == 1_000_000_000_000_000_000


def test_float_to_wad_saturates():
    assert float_to_wad(-5.0) == 0
    assert float_to_wad(math.nan) == 0
    assert float_to_wad(math.inf) == (1 << 128) - 1


def test_wad_to_float_rejects_values_beyond_128_bits():
    with pytest.raises(OverflowError):
        wad_to_float(1 << 128)


def test_wad_to_float_rejects_negative():
    with pytest.raises(ValueError):
        wad_to_float(-1)