"""Deterministic Poisson sampling and WAD fixed-point conversions."""

from __future__ import annotations

import math

__all__ = ["SeededPoisson", "float_to_wad", "wad_to_float"]

_MASK32 = 0xFFFF_FFFF
_MASK64 = 0xFFFF_FFFF_FFFF_FFFF
_U128_MAX = (1 << 128) - 1
_WAD_SCALE = 1e18

_SIGMA = (0x61707865, 0x3320646E, 0x79622D32, 0x6B206574)
_QUARTER_ROUNDS = (
    (0, 4, 8, 12),
    (1, 5, 9, 13),
    (2, 6, 10, 14),
    (3, 7, 11, 15),
    (0, 5, 10, 15),
    (1, 6, 11, 12),
    (2, 7, 8, 13),
    (3, 4, 9, 14),
)
_DOUBLE_ROUNDS = 6  # twelve rounds in total

_PCG_MUL = 6364136223846793005
_PCG_INC = 11634580027462260723

_MAX_CACHED_FACTORIAL = 170


def _build_factorials() -> tuple[float, ...]:
    values = [1.0]
    for i in range(1, _MAX_CACHED_FACTORIAL + 1):
        values.append(values[-1] * float(i))
    return tuple(values)


_FACTORIALS = _build_factorials()


def _check_uint(name: str, value: object, bits: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in an unsigned {bits}-bit integer, got {value}")
    return value


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) & _MASK32) | (value >> (32 - shift))


def _expand_seed(seed: int) -> list[int]:
    """Stretch a 64-bit seed into eight key words with a PCG32 stream."""
    state = seed
    words = []
    for _ in range(8):
        state = (state * _PCG_MUL + _PCG_INC) & _MASK64
        xorshifted = (((state >> 18) ^ state) >> 27) & _MASK32
        rot = state >> 59
        words.append(((xorshifted >> rot) | (xorshifted << (32 - rot))) & _MASK32)
    return words


class _ChaCha12:
    """ChaCha stream generator with twelve rounds, a 64-bit counter and a zero stream id."""

    def __init__(self, seed: int) -> None:
        self._key = _expand_seed(seed)
        self._counter = 0
        self._buffer: list[int] = []
        self._index = 0

    def _block(self, counter: int) -> list[int]:
        initial = [*_SIGMA, *self._key, counter & _MASK32, (counter >> 32) & _MASK32, 0, 0]
        x = list(initial)
        for _ in range(_DOUBLE_ROUNDS):
            for a, b, c, d in _QUARTER_ROUNDS:
                x[a] = (x[a] + x[b]) & _MASK32
                x[d] = _rotl(x[d] ^ x[a], 16)
                x[c] = (x[c] + x[d]) & _MASK32
                x[b] = _rotl(x[b] ^ x[c], 12)
                x[a] = (x[a] + x[b]) & _MASK32
                x[d] = _rotl(x[d] ^ x[a], 8)
                x[c] = (x[c] + x[d]) & _MASK32
                x[b] = _rotl(x[b] ^ x[c], 7)
        return [(word + start) & _MASK32 for word, start in zip(x, initial)]

    def next_u32(self) -> int:
        if self._index >= len(self._buffer):
            self._buffer = self._block(self._counter)
            self._counter = (self._counter + 1) & _MASK64
            self._index = 0
        word = self._buffer[self._index]
        self._index += 1
        return word

    def next_u64(self) -> int:
        low = self.next_u32()
        high = self.next_u32()
        return (high << 32) | low

    def next_f64(self) -> float:
        """A uniform float in [0, 1) built from the top 53 bits of a u64."""
        return (self.next_u64() >> 11) * (1.0 / (1 << 53))


def _ln_factorial(n: int) -> float:
    if n <= _MAX_CACHED_FACTORIAL:
        return math.log(_FACTORIALS[n])
    return math.lgamma(n + 1.0)


def _sample_poisson(rng: _ChaCha12, rate: float) -> int:
    if rate < 30.0:
        limit = math.exp(-rate)
        count = 0
        product = rng.next_f64()
        while product >= limit:
            count += 1
            product *= rng.next_f64()
        return count

    c = 0.767 - 3.36 / rate
    beta = math.pi / math.sqrt(3.0 * rate)
    alpha = beta * rate
    k = math.log(c) - rate - math.log(beta)
    log_rate = math.log(rate)
    while True:
        u = rng.next_f64()
        if u == 0.0:
            continue  # the candidate would be negative infinity
        x = (alpha - math.log((1.0 - u) / u)) / beta
        n = math.floor(x + 0.5)
        if n < 0:
            continue
        v = rng.next_f64()
        y = alpha - beta * x
        try:
            temp = 1.0 + math.exp(y)
            ratio = v / (temp * temp)
        except OverflowError:
            ratio = 0.0
        lhs = y + math.log(ratio) if ratio > 0.0 else -math.inf
        rhs = k + n * log_rate - _ln_factorial(n)
        if lhs <= rhs:
            return n


class SeededPoisson:
    """A Poisson distribution driven by a seeded random number generator.

    The same ``rate_parameter`` and ``seed`` always produce the same sequence
    of samples, which makes simulations repeatable.
    """

    def __init__(self, rate_parameter: float, time_step: int, seed: int) -> None:
        rate = float(rate_parameter)
        if math.isnan(rate) or rate <= 0.0:
            raise ValueError(f"rate_parameter must be positive, got {rate_parameter!r}")
        self.rate_parameter = rate
        self.time_step = _check_uint("time_step", time_step, 32)
        self.seed = _check_uint("seed", seed, 64)
        self._rng = _ChaCha12(seed)

    def sample(self) -> int:
        """Draw the next value from the distribution."""
        return _sample_poisson(self._rng, self.rate_parameter)

    def __repr__(self) -> str:
        return (
            f"SeededPoisson(rate_parameter={self.rate_parameter!r}, "
            f"time_step={self.time_step!r}, seed={self.seed!r})"
        )


def float_to_wad(x: float) -> int:
    """Convert a float to an 18-decimal fixed-point integer.

    The conversion truncates toward zero and saturates: negative and NaN
    inputs give 0, values beyond 128 bits give the largest 128-bit value.
    """
    scaled = float(x) * _WAD_SCALE
    if math.isnan(scaled) or scaled <= 0.0:
        return 0
    if scaled >= float(1 << 128):
        return _U128_MAX
    return int(scaled)


def wad_to_float(x: int) -> float:
    """Convert an 18-decimal fixed-point integer back to a float."""
    if isinstance(x, bool) or not isinstance(x, int):
        raise TypeError(f"expected an integer, got {type(x).__name__}")
    if x < 0:
        raise ValueError(f"a WAD value cannot be negative, got {x}")
    if x > _U128_MAX:
        raise OverflowError("Integer overflow when casting to u128")
    return float(x) / _WAD_SCALE