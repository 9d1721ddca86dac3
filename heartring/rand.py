"""Random variate generation over fifteen independent Lehmer streams."""

from __future__ import annotations

import math

_MULTIPLIER = 16807
_MODULUS = 2147483647
_SCALE = 4.656612875e-10

_DEFAULT_SEEDS = (
    0,
    1973272912, 747177549, 20464843, 640830765, 1098742207,
    78126602, 84743774, 831312807, 124667236, 1172177002,
    1124933064, 1223960546, 1878892440, 1449793615, 553303732,
)

_STREAM_COUNT = 15


class RandomArgumentError(ValueError):
    """Raised when a generator function receives an invalid argument."""


class RandomStreams:
    """Multiplicative congruential generator with selectable seed streams."""

    def __init__(self) -> None:
        self._seeds = list(_DEFAULT_SEEDS)
        self._current = 1
        self._spare_normal = 0.0

    def ranf(self) -> float:
        """Return a uniform variate in (0, 1) from the current stream."""
        value = self._seeds[self._current] * _MULTIPLIER % _MODULUS
        self._seeds[self._current] = value
        return value * _SCALE

    def stream(self, n: int) -> int:
        """Select and reseed stream ``n`` (1..15); ``n == 0`` only queries."""
        if n < 0 or n > _STREAM_COUNT:
            raise RandomArgumentError("stream Argument Error")
        if n:
            self._seeds[n] = _DEFAULT_SEEDS[n]
            self._current = n
        return self._current

    def seed(self, ik: int, n: int) -> int:
        """Set the seed of stream ``n`` when ``ik > 0``; return its seed."""
        if n < 1 or n > _STREAM_COUNT:
            raise RandomArgumentError("seed Argument Error")
        if ik > 0:
            self._seeds[n] = ik
        return self._seeds[n]

    def uniform(self, a: float, b: float) -> float:
        """Return a variate uniformly distributed on [a, b]."""
        if a > b:
            raise RandomArgumentError("uniform Argument Error: a > b")
        return a + (b - a) * self.ranf()

    def random(self, i: int, n: int) -> int:
        """Return an integer chosen equiprobably from i..n."""
        if i > n:
            raise RandomArgumentError("random Argument Error: i > n")
        return i + int((n - i + 1.0) * self.ranf())

    def expntl(self, x: float) -> float:
        """Return an exponential variate with mean ``x``."""
        return -x * math.log(self.ranf())

    def erlang(self, x: float, s: float) -> float:
        """Return an Erlang variate with mean ``x`` and deviation ``s``."""
        if s > x:
            raise RandomArgumentError("erlang Argument Error: s > x")
        z = x / s
        k = int(int(z) * z)
        product = 1.0
        for _ in range(k):
            product *= self.ranf()
        return -(x / k) * math.log(product)

    def hyperx(self, x: float, s: float) -> float:
        """Return a two-stage hyperexponential variate (requires s > x)."""
        if s <= x:
            raise RandomArgumentError("hyperx Argument Error: s not > x")
        cv = s / x
        z = cv * cv
        p = 0.5 * (1.0 - math.sqrt((z - 1.0) / (z + 1.0)))
        z = x / (1.0 - p) if self.ranf() > p else x / p
        return -0.5 * z * math.log(self.ranf())

    def normal(self, x: float, s: float) -> float:
        """Return a normal variate with mean ``x`` and deviation ``s``."""
        if self._spare_normal != 0.0:
            z1 = self._spare_normal
            self._spare_normal = 0.0
        else:
            while True:
                v1 = 2.0 * self.ranf() - 1.0
                v2 = 2.0 * self.ranf() - 1.0
                w = v1 * v1 + v2 * v2
                if w < 1.0:
                    break
            w = math.sqrt((-2.0 * math.log(w)) / w)
            z1 = v1 * w
            self._spare_normal = v2 * w
        return x + z1 * s