# -*- coding: utf-8 -*-
"""
Deterministic sampling helpers shared by the allocator and the model selector.

The stream reproduces a small linear congruential recurrence so that a given
seed string always yields the same sequence of draws, independent of platform
or of the order in which callers evaluate their work.
"""

import math

import numpy as np

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MASK = 0x7FFFFFFF  # mod 2**31

DEFAULT_MODULUS = 10000
MIN_UNIFORM = 0.0001
POSITIONAL_FLOOR = 1e-6  # JavaScript switches to exponent notation below this


def hash_seed(seed):
    """Fold a seed string into a signed 32-bit integer (h = h * 31 + code)."""
    h = 0
    for char in seed:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


class SeededStream:
    """
    Infinite stream of floats in [0, 1) driven by an explicit integer state.

    String seeds are hashed with `hash_seed`; integer seeds start the
    recurrence directly.
    """

    def __init__(self, seed, modulus=DEFAULT_MODULUS):
        if isinstance(seed, str):
            self.state = hash_seed(seed)
        else:
            self.state = int(seed)
        self.modulus = int(modulus)

    def next(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) & LCG_MASK
        return (self.state % self.modulus) / self.modulus

    def take(self, n):
        return [self.next() for _ in range(n)]


def gaussian_noise(stream, stddev):
    """Box-Muller transform over two draws from `stream`."""
    u1 = stream.next()
    u2 = stream.next()
    z = math.sqrt(-2.0 * math.log(max(u1, MIN_UNIFORM))) * math.cos(2.0 * math.pi * u2)
    return z * stddev


def round_half_up(value):
    """Round to the nearest integer with halves going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp(value, low, high):
    return max(low, min(high, value))


def format_fraction(value):
    """
    Render a fraction for seed keys the way JavaScript prints numbers.

    Integral values carry no decimal point, magnitudes from 1e-6 up stay
    positional ("0.00005", where repr gives "5e-05") and smaller ones use an
    unpadded exponent ("5e-7").
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    if abs(value) >= POSITIONAL_FLOOR:
        return np.format_float_positional(value, trim="-")
    mantissa, exponent = repr(value).split("e")
    return f"{mantissa}e{int(exponent)}"
