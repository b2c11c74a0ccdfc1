"""Seeded random streams for the tree's structure.

The tree must look the same on every frame and after every reload, so its
shape is drawn from a small restartable generator keyed on the player's
address rather than from the global ``random`` module.
"""

import string

_MASK32 = 0xFFFFFFFF
_HEX_DIGITS = frozenset(string.hexdigits)
_SEED_CHUNK = 12
_SEED_MODULUS = 1000000


class Mulberry32:
    """Mulberry32: 32-bit state, one float in [0, 1) per draw.

    Same seed, same sequence. ``reseed`` restarts the stream in place so one
    instance can be reused across frames.
    """

    __slots__ = ("seed", "_state")

    def __init__(self, seed=0):
        self.seed = int(seed) & _MASK32
        self._state = self.seed

    def reseed(self, seed=None):
        if seed is not None:
            self.seed = int(seed) & _MASK32
        self._state = self.seed

    def random(self):
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    __call__ = random

    def __iter__(self):
        while True:
            yield self.random()


def _leading_hex(text):
    end = 0
    while end < len(text) and text[end] in _HEX_DIGITS:
        end += 1
    return text[:end]


def seed_from_identifier(identifier):
    """Map an address-like string to a stable float in [0, 1).

    Reads the first twelve hex digits after an optional ``0x``. Anything that
    does not start with a hex digit (including ``""`` and ``None``) maps to 0.
    """
    if not identifier:
        return 0.0
    clean = identifier[2:] if identifier.startswith("0x") else identifier
    digits = _leading_hex(clean[:_SEED_CHUNK])
    if not digits:
        return 0.0
    return (int(digits, 16) % _SEED_MODULUS) / _SEED_MODULUS


def seed_int_from_identifier(identifier):
    """The 31-bit integer seed that the tree generator is started from."""
    return int(seed_from_identifier(identifier) * 2**31)


def hue_from_identifier(identifier):
    """Accent hue in [0, 360) for a friend's address."""
    return int(seed_from_identifier(identifier) * 360)
