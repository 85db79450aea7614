"""
Deterministic RNG
=================

Seeded Mulberry32 generator used by every Monte Carlo routine in the engine.

The transform, on a 32-bit unsigned state::

    state = (state + 0x6D2B79F5) mod 2**32
    t = state
    t = imul32(t ^ (t >> 15), t | 1)
    t = t ^ ((t + imul32(t ^ (t >> 7), t | 61)) mod 2**32)
    output = (t ^ (t >> 14)) / 2**32

where ``imul32`` is the low 32 bits of the product. Output lies in [0, 1).
Reimplementing these lines exactly reproduces the stream in any language.

One generator is created per evaluation call and passed explicitly to the
samplers; nothing here is shared between calls.
"""

MASK32 = 0xFFFFFFFF
INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0

DEFAULT_SEED = 42


def _imul32(a: int, b: int) -> int:
    return (a * b) & MASK32


class DeterministicRng:
    """
    Mulberry32 pseudo-random generator.

    Parameters
    ----------
    seed : int, default=42
        Initial state; reduced modulo 2**32

    Example
    -------
    >>> rng = DeterministicRng(42)
    >>> first = [rng.random() for _ in range(3)]
    >>> rng = DeterministicRng(42)
    >>> first == [rng.random() for _ in range(3)]
    True
    """

    __slots__ = ("_state",)

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self._state = int(seed) & MASK32

    def random(self) -> float:
        """Next uniform double in [0, 1)."""
        self._state = (self._state + INCREMENT) & MASK32
        t = self._state
        t = _imul32(t ^ (t >> 15), t | 1)
        t ^= (t + _imul32(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / TWO_POW_32

    @property
    def state(self) -> int:
        return self._state

    def __repr__(self) -> str:
        return f"DeterministicRng(state={self._state:#010x})"
