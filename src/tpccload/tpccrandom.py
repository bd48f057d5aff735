"""
Random streams for the TPC-C load.

One root TPCCRandom is created per run. It fixes the NURand C constants for
the load and mints one independent sub-stream per worker via new_random().
All helpers are vectorised over NumPy so a worker draws whole columns at once.
"""

from __future__ import annotations

import numpy as np

ALNUM = np.frombuffer(
    b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz", dtype=np.uint8
)
DIGITS = np.frombuffer(b"0123456789", dtype=np.uint8)

SYLLABLES = (
    "BAR",
    "OUGHT",
    "ABLE",
    "PRI",
    "PRES",
    "ESE",
    "ANTI",
    "CALLY",
    "ATION",
    "EING",
)


class TPCCRandom:
    def __init__(
        self,
        seed: int | None = None,
        *,
        seed_seq: np.random.SeedSequence | None = None,
        c_values: tuple[int, int, int] | None = None,
    ):
        self._seq = seed_seq if seed_seq is not None else np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self._seq)
        if c_values is None:
            c_values = (
                int(self.rng.integers(0, 256)),
                int(self.rng.integers(0, 1024)),
                int(self.rng.integers(0, 8192)),
            )
        self.c_last, self.c_id, self.i_id = c_values

    @property
    def c_values(self) -> tuple[int, int, int]:
        return (self.c_last, self.c_id, self.i_id)

    def new_random(self) -> TPCCRandom:
        """Spawn a non-overlapping child stream sharing this load's C values."""
        (child,) = self._seq.spawn(1)
        return TPCCRandom(seed_seq=child, c_values=self.c_values)

    # -----------------------------
    # Numeric columns
    # -----------------------------
    def integers(self, lo: int, hi: int, n: int) -> np.ndarray:
        return self.rng.integers(lo, hi + 1, size=n, dtype=np.int64)

    def nurand(self, a: int, x: int, y: int, n: int) -> np.ndarray:
        c = {255: self.c_last, 1023: self.c_id, 8191: self.i_id}[a]
        r = self.integers(0, a, n) | self.integers(x, y, n)
        return (r + c) % (y - x + 1) + x

    def decimals(self, lo: int, hi: int, scale: int, n: int) -> list[str]:
        """Fixed-point values drawn uniformly from [lo, hi] in units of 10**-scale."""
        div = 10**scale
        return [f"{v / div:.{scale}f}" for v in self.integers(lo, hi, n).tolist()]

    def permutation(self, n: int) -> np.ndarray:
        return self.rng.permutation(np.arange(1, n + 1, dtype=np.int64))

    # -----------------------------
    # String columns
    # -----------------------------
    def _strings(self, alphabet: np.ndarray, n: int, lo: int, hi: int) -> list[str]:
        lengths = self.integers(lo, hi, n)
        chars = alphabet[self.rng.integers(0, len(alphabet), size=int(lengths.sum()))]
        text = chars.tobytes().decode("ascii")
        ends = np.cumsum(lengths).tolist()
        out: list[str] = []
        start = 0
        for end in ends:
            out.append(text[start:end])
            start = end
        return out

    def astrings(self, n: int, lo: int, hi: int) -> list[str]:
        return self._strings(ALNUM, n, lo, hi)

    def nstrings(self, n: int, lo: int, hi: int) -> list[str]:
        return self._strings(DIGITS, n, lo, hi)

    def data_strings(self, n: int, lo: int, hi: int) -> list[str]:
        """i_data / s_data: 10% of the values embed "ORIGINAL" at a random spot."""
        out = self.astrings(n, lo, hi)
        hits = np.flatnonzero(self.rng.random(n) < 0.10).tolist()
        for i in hits:
            s = out[i]
            pos = int(self.rng.integers(0, len(s) - 8 + 1))
            out[i] = s[:pos] + "ORIGINAL" + s[pos + 8 :]
        return out

    def states(self, n: int) -> list[str]:
        letters = ALNUM[10:36]
        chars = letters[self.rng.integers(0, 26, size=2 * n)].tobytes().decode("ascii")
        return [chars[i : i + 2] for i in range(0, 2 * n, 2)]

    def zips(self, n: int) -> list[str]:
        return [s + "11111" for s in self.nstrings(n, 4, 4)]


def last_name(num: int) -> str:
    return SYLLABLES[num // 100] + SYLLABLES[(num // 10) % 10] + SYLLABLES[num % 10]


def last_names(nums) -> list[str]:
    return [last_name(int(v)) for v in nums]
