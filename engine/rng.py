import numpy as np

class DRNG:
    """Deterministic Random Number Generator wrapper."""

    def __init__(self, seed: int):
        self.seed = seed
        self.g = np.random.Generator(np.random.PCG64(seed))

    def randint(self, lo: int, hi: int) -> int:
        """Return a random integer in [lo, hi], both ends included."""
        return int(self.g.integers(lo, hi, endpoint=True))
