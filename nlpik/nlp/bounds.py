"""Admissible intervals for variables and constraint rows."""

from dataclasses import dataclass

import numpy as np

INF = np.inf


@dataclass(frozen=True)
class Bounds:
    """
    Closed interval [lower, upper]. lower == upper makes an equality.

    Use Bounds(x, INF) or Bounds(-INF, x) for one-sided inequalities.
    """
    lower: float = -INF
    upper: float = INF

    def __post_init__(self):
        if self.lower > self.upper:
            raise ValueError(
                f"Lower bound {self.lower} is greater than upper bound {self.upper}"
            )

    @property
    def is_equality(self) -> bool:
        return self.lower == self.upper


NO_BOUND = Bounds(-INF, INF)
BOUND_ZERO = Bounds(0.0, 0.0)
BOUND_GREATER_ZERO = Bounds(0.0, INF)
BOUND_SMALLER_ZERO = Bounds(-INF, 0.0)
