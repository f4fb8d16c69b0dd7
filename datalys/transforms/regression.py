# ==============================
# Regression / Correlation
# ==============================
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from datalys.contracts.errors import InsufficientDataError


MIN_POINTS = 2

Point = Tuple[float, float]


class RegressionModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    n: int
    slope: float
    intercept: float
    r: Optional[float]
    r_squared: Optional[float]
    coefficients: List[float]

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def linear_regression(points: Sequence[Point]) -> RegressionModel:
    """
    Ordinary least squares y = intercept + slope * x, plus Pearson r.

    Raises InsufficientDataError with fewer than two points or when every x
    is the same (vertical line). r is None when every y is the same.
    """
    n = len(points)
    if n < MIN_POINTS:
        raise InsufficientDataError(f"regression needs at least {MIN_POINTS} points, got {n}")

    mean_x = math.fsum(p[0] for p in points) / n
    mean_y = math.fsum(p[1] for p in points) / n
    sxx = math.fsum((x - mean_x) ** 2 for x, _ in points)
    syy = math.fsum((y - mean_y) ** 2 for _, y in points)
    sxy = math.fsum((x - mean_x) * (y - mean_y) for x, y in points)

    if sxx == 0:
        raise InsufficientDataError("regression is undefined when all x values are equal")

    slope = sxy / sxx
    intercept = mean_y - slope * mean_x

    r: Optional[float] = None
    if syy > 0:
        r = sxy / math.sqrt(sxx * syy)
        r = max(-1.0, min(1.0, r))

    return RegressionModel(
        n=n,
        slope=slope,
        intercept=intercept,
        r=r,
        r_squared=r * r if r is not None else None,
        coefficients=[intercept, slope],
    )


def pearson(points: Sequence[Point]) -> Optional[float]:
    try:
        return linear_regression(points).r
    except InsufficientDataError:
        return None
