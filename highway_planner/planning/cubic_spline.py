"""Cubic spline curve fitting.

Based on the implementation from PythonRobotics:
https://github.com/AtsushiSakai/PythonRobotics
"""

import bisect
from typing import Callable, List, Sequence, Tuple, Union

import numpy as np

from ..core.exceptions import DegenerateGeometryError

MIN_ANCHOR_POINTS = 3


class CubicSpline1D:
    """1D Cubic Spline interpolation.

    Interpolates a 1D function using cubic splines with natural boundary
    conditions. Outside the data range the spline continues linearly along
    its end tangents.

    Args:
        x: x coordinates for data points (must be strictly increasing)
        y: y coordinates for data points
    """

    def __init__(self, x: Sequence[float], y: Sequence[float]):
        if len(x) != len(y):
            raise ValueError(f"x ({len(x)}) and y ({len(y)}) must have the same length")
        if len(x) < 2:
            raise ValueError(f"At least 2 data points are required, got {len(x)}")

        h = np.diff(x)
        if np.any(h <= 0):
            raise ValueError("x coordinates must be strictly increasing")

        self.x = [float(v) for v in x]
        self.a = [float(v) for v in y]
        self.nx = len(x)
        self.b: List[float] = []
        self.d: List[float] = []

        # Calculate coefficient c
        A = self._calc_A(h)
        B = self._calc_B(h, self.a)
        self.c = np.linalg.solve(A, B).tolist()

        # Calculate coefficients b and d
        for i in range(self.nx - 1):
            d = (self.c[i + 1] - self.c[i]) / (3.0 * h[i])
            b = 1.0 / h[i] * (self.a[i + 1] - self.a[i]) \
                - h[i] / 3.0 * (2.0 * self.c[i] + self.c[i + 1])
            self.d.append(d)
            self.b.append(b)

        # Slope at the right end, used for extrapolation
        hn = h[-1]
        self.end_slope = self.b[-1] + 2.0 * self.c[-2] * hn + 3.0 * self.d[-1] * hn ** 2

    def __call__(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        return self.calc_position(x)

    def calc_position(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Calculate y position for given x.

        Args:
            x: x position(s) to calculate y

        Returns:
            y position(s) for given x
        """
        if np.isscalar(x):
            if x < self.x[0]:
                return self.a[0] + self.b[0] * (x - self.x[0])
            if x > self.x[-1]:
                return self.a[-1] + self.end_slope * (x - self.x[-1])

            i = self._search_index(x)
            dx = x - self.x[i]
            return self.a[i] + self.b[i] * dx + \
                self.c[i] * dx ** 2.0 + self.d[i] * dx ** 3.0

        return np.array([self.calc_position(float(v)) for v in np.asarray(x)])

    def calc_first_derivative(self, x: float) -> float:
        """Calculate first derivative at given x."""
        if x < self.x[0]:
            return self.b[0]
        if x > self.x[-1]:
            return self.end_slope

        i = self._search_index(x)
        dx = x - self.x[i]
        return self.b[i] + 2.0 * self.c[i] * dx + 3.0 * self.d[i] * dx ** 2.0

    def _search_index(self, x: float) -> int:
        """Search data segment index for given x."""
        idx = bisect.bisect(self.x, x) - 1
        return min(max(idx, 0), self.nx - 2)

    def _calc_A(self, h: np.ndarray) -> np.ndarray:
        """Calculate matrix A for spline coefficient c."""
        A = np.zeros((self.nx, self.nx))
        A[0, 0] = 1.0
        for i in range(self.nx - 1):
            if i != (self.nx - 2):
                A[i + 1, i + 1] = 2.0 * (h[i] + h[i + 1])
            A[i + 1, i] = h[i]
            A[i, i + 1] = h[i]

        A[0, 1] = 0.0
        A[self.nx - 1, self.nx - 2] = 0.0
        A[self.nx - 1, self.nx - 1] = 1.0
        return A

    def _calc_B(self, h: np.ndarray, a: List[float]) -> np.ndarray:
        """Calculate matrix B for spline coefficient c."""
        B = np.zeros(self.nx)
        for i in range(self.nx - 2):
            B[i + 1] = 3.0 * (a[i + 2] - a[i + 1]) / h[i + 1] \
                - 3.0 * (a[i + 1] - a[i]) / h[i]
        return B


def fit_curve(points: Sequence[Tuple[float, float]]) -> Callable[[float], float]:
    """Fit a smooth curve through ordered anchor points.

    Args:
        points: (x, y) anchors with strictly increasing x

    Returns:
        Evaluator f(x) -> y

    Raises:
        DegenerateGeometryError: If there are too few anchors or x does not increase
    """
    if len(points) < MIN_ANCHOR_POINTS:
        raise DegenerateGeometryError(
            f"Curve fit needs at least {MIN_ANCHOR_POINTS} anchor points, got {len(points)}"
        )

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    try:
        return CubicSpline1D(xs, ys)
    except ValueError as e:
        raise DegenerateGeometryError(f"Cannot fit curve through {points}: {e}") from e
