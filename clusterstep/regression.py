"""One-shot least-squares line fit for the regression page."""

from dataclasses import dataclass

import numpy as np
from sklearn.linear_model import LinearRegression
from sklearn.metrics import r2_score

from clusterstep.exceptions import ConfigurationError


@dataclass(frozen=True)
class LineFit:
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x):
        return self.slope * np.asarray(x, dtype=float) + self.intercept

    def equation(self) -> str:
        sign = "-" if self.intercept < 0 else "+"
        return f"y = {self.slope:.2f}x {sign} {abs(self.intercept):.2f}"


def fit_line(points) -> LineFit:
    if len(points) < 2:
        raise ConfigurationError(f"need at least 2 points to fit a line, got {len(points)}")
    x = np.array([[p.x] for p in points], dtype=float)
    y = np.array([p.y for p in points], dtype=float)

    model = LinearRegression().fit(x, y)
    return LineFit(slope=float(model.coef_[0]),
                   intercept=float(model.intercept_),
                   r_squared=float(r2_score(y, model.predict(x))))
