"""Statistical primitives used by the forecasting and scoring services.

Empty inputs are handled per function: ``mean`` returns NaN while
``median`` and ``quantile`` return 0. Callers rely on both conventions.
"""

from collections.abc import Sequence

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _check_lengths(actual: Sequence[float], predicted: Sequence[float]) -> None:
    if len(actual) != len(predicted):
        raise ValueError(f"Length mismatch: {len(actual)} actual vs {len(predicted)} predicted")


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. NaN for an empty input."""
    if len(values) == 0:
        return float("nan")
    return float(np.mean(_as_array(values)))


def mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Mean absolute error."""
    _check_lengths(actual, predicted)
    a, p = _as_array(actual), _as_array(predicted)
    return mean(np.abs(a - p))


def mape(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Mean absolute percentage error. Zero actuals contribute zero error."""
    _check_lengths(actual, predicted)
    a, p = _as_array(actual), _as_array(predicted)
    terms = np.divide(np.abs(a - p), np.abs(a), out=np.zeros_like(a), where=a != 0)
    return mean(terms) * 100


def smape(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Symmetric MAPE in percent (0..200). Zero denominators contribute zero error."""
    _check_lengths(actual, predicted)
    a, p = _as_array(actual), _as_array(predicted)
    denom = np.abs(a) + np.abs(p)
    terms = np.divide(2 * np.abs(a - p), denom, out=np.zeros_like(a), where=denom != 0)
    return mean(terms) * 100


def quantile(values: Sequence[float], q: float) -> float:
    """Quantile with linear interpolation between order statistics. 0 for an empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.quantile(_as_array(values), q))


def median(values: Sequence[float]) -> float:
    """Median. 0 for an empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.median(_as_array(values)))


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1). 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(_as_array(values), ddof=1))
