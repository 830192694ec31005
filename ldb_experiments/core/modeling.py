"""Model fitting and evaluation for a single (transform, classifier) grid cell.

Fitted transform state is never stored on the caller's descriptor: every fit
works on a clone and returns a `FittedTransform` value that is passed on to
model fitting and evaluation explicitly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
from sklearn.base import clone
from sklearn.metrics import accuracy_score, balanced_accuracy_score, cohen_kappa_score, f1_score
from sklearn.utils.multiclass import check_classification_targets
from sklearn.utils.validation import column_or_1d

from .visualization import plot_basis_vectors, plot_coefficients, plot_tiling

logger = logging.getLogger(__name__)

MeasureResult = Dict[str, float]

# same character class as the Train_/Test_ column header parser
MEASURE_NAME_PATTERN = re.compile(r"[A-Za-z0-9]+")


@dataclass(frozen=True)
class Measure:
    """Named scoring function.

    `scorer` follows the scikit-learn metric convention `scorer(y_true,
    y_pred)`; the measure itself is called as `measure(predictions, truth)`.
    Names are alphanumeric so they survive the `Train_<name>` column headers.
    """

    name: str
    scorer: Callable[[Any, Any], float]
    greater_is_better: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not MEASURE_NAME_PATTERN.fullmatch(self.name):
            raise ValueError(f"Measure names must be non-empty ASCII alphanumeric, got '{self.name}'.")

    def __call__(self, predictions, truth) -> float:
        return float(self.scorer(truth, predictions))


def misclassification_rate(y_true, y_pred) -> float:
    return 1.0 - accuracy_score(y_true, y_pred)


def macro_f1(y_true, y_pred) -> float:
    return f1_score(y_true, y_pred, average="macro")


MEASURES: Dict[str, Measure] = {
    measure.name: measure
    for measure in (
        Measure("Accuracy", accuracy_score),
        Measure("BalancedAccuracy", balanced_accuracy_score),
        Measure("MacroF1", macro_f1),
        Measure("CohenKappa", cohen_kappa_score),
        Measure("MisclassificationRate", misclassification_rate, greater_is_better=False),
    )
}

DEFAULT_MEASURE_NAMES = ("Accuracy", "MisclassificationRate", "MacroF1")


def get_measures(names: Iterable[str]) -> List[Measure]:
    """Look up registered measures by name, preserving order."""
    try:
        return [MEASURES[name] for name in names]
    except KeyError as exc:
        raise ValueError(f"Unknown measure {exc}. Choose from {sorted(MEASURES)}.") from None


def default_measures() -> List[Measure]:
    return get_measures(DEFAULT_MEASURE_NAMES)


@dataclass(frozen=True)
class FittedTransform:
    """Transform fitted on one training set; `None` means raw signals."""

    estimator: Optional[Any] = None

    @property
    def is_raw(self) -> bool:
        return self.estimator is None

    def apply(self, X) -> np.ndarray:
        """Transform-only feature computation (never refits)."""
        if self.estimator is None:
            return np.asarray(X)
        return self.estimator.transform(X)


@dataclass(frozen=True)
class ModelHandle:
    """Trained classifier together with the transform it was trained on."""

    transform: FittedTransform
    estimator: Any

    def predict(self, X) -> np.ndarray:
        return self.estimator.predict(self.transform.apply(X))


def coerce_labels(y) -> np.ndarray:
    """Return `y` as a 1-D array of class labels suitable for classification."""
    y = column_or_1d(np.asarray(y), warn=True)
    check_classification_targets(y)
    return y


def fit_transform_variant(transform, X, y) -> Tuple[FittedTransform, np.ndarray]:
    """Fit a fresh clone of `transform` and return it with the training features."""
    if transform is None:
        return FittedTransform(), np.asarray(X)

    estimator = clone(transform)
    features = estimator.fit_transform(X, coerce_labels(y))
    return FittedTransform(estimator), features


def extract_features(transform, X, y, return_plots: bool = False, n_vectors: int = 3):
    """Fit the transform on (X, y) and compute training features.

    Args:
        transform: Transform variant, or None for the raw-signal baseline.
        X (np.ndarray): Training signals, one per row.
        y (np.ndarray): Training labels.
        return_plots (bool): Also build the basis vector, tiling and
            coefficient figures.
        n_vectors (int): Number of basis vectors drawn when plotting.

    Returns:
        tuple: (FittedTransform, features) or, with `return_plots`,
        (FittedTransform, features, plots).
    """
    if transform is None and return_plots:
        raise ValueError("Plots require a transform variant; got the raw-signal baseline (None).")

    fitted, features = fit_transform_variant(transform, X, y)
    if not return_plots:
        return fitted, features

    estimator = fitted.estimator
    plots = {
        "basis_vectors": plot_basis_vectors(estimator.basis_vectors(n_vectors)),
        "tiling": plot_tiling(estimator),
        "coefficients": plot_coefficients(features, coerce_labels(y)),
    }
    return fitted, features, plots


def fit_model(fitted_transform: FittedTransform, classifier, X, y, features=None) -> ModelHandle:
    """Fit a clone of `classifier` on the transformed training data.

    `features` may carry the training features already computed while
    fitting the transform. Estimator errors propagate unchanged.
    """
    if features is None:
        features = fitted_transform.apply(X)

    estimator = clone(classifier)
    estimator.fit(features, coerce_labels(y))
    return ModelHandle(fitted_transform, estimator)


def evaluate_model(model: ModelHandle, X, y, measures: Iterable[Measure]) -> MeasureResult:
    """Score hard label predictions of `model` on (X, y) with every measure."""
    truth = coerce_labels(y)
    predictions = model.predict(X)

    result: MeasureResult = {}
    for measure in measures:
        if measure.name in result:
            logger.debug("Measure %s listed twice; keeping the last score", measure.name)
        result[measure.name] = measure(predictions, truth)
    return result
