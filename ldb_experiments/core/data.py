"""Synthetic three-class signal generation and per-trial persistence.

Signals are stored one per row. Labels are 1, 2 and 3 in class order.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import h5py
import numpy as np

from .config import ClassDataConfig

logger = logging.getLogger(__name__)

TRI_LENGTH = 32
CBF_LENGTH = 128


@dataclass(frozen=True)
class TrialData:
    """Train and test sets generated for one trial."""

    X_train: np.ndarray
    y_train: np.ndarray
    X_test: np.ndarray
    y_test: np.ndarray

    def as_dict(self) -> Dict[str, np.ndarray]:
        return {
            "X_train": self.X_train,
            "y_train": self.y_train,
            "X_test": self.X_test,
            "y_test": self.y_test,
        }


def _triangular_bases() -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    i = np.arange(1, TRI_LENGTH + 1)
    h1 = np.maximum(6 - np.abs(i - 7), 0).astype(float)
    h2 = np.maximum(6 - np.abs(i - 8 - 7), 0).astype(float)
    h3 = np.maximum(6 - np.abs(i - 4 - 7), 0).astype(float)
    return h1, h2, h3


def _triangular_class(label: int, count: int, rng: np.random.Generator) -> np.ndarray:
    h1, h2, h3 = _triangular_bases()
    first, second = {1: (h1, h2), 2: (h1, h3), 3: (h2, h3)}[label]
    u = rng.uniform(size=(count, 1))
    noise = rng.standard_normal((count, TRI_LENGTH))
    return u * first + (1 - u) * second + noise


def _cbf_class(label: int, count: int, rng: np.random.Generator) -> np.ndarray:
    i = np.arange(1, CBF_LENGTH + 1)
    a = rng.integers(16, 33, size=(count, 1))
    b = a + rng.integers(32, 97, size=(count, 1))
    eta = rng.standard_normal((count, 1))
    noise = rng.standard_normal((count, CBF_LENGTH))

    window = ((i >= a) & (i <= b)).astype(float)
    if label == 1:  # cylinder
        shape = window
    elif label == 2:  # bell
        shape = window * (i - a) / (b - a)
    else:  # funnel
        shape = window * (b - i) / (b - a)
    return (6 + eta) * shape + noise


_GENERATORS = {
    "tri": _triangular_class,
    "cbf": _cbf_class,
}


def generate_class_data(config: ClassDataConfig, is_test: bool = False,
                        rng: Optional[np.random.Generator] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Generate a labelled signal set.

    Args:
        config (ClassDataConfig): Signal family and class sizes.
        is_test (bool): Shuffle the rows, as done for test sets.
        rng (np.random.Generator): Random source. A fresh unseeded generator
            is used when omitted.

    Returns:
        tuple: (X, y) with X of shape (total, signal_length).
    """
    if config.kind not in _GENERATORS:
        raise ValueError(f"Unknown signal kind '{config.kind}'.")
    if rng is None:
        rng = np.random.default_rng()

    generator = _GENERATORS[config.kind]
    blocks = []
    labels = []
    for label, count in enumerate(config.counts, start=1):
        if count < 0:
            raise ValueError(f"Class sizes must be non-negative, got {config.counts}.")
        blocks.append(generator(label, count, rng))
        labels.append(np.full(count, label, dtype=np.int64))

    X = np.vstack(blocks)
    y = np.concatenate(labels)
    if is_test:
        permutation = rng.permutation(len(y))
        X, y = X[permutation], y[permutation]
    return X, y


def generate_trial(config_train: ClassDataConfig, config_test: ClassDataConfig,
                   rng: Optional[np.random.Generator] = None) -> TrialData:
    """Draw fresh train and test sets for one trial."""
    X_train, y_train = generate_class_data(config_train, False, rng)
    X_test, y_test = generate_class_data(config_test, True, rng)
    return TrialData(X_train, y_train, X_test, y_test)


def save_trial_data(filepath: str, data: TrialData) -> None:
    """Write the four trial arrays as named HDF5 datasets."""
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    with h5py.File(filepath, "w") as handle:
        for name, values in data.as_dict().items():
            handle.create_dataset(name, data=values)
    logger.info("Saved trial data to %s", filepath)


def load_trial_data(filepath: str) -> TrialData:
    """Read arrays written by `save_trial_data`."""
    with h5py.File(filepath, "r") as handle:
        return TrialData(**{name: handle[name][()] for name in ("X_train", "y_train", "X_test", "y_test")})


def save_result_json(filepath: str, result: Dict) -> None:
    """Pretty-print a nested result mapping with 4-space indentation."""
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as handle:
        json.dump(result, handle, indent=4)
    logger.info("Saved results to %s", filepath)


def load_result_json(filepath: str) -> Dict:
    with open(filepath, "r", encoding="utf-8") as handle:
        return json.load(handle)
