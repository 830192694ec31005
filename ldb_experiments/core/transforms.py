"""Wavelet packet feature extraction with discriminant coefficient ranking.

The transformer follows the scikit-learn estimator protocol so it can be
cloned per grid cell and threaded through the experiment pipeline as a
fitted value. It is a light-weight local discriminant basis: the wavelet
packet level with the largest total discriminant power is selected and its
coefficients are ranked by how well they separate the class energy maps.
"""

from __future__ import annotations

from itertools import combinations
from typing import Callable, Dict, List

import numpy as np
import pywt
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.multiclass import unique_labels
from sklearn.utils.validation import check_array, check_is_fitted, check_X_y

_EPS = 1e-12


def _asymmetric_entropy(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return p * np.log((p + _EPS) / (q + _EPS))


def _symmetric_entropy(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return _asymmetric_entropy(p, q) + _asymmetric_entropy(q, p)


def _lp_distance(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return (p - q) ** 2


def _hellinger_distance(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return (np.sqrt(p) - np.sqrt(q)) ** 2


DISCRIMINANT_MEASURES: Dict[str, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    "asymmetric_entropy": _asymmetric_entropy,
    "symmetric_entropy": _symmetric_entropy,
    "lp": _lp_distance,
    "hellinger": _hellinger_distance,
}


class WaveletPacketFeatures(BaseEstimator, TransformerMixin):
    """Select discriminant wavelet packet coefficients.

    Args:
        wavelet (str): PyWavelets wavelet name.
        max_level (int): Deepest decomposition level considered. Defaults to
            the largest level supported by the signal length.
        n_features (int): Number of ranked coefficients returned by
            `transform`. Defaults to every coefficient of the selected level.
        discriminant (str): One of `DISCRIMINANT_MEASURES`.
    """

    def __init__(self, wavelet: str = "db2", max_level: int = None,
                 n_features: int = None, discriminant: str = "asymmetric_entropy"):
        self.wavelet = wavelet
        self.max_level = max_level
        self.n_features = n_features
        self.discriminant = discriminant

    def fit(self, X, y):
        """Select the best packet level and rank its coefficients.

        Args:
            X (np.ndarray): Signals, one per row.
            y (np.ndarray): Class labels.

        Returns:
            WaveletPacketFeatures: The fitted transformer.
        """
        if self.discriminant not in DISCRIMINANT_MEASURES:
            raise ValueError(
                f"Unknown discriminant measure '{self.discriminant}'. "
                f"Choose from {sorted(DISCRIMINANT_MEASURES)}."
            )

        X, y = check_X_y(X, y, dtype=np.float64)
        self.classes_ = unique_labels(y)
        if len(self.classes_) < 2:
            raise ValueError("At least two classes are required to rank discriminant coefficients.")

        self.signal_length_ = X.shape[1]
        self.n_features_in_ = X.shape[1]

        max_level = self._resolve_max_level()
        measure = DISCRIMINANT_MEASURES[self.discriminant]

        level_power = []
        coefficient_power = []
        for level in range(1, max_level + 1):
            coefs = self._level_coefficients(X, level)
            power = self._discriminant_power(coefs, y, measure)
            coefficient_power.append(power)
            level_power.append(float(power.sum()))

        best = int(np.argmax(level_power))
        self.level_ = best + 1
        self.level_power_ = np.asarray(level_power)
        self.discriminant_power_ = coefficient_power[best]
        self.order_ = np.argsort(self.discriminant_power_, kind="stable")[::-1]
        self.paths_ = self._node_paths(self.level_)

        n_coefficients = len(self.order_)
        n_features = n_coefficients if self.n_features is None else int(self.n_features)
        if not 0 < n_features <= n_coefficients:
            raise ValueError(
                f"n_features must be between 1 and {n_coefficients}, got {self.n_features}."
            )
        self.n_features_ = n_features
        return self

    def transform(self, X):
        """Project signals onto the top ranked coefficients of the selected level."""
        check_is_fitted(self, "order_")
        X = check_array(X, dtype=np.float64)
        if X.shape[1] != self.signal_length_:
            raise ValueError(
                f"Expected signals of length {self.signal_length_}, got {X.shape[1]}."
            )
        coefs = self._level_coefficients(X, self.level_)
        return coefs[:, self.order_[:self.n_features_]]

    def basis_vectors(self, n: int = 3) -> np.ndarray:
        """Synthesis vectors of the top `n` coefficients.

        Returns:
            np.ndarray: Matrix of shape (signal_length, n); column j is the
            signal whose expansion has a single unit coefficient at the j-th
            ranked position.
        """
        check_is_fitted(self, "order_")
        n_coefficients = len(self.order_)
        if not 0 < n <= n_coefficients:
            raise ValueError(f"n must be between 1 and {n_coefficients}, got {n}.")

        reference = pywt.WaveletPacket(np.zeros(self.signal_length_), self.wavelet,
                                       mode="periodization", maxlevel=self.level_)
        sizes = [len(node.data) for node in reference.get_level(self.level_, order="freq")]
        offsets = np.cumsum([0] + sizes)

        vectors = np.zeros((self.signal_length_, n))
        for j, position in enumerate(self.order_[:n]):
            packet = pywt.WaveletPacket(None, self.wavelet, mode="periodization",
                                        maxlevel=self.level_)
            for k, path in enumerate(self.paths_):
                data = np.zeros(sizes[k])
                if offsets[k] <= position < offsets[k + 1]:
                    data[position - offsets[k]] = 1.0
                packet[path] = data
            vectors[:, j] = packet.reconstruct(update=False)[:self.signal_length_]
        return vectors

    # ------------------------------------------------------------- Internals
    def _resolve_max_level(self) -> int:
        filter_len = pywt.Wavelet(self.wavelet).dec_len
        supported = max(1, pywt.dwt_max_level(self.signal_length_, filter_len))
        if self.max_level is None:
            return supported
        if self.max_level < 1:
            raise ValueError(f"max_level must be positive, got {self.max_level}.")
        return int(self.max_level)

    def _node_paths(self, level: int) -> List[str]:
        reference = pywt.WaveletPacket(np.zeros(self.signal_length_), self.wavelet,
                                       mode="periodization", maxlevel=level)
        return [node.path for node in reference.get_level(level, order="freq")]

    def _level_coefficients(self, X: np.ndarray, level: int) -> np.ndarray:
        rows = []
        for signal in X:
            packet = pywt.WaveletPacket(signal, self.wavelet, mode="periodization", maxlevel=level)
            rows.append(np.concatenate([node.data for node in packet.get_level(level, order="freq")]))
        return np.vstack(rows)

    def _discriminant_power(self, coefs: np.ndarray, y: np.ndarray, measure) -> np.ndarray:
        # normalized time-frequency energy map per class
        energy_maps = []
        for label in self.classes_:
            class_coefs = coefs[y == label]
            energy = np.sum(class_coefs ** 2, axis=0)
            total = energy.sum()
            energy_maps.append(energy / total if total > 0 else energy)

        power = np.zeros(coefs.shape[1])
        for p, q in combinations(energy_maps, 2):
            power += measure(p, q)
        return power
