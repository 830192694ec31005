"""Configuration utilities for the repeated LDB comparison workflow."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import RandomForestClassifier
from sklearn.neighbors import KNeighborsClassifier
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

from .modeling import DEFAULT_MEASURE_NAMES, MEASURES
from .transforms import DISCRIMINANT_MEASURES, WaveletPacketFeatures

SIGNAL_KINDS = ("cbf", "tri")


@dataclass
class ClassDataConfig:
    """Synthetic three-class signal set: signal family and samples per class."""

    kind: str = "cbf"
    n1: int = 33
    n2: int = 33
    n3: int = 33

    def __post_init__(self) -> None:
        if self.kind not in SIGNAL_KINDS:
            raise ValueError(f"Unknown signal kind '{self.kind}'. Choose from {SIGNAL_KINDS}.")
        if min(self.counts) < 0:
            raise ValueError(f"Class sizes must be non-negative, got {self.counts}.")

    @property
    def counts(self) -> List[int]:
        return [self.n1, self.n2, self.n3]

    @property
    def total(self) -> int:
        return sum(self.counts)


@dataclass
class OutputPaths:
    """Locations of every artefact written by a comparison run."""

    root: str = "./results"

    @property
    def experiment_data_dir(self) -> str:
        return os.path.join(self.root, "experiment_data")

    @property
    def complete_dir(self) -> str:
        return os.path.join(self.root, "complete")

    @property
    def aggregate_dir(self) -> str:
        return os.path.join(self.root, "aggregate")

    @property
    def comparison_dir(self) -> str:
        return os.path.join(self.root, "comparison")

    def trial_data_file(self, trial: int) -> str:
        return os.path.join(self.experiment_data_dir, f"exp{trial}.h5")

    def trial_result_file(self, trial: int) -> str:
        return os.path.join(self.experiment_data_dir, f"result{trial}.json")

    def complete_file(self, measure: str) -> str:
        return os.path.join(self.complete_dir, f"{measure}.csv")

    def aggregate_file(self, measure: str) -> str:
        return os.path.join(self.aggregate_dir, f"{measure}.csv")

    def comparison_file(self, measure: str, kind: str) -> str:
        return os.path.join(self.comparison_dir, f"{measure}_{kind}.csv")


@dataclass
class ExperimentConfig:
    """Full configuration payload for a repeated comparison."""

    name: str = "ldb_comparison"
    description: str = ""
    train: ClassDataConfig = field(default_factory=ClassDataConfig)
    test: ClassDataConfig = field(default_factory=lambda: ClassDataConfig("cbf", 333, 333, 333))
    repeats: int = 10
    save_data: bool = True
    seed: Optional[int] = None
    n_jobs: int = 1
    n_features: int = 10
    wavelet: str = "db2"
    output_dir: str = "./results"
    measures: List[str] = field(default_factory=lambda: list(DEFAULT_MEASURE_NAMES))

    def __post_init__(self) -> None:
        if self.repeats < 0:
            raise ValueError(f"repeats must be non-negative, got {self.repeats}.")
        unknown = [name for name in self.measures if name not in MEASURES]
        if unknown:
            raise ValueError(f"Unknown measures {unknown}. Choose from {sorted(MEASURES)}.")

    @property
    def outputs(self) -> OutputPaths:
        return OutputPaths(self.output_dir)

    def save(self, filepath: str) -> None:
        """Persist the configuration to disk."""

        with open(filepath, "w", encoding="utf-8") as handle:
            json.dump(asdict(self), handle, indent=2)

    @classmethod
    def load(cls, filepath: str) -> "ExperimentConfig":
        """Reconstruct an experiment configuration from disk."""

        with open(filepath, "r", encoding="utf-8") as handle:
            payload = json.load(handle)

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {filepath}: {unknown}")

        for key in ("train", "test"):
            if key in payload:
                payload[key] = ClassDataConfig(**payload[key])
        return cls(**payload)


def create_default_config(
    name: str = "ldb_comparison",
    signal: str = "cbf",
    repeats: int = 10,
    train_size: int = 33,
    test_size: int = 333,
    seed: Optional[int] = None,
    output_dir: str = "./results",
    **overrides: Any,
) -> ExperimentConfig:
    """Factory for the canonical comparison configuration.

    Both data sets draw `train_size`/`test_size` signals per class from the
    same signal family. Remaining keyword arguments are forwarded to
    `ExperimentConfig`.
    """

    description = overrides.pop(
        "description",
        f"Raw signal vs. LDB features on '{signal}' data, {repeats} repeats.",
    )

    return ExperimentConfig(
        name=name,
        description=description,
        train=ClassDataConfig(signal, train_size, train_size, train_size),
        test=ClassDataConfig(signal, test_size, test_size, test_size),
        repeats=repeats,
        seed=seed,
        output_dir=output_dir,
        **overrides,
    )


def default_transforms(n_features: int = 10, wavelet: str = "db2") -> Dict[str, Optional[WaveletPacketFeatures]]:
    """Raw-signal baseline plus one LDB variant per discriminant measure."""

    transforms: Dict[str, Optional[WaveletPacketFeatures]] = {"raw": None}
    for discriminant in DISCRIMINANT_MEASURES:
        transforms[f"ldb_{discriminant}"] = WaveletPacketFeatures(
            wavelet=wavelet,
            n_features=n_features,
            discriminant=discriminant,
        )
    return transforms


def default_classifiers(random_state: Optional[int] = None) -> Dict[str, Any]:
    """Classifier variants compared in every grid cell."""

    return {
        "lda": LinearDiscriminantAnalysis(),
        "knn": KNeighborsClassifier(n_neighbors=5),
        "tree": DecisionTreeClassifier(random_state=random_state),
        "forest": RandomForestClassifier(n_estimators=100, random_state=random_state),
        "svc": SVC(random_state=random_state),
    }
