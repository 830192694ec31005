"""Pytest fixtures for ldb_experiments tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from ldb_experiments.core.config import ClassDataConfig, OutputPaths
from ldb_experiments.core.data import generate_trial
from ldb_experiments.core.modeling import get_measures
from ldb_experiments.core.transforms import WaveletPacketFeatures


@pytest.fixture
def output_paths(tmp_path) -> OutputPaths:
    """Output locations inside a temporary directory."""
    return OutputPaths(str(tmp_path / "results"))


@pytest.fixture
def small_train_config() -> ClassDataConfig:
    return ClassDataConfig("tri", 10, 10, 10)


@pytest.fixture
def small_test_config() -> ClassDataConfig:
    return ClassDataConfig("tri", 20, 20, 20)


@pytest.fixture
def trial_data(small_train_config, small_test_config):
    """Seeded triangular-waveform train/test sets."""
    return generate_trial(small_train_config, small_test_config, np.random.default_rng(0))


@pytest.fixture
def transforms():
    return {
        "raw": None,
        "ldb": WaveletPacketFeatures(n_features=5),
    }


@pytest.fixture
def classifiers():
    return [
        KNeighborsClassifier(n_neighbors=3),
        DecisionTreeClassifier(random_state=0),
        GaussianNB(),
    ]


@pytest.fixture
def measures():
    return get_measures(["Accuracy", "MisclassificationRate"])
