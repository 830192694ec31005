"""Tests for plotting helpers."""

import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from ldb_experiments.core.transforms import WaveletPacketFeatures
from ldb_experiments.core.visualization import (
    ExperimentVisualizer,
    plot_aggregate,
    plot_coefficients,
    plot_tiling,
)


@pytest.fixture
def aggregate():
    return pd.DataFrame({
        "Method": ["raw", "ldb", "raw", "ldb"],
        "Classifier": ["knn", "knn", "tree", "tree"],
        "Train_Accuracy": [0.9, 0.95, 1.0, 1.0],
        "Test_Accuracy": [0.7, 0.85, 0.6, 0.8],
    })


def test_create_report(tmp_path, aggregate):
    created = ExperimentVisualizer({"Accuracy": aggregate}).create_report(str(tmp_path / "plots"))
    assert list(created) == ["Accuracy"]
    assert os.path.exists(created["Accuracy"])


def test_plot_aggregate_needs_split_column(aggregate):
    with pytest.raises(ValueError):
        plot_aggregate(aggregate, split="Validation")


def test_plot_coefficients_needs_two_features():
    with pytest.raises(ValueError):
        plot_coefficients(np.zeros((4, 1)), np.array([1, 1, 2, 2]))


def test_plot_tiling_saves(tmp_path, trial_data):
    transform = WaveletPacketFeatures(n_features=4).fit(trial_data.X_train, trial_data.y_train)
    path = str(tmp_path / "tiling.png")
    fig = plot_tiling(transform, save_path=path)
    plt.close(fig)
    assert os.path.exists(path)
