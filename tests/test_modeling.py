"""Tests for measures, feature extraction, model fitting and evaluation."""

import matplotlib.pyplot as plt
import numpy as np
import pytest
from sklearn.metrics import accuracy_score
from sklearn.neighbors import KNeighborsClassifier

from ldb_experiments.core.modeling import (
    MEASURES,
    FittedTransform,
    Measure,
    coerce_labels,
    default_measures,
    evaluate_model,
    extract_features,
    fit_model,
    fit_transform_variant,
    get_measures,
    misclassification_rate,
)
from ldb_experiments.core.transforms import WaveletPacketFeatures


class TestMeasures:
    """Tests for named measures."""

    def test_call_order(self):
        calls = []

        def scorer(y_true, y_pred):
            calls.append((list(y_true), list(y_pred)))
            return 1

        measure = Measure("Recorder", scorer)
        assert measure([1, 2], [3, 4]) == 1.0
        assert calls == [([3, 4], [1, 2])]

    def test_invalid_name(self):
        with pytest.raises(ValueError):
            Measure("balanced_accuracy", accuracy_score)

    @pytest.mark.parametrize("name", ["Précision", "Genauigkeit²", ""])
    def test_rejects_names_outside_header_characters(self, name):
        with pytest.raises(ValueError):
            Measure(name, accuracy_score)

    def test_registry(self):
        assert [m.name for m in default_measures()] == ["Accuracy", "MisclassificationRate", "MacroF1"]
        assert not MEASURES["MisclassificationRate"].greater_is_better

    def test_unknown_measure(self):
        with pytest.raises(ValueError):
            get_measures(["Accuracy", "Nope"])

    def test_misclassification_rate(self):
        assert misclassification_rate([1, 1, 2, 2], [1, 2, 2, 2]) == pytest.approx(0.25)


class TestFeatures:
    """Tests for transform fitting and feature extraction."""

    def test_raw_path(self, trial_data):
        fitted, features = fit_transform_variant(None, trial_data.X_train, trial_data.y_train)
        assert fitted.is_raw
        np.testing.assert_array_equal(features, trial_data.X_train)
        np.testing.assert_array_equal(fitted.apply(trial_data.X_test), trial_data.X_test)

    def test_fit_uses_clone(self, trial_data):
        transform = WaveletPacketFeatures(n_features=4)
        fitted, features = fit_transform_variant(transform, trial_data.X_train, trial_data.y_train)
        assert fitted.estimator is not transform
        assert not hasattr(transform, "order_")
        assert features.shape == (30, 4)
        np.testing.assert_allclose(fitted.apply(trial_data.X_train), features)

    def test_plots_need_transform(self, trial_data):
        with pytest.raises(ValueError):
            extract_features(None, trial_data.X_train, trial_data.y_train, return_plots=True)

    def test_plots(self, trial_data):
        fitted, features, plots = extract_features(
            WaveletPacketFeatures(n_features=4), trial_data.X_train, trial_data.y_train,
            return_plots=True, n_vectors=2,
        )
        assert set(plots) == {"basis_vectors", "tiling", "coefficients"}
        assert features.shape == (30, 4)
        for fig in plots.values():
            plt.close(fig)

    def test_continuous_labels_rejected(self):
        with pytest.raises(ValueError):
            coerce_labels([0.1, 0.2, 0.3])


class TestModel:
    """Tests for fit_model and evaluate_model."""

    def test_fit_and_evaluate(self, trial_data, measures):
        fitted, features = fit_transform_variant(
            WaveletPacketFeatures(n_features=5), trial_data.X_train, trial_data.y_train
        )
        classifier = KNeighborsClassifier(n_neighbors=3)
        model = fit_model(fitted, classifier, trial_data.X_train, trial_data.y_train, features=features)

        assert not hasattr(classifier, "classes_")
        assert model.predict(trial_data.X_test).shape == trial_data.y_test.shape

        scores = evaluate_model(model, trial_data.X_test, trial_data.y_test, measures)
        assert set(scores) == {"Accuracy", "MisclassificationRate"}
        assert all(isinstance(value, float) for value in scores.values())
        assert 0.0 <= scores["Accuracy"] <= 1.0

    def test_fit_without_precomputed_features(self, trial_data):
        model = fit_model(FittedTransform(), KNeighborsClassifier(n_neighbors=1),
                          trial_data.X_train, trial_data.y_train)
        scores = evaluate_model(model, trial_data.X_train, trial_data.y_train, [MEASURES["Accuracy"]])
        assert scores["Accuracy"] == 1.0

    def test_duplicate_measure_names_last_wins(self, trial_data):
        model = fit_model(FittedTransform(), KNeighborsClassifier(n_neighbors=1),
                          trial_data.X_train, trial_data.y_train)
        measures = [Measure("Score", accuracy_score), Measure("Score", misclassification_rate)]
        scores = evaluate_model(model, trial_data.X_train, trial_data.y_train, measures)
        assert scores == {"Score": 0.0}
