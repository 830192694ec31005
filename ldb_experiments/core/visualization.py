"""Visualization module for LDB features and comparison results.

This module provides plotting functions for the discriminant basis (basis
vectors, selected packet tiling, top coefficients) and for aggregated
method/classifier scores.
"""

import os
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.patches import Rectangle


class PlotStyle:
    """Consistent plotting style configuration."""

    def __init__(self):
        self.setup_style()

    def setup_style(self):
        """Setup matplotlib and seaborn styles."""
        plt.style.use('default')
        sns.set_palette("husl")

        # Marker and colour per class in coefficient scatter plots
        self.class_markers = ['o', '*', 'P', 's', 'D']
        self.class_colors = ['black', 'gold', 'green', '#1f77b4', '#d62728']

    def get_class_style(self, index: int) -> Dict[str, str]:
        """Get marker and colour for the class at `index`."""
        return {
            'marker': self.class_markers[index % len(self.class_markers)],
            'color': self.class_colors[index % len(self.class_colors)],
        }


def _finish(fig: plt.Figure, save_path: Optional[str]) -> plt.Figure:
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    return fig


def plot_coefficients(features: np.ndarray, labels: np.ndarray,
                      save_path: str = None) -> plt.Figure:
    """Scatter the top-2 coefficients of every signal, one marker per class."""
    features = np.asarray(features)
    labels = np.asarray(labels)
    if features.ndim != 2 or features.shape[1] < 2:
        raise ValueError("Coefficient scatter needs at least two features per signal.")

    style = PlotStyle()
    fig, ax = plt.subplots(figsize=(7, 6))
    for i, label in enumerate(np.unique(labels)):
        mask = labels == label
        class_style = style.get_class_style(i)
        ax.scatter(features[mask, 0], features[mask, 1],
                   marker=class_style['marker'], color=class_style['color'],
                   label=f'Class {label}')

    ax.set_xlabel('Coefficient 1')
    ax.set_ylabel('Coefficient 2')
    ax.set_title('Top-2 LDB coefficients', fontweight='bold')
    ax.legend()
    ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_basis_vectors(vectors: np.ndarray, save_path: str = None) -> plt.Figure:
    """Plot each column of `vectors` as a stacked line."""
    vectors = np.asarray(vectors)
    fig, axes = plt.subplots(vectors.shape[1], 1, figsize=(8, 2 * vectors.shape[1]),
                             sharex=True, squeeze=False)
    for j, ax in enumerate(axes[:, 0]):
        ax.plot(vectors[:, j], color='#1f77b4')
        ax.set_ylabel(f'#{j + 1}')
        ax.grid(True, alpha=0.3)

    axes[0, 0].set_title('LDB basis vectors', fontweight='bold')
    axes[-1, 0].set_xlabel('Sample')
    return _finish(fig, save_path)


def plot_tiling(transform, save_path: str = None) -> plt.Figure:
    """Draw the time-frequency tiling of the selected packet level.

    The top ranked coefficients are shaded by discriminant power.
    """
    level = transform.level_
    n = len(transform.order_)
    n_bands = len(transform.paths_)
    band_size = n // n_bands

    fig, ax = plt.subplots(figsize=(8, 5))
    for band in range(1, n_bands):
        ax.axhline(band / n_bands, color='black', linewidth=0.8)

    power = transform.discriminant_power_
    top = transform.order_[:transform.n_features_]
    peak = power[top].max() if power[top].max() > 0 else 1.0
    for position in top:
        band, offset = divmod(int(position), band_size)
        ax.add_patch(Rectangle(
            (offset / band_size, band / n_bands), 1 / band_size, 1 / n_bands,
            color='darkgreen', alpha=0.2 + 0.8 * power[position] / peak,
        ))

    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.set_xlabel('Time')
    ax.set_ylabel('Frequency')
    ax.set_title(f'Selected wavelet packet level {level}', fontweight='bold')
    return _finish(fig, save_path)


def plot_aggregate(aggregate: pd.DataFrame, split: str = 'Test',
                   save_path: str = None) -> plt.Figure:
    """Bar plot of mean scores per method, grouped by classifier."""
    columns = [col for col in aggregate.columns if col.startswith(f'{split}_')]
    if not columns:
        raise ValueError(f"No '{split}_' column in aggregate table: {list(aggregate.columns)}")
    value_col = columns[0]

    sns.set_theme(style="whitegrid")
    fig, ax = plt.subplots(figsize=(12, 6))
    sns.barplot(data=aggregate, x='Classifier', y=value_col, hue='Method',
                palette='Set2', ax=ax)

    ax.set_ylabel(f'Mean {value_col.replace("_", " ")}', fontsize=12)
    ax.set_title(f'{value_col.split("_", 1)[1]} by method and classifier',
                 fontsize=14, fontweight='bold')
    ax.legend(title='Method', bbox_to_anchor=(1.02, 1), loc='upper left')
    return _finish(fig, save_path)


class ExperimentVisualizer:
    """Renders one figure per aggregated measure."""

    def __init__(self, aggregates: Dict[str, pd.DataFrame]):
        self.aggregates = aggregates
        self.style = PlotStyle()

    def create_report(self, output_dir: str) -> Dict[str, str]:
        """Save a test-score bar plot per measure and return the file paths."""
        os.makedirs(output_dir, exist_ok=True)

        created = {}
        for measure, table in self.aggregates.items():
            path = os.path.join(output_dir, f'{measure}.png')
            fig = plot_aggregate(table, save_path=path)
            plt.close(fig)
            created[measure] = path
        return created
