"""
Visualization tools for persistence diagrams and kernel embeddings.
"""

import numpy as np
from typing import Optional
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

from .diagrams import as_diagram
from .exceptions import ParameterError


def plot_persistence_diagram(diagram,
                             dim: Optional[int] = None,
                             title: str = 'Persistence Diagram',
                             save_path: Optional[str] = None,
                             show: bool = False) -> plt.Figure:
    """
    Plot persistence diagram, one color per homological dimension.

    Args:
        diagram: Persistence diagram with (dimension, birth, death) rows
        dim: Only plot this dimension; all dimensions when None
        title: Plot title
        save_path: Path to save figure
        show: Whether to display figure

    Returns:
        matplotlib Figure
    """
    diagram = as_diagram(diagram)
    dims = np.unique(diagram.dimensions) if dim is None else np.array([dim])

    fig, ax = plt.subplots(figsize=(8, 8))
    cmap = plt.get_cmap('tab10')

    plotted = 0
    for i, d in enumerate(dims):
        pts = diagram.points_in_dim(int(d))
        if len(pts) == 0:
            continue
        ax.scatter(pts[:, 0], pts[:, 1], color=cmap(i % 10), s=50, alpha=0.7,
                   edgecolors='black', label=f'H{int(d)}')
        plotted += len(pts)

    if plotted == 0:
        ax.text(0.5, 0.5, 'Empty Persistence Diagram',
                ha='center', va='center', transform=ax.transAxes)
    else:
        max_val = float(diagram.deaths.max())
        max_val = max_val if max_val > 0 else 1.0
        ax.plot([0, max_val], [0, max_val], 'r--', linewidth=2, label='Diagonal')
        ax.legend()
        ax.set_aspect('equal', adjustable='box')

    ax.set_xlabel('Birth', fontsize=12)
    ax.set_ylabel('Death', fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig


def plot_embedding_2d(embedding: np.ndarray,
                      labels: Optional[np.ndarray] = None,
                      title: str = '2D Embedding',
                      save_path: Optional[str] = None) -> plt.Figure:
    """
    Scatter the first two coordinates of a kernel PCA embedding.

    Args:
        embedding: Coordinates, shape (n, k) with k >= 2
        labels: Optional labels for coloring
        title: Plot title
        save_path: Path to save figure

    Returns:
        matplotlib Figure
    """
    embedding = np.asarray(embedding, dtype=float)
    if embedding.ndim != 2 or embedding.shape[1] < 2:
        raise ParameterError("embedding must have at least two columns.",
                             "embedding", embedding.shape)

    fig, ax = plt.subplots(figsize=(10, 8))

    if labels is not None:
        scatter = ax.scatter(embedding[:, 0], embedding[:, 1],
                             c=np.asarray(labels), cmap='tab10', s=50, alpha=0.6,
                             edgecolors='black')
        plt.colorbar(scatter, ax=ax, label='Class')
    else:
        ax.scatter(embedding[:, 0], embedding[:, 1],
                   s=50, alpha=0.6, edgecolors='black')

    ax.set_xlabel('Component 1', fontsize=12)
    ax.set_ylabel('Component 2', fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    plt.close(fig)
    return fig
