"""
ltrnet/utils.py - Utility functions for evaluation and visualization
"""

from typing import Dict, Sequence

import numpy as np
import matplotlib.pyplot as plt


def compute_ndcg(ranked_labels: Sequence[float], k: int = 10) -> float:
    """
    Compute NDCG@k (Normalized Discounted Cumulative Gain)

    Args:
        ranked_labels: Relevance labels in predicted order
        k: Cutoff position

    Returns:
        NDCG@k score, 0.0 when the ideal DCG is zero
    """
    if k <= 0:
        return 0.0

    labels = np.asarray(ranked_labels, dtype=float)
    discounts = np.log2(np.arange(2, min(k, labels.size) + 2))

    # Calculate DCG@k
    dcg = np.sum((2 ** labels[:k] - 1) / discounts)

    # Calculate ideal DCG@k
    ideal = np.sort(labels)[::-1][:k]
    idcg = np.sum((2 ** ideal - 1) / discounts)

    return float(dcg / idcg) if idcg > 0 else 0.0


def plot_training_history(history: Dict, save_path: str = None):
    """
    Plot training history

    Args:
        history: Dictionary with 'train_losses', 'val_losses' and optionally 'ndcg'
        save_path: Path to save figure
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    epochs = history.get('epochs') or range(1, len(history['train_losses']) + 1)
    ax.plot(epochs, history['train_losses'], label='Training Loss')
    if 'val_losses' in history:
        ax.plot(epochs, history['val_losses'], label='Validation Loss')
    ax.set_xlabel('Epoch')
    ax.set_ylabel('Loss')
    ax.grid(True, alpha=0.3)

    if history.get('ndcg'):
        ax2 = ax.twinx()
        ax2.plot(epochs, history['ndcg'], color='tab:green', linestyle='--', label='NDCG')
        ax2.set_ylabel('NDCG')
        ax2.set_ylim(0, 1)
        ax2.legend(loc='upper right')

    ax.set_title('Training History')
    ax.legend(loc='upper left')
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path)
        plt.close(fig)
    else:
        plt.show()
