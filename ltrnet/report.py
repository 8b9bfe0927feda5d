"""
ltrnet/report.py - Per-epoch training report
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .utils import plot_training_history

logger = logging.getLogger(__name__)

COLUMNS = ['epoch', 'ndcg', 'train_loss', 'validation_loss']


class Report:
    """
    Collects (epoch, ndcg, train loss, validation loss) rows.

    On close the rows are written as CSV (when `path` is set) and the
    training history is plotted (when `plot_path` is set).
    """

    def __init__(self, path: Optional[Union[str, Path]] = None,
                 plot_path: Optional[Union[str, Path]] = None):
        self.path = path
        self.plot_path = plot_path
        self.rows = []
        self.closed = False

    def log(self, epoch: int, ndcg: float, train_loss: float, validation_loss: float) -> None:
        if self.closed:
            raise RuntimeError("Report is closed")
        self.rows.append((epoch, ndcg, train_loss, validation_loss))
        logger.info(
            f"epoch={epoch} ndcg={ndcg:.4f} tr_loss={train_loss:.6f} va_loss={validation_loss:.6f}"
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=COLUMNS)

    def history(self) -> dict:
        df = self.to_frame()
        return {
            'epochs': df['epoch'].tolist(),
            'ndcg': df['ndcg'].tolist(),
            'train_losses': df['train_loss'].tolist(),
            'val_losses': df['validation_loss'].tolist(),
        }

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True

        if self.path:
            _ensure_parent(self.path)
            self.to_frame().to_csv(self.path, index=False)
            logger.info(f"Report written to {self.path}")

        if self.plot_path and self.rows:
            _ensure_parent(self.plot_path)
            plot_training_history(self.history(), save_path=str(self.plot_path))


def _ensure_parent(path) -> None:
    directory = os.path.dirname(str(path))
    if directory:
        os.makedirs(directory, exist_ok=True)
