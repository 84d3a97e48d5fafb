"""
Actual vs predicted scatter plots.
"""
import logging
import math
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

logger = logging.getLogger(__name__)


def plot_predictions(
        sample: pd.DataFrame,
        slope: float,
        intercept: float,
        title: str,
        path: Path,
        actual_col: str = "actual",
        predicted_col: str = "predicted",
) -> Path:
    """
    Scatter predicted against actual tip amounts with the fitted reference line.

    The line is omitted when slope or intercept is NaN.

    :returns: Path of the written PNG
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(7, 6))
    try:
        ax.scatter(sample[actual_col], sample[predicted_col], s=8, alpha=0.5)

        if not (math.isnan(slope) or math.isnan(intercept)):
            lo, hi = sample[actual_col].min(), sample[actual_col].max()
            ax.plot(
                [lo, hi],
                [slope * lo + intercept, slope * hi + intercept],
                color="red",
                linewidth=1.5,
                label=f"y = {slope:.3f}x + {intercept:.3f}",
            )
            ax.legend(loc="upper left")

        ax.set_xlabel("Actual tip amount")
        ax.set_ylabel("Predicted tip amount")
        ax.set_title(title)
        fig.tight_layout()
        fig.savefig(path, dpi=100)
    finally:
        plt.close(fig)

    logger.info(f"Wrote plot: {path}")
    return path
