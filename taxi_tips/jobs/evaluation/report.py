"""
Markdown report of model summaries and evaluation results.
"""
import logging
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Sequence

from taxi_tips.jobs.evaluation.evaluator import EvaluationResult
from taxi_tips.jobs.models.trainers import FittedModel

logger = logging.getLogger(__name__)


def _fmt(value: float, digits: int = 4) -> str:
    return "NaN" if math.isnan(value) else f"{value:.{digits}f}"


def render_report(
        results: Sequence[EvaluationResult],
        models: Sequence[FittedModel],
        report_dir: Path,
        title: str = "NYC Taxi Tip Regression",
) -> str:
    by_name = {m.name: m for m in models}
    lines = [
        f"# {title}",
        "",
        f"Generated {datetime.now().isoformat(timespec='seconds')}",
        "",
        "| Model | Test R² | Sample R² | Slope | Intercept | Test rows |",
        "|---|---|---|---|---|---|",
    ]
    for r in results:
        lines.append(
            f"| {r.model_name} | {_fmt(r.r2)} | {_fmt(r.sample_r2)} | "
            f"{_fmt(r.slope, 3)} | {_fmt(r.intercept, 3)} | {r.test_rows:,} |"
        )

    for r in results:
        lines += ["", f"## {r.model_name}", ""]
        model = by_name.get(r.model_name)
        if model is not None:
            lines += ["```", model.summary, "```", ""]
        plot = os.path.relpath(r.plot_path, report_dir)
        lines.append(f"![{r.model_name} actual vs predicted]({plot})")

    return "\n".join(lines) + "\n"


def write_report(
        results: Sequence[EvaluationResult],
        models: Sequence[FittedModel],
        path: Path,
) -> Path:
    """
    Write the markdown report next to the plot images.

    :returns: Path of the written report
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_report(results, models, path.parent), encoding="utf-8")
    logger.info(f"Wrote report: {path}")
    return path
