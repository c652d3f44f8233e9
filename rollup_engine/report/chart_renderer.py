import logging
from pathlib import Path

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from rollup_engine.common.errors import OutputWriteError, RenderError
from rollup_engine.report.assembler import CostReport

IMAGE_FORMATS = {
    ".png": "png",
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".svg": "svg",
}


class PlotlyChartRenderer:
    """Bar chart of per-child totals with the matching pie chart to its right."""

    def __init__(self, bar_width: int = 800, pie_width: int = 600, height: int = 400, logger=None):
        self.bar_width = bar_width
        self.pie_width = pie_width
        self.height = height
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, report_cfg: dict, logger=None) -> "PlotlyChartRenderer":
        return cls(
            bar_width=int(report_cfg["bar_width"]),
            pie_width=int(report_cfg["pie_width"]),
            height=int(report_cfg["height"]),
            logger=logger,
        )

    def build_figure(self, report: CostReport) -> go.Figure:
        total_width = self.bar_width + self.pie_width
        fig = make_subplots(
            rows=1,
            cols=2,
            column_widths=[self.bar_width / total_width, self.pie_width / total_width],
            specs=[[{"type": "xy"}, {"type": "domain"}]],
            horizontal_spacing=0.0,
        )
        fig.add_trace(
            go.Bar(
                name="Level2",
                x=report.categories,
                y=report.values,
                showlegend=False,
            ),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Pie(
                labels=report.categories,
                values=report.values,
                sort=False,
                showlegend=True,
            ),
            row=1,
            col=2,
        )
        fig.update_layout(
            title=report.title,
            width=total_width,
            height=self.height,
            margin=dict(l=20, r=0, t=50, b=0),
        )
        return fig

    @staticmethod
    def image_format(output_path: Path) -> str:
        suffix = Path(output_path).suffix.lower()
        if suffix not in IMAGE_FORMATS:
            raise RenderError(
                f"Unsupported chart output type '{suffix}' (expected one of {sorted(IMAGE_FORMATS)})"
            )
        return IMAGE_FORMATS[suffix]

    def _encode(self, fig: go.Figure, fmt: str) -> bytes:
        try:
            return fig.to_image(format=fmt)
        except Exception as e:
            raise RenderError(f"Failed to render chart as {fmt}: {e}") from e

    def render(self, report: CostReport, output_path: Path) -> Path:
        output_path = Path(output_path)
        fmt = self.image_format(output_path)
        fig = self.build_figure(report)
        contents = self._encode(fig, fmt)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "wb") as f:
                f.write(contents)
        except OSError as e:
            raise OutputWriteError(output_path, e) from e

        self.logger.info("Chart written: %s (%d bytes)", output_path, len(contents))
        return output_path
