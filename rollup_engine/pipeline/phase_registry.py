from rollup_engine.report.chart_renderer import PlotlyChartRenderer


RENDERERS = {
    "plotly": PlotlyChartRenderer,
}
