"""
Tests for tripbook/simulation/plots.py module.
"""

import plotly.graph_objects as go

from tripbook.simulation.metrics import DepartureCurve
from tripbook.simulation.plots import create_departure_figure


class TestDepartureFigure:
    """Tests for create_departure_figure."""

    def test_one_line_in_hours(self):
        curve = DepartureCurve(points=[(0.0, 0), (3600.0, 2), (7200.0, 0)], window=600.0)
        fig = create_departure_figure(curve)

        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 1
        assert list(fig.data[0].x) == [0.0, 1.0, 2.0]
        assert list(fig.data[0].y) == [0, 2, 0]
        assert "10 minutes" in fig.layout.yaxis.title.text

    def test_custom_title(self):
        curve = DepartureCurve(points=[(0.0, 0)])
        fig = create_departure_figure(curve, title="Rush hour")
        assert fig.layout.title.text == "Rush hour"

    def test_empty_curve(self):
        fig = create_departure_figure(DepartureCurve())
        assert len(fig.data) == 0
