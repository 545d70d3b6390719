"""
Departure curve visualization.
"""

import plotly.graph_objects as go

from .metrics import DepartureCurve


def create_departure_figure(curve: DepartureCurve, title: str = "When do trips start?") -> go.Figure:
    """Line plot of the moving departure count."""
    if not curve.points:
        return go.Figure().add_annotation(text="No trips", showarrow=False)

    df = curve.to_dataframe()

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=df['hours'],
        y=df['departures'],
        mode='lines',
        name='Departures',
        line=dict(color='#e74c3c', width=2),
        hovertemplate='Hour: %{x:.2f}<br>Departures: %{y:,}<extra></extra>'
    ))

    fig.update_layout(
        title=title,
        xaxis_title='Hour of Day',
        yaxis_title=f'Departures in trailing {curve.window / 60:g} minutes',
        height=400,
        showlegend=False
    )

    return fig
