# -- Particle Visualizations -- #

'''
Plotly-based interactive plots of SPH particle snapshots and
per-stage solver timings.
'''

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go

from sphFluid.sph.protocols import Box3
from sphFluid.sph.profiler import Profiler
from sphFluid.visualization import theme


def _boxEdges(bounds: Box3) -> tuple[list, list, list]:
    '''Line segments of the 12 box edges, separated by None.'''
    lo, hi = bounds.min, bounds.max
    corners = np.array([
        [lo[0], lo[1], lo[2]], [hi[0], lo[1], lo[2]], [hi[0], hi[1], lo[2]], [lo[0], hi[1], lo[2]],
        [lo[0], lo[1], hi[2]], [hi[0], lo[1], hi[2]], [hi[0], hi[1], hi[2]], [lo[0], hi[1], hi[2]],
    ])
    edges = [(0, 1), (1, 2), (2, 3), (3, 0), (4, 5), (5, 6), (6, 7), (7, 4), (0, 4), (1, 5), (2, 6), (3, 7)]

    xs, ys, zs = [], [], []
    for a, b in edges:
        xs += [corners[a, 0], corners[b, 0], None]
        ys += [corners[a, 1], corners[b, 1], None]
        zs += [corners[a, 2], corners[b, 2], None]
    return xs, ys, zs


def plotParticles(
    positions: np.ndarray,
    values: np.ndarray | None = None,
    bounds: Box3 | None = None,
    title: str = 'SPH Particles',
    markerSize: float = 2.0,
) -> go.Figure:
    '''
    3D scatter of particle positions.

    The simulation uses y as the up axis; it is mapped to the Plotly
    z axis so the fluid stands upright.

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions, shape (N, 3)
    values : np.ndarray | None
        Per-particle scalar for coloring (e.g. speed)
    bounds : Box3 | None
        Domain drawn as a wireframe box
    title : str
        Figure title
    markerSize : float
        Marker size [px]

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    positions = np.asarray(positions, dtype=np.float64)

    if values is None:
        marker = dict(size=markerSize, color=theme.BLUE)
    else:
        marker = dict(
            size=markerSize, color=np.asarray(values),
            colorscale=theme.SPEED_COLORSCALE, showscale=True,
            colorbar=dict(title='Speed (m/s)'),
        )

    fig = go.Figure()
    fig.add_trace(go.Scatter3d(
        x=positions[:, 0], y=positions[:, 2], z=positions[:, 1],
        mode='markers', name='Particles', marker=marker,
    ))

    if bounds is not None:
        xs, ys, zs = _boxEdges(bounds)
        fig.add_trace(go.Scatter3d(
            x=xs, y=zs, z=ys, mode='lines', name='Domain',
            line=dict(color=theme.REFERENCE_LINE, width=2),
            showlegend=False,
        ))

    fig.update_layout(
        title=title,
        scene=dict(
            xaxis_title='x (m)',
            yaxis_title='z (m)',
            zaxis_title='y (m)',
            aspectmode='data',
        ),
        template=theme.TEMPLATE,
        height=600,
    )

    return fig


def plotProfile(profiler: Profiler) -> go.Figure:
    '''
    Bar chart of the mean time per call of every profiler scope.

    Parameters:
    -----------
    profiler : Profiler
        Profiler with recorded scopes

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    scopes = profiler.scopes
    names = [s.name for s in scopes]
    meanMs = [s.meanSeconds * 1000.0 for s in scopes]
    colors = [theme.STAGE_COLORS[i % len(theme.STAGE_COLORS)] for i in range(len(scopes))]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=names, y=meanMs, marker_color=colors,
        text=[f'{v:.2f}' for v in meanMs], textposition='outside',
    ))

    fig.update_layout(
        title='Solver Stage Timings',
        xaxis_title='Stage',
        yaxis_title='Mean Time per Step (ms)',
        template=theme.TEMPLATE,
        height=400,
    )

    return fig
