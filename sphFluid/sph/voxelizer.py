# -- Fill Volume Voxelizer -- #

'''
Fills input volumes with a regular lattice of particles.

The lattice is global: points sit at integer multiples of the rest
spacing, so overlapping or adjacent volumes share lattice points
instead of producing staggered layers. A box takes every lattice
point inside its extents, a sphere every lattice point whose
distance to the center is at most the radius.

Run once before the simulation starts; not part of the per-step loop.
'''

from __future__ import annotations

import math

import numpy as np

from sphFluid.sph.protocols import Box3, SphereVolume


# Relative slack on lattice bounds so that points lying on a face
# (up to floating point rounding of min/spacing) are kept
_LATTICE_EPS = 1e-6


def _latticeRange(lower: np.ndarray, upper: np.ndarray, spacing: float) -> list[np.ndarray]:
    axes = []
    for d in range(3):
        first = math.ceil(lower[d] / spacing - _LATTICE_EPS)
        last = math.floor(upper[d] / spacing + _LATTICE_EPS)
        axes.append(np.arange(first, last + 1, dtype=np.int64))
    return axes


def _latticePoints(axes: list[np.ndarray], spacing: float) -> np.ndarray:
    # x varies fastest, then y, then z
    zz, yy, xx = np.meshgrid(axes[2], axes[1], axes[0], indexing='ij')
    return np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()]).astype(np.float64) * spacing


def voxelizeBox(box: Box3, spacing: float) -> np.ndarray:
    '''
    Lattice points inside a box.

    Parameters:
    -----------
    box : Box3
        Fill volume
    spacing : float
        Lattice spacing [m]

    Returns:
    --------
    np.ndarray : Particle positions, shape (M, 3)
    '''
    if not spacing > 0.0:
        raise ValueError(f'Lattice spacing must be positive, got {spacing}')
    return _latticePoints(_latticeRange(box.min, box.max, spacing), spacing)


def voxelizeSphere(sphere: SphereVolume, spacing: float) -> np.ndarray:
    '''
    Lattice points inside a sphere.

    Parameters:
    -----------
    sphere : SphereVolume
        Fill volume
    spacing : float
        Lattice spacing [m]

    Returns:
    --------
    np.ndarray : Particle positions, shape (M, 3)
    '''
    if not spacing > 0.0:
        raise ValueError(f'Lattice spacing must be positive, got {spacing}')
    axes = _latticeRange(sphere.center - sphere.radius, sphere.center + sphere.radius, spacing)
    points = _latticePoints(axes, spacing)
    distSq = np.sum((points - sphere.center) ** 2, axis=1)
    return points[distSq <= sphere.radius * sphere.radius]


class Voxelizer:
    '''
    Accumulates the lattice fill of several volumes.

    Usage:
        voxelizer = Voxelizer(restSpacing)
        voxelizer.addBox(box)
        voxelizer.addSphere(sphere)
        positions = voxelizer.positions()

    Parameters:
    -----------
    spacing : float
        Lattice spacing [m]
    '''

    def __init__(self, spacing: float) -> None:
        if not spacing > 0.0:
            raise ValueError(f'Lattice spacing must be positive, got {spacing}')
        self._spacing = spacing
        self._chunks: list[np.ndarray] = []

    def addBox(self, box: Box3) -> int:
        '''Append the fill of a box; returns the number of particles added.'''
        points = voxelizeBox(box, self._spacing)
        self._chunks.append(points)
        return len(points)

    def addSphere(self, sphere: SphereVolume) -> int:
        '''Append the fill of a sphere; returns the number of particles added.'''
        points = voxelizeSphere(sphere, self._spacing)
        self._chunks.append(points)
        return len(points)

    @property
    def nParticles(self) -> int:
        '''Number of particles accumulated so far.'''
        return sum(len(c) for c in self._chunks)

    def positions(self) -> np.ndarray:
        '''All accumulated positions in insertion order, shape (M, 3).'''
        if not self._chunks:
            return np.zeros((0, 3))
        return np.vstack(self._chunks)
