# -- SPH Particle Field -- #

'''
Struct-of-arrays particle state for the SPH solver.

Stores positions, velocities, surface normals, forces, densities and
pressures as contiguous NumPy arrays, one row per particle. Slots are
reordered by every grid rebuild, so a slot is not a stable identity;
the ids array follows every reorder and carries the identity instead.
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


_VECTOR_FIELDS = ('positions', 'velocities', 'normals', 'forces')
_SCALAR_FIELDS = ('densities', 'pressures', 'ids')


@dataclass
class ParticleField:
    '''
    SPH particle field.

    All vector arrays have shape (N, 3) and all scalar arrays shape (N,).
    N is fixed once the field is created.

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions [m], shape (N, 3)
    velocities : np.ndarray
        Particle velocities [m/s], shape (N, 3)
    normals : np.ndarray
        Color field gradient used as surface normal, shape (N, 3)
    forces : np.ndarray
        Accumulated forces [N], shape (N, 3)
    densities : np.ndarray
        Particle densities [kg/m^3], shape (N,)
    pressures : np.ndarray
        Particle pressures [Pa], shape (N,)
    ids : np.ndarray
        Stable particle identities, shape (N,)
    '''

    positions: np.ndarray
    velocities: np.ndarray
    normals: np.ndarray
    forces: np.ndarray
    densities: np.ndarray
    pressures: np.ndarray
    ids: np.ndarray

    def __post_init__(self) -> None:
        n = len(self.positions)
        if n == 0:
            raise ValueError('A particle field needs at least one particle')
        for name in _VECTOR_FIELDS:
            if getattr(self, name).shape != (n, 3):
                raise ValueError(f'{name} has shape {getattr(self, name).shape}, expected ({n}, 3)')
        for name in _SCALAR_FIELDS:
            if getattr(self, name).shape != (n,):
                raise ValueError(f'{name} has shape {getattr(self, name).shape}, expected ({n},)')

    @classmethod
    def fromPositions(cls, positions: np.ndarray, restDensity: float = 0.0) -> ParticleField:
        '''
        Create a field at rest from initial positions.

        Parameters:
        -----------
        positions : np.ndarray
            Initial positions [m], shape (N, 3)
        restDensity : float
            Initial density assigned to every particle [kg/m^3]

        Returns:
        --------
        ParticleField : Field with zero velocities, normals, forces and pressures
        '''
        positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        n = len(positions)
        return cls(
            positions=positions,
            velocities=np.zeros((n, 3)),
            normals=np.zeros((n, 3)),
            forces=np.zeros((n, 3)),
            densities=np.full(n, float(restDensity)),
            pressures=np.zeros(n),
            ids=np.arange(n, dtype=np.int64),
        )

    ######################################################################
    # -- Reordering -- #
    ######################################################################

    def swap(self, i: int, j: int) -> None:
        '''Exchange slots i and j in every co-indexed array.'''
        pair = [i, j]
        flipped = [j, i]
        for name in _VECTOR_FIELDS + _SCALAR_FIELDS:
            array = getattr(self, name)
            array[pair] = array[flipped]

    def permute(self, order: np.ndarray) -> None:
        '''
        Reorder every co-indexed array in place.

        New slot k holds the particle previously stored in slot order[k].
        The arrays keep their identity, so external references stay valid.
        '''
        for name in _VECTOR_FIELDS + _SCALAR_FIELDS:
            array = getattr(self, name)
            array[...] = array[order]

    ######################################################################
    # -- Queries -- #
    ######################################################################

    @property
    def nParticles(self) -> int:
        '''Number of particles.'''
        return self.positions.shape[0]

    def slotsOf(self, ids: np.ndarray) -> np.ndarray:
        '''Current slots of the particles with the given stable ids.'''
        inverse = np.empty_like(self.ids)
        inverse[self.ids] = np.arange(self.nParticles, dtype=self.ids.dtype)
        return inverse[np.asarray(ids)]

    def positionsById(self) -> np.ndarray:
        '''Positions ordered by stable id (independent of slot churn).'''
        return self.positions[np.argsort(self.ids, kind='stable')]

    def kineticEnergy(self, particleMass: float) -> float:
        '''
        Total kinetic energy.

        KE = (1/2) * m * sum_i |v_i|^2

        Parameters:
        -----------
        particleMass : float
            Uniform particle mass [kg]

        Returns:
        --------
        float : Kinetic energy [J]
        '''
        speedsSq = np.sum(self.velocities * self.velocities, axis=1)
        return float(0.5 * particleMass * np.sum(speedsSq))

    def maxSpeed(self) -> float:
        '''Maximum velocity magnitude [m/s].'''
        return float(np.max(np.linalg.norm(self.velocities, axis=1)))

    def maxDensityError(self, restDensity: float) -> float:
        '''Maximum relative density error max |rho_i - rho_0| / rho_0.'''
        errors = np.abs(self.densities - restDensity) / restDensity
        return float(np.max(errors))
