# -- SPH Simulation Protocols -- #

'''
Core data structures and protocols shared by the SPH engine.

Defines the geometric primitives (Box3, SphereVolume), the mutable
settings and derived parameters of a simulation, the diagnostic
state snapshot, and the protocols used to decouple the spatial grid
and the collision pass from the particle storage.
'''

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from sphFluid import constants as const


######################################################################
# -- Geometric Primitives -- #
######################################################################

@dataclass
class Box3:
    '''
    Axis-aligned box in 3D.

    Parameters:
    -----------
    min : np.ndarray
        Lower corner [m]
    max : np.ndarray
        Upper corner [m]
    '''

    min: np.ndarray
    max: np.ndarray

    def __post_init__(self) -> None:
        self.min = np.asarray(self.min, dtype=np.float64).reshape(3)
        self.max = np.asarray(self.max, dtype=np.float64).reshape(3)
        if np.any(self.max < self.min):
            raise ValueError(f'Box max {self.max} is below min {self.min}')

    @property
    def extents(self) -> np.ndarray:
        '''Edge lengths along each axis [m].'''
        return self.max - self.min

    def toDict(self) -> dict:
        return {'min': self.min.tolist(), 'max': self.max.tolist()}


@dataclass
class SphereVolume:
    '''
    Sphere fill volume.

    Parameters:
    -----------
    center : np.ndarray
        Sphere center [m]
    radius : float
        Sphere radius [m]
    '''

    center: np.ndarray
    radius: float

    def __post_init__(self) -> None:
        self.center = np.asarray(self.center, dtype=np.float64).reshape(3)
        if self.radius <= 0.0:
            raise ValueError(f'Sphere radius must be positive, got {self.radius}')

    def toDict(self) -> dict:
        return {'center': self.center.tolist(), 'radius': float(self.radius)}


######################################################################
# -- Simulation Settings -- #
######################################################################

@dataclass
class SimulationSettings:
    '''
    Tunable settings of a running simulation.

    May be changed between steps. The solver reads them once per
    step; gravity is the only value a gravity driver rewrites.

    Parameters:
    -----------
    speedOfSound : float
        Artificial speed of sound for the Tait equation of state [m/s]
    viscosity : float
        Laplacian viscosity coefficient
    surfaceTension : float
        Surface tension coefficient (cohesion + curvature)
    restitution : float
        Velocity restitution coefficient on domain walls
    gravity : np.ndarray
        Gravity vector [m/s^2]
    '''

    speedOfSound: float = const.speedOfSound
    viscosity: float = const.viscosity
    surfaceTension: float = const.surfaceTension
    restitution: float = const.restitution
    gravity: np.ndarray = field(default_factory=lambda: np.array(const.gravityVector))

    def __post_init__(self) -> None:
        self.gravity = np.asarray(self.gravity, dtype=np.float64).reshape(3)


######################################################################
# -- Derived Parameters -- #
######################################################################

@dataclass(frozen=True)
class SimulationParameters:
    '''
    Parameters derived once at solver construction.

    Parameters:
    -----------
    supportParticles : int
        Target number of particles inside the kernel support
    particlesPerUnitVolume : int
        Particle count per unit volume
    restDensity : float
        Rest density rho_0 [kg/m^3]
    restSpacing : float
        Lattice spacing at rest [m]
    particleMass : float
        Uniform particle mass [kg]
    h : float
        Kernel support radius [m]
    '''

    supportParticles: int
    particlesPerUnitVolume: int
    restDensity: float
    restSpacing: float
    particleMass: float
    h: float

    @classmethod
    def derive(
        cls,
        supportParticles: int,
        particlesPerUnitVolume: int,
        restDensity: float,
    ) -> SimulationParameters:
        '''
        Derive rest spacing, particle mass and support radius.

        restSpacing = ppuv^(-1/3)
        particleMass = rho_0 / ppuv
        h = 2 * restSpacing

        Raises:
        -------
        ValueError : If any input is not strictly positive
        '''
        if particlesPerUnitVolume <= 0:
            raise ValueError(f'particlesPerUnitVolume must be positive, got {particlesPerUnitVolume}')
        if restDensity <= 0.0:
            raise ValueError(f'restDensity must be positive, got {restDensity}')
        if supportParticles <= 0:
            raise ValueError(f'supportParticles must be positive, got {supportParticles}')

        restSpacing = 1.0 / particlesPerUnitVolume ** (1.0 / 3.0)
        return cls(
            supportParticles=int(supportParticles),
            particlesPerUnitVolume=int(particlesPerUnitVolume),
            restDensity=float(restDensity),
            restSpacing=restSpacing,
            particleMass=restDensity / particlesPerUnitVolume,
            h=const.supportRadiusRatio * restSpacing,
        )


######################################################################
# -- Simulation State -- #
######################################################################

@dataclass
class SimulationState:
    '''
    Snapshot of the simulation diagnostics at a given time.

    Parameters:
    -----------
    time : float
        Simulated time [s]
    step : int
        Number of completed steps
    dt : float
        Last time step size [s]
    nParticles : int
        Particle count
    kineticEnergy : float
        Total kinetic energy [J]
    maxVelocity : float
        Maximum particle speed [m/s]
    maxDensityError : float
        Maximum relative density error |rho - rho_0| / rho_0
    '''

    time: float
    step: int
    dt: float
    nParticles: int
    kineticEnergy: float
    maxVelocity: float
    maxDensityError: float


######################################################################
# -- Reordering & Collision Protocols -- #
######################################################################

class SwapCallback(Protocol):
    '''Callback invoked by the grid for every slot swap during a rebuild.'''

    def __call__(self, i: int, j: int) -> None:
        ...


class Reorderable(Protocol):
    '''Struct-of-arrays container that can follow a grid rebuild.'''

    def swap(self, i: int, j: int) -> None:
        '''Exchange slots i and j in every co-indexed array.'''
        ...

    def permute(self, order: np.ndarray) -> None:
        '''Reorder every co-indexed array so that new slot k holds old slot order[k].'''
        ...


class CollisionHandler(Protocol):
    '''Batched response to particles violating one domain face.'''

    def __call__(self, indices: np.ndarray, normal: np.ndarray, depth: np.ndarray) -> None:
        ...
