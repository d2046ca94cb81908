# -- Weakly Compressible SPH Solver -- #

'''
WCSPH solver for free-surface flows on a multi-core CPU.

Pressure follows from density through the Tait equation of state,
so no Poisson solve is needed. The artificial speed of sound keeps
density variations small, approximating incompressibility.

The per-particle stages run as numba prange loops (see stageKernels)
that walk the cells of the spatial grid directly. Each iteration
writes only its own slot and sums its neighbors in grid order, so
results do not depend on how many threads the executor uses.

Algorithm per time step:
    1. Rebuild the grid (counting sort of the particle field)
    2. Density by SPH summation, pressure from the Tait EOS
    3. Surface normals (color field gradient)
    4. Forces: pressure + viscosity + cohesion + curvature + gravity
    5. Integrate (Symplectic Euler)
    6. Collide with the six domain faces

References:
-----------
[1] Becker & Teschner (2007) -- Weakly compressible SPH for free
    surface flows
[2] Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
[3] Akinci et al. (2013) -- Versatile surface tension and adhesion
    for SPH fluids
'''

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.protocols import (
    Box3, CollisionHandler, SimulationParameters, SimulationSettings, SimulationState,
)
from sphFluid.sph.kernels import SmoothingKernels
from sphFluid.sph.spatialGrid import SpatialGrid
from sphFluid.sph.particles import ParticleField
from sphFluid.sph.voxelizer import Voxelizer
from sphFluid.sph.parallel import ParallelExecutor
from sphFluid.sph.stageKernels import densityStage, forceStage, normalStage
from sphFluid.sph.profiler import Profiler, profileScope
from sphFluid.sph.gravity import GravityDriver, createGravityDriver
from sphFluid.sph.timeIntegration import SymplecticEuler
from sphFluid.sph.boundaryHandling import BoundaryHandler, reflectionHandler

if TYPE_CHECKING:
    from sphFluid.scenes.sceneConfig import SceneConfig


logger = logging.getLogger(__name__)


class SphSolver:
    '''
    Weakly Compressible SPH solver.

    Owns the particle field, the spatial grid and the kernels for the
    lifetime of one scene. Re-create the solver to load another scene.

    Parameters:
    -----------
    scene : SceneConfig
        Domain, fill volumes and settings
    executor : ParallelExecutor | None
        Scheduler for the compiled stages (defaults to all cores)
    profiler : Profiler | None
        Receives one timing scope per pipeline stage
    '''

    def __init__(
        self,
        scene: SceneConfig,
        executor: ParallelExecutor | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        if np.any(scene.bounds.extents <= 0.0):
            raise ValueError(f'Simulation domain must have positive extents, got {scene.bounds.extents}')

        self._scene = scene
        self._parameters = SimulationParameters.derive(
            scene.supportParticles,
            scene.particlesPerUnitVolume,
            scene.restDensity,
        )
        self._settings = scene.settings()
        self._executor = executor or ParallelExecutor()
        self.profiler = profiler
        self.gravityDriver: GravityDriver | None = createGravityDriver(
            scene.gravityMode, scene.gravity, scene.gravityPeriod,
        )

        params = self._parameters
        self._kernel = SmoothingKernels(params.h)
        self._grid = SpatialGrid(scene.bounds, params.h)
        self._integrator = SymplecticEuler(self._executor)
        self._boundaryHandler = BoundaryHandler(scene.bounds)

        # Boxes first, then spheres; overlapping fills are not merged
        voxelizer = Voxelizer(params.restSpacing)
        for box in scene.boxes:
            voxelizer.addBox(box)
        for sphere in scene.spheres:
            voxelizer.addSphere(sphere)
        if voxelizer.nParticles == 0:
            raise ValueError('Scene produced no particles')

        self._particles = ParticleField.fromPositions(voxelizer.positions(), params.restDensity)

        self._maxTimestep = scene.maxTimestep
        self._wcsphTimestep = min(
            0.25 * params.h / (params.particleMass * const.gravity),
            0.4 * params.h / (self._settings.speedOfSound * (1.0 + 0.6 * const.wcsphViscosity)),
        )

        self._time: float = 0.0
        self._step: int = 0
        self._dt: float = 0.0

        logger.debug('particlesPerUnitVolume = %d', params.particlesPerUnitVolume)
        logger.debug('restDensity = %f', params.restDensity)
        logger.debug('particleMass = %f', params.particleMass)
        logger.debug('restSpacing = %f', params.restSpacing)
        logger.debug('supportRadius = %f', params.h)
        logger.debug('stiffness = %f', self.stiffness)
        logger.debug('maxTimestep = %f, wcsphTimestep = %f', self._maxTimestep, self._wcsphTimestep)
        logger.debug('particleCount = %d', self._particles.nParticles)

    ######################################################################
    # -- Main Time Step -- #
    ######################################################################

    def update(self, dt: float) -> SimulationState:
        '''
        Advance the simulation by one step of size dt.

        dt is used as given; keeping it below maxTimestep is up to
        the caller.

        Parameters:
        -----------
        dt : float
            Time step size [s]

        Returns:
        --------
        SimulationState : Diagnostics after the step

        Raises:
        -------
        ValueError : If dt is not strictly positive
        '''
        if not dt > 0.0:
            raise ValueError(f'Time step must be positive, got {dt}')

        # Gravity changes only here, never inside a stage
        if self.gravityDriver is not None:
            self._settings.gravity = np.asarray(self.gravityDriver(self._time), dtype=np.float64)

        with profileScope(self.profiler, 'Grid Update'):
            self.updateGrid()
        with profileScope(self.profiler, 'Density Update'):
            self.computeDensity()
        with profileScope(self.profiler, 'Normal Update'):
            self.computeNormals()
        with profileScope(self.profiler, 'Force Update'):
            self.computeForces()
        with profileScope(self.profiler, 'Integrate'):
            self.integrate(dt)
        with profileScope(self.profiler, 'Collision Update'):
            self.computeCollisions()

        self._time += dt
        self._step += 1
        self._dt = dt

        return self.currentState

    ######################################################################
    # -- Pipeline Stages -- #
    ######################################################################

    def updateGrid(self) -> None:
        '''Counting-sort the particle field into grid cell order.'''
        self._grid.update(self._particles.positions, self._particles)

    def _gridArgs(self) -> tuple:
        '''Grid arrays consumed by the compiled neighbor loops.'''
        grid = self._grid
        return (grid.cellOffsets, grid.bounds.min, 1.0 / grid.cellSize, grid.size)

    def computeDensity(self) -> None:
        '''
        Density by SPH summation and pressure from the Tait EOS.

        rho_i = m * sum_j W_poly6(r_ij)    (self term included)
        p_i   = B * ((rho_i / rho_0)^gamma - 1)

        Negative pressures are kept.
        '''
        p = self._particles
        kernel = self._kernel
        self._executor.launch(
            densityStage,
            p.positions, *self._gridArgs(), kernel.h, kernel.h2,
            self._parameters.particleMass * kernel.poly6Constant,
            self._parameters.restDensity, self.stiffness, const.gamma,
            p.densities, p.pressures,
        )

    def computeNormals(self) -> None:
        '''
        Surface normals from the gradient of the smoothed color field.

        n_i = h * m * sum_j grad W_poly6(r_ij) / rho_j
        '''
        p = self._particles
        kernel = self._kernel
        self._executor.launch(
            normalStage,
            p.positions, p.densities, *self._gridArgs(), kernel.h, kernel.h2,
            kernel.h * self._parameters.particleMass * kernel.poly6GradConstant,
            p.normals,
        )

    def _pairPressure(self, iIdx: np.ndarray, jIdx: np.ndarray, r: np.ndarray, rn: np.ndarray) -> np.ndarray:
        p = self._particles
        m = self._parameters.particleMass
        coeff = -m * m * (
            p.pressures[iIdx] / p.densities[iIdx] ** 2
            + p.pressures[jIdx] / p.densities[jIdx] ** 2
        ) * self._kernel.spikyGradConstant
        return coeff[:, np.newaxis] * self._kernel.spikyGrad(r, rn)

    def computeForces(self) -> None:
        '''
        Total force on every particle.

        Summed over neighbors with 0 < r2 < h2:
            pressure   -m^2 (p_i/rho_i^2 + p_j/rho_j^2) grad W_spiky
            viscosity  -mu m (v_i - v_j) lap W_visc / rho_j
            cohesion   -sigma m^2 K_ij C(r) r / |r|
            curvature  -sigma m K_ij (n_i - n_j)
        with K_ij = 2 rho_0 / (rho_i + rho_j), plus m * gravity.

        Coincident pairs (r2 == 0) contribute no force; afterwards the
        higher slot of each such pair is nudged apart.
        '''
        p = self._particles
        kernel = self._kernel
        settings = self._settings
        m = self._parameters.particleMass
        coincidentRank = np.zeros(p.nParticles, dtype=np.int64)

        self._executor.launch(
            forceStage,
            p.positions, p.velocities, p.normals, p.densities, p.pressures,
            *self._gridArgs(), kernel.h, kernel.h2, kernel.halfH,
            m, self._parameters.restDensity, kernel.spikyGradConstant,
            settings.viscosity * m * kernel.viscosityLaplaceConstant, const.minViscosityDensity,
            settings.surfaceTension * m * m * kernel.surfaceTensionConstant, kernel.surfaceTensionOffset,
            settings.surfaceTension * m,
            m * settings.gravity, p.forces, coincidentRank,
        )
        self._separateCoincident(coincidentRank)

    def _separateCoincident(self, rank: np.ndarray) -> None:
        # rank = number of lower coincident partners, so triples separate too
        moved = np.nonzero(rank)[0]
        if len(moved) == 0:
            return
        self._particles.positions[moved] += (const.coincidentNudge * rank[moved])[:, np.newaxis]

        logger.debug('Separated %d coincident particles', len(moved))

    def integrate(self, dt: float) -> None:
        '''Symplectic Euler step: v += f/m dt, x += v dt.'''
        self._integrator.integrate(self._particles, self._parameters.particleMass, dt)

    def computeCollisions(self, handler: CollisionHandler | None = None) -> int:
        '''
        Resolve particles outside the domain, face by face.

        Parameters:
        -----------
        handler : CollisionHandler | None
            Custom response called as handler(indices, normal, depth);
            defaults to push-back with velocity reflection

        Returns:
        --------
        int : Number of face violations
        '''
        if handler is None:
            handler = reflectionHandler(self._particles, self._settings.restitution)
        return self._boundaryHandler.computeCollisions(self._particles, handler)

    def pressureForce(self, iIdx, jIdx) -> np.ndarray:
        '''
        Pressure force on particle(s) i exerted by particle(s) j.

        Uses the densities and pressures of the last density stage.

        Parameters:
        -----------
        iIdx, jIdx : int | np.ndarray
            Slots of the receiving and the exerting particles

        Returns:
        --------
        np.ndarray : Force, shape (3,) for scalar slots or (M, 3)
        '''
        scalar = np.ndim(iIdx) == 0 and np.ndim(jIdx) == 0
        iIdx = np.atleast_1d(np.asarray(iIdx, dtype=np.int64))
        jIdx = np.atleast_1d(np.asarray(jIdx, dtype=np.int64))
        positions = self._particles.positions
        r = positions[iIdx] - positions[jIdx]
        rn = np.linalg.norm(r, axis=1)

        inside = (rn > 0.0) & (rn < self._kernel.h)
        force = np.zeros((len(iIdx), 3))
        if np.any(inside):
            force[inside] = self._pairPressure(iIdx[inside], jIdx[inside], r[inside], rn[inside])
        return force[0] if scalar else force

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def positions(self) -> np.ndarray:
        '''Dense copy of the particle positions in slot order, shape (N, 3).'''
        return self._particles.positions.copy()

    @property
    def particles(self) -> ParticleField:
        return self._particles

    @property
    def parameters(self) -> SimulationParameters:
        return self._parameters

    @property
    def settings(self) -> SimulationSettings:
        '''Mutable settings, read once per stage.'''
        return self._settings

    @property
    def kernel(self) -> SmoothingKernels:
        return self._kernel

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def bounds(self) -> Box3:
        return self._scene.bounds

    @property
    def stiffness(self) -> float:
        '''Tait stiffness B = rho_0 * c^2 / gamma [Pa].'''
        return self._parameters.restDensity * self._settings.speedOfSound ** 2 / const.gamma

    @stiffness.setter
    def stiffness(self, value: float) -> None:
        if value < 0.0:
            raise ValueError(f'Stiffness must be non-negative, got {value}')
        self._settings.speedOfSound = math.sqrt(value * const.gamma / self._parameters.restDensity)

    @property
    def maxTimestep(self) -> float:
        '''Largest dt the caller should pass to update() [s].'''
        return self._maxTimestep

    @property
    def wcsphTimestep(self) -> float:
        '''Force and CFL based WCSPH time step estimate [s].'''
        return self._wcsphTimestep

    @property
    def time(self) -> float:
        return self._time

    @property
    def stepCount(self) -> int:
        return self._step

    @property
    def currentState(self) -> SimulationState:
        '''Current simulation diagnostics.'''
        p = self._particles
        return SimulationState(
            time=self._time,
            step=self._step,
            dt=self._dt,
            nParticles=p.nParticles,
            kineticEnergy=p.kineticEnergy(self._parameters.particleMass),
            maxVelocity=p.maxSpeed(),
            maxDensityError=p.maxDensityError(self._parameters.restDensity),
        )
