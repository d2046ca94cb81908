# -- SPH Engine Package -- #

'''
Core Smoothed Particle Hydrodynamics (SPH) engine.

Provides kernel functions, the uniform spatial grid, the particle
field, voxelization of fill volumes, the numba stage loops with their
scheduler and the WCSPH solver.
'''

from sphFluid.sph.protocols import Box3, SphereVolume, SimulationParameters, SimulationSettings, SimulationState
from sphFluid.sph.kernels import SmoothingKernels
from sphFluid.sph.spatialGrid import SpatialGrid
from sphFluid.sph.particles import ParticleField
from sphFluid.sph.voxelizer import Voxelizer
from sphFluid.sph.parallel import ParallelExecutor
from sphFluid.sph.profiler import Profiler
from sphFluid.sph.sphSolver import SphSolver
