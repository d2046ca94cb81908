# -- SPH Time Integration Schemes -- #

'''
Time integration methods for the SPH particle field.

Implements the Symplectic Euler (semi-implicit Euler) integrator,
which is first-order but symplectic -- it preserves phase-space
volume and avoids the energy drift of explicit Euler.

No sub-stepping is performed: the caller chooses dt below the
solver's maximum stable time step.

References:
-----------
Monaghan (2005) -- Smoothed Particle Hydrodynamics
Hairer et al. (2003) -- Geometric Numerical Integration
'''

from __future__ import annotations

from typing import Protocol

from sphFluid.sph.particles import ParticleField
from sphFluid.sph.parallel import ParallelExecutor
from sphFluid.sph.stageKernels import symplecticEulerStage


######################################################################
# -- Time Integrator Protocol -- #
######################################################################

class TimeIntegrator(Protocol):
    '''Protocol for time integration schemes.'''

    def integrate(self, particles: ParticleField, particleMass: float, dt: float) -> None:
        '''
        Advance all particles by one time step from their accumulated forces.

        Parameters:
        -----------
        particles : ParticleField
            Particle field to advance
        particleMass : float
            Uniform particle mass [kg]
        dt : float
            Time step size [s]
        '''
        ...


######################################################################
# -- Symplectic Euler Integrator -- #
######################################################################

class SymplecticEuler:
    '''
    Symplectic (semi-implicit) Euler integrator.

    Update sequence:
        v(t+dt) = v(t) + (F(t) / m) * dt   (kick)
        x(t+dt) = x(t) + v(t+dt) * dt      (drift)

    The drift uses the updated velocity, which is what makes the
    scheme symplectic. Particles are independent, so the update runs
    as one parallel loop over particle slots.

    Parameters:
    -----------
    executor : ParallelExecutor | None
        Scheduler for the compiled loop (defaults to all cores)
    '''

    def __init__(self, executor: ParallelExecutor | None = None) -> None:
        self._executor = executor or ParallelExecutor()

    def integrate(self, particles: ParticleField, particleMass: float, dt: float) -> None:
        '''
        Advance all particles by one time step.

        Parameters:
        -----------
        particles : ParticleField
            Particle field to advance
        particleMass : float
            Uniform particle mass [kg]
        dt : float
            Time step size [s]
        '''
        self._executor.launch(
            symplecticEulerStage,
            particles.positions, particles.velocities, particles.forces,
            dt / particleMass, dt,
        )
