# -- SPH Boundary Collisions -- #

'''
Collision handling against the six faces of the simulation domain.

Particles found outside a face are reported to a handler together
with the inward face normal and the penetration depth. The default
response pushes the particle back onto the face and reflects the
normal velocity component with a restitution coefficient c:

    x += d * n
    v -= (1 + c) * (v . n) * n

Faces are processed in the order -x, +x, -y, +y, -z, +z, each on the
positions left by the previous face, so a particle past a corner is
corrected once per violated face.

The pass is sequential; it is cheap compared to the neighbor stages.
'''

from __future__ import annotations

import numpy as np

from sphFluid.sph.particles import ParticleField
from sphFluid.sph.protocols import Box3, CollisionHandler


class BoundaryHandler:
    '''
    Keeps particles inside an axis-aligned box.

    Parameters:
    -----------
    bounds : Box3
        Simulation domain
    '''

    def __init__(self, bounds: Box3) -> None:
        self._bounds = bounds

    def computeCollisions(self, particles: ParticleField, handler: CollisionHandler) -> int:
        '''
        Report every face violation to the handler.

        Parameters:
        -----------
        particles : ParticleField
            Particle field to check
        handler : CollisionHandler
            Called as handler(indices, normal, depth) once per violated face

        Returns:
        --------
        int : Number of face violations reported
        '''
        positions = particles.positions
        lower = self._bounds.min
        upper = self._bounds.max
        nViolations = 0

        for axis in range(3):
            normal = np.zeros(3)
            normal[axis] = 1.0

            below = np.nonzero(positions[:, axis] < lower[axis])[0]
            if len(below) > 0:
                handler(below, normal, lower[axis] - positions[below, axis])
                nViolations += len(below)

            above = np.nonzero(positions[:, axis] > upper[axis])[0]
            if len(above) > 0:
                handler(above, -normal, positions[above, axis] - upper[axis])
                nViolations += len(above)

        return nViolations


def reflectionHandler(particles: ParticleField, restitution: float) -> CollisionHandler:
    '''
    Default collision response bound to a particle field.

    Parameters:
    -----------
    particles : ParticleField
        Particle field to correct
    restitution : float
        Restitution coefficient c

    Returns:
    --------
    CollisionHandler : handler(indices, normal, depth)
    '''
    def resolve(indices: np.ndarray, normal: np.ndarray, depth: np.ndarray) -> None:
        particles.positions[indices] += depth[:, np.newaxis] * normal
        normalVelocity = particles.velocities[indices] @ normal
        particles.velocities[indices] -= ((1.0 + restitution) * normalVelocity)[:, np.newaxis] * normal

    return resolve
