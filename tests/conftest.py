# -- Shared Test Fixtures -- #

'''
Scenes and executors shared by the sphFluid test modules.
'''

import numpy as np
import pytest

from sphFluid.scenes.sceneConfig import SceneConfig
from sphFluid.sph.parallel import ParallelExecutor
from sphFluid.sph.protocols import Box3


@pytest.fixture
def serialExecutor():
    '''Single-threaded executor (deterministic scheduler).'''
    return ParallelExecutor(nWorkers=1)


@pytest.fixture
def smallScene():
    '''125-particle cube under gravity in a half-meter box.'''
    return SceneConfig.small()


@pytest.fixture
def latticeScene():
    '''
    9 x 9 x 9 lattice at 0.1 m spacing, far from the walls, no gravity.

    ppuv = 1000 gives particleMass = 1 kg and h = 0.2 m. Particle id
    364 sits at the lattice center (0.4, 0.4, 0.4).
    '''
    return SceneConfig(
        bounds=Box3([-0.5, -0.5, -0.5], [1.5, 1.5, 1.5]),
        boxes=[Box3([0.0, 0.0, 0.0], [0.8, 0.8, 0.8])],
        particlesPerUnitVolume=1000,
        gravity=np.zeros(3),
    )
