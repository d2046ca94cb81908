# -- Particle Field Tests -- #

'''
Construction, reordering and diagnostics of the particle field.
'''

import numpy as np
import pytest

from sphFluid.sph.particles import ParticleField


def _field():
    positions = np.arange(12, dtype=np.float64).reshape(4, 3)
    field = ParticleField.fromPositions(positions, restDensity=1000.0)
    field.velocities[:] = [[1.0, 0.0, 0.0], [0.0, 2.0, 0.0], [0.0, 0.0, 3.0], [0.0, 0.0, 0.0]]
    field.densities[:] = [1000.0, 1010.0, 990.0, 1000.0]
    return field


def testFromPositions():
    field = _field()
    assert field.nParticles == 4
    for name in ('velocities', 'normals', 'forces'):
        assert getattr(field, name).shape == (4, 3)
    np.testing.assert_array_equal(field.ids, np.arange(4))
    np.testing.assert_array_equal(field.pressures, np.zeros(4))
    assert ParticleField.fromPositions([[0.0, 0.0, 0.0]], 1000.0).densities[0] == 1000.0


def testEmptyFieldRejected():
    with pytest.raises(ValueError):
        ParticleField.fromPositions(np.zeros((0, 3)))


def testMismatchedShapesRejected():
    with pytest.raises(ValueError):
        ParticleField(
            positions=np.zeros((3, 3)),
            velocities=np.zeros((2, 3)),
            normals=np.zeros((3, 3)),
            forces=np.zeros((3, 3)),
            densities=np.zeros(3),
            pressures=np.zeros(3),
            ids=np.arange(3),
        )


def testSwapExchangesEveryArray():
    field = _field()
    before = {name: getattr(field, name).copy() for name in ('positions', 'velocities', 'densities', 'ids')}
    field.swap(0, 2)
    for name, array in before.items():
        np.testing.assert_array_equal(getattr(field, name)[0], array[2])
        np.testing.assert_array_equal(getattr(field, name)[2], array[0])
        np.testing.assert_array_equal(getattr(field, name)[1], array[1])


def testPermuteKeepsArrayIdentity():
    field = _field()
    positions = field.positions
    expected = positions[[3, 1, 0, 2]].copy()
    field.permute(np.array([3, 1, 0, 2]))

    assert field.positions is positions
    np.testing.assert_array_equal(field.positions, expected)
    np.testing.assert_array_equal(field.ids, [3, 1, 0, 2])


def testIdsTrackParticles():
    field = _field()
    original = field.positions.copy()
    field.permute(np.array([2, 0, 3, 1]))
    field.swap(1, 3)

    np.testing.assert_array_equal(field.positionsById(), original)
    slots = field.slotsOf([0, 1, 2, 3])
    np.testing.assert_array_equal(field.positions[slots], original)


def testDiagnostics():
    field = _field()
    # 0.5 * m * (1 + 4 + 9)
    assert field.kineticEnergy(2.0) == pytest.approx(14.0)
    assert field.maxSpeed() == pytest.approx(3.0)
    assert field.maxDensityError(1000.0) == pytest.approx(0.01)
