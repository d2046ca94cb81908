# -- Gravity Driver Tests -- #

'''
Constant and rotating gravity schedules.
'''

import numpy as np
import pytest

from sphFluid.sph.gravity import ConstantGravity, RotatingGravity, createGravityDriver


G = 9.81


@pytest.mark.parametrize('time, expected', [
    (0.0, [0.0, -G, 0.0]),
    (1.9, [0.0, -G, 0.0]),
    (2.5, [G, 0.0, 0.0]),
    (4.5, [0.0, G, 0.0]),
    (6.5, [-G, 0.0, 0.0]),
    (8.5, [0.0, -G, 0.0]),
    (18.1, [G, 0.0, 0.0]),
])
def testRotatingSchedule(time, expected):
    driver = RotatingGravity(G, period=8.0)
    np.testing.assert_allclose(driver(time), expected)


def testConstantGravity():
    driver = ConstantGravity([0.0, 0.0, -1.0])
    np.testing.assert_array_equal(driver(0.0), [0.0, 0.0, -1.0])
    np.testing.assert_array_equal(driver(100.0), [0.0, 0.0, -1.0])


def testCreateGravityDriver():
    assert createGravityDriver('constant', np.array([0.0, -G, 0.0])) is None

    driver = createGravityDriver('rotating', np.array([0.0, -2.0, 0.0]), period=4.0)
    np.testing.assert_allclose(driver(1.5), [2.0, 0.0, 0.0])

    with pytest.raises(ValueError):
        createGravityDriver('spinning', np.zeros(3))


def testInvalidPeriod():
    with pytest.raises(ValueError):
        RotatingGravity(G, period=0.0)
