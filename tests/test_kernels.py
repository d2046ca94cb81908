# -- Smoothing Kernel Tests -- #

'''
Normalization, support and continuity of the SPH kernels.
'''

import math

import numpy as np
import pytest
from scipy.integrate import quad

from sphFluid.sph.kernels import SmoothingKernels


H = 0.1


def testPoly6Normalization():
    '''Poly6 integrates to one over its support.'''
    k = SmoothingKernels(H)
    integral, _ = quad(lambda r: 4.0 * math.pi * r * r * k.poly6Constant * k.poly6(r * r), 0.0, H)
    assert integral == pytest.approx(1.0, rel=1e-10)


def testSpikyNormalization():
    '''Spiky integrates to one over its support.'''
    k = SmoothingKernels(H)
    integral, _ = quad(lambda r: 4.0 * math.pi * r * r * k.spikyConstant * k.spiky(r), 0.0, H)
    assert integral == pytest.approx(1.0, rel=1e-10)


def testPoly6SelfTermIsFinite():
    k = SmoothingKernels(H)
    assert k.poly6(0.0) == pytest.approx(H ** 6)
    assert k.densityWeight(0.0) == pytest.approx(315.0 / (64.0 * math.pi * H ** 3))


def testCompactSupport():
    k = SmoothingKernels(H)
    assert k.densityWeight(H * H) == 0.0
    assert k.densityWeight(4.0 * H * H) == 0.0
    assert k.pressureWeight(H) == 0.0
    assert k.pressureWeight(1.5 * H) == 0.0
    assert k.viscosityLaplace(H) == 0.0


def testConstants():
    k = SmoothingKernels(H)
    assert k.h2 == pytest.approx(H * H)
    assert k.halfH == pytest.approx(0.5 * H)
    assert k.spikyGradConstant == pytest.approx(-45.0 / (math.pi * H ** 6))
    assert k.viscosityLaplaceConstant == pytest.approx(45.0 / (math.pi * H ** 6))
    assert k.surfaceTensionConstant == pytest.approx(32.0 / (math.pi * H ** 9))
    assert k.surfaceTensionOffset == pytest.approx(-H ** 6 / 64.0)


def testInitRecomputesConstants():
    k = SmoothingKernels(H)
    k.init(2.0 * H)
    assert k.h == pytest.approx(2.0 * H)
    assert k.poly6Constant == pytest.approx(315.0 / (64.0 * math.pi * (2.0 * H) ** 9))


@pytest.mark.parametrize('h', [0.0, -0.1])
def testInvalidSupportRadius(h):
    with pytest.raises(ValueError):
        SmoothingKernels(h)


def testSurfaceTensionContinuousAtHalfH():
    k = SmoothingKernels(H)
    below = k.surfaceTension(k.halfH * (1.0 - 1e-9))
    above = k.surfaceTension(k.halfH)
    assert below == pytest.approx(above, rel=1e-6)


def testSurfaceTensionRepulsiveNearAttractiveFar():
    '''Cohesion kernel is negative at short range and positive further out.'''
    k = SmoothingKernels(H)
    assert k.surfaceTension(0.0) < 0.0
    assert k.surfaceTension(0.75 * H) > 0.0
    assert k.surfaceTension(H) == pytest.approx(0.0, abs=1e-30)


def testPoly6GradientMatchesFiniteDifference():
    k = SmoothingKernels(H)
    r = np.array([0.03, -0.02, 0.045])
    analytic = k.poly6GradConstant * k.poly6Grad(r, r @ r)

    eps = 1e-7
    numeric = np.zeros(3)
    for d in range(3):
        step = np.zeros(3)
        step[d] = eps
        plus, minus = r + step, r - step
        numeric[d] = (k.densityWeight(plus @ plus) - k.densityWeight(minus @ minus)) / (2.0 * eps)

    np.testing.assert_allclose(analytic, numeric, rtol=1e-5)


def testSpikyGradientMatchesFiniteDifference():
    k = SmoothingKernels(H)
    r = np.array([0.02, 0.05, -0.01])
    analytic = k.spikyGradConstant * k.spikyGrad(r, np.linalg.norm(r))

    eps = 1e-7
    numeric = np.zeros(3)
    for d in range(3):
        step = np.zeros(3)
        step[d] = eps
        numeric[d] = (
            k.pressureWeight(np.linalg.norm(r + step)) - k.pressureWeight(np.linalg.norm(r - step))
        ) / (2.0 * eps)

    np.testing.assert_allclose(analytic, numeric, rtol=1e-5)


def testVectorizedMatchesScalar():
    k = SmoothingKernels(H)
    rn = np.array([0.0, 0.01, 0.03, 0.05, 0.07, 0.099])
    np.testing.assert_allclose(k.poly6(rn * rn), [k.poly6(x * x) for x in rn])
    np.testing.assert_allclose(k.surfaceTension(rn), [k.surfaceTension(x) for x in rn])
    np.testing.assert_allclose(k.spiky(rn), [k.spiky(x) for x in rn])

    r = np.column_stack([rn[1:], np.zeros(5), np.zeros(5)])
    grads = k.spikyGrad(r, rn[1:])
    assert grads.shape == (5, 3)
    np.testing.assert_allclose(grads[2], k.spikyGrad(r[2], rn[3]))
