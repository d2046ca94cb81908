# -- SPH Smoothing Kernels -- #

'''
Smoothing kernel functions for SPH interpolation in 3D.

Each kernel is split into a constant prefactor, recomputed once by
init(h), and a variable shape term evaluated per particle pair.
The full kernel value is constant * shape. Shape terms accept
Python floats or NumPy arrays, so one implementation serves both
single-pair evaluation and the vectorized per-step loops.

Arguments follow one convention throughout:
    r  = displacement vector x_i - x_j, shape (3,) or (N, 3)
    r2 = |r|^2
    rn = |r|

Key properties of a valid SPH kernel:
- Normalization: integral of W over the support = 1
- Compact support: W = 0 for r >= h
- Finite at r = 0 (poly6(0) = h^6), so the density self term is defined

References:
-----------
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications (poly6, spiky, viscosity kernels)
[3] Akinci et al. (2013) -- Versatile surface tension and adhesion
    for SPH fluids (cohesion kernel)
'''

from __future__ import annotations

import math

import numpy as np


class SmoothingKernels:
    '''
    Fixed set of radially symmetric kernels sharing one support radius h.

    poly6 (density, color field gradient), spiky (pressure gradient),
    viscosity Laplacian, and the two-piece surface tension kernel.

    Parameters:
    -----------
    h : float | None
        Support radius [m]. If None, init() must be called before use.
    '''

    def __init__(self, h: float | None = None) -> None:
        self.h = 0.0
        if h is not None:
            self.init(h)

    def init(self, h: float) -> None:
        '''
        Recompute h-derived quantities and all kernel constants.

        Parameters:
        -----------
        h : float
            Support radius [m]

        Raises:
        -------
        ValueError : If h is not strictly positive
        '''
        if not h > 0.0:
            raise ValueError(f'Support radius must be positive, got {h}')

        self.h = float(h)
        self.h2 = self.h * self.h
        self.halfH = 0.5 * self.h

        h6 = self.h ** 6
        h9 = self.h ** 9
        self.poly6Constant = 315.0 / (64.0 * math.pi * h9)
        self.poly6GradConstant = -945.0 / (32.0 * math.pi * h9)
        self.poly6LaplaceConstant = -945.0 / (32.0 * math.pi * h9)
        self.spikyConstant = 15.0 / (math.pi * h6)
        self.spikyGradConstant = -45.0 / (math.pi * h6)
        self.spikyLaplaceConstant = -90.0 / (math.pi * h6)
        self.viscosityLaplaceConstant = 45.0 / (math.pi * h6)

        # Offset keeps the two pieces continuous at r = h/2
        self.surfaceTensionConstant = 32.0 / (math.pi * h9)
        self.surfaceTensionOffset = -h6 / 64.0

    ######################################################################
    # -- Poly6 -- #
    ######################################################################

    def poly6(self, r2):
        '''Poly6 shape term (h^2 - r^2)^3.'''
        d = self.h2 - r2
        return d * d * d

    def poly6Grad(self, r: np.ndarray, r2) -> np.ndarray:
        '''Poly6 gradient shape term (h^2 - r^2)^2 * r.'''
        d = self.h2 - np.asarray(r2)
        return (d * d)[..., np.newaxis] * r

    def poly6Laplace(self, r2):
        '''Poly6 Laplacian shape term (h^2 - r^2) * (3h^2 - 7r^2).'''
        return (self.h2 - r2) * (3.0 * self.h2 - 7.0 * r2)

    ######################################################################
    # -- Spiky -- #
    ######################################################################

    def spiky(self, rn):
        '''Spiky shape term (h - r)^3.'''
        d = self.h - rn
        return d * d * d

    def spikyGrad(self, r: np.ndarray, rn) -> np.ndarray:
        '''
        Spiky gradient shape term (h - r)^2 * r / |r|.

        Undefined at rn = 0; callers filter coincident pairs first.
        '''
        rn = np.asarray(rn)
        d = self.h - rn
        return (d * d / rn)[..., np.newaxis] * r

    def spikyLaplace(self, rn):
        '''Spiky Laplacian shape term (h - r) * (h - 2r) / r.'''
        return (self.h - rn) * (self.h - 2.0 * rn) / rn

    ######################################################################
    # -- Viscosity -- #
    ######################################################################

    def viscosityLaplace(self, rn):
        '''Viscosity Laplacian shape term (h - r).'''
        return self.h - rn

    ######################################################################
    # -- Surface Tension -- #
    ######################################################################

    def surfaceTension(self, rn):
        '''
        Two-piece cohesion shape term from [3].

        C(r) = 2 (h - r)^3 r^3 + offset    for r < h/2
        C(r) = (h - r)^3 r^3               for h/2 <= r < h

        Negative near r = 0 (repulsion), positive further out (attraction).
        '''
        rn = np.asarray(rn, dtype=np.float64)
        outer = (self.h - rn) ** 3 * rn ** 3
        result = np.where(rn < self.halfH, 2.0 * outer + self.surfaceTensionOffset, outer)
        if result.ndim == 0:
            return float(result)
        return result

    ######################################################################
    # -- Full Kernel Values -- #
    ######################################################################

    def densityWeight(self, r2):
        '''Normalized poly6 value W(r) for r^2 < h^2, zero outside the support.'''
        r2 = np.asarray(r2, dtype=np.float64)
        result = np.where(r2 < self.h2, self.poly6Constant * self.poly6(r2), 0.0)
        if result.ndim == 0:
            return float(result)
        return result

    def pressureWeight(self, rn):
        '''Normalized spiky value W(r) for r < h, zero outside the support.'''
        rn = np.asarray(rn, dtype=np.float64)
        result = np.where(rn < self.h, self.spikyConstant * self.spiky(rn), 0.0)
        if result.ndim == 0:
            return float(result)
        return result
