# -- Time-Driven Gravity -- #

'''
Gravity drivers evaluated once at the start of every solver step.

A driver maps simulated time to a gravity vector. The solver writes
the result into its settings, which is the only place gravity changes
during a step.
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from sphFluid import constants as const


class GravityDriver(Protocol):
    '''Protocol for time-varying gravity.'''

    def __call__(self, time: float) -> np.ndarray:
        '''Gravity vector [m/s^2] at the given simulated time [s].'''
        ...


class ConstantGravity:
    '''
    Fixed gravity vector.

    Parameters:
    -----------
    gravity : np.ndarray
        Gravity vector [m/s^2]
    '''

    def __init__(self, gravity: np.ndarray = const.gravityVector) -> None:
        self._gravity = np.asarray(gravity, dtype=np.float64).reshape(3)

    def __call__(self, time: float) -> np.ndarray:
        return self._gravity.copy()


class RotatingGravity:
    '''
    Gravity turning in quarter steps around the z axis.

    The period is split into four equal phases:
        down (-y), right (+x), up (+y), left (-x)
    which sloshes the fluid around a closed box.

    Parameters:
    -----------
    magnitude : float
        Gravity magnitude [m/s^2]
    period : float
        Duration of one full turn [s]
    '''

    _DIRECTIONS = np.array([
        [0.0, -1.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [-1.0, 0.0, 0.0],
    ])

    def __init__(self, magnitude: float = const.gravity, period: float = const.gravityPeriod) -> None:
        if not period > 0.0:
            raise ValueError(f'Gravity period must be positive, got {period}')
        self._magnitude = magnitude
        self._period = period

    def __call__(self, time: float) -> np.ndarray:
        phase = math.fmod(time / self._period, 1.0)
        if phase < 0.0:
            phase += 1.0
        quarter = min(int(phase * 4.0), 3)
        return self._magnitude * self._DIRECTIONS[quarter]


def createGravityDriver(mode: str, gravity: np.ndarray, period: float = const.gravityPeriod) -> GravityDriver | None:
    '''
    Create a gravity driver by mode name.

    Parameters:
    -----------
    mode : str
        'constant' (no driver, settings.gravity is used as is) or 'rotating'
    gravity : np.ndarray
        Gravity vector; its magnitude sets the rotating magnitude
    period : float
        Rotation period [s]

    Returns:
    --------
    GravityDriver | None : Driver, or None for constant gravity

    Raises:
    -------
    ValueError : If mode is unknown
    '''
    if mode == 'constant':
        return None
    elif mode == 'rotating':
        return RotatingGravity(float(np.linalg.norm(gravity)), period)
    else:
        raise ValueError(f'Unknown gravity mode: {mode}')
