# -- Scene Configuration -- #

'''
Scene description for an SPH simulation.

A scene fixes the simulation domain, the fill volumes (boxes and
spheres voxelized into particles at rest spacing) and the scalar
settings of the fluid. Scenes come from presets or JSON files:

{
    "world": { "bounds": { "min": [0, 0, 0], "max": [1, 1, 1] } },
    "settings": {
        "particlesPerUnitVolume": 8000,
        "restDensity": 1000.0,
        "stiffness": 14285.7,
        "viscosity": 0.0001,
        "gravity": [0.0, -9.81, 0.0],
        "gravityMode": "constant",
        ...
    },
    "boxes": [ { "min": [0, 0, 0], "max": [0.4, 0.8, 0.4] } ],
    "spheres": [ { "center": [0.5, 0.6, 0.5], "radius": 0.15 } ]
}
'''

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.protocols import Box3, SphereVolume, SimulationSettings


_GRAVITY_MODES = ('constant', 'rotating')


######################################################################
# -- Scene Configuration -- #
######################################################################

@dataclass
class SceneConfig:
    '''
    Configuration for an SPH scene.

    Parameters:
    -----------
    bounds : Box3
        Simulation domain; particles collide with its six faces
    boxes : list[Box3]
        Box fill volumes
    spheres : list[SphereVolume]
        Sphere fill volumes
    supportParticles : int
        Target particle count inside the kernel support
    particlesPerUnitVolume : int
        Particles per unit volume (sets rest spacing and mass)
    restDensity : float
        Rest density [kg/m^3]
    speedOfSound : float
        Artificial speed of sound [m/s]
    stiffness : float | None
        Tait stiffness B [Pa]; when given it sets the speed of sound
        through c = sqrt(B * gamma / rho_0)
    viscosity : float
        Laplacian viscosity coefficient
    surfaceTension : float
        Surface tension coefficient
    restitution : float
        Wall velocity restitution
    gravity : np.ndarray
        Initial gravity vector [m/s^2]
    gravityMode : str
        'constant' or 'rotating'
    gravityPeriod : float
        Rotation period for the rotating gravity mode [s]
    maxTimestep : float
        Maximum stable time step reported to the caller [s]
    '''

    bounds: Box3 = field(default_factory=lambda: Box3(np.zeros(3), np.ones(3)))
    boxes: list[Box3] = field(default_factory=list)
    spheres: list[SphereVolume] = field(default_factory=list)
    supportParticles: int = const.supportParticles
    particlesPerUnitVolume: int = const.particlesPerUnitVolume
    restDensity: float = const.restDensity
    speedOfSound: float = const.speedOfSound
    stiffness: float | None = None
    viscosity: float = const.viscosity
    surfaceTension: float = const.surfaceTension
    restitution: float = const.restitution
    gravity: np.ndarray = field(default_factory=lambda: np.array(const.gravityVector))
    gravityMode: str = 'constant'
    gravityPeriod: float = const.gravityPeriod
    maxTimestep: float = const.maxTimestep

    def __post_init__(self) -> None:
        self.gravity = np.asarray(self.gravity, dtype=np.float64).reshape(3)
        if self.gravityMode not in _GRAVITY_MODES:
            raise ValueError(f'Unknown gravity mode: {self.gravityMode}')
        if not self.maxTimestep > 0.0:
            raise ValueError(f'maxTimestep must be positive, got {self.maxTimestep}')
        if self.stiffness is not None:
            if self.stiffness < 0.0:
                raise ValueError(f'Stiffness must be non-negative, got {self.stiffness}')
            if not self.restDensity > 0.0:
                raise ValueError(f'restDensity must be positive, got {self.restDensity}')
            self.speedOfSound = math.sqrt(self.stiffness * const.gamma / self.restDensity)

    def settings(self) -> SimulationSettings:
        '''Initial mutable settings for a solver.'''
        return SimulationSettings(
            speedOfSound=self.speedOfSound,
            viscosity=self.viscosity,
            surfaceTension=self.surfaceTension,
            restitution=self.restitution,
            gravity=self.gravity.copy(),
        )

    ######################################################################
    # -- Presets -- #
    ######################################################################

    @classmethod
    def small(cls) -> SceneConfig:
        '''
        Tiny cube of fluid in a half-meter box.

        125 particles, for tests and smoke runs.
        '''
        return cls(
            bounds=Box3([0.0, 0.0, 0.0], [0.5, 0.5, 0.5]),
            boxes=[Box3([0.1, 0.1, 0.1], [0.3, 0.3, 0.3])],
            particlesPerUnitVolume=8000,
        )

    @classmethod
    def damBreak(cls) -> SceneConfig:
        '''
        Water column collapsing in a unit box.

        ~1400 particles at 5 cm spacing.
        '''
        return cls(
            bounds=Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]),
            boxes=[Box3([0.0, 0.0, 0.0], [0.4, 0.8, 0.4])],
            particlesPerUnitVolume=8000,
        )

    @classmethod
    def sphereDrop(cls) -> SceneConfig:
        '''
        Sphere of water falling into a shallow pool.

        ~2000 particles at 5 cm spacing.
        '''
        return cls(
            bounds=Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]),
            boxes=[Box3([0.0, 0.0, 0.0], [1.0, 0.15, 1.0])],
            spheres=[SphereVolume([0.5, 0.6, 0.5], 0.2)],
            particlesPerUnitVolume=8000,
        )

    ######################################################################
    # -- JSON I/O -- #
    ######################################################################

    @classmethod
    def fromDict(cls, data: dict) -> SceneConfig:
        '''
        Build a scene from parsed JSON data.

        Reads the 'world', 'settings', 'boxes' and 'spheres' sections.
        Missing settings fall back to the package defaults. A
        'stiffness' setting takes precedence over 'speedOfSound'.

        Parameters:
        -----------
        data : dict
            Parsed scene description

        Returns:
        --------
        SceneConfig : Loaded scene
        '''
        worldSection = data.get('world', {})
        settingsSection = data.get('settings', {})
        stiffness = settingsSection.get('stiffness')

        boundsSection = worldSection.get('bounds', {'min': [0.0, 0.0, 0.0], 'max': [1.0, 1.0, 1.0]})
        bounds = Box3(boundsSection['min'], boundsSection['max'])

        boxes = [Box3(b['min'], b['max']) for b in data.get('boxes', [])]
        spheres = [SphereVolume(s['center'], float(s['radius'])) for s in data.get('spheres', [])]

        return cls(
            bounds=bounds,
            boxes=boxes,
            spheres=spheres,
            supportParticles=int(settingsSection.get('supportParticles', const.supportParticles)),
            particlesPerUnitVolume=int(settingsSection.get('particlesPerUnitVolume', const.particlesPerUnitVolume)),
            restDensity=float(settingsSection.get('restDensity', const.restDensity)),
            speedOfSound=float(settingsSection.get('speedOfSound', const.speedOfSound)),
            stiffness=None if stiffness is None else float(stiffness),
            viscosity=float(settingsSection.get('viscosity', const.viscosity)),
            surfaceTension=float(settingsSection.get('surfaceTension', const.surfaceTension)),
            restitution=float(settingsSection.get('restitution', const.restitution)),
            gravity=np.array(settingsSection.get('gravity', const.gravityVector), dtype=np.float64),
            gravityMode=settingsSection.get('gravityMode', 'constant'),
            gravityPeriod=float(settingsSection.get('gravityPeriod', const.gravityPeriod)),
            maxTimestep=float(settingsSection.get('maxTimestep', const.maxTimestep)),
        )

    @classmethod
    def fromJson(cls, configPath: str) -> SceneConfig:
        '''
        Load a scene from a JSON file.

        Parameters:
        -----------
        configPath : str
            Path to the JSON scene file

        Returns:
        --------
        SceneConfig : Loaded scene
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)
        return cls.fromDict(data)

    def toDict(self) -> dict:
        '''Scene as a JSON-serializable dict (inverse of fromDict).'''
        return {
            'world': {'bounds': self.bounds.toDict()},
            'settings': {
                'supportParticles': self.supportParticles,
                'particlesPerUnitVolume': self.particlesPerUnitVolume,
                'restDensity': self.restDensity,
                'speedOfSound': self.speedOfSound,
                'stiffness': self.stiffness,
                'viscosity': self.viscosity,
                'surfaceTension': self.surfaceTension,
                'restitution': self.restitution,
                'gravity': self.gravity.tolist(),
                'gravityMode': self.gravityMode,
                'gravityPeriod': self.gravityPeriod,
                'maxTimestep': self.maxTimestep,
            },
            'boxes': [b.toDict() for b in self.boxes],
            'spheres': [s.toDict() for s in self.spheres],
        }
