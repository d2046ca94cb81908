# -- Simulation Frame Exporter -- #

'''
Exports SPH simulation frames as JSON and point clouds.

Collects particle state snapshots during a run and writes them to a
single JSON file for offline viewers. Particle rows are ordered by
stable id, so row k refers to the same particle in every frame even
though the solver reorders its slots each step.

Single snapshots can also be written as PLY point clouds through
trimesh, colored by speed.
'''

from __future__ import annotations

import json
import os
from datetime import datetime

import numpy as np
import trimesh

from sphFluid.scenes.sceneConfig import SceneConfig
from sphFluid.sph.particles import ParticleField
from sphFluid.sph.protocols import SimulationState


class FrameExporter:
    '''
    Collects and exports simulation frame data as JSON.

    Usage:
        exporter = FrameExporter()
        # During simulation loop:
        exporter.addFrame(state, solver.particles)
        # After simulation:
        exporter.export(scene, outputDir='output')

    Output JSON format:
    {
        "meta": { "type": "sphFluid", "nFrames": 10, "created": "...", ... },
        "config": { "world": {...}, "settings": {...}, "boxes": [...], ... },
        "frames": [
            {
                "time": 0.0,
                "positions": [[x0, y0, z0], [x1, y1, z1], ...],
                "velocityMagnitudes": [v0, v1, ...],
                "densities": [rho0, rho1, ...]
            },
            ...
        ],
        "energy": {
            "times": [...],
            "kinetic": [...],
            "maxDensityError": [...]
        }
    }
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []
        self._energyHistory: dict[str, list[float]] = {
            'times': [],
            'kinetic': [],
            'maxDensityError': [],
        }

    @property
    def nFrames(self) -> int:
        '''Number of collected frames.'''
        return len(self._frames)

    @property
    def frames(self) -> list[dict]:
        return self._frames

    def addFrame(self, state: SimulationState, particles: ParticleField) -> None:
        '''
        Record a simulation frame.

        Parameters:
        -----------
        state : SimulationState
            Current simulation state diagnostics
        particles : ParticleField
            Current particle field
        '''
        order = np.argsort(particles.ids, kind='stable')
        positions = particles.positions[order]
        velMagnitudes = np.linalg.norm(particles.velocities[order], axis=1)
        densities = particles.densities[order]

        frame = {
            'time': round(state.time, 6),
            'positions': np.round(positions, 6).tolist(),
            'velocityMagnitudes': np.round(velMagnitudes, 6).tolist(),
            'densities': np.round(densities, 2).tolist(),
        }
        self._frames.append(frame)

        self._energyHistory['times'].append(round(state.time, 6))
        self._energyHistory['kinetic'].append(round(state.kineticEnergy, 6))
        self._energyHistory['maxDensityError'].append(round(state.maxDensityError, 6))

    def export(
        self,
        scene: SceneConfig,
        outputDir: str = 'output',
        scenarioName: str = 'scene',
    ) -> str:
        '''
        Write all collected frames to a JSON file.

        Parameters:
        -----------
        scene : SceneConfig
            Scene configuration for metadata
        outputDir : str
            Output directory path
        scenarioName : str
            Scenario name for the filename

        Returns:
        --------
        str : Path to the exported JSON file
        '''
        os.makedirs(outputDir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'sphFluid_{scenarioName}_{timestamp}.json'
        filepath = os.path.join(outputDir, filename)

        output = {
            'meta': {
                'type': 'sphFluid',
                'dimensions': 3,
                'nFrames': len(self._frames),
                'nParticles': len(self._frames[0]['positions']) if self._frames else 0,
                'created': datetime.now().isoformat(),
            },
            'config': scene.toDict(),
            'frames': self._frames,
            'energy': self._energyHistory,
        }

        with open(filepath, 'w') as f:
            json.dump(output, f, indent=None, separators=(',', ':'))

        return filepath


def exportPointCloud(particles: ParticleField, path: str) -> str:
    '''
    Write the particle positions as a point cloud (PLY by extension).

    Points are ordered by stable id and colored by speed, blue (slow)
    to red (fast).

    Parameters:
    -----------
    particles : ParticleField
        Particle field to write
    path : str
        Output file path; the extension selects the format

    Returns:
    --------
    str : Path to the written file
    '''
    order = np.argsort(particles.ids, kind='stable')
    positions = particles.positions[order]
    speeds = np.linalg.norm(particles.velocities[order], axis=1)

    peak = speeds.max()
    t = speeds / peak if peak > 0.0 else np.zeros_like(speeds)
    colors = np.zeros((len(positions), 4), dtype=np.uint8)
    colors[:, 0] = np.round(255.0 * t).astype(np.uint8)
    colors[:, 2] = np.round(255.0 * (1.0 - t)).astype(np.uint8)
    colors[:, 3] = 255

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    cloud = trimesh.PointCloud(positions, colors=colors)
    cloud.export(path)
    return path
