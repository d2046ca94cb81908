# -- Frame Exporter Tests -- #

'''
JSON frame export and PLY point clouds.
'''

import json

import numpy as np
import trimesh

from sphFluid.export.frameExporter import FrameExporter, exportPointCloud
from sphFluid.sph.sphSolver import SphSolver


def testFramesOrderedById(smallScene, serialExecutor):
    solver = SphSolver(smallScene, executor=serialExecutor)
    exporter = FrameExporter()
    exporter.addFrame(solver.currentState, solver.particles)

    solver.particles.permute(np.arange(solver.particles.nParticles)[::-1].copy())
    exporter.addFrame(solver.currentState, solver.particles)

    assert exporter.nFrames == 2
    assert exporter.frames[0]['positions'] == exporter.frames[1]['positions']


def testExportWritesJson(tmp_path, smallScene, serialExecutor):
    solver = SphSolver(smallScene, executor=serialExecutor)
    exporter = FrameExporter()
    exporter.addFrame(solver.currentState, solver.particles)
    for _ in range(3):
        state = solver.update(1e-3)
    exporter.addFrame(state, solver.particles)

    path = exporter.export(smallScene, outputDir=str(tmp_path / 'out'), scenarioName='small')
    with open(path, 'r') as f:
        data = json.load(f)

    assert data['meta']['type'] == 'sphFluid'
    assert data['meta']['nFrames'] == 2
    assert data['meta']['nParticles'] == 125
    assert data['config'] == smallScene.toDict()
    assert len(data['frames'][1]['positions']) == 125
    assert len(data['frames'][1]['velocityMagnitudes']) == 125
    assert data['energy']['times'] == [0.0, 0.003]
    assert data['energy']['kinetic'][0] == 0.0


def testExportPointCloud(tmp_path, smallScene, serialExecutor):
    solver = SphSolver(smallScene, executor=serialExecutor)
    solver.update(1e-3)

    path = exportPointCloud(solver.particles, str(tmp_path / 'clouds' / 'final.ply'))
    cloud = trimesh.load(path)

    assert isinstance(cloud, trimesh.PointCloud)
    np.testing.assert_allclose(cloud.vertices, solver.particles.positionsById(), atol=1e-6)
