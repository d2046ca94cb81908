# -- sphFluid Package -- #

'''
Weakly compressible SPH fluid simulation on a multi-core CPU.

Sub-packages:
    - sph: Kernels, spatial grid, particle field, voxelizer and solver
    - scenes: Scene configuration (domain, fill volumes, settings)
    - export: Frame and point cloud export
    - visualization: Plotly particle views
'''

__version__ = '0.1.0'

from sphFluid.scenes.sceneConfig import SceneConfig
from sphFluid.sph.sphSolver import SphSolver
from sphFluid.export.frameExporter import FrameExporter
