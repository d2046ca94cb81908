# -- Export Package -- #

'''
Data export utilities for SPH simulation results.

Exports frame data as JSON and particle snapshots as PLY point clouds.
'''

from sphFluid.export.frameExporter import FrameExporter
