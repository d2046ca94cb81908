# -- Visualization Package -- #

'''
Plotly views of particle snapshots and profiler timings.
'''

from sphFluid.visualization.particlePlots import plotParticles, plotProfile
