# -- Visualization Theme -- #

'''
Centralized dark-mode theme for all sphFluid Plotly visualizations.

Change colors or template here to restyle every plot at once.
'''

# Plotly template
TEMPLATE = 'plotly_dark'

# Primary color palette (visible on dark backgrounds)
BLUE = '#42A5F5'
RED = '#EF5350'
GREEN = '#66BB6A'
ORANGE = '#FFA726'
CYAN = '#26C6DA'

# Neutrals
WHITE = '#E0E0E0'
REFERENCE_LINE = '#888888'

# Continuous colorscale for particle speed
SPEED_COLORSCALE = 'Turbo'

# One bar color per pipeline stage
STAGE_COLORS = [BLUE, CYAN, GREEN, ORANGE, RED, WHITE]
