# -- Physical Constants for SPH Fluid Simulation -- #

'''
Default physical and numerical constants for the SPH fluid core.
All values in SI units unless otherwise noted.

References:
-----------
[1] Becker & Teschner (2007) -- Weakly compressible SPH for free
    surface flows
[3] Akinci et al. (2013) -- Versatile surface tension and adhesion
    for SPH fluids
'''

#--------------------------------------------------------------------#
# -- Fluid Properties -- #
#--------------------------------------------------------------------#

# Rest density of water [kg/m^3]
restDensity: float = 1000.0

# Gravitational acceleration [m/s^2]
gravity: float = 9.81

# Default gravity vector (y is up) [m/s^2]
gravityVector: tuple[float, float, float] = (0.0, -gravity, 0.0)

#--------------------------------------------------------------------#
# -- Resolution -- #
#--------------------------------------------------------------------#

# Number of particles expected inside the kernel support
supportParticles: int = 50

# Number of particles per unit volume (sets the rest spacing)
particlesPerUnitVolume: int = 1000000

# Support radius to rest spacing ratio: h = ratio * restSpacing
supportRadiusRatio: float = 2.0

#--------------------------------------------------------------------#
# -- WCSPH Equation of State -- #
#--------------------------------------------------------------------#

# Tait equation of state exponent
# gamma = 7 is standard for water in WCSPH
gamma: float = 7.0

# Artificial speed of sound [m/s]
# B = restDensity * speedOfSound^2 / gamma
speedOfSound: float = 10.0

# Artificial viscosity coefficient used for the WCSPH timestep bound
wcsphViscosity: float = 0.005

#--------------------------------------------------------------------#
# -- Force Model -- #
#--------------------------------------------------------------------#

# Laplacian viscosity coefficient
viscosity: float = 0.0001

# Surface tension coefficient (cohesion + curvature)
surfaceTension: float = 1.0

# Neighbor density below which the viscosity term is skipped [kg/m^3]
minViscosityDensity: float = 0.0001

# Positional nudge applied to coincident particles [m]
coincidentNudge: float = 1e-5

#--------------------------------------------------------------------#
# -- Time Stepping & Boundaries -- #
#--------------------------------------------------------------------#

# Maximum allowed time step [s]
maxTimestep: float = 1e-3

# Velocity restitution on domain walls
restitution: float = 0.5

# Period of one full turn of the rotating gravity schedule [s]
gravityPeriod: float = 8.0
