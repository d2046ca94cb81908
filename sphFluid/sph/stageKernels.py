# -- Numba SPH Stage Kernels -- #

'''
Per-particle loops of the WCSPH pipeline, compiled with numba.

Each kernel walks particle slots with nb.prange. For slot i it visits
the grid cells overlapping [x_i - h, x_i + h] (clamped to the grid) in
z, y, x order and the slots of every cell in ascending order, exactly
like SpatialGrid.lookup, then keeps pairs with r^2 < h^2. Sums are
accumulated in that fixed order and row i of every output is written
by iteration i only.

Grid arguments are the arrays of the last SpatialGrid.update:
cellOffsets, the domain minimum, 1 / cellSize and the per-axis size.
'''

from __future__ import annotations

import math

import numba as nb

from sphFluid.sph.parallel import parallelKernel


#--------------------------------------------------------------------#
# -- Cell Span -- #
#--------------------------------------------------------------------#

@nb.njit
def _cellCoord(value, lower, invCellSize, size):
    c = math.floor((value - lower) * invCellSize)
    if c < 0:
        return 0
    if c > size - 1:
        return size - 1
    return c


@nb.njit
def _cellSpan(x, y, z, radius, gridMin, invCellSize, size):
    '''Clamped cell coordinate range (x0, x1, y0, y1, z0, z1) of a query box.'''
    return (
        _cellCoord(x - radius, gridMin[0], invCellSize, size[0]),
        _cellCoord(x + radius, gridMin[0], invCellSize, size[0]),
        _cellCoord(y - radius, gridMin[1], invCellSize, size[1]),
        _cellCoord(y + radius, gridMin[1], invCellSize, size[1]),
        _cellCoord(z - radius, gridMin[2], invCellSize, size[2]),
        _cellCoord(z + radius, gridMin[2], invCellSize, size[2]),
    )


######################################################################
# -- Density & Pressure -- #
######################################################################

@parallelKernel
def densityStage(
    positions, cellOffsets, gridMin, invCellSize, size, h, h2,
    scale, restDensity, stiffness, gamma, densities, pressures,
):
    '''
    rho_i = scale * sum_j (h^2 - r^2)^3, self term included;
    p_i = B ((rho_i / rho_0)^gamma - 1).
    '''
    sx = size[0]
    sxy = size[0] * size[1]
    for i in nb.prange(positions.shape[0]):
        xi = positions[i, 0]
        yi = positions[i, 1]
        zi = positions[i, 2]
        x0, x1, y0, y1, z0, z1 = _cellSpan(xi, yi, zi, h, gridMin, invCellSize, size)

        total = 0.0
        for cz in range(z0, z1 + 1):
            for cy in range(y0, y1 + 1):
                base = cz * sxy + cy * sx
                for cx in range(x0, x1 + 1):
                    c = base + cx
                    for j in range(cellOffsets[c], cellOffsets[c + 1]):
                        dx = xi - positions[j, 0]
                        dy = yi - positions[j, 1]
                        dz = zi - positions[j, 2]
                        r2 = dx * dx + dy * dy + dz * dz
                        if r2 < h2:
                            d = h2 - r2
                            total += d * d * d

        density = total * scale
        densities[i] = density
        pressures[i] = stiffness * ((density / restDensity) ** gamma - 1.0)


######################################################################
# -- Surface Normals -- #
######################################################################

@parallelKernel
def normalStage(positions, densities, cellOffsets, gridMin, invCellSize, size, h, h2, scale, normals):
    '''n_i = scale * sum_j (h^2 - r^2)^2 r / rho_j.'''
    sx = size[0]
    sxy = size[0] * size[1]
    for i in nb.prange(positions.shape[0]):
        xi = positions[i, 0]
        yi = positions[i, 1]
        zi = positions[i, 2]
        x0, x1, y0, y1, z0, z1 = _cellSpan(xi, yi, zi, h, gridMin, invCellSize, size)

        nx = 0.0
        ny = 0.0
        nz = 0.0
        for cz in range(z0, z1 + 1):
            for cy in range(y0, y1 + 1):
                base = cz * sxy + cy * sx
                for cx in range(x0, x1 + 1):
                    c = base + cx
                    for j in range(cellOffsets[c], cellOffsets[c + 1]):
                        dx = xi - positions[j, 0]
                        dy = yi - positions[j, 1]
                        dz = zi - positions[j, 2]
                        r2 = dx * dx + dy * dy + dz * dz
                        if r2 < h2:
                            d = h2 - r2
                            w = d * d / densities[j]
                            nx += w * dx
                            ny += w * dy
                            nz += w * dz

        normals[i, 0] = nx * scale
        normals[i, 1] = ny * scale
        normals[i, 2] = nz * scale


######################################################################
# -- Forces -- #
######################################################################

@parallelKernel
def forceStage(
    positions, velocities, normals, densities, pressures,
    cellOffsets, gridMin, invCellSize, size, h, h2, halfH,
    particleMass, restDensity, spikyGradConstant,
    viscosityScale, minViscosityDensity,
    cohesionScale, surfaceTensionOffset, curvatureScale,
    weight, forces, coincidentRank,
):
    '''
    Pressure, viscosity, cohesion and curvature over 0 < r^2 < h^2,
    plus the particle weight.

    coincidentRank[i] receives the number of lower slots j < i sharing
    the exact position of i; such pairs contribute no force.
    '''
    sx = size[0]
    sxy = size[0] * size[1]
    m2 = particleMass * particleMass
    for i in nb.prange(positions.shape[0]):
        xi = positions[i, 0]
        yi = positions[i, 1]
        zi = positions[i, 2]
        x0, x1, y0, y1, z0, z1 = _cellSpan(xi, yi, zi, h, gridMin, invCellSize, size)

        densityI = densities[i]
        pressureI = pressures[i] / (densityI * densityI)
        fx = 0.0
        fy = 0.0
        fz = 0.0
        rank = 0
        for cz in range(z0, z1 + 1):
            for cy in range(y0, y1 + 1):
                base = cz * sxy + cy * sx
                for cx in range(x0, x1 + 1):
                    c = base + cx
                    for j in range(cellOffsets[c], cellOffsets[c + 1]):
                        dx = xi - positions[j, 0]
                        dy = yi - positions[j, 1]
                        dz = zi - positions[j, 2]
                        r2 = dx * dx + dy * dy + dz * dz
                        if r2 >= h2:
                            continue
                        if r2 == 0.0:
                            if j < i:
                                rank += 1
                            continue

                        rn = math.sqrt(r2)
                        q = h - rn
                        densityJ = densities[j]

                        # Symmetric pressure, spiky gradient
                        pressure = -m2 * (pressureI + pressures[j] / (densityJ * densityJ)) \
                            * spikyGradConstant * q * q / rn
                        fx += pressure * dx
                        fy += pressure * dy
                        fz += pressure * dz

                        if densityJ > minViscosityDensity:
                            viscous = -viscosityScale * q / densityJ
                            fx += viscous * (velocities[i, 0] - velocities[j, 0])
                            fy += viscous * (velocities[i, 1] - velocities[j, 1])
                            fz += viscous * (velocities[i, 2] - velocities[j, 2])

                        correction = 2.0 * restDensity / (densityI + densityJ)
                        shape = q * q * q * rn * rn * rn
                        if rn < halfH:
                            shape = 2.0 * shape + surfaceTensionOffset
                        cohesion = -cohesionScale * correction * shape / rn
                        fx += cohesion * dx
                        fy += cohesion * dy
                        fz += cohesion * dz

                        curvature = -curvatureScale * correction
                        fx += curvature * (normals[i, 0] - normals[j, 0])
                        fy += curvature * (normals[i, 1] - normals[j, 1])
                        fz += curvature * (normals[i, 2] - normals[j, 2])

        forces[i, 0] = fx + weight[0]
        forces[i, 1] = fy + weight[1]
        forces[i, 2] = fz + weight[2]
        coincidentRank[i] = rank


######################################################################
# -- Integration -- #
######################################################################

@parallelKernel
def symplecticEulerStage(positions, velocities, forces, kick, dt):
    '''v += f * kick; x += v * dt, with kick = dt / m.'''
    for i in nb.prange(positions.shape[0]):
        for d in range(3):
            velocities[i, d] += forces[i, d] * kick
            positions[i, d] += velocities[i, d] * dt
