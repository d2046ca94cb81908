# -- Uniform Spatial Grid for Neighbor Search -- #

'''
Uniform-cell spatial index for O(N) neighbor search in SPH.

Divides the simulation domain into cubic cells of size equal to the
kernel support radius h. The per-axis cell count is rounded up to a
power of two so that cells can also be addressed by Morton code.

The grid never copies particle data. Each rebuild counting-sorts the
particle arrays in place so that particles of the same cell are
contiguous, and records per cell the slot range
[cellOffsets[c], cellOffsets[c + 1]). The caller keeps its co-indexed
arrays in sync either through a swap(i, j) callback or, for
struct-of-arrays containers, through a single bulk permute(order).

Neighbor queries visit every particle stored in the cells overlapping
the query box [p - radius, p + radius]. This is a candidate set:
callers apply their own squared-distance filter.

References:
-----------
Ihmsen et al. (2011) -- Parallel Neighbor-Search for SPH
Green (2010) -- Particle Simulation using CUDA
'''

from __future__ import annotations

import logging
import math
from typing import Callable

import numba as nb
import numpy as np

from sphFluid.sph.protocols import Box3


logger = logging.getLogger(__name__)


#--------------------------------------------------------------------#
# -- Index Helpers -- #
#--------------------------------------------------------------------#

def nextPowerOfTwo(n: int) -> int:
    '''Smallest power of two >= n (1 for n <= 1).'''
    n = int(n)
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def _spreadBits(v: np.ndarray) -> np.ndarray:
    # Insert two zero bits between each of the low 10 bits
    v = v & 0x3FF
    v = (v | (v << 16)) & 0x030000FF
    v = (v | (v << 8)) & 0x0300F00F
    v = (v | (v << 4)) & 0x030C30C3
    v = (v | (v << 2)) & 0x09249249
    return v


def mortonCode(x, y, z):
    '''
    30-bit Morton code interleaving the low 10 bits of x, y and z.

    Bit layout: ... z1 y1 x1 z0 y0 x0. Accepts ints or integer arrays.
    '''
    x = np.asarray(x, dtype=np.int64)
    y = np.asarray(y, dtype=np.int64)
    z = np.asarray(z, dtype=np.int64)
    code = _spreadBits(x) | (_spreadBits(y) << 1) | (_spreadBits(z) << 2)
    if code.ndim == 0:
        return int(code)
    return code


@nb.njit
def countingSortOrder(cells, cellOffsets):
    '''
    Stable counting-sort permutation of particles into cell order.

    order[k] is the old slot of the particle that lands in slot k.
    One sequential pass, each particle is placed at the next free slot
    of its cell.
    '''
    nextSlot = cellOffsets[:-1].copy()
    order = np.empty(cells.shape[0], dtype=np.int64)
    for i in range(cells.shape[0]):
        c = cells[i]
        order[nextSlot[c]] = i
        nextSlot[c] += 1
    return order


#--------------------------------------------------------------------#
# -- Spatial Grid -- #
#--------------------------------------------------------------------#

class SpatialGrid:
    '''
    Uniform grid over an axis-aligned domain with in-place counting sort.

    Parameters:
    -----------
    bounds : Box3 | None
        Simulation domain. If None, init() must be called before use.
    cellSize : float | None
        Cell edge length [m], equal to the kernel support radius
    '''

    def __init__(self, bounds: Box3 | None = None, cellSize: float | None = None) -> None:
        self._bounds: Box3 | None = None
        self._cellSize = 0.0
        self._invCellSize = 0.0
        self._size = np.zeros(3, dtype=np.int64)
        self._cellOffsets = np.zeros(1, dtype=np.int64)
        if bounds is not None:
            self.init(bounds, cellSize)

    def init(self, bounds: Box3, cellSize: float) -> None:
        '''
        Fix the domain and cell size, and size the lattice.

        Cell count per axis = nextPowerOfTwo(floor(extent / cellSize) + 1).

        Parameters:
        -----------
        bounds : Box3
            Simulation domain
        cellSize : float
            Cell edge length [m]

        Raises:
        -------
        ValueError : If cellSize is not positive or the domain is empty
        '''
        if cellSize is None or not cellSize > 0.0:
            raise ValueError(f'Grid cell size must be positive, got {cellSize}')
        if np.any(bounds.extents <= 0.0):
            raise ValueError(f'Grid bounds must have positive extents, got {bounds.extents}')

        self._bounds = bounds
        self._cellSize = float(cellSize)
        self._invCellSize = 1.0 / self._cellSize
        self._size = np.array(
            [nextPowerOfTwo(int(math.floor(e / self._cellSize)) + 1) for e in bounds.extents],
            dtype=np.int64,
        )
        self._cellOffsets = np.zeros(self.cellCount + 1, dtype=np.int64)

        logger.debug(
            'Initialized grid: bounds = %s..%s, cellSize = %f, size = %s',
            bounds.min, bounds.max, self._cellSize, self._size,
        )

    ######################################################################
    # -- Cell Addressing -- #
    ######################################################################

    def cellIndex(self, positions: np.ndarray) -> np.ndarray:
        '''
        Integer cell coordinates floor((p - boundsMin) / cellSize).

        Not clamped: positions outside the domain yield indices outside
        [0, size - 1]. Accepts shape (3,) or (M, 3).
        '''
        positions = np.asarray(positions, dtype=np.float64)
        return np.floor((positions - self._bounds.min) * self._invCellSize).astype(np.int64)

    def clampIndex(self, index: np.ndarray) -> np.ndarray:
        '''Clip integer cell coordinates into [0, size - 1].'''
        return np.clip(index, 0, self._size - 1)

    def linearIndex(self, positions: np.ndarray) -> np.ndarray:
        '''Linear cell index z * sx * sy + y * sx + x of the clamped cell.'''
        idx = self.clampIndex(self.cellIndex(positions))
        return self._linear(idx)

    def mortonIndex(self, positions: np.ndarray) -> np.ndarray:
        '''Morton code of the clamped cell.'''
        idx = self.clampIndex(self.cellIndex(positions))
        return mortonCode(idx[..., 0], idx[..., 1], idx[..., 2])

    def _linear(self, idx: np.ndarray) -> np.ndarray:
        sx, sy = self._size[0], self._size[1]
        return idx[..., 2] * (sx * sy) + idx[..., 1] * sx + idx[..., 0]

    def cellRange(self, cell: int) -> tuple[int, int]:
        '''Slot range [start, stop) of a linear cell index after the last update.'''
        return int(self._cellOffsets[cell]), int(self._cellOffsets[cell + 1])

    ######################################################################
    # -- Rebuild (Counting Sort) -- #
    ######################################################################

    def update(self, positions: np.ndarray, swapper) -> None:
        '''
        Rebuild cell membership and reorder the particles in place.

        Pass 1 bins every particle and counts particles per cell.
        Pass 2 prefix-sums the counts into cellOffsets (sentinel total
        at the end). Pass 3 permutes the particles into cell order.

        If swapper provides permute(order), the permutation is applied
        as one stable bulk reorder. Otherwise swapper is treated as a
        swap(i, j) callback (or an object with a swap method) and the
        in-place cycle-swap sort runs, invoking it for every swap.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 3)
        swapper : Reorderable | Callable[[int, int], None]
            Receiver of the reordering
        '''
        cells = self.linearIndex(positions)
        cellCount = np.bincount(cells, minlength=self.cellCount)

        self._cellOffsets[0] = 0
        np.cumsum(cellCount, out=self._cellOffsets[1:])

        permute = getattr(swapper, 'permute', None)
        if permute is not None:
            permute(countingSortOrder(cells, self._cellOffsets))
        else:
            swap = swapper if callable(swapper) else swapper.swap
            self._swapSort(cells, swap)

    def _swapSort(self, cells: np.ndarray, swap: Callable[[int, int], None]) -> None:
        indices = cells.tolist()
        start = self._cellOffsets[:-1].tolist()
        nextSlot = list(start)

        # Slot i is final once it lies in [start[c], nextSlot[c]) of its cell c
        for i in range(len(indices)):
            while True:
                c = indices[i]
                if start[c] <= i < nextSlot[c]:
                    break
                j = nextSlot[c]
                nextSlot[c] += 1
                if j != i:
                    indices[i], indices[j] = indices[j], indices[i]
                    swap(i, j)

    ######################################################################
    # -- Neighbor Lookup -- #
    ######################################################################

    def _cellSpan(self, points: np.ndarray, radius: float) -> tuple[np.ndarray, np.ndarray]:
        lo = self.clampIndex(self.cellIndex(points - radius))
        hi = self.clampIndex(self.cellIndex(points + radius))
        return lo, hi

    def lookup(self, point: np.ndarray, radius: float, visit: Callable[[int], None]) -> None:
        '''
        Visit every particle slot stored in cells overlapping the query box.

        Parameters:
        -----------
        point : np.ndarray
            Query point, shape (3,)
        radius : float
            Query radius [m]
        visit : Callable[[int], None]
            Called once per candidate slot
        '''
        lo, hi = self._cellSpan(np.asarray(point, dtype=np.float64), radius)
        sx, sxy = int(self._size[0]), int(self._size[0] * self._size[1])
        offsets = self._cellOffsets
        for z in range(int(lo[2]), int(hi[2]) + 1):
            for y in range(int(lo[1]), int(hi[1]) + 1):
                base = z * sxy + y * sx
                for x in range(int(lo[0]), int(hi[0]) + 1):
                    c = base + x
                    for j in range(offsets[c], offsets[c + 1]):
                        visit(j)

    def lookupBatch(self, points: np.ndarray, radius: float) -> tuple[np.ndarray, np.ndarray]:
        '''
        Vectorized lookup() over many query points.

        For each query point, candidate slots are produced in the same
        cell order as lookup() (z, then y, then x, slots ascending), so
        per-query sums accumulate in a fixed order.

        Parameters:
        -----------
        points : np.ndarray
            Query points, shape (M, 3)
        radius : float
            Query radius [m]

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] :
            (queryIdx, slots): row q of points has candidate slots[k]
            wherever queryIdx[k] == q
        '''
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        lo, hi = self._cellSpan(points, radius)
        span = hi - lo
        maxSpan = span.max(axis=0) + 1 if len(points) else np.zeros(3, dtype=np.int64)
        offsets = self._cellOffsets

        queryChunks: list[np.ndarray] = []
        slotChunks: list[np.ndarray] = []

        for oz in range(int(maxSpan[2])):
            for oy in range(int(maxSpan[1])):
                for ox in range(int(maxSpan[0])):
                    offset = np.array([ox, oy, oz], dtype=np.int64)
                    query = np.nonzero(np.all(offset <= span, axis=1))[0]
                    if len(query) == 0:
                        continue

                    cells = self._linear(lo[query] + offset)
                    starts = offsets[cells]
                    counts = offsets[cells + 1] - starts
                    occupied = counts > 0
                    if not np.any(occupied):
                        continue
                    query = query[occupied]
                    starts = starts[occupied]
                    counts = counts[occupied]

                    # Expand each (query, cell) into its run of slots
                    groupStart = np.repeat(np.cumsum(counts) - counts, counts)
                    runIndex = np.arange(int(counts.sum()), dtype=np.int64) - groupStart
                    queryChunks.append(np.repeat(query, counts))
                    slotChunks.append(np.repeat(starts, counts) + runIndex)

        if not queryChunks:
            empty = np.array([], dtype=np.int64)
            return (empty, empty.copy())

        return (np.concatenate(queryChunks), np.concatenate(slotChunks))

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def bounds(self) -> Box3:
        '''Simulation domain.'''
        return self._bounds

    @property
    def cellSize(self) -> float:
        '''Cell edge length [m].'''
        return self._cellSize

    @property
    def size(self) -> np.ndarray:
        '''Cell count per axis (powers of two).'''
        return self._size.copy()

    @property
    def cellCount(self) -> int:
        '''Total number of cells.'''
        return int(np.prod(self._size))

    @property
    def cellOffsets(self) -> np.ndarray:
        '''Per-cell slot offsets, length cellCount + 1.'''
        return self._cellOffsets
