# -- Spatial Grid Tests -- #

'''
Grid sizing, counting sort partition and neighbor completeness.
'''

import numpy as np
import pytest
from scipy.spatial import cKDTree

from sphFluid.sph.particles import ParticleField
from sphFluid.sph.protocols import Box3
from sphFluid.sph.spatialGrid import SpatialGrid, countingSortOrder, mortonCode, nextPowerOfTwo


def _randomField(n=400, seed=7, lo=-0.05, hi=1.05):
    rng = np.random.default_rng(seed)
    return ParticleField.fromPositions(rng.uniform(lo, hi, size=(n, 3)))


def _assertPartition(grid, positions):
    offsets = grid.cellOffsets
    cells = grid.linearIndex(positions)
    assert offsets[0] == 0
    assert offsets[-1] == len(positions)
    assert np.all(np.diff(offsets) >= 0)
    for c in np.unique(cells):
        start, stop = grid.cellRange(c)
        assert np.all(cells[start:stop] == c)


def testNextPowerOfTwo():
    assert [nextPowerOfTwo(n) for n in [0, 1, 2, 3, 5, 8, 9, 1000]] == [1, 1, 2, 4, 8, 8, 16, 1024]


def testMortonCode():
    assert mortonCode(0, 0, 0) == 0
    assert mortonCode(1, 0, 0) == 1
    assert mortonCode(0, 1, 0) == 2
    assert mortonCode(0, 0, 1) == 4
    assert mortonCode(1, 1, 1) == 7
    assert mortonCode(2, 0, 0) == 8
    assert mortonCode(1023, 1023, 1023) == (1 << 30) - 1
    np.testing.assert_array_equal(mortonCode(np.array([1, 0]), np.array([0, 1]), np.array([0, 0])), [1, 2])


def testGridSizing():
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 0.5, 0.25]), 0.1)
    # floor(extent / h) + 1 = 11, 6, 3 -> next power of two
    np.testing.assert_array_equal(grid.size, [16, 8, 4])
    assert grid.cellCount == 16 * 8 * 4
    assert len(grid.cellOffsets) == grid.cellCount + 1


@pytest.mark.parametrize('cellSize', [0.0, -1.0, None])
def testInvalidCellSize(cellSize):
    with pytest.raises(ValueError):
        SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), cellSize)


def testEmptyBoundsRejected():
    with pytest.raises(ValueError):
        SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 0.0, 1.0]), 0.1)


def testCellIndexAndClamping():
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    np.testing.assert_array_equal(grid.cellIndex([0.25, 0.05, 0.95]), [2, 0, 9])
    np.testing.assert_array_equal(grid.cellIndex([-0.05, 0.0, 0.0]), [-1, 0, 0])
    np.testing.assert_array_equal(grid.clampIndex(np.array([-3, 5, 40])), [0, 5, 15])
    assert grid.linearIndex([-0.5, -0.5, -0.5]) == 0
    assert grid.linearIndex([0.15, 0.25, 0.35]) == 3 * 256 + 2 * 16 + 1
    assert grid.mortonIndex([0.15, 0.0, 0.0]) == 1


def testPartitionSortedBulkPath():
    field = _randomField()
    before = field.positions.copy()
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field)

    _assertPartition(grid, field.positions)
    np.testing.assert_array_equal(np.sort(field.ids), np.arange(field.nParticles))
    np.testing.assert_array_equal(field.positions, before[field.ids])


def testPartitionSortedSwapPath():
    field = _randomField()
    before = field.positions.copy()
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field.swap)

    _assertPartition(grid, field.positions)
    np.testing.assert_array_equal(field.positions, before[field.ids])


def testCountingSortOrderIsStable():
    rng = np.random.default_rng(5)
    cells = rng.integers(0, 64, size=1000).astype(np.int64)
    offsets = np.zeros(65, dtype=np.int64)
    offsets[1:] = np.cumsum(np.bincount(cells, minlength=64))

    np.testing.assert_array_equal(countingSortOrder(cells, offsets), np.argsort(cells, kind='stable'))


def testBulkPathKeepsSlotOrderWithinCells():
    field = _randomField(seed=9)
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field)

    offsets = grid.cellOffsets
    for c in np.nonzero(np.diff(offsets))[0]:
        ids = field.ids[offsets[c]:offsets[c + 1]]
        assert np.all(np.diff(ids) > 0)


def testSwapAndBulkPathsAgree():
    bulk = _randomField(seed=3)
    swapped = _randomField(seed=3)
    box = Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])
    bulkGrid = SpatialGrid(box, 0.1)
    swapGrid = SpatialGrid(box, 0.1)
    bulkGrid.update(bulk.positions, bulk)
    swapGrid.update(swapped.positions, swapped.swap)

    np.testing.assert_array_equal(bulkGrid.cellOffsets, swapGrid.cellOffsets)
    offsets = bulkGrid.cellOffsets
    for c in np.nonzero(np.diff(offsets))[0]:
        start, stop = offsets[c], offsets[c + 1]
        assert set(bulk.ids[start:stop]) == set(swapped.ids[start:stop])


def testSwapCallbackReplaysSort():
    '''Applying the reported swaps to the cell list sorts it.'''
    rng = np.random.default_rng(11)
    positions = rng.uniform(0.0, 1.0, size=(200, 3))
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.25)
    cells = list(grid.linearIndex(positions))
    swaps = []

    grid.update(positions.copy(), lambda i, j: swaps.append((i, j)))

    for i, j in swaps:
        assert i != j
        cells[i], cells[j] = cells[j], cells[i]
    assert cells == sorted(cells)


def testUpdateAlreadySortedIssuesNoSwaps():
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.25)
    field = _randomField(n=100, lo=0.0, hi=1.0)
    grid.update(field.positions, field)
    swaps = []
    grid.update(field.positions, lambda i, j: swaps.append((i, j)))
    assert swaps == []


def testNeighborCompleteness():
    '''Every particle within the radius is a candidate, also near and past the walls.'''
    field = _randomField(n=600, seed=5, lo=-0.1, hi=1.1)
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field)
    positions = field.positions
    radius = 0.1

    query, slots = grid.lookupBatch(positions, radius)
    candidates = [set() for _ in range(len(positions))]
    for q, s in zip(query, slots):
        candidates[q].add(s)

    tree = cKDTree(positions)
    for i, neighbors in enumerate(tree.query_ball_point(positions, radius * (1.0 - 1e-12))):
        assert set(neighbors) <= candidates[i]


def testCandidatesMatchBruteForce():
    field = _randomField(n=150, seed=9, lo=0.0, hi=1.0)
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.2)
    grid.update(field.positions, field)
    positions = field.positions

    query, slots = grid.lookupBatch(positions, 0.2)
    d2 = np.sum((positions[query] - positions[slots]) ** 2, axis=1)
    found = {(q, s) for q, s, inside in zip(query, slots, d2 < 0.04) if inside}

    diff = positions[:, np.newaxis, :] - positions[np.newaxis, :, :]
    brute = {(i, j) for i, j in zip(*np.nonzero(np.sum(diff * diff, axis=2) < 0.04))}
    assert found == brute


def testLookupMatchesBatchOrder():
    field = _randomField(n=300, seed=1, lo=0.0, hi=1.0)
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field)

    points = np.array([[0.5, 0.5, 0.5], [0.0, 0.0, 0.0], [0.99, 0.01, 0.5]])
    query, slots = grid.lookupBatch(points, 0.1)
    for q, point in enumerate(points):
        visited = []
        grid.lookup(point, 0.1, visited.append)
        assert visited == list(slots[query == q])


def testLookupOutsideDomainClamps():
    field = _randomField(n=100, seed=2, lo=0.0, hi=1.0)
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(field.positions, field)

    visited = []
    grid.lookup([-5.0, -5.0, -5.0], 0.1, visited.append)
    start, stop = grid.cellRange(0)
    assert visited == list(range(start, stop))


def testEmptyBatch():
    grid = SpatialGrid(Box3([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]), 0.1)
    grid.update(np.zeros((0, 3)), lambda i, j: None)
    query, slots = grid.lookupBatch(np.zeros((0, 3)), 0.1)
    assert len(query) == 0 and len(slots) == 0
