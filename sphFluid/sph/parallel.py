# -- Parallel Particle Loops -- #

'''
Numba-compiled per-particle loops and the scheduler that runs them.

A stage kernel is a plain function whose outer loop is
`numba.prange` over particle slots. parallelKernel compiles it twice:
with parallel=True, so numba splits the slot range across its thread
pool and joins before returning, and as an ordinary serial njit,
where prange behaves like range. ParallelExecutor picks the variant
and the thread count for each launch.

Correctness relies on write disjointness: iteration i may read any
shared array but must only write row i of its outputs. Every
per-particle sum then runs in the same order regardless of the
thread count, so serial and threaded runs give identical results.
'''

from __future__ import annotations

import logging
from typing import Callable

import numba as nb


logger = logging.getLogger(__name__)


def defaultWorkerCount() -> int:
    '''Size of the numba thread pool (all cores unless NUMBA_NUM_THREADS is set).'''
    return int(nb.config.NUMBA_NUM_THREADS)


class ParallelKernel:
    '''
    A prange loop compiled as a threaded and as a serial numba function.

    Parameters:
    -----------
    func : Callable
        Loop body; its outer loop must be nb.prange over particles
    '''

    def __init__(self, func: Callable) -> None:
        self.__name__ = func.__name__
        self.__doc__ = func.__doc__
        self.parallel = nb.njit(parallel=True)(func)
        self.serial = nb.njit(func)


def parallelKernel(func: Callable) -> ParallelKernel:
    '''Decorator turning a prange loop into a ParallelKernel.'''
    return ParallelKernel(func)


class ParallelExecutor:
    '''
    Fork-join scheduler for per-particle stages.

    Parameters:
    -----------
    nWorkers : int | None
        Number of threads. None uses the whole numba thread pool;
        1 runs the serial variant on the calling thread. Requests
        above the pool size are capped to it.
    '''

    def __init__(self, nWorkers: int | None = None) -> None:
        poolSize = defaultWorkerCount()
        if nWorkers is None:
            nWorkers = poolSize
        if nWorkers < 1:
            raise ValueError(f'nWorkers must be at least 1, got {nWorkers}')
        if nWorkers > poolSize:
            logger.debug('Capping %d workers to the numba pool size %d', nWorkers, poolSize)
            nWorkers = poolSize
        self._nWorkers = nWorkers

    @property
    def nWorkers(self) -> int:
        '''Number of threads used per launch.'''
        return self._nWorkers

    def launch(self, kernel: ParallelKernel, *args):
        '''
        Run a kernel over its particle range and join.

        Parameters:
        -----------
        kernel : ParallelKernel
            Compiled stage loop
        *args
            Arrays and scalars forwarded to the kernel

        Returns:
        --------
        Whatever the kernel returns
        '''
        if self._nWorkers == 1:
            return kernel.serial(*args)

        previous = nb.get_num_threads()
        nb.set_num_threads(self._nWorkers)
        try:
            return kernel.parallel(*args)
        finally:
            nb.set_num_threads(previous)
