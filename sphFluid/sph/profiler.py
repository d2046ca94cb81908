# -- Named Timing Scopes -- #

'''
Lightweight profiler collecting wall-clock time per named scope.

The solver wraps each pipeline stage in a scope:

    with profiler.scope('Density Update'):
        solver.computeDensity()

Scopes are purely observational and never affect simulation results.
'''

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


@dataclass
class ScopeStats:
    '''Accumulated timings of one named scope.'''

    name: str
    calls: int = 0
    totalSeconds: float = 0.0
    lastSeconds: float = 0.0

    @property
    def meanSeconds(self) -> float:
        '''Average time per call [s].'''
        return self.totalSeconds / self.calls if self.calls else 0.0


class Profiler:
    '''
    Sink for named timing scopes.

    Scopes are reported in the order they were first entered.

    Parameters:
    -----------
    enabled : bool
        If False, scope() is a no-op
    '''

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._scopes: dict[str, ScopeStats] = {}

    @contextmanager
    def scope(self, name: str) -> Iterator[None]:
        '''Time the enclosed block under the given name.'''
        if not self.enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, time.perf_counter() - start)

    def record(self, name: str, seconds: float) -> None:
        '''Add one timing sample to a scope.'''
        stats = self._scopes.get(name)
        if stats is None:
            stats = ScopeStats(name)
            self._scopes[name] = stats
        stats.calls += 1
        stats.totalSeconds += seconds
        stats.lastSeconds = seconds

    def reset(self) -> None:
        '''Drop all recorded timings.'''
        self._scopes.clear()

    @property
    def scopes(self) -> list[ScopeStats]:
        '''Recorded scopes in first-entered order.'''
        return list(self._scopes.values())

    def get(self, name: str) -> ScopeStats | None:
        '''Statistics of one scope, or None if it was never entered.'''
        return self._scopes.get(name)

    def summary(self) -> str:
        '''Formatted table of scope timings.'''
        lines = [
            f'  {"Scope":<20}  {"Calls":>8}  {"Total":>10}  {"Mean":>10}',
            f'  {"":<20}  {"":>8}  {"(s)":>10}  {"(ms)":>10}',
            '  ' + '-' * 54,
        ]
        for stats in self._scopes.values():
            lines.append(
                f'  {stats.name:<20}  {stats.calls:8d}  {stats.totalSeconds:10.4f}  '
                f'{stats.meanSeconds * 1000.0:10.3f}'
            )
        return '\n'.join(lines)

    def dump(self) -> None:
        '''Print the scope table.'''
        print(self.summary())


@contextmanager
def profileScope(profiler: Profiler | None, name: str) -> Iterator[None]:
    '''Scope on an optional profiler; does nothing when profiler is None.'''
    if profiler is None:
        yield
        return
    with profiler.scope(name):
        yield
