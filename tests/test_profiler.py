# -- Profiler Tests -- #

'''
Named timing scopes.
'''

import pytest

from sphFluid.sph.profiler import Profiler, profileScope


def testScopeRecordsCalls():
    profiler = Profiler()
    for _ in range(3):
        with profiler.scope('Density Update'):
            pass
    with profiler.scope('Force Update'):
        pass

    assert [s.name for s in profiler.scopes] == ['Density Update', 'Force Update']
    stats = profiler.get('Density Update')
    assert stats.calls == 3
    assert stats.totalSeconds >= 0.0
    assert stats.meanSeconds == pytest.approx(stats.totalSeconds / 3)
    assert profiler.get('Integrate') is None


def testScopeRecordsOnException():
    profiler = Profiler()
    with pytest.raises(KeyError):
        with profiler.scope('Grid Update'):
            raise KeyError('boom')
    assert profiler.get('Grid Update').calls == 1


def testDisabledProfilerRecordsNothing():
    profiler = Profiler(enabled=False)
    with profiler.scope('Integrate'):
        pass
    assert profiler.scopes == []


def testProfileScopeWithoutProfiler():
    with profileScope(None, 'Integrate'):
        value = 1
    assert value == 1


def testSummaryAndReset(capsys):
    profiler = Profiler()
    profiler.record('Collision Update', 0.002)
    profiler.record('Collision Update', 0.004)

    summary = profiler.summary()
    assert 'Collision Update' in summary
    assert '3.000' in summary

    profiler.dump()
    assert 'Collision Update' in capsys.readouterr().out

    profiler.reset()
    assert profiler.scopes == []
