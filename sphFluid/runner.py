# -- SPH Fluid Runner -- #

'''
Command-line entry point for running SPH fluid simulations.

Loads a scene (preset or JSON), runs the WCSPH solver for a number
of frames, displays progress, and optionally exports frame data,
a final point cloud, Plotly figures and stage timings.

Usage:
    python -m sphFluid.runner                              # Small cube drop
    python -m sphFluid.runner --preset damBreak --frames 200
    python -m sphFluid.runner --config configs/damBreak.json --workers 4
    python -m sphFluid.runner --no-export --profile
'''

from __future__ import annotations

import argparse
import logging
import os
import time as timeModule

from tqdm import tqdm

from sphFluid.scenes.sceneConfig import SceneConfig
from sphFluid.sph.parallel import ParallelExecutor
from sphFluid.sph.profiler import Profiler
from sphFluid.sph.sphSolver import SphSolver
from sphFluid.export.frameExporter import FrameExporter, exportPointCloud
from sphFluid.visualization.particlePlots import plotParticles, plotProfile


_PRESETS = {
    'small': SceneConfig.small,
    'damBreak': SceneConfig.damBreak,
    'sphereDrop': SceneConfig.sphereDrop,
}


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='sphFluid -- weakly compressible SPH fluid simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON scene file (overrides --preset)',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=sorted(_PRESETS),
        help='Scene preset (default: small)',
    )
    parser.add_argument(
        '--frames', type=int, default=100,
        help='Number of frames to simulate (default: 100)',
    )
    parser.add_argument(
        '--steps-per-frame', type=int, default=10,
        help='Solver steps per frame (default: 10)',
    )
    parser.add_argument(
        '--dt', type=float, default=None,
        help='Time step [s] (default: the scene maximum time step)',
    )
    parser.add_argument(
        '--workers', type=int, default=None,
        help='Worker threads (default: all cores; 1 = single-threaded)',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--point-cloud', action='store_true',
        help='Write the final particle positions as a PLY point cloud',
    )
    parser.add_argument(
        '--output-dir', type=str, default='output',
        help='Output directory for exported data (default: output)',
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Show the final particle positions in a Plotly figure',
    )
    parser.add_argument(
        '--profile', action='store_true',
        help='Print per-stage timings after the run',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Enable debug logging of derived parameters',
    )

    return parser


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class SphRunner:
    '''
    Runs an SPH scene and stores results.

    Handles the full pipeline: solver setup, simulation loop with
    progress reporting, and optional export.

    Parameters:
    -----------
    nWorkers : int | None
        Worker threads for the solver (None = all cores)
    profile : bool
        Collect per-stage timings
    '''

    def __init__(self, nWorkers: int | None = None, profile: bool = False) -> None:
        self._exporter = FrameExporter()
        self._executor = ParallelExecutor(nWorkers)
        self._profiler = Profiler() if profile else None

    @property
    def profiler(self) -> Profiler | None:
        return self._profiler

    def runFromConfig(self, configPath: str, **kwargs) -> dict:
        '''
        Run a scene loaded from a JSON file.

        Parameters:
        -----------
        configPath : str
            Path to the JSON scene file
        **kwargs
            Forwarded to run()

        Returns:
        --------
        dict : Simulation results summary
        '''
        scene = SceneConfig.fromJson(configPath)
        name = os.path.splitext(os.path.basename(configPath))[0]
        return self.run(scene, scenarioName=name, **kwargs)

    def run(
        self,
        scene: SceneConfig,
        nFrames: int = 100,
        stepsPerFrame: int = 10,
        dt: float | None = None,
        doExport: bool = True,
        exportDir: str = 'output',
        scenarioName: str = 'scene',
        pointCloud: bool = False,
    ) -> dict:
        '''
        Run a scene for a number of frames.

        Parameters:
        -----------
        scene : SceneConfig
            Scene to simulate
        nFrames : int
            Number of frames to record
        stepsPerFrame : int
            Solver steps between recorded frames
        dt : float | None
            Time step [s] (None = solver maximum time step)
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory
        scenarioName : str
            Scenario name used in output file names
        pointCloud : bool
            Whether to write the final state as a PLY point cloud

        Returns:
        --------
        dict : Simulation results summary

        Raises:
        -------
        ValueError : If nFrames or stepsPerFrame is below 1
        '''
        if nFrames < 1 or stepsPerFrame < 1:
            raise ValueError(f'nFrames and stepsPerFrame must be at least 1, got {nFrames}, {stepsPerFrame}')

        print()
        print('=' * 62)
        print('  SPHFLUID -- WEAKLY COMPRESSIBLE SPH SIMULATION')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scene Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENE SETUP')
        print('-' * 62)

        solver = SphSolver(scene, executor=self._executor, profiler=self._profiler)
        params = solver.parameters
        extents = scene.bounds.extents
        dt = solver.maxTimestep if dt is None else dt

        print(f'  Scenario:          {scenarioName:>12}')
        print(f'  Domain:            {extents[0]:5.2f} x {extents[1]:5.2f} x {extents[2]:5.2f} m')
        print(f'  Fill Boxes:        {len(scene.boxes):8d}')
        print(f'  Fill Spheres:      {len(scene.spheres):8d}')
        print(f'  Rest Spacing:      {params.restSpacing:8.4f} m')
        print(f'  Support Radius:    {params.h:8.4f} m')
        print(f'  Particle Mass:     {params.particleMass:8.5f} kg')
        print(f'  Particles:         {solver.particles.nParticles:8d}')
        print(f'  Gravity Mode:      {scene.gravityMode:>12}')
        print()

        #--------------------------------------------------------------------#
        # Solver
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SOLVER')
        print('-' * 62)
        print(f'  Speed of Sound:    {solver.settings.speedOfSound:8.2f} m/s')
        print(f'  Stiffness B:       {solver.stiffness:12.1f} Pa')
        print(f'  Time Step:         {dt:10.2e} s')
        print(f'  Max Time Step:     {solver.maxTimestep:10.2e} s')
        print(f'  WCSPH Time Step:   {solver.wcsphTimestep:10.2e} s')
        print(f'  Worker Threads:    {self._executor.nWorkers:8d}')
        print()

        if dt > solver.maxTimestep:
            print(f'  Warning: dt exceeds the maximum stable time step')
            print()

        # Record initial frame
        self._exporter.addFrame(solver.currentState, solver.particles)

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Time":>8}  {"Step":>8}  {"MaxVel":>8}  {"DensErr":>8}  {"KE":>10}')
        print(f'  {"(s)":>8}  {"":>8}  {"(m/s)":>8}  {"(%)":>8}  {"(J)":>10}')
        print('  ' + '-' * 50)

        printInterval = max(1, nFrames // 20)
        wallClockStart = timeModule.time()

        for frame in tqdm(range(1, nFrames + 1), desc='  Frames', leave=False):
            for _ in range(stepsPerFrame):
                state = solver.update(dt)
            self._exporter.addFrame(state, solver.particles)

            if frame % printInterval == 0 or frame == nFrames:
                tqdm.write(
                    f'  {state.time:8.4f}  {state.step:8d}  {state.maxVelocity:8.4f}  '
                    f'{state.maxDensityError * 100:8.3f}  {state.kineticEnergy:10.4f}'
                )

        wallClockSeconds = timeModule.time() - wallClockStart
        finalState = solver.currentState

        print()
        print(f'  Simulation complete.')
        print(f'  Total steps:       {finalState.step:8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
        print(f'  Frames recorded:   {self._exporter.nFrames:8d}')
        print()

        #--------------------------------------------------------------------#
        # Export
        #--------------------------------------------------------------------#
        exportPath = None
        pointCloudPath = None
        if doExport or pointCloud:
            print('-' * 62)
            print('  EXPORTING DATA')
            print('-' * 62)

            if doExport:
                exportPath = self._exporter.export(
                    scene,
                    outputDir=exportDir,
                    scenarioName=scenarioName,
                )
                print(f'  Frames:       {exportPath}')
            if pointCloud:
                pointCloudPath = exportPointCloud(
                    solver.particles,
                    os.path.join(exportDir, f'sphFluid_{scenarioName}_final.ply'),
                )
                print(f'  Point cloud:  {pointCloudPath}')
            print()

        if self._profiler is not None:
            print('-' * 62)
            print('  STAGE TIMINGS')
            print('-' * 62)
            self._profiler.dump()
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Simulated Time:    {finalState.time:10.4f} s')
        print(f'  Final KE:          {finalState.kineticEnergy:10.6f} J')
        print(f'  Max Density Error: {finalState.maxDensityError * 100:8.3f} %')
        print(f'  Max Velocity:      {finalState.maxVelocity:8.4f} m/s')
        print('=' * 62)
        print()

        return {
            'solver': solver,
            'finalState': finalState,
            'wallClockSeconds': wallClockSeconds,
            'nFrames': self._exporter.nFrames,
            'exportPath': exportPath,
            'pointCloudPath': pointCloudPath,
        }


def main() -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    runner = SphRunner(nWorkers=args.workers, profile=args.profile)
    options = dict(
        nFrames=args.frames,
        stepsPerFrame=args.steps_per_frame,
        dt=args.dt,
        doExport=not args.no_export,
        exportDir=args.output_dir,
        pointCloud=args.point_cloud,
    )

    if args.config:
        results = runner.runFromConfig(args.config, **options)
    else:
        scene = _PRESETS[args.preset]()
        results = runner.run(scene, scenarioName=args.preset, **options)

    if args.plot:
        solver = results['solver']
        particles = solver.particles
        speeds = (particles.velocities ** 2).sum(axis=1) ** 0.5
        plotParticles(particles.positions, speeds, bounds=solver.bounds).show()
        if runner.profiler is not None:
            plotProfile(runner.profiler).show()


if __name__ == '__main__':
    main()
