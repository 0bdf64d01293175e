"""
The hydronet.sim.core module contains the extended period hydraulic
simulator.

.. rubric:: Contents

.. autosummary::

    HydraulicSimulator

"""
import logging
import math
import warnings

import numpy as np

from hydronet.network.base import LinkStatus
from hydronet.network.elements import Tank
from hydronet.utils.exceptions import ConvergenceFailure, SingularSystem, SimulatorError, SimulatorWarning
from .hydraulics import HydraulicSolver
from .rules import RuleEngine
from .results import ResultsRecorder, ResultsStatus
from .hydfile import HydraulicRecord, HydraulicsFileWriter

logger = logging.getLogger(__name__)


def _sec_to_string(sec):
    hours = int(sec / 3600.)
    sec -= hours * 3600
    mm = int(sec / 60.)
    sec -= mm * 60
    return '{0:d}:{1:02d}:{2:02d}'.format(hours, mm, int(sec))


class HydraulicSimulator(object):
    """
    Extended period hydraulic simulator.

    The simulator is driven step by step through :meth:`open`,
    :meth:`init`, :meth:`run` and :meth:`next` (as the toolkit functions
    ``ENopenH``, ``ENinitH``, ``ENrunH`` and ``ENnextH`` do), or all at once
    with :meth:`solve`. While it is open, the network structure is locked.

    Parameters
    ----------
    wn : WaterNetworkModel
        Water network model
    convergence_error : bool, optional
        If True, a step that does not converge raises
        :class:`~hydronet.utils.exceptions.ConvergenceFailure`; otherwise a
        warning is issued and the run goes on or stops according to
        ``wn.options.hydraulic.unbalanced``. Default is False.

    Attributes
    ----------
    warnings_list : list of str
        Warnings issued since :meth:`init`
    records : list of HydraulicRecord
        The solution of every completed step, in time order
    error_code : ResultsStatus or None
        Set when the run stopped early
    last_changes : list of LinkChange
        Link changes made by controls at the start of the last step
    """
    def __init__(self, wn, convergence_error=False):
        self._wn = wn
        self._convergence_error = convergence_error
        self._solver = None
        self._engine = None
        self._writer = None
        self._initialized = False
        self.warnings_list = []
        self.records = []
        self.error_code = None
        self.last_changes = []
        self.last_warning = 0
        self.time = 0
        self.recorder = None

    @property
    def is_open(self):
        """bool : True between :meth:`open` and :meth:`close`"""
        return self._solver is not None

    @property
    def is_initialized(self):
        """bool : True once :meth:`init` has been called"""
        return self._initialized

    @property
    def solver(self):
        """HydraulicSolver : the single period solver, or None when closed"""
        return self._solver

    @property
    def network(self):
        return self._wn

    def _get_time(self):
        return _sec_to_string(self.time)

    ### #
    ### Step interface
    def open(self):
        """Build the solver for the current network and lock its structure."""
        if self.is_open:
            return
        logger.debug('creating hydraulic solver')
        self._wn._locked = True
        try:
            self._solver = HydraulicSolver(self._wn)
        except Exception:
            self._wn._locked = False
            raise
        self._engine = RuleEngine(self._wn)
        self._initialized = False

    def init(self, save=False, init_flows=True):
        """
        Reset the network to its initial state.

        Parameters
        ----------
        save : bool
            Write every step to the hydraulics file named by
            ``wn.options.hydraulic.hydraulics_filename``; the file is also
            written when ``wn.options.hydraulic.hydraulics`` is ``SAVE``
        init_flows : bool
            Re-initialize link flows
        """
        if not self.is_open:
            raise SimulatorError('the hydraulic simulator is not open')
        wn = self._wn
        wn.reset_initial_values()
        self.time = 0
        self._last_eval = -1
        self._halted = False
        self._pump_period = dict()
        self.warnings_list = []
        self.records = []
        self.error_code = None
        self.last_changes = []
        self.last_warning = 0
        self._tank_volume = dict()
        for name, tank in wn.tanks():
            self._tank_volume[name] = tank.get_volume(tank.init_level)
        self._solver.initialize(init_flows=init_flows)
        self.recorder = ResultsRecorder(wn)
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        if save or wn.options.hydraulic.hydraulics == 'SAVE':
            filename = wn.options.hydraulic.hydraulics_filename
            if not filename:
                filename = (wn.name or 'hydronet') + '.hyd'
            self._writer = HydraulicsFileWriter(filename, wn)
        self._initialized = True

    def run(self):
        """
        Solve the network at the current time.

        Demands, reservoir heads and pump speeds are updated from their
        patterns and the controls and rules are applied before the solve.

        Returns
        -------
        int
            The current simulation time (s)

        Raises
        ------
        SingularSystem
            If the network equations cannot be solved at this time
        ConvergenceFailure
            If the step does not converge and ``convergence_error`` is True
        """
        if not self._initialized:
            raise SimulatorError('the hydraulic simulator is not initialized')
        wn = self._wn
        t = self.time
        wn._prev_sim_time = self._last_eval
        wn.sim_time = t
        self.last_warning = 0

        self._update_pump_speeds(t)
        self.last_changes = self._engine.run()
        for change in self.last_changes:
            logger.debug('%s: %s %s changed from %s to %s by %s', self._get_time(), change.link,
                         change.attribute, change.old, change.new, change.source)

        self._solver.update_inputs(t)
        try:
            iterations, relerr = self._solver.solve(t)
        except ConvergenceFailure as e:
            self._convergence_failure(e)
            iterations, relerr = e.iterations, e.relative_error
        except SingularSystem as e:
            self.error_code = ResultsStatus.error
            logger.error('Simulation stopped at time ' + self._get_time() + '. ' + str(e))
            raise
        self._solver.store_results_in_network()
        self._last_eval = t

        logger.info('{0:<10}{1:<10}{2:<15.6g}{3:<10}'.format(self._get_time(), iterations, relerr,
                                                               len(self.last_changes)))
        if self._is_report_time(t):
            self.recorder.record(t)
        return t

    def next(self):
        """
        Advance to the next time a hydraulic solution is needed.

        The step is the smallest of the hydraulic time step and the times to
        the next pattern period, report time, tank filling or emptying and
        control event; rules are checked every rule time step within it.
        Tank levels are advanced over the step.

        Returns
        -------
        int
            The length of the step (s); 0 at the end of the run
        """
        if not self._initialized:
            raise SimulatorError('the hydraulic simulator is not initialized')
        t = self.time
        if self._halted:
            tstep = 0
        else:
            tstep = self._timestep(t)
        self._save_record(t, tstep)
        if tstep > 0:
            self._integrate_tanks(tstep)
            self.time = t + tstep
        return tstep

    def close(self):
        """Release the solver and unlock the network structure."""
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        if self._solver is not None:
            self._solver.clear_network_state()
        self._solver = None
        self._engine = None
        self._initialized = False
        self._wn._locked = False

    def solve(self, save=False):
        """
        Run a complete extended period simulation.

        Returns
        -------
        SimulationResults
        """
        self.open()
        try:
            self.init(save=save, init_flows=True)
            logger.info('{0:<10}{1:<10}{2:<15}{3:<10}'.format('Sim Time', 'Trials', 'Rel. error', 'Changes'))
            while True:
                try:
                    self.run()
                except SingularSystem:
                    break
                if self.next() <= 0:
                    break
            results = self.recorder.to_results()
            results.error_code = self.error_code
            results.warnings = list(self.warnings_list)
            return results.time_statistic(self._wn.options.time.statistic)
        finally:
            self.close()

    ### #
    ### Helpers
    def _convergence_failure(self, error):
        msg = 'Simulation did not converge at time ' + self._get_time() + '. ' + str(error)
        if self._convergence_error:
            logger.error(msg)
            self.error_code = ResultsStatus.error
            raise error
        warnings.warn(msg, SimulatorWarning)
        logger.warning(msg)
        self.warnings_list.append(msg)
        self.last_warning = 1
        if self._wn.options.hydraulic.unbalanced == 'STOP':
            self.error_code = ResultsStatus.error
            self._halted = True

    def _is_report_time(self, t):
        topts = self._wn.options.time
        if t < topts.report_start:
            return False
        return (t - topts.report_start) % topts.report_timestep == 0

    def _update_pump_speeds(self, t):
        # a speed pattern overrides the setting only when its period changes
        for name, pump in self._wn.pumps():
            pattern = pump.speed_timeseries.pattern
            if not pattern:
                continue
            period = pattern.period(t)
            if self._pump_period.get(name) == period:
                continue
            self._pump_period[name] = period
            speed = pump.speed_timeseries.at(t)
            pump._setting = speed
            if speed == 0:
                pump._user_status = LinkStatus.Closed
            elif pump._user_status is LinkStatus.Closed:
                pump._user_status = LinkStatus.Opened

    def _save_record(self, t, tstep):
        solver = self._solver
        record = HydraulicRecord(int(t), int(tstep), solver.node_demand.copy(), solver.head.copy(),
                                 solver.flow.copy(), solver.status.astype(float), solver.setting.copy())
        self.records.append(record)
        if self._writer is not None:
            self._writer.write(record)

    def _timestep(self, t):
        topts = self._wn.options.time
        if t >= topts.duration:
            return 0
        tstep = topts.hydraulic_timestep
        tstep = min(tstep, topts.duration - t)

        n = (t + topts.pattern_start) // topts.pattern_timestep + 1
        dt = n * topts.pattern_timestep - t - topts.pattern_start
        if 0 < dt < tstep:
            tstep = dt

        if t < topts.report_start:
            dt = topts.report_start - t
        else:
            dt = topts.report_timestep - (t - topts.report_start) % topts.report_timestep
        if 0 < dt < tstep:
            tstep = dt

        tstep = self._tank_timestep(tstep)
        tstep = self._control_timestep(tstep)
        tstep = self._rule_timestep(t, tstep)
        return int(tstep)

    def _tank_timestep(self, tstep):
        for name, tank in self._wn.tanks():
            q = tank.demand
            if q is None or abs(q) <= 1.0e-12:
                continue
            v = self._tank_volume[name]
            if q > 0 and v < tank.max_volume:
                dv = tank.max_volume - v
            elif q < 0 and v > tank.min_volume:
                dv = tank.min_volume - v
            else:
                continue
            dt = int(math.ceil(dv / q))
            if 0 < dt < tstep:
                tstep = dt
        return tstep

    def _control_timestep(self, tstep):
        for name, control in self._wn.controls():
            if control.control_type != 'control':
                continue
            dt = control.condition.time_to_event()
            if dt is None or dt <= 0 or dt >= tstep:
                continue
            if control.action.would_change():
                logger.debug('control %s shortens the step to %d s', name, dt)
                tstep = dt
        return tstep

    def _rule_timestep(self, t, tstep):
        """
        Check the rules every rule time step within the step and cut the
        step at the first check whose actions would change a link.
        """
        wn = self._wn
        if not any(control.control_type == 'rule' for name, control in wn.controls()):
            return tstep
        rulestep = wn.options.time.rule_timestep
        saved_heads = dict((name, tank._head) for name, tank in wn.tanks())
        saved_time = (wn.sim_time, wn._prev_sim_time)
        tmax = t + tstep
        now = t
        dt = min(rulestep, tstep)
        dt1 = min(rulestep - t % rulestep, tstep)
        if dt1 == 0:
            dt1 = dt
        try:
            while dt > 0:
                prev = now
                now += dt1
                self._integrate_tanks(dt1, commit=False, start=prev - t)
                wn._prev_sim_time = prev
                wn.sim_time = now
                winners = self._engine.resolve(self._engine.evaluate())
                if now < tmax and self._engine.would_change(winners):
                    logger.debug('rules shorten the step to %d s', now - t)
                    break
                dt = min(dt, tmax - now)
                dt1 = dt
        finally:
            for name, tank in wn.tanks():
                tank._head = saved_heads[name]
            wn.sim_time, wn._prev_sim_time = saved_time
        return now - t

    def _integrate_tanks(self, dt, commit=True, start=0):
        """
        Advance tank volumes by ``V += q dt`` within [Vmin, Vmax].

        With ``commit=False`` only the tank heads change, to a state ``start
        + dt`` seconds after the current time.
        """
        for name, tank in self._wn.tanks():
            q = tank.demand or 0.0
            v = self._tank_volume[name] + q * (start + dt)
            v = min(max(v, tank.min_volume), tank.max_volume)
            tank._head = tank.elevation + tank.get_level(v)
            if commit:
                self._tank_volume[name] = v
