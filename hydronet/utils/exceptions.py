# coding: utf-8
"""
Exception classes for hydronet warnings and errors.
"""


class HydronetException(Exception):  # pragma: no cover
    """
    Base class for filtering hydronet specific exceptions.
    """

    pass


class NetworkModelError(HydronetException):  # pragma: no cover
    """
    The requested water network model action is impossible.
    """

    pass


class SimulatorError(HydronetException):  # pragma: no cover
    """
    An error occurred during simulation or the action on the simulator is not possible.
    """

    pass


class ConvergenceFailure(SimulatorError):
    """
    The hydraulic solver did not converge within the allowed number of trials.

    The solver state at the time of failure is the best available solution and
    is kept by the simulator, so a run may continue past this error.

    Parameters
    ----------
    time: int
        Simulation time (s) of the failed step
    iterations: int
        Number of trials performed
    relative_error: float
        Relative flow change of the last trial
    """

    def __init__(self, time, iterations, relative_error):
        self.time = time
        self.iterations = iterations
        self.relative_error = relative_error
        msg = 'Hydraulic solver did not converge at time {0} s after {1} trials (relative error {2:.6g})'.format(
            time, iterations, relative_error)
        super(ConvergenceFailure, self).__init__(msg)


class SingularSystem(SimulatorError):
    """
    The linearized network equations could not be factored.

    This happens when a group of junctions has no path to a fixed head node
    through open links.

    Parameters
    ----------
    rows: list of int
        Rows (junction indices) of the matrix that caused the failure
    names: list of str, optional
        Names of the junctions for those rows
    """

    def __init__(self, rows, names=None):
        self.rows = list(rows)
        self.names = list(names) if names is not None else None
        if self.names:
            which = ', '.join(self.names[:10])
        else:
            which = ', '.join(str(i) for i in self.rows[:10])
        if len(self.rows) > 10:
            which += ', ...'
        super(SingularSystem, self).__init__('Singular system of equations; isolated junctions: ' + which)


class HydronetWarning(Warning):  # pragma: no cover
    """
    Base class for filtering hydronet specific warnings.
    """

    pass


class NetworkModelWarning(HydronetWarning):  # pragma: no cover
    """
    The requested action on the water network model is not possible, but its failure can simply go ignored.
    """

    pass


class SimulatorWarning(HydronetWarning):  # pragma: no cover
    """
    The simulator encountered a recoverable problem, such as an unconverged step.
    """

    pass
