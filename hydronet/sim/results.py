"""
The hydronet.sim.results module holds the results of a simulation.

.. rubric:: Contents

.. autosummary::

    ResultsStatus
    SimulationResults
    ResultsRecorder

"""
import datetime
import enum
import logging
from collections import OrderedDict

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class ResultsStatus(enum.IntEnum):
    converged = 1
    error = 0


class SimulationResults(object):
    """
    Water network simulation results class.

    ``node`` and ``link`` are dictionaries of pandas DataFrames indexed by
    report time (s) with one column per element. Node keys are ``head``,
    ``demand``, ``pressure`` and ``quality``; link keys are ``flowrate``,
    ``velocity``, ``headloss``, ``status``, ``setting`` and ``quality``.

    Assuming ``A`` and ``B`` are results for the same network and times,
    the following work on every DataFrame by name, elementwise:

    ==================  ============================================================
    Example function    Description
    ------------------  ------------------------------------------------------------
    ``C = A + B``       Add the values from A and B for each property
    ``C = A - B``       Subtract the property values in B from A
    ``C = A / B``       Divide the property values in A by the values in B
    ``C = A / n``       Divide the property values in A by n [int]
    ``C = pow(A, p)``   Raise the property values in A to the p-th power
    ``C = abs(A)``      Take the absolute value of the property values in A
    ``C = -A``          Take the negative of all property values in A
    ``C = A.max()``     Get the maximum value for each property for node/link
    ``C = A.min()``     Get the minimum value for each property for node/link
    ``C = A.sum()``     Take the sum of each property across time for each node/link
    ==================  ============================================================

    Attributes
    ----------
    error_code : ResultsStatus or None
        None after a complete run, ``ResultsStatus.error`` if the run
        stopped early
    warnings : list of str
        Warnings issued during the run
    """
    _data_attributes = ["link", "node"]

    def __init__(self):
        self.timestamp = str(datetime.datetime.now())
        self.network_name = None
        self.error_code = None
        self.warnings = []
        for attr in self._data_attributes:
            setattr(self, attr, dict())

    def _new(self, name):
        new = SimulationResults()
        new.network_name = name
        return new

    def _binary(self, other, op, symbol):
        if not isinstance(other, SimulationResults):
            raise ValueError("operating on a results object requires both be SimulationResults")
        new = self._new("{}[{}] {} {}[{}]".format(self.network_name, self.timestamp, symbol,
                                                  other.network_name, other.timestamp))
        for attr in self._data_attributes:
            self_dict = getattr(self, attr)
            other_dict = getattr(other, attr)
            for key in self_dict.keys():
                if key in other_dict:
                    getattr(new, attr)[key] = op(self_dict[key], other_dict[key])
        return new

    def _unary(self, op, name):
        new = self._new(name)
        for attr in self._data_attributes:
            for key, df in getattr(self, attr).items():
                getattr(new, attr)[key] = op(df)
        return new

    def __add__(self, other):
        return self._binary(other, lambda a, b: a + b, '+')

    def __sub__(self, other):
        return self._binary(other, lambda a, b: a - b, '-')

    def __abs__(self):
        return self._unary(abs, "|{}[{}]|".format(self.network_name, self.timestamp))

    def __neg__(self):
        return self._unary(lambda df: -df, "-{}[{}]".format(self.network_name, self.timestamp))

    def __pos__(self):
        return self._unary(lambda df: +df, "+{}[{}]".format(self.network_name, self.timestamp))

    def min(self):
        """Min operates on each axis separately, therefore it needs to be a function.
        The built-in ``min`` function will not work."""
        return self._unary(lambda df: df.min(axis=0), "min({}[{}])".format(self.network_name, self.timestamp))

    def max(self):
        """Max operates on each axis separately, therefore it needs to be a function.
        The built-in ``max`` function will not work."""
        return self._unary(lambda df: df.max(axis=0), "max({}[{}])".format(self.network_name, self.timestamp))

    def sum(self):
        """Sum across time for each node/link for each property."""
        return self._unary(lambda df: df.sum(axis=0), "sum({}[{}])".format(self.network_name, self.timestamp))

    def time_statistic(self, statistic):
        """
        Reduce every table to a single row holding a statistic over time.

        Parameters
        ----------
        statistic : str
            ``AVERAGED``, ``MINIMUM``, ``MAXIMUM``, ``RANGE`` or ``NONE``

        Returns
        -------
        SimulationResults
            Tables indexed by the statistic name; ``self`` for ``NONE``
        """
        statistic = str(statistic).upper()
        if statistic == 'NONE':
            return self
        funcs = {'AVERAGED': lambda df: df.mean(axis=0),
                 'MINIMUM': lambda df: df.min(axis=0),
                 'MAXIMUM': lambda df: df.max(axis=0),
                 'RANGE': lambda df: df.max(axis=0) - df.min(axis=0)}
        if statistic not in funcs:
            raise ValueError('unknown statistic {}'.format(statistic))
        func = funcs[statistic]
        new = self._unary(lambda df: func(df).to_frame(statistic).T,
                          "{}({}[{}])".format(statistic.lower(), self.network_name, self.timestamp))
        new.error_code = self.error_code
        new.warnings = list(self.warnings)
        return new

    def __truediv__(self, other):
        if isinstance(other, SimulationResults):
            return self._binary(other, lambda a, b: a / b, '/')
        elif isinstance(other, int):
            return self._unary(lambda df: df / other, "{}[{}] / {}".format(self.network_name, self.timestamp, other))
        raise ValueError("using / on a results object requires the divisor to be SimulationResults or int")

    def __pow__(self, exp, mod=None):
        return self._unary(lambda df: pow(df, exp, mod),
                           "{}[{}] ** {}".format(self.network_name, self.timestamp, exp))

    def append(self, other):
        """
        Append the results of a later simulation, in place.

        Rows of this object at or after the first time of `other` are
        replaced by the rows of `other`.

        Parameters
        ----------
        other : SimulationResults

        Returns
        -------
        self : SimulationResults

        Raises
        ------
        ValueError
            if `other` is the wrong type
        """
        if not isinstance(other, SimulationResults):
            raise ValueError("operating on a results object requires both be SimulationResults")
        for attr in self._data_attributes:
            self_dict = getattr(self, attr)
            other_dict = getattr(other, attr)
            keys = list(self_dict.keys()) + [k for k in other_dict.keys() if k not in self_dict]
            for key in keys:
                if key in self_dict and key in other_dict:
                    self_df = self_dict[key]
                    other_df = other_dict[key]
                    start = other_df.index.min() if len(other_df.index) else np.inf
                    self_dict[key] = pd.concat([self_df[self_df.index < start], other_df])
                elif key in self_dict:
                    template = list(other_dict.values())[0] * np.nan if other_dict else None
                    if template is not None:
                        self_dict[key] = pd.concat([self_dict[key], template])
                else:
                    template = list(self_dict.values())[0] * np.nan if self_dict else None
                    if template is not None:
                        self_dict[key] = pd.concat([template, other_dict[key]])
                    else:
                        self_dict[key] = other_dict[key]
        if other.error_code is not None:
            self.error_code = other.error_code
        self.warnings.extend(other.warnings)
        return self


class ResultsRecorder(object):
    """
    Collects the state of a network at report times and builds a
    :class:`SimulationResults` object.

    Parameters
    ----------
    wn : WaterNetworkModel
    quality : bool
        Also record node and link quality
    """
    node_keys = ['head', 'demand', 'pressure']
    link_keys = ['flowrate', 'velocity', 'headloss', 'status', 'setting']

    def __init__(self, wn, quality=False):
        self._wn = wn
        self._quality = quality
        self._node_names = list(wn.index.node_names)
        self._link_names = list(wn.index.link_names)
        self._nodes = [wn.get_node(name) for name in self._node_names]
        self._links = [wn.get_link(name) for name in self._link_names]
        self.times = []
        node_keys = self.node_keys + (['quality'] if quality else [])
        link_keys = self.link_keys + (['quality'] if quality else [])
        self._node_res = OrderedDict((key, []) for key in node_keys)
        self._link_res = OrderedDict((key, []) for key in link_keys)

    def __len__(self):
        return len(self.times)

    def record(self, time):
        """Store the current node and link values under `time`."""
        time = int(time)
        if self.times and self.times[-1] == time:
            raise RuntimeError('results for time {} were already recorded'.format(time))
        self.times.append(time)
        heads = [node.head for node in self._nodes]
        self._node_res['head'].append(heads)
        self._node_res['demand'].append([node.demand for node in self._nodes])
        pressure = []
        for node, head in zip(self._nodes, heads):
            if node.node_type == 'Reservoir' or head is None:
                pressure.append(0.0)
            else:
                pressure.append(head - node.elevation)
        self._node_res['pressure'].append(pressure)
        self._link_res['flowrate'].append([link.flow for link in self._links])
        self._link_res['velocity'].append([link.velocity for link in self._links])
        self._link_res['headloss'].append([link.headloss for link in self._links])
        self._link_res['status'].append([int(link.status) for link in self._links])
        self._link_res['setting'].append([np.nan if link.setting is None else link.setting
                                          for link in self._links])
        if self._quality:
            self.record_quality(time)

    def record_quality(self, time):
        """Store node and link quality for a time already recorded."""
        self._node_res['quality'].append([node.quality for node in self._nodes])
        self._link_res['quality'].append([link.quality for link in self._links])

    def to_results(self, results=None):
        """
        Build (or fill) a results object from the recorded values.

        Returns
        -------
        SimulationResults
        """
        if results is None:
            results = SimulationResults()
            results.network_name = self._wn.name
        for key, rows in self._node_res.items():
            results.node[key] = pd.DataFrame(data=np.array(rows, dtype=float).reshape(len(rows), len(self._node_names)),
                                             index=list(self.times[:len(rows)]), columns=self._node_names)
        for key, rows in self._link_res.items():
            results.link[key] = pd.DataFrame(data=np.array(rows, dtype=float).reshape(len(rows), len(self._link_names)),
                                             index=list(self.times[:len(rows)]), columns=self._link_names)
        return results
