"""
The hydronet.network.elements module includes elements of a water network
model, including junction, tank, reservoir, pipe, pump, valve, pattern,
timeseries, demands, curves, and sources.

.. rubric:: Contents

.. autosummary::

    Junction
    Tank
    Reservoir
    Pipe
    Pump
    HeadPump
    PowerPump
    Valve
    PRValve
    PSValve
    PBValve
    FCValve
    TCValve
    GPValve
    Pattern
    TimeSeries
    Demands
    Curve
    Source

"""
import math
import logging
from collections.abc import MutableSequence

import numpy as np
import six
from scipy.optimize import curve_fit

from .base import Node, Link, Registry, LinkStatus
from .options import TimeOptions
from hydronet.epanet.exceptions import ENValueError
from hydronet.epanet.util import MixType, SourceType

logger = logging.getLogger(__name__)


class Junction(Node):
    """
    Junction class, inherited from Node.

    Junctions are the nodes that carry demands and emitters.

    .. rubric:: Constructor

    This class is intended to be instantiated through the
    :class:`~hydronet.network.model.WaterNetworkModel.add_junction()` method.

    Parameters
    ----------
    name : string
        Name of the junction.
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        WaterNetworkModel object the junction will belong to

    .. rubric:: Attributes

    .. autosummary::

        name
        node_type
        base_demand
        demand_timeseries_list
        elevation
        emitter_coefficient
        initial_quality
        minimum_pressure
        required_pressure
        pressure_exponent

    """

    def __init__(self, name, wn):
        super(Junction, self).__init__(wn, name)
        # owned by this junction only
        self._demand_timeseries_list = Demands(self._pattern_reg)
        self._elevation = 0.0
        self._required_pressure = None
        self._minimum_pressure = None
        self._pressure_exponent = None
        self._emitter_coefficient = None

    def __repr__(self):
        return "<Junction '{}', elevation={}, demand_timeseries_list={}>".format(
            self._name, self.elevation, repr(self.demand_timeseries_list))

    @property
    def elevation(self):
        """float : elevation of the junction"""
        return self._elevation
    @elevation.setter
    def elevation(self, value):
        self._elevation = float(value)

    @property
    def demand_timeseries_list(self):
        """Demands : list of demand patterns and base multipliers"""
        return self._demand_timeseries_list

    @property
    def required_pressure(self):
        """float: lowest pressure at which the junction receives its full demand
        in a pressure dependent analysis. If None, the global value in
        wn.options.hydraulic.required_pressure is used."""
        return self._required_pressure
    @required_pressure.setter
    def required_pressure(self, value):
        self._required_pressure = value

    @property
    def minimum_pressure(self):
        """float: pressure below which the junction receives no water in a
        pressure dependent analysis. If None, the global value is used."""
        return self._minimum_pressure
    @minimum_pressure.setter
    def minimum_pressure(self, value):
        self._minimum_pressure = value

    @property
    def pressure_exponent(self):
        """float: pressure exponent for pressure dependent demand. If None, the
        global value is used."""
        return self._pressure_exponent
    @pressure_exponent.setter
    def pressure_exponent(self, value):
        self._pressure_exponent = value

    @property
    def emitter_coefficient(self):
        """float : if not None, then activate an emitter with the specified coefficient"""
        return self._emitter_coefficient
    @emitter_coefficient.setter
    def emitter_coefficient(self, value):
        if value is not None and value < 0:
            raise ValueError('emitter_coefficient must be >= 0')
        self._emitter_coefficient = value

    @property
    def node_type(self):
        """str : ``"Junction"`` (read only)"""
        return 'Junction'

    def add_demand(self, base, pattern_name, category=None):
        """Add a new demand entry to the Junction

        Parameters
        ----------
        base : float
            The base demand value for this new entry
        pattern_name : str or None
            The name of the pattern to use or ``None`` for the default pattern
        category : str, optional
            A category name for this demand

        """
        if pattern_name is not None:
            self._pattern_reg.add_usage(str(pattern_name), (self.name, 'Junction'))
        self.demand_timeseries_list.append((base, pattern_name, category))

    @property
    def base_demand(self):
        """Base value of the first demand in the demand_timeseries_list (read only)."""
        if len(self.demand_timeseries_list) > 0:
            return self.demand_timeseries_list[0].base_value
        return 0.0

    @property
    def demand_pattern(self):
        """Pattern name of the first demand in the demand_timeseries_list (read only)."""
        if len(self.demand_timeseries_list) > 0:
            return self.demand_timeseries_list[0].pattern_name
        return None


class Tank(Node):
    """
    Tank class, inherited from Node.

    Tank volume is defined using a constant diameter or a volume curve.
    With a constant diameter the volume at level ``h`` is
    ``Vmin + A (h - min_level)``, where ``Vmin`` is ``min_vol`` if it is
    positive and ``A min_level`` otherwise. A volume curve gives volume as
    a function of level (height above the tank bottom) and replaces the
    diameter.

    .. rubric:: Constructor

    This class is intended to be instantiated through the
    :class:`~hydronet.network.model.WaterNetworkModel.add_tank()` method.

    Parameters
    ----------
    name : string
        Name of the tank.
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        WaterNetworkModel object the tank will belong to

    .. rubric:: Attributes

    .. autosummary::

        name
        node_type
        elevation
        init_level
        min_level
        max_level
        diameter
        min_vol
        vol_curve_name
        vol_curve
        mixing_model
        mixing_fraction
        bulk_coeff

    .. rubric:: Read-only simulation results

    .. autosummary::

        head
        level
        volume
        pressure
        quality

    """

    def __init__(self, name, wn):
        super(Tank, self).__init__(wn, name)
        self._elevation = 0.0
        self._init_level = 3.048
        self._min_level = 0.0
        self._max_level = 6.096
        self._diameter = 15.24
        self._head = self._elevation + self._init_level
        self._min_vol = 0.0
        self._vol_curve_name = None
        self._mixing_model = MixType.Mixed
        self._mixing_fraction = 1.0
        self._bulk_coeff = None

    def __repr__(self):
        return "<Tank '{}', elevation={}, min_level={}, max_level={}, diameter={}, min_vol={}, vol_curve='{}'>".format(
            self._name, self.elevation, self.min_level, self.max_level, self.diameter, self.min_vol,
            self._vol_curve_name)

    @property
    def elevation(self):
        """float : elevation of the tank bottom"""
        return self._elevation
    @elevation.setter
    def elevation(self, value):
        self._elevation = float(value)

    @property
    def init_level(self):
        """float : initial water level"""
        return self._init_level
    @init_level.setter
    def init_level(self, value):
        self._init_level = float(value)
        self._head = self._elevation + self._init_level

    @property
    def min_level(self):
        """float : minimum water level"""
        return self._min_level
    @min_level.setter
    def min_level(self, value):
        self._min_level = float(value)

    @property
    def max_level(self):
        """float : maximum water level"""
        return self._max_level
    @max_level.setter
    def max_level(self, value):
        self._max_level = float(value)

    @property
    def diameter(self):
        """float : tank diameter"""
        return self._diameter
    @diameter.setter
    def diameter(self, value):
        self._diameter = float(value)

    @property
    def min_vol(self):
        """float : minimum tank volume (used only when positive)"""
        return self._min_vol
    @min_vol.setter
    def min_vol(self, value):
        self._min_vol = float(value)

    @property
    def vol_curve_name(self):
        """str : name of the volume curve, or None"""
        return self._vol_curve_name
    @vol_curve_name.setter
    def vol_curve_name(self, name):
        self._curve_reg.remove_usage(self._vol_curve_name, (self._name, 'Tank'))
        self._curve_reg.add_usage(name, (self._name, 'Tank'))
        self._vol_curve_name = name

    @property
    def vol_curve(self):
        """Curve : the volume curve object, or None"""
        return self._curve_reg[self._vol_curve_name]

    @property
    def mixing_model(self):
        """MixType : the tank mixing model; accepts "MIXED", "2COMP", "FIFO" or "LIFO" """
        return self._mixing_model
    @mixing_model.setter
    def mixing_model(self, value):
        if value is None:
            value = MixType.Mixed
        elif isinstance(value, six.string_types):
            key = value.upper()
            lookup = {'MIXED': MixType.Mix1, 'MIX1': MixType.Mix1, '2COMP': MixType.Mix2,
                      'MIX2': MixType.Mix2, 'FIFO': MixType.FIFO, 'LIFO': MixType.LIFO}
            if key not in lookup:
                raise ValueError('mixing_model must be one of MIXED, 2COMP, FIFO or LIFO')
            value = lookup[key]
        elif not isinstance(value, MixType):
            value = MixType(int(value))
        self._mixing_model = value

    @property
    def mixing_fraction(self):
        """float : fraction of the maximum volume used as the mixing zone of a 2COMP tank"""
        return self._mixing_fraction
    @mixing_fraction.setter
    def mixing_fraction(self, value):
        if value is None:
            value = 1.0
        value = float(value)
        if value < 0 or value > 1:
            raise ValueError('mixing_fraction must be between 0 and 1')
        self._mixing_fraction = value

    @property
    def bulk_coeff(self):
        """float : bulk reaction coefficient, or None to use the global value"""
        return self._bulk_coeff
    @bulk_coeff.setter
    def bulk_coeff(self, value):
        self._bulk_coeff = value

    @property
    def node_type(self):
        """str : ``"Tank"`` (read only)"""
        return 'Tank'

    @property
    def area(self):
        """float : cross sectional area at the current level (read only)"""
        curve = self.vol_curve
        if curve is None:
            return np.pi / 4.0 * self._diameter ** 2
        return self.get_area(self.level)

    @property
    def level(self):
        """float : (read-only) the current tank level (= head - elevation)"""
        return self._head - self._elevation

    @property
    def volume(self):
        """float : (read-only) the volume at the current level"""
        return self.get_volume()

    @property
    def min_volume(self):
        """float : volume at the minimum level"""
        return self.get_volume(self._min_level)

    @property
    def max_volume(self):
        """float : volume at the maximum level"""
        return self.get_volume(self._max_level)

    @property
    def fill_time(self):
        """float : (read-only) seconds until the tank is full at the current
        net inflow, or None if the tank is not filling"""
        if self._demand is None or self._demand <= 0:
            return None
        return max(self.max_volume - self.volume, 0.0) / self._demand

    @property
    def drain_time(self):
        """float : (read-only) seconds until the tank is empty at the current
        net outflow, or None if the tank is not draining"""
        if self._demand is None or self._demand >= 0:
            return None
        return max(self.volume - self.min_volume, 0.0) / -self._demand

    def get_area(self, level):
        """
        Cross sectional area at a given level.

        For a volume curve this is the slope of the curve segment that
        contains the level.
        """
        curve = self.vol_curve
        if curve is None:
            return np.pi / 4.0 * self._diameter ** 2
        x = np.array([p[0] for p in curve.points])
        y = np.array([p[1] for p in curve.points])
        if len(x) < 2:
            return 0.0
        i = int(np.clip(np.searchsorted(x, level) - 1, 0, len(x) - 2))
        return (y[i + 1] - y[i]) / (x[i + 1] - x[i])

    def get_volume(self, level=None):
        """
        Returns tank volume at a given level

        Parameters
        ----------
        level: float or NoneType (optional)
            The level at which the volume is to be calculated.
            If level=None, then the volume is calculated at the current
            tank level (self.level)

        Returns
        -------
        vol: float
            Tank volume at a given level
        """
        if level is None:
            level = self.level
        curve = self.vol_curve
        if curve is None:
            A = np.pi / 4.0 * self._diameter ** 2
            vmin = self._min_vol if self._min_vol > 0 else A * self._min_level
            return vmin + A * (level - self._min_level)
        return curve.interpolate(level)

    def get_level(self, volume):
        """
        Returns the tank level that holds a given volume.

        This is the inverse of :meth:`get_volume`.
        """
        curve = self.vol_curve
        if curve is None:
            A = np.pi / 4.0 * self._diameter ** 2
            vmin = self._min_vol if self._min_vol > 0 else A * self._min_level
            return self._min_level + (volume - vmin) / A
        x = [p[0] for p in curve.points]
        y = [p[1] for p in curve.points]
        return float(np.interp(volume, y, x))


class Reservoir(Node):
    """
    Reservoir class, inherited from Node.

    A reservoir is a fixed head node. The head can follow a pattern.

    .. rubric:: Constructor

    This class is intended to be instantiated through the
    :class:`~hydronet.network.model.WaterNetworkModel.add_reservoir()` method.

    Parameters
    ----------
    name : string
        Name of the reservoir.
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this reservoir will belong to.
    base_head : float, optional
        The base head (m), by default 0.0
    head_pattern : str, optional
        The name of the pattern for the head multipliers, by default None

    """

    def __init__(self, name, wn, base_head=0.0, head_pattern=None):
        super(Reservoir, self).__init__(wn, name)
        self._head_timeseries = TimeSeries(wn._pattern_reg, base_head)
        self.head_pattern_name = head_pattern
        self._head = base_head

    def __repr__(self):
        return "<Reservoir '{}', base_head={}, head_pattern='{}'>".format(
            self._name, self.base_head, self.head_pattern_name)

    @property
    def node_type(self):
        """``"Reservoir"`` (read only)"""
        return 'Reservoir'

    @property
    def head_timeseries(self):
        """TimeSeries : the head of the reservoir over time (read only)"""
        return self._head_timeseries

    @property
    def base_head(self):
        """float : the base head, equivalent to the elevation of the water surface"""
        return self._head_timeseries.base_value
    @base_head.setter
    def base_head(self, value):
        self._head_timeseries.base_value = value

    @property
    def elevation(self):
        """float : same as base_head"""
        return self._head_timeseries.base_value

    @property
    def head_pattern_name(self):
        """str : the name of the head pattern, or None"""
        return self._head_timeseries.pattern_name
    @head_pattern_name.setter
    def head_pattern_name(self, name):
        self._pattern_reg.remove_usage(self._head_timeseries.pattern_name, (self._name, 'Reservoir'))
        if name is not None:
            self._pattern_reg.add_usage(name, (self._name, 'Reservoir'))
        self._head_timeseries._pattern = name


class Pipe(Link):
    """
    Pipe class, inherited from Link.

    .. rubric:: Constructor

    This class is intended to be instantiated through the
    :class:`~hydronet.network.model.WaterNetworkModel.add_pipe` method.

    Parameters
    ----------
    name : string
        Name of the pipe
    start_node_name : string
         Name of the start node
    end_node_name : string
         Name of the end node
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this pipe will belong to.

    .. rubric:: Attributes

    .. autosummary::

        length
        diameter
        roughness
        minor_loss
        check_valve
        bulk_coeff
        wall_coeff

    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(Pipe, self).__init__(wn, name, start_node_name, end_node_name)
        self.length = 304.8
        self.diameter = 0.3048
        self.roughness = 100
        self.minor_loss = 0.0
        self._check_valve = False
        self._bulk_coeff = None
        self._wall_coeff = None

    def __repr__(self):
        return "<Pipe '{}' from '{}' to '{}', length={}, diameter={}, roughness={}, minor_loss={}, check_valve={}, status={}>".format(
            self._link_name, self.start_node, self.end_node, self.length, self.diameter,
            self.roughness, self.minor_loss, self.check_valve, str(self.status))

    @property
    def link_type(self):
        """returns ``"Pipe"``"""
        return 'Pipe'

    @property
    def length(self):
        """float : length of the pipe"""
        return self._length
    @length.setter
    def length(self, value):
        if value <= 0:
            raise ValueError('length must be > 0')
        self._length = float(value)

    @property
    def diameter(self):
        """float : diameter of the pipe"""
        return self._diameter
    @diameter.setter
    def diameter(self, value):
        if value <= 0:
            raise ValueError('diameter must be > 0')
        self._diameter = float(value)

    @property
    def roughness(self):
        """float : pipe roughness (C for H-W, meters for D-W, n for C-M)"""
        return self._roughness
    @roughness.setter
    def roughness(self, value):
        if value <= 0:
            raise ValueError('roughness must be > 0')
        self._roughness = float(value)

    @property
    def minor_loss(self):
        """float : minor loss coefficient"""
        return self._minor_loss
    @minor_loss.setter
    def minor_loss(self, value):
        if value < 0:
            raise ValueError('minor_loss must be >= 0')
        self._minor_loss = float(value)

    @property
    def check_valve(self):
        """bool : does this pipe have a check valve"""
        return self._check_valve
    @check_valve.setter
    def check_valve(self, value):
        self._check_valve = bool(value)

    @property
    def bulk_coeff(self):
        """float or None : bulk reaction coefficient"""
        return self._bulk_coeff
    @bulk_coeff.setter
    def bulk_coeff(self, value):
        self._bulk_coeff = value

    @property
    def wall_coeff(self):
        """float or None : wall reaction coefficient"""
        return self._wall_coeff
    @wall_coeff.setter
    def wall_coeff(self, value):
        self._wall_coeff = value


class Pump(Link):
    """
    Pump class, inherited from Link.

    For details about the different subclasses, please see one of the following:
    :class:`~hydronet.network.elements.HeadPump` and :class:`~hydronet.network.elements.PowerPump`

    The pump setting is its relative speed.

    Parameters
    ----------
    name : string
        Name of the pump
    start_node_name : string
         Name of the start node
    end_node_name : string
         Name of the end node
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this pump will belong to.

    .. rubric:: Attributes

    .. autosummary::

        base_speed
        speed_pattern_name
        speed_timeseries
        efficiency
        energy_pattern

    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(Pump, self).__init__(wn, name, start_node_name, end_node_name)
        self._speed_timeseries = TimeSeries(wn._pattern_reg, 1.0)
        self._efficiency_curve_name = None
        self._energy_pattern = None
        self._setting = 1.0
        self._initial_setting = 1.0
        self._power_used = None

    @property
    def link_type(self):
        """returns ``"Pump"``"""
        return 'Pump'

    @property
    def speed_timeseries(self):
        """TimeSeries : the speed of the pump over time (read only)"""
        return self._speed_timeseries

    @property
    def base_speed(self):
        """float : base relative speed"""
        return self._speed_timeseries.base_value
    @base_speed.setter
    def base_speed(self, value):
        if value < 0:
            raise ValueError('base_speed must be >= 0')
        self._speed_timeseries.base_value = value
        self._setting = value
        self._initial_setting = value

    @property
    def speed_pattern_name(self):
        """str : name of the speed pattern"""
        return self._speed_timeseries.pattern_name
    @speed_pattern_name.setter
    def speed_pattern_name(self, name):
        self._pattern_reg.remove_usage(self._speed_timeseries.pattern_name, (self.name, 'Pump'))
        if name is not None:
            self._pattern_reg.add_usage(name, (self.name, 'Pump'))
        self._speed_timeseries._pattern = name

    @property
    def power_used(self):
        """float : (read-only) power (W) drawn by the pump in the last committed step"""
        return self._power_used

    @property
    def efficiency_curve_name(self):
        """str : name of the efficiency curve (efficiency in percent vs. flow), or None"""
        return self._efficiency_curve_name
    @efficiency_curve_name.setter
    def efficiency_curve_name(self, name):
        self._curve_reg.remove_usage(self._efficiency_curve_name, (self.name, 'Pump'))
        if name is not None:
            self._curve_reg.add_usage(name, (self.name, 'Pump'))
            self._curve_reg.set_curve_type(name, 'EFFICIENCY')
        self._efficiency_curve_name = name

    @property
    def efficiency(self):
        """Curve : the efficiency curve, or None"""
        return self._curve_reg[self._efficiency_curve_name]

    @property
    def energy_pattern(self):
        """str : name of the energy price pattern, or None"""
        return self._energy_pattern
    @energy_pattern.setter
    def energy_pattern(self, value):
        self._energy_pattern = value

    def get_efficiency(self, flow):
        """
        Efficiency (fraction) at a given flow; uses the global efficiency
        when the pump has no efficiency curve.
        """
        curve = self.efficiency
        if curve is None:
            return self._options.energy.global_efficiency / 100.0
        e = curve.interpolate(abs(flow)) / 100.0
        return min(max(e, 0.01), 1.0)


class HeadPump(Pump):
    """
    Head pump class, inherited from Pump.

    This type of pump uses a pump curve (see curves). The curve is
    converted to ``h = A - B q^C`` by :meth:`get_head_curve_coefficients`.

    Parameters
    ----------
    name : string
        Name of the pump
    start_node_name : string
         Name of the start node
    end_node_name : string
         Name of the end node
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this pump will belong to.

    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(HeadPump, self).__init__(name, start_node_name, end_node_name, wn)
        self._pump_curve_name = None
        self._curve_coeffs = None
        self._coeffs_curve_points = None

    def __repr__(self):
        return "<Pump '{}' from '{}' to '{}', pump_type='{}', pump_curve={}, speed={}, status={}>".format(
            self._link_name, self.start_node, self.end_node, 'HEAD', self.pump_curve_name,
            self.speed_timeseries, str(self.status))

    @property
    def pump_type(self):
        """``"HEAD"`` (read only)"""
        return 'HEAD'

    @property
    def pump_curve_name(self):
        """str : the pump curve name"""
        return self._pump_curve_name
    @pump_curve_name.setter
    def pump_curve_name(self, name):
        self._curve_reg.remove_usage(self._pump_curve_name, (self._link_name, 'Pump'))
        self._curve_reg.add_usage(name, (self._link_name, 'Pump'))
        self._curve_reg.set_curve_type(name, 'HEAD')
        self._pump_curve_name = name

    def get_pump_curve(self):
        """
        Get the pump curve object

        Returns
        -------
        Curve
            the head curve for this pump
        """
        return self._curve_reg[self._pump_curve_name]

    def get_head_curve_coefficients(self):
        """
        Returns the A, B, C coefficients of the pump curve ``H = A - B Q^C``.

        * One point curve: ``A = 4/3 H``, ``B = 1/3 H/Q^2``, ``C = 2``
          (shutoff head at 133% and maximum flow at 200% of the design point).
        * Two point curve: a straight line through the points, ``C = 1``.
        * Three point curve: the exact power curve through the points.
        * More points: ``scipy.optimize.curve_fit`` of the same equation
          started from the three point solution through the first, second
          and last points.

        The coefficients are cached until the curve points change.

        Returns
        -------
        Tuple of pump curve coefficient (A, B, C). All floats.

        Raises
        ------
        RuntimeError
            If the curve is empty or results in invalid coefficients
        """
        curve = self.get_pump_curve()
        if curve is None:
            raise RuntimeError('Head pump ' + self.name + ' has no pump curve.')
        if self._curve_coeffs is not None and curve.points == self._coeffs_curve_points:
            return tuple(self._curve_coeffs)

        Q = [float(pt[0]) for pt in curve.points]
        H = [float(pt[1]) for pt in curve.points]
        if curve.num_points == 1:
            A = (4.0 / 3.0) * H[0]
            B = (1.0 / 3.0) * (H[0] / (Q[0] ** 2))
            C = 2.0
        elif curve.num_points == 2:
            B = - (H[1] - H[0]) / (Q[1] - Q[0])
            A = H[0] + B * Q[0]
            C = 1.0
        elif curve.num_points >= 3:
            if Q[0] == 0.0:
                A = H[0]
                C = math.log((H[0] - H[1]) / (H[0] - H[-1])) / math.log(Q[1] / Q[-1])
                B = (H[0] - H[1]) / (Q[1] ** C)
            else:
                # no shutoff point; start the regression from a quadratic
                C = 2.0
                B = (H[0] - H[-1]) / (Q[-1] ** 2 - Q[0] ** 2)
                A = H[0] + B * Q[0] ** 2
            if curve.num_points > 3 or Q[0] != 0.0:
                def flow_vs_head_func(q, a, b, c):
                    return a - b * q ** c
                try:
                    coeff, cov = curve_fit(flow_vs_head_func, np.array(Q), np.array(H), [A, B, C])
                except RuntimeError:
                    raise RuntimeError('Head pump ' + self.name +
                                       ' results in a poor regression fit to H = A - B * Q^C')
                A = float(coeff[0])
                B = float(coeff[1])
                C = float(coeff[2])
        else:
            raise RuntimeError('Head pump ' + self.name + ' has an empty pump curve.')

        if A <= 0 or B < 0 or C <= 0:
            raise RuntimeError('Head pump ' + self.name + ' has a negative head curve coefficient.')
        elif np.isnan(A + B + C):
            raise RuntimeError('Head pump ' + self.name + ' has a coefficient which is NaN!')

        self._coeffs_curve_points = list(curve.points)
        self._curve_coeffs = [A, B, C]
        return A, B, C

    @property
    def max_head(self):
        """float : shutoff head at full speed"""
        A, B, C = self.get_head_curve_coefficients()
        return A

    @property
    def max_flow(self):
        """float : flow at zero head at full speed"""
        A, B, C = self.get_head_curve_coefficients()
        if B == 0:
            return float('inf')
        return (A / B) ** (1.0 / C)


class PowerPump(Pump):
    """
    Power pump class, inherited from Pump.

    This type of pump delivers a constant power (W) regardless of flow.

    Parameters
    ----------
    name : string
        Name of the pump
    start_node_name : string
         Name of the start node
    end_node_name : string
         Name of the end node
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this pump will belong to.

    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(PowerPump, self).__init__(name, start_node_name, end_node_name, wn)
        self._base_power = None

    def __repr__(self):
        return "<Pump '{}' from '{}' to '{}', pump_type='{}', power={}, speed={}, status={}>".format(
            self._link_name, self.start_node, self.end_node, 'POWER', self._base_power,
            self.speed_timeseries, str(self.status))

    @property
    def pump_type(self):
        """``"POWER"`` (read only)"""
        return 'POWER'

    @property
    def power(self):
        """float : the fixed power value (W)"""
        return self._base_power
    @power.setter
    def power(self, value):
        if value is None or value <= 0:
            raise ValueError('power must be > 0')
        self._base_power = float(value)

    @property
    def max_head(self):
        return float('inf')

    @property
    def max_flow(self):
        return float('inf')


class Valve(Link):
    """
    Valve class, inherited from Link.

    For details about the subclasses, please see one of the following:
    :class:`~hydronet.network.elements.PRValve`, :class:`~hydronet.network.elements.PSValve`,
    :class:`~hydronet.network.elements.PBValve`, :class:`~hydronet.network.elements.FCValve`,
    :class:`~hydronet.network.elements.TCValve`, and :class:`~hydronet.network.elements.GPValve`.

    A valve is Active by default, which means its setting is in effect.
    Setting the status to Opened or Closed overrides the setting.

    Parameters
    ----------
    name : string
        Name of the valve
    start_node_name : string
         Name of the start node
    end_node_name : string
         Name of the end node
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        The water network model this valve will belong to.

    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(Valve, self).__init__(wn, name, start_node_name, end_node_name)
        self._diameter = 0.3048
        self._minor_loss = 0.0
        self._initial_status = LinkStatus.Active
        self._user_status = LinkStatus.Active
        self._initial_setting = 0.0
        self._setting = 0.0

    def __repr__(self):
        fmt = "<Valve '{}' from '{}' to '{}', valve_type='{}', diameter={}, minor_loss={}, setting={}, status={}>"
        return fmt.format(self._link_name, self.start_node, self.end_node, self.valve_type,
                          self.diameter, self.minor_loss, self.setting, str(self.status))

    @property
    def link_type(self):
        """returns ``"Valve"``"""
        return 'Valve'

    @property
    def valve_type(self):
        """returns ``None`` because this is an abstract class"""
        return None

    @property
    def diameter(self):
        """float : valve diameter"""
        return self._diameter
    @diameter.setter
    def diameter(self, value):
        if value <= 0:
            raise ValueError('diameter must be > 0')
        self._diameter = float(value)

    @property
    def minor_loss(self):
        """float : minor loss coefficient of the fully open valve"""
        return self._minor_loss
    @minor_loss.setter
    def minor_loss(self, value):
        if value < 0:
            raise ValueError('minor_loss must be >= 0')
        self._minor_loss = float(value)


class PRValve(Valve):
    """Pressure reducing valve; the setting is the downstream pressure (m)."""

    @property
    def valve_type(self):
        """returns ``"PRV"``"""
        return 'PRV'


class PSValve(Valve):
    """Pressure sustaining valve; the setting is the upstream pressure (m)."""

    @property
    def valve_type(self):
        """returns ``"PSV"``"""
        return 'PSV'


class PBValve(Valve):
    """Pressure breaker valve; the setting is the pressure drop (m)."""

    @property
    def valve_type(self):
        """returns ``"PBV"``"""
        return 'PBV'


class FCValve(Valve):
    """Flow control valve; the setting is the maximum flow (m3/s)."""

    @property
    def valve_type(self):
        """returns ``"FCV"``"""
        return 'FCV'


class TCValve(Valve):
    """Throttle control valve; the setting is the minor loss coefficient."""

    @property
    def valve_type(self):
        """returns ``"TCV"``"""
        return 'TCV'


class GPValve(Valve):
    """
    General purpose valve, inherited from Valve.

    The head loss through the valve follows a head loss curve
    (head loss vs. flow).
    """

    def __init__(self, name, start_node_name, end_node_name, wn):
        super(GPValve, self).__init__(name, start_node_name, end_node_name, wn)
        self._headloss_curve_name = None

    @property
    def valve_type(self):
        """returns ``"GPV"``"""
        return 'GPV'

    @property
    def headloss_curve(self):
        """Curve : the head loss curve object (read only)"""
        return self._curve_reg[self._headloss_curve_name]

    @property
    def headloss_curve_name(self):
        """str : the name of the head loss curve"""
        return self._headloss_curve_name
    @headloss_curve_name.setter
    def headloss_curve_name(self, name):
        self._curve_reg.remove_usage(self._headloss_curve_name, (self._link_name, 'Valve'))
        self._curve_reg.add_usage(name, (self._link_name, 'Valve'))
        self._curve_reg.set_curve_type(name, 'HEADLOSS')
        self._headloss_curve_name = name


class Pattern(object):
    """
    Pattern class.

    A pattern is a list of multipliers repeated cyclically at the pattern
    timestep. Time zero of the simulation corresponds to
    ``pattern_start`` seconds into the pattern.

    Parameters
    ----------
    name : string
        Name of the pattern.
    multipliers : list
        A list of multipliers that makes up the pattern.
    time_options : TimeOptions or tuple
        The water network model options.time object or a tuple of (pattern_start,
        pattern_timestep) in seconds.

    """

    def __init__(self, name, multipliers=[], time_options=None):
        self.name = name
        if isinstance(multipliers, (int, float)):
            multipliers = [multipliers]
        self._multipliers = np.array(multipliers, dtype=np.float64)
        if time_options:
            if isinstance(time_options, (tuple, list)) and len(time_options) >= 2:
                tmp = TimeOptions()
                tmp.pattern_start = time_options[0]
                tmp.pattern_timestep = time_options[1]
                time_options = tmp
            elif not isinstance(time_options, TimeOptions):
                raise ValueError('Pattern->time_options must be a TimeOptions class or null')
        self._time_options = time_options

    def __eq__(self, other):
        return type(self) == type(other) and self.name == other.name and \
            len(self._multipliers) == len(other._multipliers) and \
            np.all(np.abs(self._multipliers - other._multipliers) < 1.0e-10)

    def __hash__(self):
        return hash('Pattern/' + self.name)

    def __str__(self):
        return '%s' % self.name

    def __repr__(self):
        return "<Pattern '{}', multipliers={}>".format(self.name, repr(self.multipliers))

    def __len__(self):
        return len(self._multipliers)

    def __getitem__(self, index):
        """Returns the pattern value at a specific index (not time!)"""
        nmult = len(self._multipliers)
        if nmult == 0:
            return 1.0
        return self._multipliers[int(index % nmult)]

    @property
    def multipliers(self):
        """numpy.ndarray : the multipliers"""
        return self._multipliers
    @multipliers.setter
    def multipliers(self, values):
        if isinstance(values, (int, float)):
            values = [values]
        self._multipliers = np.array(values, dtype=np.float64)

    @property
    def time_options(self):
        """TimeOptions : the time options the pattern uses"""
        return self._time_options
    @time_options.setter
    def time_options(self, object):
        self._time_options = object

    def period(self, time):
        """Index of the pattern period that contains ``time`` (not wrapped)."""
        if self._time_options is None:
            raise RuntimeError('Pattern->time_options cannot be None at runtime')
        return int((time + self._time_options.pattern_start) // self._time_options.pattern_timestep)

    def at(self, time):
        """
        Returns the pattern value at a specific time

        Parameters
        ----------
        time : int
            Time in seconds from the start of the simulation
        """
        nmult = len(self._multipliers)
        if nmult == 0:
            return 1.0
        if nmult == 1:
            return float(self._multipliers[0])
        return float(self._multipliers[self.period(time) % nmult])


class TimeSeries(object):
    """
    Time series class.

    A TimeSeries object contains a base value, a pattern name, and category.
    It stores junction demands, source strengths, pump speeds and
    reservoir heads.

    Parameters
    ----------
    model : PatternRegistry
        The pattern registry for looking up patterns
    base : number
        A number that represents the baseline value.
    pattern_name : str, optional
        If None, then the value will be constant. Otherwise, the Pattern will be used.
    category : string, optional
        A category, description, or other name that is useful to the user

    Raises
    ------
    ValueError
        If `base` or `pattern` are invalid types

    """
    def __init__(self, model, base, pattern_name=None, category=None):
        if base is None:
            base = 0.0
        if not isinstance(base, (int, float)):
            raise ValueError('TimeSeries->base must be a number')
        if not isinstance(model, Registry):
            raise ValueError('Must pass in a pattern registry')
        self._pattern_reg = model
        self._pattern = pattern_name
        self._base = base
        self._category = category

    def __repr__(self):
        fmt = "<TimeSeries: base_value={}, pattern_name={}, category='{}'>"
        return fmt.format(self._base, repr(self.pattern_name), str(self._category))

    def __eq__(self, other):
        return type(self) == type(other) and self.pattern_name == other.pattern_name and \
            self.category == other.category and abs(self._base - other._base) < 1e-9

    @property
    def base_value(self):
        """Returns the baseline value."""
        return self._base
    @base_value.setter
    def base_value(self, value):
        if not isinstance(value, (int, float)):
            raise ValueError('TimeSeries->base_value must be a number')
        self._base = value

    @property
    def pattern(self):
        """Returns the Pattern object."""
        return self._pattern_reg[self.pattern_name]

    @property
    def pattern_name(self):
        """Returns the name of the pattern."""
        if self._pattern:
            return str(self._pattern)
        return None
    @pattern_name.setter
    def pattern_name(self, pattern_name):
        self._pattern = pattern_name

    @property
    def category(self):
        """Returns the category."""
        return self._category
    @category.setter
    def category(self, category):
        self._category = category

    def at(self, time):
        """
        Returns the value at a specific time.

        Parameters
        ----------
        time : int
            Time in seconds
        """
        pattern = self.pattern
        if not pattern:
            return self._base
        return self._base * pattern.at(time)


class Demands(MutableSequence):
    """
    Demands class.

    An ordered list of :class:`TimeSeries` owned by a single junction. Entries
    can be created by passing in demand tuples as
    ``(base_demand, pattern, category_name)``. A pattern of ``None`` uses the
    model's default pattern.
    """

    def __init__(self, patterns, *args):
        self._list = []
        self._pattern_reg = patterns
        for obj in args:
            self.append(obj)

    def __getitem__(self, index):
        return self._list.__getitem__(index)

    def __setitem__(self, index, obj):
        return self._list.__setitem__(index, self.to_ts(obj))

    def __delitem__(self, index):
        return self._list.__delitem__(index)

    def __len__(self):
        return len(self._list)

    def __repr__(self):
        return '<Demands: {}>'.format(repr(self._list))

    def to_ts(self, obj):
        """Time series representation of a demand tuple"""
        if isinstance(obj, (list, tuple)) and len(obj) >= 2:
            o2 = self._pattern_reg.default_pattern if obj[1] is None else obj[1]
            o3 = obj[2] if len(obj) >= 3 else None
            obj = TimeSeries(self._pattern_reg, obj[0], o2, o3)
        elif isinstance(obj, TimeSeries):
            obj._pattern_reg = self._pattern_reg
        else:
            raise ValueError('object must be a TimeSeries or demand tuple')
        return obj

    def insert(self, index, obj):
        self._list.insert(index, self.to_ts(obj))

    def at(self, time, category=None, multiplier=1):
        """Return the total demand at a given time."""
        demand = 0.0
        for dem in self._list:
            if category is None or dem.category == category:
                demand += dem.at(time) * multiplier
        return demand

    def base_demand_list(self, category=None):
        """Returns a list of the base demands, optionally of a single category."""
        return [dem.base_value for dem in self._list if category is None or dem.category == category]

    def pattern_list(self, category=None):
        """Returns a list of the pattern names, optionally of a single category."""
        return [dem.pattern_name for dem in self._list if category is None or dem.category == category]

    def category_list(self):
        """Returns a list of all the demand categories."""
        return [dem.category for dem in self._list]


class Curve(object):
    """
    Curve class.

    Parameters
    ----------
    name : str
        Name of the curve.
    curve_type : str
        The type of curve: None (unspecified), HEAD, HEADLOSS, VOLUME or EFFICIENCY
    points : list
        The points in the curve. List of 2-tuples (x,y) with strictly
        increasing x

    Raises
    ------
    ENValueError
        (230) if the x values are not strictly increasing

    """

    def __init__(self, name, curve_type=None, points=[]):
        self._name = name
        self._curve_type = None
        if curve_type is not None:
            self.curve_type = curve_type
        self.points = points

    def __eq__(self, other):
        if type(self) != type(other) or self.name != other.name or self.num_points != other.num_points:
            return False
        for point1, point2 in zip(self.points, other.points):
            for value1, value2 in zip(point1, point2):
                if abs(value1 - value2) > 1e-9:
                    return False
        return True

    def __hash__(self):
        return hash('Curve/' + self._name)

    def __repr__(self):
        return "<Curve: '{}', curve_type='{}', points={}>".format(str(self.name), str(self.curve_type), repr(self.points))

    def __getitem__(self, index):
        return self.points.__getitem__(index)

    def __len__(self):
        return len(self.points)

    @property
    def name(self):
        """Curve names must be unique among curves"""
        return self._name

    @property
    def points(self):
        """The points in the curve. List of 2-tuples (x,y) ordered by increasing x"""
        return self._points
    @points.setter
    def points(self, points):
        points = [(float(x), float(y)) for x, y in points]
        for i in range(1, len(points)):
            if points[i][0] <= points[i - 1][0]:
                raise ENValueError(230, self._name)
        self._points = points

    @property
    def curve_type(self):
        """The type of curve: None (unspecified), HEAD, HEADLOSS, VOLUME or EFFICIENCY"""
        return self._curve_type
    @curve_type.setter
    def curve_type(self, curve_type):
        curve_type = str(curve_type).upper()
        if curve_type not in ['HEAD', 'VOLUME', 'EFFICIENCY', 'HEADLOSS']:
            raise ValueError('curve_type must be HEAD, HEADLOSS, VOLUME, or EFFICIENCY')
        self._curve_type = curve_type

    @property
    def num_points(self):
        """Returns the number of points in the curve."""
        return len(self._points)

    def interpolate(self, x):
        """Linear interpolation of y at x, clamped to the end points."""
        if len(self._points) == 0:
            raise ValueError('Curve {0} has no points'.format(self._name))
        xs = [p[0] for p in self._points]
        ys = [p[1] for p in self._points]
        return float(np.interp(x, xs, ys))

    def slope_intercept(self, x):
        """
        Slope and intercept of the curve segment used at x.

        Beyond the end points the first or last segment is used, which is
        how head loss curves are extended.
        """
        n = len(self._points)
        if n < 2:
            return 0.0, (self._points[0][1] if n else 0.0)
        xs = [p[0] for p in self._points]
        i = int(np.clip(np.searchsorted(xs, x) - 1, 0, n - 2))
        (x1, y1), (x2, y2) = self._points[i], self._points[i + 1]
        r = (y2 - y1) / (x2 - x1)
        return r, y1 - r * x1


class Source(object):
    """
    Water quality source class.

    Parameters
    ----------
    model : WaterNetworkModel
        The model the source belongs to
    name : string
         Name of the source.
    node_name: string
        Injection node.
    source_type: string or SourceType
        Source type, options = CONCEN, MASS, FLOWPACED, or SETPOINT.
    strength: float
        Source strength in mass/s for MASS and mass/m3 for CONCEN,
        FLOWPACED, or SETPOINT.
    pattern: str, optional
        Name of the strength pattern; None means constant.

    """

    def __init__(self, model, name, node_name, source_type, strength, pattern=None):
        self._strength_timeseries = TimeSeries(model._pattern_reg, strength, pattern, name)
        self._name = name
        self._node_name = node_name
        self.source_type = source_type

    def __eq__(self, other):
        return type(self) == type(other) and self.node_name == other.node_name and \
            self.source_type == other.source_type and self.strength_timeseries == other.strength_timeseries

    def __repr__(self):
        fmt = "<Source: '{}', '{}', '{}', {}, {}>"
        return fmt.format(self.name, self.node_name, str(self.source_type).upper(),
                          self._strength_timeseries.base_value, self._strength_timeseries.pattern_name)

    @property
    def strength_timeseries(self):
        """TimeSeries : timeseries of the source values (read only)"""
        return self._strength_timeseries

    @property
    def name(self):
        """str : the name for this source"""
        return self._name

    @property
    def node_name(self):
        """str : the node where this source is located"""
        return self._node_name

    @property
    def source_type(self):
        """SourceType : the source type for this source"""
        return self._source_type
    @source_type.setter
    def source_type(self, value):
        if isinstance(value, six.string_types):
            value = SourceType[value.upper()]
        elif not isinstance(value, SourceType):
            value = SourceType(int(value))
        self._source_type = value
