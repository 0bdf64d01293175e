"""
The hydronet.network.model module includes methods to build a water network
model and the index space the simulators work in.

.. rubric:: Contents

.. autosummary::

    WaterNetworkModel
    NetworkIndex
    IndexMap
    PatternRegistry
    CurveRegistry
    SourceRegistry
    NodeRegistry
    LinkRegistry

"""
import logging
from collections import OrderedDict

import networkx as nx
import numpy as np
import six

from hydronet.utils.ordered_set import OrderedSet
from hydronet.utils.exceptions import NetworkModelError
from hydronet.epanet.exceptions import ENKeyError, ENValueError
from .base import AbstractModel, Node, Link, Registry, LinkStatus
from .elements import Junction, Reservoir, Tank
from .elements import Pipe, Pump, HeadPump, PowerPump
from .elements import Valve, PRValve, PSValve, PBValve, TCValve, FCValve, GPValve
from .elements import Pattern, Curve, Source
from .options import Options

logger = logging.getLogger(__name__)


def _check_name(name, what='name'):
    assert isinstance(name, six.string_types) and len(name) < 32 and name.find(' ') == -1, \
        what + ' must be a string with less than 32 characters and contain no spaces'


class WaterNetworkModel(AbstractModel):
    """
    Water network model class.

    The model owns the network elements, patterns, curves, sources and
    controls, and the :class:`NetworkIndex` that maps element names to the
    0-based indices used by the simulators. Every structural edit
    renumbers that index and the indices cached by the controls.

    Examples
    --------
    >>> wn = WaterNetworkModel()
    >>> wn.add_reservoir('R1', base_head=50.0)
    >>> wn.add_junction('J1', base_demand=0.01, elevation=10.0)
    >>> wn.add_pipe('P1', 'R1', 'J1', length=1000, diameter=0.3, roughness=100)
    """

    def __init__(self):
        self.name = None

        self._options = Options()
        self._node_reg = NodeRegistry(self)
        self._link_reg = LinkRegistry(self)
        self._pattern_reg = PatternRegistry(self)
        self._curve_reg = CurveRegistry(self)
        self._controls = OrderedDict()
        self._sources = SourceRegistry(self)

        self._node_reg._finalize_(self)
        self._link_reg._finalize_(self)
        self._pattern_reg._finalize_(self)
        self._curve_reg._finalize_(self)
        self._sources._finalize_(self)

        self._index = NetworkIndex(self)
        self._locked = False

        # Time parameters
        self.sim_time = 0
        self._prev_sim_time = -1  # the last time at which results were accepted

    @property
    def _shifted_time(self):
        """
        Time in seconds since 12 AM on the first day, that is the simulation
        time shifted by the start clock time.
        """
        return self.sim_time + self.options.time.start_clocktime

    @property
    def _prev_shifted_time(self):
        """
        Time in seconds of the previous accepted step, shifted by the start
        clock time.
        """
        return self._prev_sim_time + self.options.time.start_clocktime

    @property
    def _clock_time(self):
        """Time of day in seconds from 12 AM"""
        return self._shifted_time % (24 * 3600)

    @property
    def _clock_day(self):
        """Clock time day of the simulation"""
        return int(self._shifted_time / 86400)

    @property
    def options(self):
        """Options : the model's options object"""
        return self._options

    @property
    def index(self):
        """NetworkIndex : the current index space (read only)"""
        return self._index

    ### #
    ### Iterable attributes
    def nodes(self, node_type=None):
        """A generator over (name, node) pairs, optionally of a single type"""
        return self._node_reg(node_type)

    def links(self, link_type=None):
        """A generator over (name, link) pairs, optionally of a single type"""
        return self._link_reg(link_type)

    def patterns(self):
        return self._pattern_reg()

    def curves(self):
        return self._curve_reg()

    def sources(self):
        return self._sources()

    def controls(self):
        """A generator over (name, control) pairs of controls and rules"""
        for name, control in self._controls.items():
            yield name, control

    def junctions(self):
        return self._node_reg(Junction)

    def tanks(self):
        return self._node_reg(Tank)

    def reservoirs(self):
        return self._node_reg(Reservoir)

    def pipes(self):
        return self._link_reg(Pipe)

    def pumps(self):
        return self._link_reg(Pump)

    def valves(self):
        return self._link_reg(Valve)

    def head_pumps(self):
        for name in self._link_reg._head_pumps:
            yield name, self._link_reg[name]

    def power_pumps(self):
        for name in self._link_reg._power_pumps:
            yield name, self._link_reg[name]

    ### #
    ### Structural edits
    def _check_unlocked(self):
        if self._locked:
            raise NetworkModelError('the network structure cannot change while a solver is open')

    def _check_new_node(self, name):
        self._check_unlocked()
        _check_name(name)
        if name in self._node_reg:
            raise ValueError('The name provided for the node is already used: ' + name)

    def _check_new_link(self, name, start_node_name, end_node_name, valve_type=None):
        """
        Validate a new link before anything is changed.

        Raises
        ------
        ValueError
            duplicate name
        ENKeyError
            (203) undefined end node
        ENValueError
            (222) identical end nodes, (219) a PRV, PSV or FCV attached to a
            tank or reservoir, (220) an illegal valve pairing
        """
        self._check_unlocked()
        _check_name(name)
        _check_name(start_node_name, 'start_node_name')
        _check_name(end_node_name, 'end_node_name')
        if name in self._link_reg:
            raise ValueError('The name provided for the link is already used: ' + name)
        for node_name in (start_node_name, end_node_name):
            if node_name not in self._node_reg:
                raise ENKeyError(203, node_name)
        if start_node_name == end_node_name:
            raise ENValueError(222, name)
        if valve_type is None:
            return
        if valve_type in ('PRV', 'PSV', 'FCV'):
            for node_name in (start_node_name, end_node_name):
                if not isinstance(self._node_reg[node_name], Junction):
                    raise ENValueError(219, name)
        if self._illegal_valve_pair(valve_type, start_node_name, end_node_name):
            raise ENValueError(220, name)

    def _illegal_valve_pair(self, vtype, j1, j2):
        for vname, valve in self.valves():
            other = valve.valve_type
            v1 = valve.start_node_name
            v2 = valve.end_node_name
            # PRVs may not share a downstream node or sit in series
            if other == 'PRV' and vtype == 'PRV' and (v2 == j2 or v2 == j1 or v1 == j2):
                return True
            # PSVs may not share an upstream node or sit in series
            if other == 'PSV' and vtype == 'PSV' and (v1 == j1 or v1 == j2 or v2 == j1):
                return True
            if other == 'PSV' and vtype == 'PRV' and v1 == j2:
                return True
            if other == 'PRV' and vtype == 'PSV' and v2 == j1:
                return True
            if other == 'FCV' and vtype == 'PSV' and v2 == j1:
                return True
            if other == 'FCV' and vtype == 'PRV' and v1 == j2:
                return True
            if other == 'PSV' and vtype == 'FCV' and v1 == j2:
                return True
            if other == 'PRV' and vtype == 'FCV' and v2 == j1:
                return True
        return False

    def _renumber(self):
        """
        Rebuild the index space and renumber every cached index.

        Returns
        -------
        node_map, link_map : IndexMap
            Old index to new index maps (-1 for removed elements)
        """
        old = self._index
        new = NetworkIndex(self)
        node_map = IndexMap(old.node_names, new.node_names)
        link_map = IndexMap(old.link_names, new.link_names)
        self._index = new
        for name, control in self._controls.items():
            control._renumber(node_map, link_map)
        logger.debug('renumbered network: %d nodes, %d links', len(new.node_names), len(new.link_names))
        return node_map, link_map

    def add_junction(self, name, base_demand=0.0, demand_pattern=None, elevation=0.0, demand_category=None,
                     emitter_coeff=None, initial_quality=None):
        """
        Adds a junction to the water network model

        Parameters
        -------------------
        name : str
            Name of the junction.
        base_demand : float
            Base demand at the junction.
        demand_pattern : str
            Name of the demand pattern; None uses the default pattern
        elevation : float
            Elevation of the junction.
        demand_category  : str
            Name of the demand category
        emitter_coeff : float, optional
            Emitter coefficient
        initial_quality : float, optional
            Initial quality at this junction

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_new_node(name)
        self._node_reg.add_junction(name, base_demand, demand_pattern, elevation, demand_category,
                                    emitter_coeff, initial_quality)
        return self._renumber()

    def add_tank(self, name, elevation=0.0, init_level=3.048, min_level=0.0, max_level=6.096,
                 diameter=15.24, min_vol=0.0, vol_curve=None, mixing_model=None, mixing_fraction=None,
                 bulk_coeff=None, initial_quality=None):
        """
        Adds a tank to the water network model

        Parameters
        -------------------
        name : str
            Name of the tank.
        elevation : float
            Elevation at the tank.
        init_level : float
            Initial tank level.
        min_level : float
            Minimum tank level.
        max_level : float
            Maximum tank level.
        diameter : float
            Tank diameter.
        min_vol : float
            Minimum tank volume.
        vol_curve : str, optional
            Name of a volume curve
        mixing_model : str, optional
            MIXED (default), 2COMP, FIFO or LIFO
        mixing_fraction : float, optional
            Mixing zone fraction of a 2COMP tank
        bulk_coeff : float, optional
            Bulk reaction coefficient of the tank
        initial_quality : float, optional
            Initial quality in the tank

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_new_node(name)
        self._node_reg.add_tank(name, elevation, init_level, min_level, max_level, diameter, min_vol,
                                vol_curve, mixing_model, mixing_fraction, bulk_coeff, initial_quality)
        return self._renumber()

    def add_reservoir(self, name, base_head=0.0, head_pattern=None, initial_quality=None):
        """
        Adds a reservoir to the water network model

        Parameters
        ----------
        name : str
            Name of the reservoir.
        base_head : float, optional
            Base head at the reservoir.
        head_pattern : str, optional
            Name of the head pattern.
        initial_quality : float, optional
            Quality of the water supplied by the reservoir

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_new_node(name)
        self._node_reg.add_reservoir(name, base_head, head_pattern, initial_quality)
        return self._renumber()

    def add_pipe(self, name, start_node_name, end_node_name, length=304.8, diameter=0.3048, roughness=100,
                 minor_loss=0.0, initial_status='OPEN', check_valve=False):
        """
        Adds a pipe to the water network model

        Parameters
        ----------
        name : str
            Name of the pipe.
        start_node_name : str
             Name of the start node.
        end_node_name : str
             Name of the end node.
        length : float, optional
            Length of the pipe.
        diameter : float, optional
            Diameter of the pipe.
        roughness : float, optional
            Pipe roughness coefficient.
        minor_loss : float, optional
            Pipe minor loss coefficient.
        initial_status : str or LinkStatus, optional
            Pipe initial status. Options are 'OPEN' or 'CLOSED'.
        check_valve : bool, optional
            True if the pipe has a check valve.

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_new_link(name, start_node_name, end_node_name)
        self._link_reg.add_pipe(name, start_node_name, end_node_name, length, diameter, roughness,
                                minor_loss, initial_status, check_valve)
        return self._renumber()

    def add_pump(self, name, start_node_name, end_node_name, pump_type='POWER', pump_parameter=50.0,
                 speed=1.0, pattern=None, initial_status='OPEN'):
        """
        Adds a pump to the water network model

        Parameters
        ----------
        name : str
            Name of the pump.
        start_node_name : str
             Name of the start node.
        end_node_name : str
             Name of the end node.
        pump_type : str, optional
            Type of information provided for a pump. Options are 'POWER' or 'HEAD'.
        pump_parameter : float or str
            For a POWER pump, the pump power (W).
            For a HEAD pump, the head curve name.
        speed: float
            Relative speed setting (1.0 is normal speed)
        pattern: str
            Name of the speed pattern
        initial_status : str or LinkStatus
            Pump initial status. Options are 'OPEN' or 'CLOSED'.

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_new_link(name, start_node_name, end_node_name)
        self._link_reg.add_pump(name, start_node_name, end_node_name, pump_type, pump_parameter, speed,
                                pattern, initial_status)
        return self._renumber()

    def add_valve(self, name, start_node_name, end_node_name, diameter=0.3048, valve_type='PRV',
                  minor_loss=0.0, initial_setting=0.0, initial_status='ACTIVE'):
        """
        Adds a valve to the water network model

        Parameters
        ----------
        name : str
            Name of the valve.
        start_node_name : str
             Name of the start node.
        end_node_name : str
             Name of the end node.
        diameter : float, optional
            Diameter of the valve.
        valve_type : str, optional
            Type of valve. Options are 'PRV', 'PSV', 'PBV', 'FCV', 'TCV', and 'GPV'
        minor_loss : float, optional
            Valve minor loss coefficient.
        initial_setting : float or str, optional
            Valve initial setting.
            Pressure setting for PRV, PSV, or PBV.
            Flow setting for FCV.
            Loss coefficient for TCV.
            Name of headloss curve for GPV.
        initial_status: str or LinkStatus
            Valve initial status. Options are 'OPEN',  'CLOSED', or 'ACTIVE'.

        Returns
        -------
        node_map, link_map : IndexMap
        """
        valve_type = str(valve_type).upper()
        if valve_type not in ('PRV', 'PSV', 'PBV', 'FCV', 'TCV', 'GPV'):
            raise ValueError('valve_type must be PRV, PSV, PBV, FCV, TCV or GPV')
        self._check_new_link(name, start_node_name, end_node_name, valve_type)
        self._link_reg.add_valve(name, start_node_name, end_node_name, diameter, valve_type, minor_loss,
                                 initial_setting, initial_status)
        return self._renumber()

    def add_pattern(self, name, pattern=None):
        """
        Adds a pattern to the water network model

        The pattern can be either a list of values (list, numpy array, etc.)
        or a :class:`~hydronet.network.elements.Pattern` object.

        .. warning::
            Patterns **always** use the global water network model
            options.time values.

        Parameters
        ----------
        name : str
            Name of the pattern.
        pattern : list of floats or Pattern
            A list of floats that make up the pattern, or a Pattern object.

        Raises
        ------
        ValueError
            If adding a pattern with `name` that already exists.
        """
        self._pattern_reg.add_pattern(name, pattern)

    def add_curve(self, name, curve_type, xy_tuples_list):
        """
        Adds a curve to the water network model

        Parameters
        ----------
        name : str
            Name of the curve.
        curve_type : str
            Type of curve. Options are HEAD, EFFICIENCY, VOLUME, HEADLOSS.
        xy_tuples_list : list of (x, y) tuple
            List of X-Y coordinate tuples on the curve.
        """
        self._curve_reg.add_curve(name, curve_type, xy_tuples_list)

    def add_source(self, name, node_name, source_type, quality, pattern=None):
        """
        Adds a source to the water network model

        Parameters
        ----------
        name : str
            Name of the source
        node_name: str
            Injection node.
        source_type: str
            Source type, options = CONCEN, MASS, FLOWPACED, or SETPOINT
        quality: float
            Source strength in mass/s for MASS and mass/m3 for CONCEN,
            FLOWPACED, or SETPOINT
        pattern: str
            Pattern name
        """
        _check_name(name)
        if name in self._sources:
            raise ValueError('The name provided for the source is already used: ' + name)
        if node_name not in self._node_reg:
            raise ENKeyError(203, node_name)
        if isinstance(pattern, Pattern):
            pattern = pattern.name
        if pattern is not None and pattern not in self._pattern_reg:
            raise ENKeyError(205, pattern)
        source = Source(self, name, node_name, source_type, quality, pattern)
        self._sources[source.name] = source
        self._pattern_reg.add_usage(source.strength_timeseries.pattern_name, (source.name, 'Source'))
        self._node_reg.add_usage(source.node_name, (source.name, 'Source'))

    def add_control(self, name, control_object):
        """
        Adds a control or rule to the water network model

        Parameters
        ----------
        name : str
           control object name.
        control_object : Control or Rule
            Control or Rule object.
        """
        if name in self._controls:
            raise ValueError('The name provided for the control is already used. Please either remove the control '
                             'with that name first or use a different name for this control.')
        self._check_control(name, control_object)
        if not control_object.name:
            control_object._name = name
        control_object._assign_indices(self._index)
        self._controls[name] = control_object

    def replace_control(self, name, control_object):
        """
        Replaces a control or rule, keeping its place in the control order

        Parameters
        ----------
        name : str
           name of the control to replace
        control_object : Control or Rule
            the new Control or Rule object, which takes the same name
        """
        if name not in self._controls:
            raise KeyError(name)
        self._check_control(name, control_object)
        control_object._name = name
        control_object._assign_indices(self._index)
        self._controls[name] = control_object

    def _check_control(self, name, control_object):
        for obj in control_object.requires():
            if isinstance(obj, Node) and self._node_reg[obj.name] is not obj:
                raise ValueError('control {} uses node {} which is not in this model'.format(name, obj.name))
            if isinstance(obj, Link) and self._link_reg[obj.name] is not obj:
                raise ValueError('control {} uses link {} which is not in this model'.format(name, obj.name))

    ### #
    ### Remove elements from the model
    def _controls_using(self, obj):
        return [control_name for control_name, control in self._controls.items() if obj in control.requires()]

    def _remove_controls_for(self, obj, kind, with_control):
        users = self._controls_using(obj)
        if users and not with_control:
            raise RuntimeError('Cannot remove {0} {1} without first removing control/rule {2}'.format(
                kind, obj.name, users[0]))
        for control_name in users:
            logger.warning('{} {} is being removed along with {} {}'.format(
                self._controls[control_name].control_type, control_name, kind, obj.name))
            del self._controls[control_name]

    def remove_node(self, name, with_control=False, with_links=False):
        """
        Removes a node from the water network model

        Parameters
        ----------
        name : str
            The node name
        with_control : bool
            If True, controls and rules that use the node (or one of the links
            removed with it) are removed too; otherwise such a control raises.
        with_links : bool
            If True, the links attached to the node are removed first;
            otherwise a node with links raises.

        Returns
        -------
        node_map, link_map : IndexMap
            Old index to new index maps for the whole edit
        """
        self._check_unlocked()
        node = self.get_node(name)
        if node is None:
            raise ENKeyError(203, name)
        attached = self.get_links_for_node(name)
        if attached and not with_links:
            raise RuntimeError('Cannot remove node {0}, links {1} are attached'.format(name, attached))
        for obj in [node] + [self.get_link(link_name) for link_name in attached]:
            if self._controls_using(obj) and not with_control:
                self._remove_controls_for(obj, obj.__class__.__name__.lower(), False)
        for source_name, source in list(self._sources()):
            if source.node_name == name:
                logger.warning('source {} is being removed along with node {}'.format(source_name, name))
                del self._sources[source_name]
        for link_name in attached:
            self._remove_controls_for(self.get_link(link_name), 'link', with_control)
            del self._link_reg[link_name]
        self._remove_controls_for(node, 'node', with_control)
        if self._options.quality.trace_node == name:
            self._options.quality.trace_node = None
        self._node_reg.__delitem__(name)
        return self._renumber()

    def remove_link(self, name, with_control=False):
        """
        Removes a link from the water network model

        Parameters
        ----------
        name : str
            The link name
        with_control : bool
            If True, controls and rules that use the link are removed too;
            otherwise such a control raises.

        Returns
        -------
        node_map, link_map : IndexMap
        """
        self._check_unlocked()
        link = self.get_link(name)
        if link is None:
            raise ENKeyError(204, name)
        self._remove_controls_for(link, 'link', with_control)
        self._link_reg.__delitem__(name)
        return self._renumber()

    def remove_pattern(self, name):
        """Removes a pattern from the water network model"""
        self._pattern_reg.__delitem__(name)

    def remove_curve(self, name):
        """Removes a curve from the water network model"""
        self._curve_reg.__delitem__(name)

    def remove_source(self, name):
        """Removes a source from the water network model

        Parameters
        ----------
        name : str
           The name of the source object to be removed
        """
        del self._sources[name]

    def remove_control(self, name):
        """Removes a control from the water network model"""
        del self._controls[name]

    ### #
    ### Get elements from the model
    def get_node(self, name):
        """Get a specific node

        Parameters
        ----------
        name : str
            The node name

        Returns
        -------
        Junction, Tank, or Reservoir
        """
        return self._node_reg[name]

    def get_link(self, name):
        """Get a specific link

        Parameters
        ----------
        name : str
            The link name

        Returns
        -------
        Pipe, Pump, or Valve
        """
        return self._link_reg[name]

    def get_pattern(self, name):
        """Get a specific pattern

        Returns
        -------
        Pattern
        """
        return self._pattern_reg[name]

    def get_curve(self, name):
        """Get a specific curve

        Returns
        -------
        Curve
        """
        return self._curve_reg[name]

    def get_source(self, name):
        """Get a specific source"""
        return self._sources[name]

    def get_control(self, name):
        """Get a specific control or rule

        Returns
        -------
        ctrl: Control or Rule
        """
        return self._controls[name]

    def get_links_for_node(self, node_name, flag='ALL'):
        """
        Returns a list of links connected to a node

        Parameters
        ----------
        node_name : str
            Name of the node.
        flag : str
            Options are 'ALL', 'INLET', 'OUTLET'.
            'ALL' returns all links connected to the node.
            'INLET' returns links that have the specified node as an end node.
            'OUTLET' returns links that have the specified node as a start node.

        Returns
        -------
        list of str
        """
        usage = self._node_reg.get_usage(node_name)
        if usage is None:
            return []
        names = [link_name for link_name, kind in usage if link_name in self._link_reg]
        if flag.upper() == 'ALL':
            return names
        elif flag.upper() == 'INLET':
            return [n for n in names if self._link_reg[n].end_node_name == node_name]
        elif flag.upper() == 'OUTLET':
            return [n for n in names if self._link_reg[n].start_node_name == node_name]
        raise ValueError('Unrecognized flag: {0}'.format(flag))

    ### #
    ### Name lists
    @property
    def node_name_list(self):
        """list of str : node names in index order (junctions, tanks, reservoirs)"""
        return list(self._index.node_names)

    @property
    def junction_name_list(self):
        return list(self._node_reg._junctions)

    @property
    def tank_name_list(self):
        return list(self._node_reg._tanks)

    @property
    def reservoir_name_list(self):
        return list(self._node_reg._reservoirs)

    @property
    def link_name_list(self):
        """list of str : link names in index order"""
        return list(self._index.link_names)

    @property
    def pipe_name_list(self):
        return list(self._link_reg._pipes)

    @property
    def pump_name_list(self):
        return list(self._link_reg._pumps)

    @property
    def valve_name_list(self):
        return list(self._link_reg._valves)

    @property
    def pattern_name_list(self):
        return list(self._pattern_reg.keys())

    @property
    def curve_name_list(self):
        return list(self._curve_reg.keys())

    @property
    def source_name_list(self):
        return list(self._sources.keys())

    @property
    def control_name_list(self):
        return list(self._controls.keys())

    ### #
    ### Counts
    @property
    def num_nodes(self):
        return len(self._node_reg)

    @property
    def num_junctions(self):
        return len(self._node_reg._junctions)

    @property
    def num_tanks(self):
        return len(self._node_reg._tanks)

    @property
    def num_reservoirs(self):
        return len(self._node_reg._reservoirs)

    @property
    def num_links(self):
        return len(self._link_reg)

    @property
    def num_pipes(self):
        return len(self._link_reg._pipes)

    @property
    def num_pumps(self):
        return len(self._link_reg._pumps)

    @property
    def num_valves(self):
        return len(self._link_reg._valves)

    @property
    def num_patterns(self):
        return len(self._pattern_reg)

    @property
    def num_curves(self):
        return len(self._curve_reg)

    @property
    def num_sources(self):
        return len(self._sources)

    @property
    def num_controls(self):
        return len(self._controls)

    def to_graph(self):
        """
        Convert the network to a networkx MultiDiGraph with one edge per
        link, keyed by link name.

        Returns
        -------
        networkx.MultiDiGraph
        """
        graph = nx.MultiDiGraph()
        for name, node in self.nodes():
            graph.add_node(name, type=node.node_type)
        for name, link in self.links():
            graph.add_edge(link.start_node_name, link.end_node_name, key=name, type=link.link_type)
        return graph

    def reset_initial_values(self):
        """
        Resets all initial values in the network, including simulation
        results, link status and settings, tank heads and the time.
        """
        self.sim_time = 0
        self._prev_sim_time = -1

        for name, node in self.nodes(Junction):
            node._head = None
            node._demand = None
            node._quality = None

        for name, node in self.nodes(Tank):
            node._head = node.init_level + node.elevation
            node._demand = None
            node._quality = None

        for name, node in self.nodes(Reservoir):
            node._head = node.base_head
            node._demand = None
            node._quality = None

        for name, link in self.links():
            link._user_status = link.initial_status
            link._setting = link.initial_setting
            link._internal_status = None
            link._flow = None
            link._headloss = None
            link._velocity = None
            link._quality = None
            if isinstance(link, Pump):
                link._power_used = None


class NetworkIndex(object):
    """
    The 0-based index space of a network.

    Node indices run over the junctions, then the tanks, then the
    reservoirs; link indices follow the order in which links were added.

    Parameters
    ----------
    wn : WaterNetworkModel
        The model to index

    Attributes
    ----------
    node_names : list of str
    link_names : list of str
    start : numpy.ndarray of int
        Start node index of each link
    end : numpy.ndarray of int
        End node index of each link
    junctions, tanks, reservoirs : numpy.ndarray of int
        Node indices of each node type
    pumps, valves : numpy.ndarray of int
        Link indices of pumps and valves
    """
    def __init__(self, wn):
        node_reg = wn._node_reg
        link_reg = wn._link_reg
        self.node_names = list(node_reg._junctions) + list(node_reg._tanks) + list(node_reg._reservoirs)
        self.link_names = list(link_reg.keys())
        self._node_lookup = dict((name, i) for i, name in enumerate(self.node_names))
        self._link_lookup = dict((name, i) for i, name in enumerate(self.link_names))
        nj = len(node_reg._junctions)
        nt = len(node_reg._tanks)
        self.junctions = np.arange(nj, dtype=int)
        self.tanks = np.arange(nj, nj + nt, dtype=int)
        self.reservoirs = np.arange(nj + nt, len(self.node_names), dtype=int)
        self.start = np.array([self._node_lookup[link_reg[name].start_node_name] for name in self.link_names],
                              dtype=int)
        self.end = np.array([self._node_lookup[link_reg[name].end_node_name] for name in self.link_names],
                            dtype=int)
        self.pumps = np.array([self._link_lookup[name] for name in link_reg._pumps], dtype=int)
        self.valves = np.array([self._link_lookup[name] for name in link_reg._valves], dtype=int)

    @property
    def num_nodes(self):
        return len(self.node_names)

    @property
    def num_links(self):
        return len(self.link_names)

    @property
    def num_junctions(self):
        return len(self.junctions)

    def node_index(self, name):
        """0-based index of a node; raises KeyError if the node does not exist"""
        return self._node_lookup[name]

    def link_index(self, name):
        """0-based index of a link; raises KeyError if the link does not exist"""
        return self._link_lookup[name]

    def is_fixed_grade(self, i):
        """True if node ``i`` is a tank or a reservoir"""
        return i >= len(self.junctions)


class IndexMap(object):
    """
    Map from the indices of an old index space to a new one.

    Parameters
    ----------
    old_names : list of str
        Element names in the old index order
    new_names : list of str
        Element names in the new index order

    Examples
    --------
    >>> m = IndexMap(['a', 'b', 'c'], ['a', 'c'])
    >>> m[1], m[2]
    (-1, 1)
    """
    def __init__(self, old_names, new_names):
        lookup = dict((name, i) for i, name in enumerate(new_names))
        self._map = np.array([lookup.get(name, -1) for name in old_names], dtype=int)
        self.removed = [name for name in old_names if name not in lookup]

    def __getitem__(self, old):
        if old is None:
            return None
        if old < 0:
            return -1
        return int(self._map[old])

    def __len__(self):
        return len(self._map)

    def __repr__(self):
        return '<IndexMap: {}>'.format(self._map.tolist())

    def as_array(self):
        """numpy.ndarray : the map as an array"""
        return self._map.copy()

    @property
    def is_identity(self):
        """bool : True if no index changed"""
        return bool(np.all(self._map == np.arange(len(self._map))))


class PatternRegistry(Registry):
    """A registry for patterns."""

    class DefaultPattern(object):
        """An object that always points to the current default pattern for a model"""

        def __init__(self, options):
            self._options = options

        def __str__(self):
            return str(self._options.hydraulic.pattern) if self._options.hydraulic.pattern is not None else ''

        def __repr__(self):
            return 'DefaultPattern()'

        @property
        def name(self):
            """The name of the default pattern, or ``''`` if no pattern is assigned"""
            return str(self)

    def __getitem__(self, key):
        try:
            return super(PatternRegistry, self).__getitem__(key)
        except KeyError:
            return None

    def add_pattern(self, name, pattern=None):
        """
        Adds a pattern to the registry.

        Parameters
        ----------
        name : str
            Name of the pattern.
        pattern : list of float or Pattern
            A list of floats that make up the pattern, or a Pattern object.
        """
        _check_name(name)
        assert isinstance(pattern, (list, tuple, np.ndarray, Pattern)), 'pattern must be a list or Pattern'
        if not isinstance(pattern, Pattern):
            pattern = Pattern(name, multipliers=list(pattern), time_options=self._options.time)
        else:
            pattern.time_options = self._options.time
        if name in self._data.keys():
            raise ValueError('Pattern name already exists')
        self[name] = pattern

    @property
    def default_pattern(self):
        """A new default pattern object"""
        return self.DefaultPattern(self._options)


class CurveRegistry(Registry):
    """A registry for curves."""

    def __init__(self, model):
        super(CurveRegistry, self).__init__(model)
        self._pump_curves = OrderedSet()
        self._efficiency_curves = OrderedSet()
        self._headloss_curves = OrderedSet()
        self._volume_curves = OrderedSet()

    def __setitem__(self, key, value):
        if not isinstance(key, six.string_types):
            raise ValueError('Registry keys must be strings')
        self._data[key] = value
        if value is not None:
            self.set_curve_type(key, value.curve_type)

    def __delitem__(self, key):
        curve = super(CurveRegistry, self).__delitem__(key)
        for subset in (self._pump_curves, self._efficiency_curves, self._headloss_curves, self._volume_curves):
            subset.discard(key)
        return curve

    def set_curve_type(self, key, curve_type):
        """
        Sets curve type.

        This does not check that the curve is untyped before assigning it.
        """
        if curve_type is None or key is None:
            return
        curve_type = curve_type.upper()
        if curve_type == 'HEAD':
            self._pump_curves.add(key)
        elif curve_type == 'HEADLOSS':
            self._headloss_curves.add(key)
        elif curve_type == 'VOLUME':
            self._volume_curves.add(key)
        elif curve_type == 'EFFICIENCY':
            self._efficiency_curves.add(key)
        else:
            raise ValueError('curve_type must be HEAD, HEADLOSS, VOLUME, or EFFICIENCY')
        curve = self._data.get(key)
        if curve is not None and curve.curve_type is None:
            curve.curve_type = curve_type

    def add_curve(self, name, curve_type, xy_tuples_list):
        """
        Adds a curve to the registry.

        Parameters
        ----------
        name : str
            Name of the curve.
        curve_type : str
            Type of curve. Options are HEAD, EFFICIENCY, VOLUME, HEADLOSS.
        xy_tuples_list : list of (x, y) tuples
            List of X-Y coordinate tuples on the curve.

        Raises
        ------
        ENValueError
            (230) if the x values are not strictly increasing
        """
        _check_name(name)
        assert isinstance(curve_type, (type(None), str)), 'curve_type must be a string'
        assert isinstance(xy_tuples_list, (list, tuple, np.ndarray)), 'xy_tuples_list must be a list of (x,y) tuples'
        if name in self._data:
            raise ValueError('Curve name already exists')
        curve = Curve(name, curve_type, xy_tuples_list)
        self[name] = curve

    def pump_curves(self):
        """Generator to get all pump curves"""
        for key in self._pump_curves:
            yield key, self._data[key]

    def efficiency_curves(self):
        """Generator to get all efficiency curves"""
        for key in self._efficiency_curves:
            yield key, self._data[key]

    def headloss_curves(self):
        """Generator to get all headloss curves"""
        for key in self._headloss_curves:
            yield key, self._data[key]

    def volume_curves(self):
        """Generator to get all volume curves"""
        for key in self._volume_curves:
            yield key, self._data[key]


class SourceRegistry(Registry):
    """A registry for sources."""

    def __delitem__(self, key):
        if key not in self._data:
            raise KeyError(key)
        source = self._data.pop(key)
        self._usage.pop(key, None)
        self._pattern_reg.remove_usage(source.strength_timeseries.pattern_name, (source.name, 'Source'))
        self._node_reg.remove_usage(source.node_name, (source.name, 'Source'))
        return source


class NodeRegistry(Registry):
    """A registry for nodes."""

    def __init__(self, model):
        super(NodeRegistry, self).__init__(model)
        self._junctions = OrderedSet()
        self._reservoirs = OrderedSet()
        self._tanks = OrderedSet()

    def __setitem__(self, key, value):
        if not isinstance(key, six.string_types):
            raise ValueError('Registry keys must be strings')
        self._data[key] = value
        if isinstance(value, Junction):
            self._junctions.add(key)
        elif isinstance(value, Tank):
            self._tanks.add(key)
        elif isinstance(value, Reservoir):
            self._reservoirs.add(key)

    def __delitem__(self, key):
        if self._usage and key in self._usage and len(self._usage[key]) > 0:
            raise RuntimeError('cannot remove %s %s, still used by %s' % (self.__class__.__name__, key,
                                                                        str(self._usage[key])))
        elif key in self._usage:
            self._usage.pop(key)
        node = self._data.pop(key)
        self._junctions.discard(key)
        self._reservoirs.discard(key)
        self._tanks.discard(key)
        if isinstance(node, Junction):
            for pat_name in node.demand_timeseries_list.pattern_list():
                if pat_name:
                    self._pattern_reg.remove_usage(pat_name, (node.name, 'Junction'))
        if isinstance(node, Reservoir) and node.head_pattern_name:
            self._pattern_reg.remove_usage(node.head_pattern_name, (node.name, 'Reservoir'))
        if isinstance(node, Tank) and node.vol_curve_name:
            self._curve_reg.remove_usage(node.vol_curve_name, (node.name, 'Tank'))
        return node

    def __call__(self, node_type=None):
        """
        Returns a generator to iterate over all nodes of a specific node type.
        If no node type is specified, the generator iterates over all nodes.

        Parameters
        ----------
        node_type: Node type
            Node type, options include
            hydronet.network.elements.Junction,
            hydronet.network.elements.Reservoir,
            hydronet.network.elements.Tank, or None. Default = None.

        Returns
        -------
        A generator in the format (name, object).
        """
        if node_type is None or node_type == Node:
            for node_name, node in self._data.items():
                yield node_name, node
        elif node_type == Junction:
            for node_name in self._junctions:
                yield node_name, self._data[node_name]
        elif node_type == Tank:
            for node_name in self._tanks:
                yield node_name, self._data[node_name]
        elif node_type == Reservoir:
            for node_name in self._reservoirs:
                yield node_name, self._data[node_name]
        else:
            raise RuntimeError('node_type, ' + str(node_type) + ', not recognized.')

    def add_junction(self, name, base_demand=0.0, demand_pattern=None, elevation=0.0, demand_category=None,
                     emitter_coeff=None, initial_quality=None):
        """Adds a junction to the registry; see :meth:`WaterNetworkModel.add_junction`"""
        _check_name(name)
        assert isinstance(base_demand, (int, float)), 'base_demand must be a float'
        assert isinstance(demand_pattern, (type(None), str, PatternRegistry.DefaultPattern)), \
            'demand_pattern must be a string'
        assert isinstance(elevation, (int, float)), 'elevation must be a float'
        assert isinstance(demand_category, (type(None), str)), 'demand_category must be a string'
        assert isinstance(emitter_coeff, (type(None), int, float)), 'emitter_coeff must be a float'
        assert isinstance(initial_quality, (type(None), int, float)), 'initial_quality must be a float'
        if isinstance(demand_pattern, str) and demand_pattern not in self._pattern_reg:
            raise ENKeyError(205, demand_pattern)

        junction = Junction(name, self)
        junction.elevation = float(elevation)
        junction.add_demand(float(base_demand), demand_pattern, demand_category)
        if emitter_coeff is not None:
            junction.emitter_coefficient = emitter_coeff
        if initial_quality is not None:
            junction.initial_quality = initial_quality
        self[name] = junction

    def add_tank(self, name, elevation=0.0, init_level=3.048, min_level=0.0, max_level=6.096, diameter=15.24,
                 min_vol=0.0, vol_curve=None, mixing_model=None, mixing_fraction=None, bulk_coeff=None,
                 initial_quality=None):
        """Adds a tank to the registry; see :meth:`WaterNetworkModel.add_tank`"""
        _check_name(name)
        assert isinstance(elevation, (int, float)), 'elevation must be a float'
        assert isinstance(init_level, (int, float)), 'init_level must be a float'
        assert isinstance(min_level, (int, float)), 'min_level must be a float'
        assert isinstance(max_level, (int, float)), 'max_level must be a float'
        assert isinstance(diameter, (int, float)), 'diameter must be a float'
        assert isinstance(min_vol, (int, float)), 'min_vol must be a float'
        assert isinstance(vol_curve, (type(None), str)), 'vol_curve must be a string'
        if init_level < min_level:
            raise ValueError('Initial tank level must be greater than or equal to the tank minimum level.')
        if init_level > max_level:
            raise ValueError('Initial tank level must be less than or equal to the tank maximum level.')
        if vol_curve is not None and vol_curve not in self._curve_reg:
            raise ENKeyError(206, vol_curve)

        tank = Tank(name, self)
        tank.elevation = float(elevation)
        tank.init_level = float(init_level)
        tank.min_level = float(min_level)
        tank.max_level = float(max_level)
        tank.diameter = float(diameter)
        tank.min_vol = float(min_vol)
        if vol_curve is not None:
            tank.vol_curve_name = vol_curve
            self._curve_reg.set_curve_type(vol_curve, 'VOLUME')
        tank.mixing_model = mixing_model
        tank.mixing_fraction = mixing_fraction
        tank.bulk_coeff = bulk_coeff
        if initial_quality is not None:
            tank.initial_quality = initial_quality
        self[name] = tank

    def add_reservoir(self, name, base_head=0.0, head_pattern=None, initial_quality=None):
        """Adds a reservoir to the registry; see :meth:`WaterNetworkModel.add_reservoir`"""
        _check_name(name)
        assert isinstance(base_head, (int, float)), 'base_head must be float'
        assert isinstance(head_pattern, (type(None), str)), 'head_pattern must be a string'
        if head_pattern is not None and head_pattern not in self._pattern_reg:
            raise ENKeyError(205, head_pattern)

        base_head = float(base_head)
        reservoir = Reservoir(name, self, base_head, head_pattern)
        if initial_quality is not None:
            reservoir.initial_quality = initial_quality
        self[name] = reservoir

    def junction_names(self):
        """List of names of all junctions"""
        return self._junctions

    def tank_names(self):
        """List of names of all tanks"""
        return self._tanks

    def reservoir_names(self):
        """List of names of all reservoirs"""
        return self._reservoirs


class LinkRegistry(Registry):
    """A registry for links."""

    __subsets = ['_pipes', '_pumps', '_head_pumps', '_power_pumps', '_prvs', '_psvs', '_pbvs', '_tcvs',
                 '_fcvs', '_gpvs', '_valves']

    def __init__(self, model):
        super(LinkRegistry, self).__init__(model)
        self._pipes = OrderedSet()
        self._pumps = OrderedSet()
        self._head_pumps = OrderedSet()
        self._power_pumps = OrderedSet()
        self._prvs = OrderedSet()
        self._psvs = OrderedSet()
        self._pbvs = OrderedSet()
        self._tcvs = OrderedSet()
        self._fcvs = OrderedSet()
        self._gpvs = OrderedSet()
        self._valves = OrderedSet()

    def __setitem__(self, key, value):
        if not isinstance(key, six.string_types):
            raise ValueError('Registry keys must be strings')
        self._data[key] = value
        if isinstance(value, Pipe):
            self._pipes.add(key)
        elif isinstance(value, Pump):
            self._pumps.add(key)
            if isinstance(value, HeadPump):
                self._head_pumps.add(key)
            elif isinstance(value, PowerPump):
                self._power_pumps.add(key)
        elif isinstance(value, Valve):
            self._valves.add(key)
            if isinstance(value, PRValve):
                self._prvs.add(key)
            elif isinstance(value, PSValve):
                self._psvs.add(key)
            elif isinstance(value, PBValve):
                self._pbvs.add(key)
            elif isinstance(value, TCValve):
                self._tcvs.add(key)
            elif isinstance(value, FCValve):
                self._fcvs.add(key)
            elif isinstance(value, GPValve):
                self._gpvs.add(key)

    def __delitem__(self, key):
        if self._usage and key in self._usage and len(self._usage[key]) > 0:
            raise RuntimeError('cannot remove %s %s, still used by %s' % (self.__class__.__name__, key,
                                                                        str(self._usage[key])))
        elif key in self._usage:
            self._usage.pop(key)
        link = self._data.pop(key)
        self._node_reg.remove_usage(link.start_node_name, (link.name, link.link_type))
        self._node_reg.remove_usage(link.end_node_name, (link.name, link.link_type))
        if isinstance(link, GPValve):
            self._curve_reg.remove_usage(link.headloss_curve_name, (link.name, 'Valve'))
        if isinstance(link, Pump):
            self._pattern_reg.remove_usage(link.speed_pattern_name, (link.name, 'Pump'))
            self._curve_reg.remove_usage(link.efficiency_curve_name, (link.name, 'Pump'))
        if isinstance(link, HeadPump):
            self._curve_reg.remove_usage(link.pump_curve_name, (link.name, 'Pump'))
        for ss in self.__subsets:
            getattr(self, ss).discard(key)
        return link

    def __call__(self, link_type=None):
        """
        Returns a generator to iterate over all links of a specific link type.
        If no link type is specified, the generator iterates over all links.

        Parameters
        ----------
        link_type: Link type
            Link type, options include
            hydronet.network.elements.Pipe,
            hydronet.network.elements.Pump,
            hydronet.network.elements.Valve, or None. Default = None.

        Returns
        -------
        A generator in the format (name, object).
        """
        if link_type is None or link_type == Link:
            for name, link in self._data.items():
                yield name, link
        elif link_type == Pipe:
            for name in self._pipes:
                yield name, self._data[name]
        elif link_type == Pump:
            for name in self._pumps:
                yield name, self._data[name]
        elif link_type == Valve:
            for name in self._valves:
                yield name, self._data[name]
        else:
            raise RuntimeError('link_type, ' + str(link_type) + ', not recognized.')

    def add_pipe(self, name, start_node_name, end_node_name, length=304.8, diameter=0.3048, roughness=100,
                 minor_loss=0.0, initial_status='OPEN', check_valve=False):
        """Adds a pipe to the registry; see :meth:`WaterNetworkModel.add_pipe`"""
        assert isinstance(length, (int, float)), 'length must be a float'
        assert isinstance(diameter, (int, float)), 'diameter must be a float'
        assert isinstance(roughness, (int, float)), 'roughness must be a float'
        assert isinstance(minor_loss, (int, float)), 'minor_loss must be a float'
        assert isinstance(initial_status, (int, str, LinkStatus)), \
            'initial_status must be an int, string or LinkStatus'
        assert isinstance(check_valve, (str, int, bool)), 'check_valve must be a Boolean'
        check_valve = bool(int(check_valve))
        if isinstance(initial_status, str):
            initial_status = LinkStatus[initial_status]
        elif not isinstance(initial_status, LinkStatus):
            initial_status = LinkStatus(initial_status)
        if initial_status is LinkStatus.Active:
            raise ValueError('a pipe cannot be Active')

        pipe = Pipe(name, start_node_name, end_node_name, self)
        pipe.length = float(length)
        pipe.diameter = float(diameter)
        pipe.roughness = float(roughness)
        pipe.minor_loss = float(minor_loss)
        pipe.check_valve = check_valve or initial_status is LinkStatus.CV
        if initial_status is LinkStatus.CV:
            initial_status = LinkStatus.Opened
        pipe.initial_status = initial_status
        self[name] = pipe

    def add_pump(self, name, start_node_name, end_node_name, pump_type='POWER', pump_parameter=50.0,
                 speed=1.0, pattern=None, initial_status='OPEN'):
        """Adds a pump to the registry; see :meth:`WaterNetworkModel.add_pump`"""
        assert isinstance(pump_type, str) and pump_type.upper() in ['HEAD', 'POWER'], \
            'pump_type must be "HEAD" or "POWER"'
        assert isinstance(pump_parameter, (int, float, str)), 'pump_parameter must be a float or string'
        assert isinstance(speed, (int, float)), 'speed must be a float'
        assert isinstance(pattern, (type(None), str)), 'pattern must be a string'
        assert isinstance(initial_status, (int, str, LinkStatus)), \
            'initial_status must be an int, string or LinkStatus'
        if isinstance(initial_status, str):
            initial_status = LinkStatus[initial_status]
        elif not isinstance(initial_status, LinkStatus):
            initial_status = LinkStatus(initial_status)
        if initial_status not in (LinkStatus.Opened, LinkStatus.Closed):
            raise ValueError('a pump can only be Opened or Closed')
        if pattern is not None and pattern not in self._pattern_reg:
            raise ENKeyError(205, pattern)
        if pump_type.upper() == 'HEAD':
            if pump_parameter not in self._curve_reg:
                raise ENKeyError(206, str(pump_parameter))
        elif not isinstance(pump_parameter, (int, float)) or pump_parameter <= 0:
            raise ENValueError(202, name)

        if pump_type.upper() == 'POWER':
            pump = PowerPump(name, start_node_name, end_node_name, self)
            pump.power = pump_parameter
        else:
            pump = HeadPump(name, start_node_name, end_node_name, self)
            pump.pump_curve_name = pump_parameter
        pump.base_speed = speed
        pump.initial_status = initial_status
        pump.speed_pattern_name = pattern
        self[name] = pump

    def add_valve(self, name, start_node_name, end_node_name, diameter=0.3048, valve_type='PRV', minor_loss=0.0,
                  initial_setting=0.0, initial_status='ACTIVE'):
        """Adds a valve to the registry; see :meth:`WaterNetworkModel.add_valve`"""
        assert isinstance(diameter, (int, float)), 'diameter must be a float'
        assert isinstance(valve_type, str) and valve_type.upper() in ['PRV', 'PSV', 'PBV', 'FCV', 'TCV', 'GPV'], \
            'valve_type must be a valid valve type string'
        assert isinstance(minor_loss, (int, float)), 'minor_loss must be a float'
        assert isinstance(initial_setting, (int, float, str)), 'initial_setting must be a float or string'
        assert isinstance(initial_status, (int, str, LinkStatus)), \
            'initial_status must be an int, string or LinkStatus'
        if isinstance(initial_status, str):
            initial_status = LinkStatus[initial_status]
        elif not isinstance(initial_status, LinkStatus):
            initial_status = LinkStatus(initial_status)
        if initial_status is LinkStatus.CV:
            raise ValueError('a valve cannot have a CV status')
        valve_type = valve_type.upper()
        if valve_type == 'GPV':
            if initial_setting not in self._curve_reg:
                raise ENKeyError(206, str(initial_setting))
        elif float(initial_setting) < 0 and valve_type != 'PBV':
            raise ENValueError(202, name)

        cls = {'PRV': PRValve, 'PSV': PSValve, 'PBV': PBValve, 'FCV': FCValve, 'TCV': TCValve,
               'GPV': GPValve}[valve_type]
        valve = cls(name, start_node_name, end_node_name, self)
        valve.diameter = float(diameter)
        valve.minor_loss = float(minor_loss)
        if valve_type == 'GPV':
            valve.headloss_curve_name = initial_setting
            valve.initial_setting = 0.0
        else:
            valve.initial_setting = float(initial_setting)
        valve.initial_status = initial_status
        self[name] = valve
