"""
The hydronet.epanet.toolkit module provides the EPANET Programmers Toolkit
interface on top of a :class:`~hydronet.network.model.WaterNetworkModel`.

All element and control indices are 1-based, as in the toolkit. Errors are
reported with the toolkit error codes: codes of 100 and above raise an
:class:`~hydronet.epanet.exceptions.EpanetException`, lower codes are
warnings kept in ``ENepanet.errcodelist``.
"""
import logging

from hydronet.network.base import LinkStatus, Node
from hydronet.network.controls import Comparison, Control, ControlAction, RulePremises, SimTimeCondition, \
    TimeOfDayCondition, SystemDemandCondition, ValueCondition, TankLevelCondition
from hydronet.network.elements import Junction, Tank, Reservoir, Pipe, Pump, HeadPump, PowerPump, GPValve
from hydronet.sim.core import HydraulicSimulator
from hydronet.sim.hydfile import HydraulicsFileWriter, HydraulicsFileReader
from hydronet.sim.quality import QualitySimulator
from hydronet.utils.exceptions import NetworkModelError, SimulatorError, SingularSystem

from .exceptions import EN_ERROR_CODES, EpanetException
from .rules import read_rules
from .util import EN, InitHydOption

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400

_QUALITY_CODES = {'NONE': EN.NONE, 'CHEMICAL': EN.CHEM, 'AGE': EN.AGE, 'TRACE': EN.TRACE}

_PREMISE_CONNECTIVES = {'IF': EN.R_IF, 'AND': EN.R_AND, 'OR': EN.R_OR}
_PREMISE_VARIABLES = {'demand': EN.R_DEMAND, 'head': EN.R_HEAD, 'level': EN.R_LEVEL, 'pressure': EN.R_PRESSURE,
                      'flow': EN.R_FLOW, 'status': EN.R_STATUS, 'setting': EN.R_SETTING, 'power_used': EN.R_POWER,
                      'fill_time': EN.R_FILLTIME, 'drain_time': EN.R_DRAINTIME}
_PREMISE_RELATIONS = {Comparison.eq: EN.R_EQ, Comparison.ne: EN.R_NE, Comparison.le: EN.R_LE,
                      Comparison.ge: EN.R_GE, Comparison.lt: EN.R_LT, Comparison.gt: EN.R_GT}
_RULE_STATUS = {LinkStatus.Opened: EN.R_IS_OPEN, LinkStatus.Closed: EN.R_IS_CLOSED,
                LinkStatus.Active: EN.R_IS_ACTIVE}


def ENgetwarning(code, sec=-1):
    if sec >= 0:
        hours = int(sec / 3600.0)
        sec -= hours * 3600
        mm = int(sec / 60.0)
        sec -= mm * 60
        header = "%3d:%.2d:%.2d" % (hours, mm, sec)
    else:
        header = "{}".format(code)
    if code < 100:
        msg = EN_ERROR_CODES.get(code, "Unknown warning %s")
    else:
        raise EpanetException(code)

    return msg % header


class ENepanet(object):
    """Toolkit interface to a water network model.

    The object owns one hydraulic simulator and, once hydraulics exist, one
    water quality simulator for the model. The model itself is the project
    data; it can also be edited directly between runs.

    Parameters
    ----------
    wn : WaterNetworkModel
        The network to analyze
    """

    def __init__(self, wn):
        self._wn = wn
        self.errcode = 0
        self.errcodelist = []
        self.cur_time = 0

        self.Warnflag = False
        self.Errflag = False

        self._hyd = HydraulicSimulator(wn)
        self._qual = None
        self._records = None
        self._hydfile = None
        self._ctrl_count = 0
        self._stats = {EN.ITERATIONS: 0, EN.RELATIVEERROR: 0.0, EN.MAXHEADERROR: 0.0, EN.MAXFLOWCHANGE: 0.0}

    @property
    def network(self):
        """WaterNetworkModel : the model being analyzed"""
        return self._wn

    def _error(self, *args):
        """Log the error text for the current error code; raise for errors"""
        if not self.errcode:
            return
        errtext = EN_ERROR_CODES.get(self.errcode, "unknown error")
        if self.errcode >= 100:
            self.Errflag = True
            logger.error("EPANET error {} - {}".format(self.errcode, errtext))
            raise EpanetException(self.errcode, *args)
        else:
            self.Warnflag = True
            logger.warning("EPANET warning {} - {}".format(self.errcode, ENgetwarning(self.errcode, self.cur_time)))
            self.errcodelist.append(ENgetwarning(self.errcode, self.cur_time))
        return

    def _fail(self, code, *args):
        self.errcode = code
        self._error(*args)

    ### #
    ### Index lookups
    def _get_node(self, iIndex):
        names = self._wn.index.node_names
        if not 1 <= int(iIndex) <= len(names):
            self._fail(203, iIndex)
        return self._wn.get_node(names[int(iIndex) - 1])

    def _get_link(self, iIndex):
        names = self._wn.index.link_names
        if not 1 <= int(iIndex) <= len(names):
            self._fail(204, iIndex)
        return self._wn.get_link(names[int(iIndex) - 1])

    def _pattern_index(self, name):
        if name is None:
            return 0
        return self._wn.pattern_name_list.index(name) + 1

    def _curve_index(self, name):
        if name is None:
            return 0
        return self._wn.curve_name_list.index(name) + 1

    def _simple_controls(self):
        return [(name, control) for name, control in self._wn.controls() if control.control_type == 'control']

    def _solver_open(self):
        return self._hyd.is_open or (self._qual is not None and self._qual.is_open)

    def _check_structure(self):
        if self._solver_open():
            self._fail(262)

    ### #
    ### Hydraulic analysis
    def ENsolveH(self):
        """Solves for network hydraulics in all time periods"""
        self.ENopenH()
        try:
            self.ENinitH(InitHydOption.EN_NOSAVE.value)
            while True:
                self.ENrunH()
                if self.ENnextH() <= 0:
                    break
        finally:
            self.ENcloseH()
        return

    def ENopenH(self):
        """Sets up data structures for hydraulic analysis"""
        self.errcode = 0
        try:
            self._hyd.open()
        except EpanetException as e:
            self._fail(e.code)
        return

    def ENinitH(self, iFlag):
        """Initializes hydraulic analysis

        Parameters
        -----------
        iFlag : 2-digit flag
            2-digit flag where 1st (left) digit indicates
            if link flows should be re-initialized (1) or
            not (0) and 2nd digit indicates if hydraulic
            results should be saved to file (1) or not (0)
        """
        self.errcode = 0
        if not self._hyd.is_open:
            self._fail(103)
        try:
            option = InitHydOption(int(iFlag))
        except ValueError:
            self._fail(251, iFlag)
        save = option.save and bool(self._wn.options.hydraulic.hydraulics_filename)
        try:
            self._hyd.init(save=save, init_flows=option.init_flow)
        except EpanetException as e:
            self._fail(e.code)
        self._records = self._hyd.records
        self._hydfile = None
        self.errcodelist = []
        self.cur_time = 0
        return

    def ENrunH(self):
        """Solves hydraulics for conditions at time t

        This function is used in a loop with ENnextH() to run
        an extended period hydraulic simulation.
        See ENsolveH() for an example.

        Returns
        --------
        int
            Current simulation time (seconds)
        """
        self.errcode = 0
        if not self._hyd.is_initialized:
            self._fail(103)
        try:
            t = self._hyd.run()
        except SingularSystem as e:
            self._fail(110, str(e))
        self.cur_time = t
        solver = self._hyd.solver
        self._stats[EN.ITERATIONS] = solver.iterations
        self._stats[EN.RELATIVEERROR] = solver.relative_error
        self._stats[EN.MAXHEADERROR] = solver.max_head_error
        self._stats[EN.MAXFLOWCHANGE] = solver.max_flow_change
        if self._hyd.last_warning:
            self.errcode = self._hyd.last_warning
            self._error()
        return t

    def ENnextH(self):
        """Determines time until next hydraulic event

        This function is used in a loop with ENrunH() to run
        an extended period hydraulic simulation.
        See ENsolveH() for an example.

        Returns
        ---------
        int
            Time (seconds) until next hydraulic event (0 marks end of simulation period)
        """
        self.errcode = 0
        if not self._hyd.is_initialized:
            self._fail(103)
        return self._hyd.next()

    def ENcloseH(self):
        """Frees data allocated by hydraulics solver"""
        self.errcode = 0
        self._hyd.close()
        return

    def ENsavehydfile(self, filename):
        """Copies the hydraulic results of the last run to a file

        Parameters
        -------------
        filename : str
            Name of hydraulics file to output
        """
        self.errcode = 0
        if not self._records:
            self._fail(104)
        try:
            with HydraulicsFileWriter(filename, self._wn) as writer:
                for record in self._records:
                    writer.write(record)
        except EpanetException as e:
            self._fail(e.code, filename)
        return

    def ENusehydfile(self, filename):
        """Opens previously saved binary hydraulics file

        Parameters
        -------------
        filename : str
            Name of hydraulics file to use
        """
        self.errcode = 0
        if self._hyd.is_open:
            self._fail(108)
        try:
            with HydraulicsFileReader(filename, self._wn):
                pass
        except EpanetException as e:
            self._fail(e.code, filename)
        self._hydfile = filename
        return

    ### #
    ### Water quality analysis
    def ENsolveQ(self):
        """Solves for network water quality in all time periods"""
        self.ENopenQ()
        try:
            self.ENinitQ(1)
            while True:
                self.ENrunQ()
                if self.ENnextQ() <= 0:
                    break
        finally:
            self.ENcloseQ()
        return

    def ENopenQ(self):
        """Sets up data structures for water quality analysis"""
        self.errcode = 0
        if self._hydfile is not None:
            source = self._hydfile
        elif self._records:
            source = self._records
        elif self._wn.options.hydraulic.hydraulics == 'USE' and self._wn.options.hydraulic.hydraulics_filename:
            source = None
        else:
            self._fail(104)
        qopts = self._wn.options.quality
        if qopts.parameter == 'TRACE' and qopts.trace_node is None:
            self._fail(212)
        self._qual = QualitySimulator(self._wn, source)
        try:
            self._qual.open()
        except EpanetException as e:
            self._fail(e.code)
        return

    def ENinitQ(self, iSaveflag):
        """Initializes water quality analysis

        Parameters
        -------------
        iSaveflag : int
             EN_SAVE (1) if results saved to file, EN_NOSAVE (0) if not
        """
        self.errcode = 0
        if self._qual is None or not self._qual.is_open:
            self._fail(105)
        try:
            self._qual.init(save=bool(iSaveflag))
        except EpanetException as e:
            self._fail(e.code)
        return

    def ENrunQ(self):
        """Retrieves hydraulic and water quality results at time t

        Returns
        -------
        int
            Current simulation time (seconds)
        """
        self.errcode = 0
        if self._qual is None or not self._qual.is_initialized:
            self._fail(105)
        try:
            t = self._qual.run()
        except SimulatorError as e:
            self._fail(120, str(e))
        self.cur_time = t
        return t

    def ENnextQ(self):
        """Advances water quality simulation to next hydraulic event

        Returns
        --------
        int
            Time (seconds) until next hydraulic event (0 marks end of simulation period)
        """
        self.errcode = 0
        if self._qual is None or not self._qual.is_initialized:
            self._fail(105)
        return self._qual.next()

    def ENstepQ(self):
        """Advances water quality simulation one water quality time step

        Returns
        --------
        int
            Time (seconds) remaining in the simulation (0 marks the end)
        """
        self.errcode = 0
        if self._qual is None or not self._qual.is_initialized:
            self._fail(105)
        try:
            tleft = self._qual.step()
        except SimulatorError as e:
            self._fail(120, str(e))
        self.cur_time = self._qual.time
        return tleft

    def ENcloseQ(self):
        """Frees data allocated by water quality solver"""
        self.errcode = 0
        if self._qual is not None:
            self._qual.close()
        return

    def ENgetqualityresults(self):
        """Quality results saved by the last run with the save flag set

        Returns
        -------
        SimulationResults
        """
        if self._qual is None:
            self._fail(104)
        return self._qual.results()

    ### #
    ### Network queries
    def ENgetcount(self, iCode):
        """Retrieves the number of components of a given type in the network

        Parameters
        -------------
        iCode : int
            Component code (see :class:`~hydronet.epanet.util.EN`)

        Returns
        ---------
        int
            Number of components in network

        """
        self.errcode = 0
        wn = self._wn
        code = int(iCode)
        if code == EN.NODECOUNT:
            return wn.num_nodes
        elif code == EN.TANKCOUNT:
            return wn.num_tanks + wn.num_reservoirs
        elif code == EN.LINKCOUNT:
            return wn.num_links
        elif code == EN.PATCOUNT:
            return wn.num_patterns
        elif code == EN.CURVECOUNT:
            return wn.num_curves
        elif code == EN.CONTROLCOUNT:
            return len(self._simple_controls())
        elif code == EN.RULECOUNT:
            return wn.num_controls - len(self._simple_controls())
        self._fail(251, iCode)

    def ENgetnodeid(self, iIndex):
        """Gets the ID name of a node given its index.

        Parameters
        ----------
        iIndex : int
            a node index (starts at 1).

        Returns
        -------
        str
            the node name
        """
        self.errcode = 0
        return self._get_node(iIndex).name

    def ENgetnodeindex(self, sId):
        """Retrieves index of a node with specific ID

        Parameters
        -------------
        sId : str
            Node ID

        Returns
        ---------
        int
            Index of node in list of nodes
        """
        self.errcode = 0
        try:
            return self._wn.index.node_index(sId) + 1
        except KeyError:
            self._fail(203, sId)

    def ENgetlinkid(self, iIndex):
        """Gets the ID name of a link given its index.

        Parameters
        ----------
        iIndex : int
            a link index (starts at 1).

        Returns
        -------
        str
            the link name
        """
        self.errcode = 0
        return self._get_link(iIndex).name

    def ENgetlinkindex(self, sId):
        """Retrieves index of a link with specific ID

        Parameters
        -------------
        sId : str
            Link ID

        Returns
        ---------
        int
            Index of link in list of links
        """
        self.errcode = 0
        try:
            return self._wn.index.link_index(sId) + 1
        except KeyError:
            self._fail(204, sId)

    def ENgetnodevalue(self, iIndex, iCode):
        """
        Retrieves parameter value for a node

        Computed values (demand, head, pressure, quality) are those of the
        last hydraulic or quality step; they are 0 before any analysis.

        Parameters
        -------------
        iIndex: int
            Node index
        iCode : int
            Node parameter code (see :class:`~hydronet.epanet.util.EN`)

        Returns
        --------
        float
            Value of node's parameter

        """
        self.errcode = 0
        node = self._get_node(iIndex)
        code = int(iCode)
        tank = node if isinstance(node, Tank) else None
        if code == EN.ELEVATION:
            return node.elevation
        elif code == EN.BASEDEMAND:
            return node.base_demand if isinstance(node, Junction) else 0.0
        elif code == EN.PATTERN:
            if isinstance(node, Junction):
                return self._pattern_index(node.demand_pattern)
            elif isinstance(node, Reservoir):
                return self._pattern_index(node.head_pattern_name)
            return 0
        elif code == EN.EMITTER:
            if isinstance(node, Junction) and node.emitter_coefficient is not None:
                return node.emitter_coefficient
            return 0.0
        elif code == EN.INITQUAL:
            return node.initial_quality
        elif code in (EN.SOURCEQUAL, EN.SOURCEPAT, EN.SOURCETYPE):
            source = None
            for name, src in self._wn.sources():
                if src.node_name == node.name:
                    source = src
            if source is None:
                if code == EN.SOURCEQUAL:
                    return 0.0
                self._fail(240, node.name)
            if code == EN.SOURCEQUAL:
                return source.strength_timeseries.base_value
            elif code == EN.SOURCEPAT:
                return self._pattern_index(source.strength_timeseries.pattern_name)
            return int(source.source_type.value)
        elif code == EN.TANKLEVEL:
            return tank.init_level if tank else 0.0
        elif code == EN.DEMAND:
            return node.demand or 0.0
        elif code == EN.HEAD:
            return node.head or 0.0
        elif code == EN.PRESSURE:
            if isinstance(node, Reservoir):
                return 0.0
            return node.pressure or 0.0
        elif code == EN.QUALITY:
            return node.quality or 0.0
        elif code == EN.INITVOLUME:
            return tank.get_volume(tank.init_level) if tank else 0.0
        elif code == EN.MIXMODEL:
            return int(tank.mixing_model.value) if tank else 0
        elif code == EN.MIXZONEVOL:
            return tank.mixing_fraction * tank.max_volume if tank else 0.0
        elif code == EN.TANKDIAM:
            return tank.diameter if tank else 0.0
        elif code == EN.MINVOLUME:
            return tank.min_volume if tank else 0.0
        elif code == EN.VOLCURVE:
            return self._curve_index(tank.vol_curve_name) if tank else 0
        elif code == EN.MINLEVEL:
            return tank.min_level if tank else 0.0
        elif code == EN.MAXLEVEL:
            return tank.max_level if tank else 0.0
        elif code == EN.MIXFRACTION:
            return tank.mixing_fraction if tank else 0.0
        elif code == EN.TANK_KBULK:
            if tank is None:
                return 0.0
            if tank.bulk_coeff is None:
                return self._wn.options.reaction.bulk_coeff
            return tank.bulk_coeff
        elif code == EN.TANKVOLUME:
            if tank is None:
                return 0.0
            if tank.head is None:
                return tank.get_volume(tank.init_level)
            return tank.volume
        elif code == EN.MAXVOLUME:
            return tank.max_volume if tank else 0.0
        self._fail(251, iCode)

    def ENgetlinkvalue(self, iIndex, iCode):
        """
        Retrieves parameter value for a link

        Parameters
        -------------
        iIndex : int
            Link index
        iCode : int
            Link parameter code (see :class:`~hydronet.epanet.util.EN`)

        Returns
        --------
        float
            Value of link's parameter

        """
        self.errcode = 0
        link = self._get_link(iIndex)
        code = int(iCode)
        pipe = link if isinstance(link, Pipe) else None
        pump = link if isinstance(link, Pump) else None
        if code == EN.DIAMETER:
            return 0.0 if pump else link.diameter
        elif code == EN.LENGTH:
            return pipe.length if pipe else 0.0
        elif code == EN.ROUGHNESS:
            return pipe.roughness if pipe else 0.0
        elif code == EN.MINORLOSS:
            return 0.0 if pump else link.minor_loss
        elif code == EN.INITSTATUS:
            return 0 if link.initial_status == LinkStatus.Closed else 1
        elif code == EN.INITSETTING:
            if pipe:
                return pipe.roughness
            return link.initial_setting or 0.0
        elif code == EN.KBULK:
            if pipe is None:
                return 0.0
            return self._wn.options.reaction.bulk_coeff if pipe.bulk_coeff is None else pipe.bulk_coeff
        elif code == EN.KWALL:
            if pipe is None:
                return 0.0
            return self._wn.options.reaction.wall_coeff if pipe.wall_coeff is None else pipe.wall_coeff
        elif code == EN.FLOW:
            return link.flow or 0.0
        elif code == EN.VELOCITY:
            return link.velocity or 0.0
        elif code == EN.HEADLOSS:
            return link.headloss or 0.0
        elif code == EN.STATUS:
            return 0 if link.status == LinkStatus.Closed else 1
        elif code == EN.SETTING:
            if pipe:
                return pipe.roughness
            return link.setting or 0.0
        elif code == EN.ENERGY:
            if pump is None or pump.power_used is None:
                return 0.0
            return pump.power_used / 1000.0
        elif code == EN.LINKQUAL:
            return link.quality or 0.0
        elif code == EN.STATE:
            if link._internal_status is not None:
                return int(link._internal_status.value)
            if link.status == LinkStatus.Closed:
                return 2
            return 4 if link.status == LinkStatus.Active else 3
        elif code in (EN.LINKPATTERN, EN.EFFICIENCY, EN.HEADCURVE, EN.EFFICIENCYCURVE, EN.PRICEPATTERN,
                      EN.CONST_POWER, EN.PUMP_SPEED):
            if pump is None:
                self._fail(211, link.name)
            if code == EN.LINKPATTERN:
                return self._pattern_index(pump.speed_pattern_name)
            elif code == EN.EFFICIENCY:
                if pump.flow is None:
                    return 0.0
                return pump.get_efficiency(pump.flow) * 100.0
            elif code == EN.HEADCURVE:
                return self._curve_index(pump.pump_curve_name) if isinstance(pump, HeadPump) else 0
            elif code == EN.EFFICIENCYCURVE:
                return self._curve_index(pump.efficiency_curve_name)
            elif code == EN.PRICEPATTERN:
                return self._pattern_index(pump.energy_pattern)
            elif code == EN.CONST_POWER:
                return pump.power / 1000.0 if isinstance(pump, PowerPump) else 0.0
            return pump.base_speed
        self._fail(251, iCode)

    def _pattern_name(self, value):
        idx = int(value)
        if idx == 0:
            return None
        names = self._wn.pattern_name_list
        if not 1 <= idx <= len(names):
            self._fail(205, value)
        return names[idx - 1]

    def ENsetnodevalue(self, iIndex, iCode, dValue):
        """
        Sets a parameter value for a node

        Demands, patterns, initial quality and the mixing parameters can be
        changed at any time. Elevations, emitters and tank dimensions are
        read when a hydraulic analysis is opened and cannot change while a
        solver is open (error 262).

        Parameters
        -------------
        iIndex: int
            Node index
        iCode : int
            Node parameter code (see :class:`~hydronet.epanet.util.EN`)
        dValue : float
            The new value
        """
        self.errcode = 0
        node = self._get_node(iIndex)
        code = int(iCode)
        value = float(dValue)
        junction = node if isinstance(node, Junction) else None
        tank = node if isinstance(node, Tank) else None
        if code in (EN.ELEVATION, EN.EMITTER, EN.TANKLEVEL, EN.TANKDIAM, EN.MINLEVEL, EN.MAXLEVEL):
            self._check_structure()
        if code in (EN.BASEDEMAND, EN.EMITTER) and junction is None:
            self._fail(209, node.name)
        if code in (EN.TANKDIAM, EN.MINLEVEL, EN.MAXLEVEL, EN.MIXMODEL, EN.MIXFRACTION, EN.TANK_KBULK) \
                and tank is None:
            self._fail(209, node.name)

        if code == EN.ELEVATION:
            if isinstance(node, Reservoir):
                node.base_head = value
            else:
                node.elevation = value
        elif code == EN.BASEDEMAND:
            demands = junction.demand_timeseries_list
            if len(demands) > 0:
                demands[0].base_value = value
            else:
                junction.add_demand(value, None)
        elif code == EN.PATTERN:
            pattern = self._pattern_name(value)
            if junction is not None and len(junction.demand_timeseries_list) > 0:
                junction.demand_timeseries_list[0].pattern_name = pattern
            elif junction is not None:
                junction.add_demand(0.0, pattern)
            elif isinstance(node, Reservoir):
                node.head_pattern_name = pattern
            else:
                self._fail(209, node.name)
        elif code == EN.EMITTER:
            if value < 0:
                self._fail(209, value)
            junction.emitter_coefficient = value if value > 0 else None
        elif code == EN.INITQUAL:
            if value < 0:
                self._fail(209, value)
            node.initial_quality = value
        elif code == EN.TANKLEVEL:
            if isinstance(node, Reservoir):
                node.base_head = value
            elif tank is None or not tank.min_level <= value <= tank.max_level:
                self._fail(209, value)
            else:
                tank.init_level = value
        elif code == EN.TANKDIAM:
            if value <= 0:
                self._fail(209, value)
            tank.diameter = value
        elif code == EN.MINLEVEL:
            if value < 0 or value > tank.init_level:
                self._fail(209, value)
            tank.min_level = value
        elif code == EN.MAXLEVEL:
            if value < tank.init_level:
                self._fail(209, value)
            tank.max_level = value
        elif code == EN.MIXMODEL:
            if int(value) not in (0, 1, 2, 3):
                self._fail(209, value)
            tank.mixing_model = int(value)
        elif code == EN.MIXFRACTION:
            if not 0.0 <= value <= 1.0:
                self._fail(209, value)
            tank.mixing_fraction = value
        elif code == EN.TANK_KBULK:
            tank.bulk_coeff = value
        else:
            self._fail(251, iCode)
        return

    def ENsetlinkvalue(self, iIndex, iCode, dValue):
        """
        Sets a parameter value for a link

        ``EN.STATUS`` and ``EN.SETTING`` act like a control action: they
        take effect at the next hydraulic step, also while a solver is
        open. A status of 0 closes the link and 1 opens it; a pump setting
        is its relative speed and a valve setting makes the valve active.
        The physical parameters (diameter, length, roughness, minor loss,
        and the setting of a pipe, which is its roughness) cannot change
        while a solver is open (error 262).

        Parameters
        -------------
        iIndex : int
            Link index
        iCode : int
            Link parameter code (see :class:`~hydronet.epanet.util.EN`)
        dValue : float
            The new value
        """
        self.errcode = 0
        link = self._get_link(iIndex)
        code = int(iCode)
        value = float(dValue)
        pipe = link if isinstance(link, Pipe) else None
        pump = link if isinstance(link, Pump) else None
        if pipe is not None and code in (EN.INITSETTING, EN.SETTING):
            code = EN.ROUGHNESS
        if code in (EN.DIAMETER, EN.LENGTH, EN.ROUGHNESS, EN.MINORLOSS):
            self._check_structure()
            if pump is not None or (pipe is None and code in (EN.LENGTH, EN.ROUGHNESS)):
                self._fail(211, link.name)
            if value < 0 or (value == 0 and code != EN.MINORLOSS):
                self._fail(211, value)

        if code == EN.DIAMETER:
            link.diameter = value
        elif code == EN.LENGTH:
            pipe.length = value
        elif code == EN.ROUGHNESS:
            pipe.roughness = value
        elif code == EN.MINORLOSS:
            link.minor_loss = value
        elif code in (EN.INITSTATUS, EN.STATUS):
            if pipe is not None and pipe.check_valve:
                self._fail(207)
            if value not in (0.0, 1.0):
                self._fail(211, value)
            status = LinkStatus.Closed if value == 0.0 else LinkStatus.Opened
            if code == EN.INITSTATUS:
                link.initial_status = status
            else:
                ControlAction(link, 'status', status).run_control_action()
        elif code in (EN.INITSETTING, EN.SETTING):
            if isinstance(link, GPValve) or value < 0:
                self._fail(211, value)
            if code == EN.SETTING:
                ControlAction(link, 'setting', value).run_control_action()
            elif pump is not None:
                pump.base_speed = value
            else:
                link.initial_setting = value
        elif code in (EN.KBULK, EN.KWALL):
            if pipe is None:
                self._fail(211, link.name)
            if code == EN.KBULK:
                pipe.bulk_coeff = value
            else:
                pipe.wall_coeff = value
        elif code in (EN.LINKPATTERN, EN.PRICEPATTERN):
            if pump is None:
                self._fail(211, link.name)
            if code == EN.LINKPATTERN:
                pump.speed_pattern_name = self._pattern_name(value)
            else:
                pump.energy_pattern = self._pattern_name(value)
        else:
            self._fail(251, iCode)
        return

    def ENgetqualtype(self):
        """Get the type of water quality analysis

        Returns
        -------
        dict
            ``qualcode`` (EN.NONE, EN.CHEM, EN.AGE or EN.TRACE) and
            ``tracenode`` (the trace node index, or 0)
        """
        self.errcode = 0
        qopts = self._wn.options.quality
        tracenode = 0
        if qopts.parameter == 'TRACE' and qopts.trace_node is not None:
            tracenode = self._wn.index.node_index(qopts.trace_node) + 1
        return dict(qualcode=int(_QUALITY_CODES[qopts.parameter]), tracenode=tracenode)

    def ENgetqualinfo(self):
        """Get the type of water quality analysis and the name of what is analyzed

        Returns
        -------
        dict
            ``qualcode``, ``chemname``, ``chemunits`` and ``tracenode``; a
            trace has no name and is dimensionless, water age is in seconds
        """
        info = self.ENgetqualtype()
        parameter = self._wn.options.quality.parameter
        if parameter == 'TRACE':
            info.update(chemname='', chemunits='dimensionless')
        elif parameter == 'AGE':
            info.update(chemname='AGE', chemunits='seconds')
        elif parameter == 'CHEMICAL':
            info.update(chemname=self._wn.options.quality.chemical_name, chemunits='mg/L')
        else:
            info.update(chemname='', chemunits='')
        return info

    def ENgetstatistic(self, iCode):
        """Retrieves a statistic of the most recent analysis

        Parameters
        ----------
        iCode : int
            EN.ITERATIONS, EN.RELATIVEERROR, EN.MAXHEADERROR,
            EN.MAXFLOWCHANGE or EN.MASSBALANCE

        Returns
        -------
        float
            the statistic; the mass balance ratio is 1.0 before a quality run
        """
        self.errcode = 0
        code = int(iCode)
        if code == EN.MASSBALANCE:
            if self._qual is None:
                return 1.0
            return self._qual.mass_balance['ratio']
        if code in self._stats:
            return self._stats[code]
        self._fail(251, iCode)

    ### #
    ### Simple controls
    def ENaddcontrol(self, iType: int, iLinkIndex: int, dSetting: float, iNodeIndex: int, dLevel: float) -> int:
        """Add a new simple control

        Parameters
        ----------
        iType : int
            the type of control
        iLinkIndex : int
            the index of the link
        dSetting : float
            the new link setting value; for pipes and GPVs 0 closes the link
            and 1 opens it, for pumps 0 closes the pump and other values
            set its speed
        iNodeIndex : int
            Set to 0 for time of day or timer
        dLevel : float
            the level (tank) or pressure (junction) to compare against, or
            the time (s) for timer and time of day controls

        Returns
        -------
        int
            the new control number
        """
        self.errcode = 0
        wn = self._wn
        self._ctrl_count += 1
        name = 'control{}'.format(self._ctrl_count)
        while name in wn.control_name_list:
            self._ctrl_count += 1
            name = 'control{}'.format(self._ctrl_count)
        control = self._new_control(iType, iLinkIndex, dSetting, iNodeIndex, dLevel, name)
        wn.add_control(name, control)
        logger.debug('added control %s: %s', name, control)
        return len(self._simple_controls())

    def _new_control(self, iType, iLinkIndex, dSetting, iNodeIndex, dLevel, name):
        wn = self._wn
        link = self._get_link(iLinkIndex)
        if isinstance(link, Pipe) and link.check_valve:
            self._fail(207)
        ctype = int(iType)
        if ctype not in (EN.LOWLEVEL, EN.HILEVEL, EN.TIMER, EN.TIMEOFDAY):
            self._fail(251, iType)
        node = None
        if ctype in (EN.LOWLEVEL, EN.HILEVEL):
            node = self._get_node(iNodeIndex)
        if dSetting < 0.0:
            self._fail(202, dSetting)
        if dLevel < 0.0:
            self._fail(202, dLevel)
        if isinstance(link, GPValve) and dSetting not in (0.0, 1.0):
            self._fail(202, dSetting)

        if isinstance(link, (Pipe, GPValve)):
            status = LinkStatus.Closed if dSetting == 0.0 else LinkStatus.Opened
            action = ControlAction(link, 'status', status)
        else:
            action = ControlAction(link, 'setting', dSetting)

        if ctype == EN.TIMER:
            return Control._time_control(wn, int(dLevel), 'SIM_TIME', False, action, name)
        elif ctype == EN.TIMEOFDAY:
            return Control._time_control(wn, int(dLevel) % _SECONDS_PER_DAY, 'CLOCK_TIME', True, action, name)
        attr = 'level' if isinstance(node, Tank) else 'pressure'
        relation = '<=' if ctype == EN.LOWLEVEL else '>='
        return Control._conditional_control(node, attr, relation, dLevel, action, name)

    def _get_control(self, iIndex):
        controls = self._simple_controls()
        if not 1 <= int(iIndex) <= len(controls):
            self._fail(241, iIndex)
        return controls[int(iIndex) - 1]

    def ENgetcontrol(self, iIndex: int):
        """Get values defined by a control.

        Parameters
        ----------
        iIndex : int
            the control number

        Returns
        -------
        dict
            ``index``, ``type``, ``linkindex``, ``setting``, ``nodeindex``
            and ``level``
        """
        self.errcode = 0
        name, control = self._get_control(iIndex)
        index = self._wn.index
        action = control.action
        link, attr = action.target()
        if attr == 'status':
            setting = 0.0 if action.value == LinkStatus.Closed else 1.0
        else:
            setting = action.value
        condition = control.condition
        if isinstance(condition, TankLevelCondition):
            nodeindex = index.node_index(condition._source_obj.name) + 1
            level = condition.threshold_level
        elif isinstance(condition, ValueCondition):
            nodeindex = index.node_index(condition._source_obj.name) + 1
            level = condition._threshold
        elif isinstance(condition, (SimTimeCondition, TimeOfDayCondition)):
            nodeindex = 0
            level = condition.threshold
        return dict(
            index=int(iIndex),
            type=int(control.epanet_control_type.value),
            linkindex=index.link_index(link.name) + 1,
            setting=setting,
            nodeindex=nodeindex,
            level=level,
        )

    def ENdeletecontrol(self, iControlIndex):
        """Delete a control.

        Parameters
        ----------
        iControlIndex : int
            the simple control to delete
        """
        self.errcode = 0
        name, control = self._get_control(iControlIndex)
        self._wn.remove_control(name)
        return

    def ENsetcontrol(self, iIndex: int, iType: int, iLinkIndex: int, dSetting: float, iNodeIndex: int,
                     dLevel: float):
        """Replace the contents of a simple control; its number does not change.

        The arguments after ``iIndex`` are those of :meth:`ENaddcontrol`
        and are validated the same way.
        """
        self.errcode = 0
        name, old = self._get_control(iIndex)
        control = self._new_control(iType, iLinkIndex, dSetting, iNodeIndex, dLevel, name)
        self._wn.replace_control(name, control)
        logger.debug('replaced control %s: %s', name, control)
        return

    ### #
    ### Rule-based controls
    def _rules(self):
        return [(name, control) for name, control in self._wn.controls() if control.control_type == 'rule']

    def _get_rule(self, iIndex):
        rules = self._rules()
        if not 1 <= int(iIndex) <= len(rules):
            self._fail(257, iIndex)
        return rules[int(iIndex) - 1]

    @staticmethod
    def _premises(rule):
        condition = rule.condition
        if isinstance(condition, RulePremises):
            return list(condition)
        return [('IF', condition)]

    def ENaddrule(self, sRule: str) -> int:
        """Add a rule written in the format of the [RULES] section of an input file

        Parameters
        ----------
        sRule : str
            the rule text, for example::

                RULE 1
                IF TANK T1 LEVEL BELOW 2
                THEN PUMP PU1 STATUS IS OPEN
                ELSE PUMP PU1 STATUS IS CLOSED
                PRIORITY 2

        Returns
        -------
        int
            the new rule number
        """
        self.errcode = 0
        wn = self._wn
        try:
            texts = read_rules(sRule)
            rule = texts[0].generate_control(wn) if len(texts) == 1 else None
        except EpanetException as e:
            self._fail(e.code)
        except ValueError as e:
            self._fail(250, str(e))
        if rule is None:
            self._fail(250)
        if rule.name in wn.control_name_list:
            self._fail(215, rule.name)
        wn.add_control(rule.name, rule)
        logger.debug('added rule %s: %s', rule.name, rule)
        return len(self._rules())

    def ENdeleterule(self, iIndex: int):
        """Delete a rule

        Parameters
        ----------
        iIndex : int
            the rule number
        """
        self.errcode = 0
        name, rule = self._get_rule(iIndex)
        self._wn.remove_control(name)
        return

    def ENgetrule(self, iIndex: int):
        """Get the size and priority of a rule

        Returns
        -------
        dict
            ``npremises``, ``nthenactions``, ``nelseactions`` and ``priority``
        """
        self.errcode = 0
        name, rule = self._get_rule(iIndex)
        return dict(
            npremises=len(self._premises(rule)),
            nthenactions=len(rule.then_actions),
            nelseactions=len(rule.else_actions),
            priority=float(rule.priority),
        )

    def ENgetruleID(self, iIndex: int) -> str:
        """Get the ID name of a rule"""
        self.errcode = 0
        name, rule = self._get_rule(iIndex)
        return name

    def ENsetrulepriority(self, iIndex: int, dPriority: float):
        """Set the priority of a rule"""
        self.errcode = 0
        name, rule = self._get_rule(iIndex)
        rule._priority = float(dPriority)
        return

    def ENgetpremise(self, iRuleIndex: int, iPremiseIndex: int):
        """Get the parts of a rule premise

        Parameters
        ----------
        iRuleIndex : int
            the rule number
        iPremiseIndex : int
            the premise number within the rule (starts at 1)

        Returns
        -------
        dict
            ``logop`` (EN.R_IF, EN.R_AND or EN.R_OR), ``object``
            (EN.R_NODE, EN.R_LINK or EN.R_SYSTEM), ``objindex``,
            ``variable``, ``relop``, ``status`` and ``value``. Status
            premises give the status code and a value of 0.
        """
        self.errcode = 0
        name, rule = self._get_rule(iRuleIndex)
        premises = self._premises(rule)
        if not 1 <= int(iPremiseIndex) <= len(premises):
            self._fail(258, iPremiseIndex)
        connective, condition = premises[int(iPremiseIndex) - 1]
        index = self._wn.index
        objindex = 0
        value = getattr(condition, '_threshold', 0.0)
        if isinstance(condition, SystemDemandCondition):
            obj, variable = EN.R_SYSTEM, EN.R_DEMAND
        elif isinstance(condition, SimTimeCondition):
            obj, variable = EN.R_SYSTEM, EN.R_TIME
        elif isinstance(condition, TimeOfDayCondition):
            obj, variable = EN.R_SYSTEM, EN.R_CLOCKTIME
        elif isinstance(condition, ValueCondition) and condition._source_attr in _PREMISE_VARIABLES:
            source = condition._source_obj
            if isinstance(source, Node):
                obj, objindex = EN.R_NODE, index.node_index(source.name) + 1
            else:
                obj, objindex = EN.R_LINK, index.link_index(source.name) + 1
            variable = _PREMISE_VARIABLES[condition._source_attr]
            if variable in (EN.R_FILLTIME, EN.R_DRAINTIME):
                value = value / 3600.0
            elif variable == EN.R_POWER:
                value = value / 1000.0
        else:
            self._fail(258, iPremiseIndex)
        relop = _PREMISE_RELATIONS[condition._relation]
        status = 0
        if variable == EN.R_STATUS:
            relop = EN.R_IS if condition._relation == Comparison.eq else EN.R_NOT
            status = _RULE_STATUS[LinkStatus(int(value))]
            value = 0.0
        return dict(logop=int(_PREMISE_CONNECTIVES[connective]), object=int(obj), objindex=objindex,
                    variable=int(variable), relop=int(relop), status=int(status), value=float(value))

    def _rule_action(self, actions, iActionIndex):
        if not 1 <= int(iActionIndex) <= len(actions):
            self._fail(258, iActionIndex)
        action = actions[int(iActionIndex) - 1]
        link, attr = action.target()
        if attr == 'status':
            status, setting = _RULE_STATUS[action.value], 0.0
        else:
            status, setting = 0, action.value
        return dict(linkindex=self._wn.index.link_index(link.name) + 1, status=int(status), setting=float(setting))

    def ENgetthenaction(self, iRuleIndex: int, iActionIndex: int):
        """Get a THEN action of a rule

        Returns
        -------
        dict
            ``linkindex``, ``status`` (an EN.R_IS_* code, or 0 for a
            setting action) and ``setting``
        """
        self.errcode = 0
        name, rule = self._get_rule(iRuleIndex)
        return self._rule_action(rule.then_actions, iActionIndex)

    def ENgetelseaction(self, iRuleIndex: int, iActionIndex: int):
        """Get an ELSE action of a rule; see :meth:`ENgetthenaction`"""
        self.errcode = 0
        name, rule = self._get_rule(iRuleIndex)
        return self._rule_action(rule.else_actions, iActionIndex)

    ### #
    ### Structure edits
    def ENdeletenode(self, iIndex, iActionCode=EN.UNCONDITIONAL):
        """Delete a node and the links attached to it.

        Parameters
        ----------
        iIndex : int
            the node index
        iActionCode : int
            EN.UNCONDITIONAL also deletes the controls that use the node or
            its links; EN.CONDITIONAL refuses (error 261) if there are any
        """
        self.errcode = 0
        wn = self._wn
        self._check_structure()
        node = self._get_node(iIndex)
        if wn.options.quality.trace_node == node.name:
            self._fail(260, node.name)
        action = int(iActionCode)
        if action not in (EN.UNCONDITIONAL, EN.CONDITIONAL):
            self._fail(251, iActionCode)
        attached = [wn.get_link(name) for name in wn.get_links_for_node(node.name)]
        if action == EN.CONDITIONAL:
            for obj in [node] + attached:
                if wn._controls_using(obj):
                    self._fail(261, obj.name)
        try:
            wn.remove_node(node.name, with_control=True, with_links=True)
        except NetworkModelError:
            self._fail(262)
        self._records = None
        self._hydfile = None
        return

    def ENdeletelink(self, iIndex, iActionCode=EN.UNCONDITIONAL):
        """Delete a link.

        Parameters
        ----------
        iIndex : int
            the link index
        iActionCode : int
            EN.UNCONDITIONAL also deletes the controls that use the link;
            EN.CONDITIONAL refuses (error 261) if there are any
        """
        self.errcode = 0
        wn = self._wn
        self._check_structure()
        link = self._get_link(iIndex)
        action = int(iActionCode)
        if action not in (EN.UNCONDITIONAL, EN.CONDITIONAL):
            self._fail(251, iActionCode)
        if action == EN.CONDITIONAL and wn._controls_using(link):
            self._fail(261, link.name)
        try:
            wn.remove_link(link.name, with_control=True)
        except NetworkModelError:
            self._fail(262)
        self._records = None
        self._hydfile = None
        return

    def _check_new_id(self, sId, names):
        if not isinstance(sId, str) or len(sId) == 0 or len(sId) >= 32 or ' ' in sId:
            self._fail(252, sId)
        if sId in names:
            self._fail(215, sId)

    def ENaddnode(self, sId, iNodeType):
        """Add a node with default properties

        Parameters
        ----------
        sId : str
            the node ID
        iNodeType : int
            EN.JUNCTION, EN.RESERVOIR or EN.TANK

        Returns
        -------
        int
            the index of the new node; adding a junction renumbers the
            tanks and reservoirs
        """
        self.errcode = 0
        wn = self._wn
        self._check_structure()
        self._check_new_id(sId, wn.node_name_list)
        ntype = int(iNodeType)
        if ntype == EN.JUNCTION:
            wn.add_junction(sId)
        elif ntype == EN.RESERVOIR:
            wn.add_reservoir(sId)
        elif ntype == EN.TANK:
            wn.add_tank(sId)
        else:
            self._fail(251, iNodeType)
        self._records = None
        self._hydfile = None
        return wn.index.node_index(sId) + 1

    def ENaddlink(self, sId, iLinkType, sFromNode, sToNode):
        """Add a link with default properties

        Parameters
        ----------
        sId : str
            the link ID
        iLinkType : int
            EN.CVPIPE, EN.PIPE, EN.PUMP or a valve type other than EN.GPV
            (a general purpose valve needs a head loss curve; use
            ``WaterNetworkModel.add_valve``)
        sFromNode, sToNode : str
            the IDs of the start and end nodes

        Returns
        -------
        int
            the index of the new link
        """
        self.errcode = 0
        wn = self._wn
        self._check_structure()
        self._check_new_id(sId, wn.link_name_list)
        for node_name in (sFromNode, sToNode):
            if node_name not in wn.node_name_list:
                self._fail(203, node_name)
        ltype = int(iLinkType)
        valve_types = {EN.PRV: 'PRV', EN.PSV: 'PSV', EN.PBV: 'PBV', EN.FCV: 'FCV', EN.TCV: 'TCV'}
        try:
            if ltype in (EN.CVPIPE, EN.PIPE):
                wn.add_pipe(sId, sFromNode, sToNode, check_valve=ltype == EN.CVPIPE)
            elif ltype == EN.PUMP:
                wn.add_pump(sId, sFromNode, sToNode)
            elif ltype in valve_types:
                wn.add_valve(sId, sFromNode, sToNode, valve_type=valve_types[ltype], initial_status='OPEN')
            else:
                self._fail(251, iLinkType)
        except EpanetException as e:
            self._fail(e.code, sId)
        self._records = None
        self._hydfile = None
        return wn.index.link_index(sId) + 1
