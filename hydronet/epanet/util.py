"""
The hydronet.epanet.util module contains the EPANET enumerations used by the
simulators and the toolkit layer.
"""
import enum
import logging

logger = logging.getLogger(__name__)

__all__ = [
    "InitHydOption",
    "StatisticsType",
    "QualType",
    "SourceType",
    "FormulaType",
    "ControlType",
    "LinkTankStatus",
    "MixType",
    "EN",
]


class InitHydOption(enum.Enum):
    """
    Hydraulic initialization options, used when a hydraulic analysis is
    initialized with ``ENinitH``.
    """
    # !< Don't save hydraulics; don't re-initialize flows
    EN_NOSAVE = 0
    # !< Save hydraulics to file, don't re-initialize flows
    EN_SAVE = 1
    # !< Don't save hydraulics; re-initialize flows
    EN_INITFLOW = 10
    # !< Save hydraulics; re-initialize flows
    EN_SAVE_AND_INIT = 11

    @property
    def save(self):
        return self.value % 10 == 1

    @property
    def init_flow(self):
        return self.value >= 10


class _AliasedEnum(enum.Enum):
    """Enum whose members may also be looked up by upper or lower case name."""

    def __init__(self, *args):
        mmap = getattr(self, "_member_map_")
        if self.name != str(self.name).upper():
            mmap[str(self.name).upper()] = self
        if self.name != str(self.name).lower():
            mmap[str(self.name).lower()] = self

    def __str__(self):
        return self.name


class StatisticsType(_AliasedEnum):
    """Time series statistics processing for reports.

    .. rubric:: Enum Members

    ================  =========================================================================
    :attr:`~none`     Do no processing, provide instantaneous values on output at time `t`.
    :attr:`~Average`  Average the value across the report period ending at time `t`.
    :attr:`~Minimum`  Provide the minimum value across all complete reporting periods.
    :attr:`~Maximum`  Provide the maximum value across all complete reporting periods.
    :attr:`~Range`    Provide the range (max - min) across all complete reporting periods.
    ================  =========================================================================

    """

    none = 0
    Average = 1
    Minimum = 2
    Maximum = 3
    Range = 4


class QualType(_AliasedEnum):
    """The water quality simulation mode.

    .. rubric:: Enum Members

    ================  =========================================================================
    :attr:`~none`     Do not perform water quality simulation.
    :attr:`~Chem`     Do chemical transport simulation.
    :attr:`~Age`      Do water age simulation (seconds).
    :attr:`~Trace`    Do a tracer test (percent of water coming from the trace node).
    ================  =========================================================================

    """

    none = 0
    Chem = 1
    Age = 2
    Trace = 3
    Chemical = 1


class SourceType(_AliasedEnum):
    """The kind of water quality source.

    .. rubric:: Enum Members

    ==================  =========================================================================
    :attr:`~Concen`     Concentration of the external inflow to the node.
    :attr:`~Mass`       Mass injection rate (mass per second).
    :attr:`~Setpoint`   Force the quality of the node outflow to a concentration.
    :attr:`~FlowPaced`  Add a concentration to the node outflow.
    ==================  =========================================================================

    """

    Concen = 0
    Mass = 1
    Setpoint = 2
    FlowPaced = 3


class FormulaType(enum.Enum):
    """Formula used for determining head loss due to roughness.

    .. rubric:: Enum Members

    ===============  ==================================================================
    :attr:`~HW`      Hazen-Williams headloss formula
    :attr:`~DW`      Darcy-Weisbach formula; roughness is in meters
    :attr:`~CM`      Chezy-Manning formula
    ===============  ==================================================================

    """

    HW = (0, "H-W")
    DW = (1, "D-W")
    CM = (2, "C-M")

    def __init__(self, eid, inpcode):
        v2mm = getattr(self, "_value2member_map_")
        mmap = getattr(self, "_member_map_")
        v2mm[eid] = self
        mmap[inpcode] = self
        if self.name != str(self.name).upper():
            mmap[str(self.name).upper()] = self
        if self.name != str(self.name).lower():
            mmap[str(self.name).lower()] = self

    def __int__(self):
        return self.value[0]

    def __str__(self):
        return self.value[1]


class ControlType(_AliasedEnum):
    """The type of simple control.

    .. rubric:: Enum Members

    ==================  ==================================================================
    :attr:`~LowLevel`   Act when grade below set level
    :attr:`~HiLevel`    Act when grade above set level
    :attr:`~Timer`      Act when set time reached (from start of simulation)
    :attr:`~TimeOfDay`  Act when time of day occurs (each day)
    ==================  ==================================================================

    """

    LowLevel = 0
    HiLevel = 1
    Timer = 2
    TimeOfDay = 3


class LinkTankStatus(_AliasedEnum):
    """The internal link and tank status used by the hydraulic solver.

    .. rubric:: Enum Members

    ====================  ==================================================================
    :attr:`~XHead`        Pump cannot deliver head (closed)
    :attr:`~TempClosed`   Temporarily closed
    :attr:`~Closed`       Closed
    :attr:`~Open`         Open
    :attr:`~Active`       Valve active (partially open)
    :attr:`~XFlow`        Pump exceeds maximum flow
    :attr:`~XFCV`         FCV cannot supply flow
    :attr:`~XPressure`    Valve cannot supply pressure
    :attr:`~Filling`      Tank filling
    :attr:`~Emptying`     Tank emptying
    ====================  ==================================================================

    """

    XHead = 0
    TempClosed = 1
    Closed = 2
    Open = 3
    Active = 4
    XFlow = 5
    XFCV = 6
    XPressure = 7
    Filling = 8
    Emptying = 9

    @property
    def is_closed(self):
        """True for statuses that carry no flow."""
        return self.value <= 2


class MixType(_AliasedEnum):
    """Tank mixing model type.

    .. rubric:: Enum Members

    ===============  ==================================================================
    :attr:`~Mix1`    Single compartment (complete) mixing model
    :attr:`~Mix2`    Two-compartment mixing model
    :attr:`~FIFO`    First-in/first-out model
    :attr:`~LIFO`    Last-in/first-out model
    ===============  ==================================================================

    """

    Mix1 = 0
    Mix2 = 1
    FIFO = 2
    LIFO = 3
    Mixed = 0
    TwoComp = 1


class EN(enum.IntEnum):
    """The ``EN_`` constants used by the toolkit layer.

    For example, ``EN_LENGTH`` is accessed as ``EN.LENGTH``. Groups share
    numeric values, so members of different groups may be aliases of each
    other; always pass them to the function of the matching group.

    - Node parameters: ELEVATION ... MAXVOLUME
    - Link parameters: DIAMETER ... SPEED
    - Analysis statistics: ITERATIONS ... MASSBALANCE
    - Component counts: NODECOUNT ... RULECOUNT
    - Node and link types
    - Control types: LOWLEVEL, HILEVEL, TIMER, TIMEOFDAY
    - Delete actions: UNCONDITIONAL, CONDITIONAL
    - Quality types: NONE, CHEM, AGE, TRACE
    - Rule premises and actions: R_IF ... R_IS_ACTIVE
    """

    # Node parameters
    ELEVATION = 0
    BASEDEMAND = 1
    PATTERN = 2
    EMITTER = 3
    INITQUAL = 4
    SOURCEQUAL = 5
    SOURCEPAT = 6
    SOURCETYPE = 7
    TANKLEVEL = 8
    DEMAND = 9
    HEAD = 10
    PRESSURE = 11
    QUALITY = 12
    SOURCEMASS = 13
    INITVOLUME = 14
    MIXMODEL = 15
    MIXZONEVOL = 16
    TANKDIAM = 17
    MINVOLUME = 18
    VOLCURVE = 19
    MINLEVEL = 20
    MAXLEVEL = 21
    MIXFRACTION = 22
    TANK_KBULK = 23
    TANKVOLUME = 24
    MAXVOLUME = 25

    # Link parameters
    DIAMETER = 0
    LENGTH = 1
    ROUGHNESS = 2
    MINORLOSS = 3
    INITSTATUS = 4
    INITSETTING = 5
    KBULK = 6
    KWALL = 7
    FLOW = 8
    VELOCITY = 9
    HEADLOSS = 10
    STATUS = 11
    SETTING = 12
    ENERGY = 13
    LINKQUAL = 14
    LINKPATTERN = 15
    EFFICIENCY = 16
    HEADCURVE = 17
    EFFICIENCYCURVE = 18
    PRICEPATTERN = 19
    STATE = 20
    CONST_POWER = 21
    PUMP_SPEED = 22

    # Analysis statistics
    ITERATIONS = 0
    RELATIVEERROR = 1
    MAXHEADERROR = 2
    MAXFLOWCHANGE = 3
    MASSBALANCE = 4

    # Component counts
    NODECOUNT = 0
    TANKCOUNT = 1
    LINKCOUNT = 2
    PATCOUNT = 3
    CURVECOUNT = 4
    CONTROLCOUNT = 5
    RULECOUNT = 6

    # Node types
    JUNCTION = 0
    RESERVOIR = 1
    TANK = 2

    # Link types
    CVPIPE = 0
    PIPE = 1
    PUMP = 2
    PRV = 3
    PSV = 4
    PBV = 5
    FCV = 6
    TCV = 7
    GPV = 8

    # Control types
    LOWLEVEL = 0
    HILEVEL = 1
    TIMER = 2
    TIMEOFDAY = 3

    # Delete actions
    UNCONDITIONAL = 0
    CONDITIONAL = 1

    # Quality analysis types
    NONE = 0
    CHEM = 1
    AGE = 2
    TRACE = 3

    # Rule premise connectives
    R_IF = 1
    R_AND = 2
    R_OR = 3

    # Rule premise objects
    R_NODE = 6
    R_LINK = 7
    R_SYSTEM = 8

    # Rule premise variables
    R_DEMAND = 0
    R_HEAD = 1
    R_GRADE = 2
    R_LEVEL = 3
    R_PRESSURE = 4
    R_FLOW = 5
    R_STATUS = 6
    R_SETTING = 7
    R_POWER = 8
    R_TIME = 9
    R_CLOCKTIME = 10
    R_FILLTIME = 11
    R_DRAINTIME = 12

    # Rule premise relations
    R_EQ = 0
    R_NE = 1
    R_LE = 2
    R_GE = 3
    R_LT = 4
    R_GT = 5
    R_IS = 6
    R_NOT = 7
    R_BELOW = 8
    R_ABOVE = 9

    # Rule premise and action statuses
    R_IS_OPEN = 1
    R_IS_CLOSED = 2
    R_IS_ACTIVE = 3
