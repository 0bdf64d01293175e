"""
The hydronet.network package contains methods to define a water network model
and its controls.
"""
from .base import Node, Link, NodeType, LinkType, LinkStatus
from .elements import Junction, Reservoir, Tank, Pipe, Pump, HeadPump, PowerPump, Valve, \
    PRValve, PSValve, PBValve, FCValve, TCValve, GPValve, Pattern, TimeSeries, Demands, Curve, Source
from .model import WaterNetworkModel, NetworkIndex, IndexMap
from .options import Options
from .controls import Comparison, ControlPriority, TimeOfDayCondition, \
    SimTimeCondition, ValueCondition, TankLevelCondition, SystemDemandCondition, \
    OrCondition, AndCondition, RulePremises, ControlAction, Control, Rule
