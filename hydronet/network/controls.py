"""
The hydronet.network.controls module includes methods to define network
controls, rules and control actions. These modify link status and settings
during a simulation.

.. rubric:: Contents

.. autosummary::

    Comparison
    ControlPriority
    ControlCondition
    TimeOfDayCondition
    SimTimeCondition
    ValueCondition
    TankLevelCondition
    SystemDemandCondition
    OrCondition
    AndCondition
    RulePremises
    ControlAction
    Rule
    Control

"""
import abc
import enum
import logging
import math
import warnings

import numpy as np
import six

from hydronet.utils.ordered_set import OrderedSet
from hydronet.epanet.util import ControlType
from .base import Node, LinkStatus
from .elements import Tank, Pipe, Pump, Valve, GPValve

logger = logging.getLogger(__name__)


def _ensure_iterable(to_check):
    """Return ``to_check`` as a list; None gives an empty list."""
    if to_check is None:
        return []
    if isinstance(to_check, (list, tuple, OrderedSet)):
        return list(to_check)
    return [to_check]


class Comparison(enum.Enum):
    """
    An enum class for comparison operators.

    .. rubric:: Enum Members

    ===========  ==============================================
    :attr:`~gt`  greater than
    :attr:`~ge`  greater than or equal to
    :attr:`~lt`  less than
    :attr:`~le`  less than or equal to
    :attr:`~eq`  equal to
    :attr:`~ne`  not equal to
    ===========  ==============================================

    """
    gt = (1, np.greater)
    ge = (2, np.greater_equal)
    lt = (3, np.less)
    le = (4, np.less_equal)
    eq = (5, np.equal)
    ne = (6, np.not_equal)

    def __str__(self):
        return '-' + self.name

    @property
    def func(self):
        """The function call to use for this comparison"""
        value = getattr(self, '_value_')
        return value[1]
    __call__ = func

    @property
    def symbol(self):
        return {Comparison.eq: '=', Comparison.ne: '<>', Comparison.gt: '>',
                Comparison.ge: '>=', Comparison.lt: '<', Comparison.le: '<='}[self]

    @property
    def text(self):
        return {Comparison.eq: 'Is', Comparison.ne: 'Not', Comparison.gt: 'Above',
                Comparison.ge: '>=', Comparison.lt: 'Below', Comparison.le: '<='}[self]

    def compare(self, value, threshold, tol=0.0):
        """
        Compare a value against a threshold with an absolute tolerance.

        Equality holds within ``tol``; the inclusive relations are widened
        by ``tol`` and the strict ones are not.
        """
        if self is Comparison.eq:
            return abs(value - threshold) <= tol
        elif self is Comparison.ne:
            return abs(value - threshold) > tol
        elif self is Comparison.gt:
            return value > threshold
        elif self is Comparison.ge:
            return value >= threshold - tol
        elif self is Comparison.lt:
            return value < threshold
        return value <= threshold + tol

    @classmethod
    def parse(cls, func):
        if isinstance(func, six.string_types):
            func = func.lower().strip()
        elif isinstance(func, cls):
            return func
        if func in [np.equal, '=', 'eq', '-eq', '==', 'is', 'equal', 'equal to', 'at']:
            return cls.eq
        elif func in [np.not_equal, '<>', 'ne', '-ne', '!=', 'not', 'not_equal', 'not equal to']:
            return cls.ne
        elif func in [np.greater, '>', 'gt', '-gt', 'above', 'after', 'greater', 'greater than']:
            return cls.gt
        elif func in [np.less, '<', 'lt', '-lt', 'below', 'before', 'less', 'less than']:
            return cls.lt
        elif func in [np.greater_equal, '>=', 'ge', '-ge', 'greater_equal', 'greater than or equal to']:
            return cls.ge
        elif func in [np.less_equal, '<=', 'le', '-le', 'less_equal', 'less than or equal to']:
            return cls.le
        raise ValueError('Invalid Comparison name: %s' % func)


class ControlPriority(enum.IntEnum):
    """
    An enum class for control and rule priorities. Any number can be used
    as a priority; these are convenient names.

    .. rubric:: Enum Members

    ====================  =====================================================
    :attr:`~very_low`     very low priority (the default)
    :attr:`~low`          low priority
    :attr:`~medium_low`   medium low priority
    :attr:`~medium`       medium priority
    :attr:`~medium_high`  medium high priority
    :attr:`~high`         high priority
    :attr:`~very_high`    very high priority
    ====================  =====================================================

    """
    very_low = 0
    low = 1
    medium_low = 2
    medium = 3
    medium_high = 4
    high = 5
    very_high = 6


#
# Control Condition classes
#

class ControlCondition(six.with_metaclass(abc.ABCMeta, object)):
    """A base class for control conditions"""

    @abc.abstractmethod
    def requires(self):
        """
        Returns a set of objects required to evaluate this condition

        Returns
        -------
        required_objects: OrderedSet of object
        """
        return OrderedSet()

    @property
    def name(self):
        """str : the string representation of the condition"""
        return str(self)

    @abc.abstractmethod
    def evaluate(self):
        """
        Check if the condition is satisfied.

        Returns
        -------
        check: bool
        """
        pass

    def __bool__(self):
        return self.evaluate()

    def time_to_event(self):
        """
        Seconds from the current simulation time until this condition next
        becomes true, or None if that cannot be predicted.
        """
        return None

    def _assign_indices(self, index):
        """Cache node/link indices from a :class:`~hydronet.network.model.NetworkIndex`."""
        pass

    def _renumber(self, node_map, link_map):
        """Apply old-to-new :class:`~hydronet.network.model.IndexMap` objects to cached indices."""
        pass

    @classmethod
    def _parse_value(cls, value):
        if isinstance(value, LinkStatus):
            return float(int(value))
        try:
            return float(value)
        except ValueError:
            value = value.upper()
            if value == 'CLOSED':
                return 0
            if value == 'OPEN':
                return 1
            if value == 'ACTIVE':
                return 2
            PM = 0
            words = value.split()
            if len(words) > 1:
                if words[1] == 'PM':
                    PM = 86400 / 2
            hms = words[0].split(':')
            v = 0
            if len(hms) > 2:
                v += int(hms[2])
            if len(hms) > 1:
                v += int(hms[1]) * 60
            if len(hms) > 0:
                v += int(hms[0]) * 3600
            if int(hms[0]) < 12:
                v += PM
            elif len(words) > 1 and words[1] == 'AM':
                v -= 12 * 3600
            return v

    @classmethod
    def _sec_to_hours_min_sec(cls, value):
        sec = float(value)
        hours = int(sec / 3600.)
        sec -= hours * 3600
        mm = int(sec / 60.)
        sec -= mm * 60
        return '{:02d}:{:02d}:{:02d}'.format(hours, mm, int(sec))

    @classmethod
    def _sec_to_clock(cls, value):
        sec = float(value)
        hours = int(sec / 3600.)
        sec -= hours * 3600
        mm = int(sec / 60.)
        sec -= mm * 60
        if hours >= 12:
            pm = 'PM'
            if hours > 12:
                hours -= 12
        elif hours == 0:
            pm = 'AM'
            hours = 12
        else:
            pm = 'AM'
        return '{}:{:02d}:{:02d} {}'.format(hours, mm, int(sec), pm)


class TimeOfDayCondition(ControlCondition):
    """Time-of-day or "clocktime" based condition statement.

    With the "at" relation the condition is true during the step in which
    the clock time is reached; the other relations compare the current
    clock time with the threshold and reset at midnight.

    Parameters
    ----------
    model : WaterNetworkModel
        The model that the time is being compared against
    relation : str or None
        'at' (or None), 'after', 'before', or any :class:`Comparison`
    threshold : float or str
        The time of day in seconds after midnight; a string in
        'hh:mm[:ss] [am|pm]' format is parsed, and a string without a colon
        is read as decimal hours
    repeat : bool, optional
        True by default; if False, the condition is only true on
        ``first_day``
    first_day : int, default=0
        First day (from the first day of the simulation) on which the
        condition can be true
    """
    def __init__(self, model, relation, threshold, repeat=True, first_day=0):
        self._model = model
        if isinstance(threshold, str) and ':' not in threshold:
            self._threshold = float(threshold) * 3600.
        else:
            self._threshold = self._parse_value(threshold)
        self._threshold = self._threshold % 86400
        if relation is None:
            self._relation = Comparison.eq
        else:
            self._relation = Comparison.parse(relation)
        self._first_day = first_day
        self._repeat = repeat

    @property
    def threshold(self):
        """float : the clock time of the condition, in seconds after midnight"""
        return self._threshold

    def requires(self):
        return OrderedSet()

    def __repr__(self):
        fmt = '<TimeOfDayCondition: model, {}, {}, {}, {}>'
        return fmt.format(repr(self._relation.text), repr(self._sec_to_clock(self._threshold)),
                          repr(self._repeat), repr(self._first_day))

    def __str__(self):
        return 'SYSTEM CLOCKTIME {} {}'.format(self._relation.text.upper(),
                                               self._sec_to_clock(self._threshold))

    def _crossings(self, shifted_time):
        # number of times the clock time was reached, counting from midnight of day 0
        return int(math.floor((shifted_time - self._threshold) / 86400.0))

    def evaluate(self):
        cur_time = self._model._shifted_time
        prev_time = self._model._prev_shifted_time
        day = int(cur_time // 86400)
        if day < self._first_day or (not self._repeat and day != self._first_day):
            return False
        if self._relation is Comparison.eq:
            return self._crossings(prev_time) < self._crossings(cur_time)
        clock = cur_time % 86400
        return bool(self._relation.compare(clock, self._threshold))

    def time_to_event(self):
        if self._relation is not Comparison.eq:
            return None
        delta = (self._threshold - self._model._shifted_time) % 86400
        if delta == 0:
            delta = 86400
        return int(math.ceil(delta))


class SimTimeCondition(ControlCondition):
    """Condition based on time since start of the simulation.

    With the "at" relation the condition is true only during the step that
    reaches the threshold time. Greater-than and less-than relations are
    meant for rule premises.

    Parameters
    ----------
    model : WaterNetworkModel
        The model that the time threshold is being compared against
    relation : str or None
        'at' (or None), 'after', 'before', or any :class:`Comparison`
    threshold : float or str
        The time in seconds; a string in '[hh:]mm[:ss]' format is parsed, and
        a string without a colon is read as decimal hours
    repeat : bool or int, default=False
        If True, repeat every 24 hours; if a positive number, repeat every
        ``repeat`` seconds after the threshold
    """
    def __init__(self, model, relation, threshold, repeat=False):
        self._model = model
        if isinstance(threshold, str) and ':' not in threshold:
            self._threshold = float(threshold) * 3600.
        else:
            self._threshold = self._parse_value(threshold)
        if relation is None:
            self._relation = Comparison.eq
        else:
            self._relation = Comparison.parse(relation)
        self._repeat = repeat
        if repeat is True:
            self._repeat = 86400

    @property
    def threshold(self):
        """float : the simulation time of the condition, in seconds"""
        return self._threshold

    def __repr__(self):
        fmt = '<SimTimeCondition: model, {}, {}, {}>'
        return fmt.format(repr(self._relation.text), repr(self._sec_to_hours_min_sec(self._threshold)),
                          repr(self._repeat))

    def __str__(self):
        return 'SYSTEM TIME {} {}'.format(self._relation.text.upper(), self._sec_to_hours_min_sec(self._threshold))

    def requires(self):
        return OrderedSet()

    def _crossed(self, prev_time, cur_time):
        if self._repeat and cur_time >= self._threshold:
            n_cur = math.floor((cur_time - self._threshold) / self._repeat)
            if prev_time < self._threshold:
                return True
            return math.floor((prev_time - self._threshold) / self._repeat) < n_cur
        return prev_time < self._threshold <= cur_time

    def evaluate(self):
        cur_time = self._model.sim_time
        prev_time = self._model._prev_sim_time
        if self._relation is Comparison.eq:
            return self._crossed(prev_time, cur_time)
        return bool(self._relation.compare(cur_time, self._threshold))

    def time_to_event(self):
        if self._relation is not Comparison.eq:
            return None
        cur_time = self._model.sim_time
        if cur_time < self._threshold:
            return int(math.ceil(self._threshold - cur_time))
        if self._repeat:
            delta = (self._threshold - cur_time) % self._repeat
            return int(math.ceil(delta)) if delta > 0 else int(self._repeat)
        return None


class ValueCondition(ControlCondition):
    """Compare a network element attribute to a set value.

    Tank levels, heads and pressures are handled by
    :class:`~hydronet.network.controls.TankLevelCondition`, which is
    returned automatically.

    Parameters
    ----------
    source_obj : object
        The object (such as a Junction, Tank, Pipe, etc.) to use in the comparison
    source_attr : str
        The attribute of the object (such as level, pressure, setting, etc.) to
        compare against the threshold. ``grade`` is an alias of ``head``
        and a pump's ``power`` is the power it currently draws.
    relation : function or str
        A two-parameter comparison function (e.g., numpy.greater, numpy.less_equal), or a
        string describing the comparison (e.g., '=', 'below', 'is', '>=', etc.)
    threshold : float or str
        A value to compare the source object attribute against; link
        statuses may be given as 'OPEN', 'CLOSED' or 'ACTIVE'
    """
    _tolerance = 0.001

    def __new__(cls, source_obj, source_attr, relation, threshold):
        if isinstance(source_obj, Tank) and source_attr in {'level', 'pressure', 'head', 'grade'}:
            return object.__new__(TankLevelCondition)
        return object.__new__(cls)

    def __getnewargs__(self):
        return self._source_obj, self._source_attr, self._relation, self._threshold

    def __init__(self, source_obj, source_attr, relation, threshold):
        if source_attr == 'grade':
            source_attr = 'head'
        elif source_attr == 'power' and isinstance(source_obj, Pump):
            source_attr = 'power_used'
        if not hasattr(source_obj, source_attr):
            raise ValueError('{} has no attribute {}'.format(repr(source_obj), source_attr))
        self._source_obj = source_obj
        self._source_attr = source_attr
        self._relation = Comparison.parse(relation)
        self._threshold = ControlCondition._parse_value(threshold)
        self._index = None

    @property
    def index(self):
        """int : cached index of the source object in the node or link index space"""
        return self._index

    def _is_node(self):
        return isinstance(self._source_obj, Node)

    def _assign_indices(self, index):
        if self._is_node():
            self._index = index.node_index(self._source_obj.name)
        else:
            self._index = index.link_index(self._source_obj.name)

    def _renumber(self, node_map, link_map):
        if self._index is None:
            return
        self._index = node_map[self._index] if self._is_node() else link_map[self._index]

    def requires(self):
        return OrderedSet([self._source_obj])

    @property
    def name(self):
        return '{}:{}{}{}'.format(self._source_obj.name, self._source_attr,
                                  self._relation.symbol, self._threshold)

    def __repr__(self):
        return "<ValueCondition: {}, {}, {}, {}>".format(str(self._source_obj),
                                                         str(self._source_attr),
                                                         str(self._relation.symbol),
                                                         str(self._threshold))

    def __str__(self):
        typ = self._source_obj.__class__.__name__
        if 'Pump' in typ:
            typ = 'Pump'
        elif 'Valve' in typ:
            typ = 'Valve'
        val = self._threshold
        if self._source_attr == 'status':
            val = LinkStatus(int(val)).name.upper()
        return "{} {} {} {} {}".format(typ.upper(), self._source_obj.name, self._source_attr.upper(),
                                       self._relation.text.upper(), val)

    def _current_value(self):
        value = getattr(self._source_obj, self._source_attr)
        if value is None:
            return None
        return float(value)

    def evaluate(self):
        cur_value = self._current_value()
        if cur_value is None:
            return False
        return bool(self._relation.compare(cur_value, self._threshold, self._tolerance))


class TankLevelCondition(ValueCondition):
    """
    A ValueCondition on a tank level, head or pressure.

    Strict relations are treated as inclusive and the comparison uses the
    hydraulic head tolerance, so that a control fires at the moment the
    level is reached.
    """
    _tolerance = 0.00015

    def __init__(self, source_obj, source_attr, relation, threshold):
        relation = Comparison.parse(relation)
        if relation not in {Comparison.ge, Comparison.le, Comparison.gt, Comparison.lt}:
            raise ValueError('TankLevelConditions only support <= and >= relations.')
        if relation is Comparison.gt:
            relation = Comparison.ge
        elif relation is Comparison.lt:
            relation = Comparison.le
        super(TankLevelCondition, self).__init__(source_obj, source_attr, relation, threshold)

    @property
    def threshold_level(self):
        """float : the threshold expressed as a tank level"""
        if self._source_attr == 'head':
            return self._threshold - self._source_obj.elevation
        return self._threshold

    def time_to_event(self):
        tank = self._source_obj
        q = tank.demand
        if q is None or q == 0:
            return None
        level = tank.level
        target = min(max(self.threshold_level, tank.min_level), tank.max_level)
        if self._relation is Comparison.ge and q > 0 and level < target:
            dv = tank.get_volume(target) - tank.volume
        elif self._relation is Comparison.le and q < 0 and level > target:
            dv = tank.get_volume(target) - tank.volume
        else:
            return None
        return int(math.ceil(dv / q))


class SystemDemandCondition(ControlCondition):
    """Compare the total system demand with a value.

    The system demand is the sum of the positive junction demands.

    Parameters
    ----------
    model : WaterNetworkModel
        The model whose demands are summed
    relation : str or Comparison
        The comparison
    threshold : float
        The demand to compare against
    """
    _tolerance = 0.001

    def __init__(self, model, relation, threshold):
        self._model = model
        self._relation = Comparison.parse(relation)
        self._threshold = float(threshold)

    def requires(self):
        return OrderedSet()

    def __repr__(self):
        return '<SystemDemandCondition: model, {}, {}>'.format(self._relation.symbol, self._threshold)

    def __str__(self):
        return 'SYSTEM DEMAND {} {}'.format(self._relation.text.upper(), self._threshold)

    def evaluate(self):
        total = 0.0
        for name, junction in self._model.junctions():
            if junction.demand is not None and junction.demand > 0:
                total += junction.demand
        return bool(self._relation.compare(total, self._threshold, self._tolerance))


class OrCondition(ControlCondition):
    """Combine two conditions with an OR.

    Parameters
    ----------
    cond1 : ControlCondition
        The first condition
    cond2 : ControlCondition
        The second condition

    """
    def __init__(self, cond1, cond2):
        self._condition_1 = cond1
        self._condition_2 = cond2

    def __str__(self):
        return " " + str(self._condition_1) + " OR " + str(self._condition_2) + " "

    def __repr__(self):
        return 'Or({}, {})'.format(repr(self._condition_1), repr(self._condition_2))

    def evaluate(self):
        return bool(self._condition_1) or bool(self._condition_2)

    def time_to_event(self):
        times = [t for t in (self._condition_1.time_to_event(), self._condition_2.time_to_event())
                 if t is not None]
        return min(times) if times else None

    def requires(self):
        req = self._condition_1.requires()
        req.update(self._condition_2.requires())
        return req

    def _assign_indices(self, index):
        self._condition_1._assign_indices(index)
        self._condition_2._assign_indices(index)

    def _renumber(self, node_map, link_map):
        self._condition_1._renumber(node_map, link_map)
        self._condition_2._renumber(node_map, link_map)


class AndCondition(ControlCondition):
    """Combine two conditions with an AND

    Parameters
    ----------
    cond1 : ControlCondition
        The first condition
    cond2 : ControlCondition
        The second condition
    """
    def __init__(self, cond1, cond2):
        self._condition_1 = cond1
        self._condition_2 = cond2

    def __str__(self):
        return " " + str(self._condition_1) + " AND " + str(self._condition_2) + " "

    def __repr__(self):
        return 'And({}, {})'.format(repr(self._condition_1), repr(self._condition_2))

    def evaluate(self):
        return bool(self._condition_1) and bool(self._condition_2)

    def requires(self):
        req = self._condition_1.requires()
        req.update(self._condition_2.requires())
        return req

    def _assign_indices(self, index):
        self._condition_1._assign_indices(index)
        self._condition_2._assign_indices(index)

    def _renumber(self, node_map, link_map):
        self._condition_1._renumber(node_map, link_map)
        self._condition_2._renumber(node_map, link_map)


class RulePremises(ControlCondition):
    """
    The ordered premises of a rule.

    Each premise is a condition tagged with the connective that joins it to
    the premises before it. The first connective must be ``IF``. Premises
    are folded from left to right: a premise joined by ``OR`` is evaluated
    only if the result so far is false, and a false result ahead of an
    ``AND`` premise fails the rule.

    Parameters
    ----------
    premises : list of (str, ControlCondition)
        Connective (``IF``, ``AND`` or ``OR``) and condition pairs

    Examples
    --------
    >>> premises = RulePremises([('IF', level_low), ('OR', morning), ('AND', pump_closed)])
    """
    def __init__(self, premises):
        self._premises = []
        for i, (connective, condition) in enumerate(premises):
            connective = str(connective).upper()
            if i == 0 and connective != 'IF':
                raise ValueError('the first premise of a rule must use IF')
            if i > 0 and connective not in ('AND', 'OR'):
                raise ValueError('premises after the first must use AND or OR, not ' + connective)
            if not isinstance(condition, ControlCondition):
                raise ValueError('each premise must be a ControlCondition')
            self._premises.append((connective, condition))
        if len(self._premises) == 0:
            raise ValueError('a rule needs at least one premise')

    def __iter__(self):
        return iter(self._premises)

    def __len__(self):
        return len(self._premises)

    def __str__(self):
        return ' '.join('{} {}'.format(c, str(cond).strip()) for c, cond in self._premises)

    def __repr__(self):
        return 'RulePremises({})'.format(repr(self._premises))

    def evaluate(self):
        result = True
        for connective, condition in self._premises:
            if connective == 'OR':
                if not result:
                    result = condition.evaluate()
            else:
                if not result:
                    return False
                result = condition.evaluate()
        return bool(result)

    def requires(self):
        req = OrderedSet()
        for connective, condition in self._premises:
            req.update(condition.requires())
        return req

    def _assign_indices(self, index):
        for connective, condition in self._premises:
            condition._assign_indices(index)

    def _renumber(self, node_map, link_map):
        for connective, condition in self._premises:
            condition._renumber(node_map, link_map)


#
# Control actions
#

class ControlAction(object):
    """
    An action that sets the status or the setting of a link.

    Parameters
    ----------
    target_obj : Link
        The link whose status or setting will be changed when the control runs.
    attribute : str
        ``'status'`` or ``'setting'``
    value : LinkStatus, str or float
        The new status, or the new setting. A pump setting is its relative
        speed (0 closes the pump); a valve setting makes the valve active;
        a pipe setting of 0 closes the pipe and any other value opens it.
    """
    def __init__(self, target_obj, attribute, value):
        if target_obj is None:
            raise ValueError('target_obj is None in ControlAction::__init__. A valid target_obj is needed.')
        if attribute not in ('status', 'setting'):
            raise ValueError('attribute given in ControlAction::__init__ must be "status" or "setting"')
        if attribute == 'status':
            if not isinstance(value, LinkStatus):
                value = LinkStatus[value] if isinstance(value, six.string_types) else LinkStatus(int(value))
            if value is LinkStatus.CV:
                raise ValueError('a control cannot set a link to CV')
            if value is LinkStatus.Active and not isinstance(target_obj, Valve):
                raise ValueError('only valves can be set to Active')
        else:
            value = float(value)
        self._target_obj = target_obj
        self._attribute = attribute
        self._value = value
        self._index = None

    @property
    def index(self):
        """int : cached link index of the target"""
        return self._index

    @property
    def value(self):
        """the value the action writes"""
        return self._value

    def _assign_indices(self, index):
        self._index = index.link_index(self._target_obj.name)

    def _renumber(self, node_map, link_map):
        if self._index is not None:
            self._index = link_map[self._index]

    def requires(self):
        return OrderedSet([self._target_obj])

    def target(self):
        """
        Returns the object and attribute the action changes.

        Returns
        -------
        target: tuple
            (target, attr)
        """
        return self._target_obj, self._attribute

    def __repr__(self):
        return '<ControlAction: {}, {}, {}>'.format(str(self._target_obj), str(self._attribute), str(self._repr_value()))

    def __str__(self):
        return "{} {} {} IS {}".format(self._target_obj.link_type.upper(),
                                       self._target_obj.name,
                                       self._attribute.upper(),
                                       self._repr_value())

    def _repr_value(self):
        if self._attribute == 'status':
            return self._value.name.upper()
        return self._value

    def _new_state(self):
        """The (user status, setting) pair the link would have after the action."""
        link = self._target_obj
        status = link._user_status
        setting = link._setting
        if self._attribute == 'status':
            status = self._value
            if isinstance(link, Pump) and status is LinkStatus.Opened and not setting:
                setting = 1.0
        elif isinstance(link, Pump):
            setting = self._value
            if setting == 0:
                status = LinkStatus.Closed
            elif status is LinkStatus.Closed:
                status = LinkStatus.Opened
        elif isinstance(link, GPValve):
            status = LinkStatus.Closed if self._value == 0 else LinkStatus.Opened
        elif isinstance(link, Valve):
            setting = self._value
            status = LinkStatus.Active
        elif isinstance(link, Pipe):
            status = LinkStatus.Closed if self._value == 0 else LinkStatus.Opened
        return status, setting

    def would_change(self):
        """True if running the action would change the link."""
        status, setting = self._new_state()
        link = self._target_obj
        return status != link._user_status or setting != link._setting

    def run_control_action(self):
        """
        Apply the action to the link.

        Returns
        -------
        changes : list of tuple
            ``(attribute, old, new)`` for each attribute that changed
        """
        link = self._target_obj
        status, setting = self._new_state()
        changes = []
        if status != link._user_status:
            changes.append(('status', link._user_status, status))
            link._user_status = status
        if setting != link._setting:
            changes.append(('setting', link._setting, setting))
            link._setting = setting
        return changes


#
# Controls and rules
#

class Rule(object):
    """
    A rule: a condition (usually :class:`RulePremises`) with THEN and ELSE
    actions and a priority.

    Parameters
    ----------
    condition : ControlCondition
        When the condition evaluates to True, the then_actions are
        candidates; otherwise the else_actions are.
    then_actions : ControlAction or list of ControlAction
        The actions used when the condition is true.
    else_actions : ControlAction or list of ControlAction, optional
        The actions used when the condition is false.
    priority : float
        Higher priority actions win when several touch the same link.
        Default is 0.
    name : str
        The name of the rule
    """
    _control_type = 'rule'

    def __init__(self, condition, then_actions, else_actions=None, priority=ControlPriority.very_low, name=None):
        if isinstance(condition, (list, tuple)):
            condition = RulePremises(condition)
        if not isinstance(condition, ControlCondition):
            raise ValueError('The conditions argument must be a ControlCondition instance')
        self._condition = condition
        self._then_actions = _ensure_iterable(then_actions)
        self._else_actions = _ensure_iterable(else_actions)
        for action in self._then_actions + self._else_actions:
            if not isinstance(action, ControlAction):
                raise ValueError('actions must be ControlAction instances')
        self._priority = priority if priority is not None else 0
        self._name = name if name is not None else ''

    @property
    def condition(self):
        """ControlCondition : the condition of the rule"""
        return self._condition

    @property
    def then_actions(self):
        return list(self._then_actions)

    @property
    def else_actions(self):
        return list(self._else_actions)

    @property
    def priority(self):
        """float : the priority of the rule"""
        return self._priority

    @property
    def name(self):
        return self._name

    @property
    def control_type(self):
        """str : ``'rule'`` or ``'control'``"""
        return self._control_type

    def requires(self):
        req = self._condition.requires()
        for action in self._then_actions + self._else_actions:
            req.update(action.requires())
        return req

    def actions(self):
        return self._then_actions + self._else_actions

    def candidate_actions(self):
        """
        Evaluate the condition and return the actions that apply.

        Returns
        -------
        list of ControlAction
            The THEN actions if the condition holds, otherwise the ELSE actions
        """
        if self._condition.evaluate():
            return list(self._then_actions)
        return list(self._else_actions)

    def _assign_indices(self, index):
        self._condition._assign_indices(index)
        for action in self.actions():
            action._assign_indices(index)

    def _renumber(self, node_map, link_map):
        self._condition._renumber(node_map, link_map)
        for action in self.actions():
            action._renumber(node_map, link_map)

    def __repr__(self):
        fmt = "<Rule: '{}', {}, {}, {}, priority={}>"
        return fmt.format(self._name, repr(self._condition), repr(self._then_actions),
                          repr(self._else_actions), self._priority)

    def __str__(self):
        text = 'IF {}'.format(str(self._condition))
        if len(self._then_actions) > 0:
            text += ' THEN ' + ' AND '.join(str(act) for act in self._then_actions)
        if len(self._else_actions) > 0:
            text += ' ELSE ' + ' AND '.join(str(act) for act in self._else_actions)
        if self._priority:
            text += ' PRIORITY {}'.format(self._priority)
        return text


class Control(Rule):
    """
    A simple control: one condition and one action.

    Parameters
    ----------
    condition : ControlCondition
        A time, clock time, tank level or node value condition
    then_action : ControlAction
        The action taken when the condition is true
    priority : float
        Default is 0; a rule of equal priority overrides the control
    name : str
        The name of the control
    """
    _control_type = 'control'

    def __init__(self, condition, then_action, priority=ControlPriority.very_low, name=None):
        super(Control, self).__init__(condition=condition, then_actions=then_action, priority=priority, name=name)
        if len(self._then_actions) != 1:
            raise ValueError('a simple control takes exactly one action')
        if isinstance(condition, (TankLevelCondition, ValueCondition)) \
                and condition._relation in (Comparison.eq, Comparison.ne):
            msg = 'Using {} with {} will probably not work!'.format(condition._relation, type(condition).__name__)
            logger.warning(msg)
            warnings.warn(msg)

    @property
    def action(self):
        """ControlAction : the action of the control"""
        return self._then_actions[0]

    @property
    def epanet_control_type(self):
        """ControlType : the simple control type (LowLevel, HiLevel, Timer or TimeOfDay)"""
        condition = self._condition
        if isinstance(condition, SimTimeCondition):
            return ControlType.Timer
        if isinstance(condition, TimeOfDayCondition):
            return ControlType.TimeOfDay
        if isinstance(condition, ValueCondition):
            if condition._relation in (Comparison.le, Comparison.lt):
                return ControlType.LowLevel
            return ControlType.HiLevel
        raise ValueError('control {} does not have a simple control type'.format(self._name))

    def __repr__(self):
        return "<Control: '{}', {}, {}, priority={}>".format(self._name, repr(self._condition),
                                                            repr(self._then_actions[0]), self._priority)

    @classmethod
    def _time_control(cls, wnm, run_at_time, time_flag, daily_flag, control_action, name=None):
        """
        Create a simple time control.

        Parameters
        ----------
        wnm: hydronet.network.WaterNetworkModel
            The WaterNetworkModel instance this control will be added to.
        run_at_time: int
            The time to activate the control action.
        time_flag: str
            'SIM_TIME' (seconds since the start of the simulation) or
            'CLOCK_TIME' (seconds after midnight)
        daily_flag: bool
            If True, then the control will repeat every day.
        control_action: ControlAction
            The control action that should occur at run_at_time.
        name: str
            An optional name for the control.

        Returns
        -------
        ctrl: Control
        """
        if time_flag.upper() == 'SIM_TIME':
            condition = SimTimeCondition(model=wnm, relation=Comparison.eq, threshold=run_at_time, repeat=daily_flag)
        elif time_flag.upper() == 'CLOCK_TIME':
            condition = TimeOfDayCondition(model=wnm, relation=Comparison.eq, threshold=run_at_time, repeat=daily_flag)
        else:
            raise ValueError("time_flag not recognized; expected either 'sim_time' or 'clock_time'")
        return Control(condition=condition, then_action=control_action, name=name)

    @classmethod
    def _conditional_control(cls, source_obj, source_attr, operation, threshold, control_action, name=None):
        """
        Create a simple conditional control.

        Parameters
        ----------
        source_obj: Node
            The tank or junction whose attribute is compared to the threshold
        source_attr: str
            The attribute of source_obj (level, head or pressure)
        operation: Comparison
            The comparison used.
        threshold: float
            The threshold used in the comparison.
        control_action: ControlAction
            The action taken when the comparison holds.
        name: str
            An optional name for the control

        Returns
        -------
        ctrl: Control
        """
        condition = ValueCondition(source_obj=source_obj, source_attr=source_attr, relation=operation,
                                   threshold=threshold)
        return Control(condition=condition, then_action=control_action, name=name)
