"""
The hydronet.epanet.rules module reads rules written in the format of the
[RULES] section of an EPANET input file.

Values are in the model's SI units, except that a pump POWER is given in
kW, FILLTIME and DRAINTIME in hours, and TIME in decimal hours or
``hh:mm[:ss]``.
"""
import logging

from hydronet.network.base import LinkStatus
from hydronet.network.controls import Rule, ControlAction, RulePremises, ValueCondition, SimTimeCondition, \
    TimeOfDayCondition, SystemDemandCondition

from .exceptions import ENKeyError, ENValueError

logger = logging.getLogger(__name__)

_NODE_WORDS = ('NODE', 'JUNCTION', 'RESERVOIR', 'TANK')
_LINK_WORDS = ('LINK', 'PIPE', 'PUMP', 'VALVE')

_NODE_ATTRS = {'DEMAND': 'demand', 'HEAD': 'head', 'GRADE': 'head', 'LEVEL': 'level', 'PRESSURE': 'pressure',
               'FILLTIME': 'fill_time', 'DRAINTIME': 'drain_time'}
_LINK_ATTRS = {'FLOW': 'flow', 'STATUS': 'status', 'SETTING': 'setting', 'POWER': 'power'}

_RELATIONS = {'=': '=', 'IS': '=', '<>': '<>', 'NOT': '<>', '<=': '<=', '>=': '>=', '<': '<', 'BELOW': '<',
              '>': '>', 'ABOVE': '>'}

_STATUS_WORDS = {'OPEN': LinkStatus.Opened, 'CLOSED': LinkStatus.Closed, 'ACTIVE': LinkStatus.Active}


def _number(word):
    try:
        return float(word)
    except ValueError:
        raise ENValueError(202, word)


class _EpanetRule(object):
    """contains the text for an EPANET rule"""
    def __init__(self, ruleID):
        self.ruleID = ruleID
        self._if_clauses = []
        self._then_clauses = []
        self._else_clauses = []
        self.priority = 0

    def add_if(self, clause):
        """Add an "if/and/or" clause"""
        self._if_clauses.append(clause)

    def add_then(self, clause):
        """Add a "then/and" clause"""
        self._then_clauses.append(clause)

    def add_else(self, clause):
        """Add an "else/and" clause"""
        self._else_clauses.append(clause)

    def set_priority(self, priority):
        self.priority = _number(priority)

    def __str__(self):
        lines = ['RULE {}'.format(self.ruleID)] + self._if_clauses + self._then_clauses + self._else_clauses
        if self.priority:
            lines.append('PRIORITY {}'.format(self.priority))
        return '\n'.join(lines)

    def _premise(self, model, words):
        if len(words) < 4:
            raise ENValueError(250, ' '.join(words))
        if words[1].upper() == 'SYSTEM':
            variable = words[2].upper()
            relation = _RELATIONS.get(words[3].upper())
            if relation is None or len(words) < 5:
                raise ENValueError(250, ' '.join(words))
            value = ' '.join(words[4:])
            if variable == 'DEMAND':
                return SystemDemandCondition(model, relation, _number(value))
            elif variable == 'TIME':
                return SimTimeCondition(model, relation, value)
            elif variable == 'CLOCKTIME':
                return TimeOfDayCondition(model, relation, value)
            raise ENValueError(250, variable)
        if len(words) < 6:
            raise ENValueError(250, ' '.join(words))
        kind = words[1].upper()
        name = words[2]
        variable = words[3].upper()
        relation = _RELATIONS.get(words[4].upper())
        if relation is None:
            raise ENValueError(250, words[4])
        value = words[5]
        if kind in _NODE_WORDS:
            if name not in model.node_name_list:
                raise ENKeyError(203, name)
            obj = model.get_node(name)
            attr = _NODE_ATTRS.get(variable)
            if attr is None:
                raise ENValueError(250, variable)
            value = _number(value)
            if attr in ('fill_time', 'drain_time'):
                value *= 3600.0
        elif kind in _LINK_WORDS:
            if name not in model.link_name_list:
                raise ENKeyError(204, name)
            obj = model.get_link(name)
            attr = _LINK_ATTRS.get(variable)
            if attr is None:
                raise ENValueError(250, variable)
            if attr == 'status':
                if value.upper() not in _STATUS_WORDS:
                    raise ENValueError(250, value)
                value = float(int(_STATUS_WORDS[value.upper()]))
            else:
                value = _number(value)
                if attr == 'power':
                    value *= 1000.0
        else:
            raise ENValueError(250, kind)
        return ValueCondition(obj, attr, relation, value)

    def _action(self, model, clause):
        words = clause.split()
        if len(words) < 6 or words[1].upper() not in _LINK_WORDS or words[4].upper() not in ('=', 'IS'):
            raise ENValueError(250, clause)
        if words[2] not in model.link_name_list:
            raise ENKeyError(204, words[2])
        link = model.get_link(words[2])
        attr = words[3].upper()
        if attr == 'STATUS':
            status = _STATUS_WORDS.get(words[5].upper())
            if status is None:
                raise ENValueError(250, words[5])
            return ControlAction(link, 'status', status)
        elif attr == 'SETTING':
            value = _number(words[5])
            if value < 0:
                raise ENValueError(202, words[5])
            return ControlAction(link, 'setting', value)
        raise ENValueError(250, attr)

    def generate_control(self, model):
        """Build the :class:`~hydronet.network.controls.Rule` for a model"""
        if len(self._if_clauses) == 0 or len(self._then_clauses) == 0:
            raise ENValueError(250, self.ruleID)
        premises = []
        for line in self._if_clauses:
            words = line.split()
            premises.append((words[0].upper(), self._premise(model, words)))
        then_acts = [self._action(model, act) for act in self._then_clauses]
        else_acts = [self._action(model, act) for act in self._else_clauses]
        return Rule(RulePremises(premises), then_acts, else_acts, priority=self.priority, name=self.ruleID)


def read_rules(text):
    """
    Split rule text into rules.

    Parameters
    ----------
    text : str
        One or more rules, each starting with a ``RULE id`` line

    Returns
    -------
    list of _EpanetRule
    """
    rules = []
    rule = None
    in_if = False
    in_then = False
    in_else = False
    for line in text.splitlines():
        line = line.split(';')[0]
        words = line.split()
        if len(words) == 0:
            continue
        keyword = words[0].upper()
        if keyword == 'RULE':
            if len(words) < 2:
                raise ENValueError(250, line)
            if rule is not None:
                rules.append(rule)
            rule = _EpanetRule(words[1])
            in_if = False
            in_then = False
            in_else = False
        elif rule is None:
            raise ENValueError(250, line)
        elif keyword == 'IF':
            if in_if or in_then or in_else:
                raise ENValueError(250, line)
            in_if = True
            rule.add_if(line)
        elif keyword == 'THEN':
            if not in_if:
                raise ENValueError(250, line)
            in_if = False
            in_then = True
            rule.add_then(line)
        elif keyword == 'ELSE':
            if not in_then:
                raise ENValueError(250, line)
            in_then = False
            in_else = True
            rule.add_else(line)
        elif keyword == 'PRIORITY':
            if len(words) < 2 or not (in_then or in_else):
                raise ENValueError(250, line)
            in_then = False
            in_else = False
            rule.set_priority(words[1])
        elif keyword in ('AND', 'OR') and in_if:
            rule.add_if(line)
        elif keyword == 'AND' and in_then:
            rule.add_then(line)
        elif keyword == 'AND' and in_else:
            rule.add_else(line)
        else:
            raise ENValueError(250, line)
    if rule is not None:
        rules.append(rule)
    return rules
