"""
The hydronet.sim.rules module evaluates the controls and rules of a model
and resolves the actions that compete for the same link.

.. rubric:: Contents

.. autosummary::

    LinkChange
    RuleEngine

"""
import logging
from collections import namedtuple, OrderedDict

logger = logging.getLogger(__name__)

LinkChange = namedtuple('LinkChange', ['link', 'attribute', 'old', 'new', 'source'])
LinkChange.__doc__ = """A change made to a link by a control or rule.

link : str
    Name of the link
attribute : str
    ``'status'`` or ``'setting'``
old, new
    The values before and after the change
source : str
    Name of the control or rule that made the change
"""

_Candidate = namedtuple('_Candidate', ['action', 'control', 'key'])


class RuleEngine(object):
    """
    Evaluates the simple controls and rules of a model.

    A pass has three stages: :meth:`evaluate` collects the actions whose
    conditions hold, :meth:`resolve` keeps one action per link and
    :meth:`apply` writes the winners to the links. When several actions
    target the same link, the highest priority wins; on equal priority a
    rule beats a simple control, and the control or rule added last beats
    the earlier ones.

    Parameters
    ----------
    wn : WaterNetworkModel
    """
    def __init__(self, wn):
        self._wn = wn

    def evaluate(self, time=None):
        """
        Evaluate every control and rule.

        Parameters
        ----------
        time : int, optional
            Simulation time (s) to evaluate at; the model time is used if
            None

        Returns
        -------
        list
            Candidate actions in control order
        """
        if time is not None:
            self._wn.sim_time = time
        candidates = []
        for order, (name, control) in enumerate(self._wn.controls()):
            is_rule = control.control_type == 'rule'
            for action in control.candidate_actions():
                candidates.append(_Candidate(action, control, (control.priority, is_rule, order)))
        return candidates

    def resolve(self, candidates):
        """
        Keep the winning action for each link.

        Parameters
        ----------
        candidates : list
            The output of :meth:`evaluate`

        Returns
        -------
        list
            One candidate per link
        """
        winners = OrderedDict()
        for cand in candidates:
            link = cand.action.target()[0]
            current = winners.get(link.name)
            if current is None or cand.key >= current.key:
                if current is not None:
                    logger.debug('%s overrides %s on link %s', cand.control.name, current.control.name, link.name)
                winners[link.name] = cand
        return list(winners.values())

    def would_change(self, winners):
        """True if applying the winners would change any link."""
        return any(cand.action.would_change() for cand in winners)

    def apply(self, winners):
        """
        Write the winning actions to their links.

        Returns
        -------
        list of LinkChange
            The changes actually made
        """
        changes = []
        for cand in winners:
            link = cand.action.target()[0]
            for attr, old, new in cand.action.run_control_action():
                changes.append(LinkChange(link.name, attr, old, new, cand.control.name))
                logger.debug('%s %s: %s %s changed from %s to %s', cand.control.control_type,
                             cand.control.name, link.name, attr, old, new)
        return changes

    def run(self, time=None):
        """Evaluate, resolve and apply in one call; returns the list of LinkChange."""
        return self.apply(self.resolve(self.evaluate(time)))
