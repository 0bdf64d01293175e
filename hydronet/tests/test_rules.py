import copy
import unittest

import hydronet
from hydronet.network import Comparison, ControlAction, ControlPriority, LinkStatus, Rule, Control, \
    SimTimeCondition


def _two_reservoirs():
    wn = hydronet.network.WaterNetworkModel()
    wn.add_reservoir("R1", base_head=50.0)
    wn.add_reservoir("R2", base_head=40.0)
    wn.add_junction("J1", base_demand=0.0, elevation=0.0)
    wn.add_pipe("P1", "R1", "J1")
    wn.add_pipe("P2", "J1", "R2")
    return wn


class TestPriorityResolution(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _two_reservoirs()

    def _winner(self, wn):
        engine = hydronet.sim.RuleEngine(wn)
        wn._prev_sim_time = -1
        winners = engine.resolve(engine.evaluate(time=0))
        self.assertEqual(len(winners), 1)
        return winners[0].control.name

    def _add(self, wn, name, kind, status, priority):
        action = ControlAction(wn.get_link("P1"), "status", status)
        if kind == "rule":
            obj = Rule([("IF", SimTimeCondition(wn, ">=", 0))], [action], priority=priority, name=name)
        else:
            obj = Control(SimTimeCondition(wn, "=", 0), action, priority=priority, name=name)
        wn.add_control(name, obj)

    def test_higher_priority_wins(self):
        wn = copy.deepcopy(self.wn)
        self._add(wn, "rule_open", "rule", LinkStatus.Open, ControlPriority.low)
        self._add(wn, "control_close", "control", LinkStatus.Closed, ControlPriority.high)
        self.assertEqual(self._winner(wn), "control_close")

    def test_rule_beats_control_on_tie(self):
        wn = copy.deepcopy(self.wn)
        self._add(wn, "rule_open", "rule", LinkStatus.Open, ControlPriority.medium)
        self._add(wn, "control_close", "control", LinkStatus.Closed, ControlPriority.medium)
        self.assertEqual(self._winner(wn), "rule_open")

    def test_later_rule_wins_on_tie(self):
        wn = copy.deepcopy(self.wn)
        self._add(wn, "first", "rule", LinkStatus.Open, ControlPriority.medium)
        self._add(wn, "second", "rule", LinkStatus.Closed, ControlPriority.medium)
        self.assertEqual(self._winner(wn), "second")

    def test_winner_applied_in_simulation(self):
        wn = copy.deepcopy(self.wn)
        self._add(wn, "control_close", "control", LinkStatus.Closed, ControlPriority.very_low)
        self._add(wn, "rule_open", "rule", LinkStatus.Open, ControlPriority.low)
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertGreater(results.link["flowrate"].at[0, "P1"], 0.0)

        wn = copy.deepcopy(self.wn)
        self._add(wn, "control_close", "control", LinkStatus.Closed, ControlPriority.high)
        self._add(wn, "rule_open", "rule", LinkStatus.Open, ControlPriority.low)
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertEqual(results.link["flowrate"].at[0, "P1"], 0.0)


class TestRulePremises(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _two_reservoirs()

    def _premises(self, connectives_and_flags):
        # time 0 makes '>=' 0 true and '>=' 1 false
        wn = self.wn
        wn.sim_time = 0
        wn._prev_sim_time = -1
        premises = []
        for connective, flag in connectives_and_flags:
            premises.append((connective, SimTimeCondition(wn, ">=", 0 if flag else 1)))
        return hydronet.network.RulePremises(premises)

    def test_and(self):
        self.assertTrue(self._premises([("IF", True), ("AND", True)]).evaluate())
        self.assertFalse(self._premises([("IF", True), ("AND", False)]).evaluate())

    def test_or(self):
        self.assertTrue(self._premises([("IF", False), ("OR", True)]).evaluate())
        self.assertFalse(self._premises([("IF", False), ("OR", False)]).evaluate())

    def test_left_to_right(self):
        # (False OR True) AND False
        self.assertFalse(self._premises([("IF", False), ("OR", True), ("AND", False)]).evaluate())
        # (True AND False) OR True
        self.assertTrue(self._premises([("IF", True), ("AND", False), ("OR", True)]).evaluate())

    def test_first_premise_must_be_if(self):
        cond = SimTimeCondition(self.wn, ">=", 0)
        self.assertRaises(ValueError, hydronet.network.RulePremises, [("AND", cond)])
        self.assertRaises(ValueError, hydronet.network.RulePremises, [])


class TestRuleTimestep(unittest.TestCase):
    def test_rule_cuts_step(self):
        wn = _two_reservoirs()
        wn.options.time.duration = 3600
        wn.options.time.rule_timestep = 360
        close = ControlAction(wn.get_link("P1"), "status", LinkStatus.Closed)
        reopen = ControlAction(wn.get_link("P1"), "status", LinkStatus.Open)
        condition = SimTimeCondition(wn, Comparison.ge, 1800)
        wn.add_control("close_late", Rule([("IF", condition)], [close], [reopen]))

        sim = hydronet.sim.HydraulicSimulator(wn)
        sim.open()
        times = []
        try:
            sim.init()
            while True:
                times.append(sim.run())
                if sim.next() <= 0:
                    break
        finally:
            sim.close()
        self.assertListEqual(times, [0, 1800, 3600])
        results = sim.recorder.to_results()
        self.assertGreater(results.link["flowrate"].at[0, "P1"], 0.0)
        self.assertEqual(results.link["flowrate"].at[3600, "P1"], 0.0)


if __name__ == "__main__":
    unittest.main()
