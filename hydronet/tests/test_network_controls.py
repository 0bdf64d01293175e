# These tests test control conditions and actions
import copy
import unittest

import hydronet
from hydronet.network import Comparison, ControlAction, LinkStatus, TankLevelCondition, TimeOfDayCondition, \
    ValueCondition


class TestConditions(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0)
        wn.add_junction("J1", base_demand=0.01, elevation=10.0)
        wn.add_tank("T1", elevation=20.0, init_level=2.0, max_level=6.0, diameter=10.0)
        wn.add_pipe("P1", "R1", "J1")
        wn.add_pipe("P2", "J1", "T1")
        wn.add_pump("PU1", "R1", "J1", pump_type="POWER", pump_parameter=1000.0)
        wn.reset_initial_values()
        self.wn = wn

    def test_tank_condition_type(self):
        wn = copy.deepcopy(self.wn)
        cond = ValueCondition(wn.get_node("T1"), "level", ">", 3.0)
        self.assertIsInstance(cond, TankLevelCondition)
        # strict relations are inclusive for tanks
        self.assertIs(cond._relation, Comparison.ge)
        self.assertRaises(ValueError, ValueCondition, wn.get_node("T1"), "level", "=", 3.0)

    def test_tank_tolerance(self):
        wn = copy.deepcopy(self.wn)
        tank = wn.get_node("T1")
        tank._head = tank.elevation + 3.0 - 0.0001
        self.assertTrue(ValueCondition(tank, "level", ">=", 3.0).evaluate())
        tank._head = tank.elevation + 3.0 - 0.001
        self.assertFalse(ValueCondition(tank, "level", ">=", 3.0).evaluate())

    def test_tank_time_to_event(self):
        wn = copy.deepcopy(self.wn)
        tank = wn.get_node("T1")
        tank._demand = 0.1
        cond = ValueCondition(tank, "level", ">=", 3.0)
        dv = tank.get_volume(3.0) - tank.get_volume(2.0)
        self.assertEqual(cond.time_to_event(), int(-(-dv // 0.1)))
        tank._demand = -0.1
        self.assertIsNone(cond.time_to_event())
        self.assertIsNotNone(ValueCondition(tank, "level", "<=", 1.0).time_to_event())

    def test_value_tolerance(self):
        wn = copy.deepcopy(self.wn)
        junction = wn.get_node("J1")
        junction._head = 40.0
        self.assertTrue(ValueCondition(junction, "pressure", "=", 30.0005).evaluate())
        self.assertFalse(ValueCondition(junction, "pressure", "=", 30.01).evaluate())
        self.assertTrue(ValueCondition(junction, "head", "<=", 40.0).evaluate())
        self.assertFalse(ValueCondition(junction, "head", "<", 40.0).evaluate())

    def test_link_status_condition(self):
        wn = copy.deepcopy(self.wn)
        cond = ValueCondition(wn.get_link("P1"), "status", "=", "OPEN")
        self.assertTrue(cond.evaluate())
        wn.get_link("P1").status = "CLOSED"
        self.assertFalse(cond.evaluate())

    def test_time_of_day(self):
        wn = copy.deepcopy(self.wn)
        wn.options.time.start_clocktime = 6 * 3600
        cond = TimeOfDayCondition(wn, "at", "7:00")
        self.assertEqual(cond.threshold, 7 * 3600)
        wn._prev_sim_time = 0
        wn.sim_time = 1800
        self.assertFalse(cond.evaluate())
        self.assertEqual(cond.time_to_event(), 1800)
        wn._prev_sim_time = 1800
        wn.sim_time = 3600
        self.assertTrue(cond.evaluate())
        # and again the next day
        wn._prev_sim_time = 86400
        wn.sim_time = 86400 + 3600
        self.assertTrue(cond.evaluate())


class TestControlActions(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0)
        wn.add_junction("J1", base_demand=0.01, elevation=10.0)
        wn.add_junction("J2", base_demand=0.01, elevation=10.0)
        wn.add_pipe("P1", "R1", "J1")
        wn.add_valve("V1", "J1", "J2", valve_type="PRV", initial_setting=20.0)
        wn.add_pump("PU1", "R1", "J2", pump_type="POWER", pump_parameter=1000.0)
        wn.reset_initial_values()
        self.wn = wn

    def test_pipe_setting(self):
        wn = copy.deepcopy(self.wn)
        pipe = wn.get_link("P1")
        action = ControlAction(pipe, "setting", 0)
        self.assertTrue(action.would_change())
        changes = action.run_control_action()
        self.assertEqual(changes, [("status", LinkStatus.Opened, LinkStatus.Closed)])
        self.assertFalse(action.would_change())

    def test_pump_speed(self):
        wn = copy.deepcopy(self.wn)
        pump = wn.get_link("PU1")
        ControlAction(pump, "setting", 0.0).run_control_action()
        self.assertEqual(pump.status, LinkStatus.Closed)
        ControlAction(pump, "setting", 0.8).run_control_action()
        self.assertEqual(pump.status, LinkStatus.Opened)
        self.assertAlmostEqual(pump.setting, 0.8)

    def test_valve_setting_activates(self):
        wn = copy.deepcopy(self.wn)
        valve = wn.get_link("V1")
        ControlAction(valve, "status", LinkStatus.Closed).run_control_action()
        self.assertEqual(valve.status, LinkStatus.Closed)
        ControlAction(valve, "setting", 25.0).run_control_action()
        self.assertEqual(valve.status, LinkStatus.Active)
        self.assertAlmostEqual(valve.setting, 25.0)

    def test_invalid_actions(self):
        wn = copy.deepcopy(self.wn)
        self.assertRaises(ValueError, ControlAction, wn.get_link("P1"), "status", LinkStatus.Active)
        self.assertRaises(ValueError, ControlAction, wn.get_link("P1"), "status", LinkStatus.CV)
        self.assertRaises(ValueError, ControlAction, wn.get_link("P1"), "diameter", 0.2)


if __name__ == "__main__":
    unittest.main()
