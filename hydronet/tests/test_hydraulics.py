import copy
import unittest

import numpy as np

import hydronet
from hydronet.epanet.exceptions import EpanetException
from hydronet.utils.exceptions import SingularSystem


def _hw_resistance(length, diameter, roughness):
    return 10.667 * length / (roughness ** 1.852 * diameter ** 4.871)


class TestLoopNetwork(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=100.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_junction("J2", base_demand=0.02, elevation=0.0)
        wn.add_junction("J3", base_demand=0.03, elevation=0.0)
        wn.add_junction("J4", base_demand=0.01, elevation=0.0)
        wn.add_pipe("P0", "R1", "J1", length=500, diameter=0.3, roughness=100)
        wn.add_pipe("P1", "J1", "J2", length=500, diameter=0.2, roughness=100)
        wn.add_pipe("P2", "J2", "J3", length=800, diameter=0.15, roughness=120)
        wn.add_pipe("P3", "J3", "J4", length=500, diameter=0.2, roughness=100)
        wn.add_pipe("P4", "J4", "J1", length=600, diameter=0.25, roughness=110)
        wn.options.hydraulic.accuracy = 1e-6
        sim = hydronet.sim.HydraulicSimulator(wn)
        self.results = sim.solve()
        self.wn = wn

    def test_continuity(self):
        flow = self.results.link["flowrate"].loc[0]
        demand = self.results.node["demand"].loc[0]
        for junction in ["J1", "J2", "J3", "J4"]:
            net = 0.0
            for link_name in self.wn.get_links_for_node(junction):
                link = self.wn.get_link(link_name)
                if link.end_node_name == junction:
                    net += flow[link_name]
                else:
                    net -= flow[link_name]
            self.assertAlmostEqual(net, demand[junction], delta=1e-6)

    def test_loop_energy(self):
        flow = self.results.link["flowrate"].loc[0]
        total = 0.0
        for name in ["P1", "P2", "P3", "P4"]:
            pipe = self.wn.get_link(name)
            r = _hw_resistance(pipe.length, pipe.diameter, pipe.roughness)
            q = flow[name]
            total += np.sign(q) * r * abs(q) ** 1.852
        self.assertAlmostEqual(total, 0.0, delta=1e-3)

    def test_headloss_matches_flow(self):
        flow = self.results.link["flowrate"].loc[0]
        headloss = self.results.link["headloss"].loc[0]
        for name in ["P0", "P1", "P2", "P3", "P4"]:
            pipe = self.wn.get_link(name)
            r = _hw_resistance(pipe.length, pipe.diameter, pipe.roughness)
            q = flow[name]
            self.assertAlmostEqual(headloss[name], np.sign(q) * r * abs(q) ** 1.852, delta=1e-3)

    def test_supply(self):
        flow = self.results.link["flowrate"].loc[0]
        self.assertAlmostEqual(flow["P0"], 0.06, delta=1e-6)
        self.assertIsNone(self.results.error_code)


class TestSeriesPipes(unittest.TestCase):
    def _model(self, roughness, diameter):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0)
        wn.add_reservoir("R2", base_head=40.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_pipe("P1", "R1", "J1", length=1000, diameter=diameter, roughness=roughness)
        wn.add_pipe("P2", "J1", "R2", length=1000, diameter=diameter, roughness=roughness)
        wn.options.hydraulic.accuracy = 1e-6
        return wn

    def test_flow_between_reservoirs(self):
        for roughness, diameter in [(100, 0.3), (130, 0.2), (80, 0.4)]:
            wn = self._model(roughness, diameter)
            results = hydronet.sim.HydraulicSimulator(wn).solve()
            r = _hw_resistance(2000.0, diameter, roughness)
            expected = (10.0 / r) ** (1.0 / 1.852)
            q = results.link["flowrate"].at[0, "P1"]
            self.assertAlmostEqual(q, expected, delta=1e-3 * expected)
            self.assertAlmostEqual(results.link["flowrate"].at[0, "P2"], q, delta=1e-6)
            self.assertAlmostEqual(results.node["head"].at[0, "J1"], 45.0, delta=1e-3)

    def test_darcy_weisbach(self):
        wn = self._model(0.00026, 0.3)
        wn.options.hydraulic.headloss = "D-W"
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        q = results.link["flowrate"].at[0, "P1"]
        self.assertGreater(q, 0.0)
        self.assertAlmostEqual(results.node["head"].at[0, "J1"], 45.0, delta=1e-3)


class TestCheckValve(unittest.TestCase):
    def test_reverse_flow_closes(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0)
        wn.add_reservoir("R2", base_head=60.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_pipe("CV1", "R1", "J1", check_valve=True)
        wn.add_pipe("P2", "J1", "R2")
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertEqual(results.link["flowrate"].at[0, "CV1"], 0.0)
        self.assertEqual(results.link["status"].at[0, "CV1"], hydronet.network.LinkStatus.Closed)
        self.assertAlmostEqual(results.node["head"].at[0, "J1"], 60.0, delta=1e-3)

    def test_forward_flow_opens(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=60.0)
        wn.add_reservoir("R2", base_head=50.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_pipe("CV1", "R1", "J1", check_valve=True)
        wn.add_pipe("P2", "J1", "R2")
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertGreater(results.link["flowrate"].at[0, "CV1"], 0.0)


class TestPressureDependentDemand(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=25.0)
        wn.add_junction("J1", base_demand=0.05, elevation=10.0)
        wn.add_pipe("P1", "R1", "J1", length=100, diameter=0.3, roughness=100)
        wn.options.hydraulic.demand_model = "PDD"
        wn.options.hydraulic.required_pressure = 20.0
        wn.options.hydraulic.minimum_pressure = 0.0
        wn.options.hydraulic.accuracy = 1e-6
        self.wn = wn

    def test_partial_demand(self):
        results = hydronet.sim.HydraulicSimulator(copy.deepcopy(self.wn)).solve()
        d = results.node["demand"].at[0, "J1"]
        p = results.node["pressure"].at[0, "J1"]
        self.assertLess(d, 0.05)
        self.assertGreater(p, 0.0)
        self.assertLess(p, 20.0)
        self.assertAlmostEqual(d, 0.05 * (p / 20.0) ** 0.5, delta=1e-4)

    def test_full_demand(self):
        wn = copy.deepcopy(self.wn)
        wn.options.hydraulic.required_pressure = 5.0
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertAlmostEqual(results.node["demand"].at[0, "J1"], 0.05, delta=1e-5)


class TestIsolatedJunctions(unittest.TestCase):
    def _model(self, demand):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0)
        wn.add_junction("J1", base_demand=0.01, elevation=0.0)
        wn.add_junction("J2", base_demand=demand, elevation=5.0)
        wn.add_pipe("P1", "R1", "J1")
        wn.add_pipe("P2", "J1", "J2", initial_status="CLOSED")
        return wn

    def test_isolated_demand_is_singular(self):
        wn = self._model(0.01)
        sim = hydronet.sim.HydraulicSimulator(wn)
        sim.open()
        try:
            sim.init()
            with self.assertRaises(SingularSystem) as cm:
                sim.run()
            self.assertIn("J2", cm.exception.names)
        finally:
            sim.close()
        self.assertFalse(wn._locked)

    def test_isolated_demand_toolkit_code(self):
        en = hydronet.epanet.toolkit.ENepanet(self._model(0.01))
        en.ENopenH()
        en.ENinitH(0)
        with self.assertRaises(EpanetException) as cm:
            en.ENrunH()
        self.assertEqual(cm.exception.code, 110)
        en.ENcloseH()

    def test_isolated_without_demand_is_pinned(self):
        results = hydronet.sim.HydraulicSimulator(self._model(0.0)).solve()
        self.assertIsNone(results.error_code)
        self.assertAlmostEqual(results.node["head"].at[0, "J2"], 5.0, delta=1e-9)
        self.assertEqual(results.link["flowrate"].at[0, "P2"], 0.0)
        self.assertAlmostEqual(results.link["flowrate"].at[0, "P1"], 0.01, delta=1e-6)

    def test_solve_reports_error(self):
        results = hydronet.sim.HydraulicSimulator(self._model(0.01)).solve()
        self.assertEqual(results.error_code, hydronet.sim.ResultsStatus.error)


class TestHeadPump(unittest.TestCase):
    def test_operating_point(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_curve("C1", "HEAD", [(0.05, 40.0)])
        wn.add_reservoir("R1", base_head=0.0)
        wn.add_reservoir("R2", base_head=30.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_pump("PU1", "R1", "J1", pump_type="HEAD", pump_parameter="C1")
        wn.add_pipe("P1", "J1", "R2", length=1000, diameter=0.3, roughness=100)
        wn.options.hydraulic.accuracy = 1e-6
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        A, B, C = wn.get_link("PU1").get_head_curve_coefficients()
        q = results.link["flowrate"].at[0, "PU1"]
        h = results.node["head"].at[0, "J1"]
        self.assertGreater(q, 0.0)
        self.assertAlmostEqual(h, A - B * q ** C, delta=1e-3)
        r = _hw_resistance(1000.0, 0.3, 100)
        self.assertAlmostEqual(h - 30.0, r * q ** 1.852, delta=1e-3)
        self.assertAlmostEqual(results.link["flowrate"].at[0, "P1"], q, delta=1e-6)


class TestControlValves(unittest.TestCase):
    def _model(self, valve_type, setting):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=80.0)
        wn.add_reservoir("R2", base_head=20.0)
        wn.add_junction("J1", base_demand=0.0, elevation=0.0)
        wn.add_junction("J2", base_demand=0.0, elevation=0.0)
        wn.add_pipe("P1", "R1", "J1", length=1000, diameter=0.3, roughness=100)
        wn.add_valve("V1", "J1", "J2", valve_type=valve_type, initial_setting=setting)
        wn.add_pipe("P2", "J2", "R2", length=1000, diameter=0.3, roughness=100)
        wn.options.hydraulic.accuracy = 1e-6
        return wn

    def test_prv_holds_downstream_pressure(self):
        wn = self._model("PRV", 30.0)
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertAlmostEqual(results.node["pressure"].at[0, "J2"], 30.0, delta=1e-2)
        self.assertGreater(results.node["head"].at[0, "J1"], 30.0)
        self.assertEqual(results.link["status"].at[0, "V1"], hydronet.network.LinkStatus.Active)

    def test_psv_holds_upstream_pressure(self):
        wn = self._model("PSV", 60.0)
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertAlmostEqual(results.node["pressure"].at[0, "J1"], 60.0, delta=1e-2)
        self.assertLess(results.node["head"].at[0, "J2"], 60.0)
        self.assertGreater(results.link["flowrate"].at[0, "V1"], 0.0)

    def test_fcv_limits_flow(self):
        wn = self._model("FCV", 0.01)
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        self.assertAlmostEqual(results.link["flowrate"].at[0, "V1"], 0.01, delta=1e-5)
        self.assertAlmostEqual(results.link["flowrate"].at[0, "P2"], 0.01, delta=1e-5)
        self.assertGreater(results.node["head"].at[0, "J1"], results.node["head"].at[0, "J2"])


class TestClosedLinkAtFullTank(unittest.TestCase):
    def _model(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=10.0)
        wn.add_tank("T1", elevation=0.0, init_level=5.0, max_level=5.0, diameter=10.0)
        wn.add_junction("J1", base_demand=0.01, elevation=0.0)
        wn.add_pipe("P1", "T1", "J1", length=100, diameter=0.2, roughness=100)
        wn.options.time.duration = 3 * 3600
        return wn

    def test_closed_pipe_stays_closed(self):
        wn = self._model()
        wn.add_pipe("P0", "R1", "T1", length=100, diameter=0.2, roughness=100, initial_status="CLOSED")
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        flow = results.link["flowrate"]["P0"]
        self.assertListEqual(flow.tolist(), [0.0] * len(flow))
        level = results.node["head"]["T1"]
        self.assertLess(level.iloc[-1], level.iloc[0])

    def test_closed_pump_stays_closed(self):
        wn = self._model()
        wn.add_curve("C1", "HEAD", [(0.05, 10.0)])
        wn.add_pump("PU1", "R1", "T1", pump_type="HEAD", pump_parameter="C1", initial_status="CLOSED")
        results = hydronet.sim.HydraulicSimulator(wn).solve()
        flow = results.link["flowrate"]["PU1"]
        self.assertListEqual(flow.tolist(), [0.0] * len(flow))
        status = results.link["status"]["PU1"]
        self.assertTrue(all(s == hydronet.network.LinkStatus.Closed for s in status))


if __name__ == "__main__":
    unittest.main()
