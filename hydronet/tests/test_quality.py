import copy
import math
import os
import tempfile
import unittest

import hydronet
from hydronet.utils.exceptions import SimulatorError


class TestQualityTransport(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0, initial_quality=1.0)
        wn.add_junction("J1", base_demand=0.01, elevation=0.0)
        wn.add_junction("J2", base_demand=0.01, elevation=0.0)
        wn.add_pipe("P1", "R1", "J1", length=500, diameter=0.2, roughness=100)
        wn.add_pipe("P2", "J1", "J2", length=500, diameter=0.2, roughness=100)
        wn.options.time.duration = 12 * 3600
        wn.options.time.quality_timestep = 60
        self.wn = wn

    def _run(self, wn):
        hyd = hydronet.sim.HydraulicSimulator(wn)
        hyd.solve()
        qual = hydronet.sim.QualitySimulator(wn, hyd)
        results = qual.solve()
        return qual, results

    def test_trace(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "R1"
        qual, results = self._run(wn)
        quality = results.node["quality"]
        self.assertAlmostEqual(quality.at[0, "R1"], 100.0, 6)
        self.assertAlmostEqual(quality.at[0, "J2"], 0.0, 6)
        self.assertAlmostEqual(quality.at[12 * 3600, "J1"], 100.0, 6)
        self.assertAlmostEqual(quality.at[12 * 3600, "J2"], 100.0, 6)
        self.assertAlmostEqual(qual.mass_balance["ratio"], 1.0, delta=0.01)

    def test_trace_arrival(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "R1"
        wn.options.time.report_timestep = 300
        qual, results = self._run(wn)
        quality = results.node["quality"]["J1"]
        # P1 holds 15.7 m3 and carries 0.02 m3/s, so the front arrives near 785 s
        self.assertLess(quality[600], 1.0)
        self.assertGreater(quality[900], 99.0)

    def test_water_age(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "AGE"
        qual, results = self._run(wn)
        travel = math.pi / 4.0 * 0.2 ** 2 * 500.0 / 0.02
        self.assertAlmostEqual(results.node["quality"].at[12 * 3600, "J1"], travel, delta=120.0)
        self.assertEqual(results.node["quality"].at[12 * 3600, "R1"], 0.0)

    def test_first_order_decay(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "CHEMICAL"
        wn.options.reaction.bulk_coeff = -1.0e-4
        qual, results = self._run(wn)
        travel = math.pi / 4.0 * 0.2 ** 2 * 500.0 / 0.02
        expected = math.exp(-1.0e-4 * travel)
        self.assertAlmostEqual(results.node["quality"].at[12 * 3600, "J1"], expected, delta=0.01)
        self.assertGreater(qual.mass_balance["reacted"], 0.0)
        self.assertAlmostEqual(qual.mass_balance["ratio"], 1.0, delta=0.01)

    def test_from_hydraulics_file(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "CHEMICAL"
        with tempfile.TemporaryDirectory() as tempdir:
            filename = os.path.join(tempdir, "run.hyd")
            wn.options.hydraulic.hydraulics_filename = filename
            hyd = hydronet.sim.HydraulicSimulator(wn)
            hyd.solve(save=True)
            from_records = hydronet.sim.QualitySimulator(wn, hyd.records).solve()
            from_file = hydronet.sim.QualitySimulator(wn, filename).solve()
        self.assertListEqual(from_records.node["quality"].values.tolist(),
                             from_file.node["quality"].values.tolist())

    def test_trace_needs_node(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        hyd = hydronet.sim.HydraulicSimulator(wn)
        hyd.solve()
        qual = hydronet.sim.QualitySimulator(wn, hyd)
        self.assertRaises(SimulatorError, qual.open)

    def test_no_hydraulics(self):
        wn = copy.deepcopy(self.wn)
        qual = hydronet.sim.QualitySimulator(wn, [])
        self.assertRaises(SimulatorError, qual.open)
        self.assertRaises(SimulatorError, hydronet.sim.QualitySimulator(wn).open)

    def test_use_hydraulics_option(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "CHEMICAL"
        with tempfile.TemporaryDirectory() as tempdir:
            wn.options.hydraulic.hydraulics_filename = os.path.join(tempdir, "option.hyd")
            wn.options.hydraulic.hydraulics = "SAVE"
            hyd = hydronet.sim.HydraulicSimulator(wn)
            hyd.solve()
            expected = hydronet.sim.QualitySimulator(wn, hyd.records).solve()
            wn.options.hydraulic.hydraulics = "USE"
            results = hydronet.sim.QualitySimulator(wn).solve()
        self.assertListEqual(results.node["quality"].values.tolist(),
                             expected.node["quality"].values.tolist())

    def test_time_statistic(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "R1"
        wn.options.time.statistic = "MAXIMUM"
        qual, results = self._run(wn)
        quality = results.node["quality"]
        self.assertListEqual(list(quality.index), ["MAXIMUM"])
        self.assertAlmostEqual(quality.at["MAXIMUM", "J2"], 100.0, 6)


class TestTankMixing(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        wn = hydronet.network.WaterNetworkModel()
        # the tank fills while J1 draws nothing and drains while it draws 0.02 m3/s
        wn.add_pattern("pat1", [0.0, 1.0])
        wn.add_reservoir("R1", base_head=20.0, initial_quality=1.0)
        wn.add_junction("J1", base_demand=0.02, demand_pattern="pat1", elevation=0.0)
        wn.add_tank("T1", elevation=0.0, init_level=5.0, min_level=0.0, max_level=15.0, diameter=10.0,
                    initial_quality=0.0)
        wn.add_pipe("P1", "R1", "J1", length=2000, diameter=0.15, roughness=100)
        wn.add_pipe("P2", "J1", "T1", length=100, diameter=0.3, roughness=100)
        wn.options.time.duration = 48 * 3600
        wn.options.time.pattern_timestep = 4 * 3600
        wn.options.time.quality_timestep = 60
        wn.options.quality.parameter = "CHEMICAL"
        self.wn = wn

    def _run(self, mixing_model, mixing_fraction=None):
        wn = copy.deepcopy(self.wn)
        tank = wn.get_node("T1")
        tank.mixing_model = mixing_model
        if mixing_fraction is not None:
            tank.mixing_fraction = mixing_fraction
        hyd = hydronet.sim.HydraulicSimulator(wn)
        hydraulics = hyd.solve()
        qual = hydronet.sim.QualitySimulator(wn, hyd)
        results = qual.solve()
        return hydraulics, qual, results

    def _check(self, mixing_model, mixing_fraction=None):
        hydraulics, qual, results = self._run(mixing_model, mixing_fraction)
        level = hydraulics.node["head"]["T1"].values
        self.assertTrue(any(level[1:] > level[:-1]))
        self.assertTrue(any(level[1:] < level[:-1]))
        self.assertAlmostEqual(qual.mass_balance["ratio"], 1.0, delta=0.01)
        for values in (results.node["quality"]["T1"], results.node["quality"]["J1"],
                       results.link["quality"]["P2"]):
            self.assertGreaterEqual(values.min(), -1e-6)
            self.assertLessEqual(values.max(), 1.0 + 1e-6)
        self.assertGreater(results.node["quality"]["T1"].iloc[-1], 0.0)
        return results

    def test_mixed(self):
        self._check("MIXED")

    def test_two_compartment(self):
        self._check("2COMP", mixing_fraction=0.4)

    def test_fifo(self):
        self._check("FIFO")

    def test_lifo(self):
        self._check("LIFO")


class TestReservoirSource(unittest.TestCase):
    def test_concentration_source_sets_outflow(self):
        wn = hydronet.network.WaterNetworkModel()
        wn.add_reservoir("R1", base_head=50.0, initial_quality=0.5)
        wn.add_junction("J1", base_demand=0.01, elevation=0.0)
        wn.add_pipe("P1", "R1", "J1", length=500, diameter=0.2, roughness=100)
        wn.add_source("S1", "R1", "CONCEN", 2.0)
        wn.options.time.duration = 6 * 3600
        wn.options.time.quality_timestep = 60
        wn.options.quality.parameter = "CHEMICAL"
        hyd = hydronet.sim.HydraulicSimulator(wn)
        hyd.solve()
        qual = hydronet.sim.QualitySimulator(wn, hyd)
        results = qual.solve()
        self.assertAlmostEqual(results.node["quality"].at[6 * 3600, "J1"], 2.0, delta=1e-6)
        self.assertAlmostEqual(qual.mass_balance["ratio"], 1.0, delta=0.01)


if __name__ == "__main__":
    unittest.main()
