import unittest

import hydronet
from hydronet.network.options import EnergyOptions


class TestTimeOptions(unittest.TestCase):
    def test_integer_times(self):
        opts = hydronet.network.Options()
        opts.time.duration = 86400.0
        self.assertEqual(opts.time.duration, 86400)
        self.assertIsInstance(opts.time.duration, int)
        self.assertRaises(ValueError, setattr, opts.time, "duration", "one day")
        self.assertRaises(ValueError, setattr, opts.time, "report_start", -1)

    def test_timestep_minimum(self):
        opts = hydronet.network.Options()
        opts.time.hydraulic_timestep = 0
        self.assertEqual(opts.time.hydraulic_timestep, 1)

    def test_unknown_attribute(self):
        opts = hydronet.network.Options()
        self.assertRaises(AttributeError, setattr, opts.time, "durration", 3600)


class TestHydraulicOptions(unittest.TestCase):
    def test_headloss(self):
        opts = hydronet.network.Options()
        self.assertEqual(opts.hydraulic.headloss, "H-W")
        opts.hydraulic.headloss = "d-w"
        self.assertEqual(opts.hydraulic.headloss, "D-W")
        self.assertRaises(ValueError, setattr, opts.hydraulic, "headloss", "MANNING")

    def test_demand_model_aliases(self):
        opts = hydronet.network.Options()
        opts.hydraulic.demand_model = "PDD"
        self.assertEqual(opts.hydraulic.demand_model, "PDA")
        opts.hydraulic.demand_model = "dd"
        self.assertEqual(opts.hydraulic.demand_model, "DDA")
        self.assertRaises(ValueError, setattr, opts.hydraulic, "demand_model", "LEAKY")

    def test_numeric_limits(self):
        opts = hydronet.network.Options()
        self.assertRaises(ValueError, setattr, opts.hydraulic, "trials", 0)
        self.assertRaises(ValueError, setattr, opts.hydraulic, "accuracy", 0.0)
        self.assertRaises(ValueError, setattr, opts.hydraulic, "viscosity", -1.0)
        self.assertRaises(ValueError, setattr, opts.hydraulic, "unbalanced", "MAYBE")
        self.assertRaises(AttributeError, setattr, opts.hydraulic, "not_an_option", 1)


class TestQualityOptions(unittest.TestCase):
    def test_parameter(self):
        opts = hydronet.network.Options()
        self.assertEqual(opts.quality.parameter, "NONE")
        opts.quality.parameter = "chem"
        self.assertEqual(opts.quality.parameter, "CHEMICAL")
        opts.quality.parameter = "trace"
        self.assertEqual(opts.quality.parameter, "TRACE")
        self.assertRaises(ValueError, setattr, opts.quality, "parameter", "SALT")

    def test_wall_order(self):
        opts = hydronet.network.Options()
        opts.reaction.wall_order = 0
        self.assertEqual(opts.reaction.wall_order, 0.0)
        self.assertRaises(ValueError, setattr, opts.reaction, "wall_order", 2)


class TestEnergyOptions(unittest.TestCase):
    def test_global_efficiency(self):
        opts = hydronet.network.Options()
        self.assertEqual(opts.energy.global_efficiency, 75.0)
        opts.energy.global_efficiency = "80"
        self.assertEqual(opts.energy.global_efficiency, 80.0)
        self.assertRaises(ValueError, setattr, opts.energy, "global_efficiency", 0.0)

    def test_no_price_options(self):
        opts = hydronet.network.Options()
        self.assertRaises(AttributeError, setattr, opts.energy, "global_price", 0.1)
        self.assertRaises(AttributeError, setattr, opts.energy, "global_pattern", "P1")
        self.assertRaises(TypeError, EnergyOptions, global_price=0.1)
        self.assertFalse(hasattr(opts.energy, "global_price"))

    def test_no_user_options(self):
        opts = hydronet.network.Options()
        self.assertFalse(hasattr(opts, "user"))
        self.assertRaises(ValueError, setattr, opts, "user", {})


class TestReportOptions(unittest.TestCase):
    def test_statistic(self):
        opts = hydronet.network.Options()
        self.assertEqual(opts.time.statistic, "NONE")
        opts.time.statistic = "maximum"
        self.assertEqual(opts.time.statistic, "MAXIMUM")
        self.assertRaises(ValueError, setattr, opts.time, "statistic", "MEDIAN")

    def test_hydraulics_file_mode(self):
        opts = hydronet.network.Options()
        self.assertIsNone(opts.hydraulic.hydraulics)
        opts.hydraulic.hydraulics = "save"
        self.assertEqual(opts.hydraulic.hydraulics, "SAVE")
        self.assertRaises(ValueError, setattr, opts.hydraulic, "hydraulics", "LOAD")


if __name__ == "__main__":
    unittest.main()
