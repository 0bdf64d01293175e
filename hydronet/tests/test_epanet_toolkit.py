import copy
import os
import tempfile
import unittest

import hydronet
from hydronet.epanet.exceptions import EpanetException
from hydronet.epanet.toolkit import ENepanet
from hydronet.epanet.util import EN


def _query_model():
    wn = hydronet.network.WaterNetworkModel()
    wn.add_curve("C1", "HEAD", [(0.05, 40.0)])
    wn.add_curve("E1", "EFFICIENCY", [(0.02, 50.0), (0.05, 75.0), (0.08, 60.0)])
    wn.add_curve("HL", "HEADLOSS", [(0.0, 0.0), (0.1, 5.0)])
    wn.add_reservoir("R1", base_head=100.0)
    wn.add_junction("J1", base_demand=0.01, elevation=10.0)
    wn.add_junction("J2", base_demand=0.01, elevation=10.0)
    wn.add_tank("T1", elevation=50.0, init_level=5.0, max_level=10.0, diameter=10.0)
    wn.add_pipe("P1", "R1", "J1")
    wn.add_pipe("CV1", "J1", "J2", check_valve=True)
    wn.add_pipe("P2", "J1", "J2")
    wn.add_pipe("P3", "J2", "T1")
    wn.add_valve("V1", "J1", "J2", valve_type="GPV", initial_setting="HL")
    wn.add_pump("PU1", "R1", "J2", pump_type="HEAD", pump_parameter="C1")
    wn.add_pump("PU2", "R1", "J1", pump_type="POWER", pump_parameter=5000.0)
    wn.get_link("PU1").efficiency_curve_name = "E1"
    return wn


def _run_model():
    wn = hydronet.network.WaterNetworkModel()
    wn.add_reservoir("R1", base_head=50.0)
    wn.add_junction("J1", base_demand=0.01, elevation=0.0)
    wn.add_junction("J2", base_demand=0.01, elevation=0.0)
    wn.add_pipe("P1", "R1", "J1", length=500, diameter=0.2)
    wn.add_pipe("P2", "J1", "J2", length=500, diameter=0.2)
    wn.options.time.duration = 2 * 3600
    return wn


def _parallel_model():
    wn = _run_model()
    wn.add_pipe("P3", "R1", "J2", length=500, diameter=0.2)
    return wn


def _error_code(func, *args):
    try:
        func(*args)
    except EpanetException as e:
        return e.code
    return None


class TestToolkitQueries(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_counts(self):
        en = ENepanet(copy.deepcopy(self.wn))
        self.assertEqual(en.ENgetcount(EN.NODECOUNT), 4)
        self.assertEqual(en.ENgetcount(EN.TANKCOUNT), 2)
        self.assertEqual(en.ENgetcount(EN.LINKCOUNT), 7)
        self.assertEqual(en.ENgetcount(EN.CURVECOUNT), 3)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 0)
        with self.assertRaises(EpanetException) as cm:
            en.ENgetcount(99)
        self.assertEqual(cm.exception.code, 251)

    def test_ids_and_indices(self):
        en = ENepanet(copy.deepcopy(self.wn))
        # junctions first, then tanks, then reservoirs
        self.assertEqual(en.ENgetnodeid(1), "J1")
        self.assertEqual(en.ENgetnodeid(3), "T1")
        self.assertEqual(en.ENgetnodeindex("R1"), 4)
        self.assertEqual(en.ENgetlinkindex("PU1"), 6)
        self.assertEqual(en.ENgetlinkid(5), "V1")
        with self.assertRaises(EpanetException) as cm:
            en.ENgetnodeindex("NotANode")
        self.assertEqual(cm.exception.code, 203)
        with self.assertRaises(EpanetException) as cm:
            en.ENgetlinkid(0)
        self.assertEqual(cm.exception.code, 204)

    def test_pump_curves(self):
        en = ENepanet(copy.deepcopy(self.wn))
        pu1 = en.ENgetlinkindex("PU1")
        pu2 = en.ENgetlinkindex("PU2")
        self.assertEqual(en.ENgetlinkvalue(pu1, EN.EFFICIENCYCURVE), 2)
        self.assertEqual(en.ENgetlinkvalue(pu2, EN.EFFICIENCYCURVE), 0)
        self.assertEqual(en.ENgetlinkvalue(pu1, EN.HEADCURVE), 1)
        self.assertAlmostEqual(en.ENgetlinkvalue(pu2, EN.CONST_POWER), 5.0)
        with self.assertRaises(EpanetException) as cm:
            en.ENgetlinkvalue(en.ENgetlinkindex("P1"), EN.EFFICIENCYCURVE)
        self.assertEqual(cm.exception.code, 211)

    def test_tank_values(self):
        en = ENepanet(copy.deepcopy(self.wn))
        t1 = en.ENgetnodeindex("T1")
        area = 3.141592653589793 / 4.0 * 100.0
        self.assertAlmostEqual(en.ENgetnodevalue(t1, EN.TANKLEVEL), 5.0)
        self.assertAlmostEqual(en.ENgetnodevalue(t1, EN.INITVOLUME), 5.0 * area, 6)
        self.assertAlmostEqual(en.ENgetnodevalue(t1, EN.MAXVOLUME), 10.0 * area, 6)
        self.assertEqual(en.ENgetnodevalue(1, EN.TANKDIAM), 0.0)
        with self.assertRaises(EpanetException) as cm:
            en.ENgetnodevalue(1, EN.SOURCETYPE)
        self.assertEqual(cm.exception.code, 240)


class TestToolkitControls(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def _code(self, func, *args):
        with self.assertRaises(EpanetException) as cm:
            func(*args)
        return cm.exception.code

    def test_addcontrol_errors(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        t1 = en.ENgetnodeindex("T1")
        self.assertEqual(self._code(en.ENaddcontrol, EN.TIMER, 99, 0.0, 0, 3600.0), 204)
        self.assertEqual(self._code(en.ENaddcontrol, EN.TIMER, en.ENgetlinkindex("CV1"), 0.0, 0, 3600.0), 207)
        self.assertEqual(self._code(en.ENaddcontrol, 9, p1, 0.0, 0, 3600.0), 251)
        self.assertEqual(self._code(en.ENaddcontrol, EN.LOWLEVEL, p1, 0.0, 0, 2.0), 203)
        self.assertEqual(self._code(en.ENaddcontrol, EN.LOWLEVEL, p1, -1.0, t1, 2.0), 202)
        self.assertEqual(self._code(en.ENaddcontrol, EN.LOWLEVEL, p1, 0.0, t1, -2.0), 202)
        self.assertEqual(self._code(en.ENaddcontrol, EN.TIMER, en.ENgetlinkindex("V1"), 0.5, 0, 3600.0), 202)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 0)

    def test_addcontrol_roundtrip(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        pu1 = en.ENgetlinkindex("PU1")
        t1 = en.ENgetnodeindex("T1")
        self.assertEqual(en.ENaddcontrol(EN.TIMER, p1, 0.0, 0, 3600.0), 1)
        self.assertEqual(en.ENaddcontrol(EN.LOWLEVEL, pu1, 1.0, t1, 2.0), 2)
        self.assertEqual(en.ENaddcontrol(EN.TIMEOFDAY, p1, 1.0, 0, 90000.0), 3)

        timer = en.ENgetcontrol(1)
        self.assertDictEqual(timer, dict(index=1, type=EN.TIMER, linkindex=p1, setting=0.0, nodeindex=0,
                                         level=3600.0))
        level = en.ENgetcontrol(2)
        self.assertEqual(level["type"], EN.LOWLEVEL)
        self.assertEqual(level["linkindex"], pu1)
        self.assertEqual(level["nodeindex"], t1)
        self.assertAlmostEqual(level["setting"], 1.0)
        self.assertAlmostEqual(level["level"], 2.0)
        clock = en.ENgetcontrol(3)
        self.assertEqual(clock["type"], EN.TIMEOFDAY)
        self.assertAlmostEqual(clock["level"], 3600.0)

        en.ENdeletecontrol(1)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 2)
        self.assertEqual(en.ENgetcontrol(1)["type"], EN.LOWLEVEL)
        with self.assertRaises(EpanetException) as cm:
            en.ENgetcontrol(3)
        self.assertEqual(cm.exception.code, 241)


class TestToolkitDeletes(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_delete_trace_node(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "J2"
        en = ENepanet(wn)
        with self.assertRaises(EpanetException) as cm:
            en.ENdeletenode(en.ENgetnodeindex("J2"))
        self.assertEqual(cm.exception.code, 260)
        self.assertIn("J2", wn.node_name_list)

    def test_conditional_delete(self):
        wn = copy.deepcopy(self.wn)
        en = ENepanet(wn)
        en.ENaddcontrol(EN.TIMER, en.ENgetlinkindex("P1"), 0.0, 0, 3600.0)
        with self.assertRaises(EpanetException) as cm:
            en.ENdeletenode(en.ENgetnodeindex("J1"), EN.CONDITIONAL)
        self.assertEqual(cm.exception.code, 261)
        with self.assertRaises(EpanetException) as cm:
            en.ENdeletelink(en.ENgetlinkindex("P1"), EN.CONDITIONAL)
        self.assertEqual(cm.exception.code, 261)

        en.ENdeletenode(en.ENgetnodeindex("J1"), EN.UNCONDITIONAL)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 0)
        self.assertEqual(en.ENgetcount(EN.NODECOUNT), 3)
        # P1, CV1, P2, V1 and PU2 were attached to J1
        self.assertEqual(en.ENgetcount(EN.LINKCOUNT), 2)
        self.assertEqual(en.ENgetlinkid(1), "P3")
        self.assertEqual(en.ENgetnodeindex("J2"), 1)

    def test_delete_while_solver_open(self):
        wn = _run_model()
        en = ENepanet(wn)
        en.ENopenH()
        try:
            with self.assertRaises(EpanetException) as cm:
                en.ENdeletenode(1)
            self.assertEqual(cm.exception.code, 262)
            with self.assertRaises(EpanetException) as cm:
                en.ENdeletelink(1)
            self.assertEqual(cm.exception.code, 262)
        finally:
            en.ENcloseH()
        en.ENdeletelink(2)
        self.assertEqual(en.ENgetcount(EN.LINKCOUNT), 1)

    def test_delete_bad_index(self):
        en = ENepanet(copy.deepcopy(self.wn))
        with self.assertRaises(EpanetException) as cm:
            en.ENdeletenode(99)
        self.assertEqual(cm.exception.code, 203)


class TestToolkitAnalysis(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _run_model()

    def test_step_loop(self):
        en = ENepanet(copy.deepcopy(self.wn))
        en.ENopenH()
        en.ENinitH(11)
        times = []
        while True:
            times.append(en.ENrunH())
            head = en.ENgetnodevalue(1, EN.HEAD)
            self.assertEqual(head, en.ENgetnodevalue(1, EN.HEAD))
            self.assertAlmostEqual(en.ENgetnodevalue(1, EN.PRESSURE), head)
            self.assertLessEqual(en.ENgetstatistic(EN.RELATIVEERROR), 0.001)
            if en.ENnextH() <= 0:
                break
        en.ENcloseH()
        self.assertListEqual(times, [0, 3600, 7200])
        self.assertGreater(en.ENgetstatistic(EN.ITERATIONS), 0)

    def test_run_before_init(self):
        en = ENepanet(copy.deepcopy(self.wn))
        with self.assertRaises(EpanetException) as cm:
            en.ENrunH()
        self.assertEqual(cm.exception.code, 103)
        with self.assertRaises(EpanetException) as cm:
            en.ENinitH(0)
        self.assertEqual(cm.exception.code, 103)
        en.ENopenH()
        with self.assertRaises(EpanetException) as cm:
            en.ENinitH(7)
        self.assertEqual(cm.exception.code, 251)
        en.ENcloseH()

    def test_quality_needs_hydraulics(self):
        en = ENepanet(copy.deepcopy(self.wn))
        with self.assertRaises(EpanetException) as cm:
            en.ENopenQ()
        self.assertEqual(cm.exception.code, 104)
        with self.assertRaises(EpanetException) as cm:
            en.ENrunQ()
        self.assertEqual(cm.exception.code, 105)

    def test_trace_quality(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "R1"
        en = ENepanet(wn)
        en.ENsolveH()
        en.ENsolveQ()
        self.assertAlmostEqual(en.ENgetnodevalue(en.ENgetnodeindex("J2"), EN.QUALITY), 100.0, 6)
        self.assertAlmostEqual(en.ENgetstatistic(EN.MASSBALANCE), 1.0, delta=0.01)
        results = en.ENgetqualityresults()
        self.assertListEqual(list(results.node["quality"].index), [0, 3600, 7200])

    def test_hydraulics_file(self):
        wn = copy.deepcopy(self.wn)
        wn.options.quality.parameter = "AGE"
        en = ENepanet(wn)
        with tempfile.TemporaryDirectory() as tempdir:
            filename = os.path.join(tempdir, "saved.hyd")
            with self.assertRaises(EpanetException) as cm:
                en.ENsavehydfile(filename)
            self.assertEqual(cm.exception.code, 104)

            en.ENsolveH()
            en.ENsavehydfile(filename)
            en.ENusehydfile(filename)
            en.ENsolveQ()
            self.assertGreater(en.ENgetnodevalue(en.ENgetnodeindex("J2"), EN.QUALITY), 0.0)

            en.ENopenH()
            with self.assertRaises(EpanetException) as cm:
                en.ENusehydfile(filename)
            self.assertEqual(cm.exception.code, 108)
            en.ENcloseH()

            wn.add_junction("J9")
            with self.assertRaises(EpanetException) as cm:
                en.ENusehydfile(filename)
            self.assertEqual(cm.exception.code, 306)

            with self.assertRaises(EpanetException) as cm:
                en.ENusehydfile(os.path.join(tempdir, "missing.hyd"))
            self.assertEqual(cm.exception.code, 305)


class TestToolkitSetControl(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_setcontrol_keeps_number(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        pu1 = en.ENgetlinkindex("PU1")
        t1 = en.ENgetnodeindex("T1")
        en.ENaddcontrol(EN.TIMER, p1, 0.0, 0, 3600.0)
        en.ENaddcontrol(EN.TIMER, p1, 1.0, 0, 7200.0)
        en.ENsetcontrol(1, EN.HILEVEL, pu1, 0.0, t1, 8.0)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 2)
        first = en.ENgetcontrol(1)
        self.assertEqual(first["type"], EN.HILEVEL)
        self.assertEqual(first["linkindex"], pu1)
        self.assertEqual(first["nodeindex"], t1)
        self.assertAlmostEqual(first["level"], 8.0)
        second = en.ENgetcontrol(2)
        self.assertEqual(second["type"], EN.TIMER)
        self.assertAlmostEqual(second["level"], 7200.0)

    def test_setcontrol_errors(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        en.ENaddcontrol(EN.TIMER, p1, 0.0, 0, 3600.0)
        self.assertEqual(_error_code(en.ENsetcontrol, 2, EN.TIMER, p1, 0.0, 0, 3600.0), 241)
        self.assertEqual(_error_code(en.ENsetcontrol, 1, EN.TIMER, 99, 0.0, 0, 3600.0), 204)
        self.assertEqual(_error_code(en.ENsetcontrol, 1, EN.TIMER, en.ENgetlinkindex("CV1"), 0.0, 0, 3600.0), 207)
        self.assertEqual(_error_code(en.ENsetcontrol, 1, 9, p1, 0.0, 0, 3600.0), 251)
        self.assertEqual(_error_code(en.ENsetcontrol, 1, EN.TIMER, p1, -1.0, 0, 3600.0), 202)
        # a failed replacement leaves the control as it was
        self.assertDictEqual(en.ENgetcontrol(1), dict(index=1, type=EN.TIMER, linkindex=p1, setting=0.0,
                                                      nodeindex=0, level=3600.0))


class TestToolkitRules(unittest.TestCase):
    rule_text = "\n".join(["RULE R1",
                           "IF TANK T1 LEVEL BELOW 2",
                           "AND SYSTEM CLOCKTIME >= 6:00 AM",
                           "THEN PUMP PU2 STATUS IS OPEN",
                           "ELSE PUMP PU2 STATUS IS CLOSED",
                           "PRIORITY 2"])

    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_addrule(self):
        en = ENepanet(copy.deepcopy(self.wn))
        self.assertEqual(en.ENaddrule(self.rule_text), 1)
        self.assertEqual(en.ENgetcount(EN.RULECOUNT), 1)
        self.assertEqual(en.ENgetcount(EN.CONTROLCOUNT), 0)
        self.assertEqual(en.ENgetruleID(1), "R1")
        self.assertDictEqual(en.ENgetrule(1), dict(npremises=2, nthenactions=1, nelseactions=1, priority=2.0))

        level = en.ENgetpremise(1, 1)
        self.assertEqual(level["logop"], EN.R_IF)
        self.assertEqual(level["object"], EN.R_NODE)
        self.assertEqual(level["objindex"], en.ENgetnodeindex("T1"))
        self.assertEqual(level["variable"], EN.R_LEVEL)
        # tank level relations are inclusive
        self.assertEqual(level["relop"], EN.R_LE)
        self.assertAlmostEqual(level["value"], 2.0)
        clock = en.ENgetpremise(1, 2)
        self.assertEqual(clock["logop"], EN.R_AND)
        self.assertEqual(clock["object"], EN.R_SYSTEM)
        self.assertEqual(clock["objindex"], 0)
        self.assertEqual(clock["variable"], EN.R_CLOCKTIME)
        self.assertEqual(clock["relop"], EN.R_GE)
        self.assertAlmostEqual(clock["value"], 6 * 3600.0)

        pu2 = en.ENgetlinkindex("PU2")
        self.assertDictEqual(en.ENgetthenaction(1, 1), dict(linkindex=pu2, status=EN.R_IS_OPEN, setting=0.0))
        self.assertDictEqual(en.ENgetelseaction(1, 1), dict(linkindex=pu2, status=EN.R_IS_CLOSED, setting=0.0))

    def test_status_premise_and_setting_action(self):
        en = ENepanet(copy.deepcopy(self.wn))
        en.ENaddrule(self.rule_text)
        text = "RULE R2\nIF PUMP PU1 STATUS IS OPEN\nOR LINK P1 FLOW > 0.05\nTHEN PUMP PU1 SETTING = 0.75"
        self.assertEqual(en.ENaddrule(text), 2)
        status = en.ENgetpremise(2, 1)
        self.assertEqual(status["object"], EN.R_LINK)
        self.assertEqual(status["objindex"], en.ENgetlinkindex("PU1"))
        self.assertEqual(status["variable"], EN.R_STATUS)
        self.assertEqual(status["relop"], EN.R_IS)
        self.assertEqual(status["status"], EN.R_IS_OPEN)
        self.assertEqual(status["value"], 0.0)
        flow = en.ENgetpremise(2, 2)
        self.assertEqual(flow["logop"], EN.R_OR)
        self.assertEqual(flow["variable"], EN.R_FLOW)
        self.assertEqual(flow["relop"], EN.R_GT)
        self.assertAlmostEqual(flow["value"], 0.05)
        action = en.ENgetthenaction(2, 1)
        self.assertEqual(action["status"], 0)
        self.assertAlmostEqual(action["setting"], 0.75)
        self.assertEqual(en.ENgetrule(2)["nelseactions"], 0)

    def test_priority_and_delete(self):
        en = ENepanet(copy.deepcopy(self.wn))
        en.ENaddrule(self.rule_text)
        en.ENaddrule("RULE R2\nIF SYSTEM DEMAND > 0.5\nTHEN PIPE P1 STATUS IS CLOSED")
        en.ENsetrulepriority(1, 5)
        self.assertEqual(en.ENgetrule(1)["priority"], 5.0)
        self.assertEqual(en.ENgetpremise(2, 1)["variable"], EN.R_DEMAND)
        en.ENdeleterule(1)
        self.assertEqual(en.ENgetcount(EN.RULECOUNT), 1)
        self.assertEqual(en.ENgetruleID(1), "R2")
        en.ENdeleterule(1)
        self.assertEqual(en.ENgetcount(EN.RULECOUNT), 0)

    def test_rule_errors(self):
        en = ENepanet(copy.deepcopy(self.wn))
        self.assertEqual(_error_code(en.ENgetrule, 1), 257)
        en.ENaddrule(self.rule_text)
        self.assertEqual(_error_code(en.ENgetruleID, 2), 257)
        self.assertEqual(_error_code(en.ENsetrulepriority, 0, 1.0), 257)
        self.assertEqual(_error_code(en.ENdeleterule, 2), 257)
        self.assertEqual(_error_code(en.ENgetpremise, 1, 3), 258)
        self.assertEqual(_error_code(en.ENgetthenaction, 1, 2), 258)
        self.assertEqual(_error_code(en.ENgetelseaction, 1, 0), 258)

        self.assertEqual(_error_code(en.ENaddrule, "IF TANK T1 LEVEL BELOW 2"), 250)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nTHEN PUMP PU1 STATUS IS OPEN"), 250)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nIF TANK T1 LEVEL BELOW 2"), 250)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nIF TANK T1 LEVEL BELOW 2\n"
                                                   "THEN PUMP PU1 STATUS IS HALFWAY"), 250)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nIF TANK TX LEVEL BELOW 2\n"
                                                   "THEN PUMP PU1 STATUS IS OPEN"), 203)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nIF TANK T1 LEVEL BELOW 2\n"
                                                   "THEN PUMP PUX STATUS IS OPEN"), 204)
        self.assertEqual(_error_code(en.ENaddrule, "RULE R3\nIF TANK T1 LEVEL BELOW two\n"
                                                   "THEN PUMP PU1 STATUS IS OPEN"), 202)
        self.assertEqual(_error_code(en.ENaddrule, self.rule_text), 215)
        two_rules = "RULE A\nIF SYSTEM TIME >= 1\nTHEN PIPE P1 STATUS IS CLOSED\n" \
                    "RULE B\nIF SYSTEM TIME >= 2\nTHEN PIPE P1 STATUS IS OPEN"
        self.assertEqual(_error_code(en.ENaddrule, two_rules), 250)
        self.assertEqual(en.ENgetcount(EN.RULECOUNT), 1)

    def test_rule_acts_during_run(self):
        en = ENepanet(_parallel_model())
        en.ENaddrule("RULE CLOSE_P2\nIF SYSTEM TIME >= 1\nTHEN PIPE P2 STATUS IS CLOSED")
        p2 = en.ENgetlinkindex("P2")
        flows = {}
        status = {}
        en.ENopenH()
        en.ENinitH(0)
        while True:
            t = en.ENrunH()
            flows[t] = en.ENgetlinkvalue(p2, EN.FLOW)
            status[t] = en.ENgetlinkvalue(p2, EN.STATUS)
            if en.ENnextH() <= 0:
                break
        en.ENcloseH()
        self.assertGreater(abs(flows[0]), 1e-4)
        self.assertEqual(status[0], 1)
        self.assertAlmostEqual(flows[7200], 0.0, 6)
        self.assertEqual(status[7200], 0)


class TestToolkitSetValues(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_link_status_and_setting(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p2 = en.ENgetlinkindex("P2")
        pu1 = en.ENgetlinkindex("PU1")
        en.ENsetlinkvalue(p2, EN.STATUS, 0)
        self.assertEqual(en.ENgetlinkvalue(p2, EN.STATUS), 0)
        en.ENsetlinkvalue(p2, EN.STATUS, 1)
        self.assertEqual(en.ENgetlinkvalue(p2, EN.STATUS), 1)
        en.ENsetlinkvalue(p2, EN.INITSTATUS, 0)
        self.assertEqual(en.ENgetlinkvalue(p2, EN.INITSTATUS), 0)

        en.ENsetlinkvalue(pu1, EN.SETTING, 0.8)
        self.assertAlmostEqual(en.ENgetlinkvalue(pu1, EN.SETTING), 0.8)
        self.assertEqual(en.ENgetlinkvalue(pu1, EN.STATUS), 1)
        en.ENsetlinkvalue(pu1, EN.SETTING, 0.0)
        self.assertEqual(en.ENgetlinkvalue(pu1, EN.STATUS), 0)
        en.ENsetlinkvalue(pu1, EN.INITSETTING, 0.9)
        self.assertAlmostEqual(en.ENgetlinkvalue(pu1, EN.PUMP_SPEED), 0.9)

    def test_link_physical_values(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        en.ENsetlinkvalue(p1, EN.SETTING, 120.0)
        self.assertAlmostEqual(en.ENgetlinkvalue(p1, EN.ROUGHNESS), 120.0)
        en.ENsetlinkvalue(p1, EN.DIAMETER, 0.25)
        self.assertAlmostEqual(en.ENgetlinkvalue(p1, EN.DIAMETER), 0.25)
        en.ENsetlinkvalue(p1, EN.KBULK, -0.5)
        self.assertAlmostEqual(en.ENgetlinkvalue(p1, EN.KBULK), -0.5)

    def test_link_value_errors(self):
        en = ENepanet(copy.deepcopy(self.wn))
        p1 = en.ENgetlinkindex("P1")
        pu1 = en.ENgetlinkindex("PU1")
        self.assertEqual(_error_code(en.ENsetlinkvalue, en.ENgetlinkindex("CV1"), EN.STATUS, 0), 207)
        self.assertEqual(_error_code(en.ENsetlinkvalue, p1, EN.STATUS, 2), 211)
        self.assertEqual(_error_code(en.ENsetlinkvalue, p1, EN.ROUGHNESS, 0.0), 211)
        self.assertEqual(_error_code(en.ENsetlinkvalue, pu1, EN.LENGTH, 100.0), 211)
        self.assertEqual(_error_code(en.ENsetlinkvalue, pu1, EN.KBULK, -0.5), 211)
        self.assertEqual(_error_code(en.ENsetlinkvalue, en.ENgetlinkindex("V1"), EN.SETTING, 0.5), 211)
        self.assertEqual(_error_code(en.ENsetlinkvalue, p1, EN.FLOW, 1.0), 251)
        self.assertEqual(_error_code(en.ENsetlinkvalue, 99, EN.STATUS, 0), 204)

    def test_status_while_running(self):
        en = ENepanet(_parallel_model())
        p1 = en.ENgetlinkindex("P1")
        p2 = en.ENgetlinkindex("P2")
        en.ENopenH()
        en.ENinitH(0)
        self.assertEqual(en.ENrunH(), 0)
        self.assertGreater(abs(en.ENgetlinkvalue(p2, EN.FLOW)), 1e-4)
        self.assertEqual(_error_code(en.ENsetlinkvalue, p1, EN.DIAMETER, 0.3), 262)
        en.ENsetlinkvalue(p2, EN.STATUS, 0)
        en.ENnextH()
        self.assertEqual(en.ENrunH(), 3600)
        self.assertAlmostEqual(en.ENgetlinkvalue(p2, EN.FLOW), 0.0, 6)
        self.assertEqual(en.ENgetlinkvalue(p2, EN.STATUS), 0)
        en.ENcloseH()
        en.ENsetlinkvalue(p1, EN.DIAMETER, 0.3)
        self.assertAlmostEqual(en.ENgetlinkvalue(p1, EN.DIAMETER), 0.3)

    def test_node_values(self):
        wn = copy.deepcopy(self.wn)
        en = ENepanet(wn)
        j1 = en.ENgetnodeindex("J1")
        t1 = en.ENgetnodeindex("T1")
        r1 = en.ENgetnodeindex("R1")
        en.ENsetnodevalue(j1, EN.BASEDEMAND, 0.02)
        self.assertAlmostEqual(en.ENgetnodevalue(j1, EN.BASEDEMAND), 0.02)
        en.ENsetnodevalue(j1, EN.ELEVATION, 12.0)
        self.assertAlmostEqual(en.ENgetnodevalue(j1, EN.ELEVATION), 12.0)
        en.ENsetnodevalue(t1, EN.TANKLEVEL, 7.0)
        self.assertAlmostEqual(en.ENgetnodevalue(t1, EN.TANKLEVEL), 7.0)
        en.ENsetnodevalue(t1, EN.MIXFRACTION, 0.5)
        self.assertAlmostEqual(en.ENgetnodevalue(t1, EN.MIXFRACTION), 0.5)
        en.ENsetnodevalue(r1, EN.ELEVATION, 110.0)
        self.assertAlmostEqual(wn.get_node("R1").base_head, 110.0)

        self.assertEqual(_error_code(en.ENsetnodevalue, t1, EN.TANKLEVEL, 20.0), 209)
        self.assertEqual(_error_code(en.ENsetnodevalue, t1, EN.BASEDEMAND, 0.1), 209)
        self.assertEqual(_error_code(en.ENsetnodevalue, j1, EN.TANKDIAM, 5.0), 209)
        self.assertEqual(_error_code(en.ENsetnodevalue, j1, EN.PATTERN, 4), 205)
        self.assertEqual(_error_code(en.ENsetnodevalue, j1, EN.HEAD, 1.0), 251)

    def test_node_values_while_running(self):
        en = ENepanet(_run_model())
        j1 = en.ENgetnodeindex("J1")
        en.ENopenH()
        self.assertEqual(_error_code(en.ENsetnodevalue, j1, EN.ELEVATION, 5.0), 262)
        en.ENsetnodevalue(j1, EN.BASEDEMAND, 0.02)
        en.ENinitH(0)
        en.ENrunH()
        self.assertAlmostEqual(en.ENgetnodevalue(j1, EN.DEMAND), 0.02, 6)
        en.ENcloseH()

    def test_quality_info(self):
        wn = copy.deepcopy(self.wn)
        en = ENepanet(wn)
        self.assertDictEqual(en.ENgetqualinfo(), dict(qualcode=EN.NONE, chemname="", chemunits="", tracenode=0))
        wn.options.quality.parameter = "CHEMICAL"
        wn.options.quality.chemical_name = "Chlorine"
        info = en.ENgetqualinfo()
        self.assertEqual(info["qualcode"], EN.CHEM)
        self.assertEqual(info["chemname"], "Chlorine")
        self.assertEqual(info["chemunits"], "mg/L")
        wn.options.quality.parameter = "TRACE"
        wn.options.quality.trace_node = "T1"
        self.assertDictEqual(en.ENgetqualtype(), dict(qualcode=EN.TRACE, tracenode=en.ENgetnodeindex("T1")))
        self.assertEqual(en.ENgetqualinfo()["chemunits"], "dimensionless")


class TestToolkitAdds(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.wn = _query_model()

    def test_addnode(self):
        en = ENepanet(copy.deepcopy(self.wn))
        # junctions come before tanks and reservoirs
        self.assertEqual(en.ENaddnode("J3", EN.JUNCTION), 3)
        self.assertEqual(en.ENgetnodeindex("T1"), 4)
        self.assertEqual(en.ENaddnode("T2", EN.TANK), 5)
        self.assertEqual(en.ENaddnode("R2", EN.RESERVOIR), 7)
        self.assertEqual(en.ENgetcount(EN.NODECOUNT), 7)
        self.assertEqual(en.ENgetcount(EN.TANKCOUNT), 4)
        self.assertEqual(_error_code(en.ENaddnode, "J1", EN.JUNCTION), 215)
        self.assertEqual(_error_code(en.ENaddnode, "bad id", EN.JUNCTION), 252)
        self.assertEqual(_error_code(en.ENaddnode, "J4", 7), 251)
        self.assertEqual(en.ENgetcount(EN.NODECOUNT), 7)

    def test_addlink(self):
        wn = copy.deepcopy(self.wn)
        en = ENepanet(wn)
        self.assertEqual(en.ENaddlink("P9", EN.PIPE, "J1", "J2"), 8)
        self.assertEqual(en.ENaddlink("CV9", EN.CVPIPE, "J2", "T1"), 9)
        self.assertEqual(en.ENaddlink("V9", EN.PRV, "J1", "J2"), 10)
        self.assertEqual(en.ENaddlink("PU9", EN.PUMP, "R1", "J2"), 11)
        self.assertTrue(wn.get_link("CV9").check_valve)
        self.assertEqual(wn.get_link("V9").valve_type, "PRV")
        self.assertEqual(en.ENgetlinkvalue(9, EN.INITSTATUS), 1)
        self.assertEqual(_error_code(en.ENaddlink, "P1", EN.PIPE, "J1", "J2"), 215)
        self.assertEqual(_error_code(en.ENaddlink, "P10", EN.PIPE, "J1", "JX"), 203)
        self.assertEqual(_error_code(en.ENaddlink, "V10", EN.GPV, "J1", "J2"), 251)
        self.assertEqual(en.ENgetcount(EN.LINKCOUNT), 11)

    def test_add_while_solver_open(self):
        en = ENepanet(_run_model())
        en.ENopenH()
        try:
            self.assertEqual(_error_code(en.ENaddnode, "J3", EN.JUNCTION), 262)
            self.assertEqual(_error_code(en.ENaddlink, "P3", EN.PIPE, "J1", "J2"), 262)
        finally:
            en.ENcloseH()
        self.assertEqual(en.ENaddlink("P3", EN.PIPE, "R1", "J2"), 3)


if __name__ == "__main__":
    unittest.main()
