import unittest

import hydronet.epanet.exceptions
from hydronet.epanet.toolkit import ENgetwarning


class TestEpanetExceptions(unittest.TestCase):

    def test_epanet_exception(self):
        try:
            raise hydronet.epanet.exceptions.EpanetException(213, 'CHLORINE', 'quality parameter')
        except Exception as e:
            self.assertTupleEqual(e.args, ("(Error 213) invalid option value 'CHLORINE' ['quality parameter']",))
        try:
            raise hydronet.epanet.exceptions.EpanetException(999)
        except Exception as e:
            self.assertTupleEqual(e.args, ('(Error 999) unknown error',))
        try:
            raise hydronet.epanet.exceptions.EpanetException(108)
        except Exception as e:
            self.assertTupleEqual(e.args, ('(Error 108) cannot use external file while hydraulics solver is active',))

    def test_unused_format(self):
        try:
            raise hydronet.epanet.exceptions.EpanetException(305)
        except Exception as e:
            self.assertTupleEqual(e.args, ('(Error 305) cannot open hydraulics file',))

    def test_epanet_key_error(self):
        try:
            raise hydronet.epanet.exceptions.ENKeyError(206, 'NotACurve')
        except KeyError as e:
            self.assertTupleEqual(e.args, ("(Error 206) undefined curve, 'NotACurve'",))
            self.assertEqual(e.code, 206)

    def test_epanet_value_error(self):
        try:
            raise hydronet.epanet.exceptions.ENValueError(213, 423.0e28)
        except ValueError as e:
            self.assertTupleEqual(e.args, ('(Error 213) invalid option value 4.23e+30',))

    def test_warning_text(self):
        msg = ENgetwarning(1, 3725)
        self.assertTrue(msg.startswith('At   1:02:05, system hydraulically unbalanced'))
        self.assertRaises(hydronet.epanet.exceptions.EpanetException, ENgetwarning, 110)


if __name__ == "__main__":
    unittest.main()
