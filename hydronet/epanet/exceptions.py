# coding: utf-8
"""Exceptions raised by the toolkit layer, keyed by EPANET error code."""

from typing import List

EN_ERROR_CODES = {
    # Runtime warnings
    1: "At %s, system hydraulically unbalanced - convergence to a hydraulic solution was not achieved in the allowed number of trials",
    2: "At %s, system may be hydraulically unstable - hydraulic convergence was only achieved after the status of all links was held fixed",
    3: "At %s, system disconnected - one or more nodes with positive demands were disconnected for all supply sources",
    4: "At %s, pumps cannot deliver enough flow or head - one or more pumps were forced to either shut down (due to insufficient head) or operate beyond the maximum rated flow",
    5: "At %s, valves cannot deliver enough flow - one or more flow control valves could not deliver the required flow even when fully open",
    6: "At %s, system has negative pressures - negative pressures occurred at one or more junctions with positive demand",
    # System errors
    101: "insufficient memory available",
    102: "no network data available",
    103: "hydraulics not initialized",
    104: "no hydraulics for water quality analysis",
    105: "water quality not initialized",
    106: "no results saved to report on",
    107: "hydraulics supplied from external file",
    108: "cannot use external file while hydraulics solver is active",
    109: "cannot change time parameter when solver is active",
    110: "cannot solve network hydraulic equations",
    120: "cannot solve water quality transport equations",
    # Input and API errors
    202: "illegal numeric value, %s",
    203: "undefined node, %s",
    204: "undefined link, %s",
    205: "undefined time pattern, %s",
    206: "undefined curve, %s",
    207: "attempt to control a CV/GPV link",
    208: "illegal PDA pressure limits",
    209: "illegal node property value",
    211: "illegal link property value",
    212: "undefined trace node",
    213: "invalid option value %s",
    215: "duplicate ID label",
    217: "pump has no head curve or power defined",
    219: "illegal valve connection to tank node",
    220: "illegal valve connection to another valve",
    222: "link assigned same start and end nodes",
    # Network consistency
    223: "not enough nodes in network",
    224: "no tanks or reservoirs in network",
    225: "invalid lower/upper levels for tank",
    226: "no head curve or power rating for pump",
    227: "invalid head curve for pump",
    230: "nonincreasing x-values for curve",
    233: "network has unconnected node",
    # API functions only
    240: "nonexistent water quality source",
    241: "nonexistent control",
    250: "invalid format (e.g. too long an ID name)",
    251: "invalid parameter code",
    252: "invalid ID name",
    253: "nonexistent demand category",
    257: "nonexistent rule",
    258: "nonexistent rule clause",
    259: "attempt to delete a node that still has links connected to it",
    260: "attempt to delete node assigned as a Trace Node",
    261: "attempt to delete a node or link contained in a control",
    262: "attempt to modify network structure while a solver is open",
    263: "node is not a tank",
    268: "link has no curve assigned",
    # File errors
    301: "identical file names used for different types of files",
    305: "cannot open hydraulics file %s",
    306: "hydraulics file does not match network data",
    307: "cannot read hydraulics file %s",
    308: "cannot save results to binary file %s",
}
"""A dictionary of the error codes and their meanings used by the toolkit layer.

:meta hide-value:
"""


class EpanetException(Exception):

    def __init__(self, code: int, *args: List[object]) -> None:
        """An Exception class for toolkit errors.

        Parameters
        ----------
        code : int
            The EPANET error code
        args : additional non-keyword arguments, optional
            If there is a string-format within the error code's text, the first one
            replaces it, otherwise they are appended to the message.
        """
        self.code = code
        msg = EN_ERROR_CODES.get(code, "unknown error")
        args = [*args]
        if r"%" in msg and len(args) > 0:
            msg = msg % repr(args.pop(0))
        elif r"%" in msg:
            msg = msg.replace(" %s", "").replace(", %s", "").replace("%s", "")
        if len(args) > 0:
            msg = msg + " " + repr(args)
        msg = "(Error {}) ".format(code) + msg
        super().__init__(msg)


class ENKeyError(EpanetException, KeyError):
    def __init__(self, code, name, *args) -> None:
        """An EPANET exception class that also subclasses KeyError.

        Parameters
        ----------
        code : int
            The EPANET error code
        name : str or int
            The key, name or index that is missing
        """
        super().__init__(code, name, *args)


class ENValueError(EpanetException, ValueError):
    def __init__(self, code, value, *args) -> None:
        """An EPANET exception class that also subclasses ValueError

        Parameters
        ----------
        code : int
            The EPANET error code
        value : Any
            The value that is invalid
        """
        super().__init__(code, value, *args)
