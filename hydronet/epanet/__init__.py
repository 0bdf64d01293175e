"""
The hydronet.epanet package provides the EPANET toolkit interface, its
enumerations and its error codes.
"""
from .util import EN, InitHydOption, LinkTankStatus, MixType, SourceType, ControlType
from .exceptions import EN_ERROR_CODES, EpanetException, ENKeyError, ENValueError
from . import toolkit, util, exceptions
