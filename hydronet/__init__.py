from hydronet import epanet
from hydronet import network
from hydronet import sim
from hydronet import utils

__version__ = '0.1.0'

__copyright__ = """Copyright 2024 the hydronet developers."""

__license__ = "Revised BSD License"

from hydronet.utils.logger import start_logging
