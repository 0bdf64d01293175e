"""
The hydronet.sim.hydfile module reads and writes the binary hydraulics
file, which stores the solution of every hydraulic step so that a quality
analysis can be run later without solving the hydraulics again.

The file starts with an int32 header::

    [magic, version, nnodes, nlinks, ntanks, npumps, nvalves, duration]

followed by one record per hydraulic step: the int32 pair ``time, tstep``
and the float64 arrays ``demand`` and ``head`` (one value per node) and
``flow``, ``status`` and ``setting`` (one value per link).

.. rubric:: Contents

.. autosummary::

    HydraulicRecord
    HydraulicsFileWriter
    HydraulicsFileReader

"""
import logging
from collections import namedtuple

import numpy as np

from hydronet.epanet.exceptions import EpanetException

logger = logging.getLogger(__name__)

MAGIC = 516114521
VERSION = 200
HEADER_SIZE = 8

HydraulicRecord = namedtuple('HydraulicRecord', ['time', 'tstep', 'demand', 'head', 'flow', 'status', 'setting'])


def _header(wn):
    index = wn.index
    return np.array([MAGIC, VERSION, index.num_nodes, index.num_links, len(index.tanks),
                     len(index.pumps), len(index.valves), int(wn.options.time.duration)], dtype=np.int32)


class HydraulicsFileWriter(object):
    """
    Appends hydraulic records to a file.

    Parameters
    ----------
    filename : str
    wn : WaterNetworkModel
        The network whose dimensions are written to the header

    Raises
    ------
    EpanetException
        Code 305 if the file cannot be opened
    """
    def __init__(self, filename, wn):
        self.filename = filename
        try:
            self._fh = open(filename, 'wb')
        except (IOError, OSError):
            raise EpanetException(305, filename)
        _header(wn).tofile(self._fh)
        self.count = 0

    def write(self, record):
        """Append one record."""
        np.array([record.time, record.tstep], dtype=np.int32).tofile(self._fh)
        for values in (record.demand, record.head, record.flow, record.status, record.setting):
            np.asarray(values, dtype=np.float64).tofile(self._fh)
        self.count += 1

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            logger.debug('wrote %d hydraulic records to %s', self.count, self.filename)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class HydraulicsFileReader(object):
    """
    Reads the records of a hydraulics file in order.

    Parameters
    ----------
    filename : str
    wn : WaterNetworkModel
        The header must match this network

    Raises
    ------
    EpanetException
        305 if the file cannot be opened, 306 if it does not match the
        network and 307 if it cannot be read
    """
    def __init__(self, filename, wn):
        self.filename = filename
        try:
            self._fh = open(filename, 'rb')
        except (IOError, OSError):
            raise EpanetException(305, filename)
        header = np.fromfile(self._fh, dtype=np.int32, count=HEADER_SIZE)
        if len(header) != HEADER_SIZE or header[0] != MAGIC:
            self.close()
            raise EpanetException(307)
        expected = _header(wn)
        if header[1] != VERSION or not np.array_equal(header[2:7], expected[2:7]):
            self.close()
            raise EpanetException(306)
        self.duration = int(header[7])
        self.nnodes = int(header[2])
        self.nlinks = int(header[3])

    def read(self):
        """
        Read the next record.

        Returns
        -------
        HydraulicRecord or None
            None at the end of the file
        """
        times = np.fromfile(self._fh, dtype=np.int32, count=2)
        if len(times) == 0:
            return None
        arrays = []
        for n in (self.nnodes, self.nnodes, self.nlinks, self.nlinks, self.nlinks):
            values = np.fromfile(self._fh, dtype=np.float64, count=n)
            if len(times) != 2 or len(values) != n:
                raise EpanetException(307)
            arrays.append(values)
        return HydraulicRecord(int(times[0]), int(times[1]), *arrays)

    def __iter__(self):
        while True:
            record = self.read()
            if record is None:
                return
            yield record

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
