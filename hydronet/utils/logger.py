"""Functions to set up a default handler for hydronet that writes to the console and to hydronet.log."""

import logging
logging.getLogger('hydronet').addHandler(logging.NullHandler())


class _LogWrapper(object):  # pragma: no cover
    initialized = None

    def __init__(self, filename='hydronet.log'):
        self.logger = logger = logging.getLogger('hydronet')
        if not len(self.logger.handlers) or all(isinstance(h, logging.NullHandler) for h in logger.handlers):
            logger.setLevel(logging.DEBUG)
            # warnings and errors from the solvers go to the log file
            self.fh = fh = logging.FileHandler(filename, mode='w')
            fh.setLevel(logging.WARNING)
            # step summaries go to the screen
            self.ch = ch = logging.StreamHandler()
            ch.setLevel(logging.INFO)
            formatter = logging.Formatter('%(name)-12s %(levelname)-8s %(message)s')
            fh.setFormatter(formatter)
            ch.setFormatter(formatter)
            logger.addHandler(fh)
            logger.addHandler(ch)


def start_logging(filename='hydronet.log'):  # pragma: no cover
    """
    Start the hydronet logger.

    Parameters
    ----------
    filename: str
        Name of the log file that receives warnings and errors
    """
    if _LogWrapper.initialized is None:
        _LogWrapper.initialized = _LogWrapper(filename)
