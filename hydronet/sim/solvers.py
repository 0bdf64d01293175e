"""
The hydronet.sim.solvers module holds the sparse linear solver used by the
hydraulic solver.

.. rubric:: Contents

.. autosummary::

    SparseSymmetricSolver

"""
import logging
import warnings

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg
from scipy.sparse.csgraph import connected_components, reverse_cuthill_mckee

from hydronet.utils.exceptions import SingularSystem

warnings.filterwarnings("error", "Matrix is exactly singular", sp.linalg.MatrixRankWarning)
logger = logging.getLogger(__name__)

PIVOT_TOL = 1.0e-12


class SparseSymmetricSolver(object):
    """
    Solver for the symmetric positive definite systems ``A x = b`` of the
    gradient method.

    The sparsity pattern is fixed when the solver is built: one diagonal
    entry per row and one off-diagonal pair ``(r, c)``, ``(c, r)`` per entry
    of `rows` and `cols`. Several entries may share a position; their values
    are summed. The rows are reordered with reverse Cuthill-McKee once, and
    every call to :meth:`factor` reuses that ordering.

    Parameters
    ----------
    nrows : int
        Number of rows (unknown heads)
    rows : array_like of int
        Row of each off-diagonal entry
    cols : array_like of int
        Column of each off-diagonal entry
    row_names : list of str, optional
        Names used in :class:`SingularSystem` messages
    """
    def __init__(self, nrows, rows, cols, row_names=None):
        self.nrows = int(nrows)
        self._rows = np.asarray(rows, dtype=int)
        self._cols = np.asarray(cols, dtype=int)
        if len(self._rows) != len(self._cols):
            raise ValueError('rows and cols must have the same length')
        self._row_names = row_names
        n = self.nrows

        pattern = sp.coo_matrix((np.ones(len(self._rows)), (self._rows, self._cols)), shape=(n, n)).tocsr()
        pattern = pattern + pattern.T + sp.identity(n, format='csr')
        if n > 0:
            self._perm = np.asarray(reverse_cuthill_mckee(pattern.tocsr(), symmetric_mode=True), dtype=int)
        else:
            self._perm = np.zeros(0, dtype=int)
        self._iperm = np.empty_like(self._perm)
        self._iperm[self._perm] = np.arange(n, dtype=int)

        prow = self._iperm[self._rows]
        pcol = self._iperm[self._cols]
        diag = np.arange(n, dtype=int)
        self._mat_rows = np.concatenate((diag, prow, pcol))
        self._mat_cols = np.concatenate((diag, pcol, prow))
        self._lu = None
        logger.debug('sparse solver built: %d rows, %d off-diagonal entries', n, len(self._rows))

    @property
    def permutation(self):
        """numpy.ndarray : the fill-reducing row ordering (read only)"""
        return self._perm

    def _names(self, rows):
        if self._row_names is None:
            return None
        return [self._row_names[i] for i in rows]

    def _check_connectivity(self, diagonal, offdiag):
        """
        Raise SingularSystem for every group of rows that is not tied to a
        fixed head. Such a group has row sums that cancel exactly, so its
        diagonal has no excess over the off-diagonal conductances.
        """
        n = self.nrows
        live = offdiag != 0.0
        graph = sp.coo_matrix((np.ones(int(live.sum())), (self._rows[live], self._cols[live])), shape=(n, n))
        ncomp, labels = connected_components(graph, directed=False)

        # row sums: diagonal plus the (negative) couplings to neighbours
        excess = np.array(diagonal, dtype=float)
        np.add.at(excess, self._rows, offdiag)
        np.add.at(excess, self._cols, offdiag)
        comp_excess = np.bincount(labels, weights=excess, minlength=ncomp)
        comp_scale = np.bincount(labels, weights=np.abs(diagonal), minlength=ncomp)
        bad = comp_excess <= PIVOT_TOL * np.maximum(comp_scale, 1.0)
        if np.any(bad):
            rows = np.flatnonzero(bad[labels])
            raise SingularSystem(rows, self._names(rows))

    def factor(self, diagonal, offdiag):
        """
        Factor the matrix with the given values.

        Parameters
        ----------
        diagonal : numpy.ndarray
            Diagonal values, one per row
        offdiag : numpy.ndarray
            Off-diagonal values, one per ``(rows[k], cols[k])`` entry

        Raises
        ------
        SingularSystem
            If a group of rows has no path to a fixed head or a pivot
            vanishes
        """
        diagonal = np.asarray(diagonal, dtype=float)
        offdiag = np.asarray(offdiag, dtype=float)
        self._lu = None
        if self.nrows == 0:
            return
        self._check_connectivity(diagonal, offdiag)

        values = np.concatenate((diagonal[self._perm], offdiag, offdiag))
        A = sp.coo_matrix((values, (self._mat_rows, self._mat_cols)), shape=(self.nrows, self.nrows)).tocsc()
        try:
            lu = sp.linalg.splu(A, permc_spec='NATURAL', diag_pivot_thresh=0.0,
                                options=dict(SymmetricMode=True))
        except (RuntimeError, sp.linalg.MatrixRankWarning):
            raise SingularSystem(self._perm, self._names(self._perm))

        pivots = np.abs(lu.U.diagonal())
        scale = np.asarray(abs(A).max(axis=1).todense()).ravel()
        small = pivots <= PIVOT_TOL * np.maximum(scale, 1.0e-300)
        if np.any(small):
            rows = self._perm[np.flatnonzero(small)]
            raise SingularSystem(rows, self._names(rows))
        self._lu = lu

    def solve(self, rhs):
        """
        Solve with the current factors.

        Parameters
        ----------
        rhs : numpy.ndarray
            Right-hand side in the original row order

        Returns
        -------
        numpy.ndarray
            The solution in the original row order
        """
        if self.nrows == 0:
            return np.zeros(0)
        if self._lu is None:
            raise RuntimeError('factor must be called before solve')
        rhs = np.asarray(rhs, dtype=float)
        xp = self._lu.solve(rhs[self._perm])
        bad = ~np.isfinite(xp)
        if np.any(bad):
            rows = self._perm[np.flatnonzero(bad)]
            raise SingularSystem(rows, self._names(rows))
        x = np.empty(self.nrows)
        x[self._perm] = xp
        return x
