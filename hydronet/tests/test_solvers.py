import unittest

import numpy as np

from hydronet.sim.solvers import SparseSymmetricSolver
from hydronet.utils.exceptions import SingularSystem


def _dense(nrows, rows, cols, diagonal, offdiag):
    A = np.diag(np.asarray(diagonal, dtype=float))
    for r, c, v in zip(rows, cols, offdiag):
        A[r, c] += v
        A[c, r] += v
    return A


class TestSparseSymmetricSolver(unittest.TestCase):
    def test_matches_dense_solve(self):
        # a ring of 6 rows with two chords; row sums have a positive excess
        rows = [0, 1, 2, 3, 4, 5, 0, 1]
        cols = [1, 2, 3, 4, 5, 0, 3, 4]
        offdiag = [-1.0, -2.0, -0.5, -1.5, -1.0, -0.25, -0.75, -0.3]
        excess = [0.5, 0.0, 1.0, 0.0, 0.2, 0.0]
        diagonal = np.array(excess)
        for r, c, v in zip(rows, cols, offdiag):
            diagonal[r] -= v
            diagonal[c] -= v
        rhs = np.array([1.0, -2.0, 0.5, 3.0, 0.0, -1.0])

        solver = SparseSymmetricSolver(6, rows, cols)
        solver.factor(diagonal, offdiag)
        x = solver.solve(rhs)
        expected = np.linalg.solve(_dense(6, rows, cols, diagonal, offdiag), rhs)
        np.testing.assert_allclose(x, expected, rtol=1e-10, atol=1e-12)

    def test_refactor_with_new_values(self):
        rows = [0, 1]
        cols = [1, 2]
        solver = SparseSymmetricSolver(3, rows, cols)
        for scale in (1.0, 10.0):
            diagonal = scale * np.array([3.0, 4.0, 3.0])
            offdiag = scale * np.array([-1.0, -1.0])
            solver.factor(diagonal, offdiag)
            x = solver.solve(np.ones(3))
            expected = np.linalg.solve(_dense(3, rows, cols, diagonal, offdiag), np.ones(3))
            np.testing.assert_allclose(x, expected, rtol=1e-10)

    def test_duplicate_entries_are_summed(self):
        rows = [0, 0]
        cols = [1, 1]
        solver = SparseSymmetricSolver(2, rows, cols)
        solver.factor([4.0, 4.0], [-1.0, -1.0])
        x = solver.solve(np.array([2.0, 2.0]))
        np.testing.assert_allclose(x, [1.0, 1.0], rtol=1e-12)

    def test_permutation_is_fixed(self):
        solver = SparseSymmetricSolver(4, [0, 1, 2], [1, 2, 3])
        perm = solver.permutation
        self.assertListEqual(sorted(perm.tolist()), [0, 1, 2, 3])

    def test_singular_group(self):
        # rows 0-2 form a chain whose row sums cancel: no tie to a fixed head
        solver = SparseSymmetricSolver(3, [0, 1], [1, 2], row_names=["J1", "J2", "J3"])
        with self.assertRaises(SingularSystem) as cm:
            solver.factor([1.0, 2.0, 1.0], [-1.0, -1.0])
        self.assertListEqual(sorted(cm.exception.rows), [0, 1, 2])
        self.assertListEqual(sorted(cm.exception.names), ["J1", "J2", "J3"])

    def test_singular_group_is_isolated(self):
        # row 2 is tied to a fixed head; rows 0 and 1 are not
        solver = SparseSymmetricSolver(3, [0], [1], row_names=["J1", "J2", "J3"])
        with self.assertRaises(SingularSystem) as cm:
            solver.factor([1.0, 1.0, 2.0], [-1.0])
        self.assertListEqual(sorted(cm.exception.rows), [0, 1])

    def test_solve_before_factor(self):
        solver = SparseSymmetricSolver(2, [0], [1])
        self.assertRaises(RuntimeError, solver.solve, np.ones(2))


if __name__ == "__main__":
    unittest.main()
