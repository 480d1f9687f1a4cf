# SPDX-FileCopyrightText: Copyright (c) 2025 The Newton Developers
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Unit tests for the dense linear solvers"""

import unittest

import numpy as np

import dalembert.linalg as linalg
from dalembert._src.linalg.matrix import symmetry_error_max_abs
from dalembert._src.utils import logger as msg
from dalembert.tests import setup_tests, test_context

###
# Tests
###


class TestLinAlgLinearSolvers(unittest.TestCase):
    def setUp(self):
        self.verbose = test_context.verbose  # Set to True for verbose output
        if self.verbose:
            msg.set_log_level(msg.LogLevel.DEBUG)

        # Define test parameters
        self.dtype = np.float64
        self.atol = 1e-12
        self.rtol = 1e-12

        # Define a simple symmetric positive-definite matrix and right-hand side
        self.A = np.array([[4.0, 1.0, 0.5], [1.0, 3.0, 0.2], [0.5, 0.2, 2.0]], dtype=self.dtype)
        self.b = np.array([1.0, 2.0, 3.0], dtype=self.dtype)
        msg.debug(
            "\nLinear system:\n"
            f"\nA {self.A.shape}[{self.A.dtype}]:\n{self.A}\n"
            f"\nb {self.b.shape}[{self.b.dtype}]:\n{self.b}\n"
        )

        # Compute reference solution using NumPy
        self.x_ref = np.linalg.solve(self.A, self.b)
        msg.debug(f"x_ref {self.x_ref.shape}, {self.x_ref.dtype}:\n{self.x_ref}\n")

        # A singular but consistent system: the third row is the sum of the first two
        self.A_sing = np.array([[1.0, 2.0, 0.0], [0.0, 1.0, 1.0], [1.0, 3.0, 1.0]], dtype=self.dtype)
        self.b_sing = self.A_sing @ np.array([1.0, -1.0, 2.0])

    def tearDown(self):
        if self.verbose:
            msg.reset_log_level()

    def test_01_all_methods_solve_spd_system(self):
        for method in linalg.LinearSolverMethod:
            with self.subTest(method=method.name):
                solver = linalg.make_linear_solver(method, self.A)
                x = solver.solve(self.b, compute_error=True)
                msg.debug(f"{method.name}: x {x.shape}, {x.dtype}:\n{x}\n")
                msg.debug(f"{method.name}: solve_error_abs: {solver.solve_error_abs}")
                self.assertTrue(np.allclose(x, self.x_ref, atol=self.atol, rtol=self.rtol))
                self.assertAlmostEqual(solver.solve_error_abs, 0.0, places=12)
                self.assertAlmostEqual(solver.solve_error_rel, 0.0, places=12)

    def test_02_deferred_compute(self):
        solver = linalg.PartialPivLUSolver()
        self.assertIsNone(solver.matrix)
        solver.compute(self.A, compute_error=True)
        self.assertIs(solver.matrix, self.A)
        self.assertAlmostEqual(solver.compute_error_abs, 0.0, places=12)
        self.assertTrue(np.allclose(solver.reconstructed(), self.A, atol=self.atol))
        self.assertTrue(np.allclose(solver.solve(self.b), self.x_ref, atol=self.atol))

    def test_03_solve_inplace(self):
        solver = linalg.LLTSolver(self.A, ftol=1e-12, check_symmetry=True, compute_error=True, check_error=True)
        x = self.b.copy()
        solver.solve_inplace(x)
        self.assertTrue(np.allclose(x, self.x_ref, atol=self.atol))
        self.assertIsNone(solver.solve_error_abs)

    def test_04_reconstruction(self):
        for method in linalg.LinearSolverMethod:
            with self.subTest(method=method.name):
                solver = linalg.make_linear_solver(method, self.A, compute_error=True)
                self.assertTrue(np.allclose(solver.reconstructed(), self.A, atol=self.atol))
                self.assertLess(solver.compute_error_rel, 1e-12)

    def test_05_rank_revealing_solvers_on_singular_system(self):
        for cls in (linalg.ColPivHouseholderQRSolver, linalg.FullPivHouseholderQRSolver):
            with self.subTest(solver=cls.__name__):
                solver = cls(self.A_sing, threshold=1e-10)
                self.assertEqual(solver.rank, 2)
                x = solver.solve(self.b_sing, compute_error=True)
                msg.debug(f"{cls.__name__}: x:\n{x}\n")
                self.assertTrue(np.all(np.isfinite(x)))
                self.assertLess(solver.solve_error_abs, 1e-12)

    def test_06_rank_threshold(self):
        A = np.diag([1.0, 1e-6, 1e-12])
        self.assertEqual(linalg.FullPivHouseholderQRSolver(A).rank, 3)
        self.assertEqual(linalg.FullPivHouseholderQRSolver(A, threshold=1e-9).rank, 2)
        self.assertEqual(linalg.ColPivHouseholderQRSolver(A, threshold=1e-3).rank, 1)

    def test_07_llt_rejects_indefinite_matrix(self):
        A = np.array([[1.0, 2.0], [2.0, 1.0]])
        with self.assertRaises(ValueError):
            linalg.LLTSolver(A)

    def test_08_symmetry_check(self):
        A = self.A.copy()
        A[0, 1] += 1.0
        self.assertEqual(symmetry_error_max_abs(A), 1.0)
        with self.assertRaises(ValueError) as ctx:
            linalg.LLTSolver(A, check_symmetry=True)
        self.assertIn("max |A - A^T| = 1.0", str(ctx.exception))
        self.assertEqual(symmetry_error_max_abs(self.A), 0.0)

    def test_09_invalid_inputs(self):
        with self.assertRaises(TypeError):
            linalg.PartialPivLUSolver(self.A, unknown_option=True)
        with self.assertRaises(ValueError):
            linalg.PartialPivLUSolver(np.ones((2, 3)))
        solver = linalg.HouseholderQRSolver(self.A)
        with self.assertRaises(ValueError):
            solver.solve(np.ones(2))
        with self.assertRaises(ValueError):
            linalg.HouseholderQRSolver().reconstructed()

    def test_10_factory(self):
        expected = {
            linalg.LinearSolverMethod.PARTIAL_PIV_LU: linalg.PartialPivLUSolver,
            linalg.LinearSolverMethod.HOUSEHOLDER_QR: linalg.HouseholderQRSolver,
            linalg.LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR: linalg.ColPivHouseholderQRSolver,
            linalg.LinearSolverMethod.FULL_PIV_HOUSEHOLDER_QR: linalg.FullPivHouseholderQRSolver,
            linalg.LinearSolverMethod.LLT: linalg.LLTSolver,
        }
        for method, cls in expected.items():
            self.assertIsInstance(linalg.make_linear_solver(method), cls)
            self.assertIsInstance(linalg.make_linear_solver(int(method)), cls)

    def test_11_residual_norm(self):
        x = np.array([1.0, 0.0, 0.0])
        self.assertAlmostEqual(linalg.linsys_error_inf(self.A, self.b, x), np.max(np.abs(self.A @ x - self.b)))


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
