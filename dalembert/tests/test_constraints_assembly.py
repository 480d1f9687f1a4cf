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

"""Unit tests for the assembly of constrained systems"""

import unittest

import numpy as np
import scipy.linalg

import dalembert as dal
from dalembert._src.utils import logger as msg
from dalembert.tests import setup_tests, test_context
from dalembert.tests.utils.checks import assert_arrays_close
from dalembert.tests.utils.constraints import JointRateConstraint
from dalembert.tests.utils.models import FOUR_BAR_Q, make_four_bar, make_four_bar_loop, make_planar_chain

###
# Utilities
###


TIP_TARGET = np.array([2.0, 0.5, 0.0])


def make_tip_target_loop(target=TIP_TARGET) -> dal.ConstraintSet:
    """Pins the tip of the last link of a three-link chain to a ground point."""
    cs = dal.ConstraintSet()
    X_ground = dal.SpatialTransform.from_translation(target)
    X_tip = dal.SpatialTransform.from_translation((1.0, 0.0, 0.0))
    cs.add_loop_constraint(0, 3, X_ground, X_tip, (0, 0, 0, 1, 0, 0), name="tip_x")
    cs.add_loop_constraint(0, 3, X_ground, X_tip, (0, 0, 0, 0, 1, 0), name="tip_y")
    return cs


###
# Tests
###


class TestConstraintsAssembly(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        if not test_context.setup_done:
            setup_tests()

    def setUp(self):
        self.verbose = test_context.verbose  # Set to True for verbose output
        if self.verbose:
            msg.set_log_level(msg.LogLevel.DEBUG)

    def tearDown(self):
        if self.verbose:
            msg.reset_log_level()

    def test_01_assemble_positions(self):
        model = make_planar_chain(n_links=3)
        cs = make_tip_target_loop()
        cs.bind(model)
        q_init = np.array([0.3, -0.3, 0.2])
        q = np.zeros(3)
        out, converged = dal.calc_assembly_q(model, q_init, cs, np.ones(3), q=q)
        msg.debug(f"q: {q}")
        self.assertTrue(converged)
        self.assertIs(out, q)
        tip = dal.calc_body_to_base_coordinates(model, q, 3, (1.0, 0.0, 0.0))
        assert_arrays_close(self, tip, TIP_TARGET, tolerance=1e-10, name="tip")
        self.assertLess(np.linalg.norm(cs.err), cs.config.assembly_tolerance)

    def test_02_assembly_not_converged(self):
        model = make_planar_chain(n_links=3)
        cs = make_tip_target_loop()
        cs.bind(model)
        q_init = np.array([0.3, -0.3, 0.2])
        msg.get_default_logger()
        with self.assertLogs("dalembert", level="WARNING"):
            q, converged = dal.calc_assembly_q(model, q_init, cs, np.ones(3), max_iter=1)
        self.assertFalse(converged)
        self.assertEqual(q.shape, (3,))

    def test_03_assembly_invalid_inputs(self):
        model = make_planar_chain(n_links=3)
        cs = make_tip_target_loop()
        with self.assertRaises(RuntimeError):
            dal.calc_assembly_q(model, np.zeros(3), cs, np.ones(3))
        cs.bind(model)
        with self.assertRaises(ValueError):
            dal.calc_assembly_q(model, np.zeros(3), cs, np.array([1.0, -1.0, 1.0]))
        with self.assertRaises(ValueError):
            dal.calc_assembly_q(model, np.zeros(2), cs, np.ones(3))
        with self.assertRaises(ValueError):
            dal.calc_assembly_qdot(model, FOUR_BAR_Q, np.zeros(3), cs, np.ones(2))

    def test_04_assemble_velocities(self):
        model = make_four_bar()
        cs = make_four_bar_loop()
        cs.bind(model)
        qdot_init = np.array([1.0, 0.5, -2.0])
        qdot = np.zeros(3)
        out = dal.calc_assembly_qdot(model, FOUR_BAR_Q, qdot_init, cs, np.ones(3), qdot=qdot)
        self.assertIs(out, qdot)
        G = dal.calc_constraints_jacobian(model, FOUR_BAR_Q, cs)
        assert_arrays_close(self, G @ qdot, np.zeros(2), name="G qdot")
        Z = scipy.linalg.null_space(G)
        assert_arrays_close(self, Z.T @ (qdot - qdot_init), np.zeros(Z.shape[1]), name="Z^T dqdot")

    def test_05_custom_assembly_target(self):
        model = make_planar_chain(n_links=3)
        cs = dal.ConstraintSet()
        cs.add_custom_constraint(
            JointRateConstraint(dof=1, target=0.4), 1, 2, dal.SpatialTransform(), dal.SpatialTransform(), name="lock"
        )
        cs.bind(model)

        q_init = np.array([0.3, -0.3, 0.2])
        q, converged = dal.calc_assembly_q(model, q_init, cs, np.ones(3))
        self.assertTrue(converged)
        assert_arrays_close(self, q, [0.3, 0.4, 0.2], name="q")

        # The velocity-level constraint is unaffected by the assembly override
        err = dal.calc_constraints_position_error(model, q, cs)
        assert_arrays_close(self, err, np.zeros(1), name="position error")

        qdot = dal.calc_assembly_qdot(model, q, np.array([1.0, 2.0, 3.0]), cs, np.ones(3))
        assert_arrays_close(self, qdot, [1.0, 0.0, 3.0], name="qdot")

    def test_06_assembly_step_is_smallest_weighted_correction(self):
        model = make_planar_chain(n_links=3)
        cs = make_tip_target_loop()
        cs.bind(model)
        q_init = np.array([0.3, -0.3, 0.2])
        weights = np.array([10.0, 1.0, 1.0])
        err = dal.calc_assembly_position_error(model, q_init, cs)
        G = dal.calc_assembly_position_error_jacobian(model, q_init, cs)

        msg.get_default_logger()
        with self.assertLogs("dalembert", level="WARNING"):
            q, _ = dal.calc_assembly_q(model, q_init, cs, weights, max_iter=1)

        # The step zeroes the linearized error and is W-orthogonal to the null space of G
        dq = q - q_init
        assert_arrays_close(self, G @ dq, -err, tolerance=1e-10, name="G dq")
        Z = scipy.linalg.null_space(G)
        assert_arrays_close(self, Z.T @ (weights * dq), np.zeros(Z.shape[1]), tolerance=1e-10, name="Z^T W dq")

    def test_07_assembly_converges_from_several_starts(self):
        model = make_planar_chain(n_links=3)
        cs = make_tip_target_loop()
        cs.bind(model)
        for q_init in ([0.3, -0.3, 0.2], [1.0, -1.0, 0.5], [-0.2, 0.8, 0.4]):
            for weights in ([1.0, 1.0, 1.0], [10.0, 1.0, 1.0]):
                with self.subTest(q_init=q_init, weights=weights):
                    q, converged = dal.calc_assembly_q(model, np.array(q_init), cs, np.array(weights))
                    self.assertTrue(converged)
                    tip = dal.calc_body_to_base_coordinates(model, q, 3, (1.0, 0.0, 0.0))
                    assert_arrays_close(self, tip, TIP_TARGET, tolerance=1e-10, name="tip")


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
