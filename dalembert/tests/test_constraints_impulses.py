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

"""Unit tests for constraint impulses"""

import unittest

import numpy as np

import dalembert as dal
from dalembert._src.utils import logger as msg
from dalembert.tests import setup_tests, test_context
from dalembert.tests.utils.checks import assert_arrays_close
from dalembert.tests.utils.models import (
    BOX_MASS,
    FOUR_BAR_Q,
    make_floating_box,
    make_floating_box_contacts,
    make_four_bar,
    make_four_bar_loop,
)

###
# Utilities
###


IMPULSE_METHODS = {
    "direct": dal.compute_constraint_impulses_direct,
    "range_space_sparse": dal.compute_constraint_impulses_range_space_sparse,
    "null_space": dal.compute_constraint_impulses_null_space,
}


###
# Tests
###


class TestConstraintsImpulses(unittest.TestCase):
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

    def test_01_four_bar_velocity_projection(self):
        model = make_four_bar()
        cs = make_four_bar_loop()
        cs.bind(model)
        qdot_minus = np.array([1.0, -0.5, 2.0])
        results = {}
        for name, impulses in IMPULSE_METHODS.items():
            with self.subTest(method=name):
                qdot_plus = impulses(model, FOUR_BAR_Q, qdot_minus, cs)
                msg.debug(f"{name}: qdot_plus: {qdot_plus}, impulse: {cs.impulse}")
                assert_arrays_close(self, cs.G @ qdot_plus, np.zeros(2), name="G qdot_plus")
                assert_arrays_close(
                    self, cs.H @ (qdot_plus - qdot_minus), cs.G.T @ cs.impulse, name="momentum change"
                )
                results[name] = (qdot_plus, cs.impulse.copy())

        for name, (qdot_plus, impulse) in results.items():
            assert_arrays_close(self, qdot_plus, results["direct"][0], name=f"{name} qdot_plus")
            assert_arrays_close(self, impulse, results["direct"][1], name=f"{name} impulse")

        # Velocities already satisfying the constraints are left unchanged
        qdot_plus = dal.compute_constraint_impulses_direct(model, FOUR_BAR_Q, results["direct"][0], cs)
        assert_arrays_close(self, qdot_plus, results["direct"][0], name="idempotence")
        assert_arrays_close(self, cs.impulse, np.zeros(2), name="zero impulse")

    def test_02_box_landing(self):
        model = make_floating_box()
        cs = make_floating_box_contacts(model)
        cs.bind(model)
        q = np.array([0.0, 0.5, 0.0, 0.0, 0.0, 0.0])
        qdot_minus = np.array([0.2, -1.0, 0.0, 0.0, 0.0, 0.0])
        for name, impulses in IMPULSE_METHODS.items():
            with self.subTest(method=name):
                qdot_plus = impulses(model, q, qdot_minus, cs)
                assert_arrays_close(self, qdot_plus, [0.2, 0.0, 0.0, 0.0, 0.0, 0.0], name="qdot_plus")
                self.assertAlmostEqual(np.sum(cs.impulse), BOX_MASS * 1.0, places=9)

    def test_03_prescribed_post_impact_velocity(self):
        model = make_floating_box()
        cs = make_floating_box_contacts(model)
        cs.bind(model)
        cs.v_plus[:] = 0.5
        q = np.zeros(6)
        qdot_minus = np.array([0.0, -1.0, 0.0, 0.0, 0.0, 0.0])
        qdot_plus = np.zeros(6)
        out = dal.compute_constraint_impulses_range_space_sparse(model, q, qdot_minus, cs, qdot_plus=qdot_plus)
        self.assertIs(out, qdot_plus)
        assert_arrays_close(self, cs.G @ qdot_plus, cs.v_plus, name="G qdot_plus")
        assert_arrays_close(self, qdot_plus, [0.0, 0.5, 0.0, 0.0, 0.0, 0.0], name="bounce")
        self.assertAlmostEqual(np.sum(cs.impulse), BOX_MASS * 1.5, places=9)


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
