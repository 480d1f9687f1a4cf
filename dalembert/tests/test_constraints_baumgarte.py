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

"""Unit tests for Baumgarte stabilization of loop constraints"""

import unittest

import numpy as np

import dalembert as dal
from dalembert._src.utils import logger as msg
from dalembert.tests import setup_tests, test_context
from dalembert.tests.utils.models import FOUR_BAR_Q, make_four_bar, make_four_bar_loop

###
# Utilities
###


def simulate_four_bar(cs: dal.ConstraintSet, q0: np.ndarray, dt: float = 2.0e-3, steps: int = 500) -> np.ndarray:
    """Integrates the unactuated four-bar with semi-implicit Euler, returning the final position error."""
    model = make_four_bar()
    cs.bind(model)
    q = q0.copy()
    qdot = np.zeros(model.dof_count)
    tau = np.zeros(model.dof_count)
    qddot = np.zeros(model.dof_count)
    for _ in range(steps):
        dal.forward_dynamics_constraints_direct(model, q, qdot, tau, cs, qddot=qddot)
        qdot += dt * qddot
        q += dt * qdot
    return dal.calc_constraints_position_error(model, q, cs)


###
# Tests
###


class TestConstraintsBaumgarte(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        if not test_context.setup_done:
            setup_tests()

    def setUp(self):
        self.verbose = test_context.verbose  # Set to True for verbose output
        if self.verbose:
            msg.set_log_level(msg.LogLevel.DEBUG)
        self.q0 = FOUR_BAR_Q + np.array([0.02, 0.0, 0.0])

    def tearDown(self):
        if self.verbose:
            msg.reset_log_level()

    def test_01_parameters(self):
        cs = make_four_bar_loop(enable_stabilization=True, stabilization_param=0.5)
        self.assertEqual(cs.loop_baumgarte_enabled, [True, True])
        self.assertEqual(cs.loop_baumgarte_parameters[0], (2.0, 2.0))
        cs = make_four_bar_loop(enable_stabilization=True)
        alpha = 1.0 / cs.config.default_stabilization_param
        self.assertEqual(cs.loop_baumgarte_parameters[1], (alpha, alpha))
        with self.assertRaises(ValueError):
            make_four_bar_loop(enable_stabilization=True, stabilization_param=0.0)

    def test_02_stabilization_reduces_drift(self):
        model = make_four_bar()
        cs = make_four_bar_loop()
        cs.bind(model)
        err0 = np.linalg.norm(dal.calc_constraints_position_error(model, self.q0, cs))
        self.assertGreater(err0, 1e-3)

        err_stabilized = np.linalg.norm(
            simulate_four_bar(make_four_bar_loop(enable_stabilization=True, stabilization_param=0.1), self.q0)
        )
        err_free = np.linalg.norm(simulate_four_bar(make_four_bar_loop(), self.q0))
        msg.debug(f"initial error: {err0}, stabilized: {err_stabilized}, unstabilized: {err_free}")
        self.assertLess(err_stabilized, 0.01 * err0)
        self.assertGreater(err_free, 0.5 * err0)

    def test_03_decay_follows_time_constant(self):
        model = make_four_bar()
        cs = make_four_bar_loop()
        cs.bind(model)
        err0 = np.linalg.norm(dal.calc_constraints_position_error(model, self.q0, cs))

        # With alpha = beta = 1/T every row decays as a critically damped oscillator
        dt = 2.0e-3
        for T_stab in (0.1, 0.05):
            for n_tau in (3, 5):
                with self.subTest(T_stab=T_stab, n_tau=n_tau):
                    steps = round(n_tau * T_stab / dt)
                    cs_stab = make_four_bar_loop(enable_stabilization=True, stabilization_param=T_stab)
                    err = np.linalg.norm(simulate_four_bar(cs_stab, self.q0, dt=dt, steps=steps))
                    expected = (1.0 + n_tau) * np.exp(-n_tau) * err0
                    msg.debug(f"T_stab={T_stab}, t={n_tau} T_stab: error {err}, expected {expected}")
                    self.assertLess(abs(err - expected), 0.15 * expected)

        # A smaller time constant decays faster over the same horizon
        err_slow = np.linalg.norm(
            simulate_four_bar(make_four_bar_loop(enable_stabilization=True, stabilization_param=0.1), self.q0, steps=150)
        )
        err_fast = np.linalg.norm(
            simulate_four_bar(make_four_bar_loop(enable_stabilization=True, stabilization_param=0.05), self.q0, steps=150)
        )
        self.assertLess(err_fast, 0.5 * err_slow)


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
