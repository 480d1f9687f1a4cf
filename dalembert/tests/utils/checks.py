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

"""Numerical comparison helpers shared by the unit tests."""

import unittest

import numpy as np

from dalembert import Model, calc_point_velocity_6d

###
# Numerical comparisons
###


def arrays_equal(arr1, arr2, tolerance=1e-9) -> bool:
    return np.allclose(arr1, arr2, atol=tolerance, rtol=0.0)


def assert_arrays_close(fixture: unittest.TestCase, actual, expected, tolerance=1e-9, name: str = "array"):
    """Asserts element-wise closeness, printing both operands on failure."""
    actual = np.asarray(actual)
    expected = np.asarray(expected)
    fixture.assertEqual(actual.shape, expected.shape, f"{name} shape mismatch")
    fixture.assertTrue(
        np.allclose(actual, expected, atol=tolerance, rtol=0.0),
        f"{name} mismatch (max error {np.max(np.abs(actual - expected), initial=0.0)}):"
        f"\nactual:\n{actual}\nexpected:\n{expected}",
    )


###
# Finite differences
###


def point_jacobian_6d_from_velocities(model: Model, q: np.ndarray, body_id: int, body_point) -> np.ndarray:
    """Point Jacobian assembled column by column from point velocities under unit joint rates."""
    J = np.zeros((6, model.dof_count))
    for j in range(model.dof_count):
        qdot = np.zeros(model.dof_count)
        qdot[j] = 1.0
        J[:, j] = calc_point_velocity_6d(model, q, qdot, body_id, body_point)
    return J


def jacobian_fd(fn, q: np.ndarray, eps: float = 1e-7) -> np.ndarray:
    """Central-difference Jacobian of a vector function of `q`."""
    f0 = np.asarray(fn(q))
    out = np.zeros((f0.shape[0], q.shape[0]))
    for j in range(q.shape[0]):
        dq = np.zeros_like(q)
        dq[j] = eps
        out[:, j] = (np.asarray(fn(q + dq)) - np.asarray(fn(q - dq))) / (2.0 * eps)
    return out
