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

"""
dalembert: Kinematics of articulated rigid-body models

All spatial quantities stored in the model are expressed in body
coordinates. Point quantities returned by this module are expressed in a
frame located at the point with axes aligned to the base frame.
"""

from __future__ import annotations

import numpy as np

from ..core.types import Vec3, Vec3Like, Vec6, as_vec3
from ..math.spatial import SpatialTransform, crossm
from .model import Model

###
# Module interface
###

__all__ = [
    "calc_base_to_body_coordinates",
    "calc_body_to_base_coordinates",
    "calc_body_world_orientation",
    "calc_point_acceleration",
    "calc_point_acceleration_6d",
    "calc_point_jacobian",
    "calc_point_jacobian_6d",
    "calc_point_velocity",
    "calc_point_velocity_6d",
    "update_kinematics",
    "update_kinematics_custom",
]


###
# Internals
###


def check_state_vector(model: Model, x: np.ndarray | None, name: str) -> None:
    """Raises a `ValueError` if `x` is given and is not a vector of size `dof_count`."""
    if x is not None and np.shape(x) != (model.dof_count,):
        raise ValueError(f"Vector '{name}' must have shape ({model.dof_count},) but has shape {np.shape(x)}.")


def _point_frame(model: Model, body_id: int, body_point: Vec3) -> SpatialTransform:
    """Transform from a body frame to the base-aligned frame located at `body_point`."""
    return SpatialTransform(model.X_base[body_id].E.T, body_point)


###
# Kinematics
###


def update_kinematics_custom(
    model: Model,
    q: np.ndarray | None = None,
    qdot: np.ndarray | None = None,
    qddot: np.ndarray | None = None,
) -> None:
    """
    Selectively updates body transforms, velocities and accelerations.

    Every level that is given requires the levels below it to be up to date,
    e.g. passing only `qddot` reuses the transforms and velocity-product
    terms of the previous update. The root acceleration is zero, so gravity
    does not enter the stored body accelerations.
    """
    check_state_vector(model, q, "q")
    check_state_vector(model, qdot, "qdot")
    check_state_vector(model, qddot, "qddot")

    model.v[0] = 0.0
    model.a[0] = 0.0
    for i in range(1, model.body_count):
        lam = model.parent[i]
        S = model.S[i]

        if q is not None:
            model.X_J[i] = model.joints[i].transform(q[i - 1])
            model.X_lambda[i] = model.X_J[i] * model.X_T[i]
            model.X_base[i] = model.X_lambda[i] * model.X_base[lam]

        if qdot is not None:
            v_J = S * qdot[i - 1]
            model.v[i] = model.X_lambda[i].apply(model.v[lam]) + v_J
            model.c[i] = crossm(model.v[i]) @ v_J

        if qddot is not None:
            model.a[i] = model.X_lambda[i].apply(model.a[lam]) + model.c[i] + S * qddot[i - 1]


def update_kinematics(model: Model, q: np.ndarray, qdot: np.ndarray, qddot: np.ndarray) -> None:
    """Updates body transforms, velocities and accelerations."""
    update_kinematics_custom(model, q, qdot, qddot)


def calc_body_to_base_coordinates(
    model: Model, q: np.ndarray, body_id: int, body_point: Vec3Like, update_kinematics: bool = True
) -> Vec3:
    if update_kinematics:
        update_kinematics_custom(model, q)
    X = model.X_base[body_id]
    return X.E.T @ as_vec3(body_point) + X.r


def calc_base_to_body_coordinates(
    model: Model, q: np.ndarray, body_id: int, base_point: Vec3Like, update_kinematics: bool = True
) -> Vec3:
    if update_kinematics:
        update_kinematics_custom(model, q)
    X = model.X_base[body_id]
    return X.E @ (as_vec3(base_point) - X.r)


def calc_body_world_orientation(model: Model, q: np.ndarray, body_id: int, update_kinematics: bool = True) -> np.ndarray:
    """Returns the coordinate transform `E` from base to body coordinates."""
    if update_kinematics:
        update_kinematics_custom(model, q)
    return model.X_base[body_id].E.copy()


###
# Point Jacobians
###


def calc_point_jacobian_6d(
    model: Model,
    q: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    G: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """
    Computes the `6 x n` Jacobian mapping `qdot` to the spatial velocity of
    a base-aligned frame attached to `body_point` of `body_id`.

    If `G` is given it is overwritten in place and returned.
    """
    if update_kinematics:
        update_kinematics_custom(model, q)
    if G is None:
        G = np.zeros((6, model.dof_count))
    else:
        G[:] = 0.0

    point_base = calc_body_to_base_coordinates(model, q, body_id, body_point, update_kinematics=False)
    X_point = SpatialTransform.from_translation(point_base)
    j = body_id
    while j != 0:
        G[:, j - 1] = X_point.apply(model.X_base[j].inverse().apply(model.S[j]))
        j = model.parent[j]
    return G


def calc_point_jacobian(
    model: Model,
    q: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    G: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """Computes the `3 x n` Jacobian of the base-coordinate linear velocity of a body point."""
    G6 = calc_point_jacobian_6d(model, q, body_id, body_point, update_kinematics=update_kinematics)
    if G is None:
        return G6[3:].copy()
    G[:] = G6[3:]
    return G


###
# Point velocities and accelerations
###


def calc_point_velocity_6d(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    update_kinematics: bool = True,
) -> Vec6:
    """Returns `[omega; v]` of `body_point`, both in base coordinates."""
    if update_kinematics:
        update_kinematics_custom(model, q, qdot)
    return _point_frame(model, body_id, as_vec3(body_point)).apply(model.v[body_id])


def calc_point_velocity(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    update_kinematics: bool = True,
) -> Vec3:
    return calc_point_velocity_6d(model, q, qdot, body_id, body_point, update_kinematics)[3:]


def calc_point_acceleration_6d(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    qddot: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    update_kinematics: bool = True,
) -> Vec6:
    """
    Returns the angular and classical linear acceleration of `body_point`,
    both in base coordinates.
    """
    if update_kinematics:
        update_kinematics_custom(model, q, qdot, qddot)
    X_point = _point_frame(model, body_id, as_vec3(body_point))
    p_v = X_point.apply(model.v[body_id])
    p_a = X_point.apply(model.a[body_id])
    p_a[3:] += np.cross(p_v[:3], p_v[3:])
    return p_a


def calc_point_acceleration(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    qddot: np.ndarray,
    body_id: int,
    body_point: Vec3Like,
    update_kinematics: bool = True,
) -> Vec3:
    return calc_point_acceleration_6d(model, q, qdot, qddot, body_id, body_point, update_kinematics)[3:]
