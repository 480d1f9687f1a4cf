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
dalembert: Math: Spatial algebra

Plücker-coordinate spatial vectors and transforms in the `[angular; linear]`
ordering. A `SpatialTransform` `X = (E, r)` maps spatial motion vectors from
a frame `A` into a frame `B`, where `E` is the `3x3` coordinate transform
from `A` to `B` and `r` is the origin of `B` expressed in `A`:

    X = [ E        0 ]
        [ -E r^x   E ]
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import warp as wp

from ..core.types import Vec3, Vec3Like, Vec6, as_vec3

###
# Module interface
###

__all__ = [
    "SpatialTransform",
    "crossf",
    "crossm",
    "rotation_about_axis",
    "skew",
    "spatial_inertia",
    "transform_point",
]


###
# Functions
###


def skew(v: Vec3Like) -> np.ndarray:
    """Returns the `3x3` cross-product matrix `[v]x` such that `[v]x @ u == v x u`."""
    x, y, z = np.asarray(v, dtype=np.float64)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def crossm(v: Vec6) -> np.ndarray:
    """Spatial motion cross-product operator `v x` as a `6x6` matrix."""
    wx = skew(v[:3])
    out = np.zeros((6, 6))
    out[:3, :3] = wx
    out[3:, :3] = skew(v[3:])
    out[3:, 3:] = wx
    return out


def crossf(v: Vec6) -> np.ndarray:
    """Spatial force cross-product operator `v x*` as a `6x6` matrix."""
    return -crossm(v).T


def spatial_inertia(mass: float, com: Vec3Like, inertia: np.ndarray) -> np.ndarray:
    """
    Builds the `6x6` spatial inertia of a rigid body about its frame origin.

    Args:
        mass (float): The body mass.
        com (Vec3Like): The center of mass in body coordinates.
        inertia (np.ndarray): The `3x3` rotational inertia about the center of mass.
    """
    cx = skew(com)
    out = np.zeros((6, 6))
    out[:3, :3] = np.asarray(inertia, dtype=np.float64) + mass * cx @ cx.T
    out[:3, 3:] = mass * cx
    out[3:, :3] = mass * cx.T
    out[3:, 3:] = mass * np.eye(3)
    return out


def rotation_about_axis(axis: Vec3Like, angle: float) -> np.ndarray:
    """Coordinate transform `E` of a frame rotated by `angle` about the unit `axis` (the transpose of Rodrigues' matrix)."""
    K = skew(axis)
    R = np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)
    return R.T


###
# Types
###


@dataclass
class SpatialTransform:
    """A Plücker transform stored compactly as a rotation `E` and a translation `r`."""

    E: np.ndarray = field(default_factory=lambda: np.eye(3))
    """Coordinate transform from the source frame into the target frame."""

    r: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Origin of the target frame expressed in the source frame."""

    def __post_init__(self):
        self.E = np.array(self.E, dtype=np.float64).reshape(3, 3)
        self.r = as_vec3(self.r)

    ###
    # Constructors
    ###

    @classmethod
    def identity(cls) -> SpatialTransform:
        return cls()

    @classmethod
    def from_translation(cls, r: Vec3Like) -> SpatialTransform:
        return cls(np.eye(3), r)

    @classmethod
    def from_rotation(cls, E: np.ndarray) -> SpatialTransform:
        return cls(E, np.zeros(3))

    @classmethod
    def rotx(cls, angle: float) -> SpatialTransform:
        c, s = np.cos(angle), np.sin(angle)
        return cls(np.array([[1.0, 0.0, 0.0], [0.0, c, s], [0.0, -s, c]]))

    @classmethod
    def roty(cls, angle: float) -> SpatialTransform:
        c, s = np.cos(angle), np.sin(angle)
        return cls(np.array([[c, 0.0, -s], [0.0, 1.0, 0.0], [s, 0.0, c]]))

    @classmethod
    def rotz(cls, angle: float) -> SpatialTransform:
        c, s = np.cos(angle), np.sin(angle)
        return cls(np.array([[c, s, 0.0], [-s, c, 0.0], [0.0, 0.0, 1.0]]))

    @classmethod
    def from_warp(cls, xform: wp.transform) -> SpatialTransform:
        """
        Converts a warp transform, i.e. the pose of a child frame in parent
        coordinates, into the parent-to-child spatial transform.
        """
        R = np.array(wp.quat_to_matrix(xform.q), dtype=np.float64).reshape(3, 3)
        return cls(R.T, np.array(xform.p, dtype=np.float64))

    ###
    # Operations
    ###

    def apply(self, v: Vec6) -> Vec6:
        """Transforms a spatial motion vector, i.e. `X @ v`."""
        w = self.E @ v[:3]
        return np.concatenate((w, self.E @ (v[3:] - np.cross(self.r, v[:3]))))

    def apply_transpose(self, f: Vec6) -> Vec6:
        """Transforms a spatial force vector back into the source frame, i.e. `X^T @ f`."""
        lin = self.E.T @ f[3:]
        return np.concatenate((self.E.T @ f[:3] + np.cross(self.r, lin), lin))

    def apply_adjoint(self, f: Vec6) -> Vec6:
        """Transforms a spatial force vector into the target frame, i.e. `X^* @ f`."""
        return np.concatenate((self.E @ (f[:3] - np.cross(self.r, f[3:])), self.E @ f[3:]))

    def inverse(self) -> SpatialTransform:
        return SpatialTransform(self.E.T, -self.E @ self.r)

    def to_matrix(self) -> np.ndarray:
        """Returns the full `6x6` motion transform matrix."""
        out = np.zeros((6, 6))
        out[:3, :3] = self.E
        out[3:, :3] = -self.E @ skew(self.r)
        out[3:, 3:] = self.E
        return out

    def to_adjoint(self) -> np.ndarray:
        """Returns the full `6x6` force transform matrix `X^* = X^{-T}`."""
        out = np.zeros((6, 6))
        out[:3, :3] = self.E
        out[:3, 3:] = -self.E @ skew(self.r)
        out[3:, 3:] = self.E
        return out

    def __mul__(self, other: SpatialTransform) -> SpatialTransform:
        """Composition such that `(X1 * X2).to_matrix() == X1.to_matrix() @ X2.to_matrix()`."""
        if not isinstance(other, SpatialTransform):
            return NotImplemented
        return SpatialTransform(self.E @ other.E, other.r + other.E.T @ self.r)

    def copy(self) -> SpatialTransform:
        return SpatialTransform(self.E.copy(), self.r.copy())

    def __repr__(self) -> str:
        return f"SpatialTransform(E={self.E.tolist()}, r={self.r.tolist()})"


def transform_point(X: SpatialTransform, p: Vec3) -> Vec3:
    """Maps a point given in the source frame into target frame coordinates."""
    return X.E @ (np.asarray(p, dtype=np.float64) - X.r)
