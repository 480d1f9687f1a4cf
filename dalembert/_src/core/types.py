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

"""The core data types used throughout dalembert."""

from __future__ import annotations

import sys
from collections.abc import Sequence

import numpy as np
import warp as wp

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

###
# Module interface
###

__all__ = [
    "FloatArray",
    "Vec3",
    "Vec6",
    "Vec3Like",
    "Vec6Like",
    "WarpTransform",
    "as_vec3",
    "as_vec6",
    "override",
]


###
# Generics
###

FloatArray = np.ndarray
"""A float64 numpy array, used for every dense vector and matrix."""

Vec3 = np.ndarray
"""A `(3,)` float64 numpy array."""

Vec6 = np.ndarray
"""A `(6,)` float64 numpy array laid out as `[angular; linear]`."""

Vec3Like = Sequence[float] | np.ndarray | wp.vec3
Vec6Like = Sequence[float] | np.ndarray | wp.spatial_vector

WarpTransform = wp.transform
"""A warp rigid transform `(p, q)`, accepted wherever a joint frame is expected."""


###
# Utilities
###


def as_vec3(v: Vec3Like) -> Vec3:
    """Converts any 3-vector-like value into a fresh float64 numpy array."""
    out = np.array(v, dtype=np.float64).reshape(-1)
    if out.shape != (3,):
        raise ValueError(f"Expected a 3-vector but got shape {out.shape}.")
    return out


def as_vec6(v: Vec6Like) -> Vec6:
    """Converts any spatial-vector-like value into a fresh float64 numpy array."""
    out = np.array(v, dtype=np.float64).reshape(-1)
    if out.shape != (6,):
        raise ValueError(f"Expected a spatial 6-vector but got shape {out.shape}.")
    return out
