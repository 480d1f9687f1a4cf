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

"""dalembert: Linear Algebra"""

from . import factorize
from .linear import (
    ColPivHouseholderQRSolver,
    DirectSolver,
    FullPivHouseholderQRSolver,
    HouseholderQRSolver,
    LinearSolver,
    LinearSolverMethod,
    LinearSolverType,
    LLTSolver,
    PartialPivLUSolver,
    RankRevealingSolver,
    linsys_error_inf,
    make_linear_solver,
)
from .matrix import (
    assert_is_square_matrix,
    assert_is_symmetric_matrix,
    default_rank_threshold,
    is_square_matrix,
    is_symmetric_matrix,
)

###
# Module API
###

__all__ = [
    "ColPivHouseholderQRSolver",
    "DirectSolver",
    "FullPivHouseholderQRSolver",
    "HouseholderQRSolver",
    "LLTSolver",
    "LinearSolver",
    "LinearSolverMethod",
    "LinearSolverType",
    "PartialPivLUSolver",
    "RankRevealingSolver",
    "assert_is_square_matrix",
    "assert_is_symmetric_matrix",
    "default_rank_threshold",
    "factorize",
    "is_square_matrix",
    "is_symmetric_matrix",
    "linsys_error_inf",
    "make_linear_solver",
]
