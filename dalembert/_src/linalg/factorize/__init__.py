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

"""dalembert: Linear Algebra: Matrix Factorizations"""

from .ltl_sparse import (
    ltl_sparse,
    ltl_sparse_inplace,
    ltl_sparse_solve,
    ltl_sparse_solve_lx,
    ltl_sparse_solve_ltx,
)
from .qr_fullpiv import (
    qr_fullpiv,
    qr_fullpiv_rank,
    qr_fullpiv_reconstruct,
    qr_fullpiv_solve,
)

###
# Module API
###

__all__ = [
    "ltl_sparse",
    "ltl_sparse_inplace",
    "ltl_sparse_solve",
    "ltl_sparse_solve_lx",
    "ltl_sparse_solve_ltx",
    "qr_fullpiv",
    "qr_fullpiv_rank",
    "qr_fullpiv_reconstruct",
    "qr_fullpiv_solve",
]
