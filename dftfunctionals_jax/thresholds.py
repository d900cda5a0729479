# Copyright 2025 Teddy Koker.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Numerical guards applied before a functional's formula is evaluated."""

from typing import Optional

import attr
import jax.numpy as jnp
import numpy as np


def value_dtype(x=None) -> np.dtype:
    """Returns the plain floating-point dtype for `x`.

    `x` may be None (the default JAX float dtype), a dtype, or an array. For a
    traced array the dtype of the underlying values is returned, so anything
    derived from it is a constant and not a quantity being differentiated.
    """
    dtype = jnp.result_type(float if x is None else x)
    if not jnp.issubdtype(dtype, jnp.inexact):
        dtype = jnp.result_type(dtype, float)
    return np.dtype(dtype)


def _constant(value: float, dtype) -> np.generic:
    dtype = value_dtype(dtype)
    return dtype.type(value)


# We use attr.s for the policy as it needs to be frozen and hashable to be
# stored as a static field of an equinox module.
@attr.s(auto_attribs=True, frozen=True)
class ThresholdPolicy:
    """Density, sigma, tau and spin-polarisation thresholds.

    Attributes:
      rho: density floor. At or below it the energy and all derivatives are
        exactly zero.
      sigma: floor for sigma, the input is clamped to it. None means
        rho ** (4/3).
      tau: floor for the kinetic energy density.
      zeta: spin-polarisation epsilon. None means the machine epsilon of the
        working dtype.
    """

    rho: float = 1e-15
    sigma: Optional[float] = None
    tau: float = 1e-20
    zeta: Optional[float] = None

    def threshold_rho(self, dtype=None):
        return _constant(self.rho, dtype)

    def threshold_sigma(self, dtype=None):
        if self.sigma is None:
            return self.threshold_rho(dtype) ** _constant(4 / 3, dtype)
        return _constant(self.sigma, dtype)

    def threshold_tau(self, dtype=None):
        return _constant(self.tau, dtype)

    def threshold_zeta(self, dtype=None):
        if self.zeta is None:
            dtype = value_dtype(dtype)
            return dtype.type(jnp.finfo(dtype).eps)
        return _constant(self.zeta, dtype)


DEFAULT_THRESHOLDS = ThresholdPolicy()
