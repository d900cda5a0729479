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

"""Slater (LDA) exchange."""

from typing import Optional

import equinox as eqx
import jax
import jax.numpy as jnp

from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.registry import register
from dftfunctionals_jax.traits import Family, Kind


def lda_x_energy(rho: jax.Array) -> jax.Array:
    r"""Exchange energy per unit volume of the uniform electron gas,
    :math:`-\frac{3}{4} \left(\frac{3}{\pi}\right)^{1/3} \rho^{4/3}`."""
    return -3 / 4 * jnp.cbrt(3 / jnp.pi) * rho ** (4 / 3)


class LdaExchange(Functional):
    """Spin-unpolarised Slater exchange. Has no adjustable parameters."""

    family = Family.LDA
    kind = Kind.X
    custom_identifier = "lda_x_custom"

    identifier: Optional[str] = eqx.field(static=True, default="lda_x")

    def energy(self, rho):
        return lda_x_energy(rho)


@register("lda_x")
def _lda_x():
    return LdaExchange()
