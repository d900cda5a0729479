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

"""Kinetic energy functionals built on the Thomas-Fermi energy density."""

from typing import Optional

import equinox as eqx
import jax.numpy as jnp

from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.parameters import Parameters
from dftfunctionals_jax.registry import register
from dftfunctionals_jax.traits import Family, Kind


def lda_k_tf_energy(rho):
    r""":math:`\frac{3}{10} (3\pi^2)^{2/3} \rho^{5/3}`"""
    return 3 / 10 * jnp.cbrt(3 * jnp.pi**2) ** 2 * rho ** (5 / 3)


class ThomasFermiKinetic(Functional):
    family = Family.LDA
    kind = Kind.K
    custom_identifier = "lda_k_tf_custom"

    identifier: Optional[str] = eqx.field(static=True, default="lda_k_tf")

    def energy(self, rho):
        return lda_k_tf_energy(rho)


class TfvwKinetic(Functional):
    r"""Thomas-Fermi plus a fraction of the von Weizsaecker term,
    :math:`a \tau_{TF} + b \frac{\sigma}{8 \rho}`."""

    family = Family.GGA
    kind = Kind.K
    custom_identifier = "gga_k_tfvw_custom"

    def energy(self, rho, sigma):
        dtype = jnp.result_type(rho, sigma, self.parameter_type())
        a = self.parameters["a_tf"].astype(dtype)
        b = self.parameters["b_vw"].astype(dtype)
        return a * lda_k_tf_energy(rho) + b * sigma / (8 * rho)


class Gea2Kinetic(Functional):
    r"""Second-order gradient expansion of the kinetic energy density,
    :math:`\tau_{TF} (1 + a p + b q)` with the reduced gradient
    :math:`p = \sigma / (4 (3\pi^2)^{2/3} \rho^{8/3})` and the reduced
    Laplacian :math:`q = \nabla^2\rho / (4 (3\pi^2)^{2/3} \rho^{5/3})`.

    Depends on the Laplacian but not on tau.
    Kirzhnits 1957, Brack, Jennings, Chu 1976 (DOI 10.1016/0370-2693(76)90048-2)
    """

    family = Family.MGGAL
    kind = Kind.K
    custom_identifier = "mgga_k_gea2_custom"

    def energy(self, rho, sigma, tau, lapl):
        del tau  # unused
        dtype = jnp.result_type(rho, sigma, lapl, self.parameter_type())
        a = self.parameters["a"].astype(dtype)
        b = self.parameters["b"].astype(dtype)

        denominator = 4 * jnp.cbrt(3 * jnp.pi**2) ** 2 * rho ** (5 / 3)
        p = sigma / (denominator * rho)
        q = lapl / denominator
        return lda_k_tf_energy(rho) * (1 + a * p + b * q)


@register("lda_k_tf")
def _lda_k_tf():
    return ThomasFermiKinetic()


@register("gga_k_vw")
def _gga_k_vw():
    """von Weizsaecker kinetic energy."""
    return TfvwKinetic(Parameters(a_tf=0.0, b_vw=1.0), "gga_k_vw")


@register("gga_k_tfvw")
def _gga_k_tfvw():
    return TfvwKinetic(Parameters(a_tf=1.0, b_vw=1.0), "gga_k_tfvw")


@register("gga_k_ge2")
def _gga_k_ge2():
    """Second-order gradient expansion without the Laplacian term, which
    integrates to zero."""
    return TfvwKinetic(Parameters(a_tf=1.0, b_vw=1 / 9), "gga_k_ge2")


@register("mgga_k_gea2")
def _mgga_k_gea2():
    return Gea2Kinetic(Parameters(a=5 / 27, b=20 / 9), "mgga_k_gea2")
