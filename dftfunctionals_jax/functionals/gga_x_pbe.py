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

"""PBE exchange and the functionals sharing its enhancement factor."""

import math

import jax.numpy as jnp

from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.functionals.lda_x import lda_x_energy
from dftfunctionals_jax.parameters import Parameters
from dftfunctionals_jax.registry import register
from dftfunctionals_jax.traits import Family, Kind


def pbe_mu_from_beta(beta):
    """Conversion between mu and beta, some authors use one, some the other."""
    return beta / 3 * math.pi**2


def pbe_beta_from_mu(mu):
    return 3 * mu / math.pi**2


class PbeExchange(Functional):
    """Exchange with the PBE enhancement factor, parameters `kappa` and `mu`.

    Perdew, Burke, Ernzerhof 1996 (DOI: 10.1103/PhysRevLett.77.3865)
    """

    family = Family.GGA
    kind = Kind.X
    custom_identifier = "gga_x_pbe_custom"

    def energy(self, rho, sigma):
        dtype = jnp.result_type(rho, sigma, self.parameter_type())
        kappa = self.parameters["kappa"].astype(dtype)
        mu = self.parameters["mu"].astype(dtype)

        # s = sqrt(sigma) / (2 kF rho) with kF = cbrt(3 pi^2 rho), below (9)
        s2 = sigma / (rho ** (4 / 3) * 2 * jnp.cbrt(3 * jnp.pi**2)) ** 2
        # 1 + kappa - kappa^2 / (kappa + mu s^2), eq. (14), rearranged so the
        # factor is exactly one at s = 0.
        enhancement = 1 + kappa * mu * s2 / (kappa + mu * s2)
        return lda_x_energy(rho) * enhancement  # eq. (10)


def _pbe_exchange(kappa, mu, identifier):
    return PbeExchange(Parameters(kappa=kappa, mu=mu), identifier)


@register("gga_x_pbe")
def _gga_x_pbe():
    """Standard PBE exchange."""
    return _pbe_exchange(0.8040, pbe_mu_from_beta(0.06672455060314922), "gga_x_pbe")


@register("gga_x_pbe_r")
def _gga_x_pbe_r():
    """Revised PBE exchange.
    Zhang, Yang 1998 (DOI 10.1103/physrevlett.80.890)
    """
    return _pbe_exchange(1.245, pbe_mu_from_beta(0.06672455060314922), "gga_x_pbe_r")


@register("gga_x_xpbe")
def _gga_x_xpbe():
    """XPBE exchange.
    Xu, Goddard 2004 (DOI 10.1063/1.1771632)
    """
    return _pbe_exchange(0.91954, 0.23214, "gga_x_xpbe")  # Table 1


@register("gga_x_pbe_sol")
def _gga_x_pbe_sol():
    """PBEsol exchange.
    Perdew, Ruzsinszky, Csonka and others 2008 (DOI 10.1103/physrevlett.100.136406)
    """
    # mu given below equation (2)
    return _pbe_exchange(0.8040, 10 / 81, "gga_x_pbe_sol")


@register("gga_x_apbe")
def _gga_x_apbe():
    """APBE exchange.
    Constantin, Fabiano, Laricchia 2011 (DOI 10.1103/physrevlett.106.186406)
    """
    return _pbe_exchange(0.8040, 0.260, "gga_x_apbe")


@register("gga_x_pbe_mol")
def _gga_x_pbe_mol():
    """PBEmol exchange.
    del Campo, Gazquez, Trickey and others 2012 (DOI 10.1063/1.3691197)
    """
    return _pbe_exchange(0.8040, 0.27583, "gga_x_pbe_mol")


@register("gga_x_pbefe")
def _gga_x_pbefe():
    """PBEfe exchange.
    Sarmiento-Perez, Silvana, Marques 2015 (DOI 10.1021/acs.jctc.5b00529)
    """
    return _pbe_exchange(0.437, 0.346, "gga_x_pbefe")  # Table 1
