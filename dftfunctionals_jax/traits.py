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

"""Classification of functionals by family and kind.

Every query here is a pure function of the two class-level tags carried by a
functional. Behaviour that differs between families (which physical inputs
are needed, which derivatives are produced) is looked up in tables keyed by
`Family` rather than expressed through subclasses.
"""

import enum
from typing import Tuple


@enum.unique
class Family(enum.Enum):
    """Which derivatives of the density a functional depends on.

    Attributes:
      LDA: local density approximation, density only.
      GGA: generalised gradient approximation, density and sigma.
      MGGA: meta-GGA, additionally the kinetic energy density tau.
      MGGAL: meta-GGA that additionally needs the Laplacian of the density.
    """

    LDA = "lda"
    GGA = "gga"
    MGGA = "mgga"
    MGGAL = "mggal"


@enum.unique
class Kind(enum.Enum):
    """Role of a functional: exchange, correlation, kinetic or combined."""

    X = "x"
    C = "c"
    K = "k"
    XC = "xc"


_REQUIRED_INPUTS = {
    Family.LDA: ("rho",),
    Family.GGA: ("rho", "sigma"),
    Family.MGGA: ("rho", "sigma", "tau"),
    Family.MGGAL: ("rho", "sigma", "tau", "lapl"),
}

# Symbols used in the keys of the returned terms, e.g. "Vρσ".
TERM_SYMBOLS = {"rho": "ρ", "sigma": "σ", "tau": "τ", "lapl": "l"}


def family(functional) -> Family:
    """Return the family of a functional."""
    return functional.family


def kind(functional) -> Kind:
    """Return the kind of a functional."""
    return functional.kind


def required_inputs(functional) -> Tuple[str, ...]:
    """Names of the physical inputs the functional's family needs, in the
    order they are passed to `Functional.energy`."""
    return _REQUIRED_INPUTS[family(functional)]


def needs_sigma(functional) -> bool:
    r"""True if the functional needs :math:`\sigma = \nabla\rho \cdot \nabla\rho`."""
    return "sigma" in required_inputs(functional)


def needs_tau(functional) -> bool:
    """True if the functional needs the kinetic energy density."""
    return "tau" in required_inputs(functional)


def needs_laplacian(functional) -> bool:
    """True if the functional needs the Laplacian of the density."""
    return "lapl" in required_inputs(functional)


def has_energy(functional) -> bool:
    """Does this functional support energy evaluations?

    Some functionals only provide potentials, in which case `potential_terms`
    and `kernel_terms` cannot be used on them and a custom implementation is
    required.
    """
    return functional.has_energy


def term_name(*inputs: str) -> str:
    """Key of the derivative with respect to `inputs`, e.g. ("rho", "sigma")
    gives "Vρσ"."""
    return "V" + "".join(TERM_SYMBOLS[name] for name in inputs)
