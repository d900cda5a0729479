# Copyright 2021 DeepMind Technologies Limited.
# Copyright 2025 Teddy Koker. Modifications:
# - replaced the DM21 neural network with generic automatically differentiated
#   functionals
# - removed local Hartree-Fock features and the associated grid/system state
# - added second derivatives (fxc) and spin-polarised input layouts
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

"""An interface to the functionals of this package for PySCF."""

from typing import Optional, Tuple, Union

import chex
import jax
import numpy as np
from absl import logging
from pyscf.dft import numint, xc_deriv

from dftfunctionals_jax import terms, traits
from dftfunctionals_jax.errors import UnsupportedCapabilityError
from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.traits import Family

_XC_TYPE = {
    Family.LDA: "LDA",
    Family.GGA: "GGA",
    Family.MGGA: "MGGA",
    Family.MGGAL: "MGGA",
}

# Order of the second derivatives in the fxc tuple returned by
# pyscf.dft.libxc.eval_xc.
_FXC_TERMS = (
    ("rho", "rho"),
    ("rho", "sigma"),
    ("sigma", "sigma"),
    ("lapl", "lapl"),
    ("tau", "tau"),
    ("rho", "lapl"),
    ("rho", "tau"),
    ("lapl", "tau"),
    ("sigma", "lapl"),
    ("sigma", "tau"),
)


# NOTE: we use chex.dataclass as the fields are either numpy or JAX arrays
@chex.dataclass
class GridBatch:
    r"""Inputs of a functional on a block of grid points.

    Each array has shape (n_channels, N), where N is the number of grid
    points. Fields the functional does not need may be None.

    Attributes:
      rho: density, one row per spin channel.
      sigma: contracted density gradients. One row (\nabla\rho \cdot \nabla\rho)
        for spin-unpolarised input, three rows (aa, ab, bb) otherwise.
      tau: kinetic energy density, one row per spin channel.
      lapl: Laplacian of the density, one row per spin channel.
    """

    rho: Union[np.ndarray, jax.Array]
    sigma: Optional[Union[np.ndarray, jax.Array]] = None
    tau: Optional[Union[np.ndarray, jax.Array]] = None
    lapl: Optional[Union[np.ndarray, jax.Array]] = None

    @classmethod
    def from_pyscf(cls, rho, spin: int, family: Family) -> "GridBatch":
        """Builds the inputs from the density layout used by
        pyscf.dft.libxc.eval_xc.

        Args:
          rho: for spin-unpolarised input a single array of shape (N,) or
            (k, N), whose rows are ordered as (density, grad_x, grad_y,
            grad_z, laplacian, tau). For spin-polarised input a pair of such
            arrays, one per spin channel.
          spin: 0 for spin-unpolarised, otherwise spin-polarised.
          family: family of the functional, which determines the fields read.
        """
        if spin == 0:
            channels = [np.asarray(rho)]
        else:
            channels = [np.asarray(rho[0]), np.asarray(rho[1])]
        channels = [c.reshape(1, -1) if c.ndim == 1 else c for c in channels]

        batch = cls(rho=np.stack([c[0] for c in channels]))
        if family != Family.LDA:
            grads = [c[1:4] for c in channels]
            pairs = [(0, 0)] if spin == 0 else [(0, 0), (0, 1), (1, 1)]
            batch.sigma = np.stack(
                [np.einsum("xn,xn->n", grads[i], grads[j]) for i, j in pairs]
            )
        if family in (Family.MGGA, Family.MGGAL):
            batch.lapl = np.stack([c[4] for c in channels])
            batch.tau = np.stack([c[5] for c in channels])
        return batch


def _first_derivative(v: jax.Array, spin: int) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    return v[0] if spin == 0 else v.T


def _second_derivative(v: jax.Array, spin: int, symmetric: bool) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    if spin == 0:
        return v[0, 0]
    if symmetric:
        rows, cols = np.triu_indices(v.shape[0])
        return v[rows, cols].T
    return v.reshape(-1, v.shape[-1]).T


class FunctionalNumInt(numint.NumInt):
    """A wrapper around pyscf.dft.numint.NumInt for the functionals of this
    package.

    Usage:
        mf = dft.RKS(...)  # dft.UKS needs a functional with multi-spin support.
        # Specify the functional by monkey-patching mf._numint rather than using
        # mf._xc or mf._define_xc_.
        mf._numint = FunctionalNumInt(get_functional("gga_x_pbe"))
        mf.kernel()
    """

    def __init__(self, functional: Functional):
        """Constructs a FunctionalNumInt object.

        Args:
          functional: the functional to evaluate. Must support energy
            evaluations.

        Raises:
          UnsupportedCapabilityError: if the functional has no energy.
        """
        if not traits.has_energy(functional):
            raise UnsupportedCapabilityError(
                f"Functional {functional} does not support energy evaluations."
            )
        self._functional = functional
        super().__init__()

    @property
    def functional(self) -> Functional:
        return self._functional

    # The functionals of this package are semi-local, so set the
    # range-separated and hybrid parameters expected by PySCF to 0 so PySCF
    # doesn't add exact exchange.
    def rsh_coeff(self, *args):
        """Returns the range separated parameters, omega, alpha, beta."""
        return [0.0, 0.0, 0.0]

    def hybrid_coeff(self, *args, **kwargs):
        """Returns the fraction of Hartree-Fock exchange to include."""
        return 0.0

    def _xc_type(self, *args, **kwargs):
        return _XC_TYPE[traits.family(self._functional)]

    def eval_xc_eff(
        self, xc_code, rho, deriv=1, omega=None, xctype=None, verbose=None, spin=None
    ):
        r"""Returns the derivative tensor against the density parameters
        [density_a, (nabla_x)_a, (nabla_y)_a, (nabla_z)_a, tau_a]

        or spin-polarized density parameters

        [[density_a, (nabla_x)_a, (nabla_y)_a, (nabla_z)_a, tau_a],
          [density_b, (nabla_x)_b, (nabla_y)_b, (nabla_z)_b, tau_b]].

        It differs from the eval_xc method in the derivatives of non-local part.
        The eval_xc method returns the XC functional derivatives to sigma
        (|\nabla \rho|^2)

        Args:
            rho: 2-dimensional or 3-dimensional array
                Total density or (spin-up, spin-down) densities (and their
                derivatives if GGA or MGGA functionals) on grids

        Kwargs:
            deriv: int
                derivative orders
            omega: float
                define the exponent in the attenuated Coulomb for RSH functional
            spin: int
                spin polarized if spin > 0. Inferred from the shape of rho if
                None.

        Raises:
            NotImplementedError: for functionals which need the Laplacian of
                the density, which PySCF does not supply in this layout.
        """
        del verbose  # unused

        if omega is not None:
            raise NotImplementedError(
                "User-specifed range seperation parameters are "
                "not implemented for semi-local functionals."
            )
        if xctype is None:
            xctype = self._xc_type(xc_code)
        rhop = np.asarray(rho, dtype=np.float64)

        if spin is None:
            spin_polarized = rhop.ndim >= 2 and rhop.shape[0] == 2
            if xctype != "LDA":
                spin_polarized = spin_polarized and rhop.ndim == 3
            spin = 1 if spin_polarized else 0
        else:
            spin = 1 if spin > 0 else 0

        if xctype == "MGGA" and rhop.shape[-2] == 5:
            if traits.needs_laplacian(self._functional):
                raise NotImplementedError(
                    f"Functional {self._functional} needs the Laplacian of the "
                    "density, which is not available in meta-GGA methods."
                )
            # The Laplacian row is not read by functionals which don't need it.
            rhop = np.insert(rhop, 4, 0.0, axis=-2)

        exc, vxc, fxc, kxc = self.eval_xc(xc_code, rhop, spin, 0, deriv, omega, None)
        if deriv > 1:
            fxc = xc_deriv.transform_fxc(rhop, vxc, fxc, xctype, spin)
        if deriv > 0:
            vxc = xc_deriv.transform_vxc(rhop, vxc, xctype, spin)
        return exc, vxc, fxc, kxc

    def eval_xc(
        self,
        xc_code: str,
        rho: Union[np.ndarray, Tuple[np.ndarray, np.ndarray]],
        spin: int = 0,
        relativity: int = 0,
        deriv: int = 1,
        omega: Optional[float] = None,
        verbose=None,
    ) -> Tuple[np.ndarray, Optional[tuple], Optional[tuple], None]:
        """Evaluates the XC energy and functional derivatives.

        See pyscf.dft.libxc.eval_xc for more details on the interface.

        Args:
            xc_code: unused. FunctionalNumInt evaluates the functional given to
                the constructor.
            rho: density and density derivatives at each grid point. Single array
                for spin-unpolarised calculations, pair of arrays for each spin
                channel otherwise. See GridBatch.from_pyscf for the layout.
            spin: 0 for a spin-unpolarized (restricted Kohn-Sham) calculation, and
                spin-polarized (unrestricted) otherwise.
            relativity: Not supported.
            deriv: order of the functional derivatives to compute, at most 2.
            omega: RSH parameter. Not supported.
            verbose: unused.

        Returns:
            exc, vxc, fxc, kxc, where:
                exc is the energy per particle at each grid point, shape (N).
                vxc is (vrho, vsigma, vlapl, vtau), the first-order functional
                derivatives, with None for inputs the functional does not need.
                fxc is (v2rho2, v2rhosigma, v2sigma2, v2lapl2, v2tau2, v2rholapl,
                v2rhotau, v2lapltau, v2sigmalapl, v2sigmatau) if deriv > 1,
                otherwise None.
                kxc is set to None. (The third-order functional derivatives are not
                computed.)

        Raises:
            NotImplementedError: for relativistic or range-separated
                evaluations and for deriv > 2.
            MultiSpinNotImplementedError: for spin-polarised input to a
                functional without a spin-polarised formula.
        """
        del xc_code, verbose  # unused

        if relativity != 0:
            raise NotImplementedError(
                "Relatistic calculations are not implemented for these functionals."
            )
        if omega is not None:
            raise NotImplementedError(
                "User-specifed range seperation parameters are "
                "not implemented for semi-local functionals."
            )
        if deriv > 2:
            raise NotImplementedError("Third derivatives (kxc) are not implemented.")

        functional = self._functional
        batch = GridBatch.from_pyscf(rho, spin, traits.family(functional))
        logging.debug(
            "Evaluating %s on %d grid points (deriv=%d).",
            functional,
            batch.rho.shape[1],
            deriv,
        )
        if deriv > 1:
            result = terms.kernel_terms(functional, **batch)
        else:
            result = terms.potential_terms(functional, **batch)

        # PySCF expects the energy per particle.
        rho_total = batch.rho.sum(axis=0)
        e = np.asarray(result["e"], dtype=np.float64)
        exc = np.where(rho_total > 0, e / np.where(rho_total > 0, rho_total, 1.0), 0.0)

        vxc = None
        if deriv > 0:
            vxc = tuple(
                _first_derivative(result[traits.term_name(name)], spin)
                if traits.term_name(name) in result
                else None
                for name in ("rho", "sigma", "lapl", "tau")
            )

        fxc = None
        if deriv > 1:
            names = traits.required_inputs(functional)
            fxc = []
            for p, q in _FXC_TERMS:
                if p not in names or q not in names:
                    fxc.append(None)
                    continue
                # Kernel terms are only computed for pairs in the order of
                # required_inputs.
                swapped = names.index(p) > names.index(q)
                v = result[traits.term_name(q, p) if swapped else traits.term_name(p, q)]
                if swapped:
                    v = v.swapaxes(0, 1)
                fxc.append(_second_derivative(v, spin, symmetric=(p == q)))
            fxc = tuple(fxc)
        kxc = None  # Third derivative not implemented
        return exc, vxc, fxc, kxc
