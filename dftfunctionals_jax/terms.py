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

"""Energy, potential and kernel terms on a batch of grid points.

Functionals only provide a scalar energy density per grid point. First and
second derivatives with respect to the physical inputs are obtained here by
forward-mode automatic differentiation of `Functional.spin_energy`, vectorised
over the grid points.

All inputs are arrays of shape (n_channels, n_points): one row per spin
channel (or spin combination for sigma), one column per grid point. Returned
terms are dicts with the keys

  e      energy per unit volume, shape (n_points,)
  Vρ     de/dρ, shape (n_ρ, n_points), likewise Vσ, Vτ and Vl (Laplacian)
  Vρσ    d²e/dρdσ, shape (n_ρ, n_σ, n_points), and all other pairs of the
         required inputs (kernel terms only)

Derivatives for inputs the functional does not need are absent.
"""

import itertools
from typing import Dict, Optional, Sequence, Tuple

import chex
import equinox as eqx
import jax
import jax.numpy as jnp
from absl import logging

from dftfunctionals_jax import traits
from dftfunctionals_jax.errors import UnsupportedCapabilityError
from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.thresholds import value_dtype
from dftfunctionals_jax.traits import Family

Terms = Dict[str, jax.Array]


def _prepare_inputs(
    functional: Functional, inputs: Sequence[jax.Array]
) -> Tuple[jax.Array, ...]:
    """Converts inputs to arrays of a common dtype, promoted together with the
    parameter type, and checks they describe the same grid points."""
    if not traits.has_energy(functional):
        # Otherwise custom implementation of the terms is needed.
        raise UnsupportedCapabilityError(
            f"Functional {functional} does not support energy evaluations."
        )
    inputs = [jnp.asarray(x) for x in inputs]
    dtype = value_dtype(jnp.result_type(*inputs, functional.parameter_type()))
    inputs = tuple(x.astype(dtype) for x in inputs)
    chex.assert_rank(inputs, 2)
    chex.assert_equal_shape_suffix(inputs, 1)
    return inputs


@eqx.filter_jit
def _evaluate(functional: Functional, inputs: Tuple[jax.Array, ...], order: int) -> Terms:
    names = traits.required_inputs(functional)
    logging.debug(
        "Tracing order %d terms of %s on %d grid points.",
        order,
        functional,
        inputs[0].shape[1],
    )

    def energy(*quantities):
        return functional.spin_energy(*quantities)

    def point_terms(*quantities):
        terms = {"e": energy(*quantities)}
        for i, name in enumerate(names):
            terms[traits.term_name(name)] = jax.jacfwd(energy, argnums=i)(*quantities)
        if order > 1:
            for i, j in itertools.combinations_with_replacement(range(len(names)), 2):
                # Jacobian of the gradient, so that mixed terms of inputs with
                # different numbers of channels come out as (n_i, n_j) blocks.
                hessian = jax.jacfwd(jax.jacfwd(energy, argnums=i), argnums=j)
                terms[traits.term_name(names[i], names[j])] = hessian(*quantities)
        return terms

    return jax.vmap(point_terms, in_axes=1, out_axes=-1)(*inputs)


def _potential_terms(functional: Functional, *inputs: jax.Array) -> Terms:
    return _evaluate(functional, _prepare_inputs(functional, inputs), 1)


def _kernel_terms(functional: Functional, *inputs: jax.Array) -> Terms:
    return _evaluate(functional, _prepare_inputs(functional, inputs), 2)


def lda_potential_terms(functional, rho):
    return _potential_terms(functional, rho)


def gga_potential_terms(functional, rho, sigma):
    return _potential_terms(functional, rho, sigma)


def mgga_potential_terms(functional, rho, sigma, tau):
    return _potential_terms(functional, rho, sigma, tau)


def mggal_potential_terms(functional, rho, sigma, tau, lapl):
    return _potential_terms(functional, rho, sigma, tau, lapl)


def lda_kernel_terms(functional, rho):
    return _kernel_terms(functional, rho)


def gga_kernel_terms(functional, rho, sigma):
    return _kernel_terms(functional, rho, sigma)


def mgga_kernel_terms(functional, rho, sigma, tau):
    return _kernel_terms(functional, rho, sigma, tau)


def mggal_kernel_terms(functional, rho, sigma, tau, lapl):
    return _kernel_terms(functional, rho, sigma, tau, lapl)


_POTENTIAL_TERMS = {
    Family.LDA: lda_potential_terms,
    Family.GGA: gga_potential_terms,
    Family.MGGA: mgga_potential_terms,
    Family.MGGAL: mggal_potential_terms,
}

_KERNEL_TERMS = {
    Family.LDA: lda_kernel_terms,
    Family.GGA: gga_kernel_terms,
    Family.MGGA: mgga_kernel_terms,
    Family.MGGAL: mggal_kernel_terms,
}


def _select_inputs(functional, rho, sigma, tau, lapl):
    """Forwards only the inputs the functional's family needs. Extra inputs
    are silently dropped."""
    names = traits.required_inputs(functional)
    given = dict(rho=rho, sigma=sigma, tau=tau, lapl=lapl)
    missing = [name for name in names if given[name] is None]
    if missing:
        raise ValueError(
            f"{traits.family(functional).value} functional {functional} requires "
            f"{', '.join(missing)}."
        )
    return [given[name] for name in names]


def potential_terms(
    functional: Functional,
    rho,
    sigma: Optional[jax.Array] = None,
    tau: Optional[jax.Array] = None,
    lapl: Optional[jax.Array] = None,
) -> Terms:
    r"""Evaluates energy and potential terms on a grid of densities, density
    derivatives etc.

    Inputs not required by the functional's family are ignored, so the same
    call site serves functionals of every family.

    Args:
      functional: functional to evaluate. Must support energy evaluations.
      rho: density, shape (n_spin, n_points).
      sigma: :math:`\nabla\rho \cdot \nabla\rho`, shape (n_sigma, n_points).
      tau: kinetic energy density, shape (n_spin, n_points).
      lapl: Laplacian of the density, shape (n_spin, n_points).

    Returns:
      dict with keys `e` (energy per unit volume) and `Vρ`, `Vσ`, `Vτ`, `Vl`
      (first derivatives of `e`) for the inputs the functional needs.

    Raises:
      UnsupportedCapabilityError: if the functional has no energy.
      MultiSpinNotImplementedError: if several spin channels are passed to a
        functional without a spin-polarised formula.
      ValueError: if an input required by the family is missing.
    """
    inputs = _select_inputs(functional, rho, sigma, tau, lapl)
    return _POTENTIAL_TERMS[traits.family(functional)](functional, *inputs)


def kernel_terms(
    functional: Functional,
    rho,
    sigma: Optional[jax.Array] = None,
    tau: Optional[jax.Array] = None,
    lapl: Optional[jax.Array] = None,
) -> Terms:
    r"""Evaluates energy, potential and kernel terms.

    Takes the same arguments as `potential_terms` and returns the same keys
    plus the second derivatives for every pair of required inputs, e.g.
    `Vρρ`, `Vρσ` (:math:`\frac{\partial^2 e}{\partial\rho\partial\sigma}`)
    and `Vσσ` for a GGA.
    """
    inputs = _select_inputs(functional, rho, sigma, tau, lapl)
    return _KERNEL_TERMS[traits.family(functional)](functional, *inputs)
