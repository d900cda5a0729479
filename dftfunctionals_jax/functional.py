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

"""The protocol every concrete functional implements."""

import dataclasses
from typing import ClassVar, Mapping, Optional

import equinox as eqx
import jax
import jax.numpy as jnp

from dftfunctionals_jax.errors import MultiSpinNotImplementedError
from dftfunctionals_jax.parameters import Parameters
from dftfunctionals_jax.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy
from dftfunctionals_jax.traits import Family, Kind


class Functional(eqx.Module):
    """A density functional: a scalar energy density formula tagged with a
    family and a kind.

    Concrete functionals set the class-level tags and implement `energy`,
    which receives one scalar per required input (see
    `traits.required_inputs`) and must be written with differentiable
    `jax.numpy` operations only.

    Instances are immutable. `change_parameters` and `dataclasses.replace`
    return new functionals, the original is never modified.

    Attributes:
      parameters: adjustable coefficients of the formula.
      identifier: symbolic name, e.g. "gga_x_pbe".
      thresholds: numerical guards used by `spin_energy`.
    """

    family: ClassVar[Family]
    kind: ClassVar[Kind]
    has_energy: ClassVar[bool] = True
    custom_identifier: ClassVar[str] = "custom"

    parameters: Parameters = eqx.field(default_factory=Parameters)
    identifier: Optional[str] = eqx.field(static=True, default=None)
    thresholds: ThresholdPolicy = eqx.field(static=True, default=DEFAULT_THRESHOLDS)

    def __str__(self) -> str:
        return self.identifier or self.custom_identifier

    def energy(self, *quantities: jax.Array) -> jax.Array:
        """Energy per unit volume at a single grid point."""
        raise NotImplementedError(f"{type(self).__name__} does not implement energy.")

    def parameter_type(self):
        """Element type of the parameters, used when promoting input dtypes."""
        return self.parameters.dtype

    def change_parameters(self, parameters, *, keep_identifier: bool = False):
        """Returns a new version of the functional with adjusted parameters.

        Args:
          parameters: a `Parameters`, a mapping from parameter name to value or
            an array of values in the order of `self.parameters.names`. It is
            not checked that the right parameters are passed.
          keep_identifier: keep the identifier of this functional. Otherwise the
            identifier is changed to the class's customised identifier to signal
            that the parameters no longer match the literature values.
        """
        if not isinstance(parameters, Parameters):
            if isinstance(parameters, Mapping):
                parameters = Parameters(**parameters)
            else:
                parameters = self.parameters.replace(parameters)
        identifier = self.identifier if keep_identifier else self.custom_identifier
        return dataclasses.replace(self, parameters=parameters, identifier=identifier)

    def threshold_rho(self, dtype=None):
        """Threshold for the density: below it, the energy and derivatives
        evaluate to zero. `dtype` is the working floating-point type."""
        return self.thresholds.threshold_rho(dtype)

    def threshold_sigma(self, dtype=None):
        return self.thresholds.threshold_sigma(dtype)

    def threshold_tau(self, dtype=None):
        return self.thresholds.threshold_tau(dtype)

    def threshold_zeta(self, dtype=None):
        return self.thresholds.threshold_zeta(dtype)

    def spin_energy(
        self,
        rho: jax.Array,
        sigma: Optional[jax.Array] = None,
        tau: Optional[jax.Array] = None,
        lapl: Optional[jax.Array] = None,
    ) -> jax.Array:
        """Energy at a single grid point from per-spin-channel inputs.

        This is the fallback for functionals without a spin-polarised
        formula: only a single channel is supported. Functionals which handle
        several channels override this method.

        Args:
          rho: density, shape (n_spin,).
          sigma: gradient squared, shape (n_sigma,), if needed.
          tau: kinetic energy density, shape (n_spin,), if needed.
          lapl: Laplacian of the density, shape (n_spin,), if needed.

        Raises:
          MultiSpinNotImplementedError: if more than one density channel is
            supplied.
        """
        if rho.shape[0] != 1:
            raise MultiSpinNotImplementedError(
                f"Multiple spins not yet implemented for fallback functional {self}."
            )
        rho = rho[0]
        below = rho <= self.threshold_rho(rho)
        # Evaluate at a harmless density where masked, so the discarded branch
        # contributes exact zeros to the derivatives instead of NaNs.
        rho = jnp.where(below, jnp.ones_like(rho), rho)

        args = [rho]
        if sigma is not None:
            args.append(jnp.maximum(sigma[0], self.threshold_sigma(sigma)))
        if tau is not None:
            args.append(jnp.maximum(tau[0], self.threshold_tau(tau)))
        if lapl is not None:
            args.append(lapl[0])

        e = self.energy(*args)
        return jnp.where(below, jnp.zeros_like(e), e)
