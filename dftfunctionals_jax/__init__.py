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

"""Automatically differentiated density functionals in JAX."""

from dftfunctionals_jax import functionals
from dftfunctionals_jax.errors import (
    FunctionalError,
    MultiSpinNotImplementedError,
    UnsupportedCapabilityError,
)
from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.parameters import Parameters
from dftfunctionals_jax.registry import available_functionals, get_functional, register
from dftfunctionals_jax.terms import kernel_terms, potential_terms
from dftfunctionals_jax.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy
from dftfunctionals_jax.traits import (
    Family,
    Kind,
    family,
    has_energy,
    kind,
    needs_laplacian,
    needs_sigma,
    needs_tau,
    required_inputs,
)

__version__ = "0.1.0"
