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

"""Concrete functionals. Importing this package registers them."""

from dftfunctionals_jax.functionals.gga_x_pbe import (
    PbeExchange,
    pbe_beta_from_mu,
    pbe_mu_from_beta,
)
from dftfunctionals_jax.functionals.kinetic import (
    Gea2Kinetic,
    TfvwKinetic,
    ThomasFermiKinetic,
)
from dftfunctionals_jax.functionals.lda_x import LdaExchange, lda_x_energy
