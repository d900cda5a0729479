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

"""Named, adjustable coefficients of a functional."""

from typing import Dict, Sequence, Tuple

import equinox as eqx
import jax
import jax.numpy as jnp


class Parameters(eqx.Module):
    """An ordered set of named numeric coefficients sharing one element type.

    The names are static, the values are a single array and hence an ordinary
    pytree leaf, so parameters can be differentiated through when fitting.

    Usage:
        params = Parameters(kappa=0.804, mu=0.2195)
        params["kappa"]
    """

    names: Tuple[str, ...] = eqx.field(static=True)
    values: jax.Array

    def __init__(self, names: Sequence[str] = (), values=None, **named_values):
        if named_values:
            names = tuple(named_values)
            values = list(named_values.values())
        self.names = tuple(names)
        if values is None:
            # An empty set of parameters must not widen type promotion.
            values = jnp.zeros((len(self.names),), dtype=bool)
        self.values = jnp.asarray(values)

    @property
    def dtype(self):
        return self.values.dtype

    def __len__(self) -> int:
        return len(self.names)

    def __getitem__(self, name: str) -> jax.Array:
        return self.values[self.names.index(name)]

    def keys(self) -> Tuple[str, ...]:
        return self.names

    def items(self):
        return [(name, self[name]) for name in self.names]

    def as_dict(self) -> Dict[str, jax.Array]:
        return dict(self.items())

    def replace(self, values) -> "Parameters":
        """Returns a container with the same names and new values. The shape
        of `values` is not checked."""
        return Parameters(self.names, values)
