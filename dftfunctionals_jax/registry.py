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

"""Lookup of functionals with literature parameters by identifier."""

from typing import Callable, Dict, List

from absl import logging

from dftfunctionals_jax.functional import Functional

_FACTORIES: Dict[str, Callable[[], Functional]] = {}


def register(identifier: str):
    """Registers a zero-argument factory under `identifier`.

    Usage:
        @register("gga_x_pbe")
        def _gga_x_pbe():
            return PbeExchange(...)
    """

    def decorator(factory):
        if identifier in _FACTORIES:
            raise ValueError(f"Functional {identifier!r} is already registered.")
        _FACTORIES[identifier] = factory
        return factory

    return decorator


def get_functional(identifier: str) -> Functional:
    """Constructs the functional registered under `identifier`.

    Raises:
      KeyError: if no functional of this name is known.
    """
    try:
        factory = _FACTORIES[identifier]
    except KeyError:
        raise KeyError(f"Unknown functional identifier {identifier!r}.") from None
    logging.debug("Constructing functional %s.", identifier)
    return factory()


def available_functionals() -> List[str]:
    """Returns the identifiers of all registered functionals."""
    return sorted(_FACTORIES)
