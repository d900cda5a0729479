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

"""Exceptions raised when evaluating functionals."""


class FunctionalError(Exception):
    """Base exception for functional evaluation errors."""


class UnsupportedCapabilityError(FunctionalError):
    """Raised when an energy-requiring path is used on a potential-only
    functional. This is a library/caller mismatch and is never recoverable."""


class MultiSpinNotImplementedError(FunctionalError, NotImplementedError):
    """Raised when more than one spin channel reaches a functional that only
    has the single-channel fallback."""
