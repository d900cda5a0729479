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
"""Tests for terms."""

import dataclasses

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
from absl.testing import absltest
from absl.testing import parameterized

import dftfunctionals_jax
from dftfunctionals_jax import terms
from dftfunctionals_jax.errors import (
    MultiSpinNotImplementedError,
    UnsupportedCapabilityError,
)
from dftfunctionals_jax.functional import Functional
from dftfunctionals_jax.functionals import LdaExchange, lda_x_energy
from dftfunctionals_jax.parameters import Parameters
from dftfunctionals_jax.thresholds import ThresholdPolicy
from dftfunctionals_jax.traits import Family, Kind

jax.config.update("jax_enable_x64", True)


class _ToyMetaGGA(Functional):
    family = Family.MGGA
    kind = Kind.XC

    def energy(self, rho, sigma, tau):
        c = self.parameters["c"]
        x = sigma / rho ** (8 / 3)
        t = tau / rho ** (5 / 3)
        return lda_x_energy(rho) * (1 + c * x / (1 + x)) * (1 + 0.1 * t / (1 + t))


class _PotentialOnly(Functional):
    family = Family.LDA
    kind = Kind.C
    has_energy = False


class _SpinScaledLdaExchange(Functional):
    """Exchange obeying the spin-scaling relation, for two channels."""

    family = Family.LDA
    kind = Kind.X

    def spin_energy(self, rho, sigma=None, tau=None, lapl=None):
        return jnp.sum(lda_x_energy(2 * rho)) / 2


RHO = np.array([[0.1, 0.5, 1.0, 2.3]])
SIGMA = np.array([[0.01, 0.2, 0.7, 1.5]])
TAU = np.array([[0.05, 0.3, 0.9, 2.0]])
LAPL = np.array([[-0.2, 0.1, 0.4, -1.0]])


def _toy_mgga():
    return _ToyMetaGGA(Parameters(c=0.3), "toy_mgga")


def _test_functionals():
    return [
        ("lda_x", dftfunctionals_jax.get_functional("lda_x")),
        ("gga_x_pbe", dftfunctionals_jax.get_functional("gga_x_pbe")),
        ("toy_mgga", _toy_mgga()),
        ("mgga_k_gea2", dftfunctionals_jax.get_functional("mgga_k_gea2")),
    ]


class TermsTest(parameterized.TestCase):
    def test_lda_single_point(self):
        result = terms.potential_terms(LdaExchange(), np.array([[0.5]]))
        self.assertEqual(set(result), {"e", "Vρ"})
        self.assertEqual(result["e"].shape, (1,))
        self.assertEqual(result["Vρ"].shape, (1, 1))
        np.testing.assert_allclose(
            result["e"], [-3 / 4 * (3 / np.pi) ** (1 / 3) * 0.5 ** (4 / 3)], rtol=1e-13
        )
        np.testing.assert_allclose(
            result["Vρ"], [[-((3 / np.pi) ** (1 / 3)) * 0.5 ** (1 / 3)]], rtol=1e-13
        )

    def test_lda_below_threshold(self):
        result = terms.potential_terms(LdaExchange(), np.array([[1e-16]]))
        np.testing.assert_array_equal(result["e"], [0.0])
        np.testing.assert_array_equal(result["Vρ"], [[0.0]])

    def test_pbe_without_gradient_is_lda(self):
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        result = terms.potential_terms(pbe, np.array([[1.0]]), np.array([[0.0]]))
        lda = terms.potential_terms(LdaExchange(), np.array([[1.0]]))
        np.testing.assert_allclose(result["e"], lda["e"], rtol=1e-14, atol=0)
        np.testing.assert_allclose(result["Vρ"], lda["Vρ"], rtol=1e-14, atol=0)

    @parameterized.parameters(*dftfunctionals_jax.available_functionals())
    def test_zero_gradient_is_finite(self, identifier):
        functional = dftfunctionals_jax.get_functional(identifier)
        result = terms.kernel_terms(
            functional, RHO, np.zeros_like(SIGMA), TAU, LAPL
        )
        for key, value in result.items():
            self.assertTrue(np.all(np.isfinite(value)), msg=key)

    @parameterized.parameters(*dftfunctionals_jax.available_functionals())
    def test_below_threshold_is_exactly_zero(self, identifier):
        functional = dftfunctionals_jax.get_functional(identifier)
        rho = np.array([[1e-16, 1e-15, 0.0, 0.3]])
        for evaluate in (terms.potential_terms, terms.kernel_terms):
            result = evaluate(functional, rho, SIGMA, TAU, LAPL)
            for key, value in result.items():
                value = np.asarray(value)
                np.testing.assert_array_equal(value[..., :3], 0.0, err_msg=key)
                self.assertTrue(np.all(np.isfinite(value)), msg=key)

    @parameterized.named_parameters(*_test_functionals())
    def test_potential_matches_finite_differences(self, functional):
        names = dftfunctionals_jax.required_inputs(functional)
        inputs = dict(rho=RHO, sigma=SIGMA, tau=TAU, lapl=LAPL)
        result = terms.potential_terms(functional, **inputs)

        for name in names:
            h = 1e-5 * np.maximum(np.abs(inputs[name]), 1e-2)
            plus = terms.potential_terms(functional, **{**inputs, name: inputs[name] + h})
            minus = terms.potential_terms(functional, **{**inputs, name: inputs[name] - h})
            expected = (plus["e"] - minus["e"]) / (2 * h[0])
            key = dftfunctionals_jax.traits.term_name(name)
            np.testing.assert_allclose(result[key][0], expected, rtol=1e-6, atol=1e-10)

    @parameterized.named_parameters(*_test_functionals())
    def test_kernel_matches_finite_differences(self, functional):
        names = dftfunctionals_jax.required_inputs(functional)
        inputs = dict(rho=RHO, sigma=SIGMA, tau=TAU, lapl=LAPL)
        result = terms.kernel_terms(functional, **inputs)

        for i, p in enumerate(names):
            h = 1e-5 * np.maximum(np.abs(inputs[p]), 1e-2)
            plus = terms.potential_terms(functional, **{**inputs, p: inputs[p] + h})
            minus = terms.potential_terms(functional, **{**inputs, p: inputs[p] - h})
            for q in names[i:]:
                # d/dp of Vq, compared with the kernel entry ordered (p, q).
                key = dftfunctionals_jax.traits.term_name(q)
                expected = (plus[key][0] - minus[key][0]) / (2 * h[0])
                kernel = result[dftfunctionals_jax.traits.term_name(p, q)]
                np.testing.assert_allclose(kernel[0, 0], expected, rtol=1e-5, atol=1e-9)

    def test_mixed_kernel_is_symmetric(self):
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        kernel = terms.kernel_terms(pbe, RHO, SIGMA)
        h_rho = 1e-5 * RHO
        h_sigma = 1e-5 * SIGMA

        d_sigma_of_vrho = (
            terms.potential_terms(pbe, RHO, SIGMA + h_sigma)["Vρ"]
            - terms.potential_terms(pbe, RHO, SIGMA - h_sigma)["Vρ"]
        ) / (2 * h_sigma)
        d_rho_of_vsigma = (
            terms.potential_terms(pbe, RHO + h_rho, SIGMA)["Vσ"]
            - terms.potential_terms(pbe, RHO - h_rho, SIGMA)["Vσ"]
        ) / (2 * h_rho)
        np.testing.assert_allclose(kernel["Vρσ"][0], d_sigma_of_vrho, rtol=1e-5)
        np.testing.assert_allclose(kernel["Vρσ"][0], d_rho_of_vsigma, rtol=1e-5)

    @parameterized.parameters(
        (Family.LDA, ("e", "Vρ", "Vρρ")),
        (Family.GGA, ("e", "Vρ", "Vσ", "Vρρ", "Vρσ", "Vσσ")),
        (
            Family.MGGA,
            ("e", "Vρ", "Vσ", "Vτ", "Vρρ", "Vρσ", "Vρτ", "Vσσ", "Vστ", "Vττ"),
        ),
        (
            Family.MGGAL,
            (
                "e", "Vρ", "Vσ", "Vτ", "Vl",
                "Vρρ", "Vρσ", "Vρτ", "Vρl", "Vσσ", "Vστ", "Vσl", "Vττ", "Vτl", "Vll",
            ),
        ),
    )
    def test_kernel_keys_and_shapes(self, family, expected_keys):
        functional = {
            Family.LDA: LdaExchange(),
            Family.GGA: dftfunctionals_jax.get_functional("gga_x_pbe"),
            Family.MGGA: _toy_mgga(),
            Family.MGGAL: dftfunctionals_jax.get_functional("mgga_k_gea2"),
        }[family]
        result = terms.kernel_terms(functional, RHO, SIGMA, TAU, LAPL)
        self.assertEqual(set(result), set(expected_keys))
        n_points = RHO.shape[1]
        for key, value in result.items():
            # "e" is rank 1, "Vρ" rank 2 and "Vρσ" rank 3.
            self.assertEqual(value.ndim, len(key), msg=key)
            self.assertEqual(value.shape[-1], n_points, msg=key)

    def test_extra_inputs_are_ignored(self):
        lda = LdaExchange()
        expected = terms.potential_terms(lda, RHO)
        result = terms.potential_terms(lda, RHO, SIGMA, TAU, LAPL)
        self.assertEqual(set(result), {"e", "Vρ"})
        np.testing.assert_array_equal(result["e"], expected["e"])

        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        result = terms.potential_terms(pbe, RHO, SIGMA, TAU, LAPL)
        self.assertEqual(set(result), {"e", "Vρ", "Vσ"})

    def test_missing_input_raises(self):
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        with self.assertRaisesRegex(ValueError, "sigma"):
            terms.potential_terms(pbe, RHO)

    def test_mismatched_points_raise(self):
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        with self.assertRaises(AssertionError):
            terms.potential_terms(pbe, RHO, SIGMA[:, :2])

    @parameterized.named_parameters(*_test_functionals())
    def test_multiple_spins_raise(self, functional):
        rho = np.concatenate([RHO, RHO]) / 2
        sigma = np.concatenate([SIGMA, SIGMA, SIGMA]) / 4
        tau = np.concatenate([TAU, TAU]) / 2
        lapl = np.concatenate([LAPL, LAPL]) / 2
        with self.assertRaises(MultiSpinNotImplementedError):
            terms.potential_terms(functional, rho, sigma, tau, lapl)
        with self.assertRaises(NotImplementedError):
            terms.kernel_terms(functional, rho, sigma, tau, lapl)

    def test_custom_multiple_spin_implementation(self):
        functional = _SpinScaledLdaExchange()
        rho = np.array([[0.2, 0.5], [0.2, 0.1]])
        result = terms.kernel_terms(functional, rho)
        self.assertEqual(result["Vρ"].shape, (2, 2))
        self.assertEqual(result["Vρρ"].shape, (2, 2, 2))
        # Equal channels reproduce the unpolarised energy.
        unpolarised = terms.potential_terms(LdaExchange(), np.array([[0.4]]))
        np.testing.assert_allclose(result["e"][0], unpolarised["e"][0], rtol=1e-13)
        # No coupling between the channels.
        np.testing.assert_array_equal(result["Vρρ"][0, 1], 0.0)

    def test_potential_only_functional_raises(self):
        functional = _PotentialOnly()
        with self.assertRaises(UnsupportedCapabilityError):
            terms.potential_terms(functional, RHO)
        with self.assertRaises(UnsupportedCapabilityError):
            terms.kernel_terms(functional, RHO)

    def test_type_promotion(self):
        rho = RHO.astype(np.float32)
        result = terms.potential_terms(LdaExchange(), rho)
        self.assertEqual(result["e"].dtype, jnp.float32)

        # Parameters are float64, so the whole evaluation is promoted.
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        result = terms.potential_terms(pbe, rho, SIGMA.astype(np.float32))
        self.assertEqual(result["e"].dtype, jnp.float64)
        self.assertEqual(result["Vσ"].dtype, jnp.float64)

    def test_custom_thresholds(self):
        lda = dataclasses.replace(LdaExchange(), thresholds=ThresholdPolicy(rho=1e-3))
        result = terms.potential_terms(lda, np.array([[1e-4, 1e-2]]))
        self.assertEqual(result["e"][0], 0.0)
        self.assertLess(result["e"][1], 0.0)

    def test_parameter_gradient(self):
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")

        def total_energy(functional):
            return terms.potential_terms(functional, RHO, SIGMA)["e"].sum()

        grads = eqx.filter_grad(total_energy)(pbe)
        kappa, mu = pbe.parameters.values
        h = 1e-4
        expected = (
            total_energy(pbe.change_parameters([kappa + h, mu]))
            - total_energy(pbe.change_parameters([kappa - h, mu]))
        ) / (2 * h)
        np.testing.assert_allclose(
            grads.parameters.values[0], expected, rtol=1e-6, atol=1e-10
        )

    def test_inputs_are_not_modified(self):
        rho = RHO.copy()
        pbe = dftfunctionals_jax.get_functional("gga_x_pbe")
        before = pbe.parameters.values
        terms.kernel_terms(pbe, rho, SIGMA)
        np.testing.assert_array_equal(rho, RHO)
        np.testing.assert_array_equal(pbe.parameters.values, before)


if __name__ == "__main__":
    absltest.main()
