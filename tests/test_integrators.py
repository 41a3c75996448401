"""Tests for the ODE integrators used by the propagators."""
import numpy as np
import pytest

from danielsonpy.astro import errors
from danielsonpy.astro.propagation import ClassicalRungeKuttaIntegrator, DormandPrince853Integrator


def oscillator(t, y):
    return np.array([y[1], -y[0]])


class TestDormandPrince853Integrator:

    def test_harmonic_oscillator(self):
        """A quarter period of the oscillator turns (1, 0) into (0, -1)."""
        integrator = DormandPrince853Integrator(absolute_tolerance=1e-12, relative_tolerance=1e-12)
        t, y = integrator.integrate(oscillator, 0.0, [1.0, 0.0], np.pi / 2)

        assert t == pytest.approx(np.pi / 2)
        np.testing.assert_allclose(y, [0.0, -1.0], atol=1e-9)

    def test_backward(self):
        """Integrating backward undoes a forward integration."""
        integrator = DormandPrince853Integrator(absolute_tolerance=1e-12, relative_tolerance=1e-12)
        _, forward = integrator.integrate(oscillator, 0.0, [1.0, 0.0], 3.0)
        t, backward = integrator.integrate(oscillator, 3.0, forward, 0.0)

        assert t == pytest.approx(0.0)
        np.testing.assert_allclose(backward, [1.0, 0.0], atol=1e-9)

    def test_step_handler(self):
        """Every accepted step is reported, the last one at the final time."""
        steps = []
        integrator = DormandPrince853Integrator()
        integrator.integrate(oscillator, 0.0, [1.0, 0.0], 10.0, lambda t, y: steps.append(t))

        assert len(steps) > 1
        assert np.all(np.diff(steps) > 0)
        assert steps[-1] == pytest.approx(10.0)

    def test_zero_span(self):
        """Integrating over an empty interval returns the initial vector."""
        t, y = DormandPrince853Integrator().integrate(oscillator, 5.0, [1.0, 2.0], 5.0)

        assert t == 5.0
        np.testing.assert_array_equal(y, [1.0, 2.0])

    def test_uncontrolled_components(self):
        """Components outside of error control still follow the controlled ones."""
        integrator = DormandPrince853Integrator(absolute_tolerance=1e-12, relative_tolerance=1e-12)

        def derivatives(t, y):
            return np.array([y[1], -y[0], y[0]])

        _, y = integrator.integrate(derivatives, 0.0, [1.0, 0.0, 0.0], np.pi / 2, controlled=2)
        assert y[2] == pytest.approx(1.0, abs=1e-6)

    def test_step_size_collapse(self):
        """A solution blowing up in finite time makes the step size collapse."""
        integrator = DormandPrince853Integrator(min_step=1e-3)
        with pytest.raises(errors.NumericalDomainError):
            integrator.integrate(lambda t, y: y ** 2, 0.0, [1.0], 2.0)

    def test_first_step_respects_minimum(self):
        """A small initial step estimate is raised to the minimum step instead of failing."""
        steps = []
        integrator = DormandPrince853Integrator(
            min_step=0.2, max_step=0.5, absolute_tolerance=1e-8, relative_tolerance=1e-8
        )
        _, y = integrator.integrate(oscillator, 0.0, [1.0, 0.0], 2 * np.pi, lambda t, y: steps.append(t))

        assert steps[0] == pytest.approx(0.2)
        assert np.all(np.diff(steps[:-1]) >= 0.2 - 1e-12)
        np.testing.assert_allclose(y, [1.0, 0.0], atol=1e-6)

    def test_short_interval_below_minimum_step(self):
        """An interval shorter than the minimum step is covered in a single step."""
        t, y = DormandPrince853Integrator(min_step=10.0, max_step=100.0).integrate(oscillator, 0.0, [1.0, 0.0], 0.5)

        assert t == pytest.approx(0.5)
        np.testing.assert_allclose(y, [np.cos(0.5), -np.sin(0.5)], atol=1e-6)

    @pytest.mark.parametrize("min_step, max_step", [(0.0, 1.0), (10.0, 1.0)])
    def test_rejects_step_bounds(self, min_step, max_step):
        """Step bounds must be positive and ordered."""
        with pytest.raises(errors.ConfigurationError):
            DormandPrince853Integrator(min_step=min_step, max_step=max_step)

    def test_tolerance_vectors(self):
        """Components past the controlled ones get tolerances that never limit the step."""
        absolute, relative = DormandPrince853Integrator(absolute_tolerance=1e-3).tolerance_vectors(8, 6)

        np.testing.assert_array_equal(absolute[:6], 1e-3)
        assert np.all(absolute[6:] > 1e20)
        assert np.all(relative[6:] > 1e20)


class TestClassicalRungeKuttaIntegrator:

    def test_harmonic_oscillator(self):
        """Fixed steps of 0.01 s are accurate to the fourth order."""
        t, y = ClassicalRungeKuttaIntegrator(0.01).integrate(oscillator, 0.0, [1.0, 0.0], np.pi / 2)

        assert t == np.pi / 2
        np.testing.assert_allclose(y, [0.0, -1.0], atol=1e-9)

    def test_lands_on_target(self):
        """The last step is shortened to land on the final time."""
        steps = []
        ClassicalRungeKuttaIntegrator(0.3).integrate(oscillator, 0.0, [1.0, 0.0], 1.0, lambda t, y: steps.append(t))

        np.testing.assert_allclose(steps, [0.3, 0.6, 0.9, 1.0])

    def test_backward(self):
        """Negative spans are integrated backward."""
        t, y = ClassicalRungeKuttaIntegrator(0.01).integrate(oscillator, 0.0, [1.0, 0.0], -np.pi / 2)

        assert t == -np.pi / 2
        np.testing.assert_allclose(y, [0.0, 1.0], atol=1e-9)

    def test_rejects_non_positive_step(self):
        """The step size must be positive."""
        with pytest.raises(errors.ConfigurationError):
            ClassicalRungeKuttaIntegrator(0.0)
