"""Tests for mean/osculating conversions and short-period coefficient selection."""
import numpy as np
import pytest

from danielsonpy.astro import AuxiliaryElements, PropagationType, errors, perturbations
from danielsonpy.astro.propagation import SemiAnalyticalPropagator, ShortPeriodSynthesizer


MU = 3.986004418e14


def wrapped(angle):
    return (angle + np.pi) % (2 * np.pi) - np.pi


def j2_model():
    return [
        perturbations.ZonalHarmonics(perturbations.GravityField.earth(2, 0), max_frequency_short_periodics=5),
        perturbations.NewtonianAttraction(MU),
    ]


def full_model():
    field = perturbations.GravityField.earth(4, 4)
    return [
        perturbations.ZonalHarmonics(field),
        perturbations.TesseralHarmonics(field, max_frequency_short_periodics=8),
        perturbations.ThirdBodyAttraction.moon(),
        perturbations.ThirdBodyAttraction.sun(),
        perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0),
        perturbations.SolarRadiationPressure(perturbations.KeplerianEphemeris.sun(), cross_section=10.0),
        perturbations.NewtonianAttraction(MU),
    ]


def synthesizer_for(state, model):
    aux = AuxiliaryElements.from_elements(state.epoch, state.elements, MU)
    return ShortPeriodSynthesizer([
        perturbation.short_period_terms(aux, PropagationType.OSCULATING, perturbation.parameter_values())
        for perturbation in model
    ])


def assert_same_elements(actual, expected, sm_axis_rtol=1e-11, atol=1e-11):
    np.testing.assert_allclose(actual[0], expected[0], rtol=sm_axis_rtol)
    np.testing.assert_allclose(actual[1:5], expected[1:5], atol=atol)
    assert wrapped(actual[5] - expected[5]) == pytest.approx(0.0, abs=atol)


# ── Conversions ─────────────────────────────────────────────────────

class TestConversions:

    def test_mean_to_osculating_to_mean(self, inclined_state):
        """Converting a mean state to osculating and back recovers it."""
        model = j2_model()
        osculating = SemiAnalyticalPropagator.compute_osculating_state(inclined_state, perturbations=model)
        mean = SemiAnalyticalPropagator.compute_mean_state(osculating, perturbations=model)

        assert abs(osculating.elements[0] - inclined_state.elements[0]) > 100.0
        assert_same_elements(mean.elements, inclined_state.elements)

    def test_osculating_to_mean_to_osculating(self, leo_state):
        """Converting an osculating state to mean and back recovers it."""
        model = j2_model()
        mean = SemiAnalyticalPropagator.compute_mean_state(leo_state, perturbations=model)
        osculating = SemiAnalyticalPropagator.compute_osculating_state(mean, perturbations=model)

        assert_same_elements(osculating.elements, leo_state.elements, atol=1e-10)

    def test_round_trip_with_every_perturbation(self, leo_state):
        """The round trip holds with geopotential, third-body, drag and radiation terms together."""
        model = full_model()
        osculating = SemiAnalyticalPropagator.compute_osculating_state(leo_state, perturbations=model)
        mean = SemiAnalyticalPropagator.compute_mean_state(osculating, perturbations=model)

        assert np.abs(osculating.elements[1:5] - leo_state.elements[1:5]).max() > 1e-6
        assert_same_elements(mean.elements, leo_state.elements, sm_axis_rtol=1e-10, atol=1e-10)

    def test_keplerian_model_is_identity(self, leo_state):
        """Without short-period terms mean and osculating elements coincide."""
        mean = SemiAnalyticalPropagator.compute_mean_state(
            leo_state, perturbations=[perturbations.NewtonianAttraction(MU)]
        )
        np.testing.assert_array_equal(mean.elements, leo_state.elements)

    def test_keeps_additional_states(self, leo_state):
        """Converted states keep mass and additional states."""
        tagged = leo_state.add_additional_state("tag", 1.0)
        mean = SemiAnalyticalPropagator.compute_mean_state(tagged, perturbations=j2_model())

        assert mean.mass == leo_state.mass
        assert mean.get_additional_state("tag") == 1.0

    def test_convergence_error(self, leo_state):
        """An exhausted iteration budget raises with the number of iterations."""
        with pytest.raises(errors.ConvergenceError) as excinfo:
            SemiAnalyticalPropagator.compute_mean_state(leo_state, perturbations=j2_model(), max_iterations=1)

        assert excinfo.value.iterations == 1
        assert excinfo.value.state is leo_state

    def test_convergence_error_is_a_domain_error(self):
        """Convergence failures are numerical domain errors."""
        assert issubclass(errors.ConvergenceError, errors.NumericalDomainError)

    def test_attitude_provider(self, leo_state):
        """The attitude provider sets the attitude of the converted state."""
        from danielsonpy.astro.attitude import InertialAttitude

        rotation = np.array([[0.0, 1.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        mean = SemiAnalyticalPropagator.compute_mean_state(
            leo_state, InertialAttitude(rotation), perturbations=j2_model()
        )
        np.testing.assert_array_equal(mean.attitude, rotation)


# ── Synthesizer ─────────────────────────────────────────────────────

class TestShortPeriodSynthesizer:

    def test_value_is_sum_of_terms(self, leo_state):
        """The total correction is the sum of the corrections of each term set."""
        model = j2_model()
        synthesizer = synthesizer_for(leo_state, model)

        expected = sum(term.value(leo_state) for term in synthesizer.terms)
        np.testing.assert_array_equal(synthesizer.value(leo_state), expected)

    def test_mean_to_osculating(self, leo_state):
        """Osculating elements are the mean elements plus the correction."""
        synthesizer = synthesizer_for(leo_state, j2_model())
        osculating = synthesizer.mean_to_osculating(leo_state)

        np.testing.assert_allclose(osculating.elements, leo_state.elements + synthesizer.value(leo_state))
        assert osculating.epoch == leo_state.epoch

    def test_no_coefficients_by_default(self, leo_state):
        """A None selection retains nothing."""
        synthesizer = synthesizer_for(leo_state, j2_model())
        assert synthesizer.coefficients(leo_state, None) == {}

    def test_all_coefficients(self, leo_state):
        """An empty selection retains every coefficient."""
        synthesizer = synthesizer_for(leo_state, j2_model())
        coefficients = synthesizer.coefficients(leo_state, set())

        assert len(coefficients) == 2 * 5
        assert "zonal-sin[5]" in coefficients

    def test_selected_coefficients(self, leo_state):
        """A named selection retains the matching coefficients only."""
        synthesizer = synthesizer_for(leo_state, j2_model())
        coefficients = synthesizer.coefficients(leo_state, {"zonal-cos[2]", "drag-cos[1]"})

        assert list(coefficients) == ["zonal-cos[2]"]
        assert coefficients["zonal-cos[2]"].shape == (6, )

    def test_update_uses_current_parameters(self, leo_state):
        """Refreshing the terms picks up new parameter values."""
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0, quadrature_points=24, max_frequency=4)
        synthesizer = synthesizer_for(leo_state, [drag])
        before = synthesizer.value(leo_state)

        drag.get_parameter("drag coefficient").value = 4.4
        synthesizer.update(leo_state)

        np.testing.assert_allclose(synthesizer.value(leo_state), 2 * before, rtol=1e-10)

    def test_clear(self, leo_state):
        """Clearing the cache does not change the value."""
        synthesizer = synthesizer_for(leo_state, j2_model())
        before = synthesizer.value(leo_state)
        synthesizer.clear()

        np.testing.assert_array_equal(synthesizer.value(leo_state), before)
