"""Tests for the perturbation models: construction checks, mean element rates and short-period series."""
import jax.numpy as jnp
import numpy as np
import pytest

from danielsonpy.astro import (
    AuxiliaryElements, Orbit, ParameterDriver, PropagationType, SpacecraftState, conversions, errors, perturbations,
)
from danielsonpy.astro.parameters import find_driver


MU = 3.986004418e14
J2 = 1.08263e-3
RE = 6378137.0


def aux_of(state):
    return AuxiliaryElements.from_elements(state.epoch, state.elements, state.orbit.grav_param)


def mean_rate(perturbation, state):
    return np.asarray(perturbation.mean_element_rate(
        state, aux_of(state), jnp.asarray(perturbation.parameter_values())
    ))


# ── Parameter drivers ───────────────────────────────────────────────

class TestParameterDriver:

    def test_value_defaults_to_reference(self):
        """A new driver holds its reference value and is not selected."""
        driver = ParameterDriver("drag coefficient", 2.2, 0.125, minimum=0.0)

        assert driver.value == 2.2
        assert not driver.selected

    def test_bounds(self):
        """Values outside of the bounds are rejected."""
        driver = ParameterDriver("drag coefficient", 2.2, 0.125, minimum=0.0)
        with pytest.raises(errors.ConfigurationError):
            driver.value = -1.0

    def test_reset(self):
        """reset() restores the reference value."""
        driver = ParameterDriver("drag coefficient", 2.2, 0.125)
        driver.value = 2.5
        driver.reset()

        assert driver.value == 2.2

    @pytest.mark.parametrize("scale", [0.0, -1.0])
    def test_rejects_non_positive_scale(self, scale):
        """Scales must be strictly positive."""
        with pytest.raises(errors.ConfigurationError):
            ParameterDriver("drag coefficient", 2.2, scale)

    def test_unknown_name(self):
        """Looking up an unknown name lists the known ones."""
        drivers = [ParameterDriver("drag coefficient", 2.2, 0.125)]
        with pytest.raises(errors.UnknownParameterError, match="drag coefficient"):
            find_driver(drivers, "reflection coefficient")

    def test_unknown_parameter_is_a_key_error(self):
        """Unknown parameters are both configuration and key errors."""
        assert issubclass(errors.UnknownParameterError, errors.ConfigurationError)
        assert issubclass(errors.UnknownParameterError, KeyError)

    def test_published_names(self):
        """Perturbations publish their parameters under fixed names."""
        atmosphere = perturbations.LEO_ATMOSPHERE

        assert perturbations.NewtonianAttraction().get_parameter("central attraction coefficient").scale == 2.0 ** 32
        assert perturbations.AtmosphericDrag(atmosphere, 10.0).get_parameter("drag coefficient").scale == 2.0 ** -3
        assert perturbations.ThirdBodyAttraction.moon().get_parameter("Moon attraction coefficient").value == 4.9048695e12


# ── Gravity field ───────────────────────────────────────────────────

class TestGravityField:

    def test_earth_truncation(self):
        """The built-in Earth field is truncated to the requested degree and order."""
        field = perturbations.GravityField.earth(4, 2)

        assert field.max_degree == 4
        assert field.max_order == 2
        assert field.c_coeffs[2, 0] == pytest.approx(-J2)

    @pytest.mark.parametrize("degree, order", [(9, 0), (1, 0), (4, 5)])
    def test_earth_rejects_truncation(self, degree, order):
        """Truncations beyond the built-in table are rejected."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.GravityField.earth(degree, order)

    def test_shape_mismatch(self):
        """C and S tables must have the same shape."""
        with pytest.raises(errors.DimensionMismatchError):
            perturbations.GravityField(np.zeros((3, 3)), np.zeros((3, 2)))

    def test_from_zonals(self):
        """Zonal fields store C_n0 = -J_n."""
        field = perturbations.GravityField.from_zonals([J2, -2.53e-6])

        assert field.max_degree == 3
        assert field.max_order == 0
        assert field.c_coeffs[3, 0] == pytest.approx(2.53e-6)

    def test_frozen(self):
        """The field is immutable."""
        field = perturbations.GravityField.earth(2, 0)
        with pytest.raises(AttributeError):
            field.grav_param = 1.0

    def test_legendre(self):
        """Low degree Legendre functions match their closed forms."""
        sin_lat = jnp.asarray([0.3])
        cos_lat = jnp.sqrt(1 - sin_lat ** 2)
        legendre = perturbations.geopotential.associated_legendre(3, 2, sin_lat, cos_lat)

        assert float(legendre[2][0][0]) == pytest.approx(0.5 * (3 * 0.09 - 1))
        assert float(legendre[2][2][0]) == pytest.approx(3 * (1 - 0.09))
        assert float(legendre[3][1][0]) == pytest.approx(1.5 * (5 * 0.09 - 1) * float(cos_lat[0]))


# ── Point-mass attraction ───────────────────────────────────────────

class TestNewtonianAttraction:

    def test_keplerian_drift(self, leo_state):
        """The only mean rate is the Keplerian mean motion."""
        rate = mean_rate(perturbations.NewtonianAttraction(MU), leo_state)

        np.testing.assert_array_equal(rate[:5], 0.0)
        assert rate[5] == pytest.approx(np.sqrt(MU / 7000e3 ** 3))

    def test_acceleration(self, leo_orbit):
        """The acceleration is -mu r / r^3."""
        newtonian = perturbations.NewtonianAttraction(MU)
        position = leo_orbit.position
        acceleration = np.asarray(newtonian.acceleration(
            0.0, jnp.asarray(position[None]), None, 1000.0, jnp.asarray([MU]), MU
        ))[0]

        np.testing.assert_allclose(acceleration, -MU * position / np.linalg.norm(position) ** 3, rtol=1e-12)

    def test_no_short_period_terms(self, leo_state):
        """The point-mass attraction has an empty short-period series."""
        newtonian = perturbations.NewtonianAttraction(MU)
        terms = newtonian.short_period_terms(aux_of(leo_state), PropagationType.OSCULATING, newtonian.parameter_values())

        np.testing.assert_array_equal(terms.value(leo_state), 0.0)
        assert terms.coefficients(leo_state, set()) == {}

    def test_rejects_non_positive_mu(self):
        """The gravitational parameter must be positive."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.NewtonianAttraction(0.0)


# ── Zonal harmonics ─────────────────────────────────────────────────

class TestZonalHarmonics:

    def test_j2_secular_rates(self, inclined_state):
        """The averaged J2 rates reproduce the classical nodal and apsidal drifts."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.from_zonals([J2]))
        rate = mean_rate(zonal, inclined_state)

        sm_axis, ex, ey, hx, hy, _ = inclined_state.elements
        eccentricity = inclined_state.orbit.eccentricity
        inclination = inclined_state.orbit.inclination
        n = np.sqrt(MU / sm_axis ** 3)
        factor = J2 * (RE / (sm_axis * (1 - eccentricity ** 2))) ** 2 * n

        raan_rate = (hx * rate[4] - hy * rate[3]) / (hx ** 2 + hy ** 2)
        longp_rate = (ex * rate[2] - ey * rate[1]) / eccentricity ** 2

        expected_raan_rate = -1.5 * factor * np.cos(inclination)
        expected_argp_rate = 0.75 * factor * (4 - 5 * np.sin(inclination) ** 2)

        assert raan_rate == pytest.approx(expected_raan_rate, rel=1e-6)
        assert longp_rate == pytest.approx(expected_argp_rate + expected_raan_rate, rel=1e-6)

    def test_no_secular_semi_major_axis_rate(self, leo_state):
        """Conservative perturbations leave the mean semi-major axis unchanged."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.earth(4, 0))
        assert mean_rate(zonal, leo_state)[0] == pytest.approx(0.0, abs=1e-12)

    def test_short_period_amplitude(self, inclined_state):
        """The J2 short-period variation of the semi-major axis is of order J2 Re^2 / a."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.from_zonals([J2]))
        terms = zonal.short_period_terms(aux_of(inclined_state), PropagationType.OSCULATING, zonal.parameter_values())

        amplitude = 1.5 * J2 * RE ** 2 / 7078e3
        assert 0.1 * amplitude < abs(terms.value(inclined_state)[0]) < 3 * amplitude

    def test_mean_terms_vanish(self, leo_state):
        """Term sets created for mean propagation evaluate to zero."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.earth(2, 0))
        terms = zonal.short_period_terms(aux_of(leo_state), PropagationType.MEAN, zonal.parameter_values())

        np.testing.assert_array_equal(terms.value(leo_state), 0.0)

    def test_coefficient_names(self, leo_state):
        """Coefficients are keyed by perturbation name, trigonometric function and frequency."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.earth(2, 0), max_frequency_short_periodics=3)
        terms = zonal.short_period_terms(aux_of(leo_state), PropagationType.OSCULATING, zonal.parameter_values())

        named = terms.coefficients(leo_state, set())
        assert set(named) == {f"zonal-{trig}[{j}]" for trig in ("cos", "sin") for j in (1, 2, 3)}
        assert all(value.shape == (6, ) for value in named.values())
        assert terms.coefficients(leo_state, None) == {}
        assert set(terms.coefficients(leo_state, {"zonal-cos[2]", "other-sin[1]"})) == {"zonal-cos[2]"}

    def test_cache_is_deterministic(self, leo_state):
        """The short-period value at a state does not depend on previous evaluations."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.earth(3, 0))
        terms = zonal.short_period_terms(aux_of(leo_state), PropagationType.OSCULATING, zonal.parameter_values())

        first = terms.value(leo_state)
        shifted = leo_state.with_orbit(leo_state.orbit.with_elements(leo_state.elements * [1.001, 1, 1, 1, 1, 1]))
        terms.value(shifted)

        np.testing.assert_array_equal(terms.value(leo_state), first)

    def test_update_requires_terms(self, leo_state):
        """Refreshing short-period terms that were never created is an initialization error."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.earth(2, 0))
        with pytest.raises(errors.NotInitializedError):
            zonal.update_short_period_terms(zonal.parameter_values(), leo_state)

    @pytest.mark.parametrize("kwargs", [
        {"max_degree_short_periodics": 1},
        {"max_degree_short_periodics": 5},
        {"max_frequency_short_periodics": 10},
        {"max_frequency_short_periodics": 0},
        {"quadrature_points": 12},
    ])
    def test_rejects_truncation(self, kwargs):
        """Truncations inconsistent with a degree 4 field are rejected."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.ZonalHarmonics(perturbations.GravityField.earth(4, 0), **kwargs)

    def test_potential_gradient(self, leo_orbit):
        """The acceleration is the gradient of the potential."""
        zonal = perturbations.ZonalHarmonics(perturbations.GravityField.from_zonals([J2]))
        position = jnp.asarray(leo_orbit.position[None])
        acceleration = np.asarray(zonal.acceleration(0.0, position, None, 1000.0, jnp.zeros(0), MU))[0]

        step = 1.0
        numerical = [
            float(
                zonal.potential(0.0, position + step * jnp.eye(3)[i], jnp.zeros(0), MU)[0]
                - zonal.potential(0.0, position - step * jnp.eye(3)[i], jnp.zeros(0), MU)[0]
            ) / (2 * step)
            for i in range(3)
        ]
        np.testing.assert_allclose(acceleration, numerical, rtol=1e-5, atol=1e-9)


# ── Second-order J2 ─────────────────────────────────────────────────

class TestJ2SquaredClosedForm:

    @staticmethod
    def low_orbit_state():
        # 200 km by 210 km orbit inclined by 10 degrees.
        perigee, apogee = RE + 200e3, RE + 210e3
        sm_axis = 0.5 * (perigee + apogee)
        orbit = Orbit.from_classical_elements(
            sm_axis=sm_axis,
            eccentricity=1 - perigee / sm_axis,
            raan=np.deg2rad(40.0),
            argp=np.deg2rad(120.0),
            inclination=np.deg2rad(10.0),
            mean_anomaly=0.0,
            grav_param=3.986004415e14,
        )
        return SpacecraftState(orbit, mass=1000.0)

    def test_reference_rates(self):
        """Node and mean longitude rates of a very low orbit match reference values."""
        j2_squared = perturbations.J2SquaredClosedForm(perturbations.GravityField.from_zonals([J2]))
        rate = mean_rate(j2_squared, self.low_orbit_state())

        assert rate[0] == 0.0
        assert rate[3] == pytest.approx(3.6576370779863025e-10, rel=1e-3)
        assert rate[4] == pytest.approx(-4.3590021280959657e-10, rel=1e-3)
        assert rate[5] == pytest.approx(1.2618917692354564e-8, rel=1e-2)

    def test_node_rate(self, inclined_state):
        """The node drifts at the closed-form second-order rate."""
        j2_squared = perturbations.J2SquaredClosedForm(perturbations.GravityField.from_zonals([J2]))
        rate = mean_rate(j2_squared, inclined_state)

        _, ex, ey, hx, hy, _ = inclined_state.elements
        sm_axis = inclined_state.elements[0]
        eccentricity = inclined_state.orbit.eccentricity
        cos_i = np.cos(inclined_state.orbit.inclination)
        n = np.sqrt(MU / sm_axis ** 3)
        factor = 0.75 * n * (J2 * (RE / (sm_axis * (1 - eccentricity ** 2))) ** 2) ** 2

        raan_rate = (hx * rate[4] - hy * rate[3]) / (hx ** 2 + hy ** 2)
        assert raan_rate == pytest.approx(0.5 * factor * (4 - 19 * cos_i ** 2) * cos_i, rel=1e-9)

    def test_second_order_in_j2(self, inclined_state):
        """Doubling J2 multiplies the rates by four, and they stay much smaller than the first-order ones."""
        single = mean_rate(perturbations.J2SquaredClosedForm(perturbations.GravityField.from_zonals([J2])), inclined_state)
        double = mean_rate(
            perturbations.J2SquaredClosedForm(perturbations.GravityField.from_zonals([2 * J2])), inclined_state
        )
        first_order = mean_rate(perturbations.ZonalHarmonics(perturbations.GravityField.from_zonals([J2])), inclined_state)

        np.testing.assert_allclose(double, 4 * single, rtol=1e-12, atol=1e-30)
        assert abs(single[3]) < 1e-2 * abs(first_order[3])

    def test_no_short_period_terms(self, leo_state):
        """The second-order contribution has secular effects only."""
        j2_squared = perturbations.J2SquaredClosedForm(perturbations.GravityField.earth(2, 0))
        terms = j2_squared.short_period_terms(
            aux_of(leo_state), PropagationType.OSCULATING, j2_squared.parameter_values()
        )

        np.testing.assert_array_equal(terms.value(leo_state), 0.0)
        np.testing.assert_array_equal(
            j2_squared.acceleration(0.0, leo_state.orbit.position[None], None, 1000.0, jnp.zeros(0), MU), 0.0
        )

    def test_requires_j2(self):
        """A field without J2 is rejected."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.J2SquaredClosedForm(perturbations.GravityField.from_zonals([0.0, 2.5e-6]))


# ── Tesseral harmonics ──────────────────────────────────────────────

class TestTesseralHarmonics:

    def test_no_resonance_in_leo(self, leo_state):
        """A 97 minute orbit has no resonant tesseral term and no tesseral mean rate."""
        tesseral = perturbations.TesseralHarmonics(perturbations.GravityField.earth(4, 4), max_frequency_short_periodics=8)

        assert tesseral.resonant_terms(leo_state) == []
        np.testing.assert_array_equal(mean_rate(tesseral, leo_state), 0.0)

    def test_geostationary_resonance(self):
        """Every order is resonant with j = m on a geosynchronous orbit."""
        field = perturbations.GravityField.earth(4, 4)
        sm_axis = (MU / field.rotation_rate ** 2) ** (1 / 3)
        state = SpacecraftState(Orbit.from_classical_elements(sm_axis, 0.001, 0.0, 0.0, 0.01, 0.0, grav_param=MU))
        tesseral = perturbations.TesseralHarmonics(field)

        assert tesseral.resonant_terms(state) == [(1, 1), (2, 2), (3, 3), (4, 4)]
        rate = mean_rate(tesseral, state)
        assert np.all(np.isfinite(rate))
        assert abs(rate[5]) > 0

    def test_short_period_term_list(self, leo_state):
        """Non-resonant terms span every order and frequency, m-daily terms every order."""
        tesseral = perturbations.TesseralHarmonics(
            perturbations.GravityField.earth(4, 4),
            max_order_tesseral_short_periodics=3,
            max_frequency_short_periodics=5,
            max_order_mdaily=2,
        )
        terms, mdaily = tesseral.short_period_terms_list(leo_state)

        assert len(terms) == 3 * 10
        assert (3, -5) in terms and (1, 0) not in terms
        assert mdaily == [(1, 0), (2, 0)]

    def test_coefficient_names(self, leo_state):
        """Tesseral coefficients are keyed by order and frequency."""
        tesseral = perturbations.TesseralHarmonics(
            perturbations.GravityField.earth(2, 2),
            max_frequency_short_periodics=2,
            quadrature_points=16,
        )
        terms = tesseral.short_period_terms(aux_of(leo_state), PropagationType.OSCULATING, tesseral.parameter_values())
        named = terms.coefficients(leo_state, set())

        assert "tesseral-cos[2,-1]" in named
        assert "tesseral-sin[1,0]" in named
        assert np.all(np.isfinite(terms.value(leo_state)))

    @pytest.mark.parametrize("kwargs", [
        {"max_degree_tesseral_short_periodics": 5},
        {"max_order_tesseral_short_periodics": 5},
        {"max_degree_mdaily": 1},
        {"max_frequency_short_periodics": 0},
    ])
    def test_rejects_truncation(self, kwargs):
        """Truncations inconsistent with a degree and order 4 field are rejected."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.TesseralHarmonics(perturbations.GravityField.earth(4, 4), **kwargs)

    def test_rejects_zonal_field(self):
        """An axially symmetric field has no tesseral terms."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.TesseralHarmonics(perturbations.GravityField.from_zonals([J2]))


# ── Third body ──────────────────────────────────────────────────────

class TestThirdBodyAttraction:

    def test_lunar_rates(self, inclined_state):
        """The Moon changes the orientation of the orbit but not its mean semi-major axis."""
        moon = perturbations.ThirdBodyAttraction.moon()
        rate = mean_rate(moon, inclined_state)

        assert rate[0] == pytest.approx(0.0, abs=1e-12)
        assert np.all(np.isfinite(rate))
        assert np.any(np.abs(rate[3:5]) > 0)

    def test_potential_vanishes_at_center(self):
        """The indirect terms cancel the potential at the central body."""
        sun = perturbations.ThirdBodyAttraction.sun()
        value = sun.potential(0.0, jnp.zeros((1, 3)), jnp.asarray(sun.parameter_values()), MU)

        assert float(value[0]) == pytest.approx(0.0, abs=1e-9)

    def test_ephemeris_distances(self):
        """The Keplerian ephemerides put the Sun and Moon at their mean distances."""
        sun_distance = float(jnp.linalg.norm(perturbations.KeplerianEphemeris.sun().position(0.0)))
        moon_distance = float(jnp.linalg.norm(perturbations.KeplerianEphemeris.moon().position(86400.0)))

        assert sun_distance == pytest.approx(1.496e11, rel=0.02)
        assert moon_distance == pytest.approx(3.844e8, rel=0.06)

    def test_rejects_non_positive_mu(self):
        """The gravitational parameter of the body must be positive."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.ThirdBodyAttraction("Moon", -1.0, perturbations.KeplerianEphemeris.moon())


# ── Atmospheric drag ────────────────────────────────────────────────

class TestAtmosphericDrag:

    def test_circular_decay(self):
        """On a circular orbit in a still atmosphere the decay rate is -rho Cd A/m sqrt(mu a)."""
        state = SpacecraftState(
            Orbit.from_classical_elements(7000e3, 1e-6, 0.0, 0.0, 0.9, 0.0, grav_param=MU), mass=500.0
        )
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 4.0, drag_coefficient=2.2, rotation_rate=0.0)
        rate = mean_rate(drag, state)

        density = float(perturbations.LEO_ATMOSPHERE.density(jnp.asarray([[7000e3, 0.0, 0.0]]))[0])
        expected = -density * 2.2 * 4.0 / 500.0 * np.sqrt(MU * 7000e3)
        assert rate[0] == pytest.approx(expected, rel=1e-4)

    def test_full_revolution_below_ceiling(self, leo_state):
        """An orbit entirely inside the atmosphere is averaged over the full revolution."""
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0)

        assert drag.integration_limits(leo_state) is None
        assert mean_rate(drag, leo_state)[0] < 0

    def test_no_drag_above_ceiling(self, leo_state):
        """An orbit above the atmosphere feels no drag."""
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0, max_altitude=200e3)
        limits = drag.integration_limits(leo_state)

        assert limits[0] == limits[1]
        np.testing.assert_array_equal(mean_rate(drag, leo_state), 0.0)
        assert len(drag.short_period_harmonics(leo_state, aux_of(leo_state), jnp.asarray([2.2]))) == 0

    def test_arc_around_perigee(self):
        """An orbit crossing the ceiling is averaged over the arc centered on the perigee."""
        state = SpacecraftState(Orbit.from_classical_elements(7500e3, 0.1, 0.3, 0.4, 0.9, 0.0, grav_param=MU))
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0, max_altitude=1000e3)
        lower, upper = drag.integration_limits(state)

        assert lower < upper < lower + 2 * np.pi
        assert (lower + upper) / 2 == pytest.approx(0.7)
        assert mean_rate(drag, state)[0] < 0

    def test_acceleration_opposes_motion(self, leo_orbit):
        """Drag opposes the velocity relative to the atmosphere."""
        drag = perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 10.0, rotation_rate=0.0)
        position, velocity = leo_orbit.state()
        acceleration = np.asarray(drag.acceleration(
            0.0, jnp.asarray(position[None]), jnp.asarray(velocity[None]), 1000.0, jnp.asarray([2.2]), MU
        ))[0]

        np.testing.assert_allclose(np.cross(acceleration, velocity), 0.0, atol=1e-12)
        assert np.dot(acceleration, velocity) < 0

    @pytest.mark.parametrize("kwargs", [
        {"reference_density": 0.0, "scale_height": 60e3, "reference_radius": 6878e3},
        {"reference_density": 1e-12, "scale_height": -1.0, "reference_radius": 6878e3},
    ])
    def test_atmosphere_validation(self, kwargs):
        """Atmosphere constants must be positive."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.ExponentialAtmosphere(**kwargs)

    def test_rejects_non_positive_area(self):
        """The cross-section must be positive."""
        with pytest.raises(errors.ConfigurationError):
            perturbations.AtmosphericDrag(perturbations.LEO_ATMOSPHERE, 0.0)


# ── Solar radiation pressure ────────────────────────────────────────

class TestSolarRadiationPressure:

    def test_lit_arc(self, leo_state):
        """A low near-equatorial orbit is eclipsed and only its lit arc is averaged."""
        srp = perturbations.SolarRadiationPressure(perturbations.KeplerianEphemeris.sun(), cross_section=10.0)
        lower, upper = srp.integration_limits(leo_state)
        assert lower < upper < lower + 2 * np.pi

        aux = aux_of(leo_state)
        lit = (lower + upper) / 2
        dark = upper + (2 * np.pi - (upper - lower)) / 2
        true_longitude = jnp.asarray([lit, dark])
        positions, velocities = aux.orbit_points(conversions.true_2_eccentric_longitude(true_longitude, aux.k, aux.h))
        acceleration = np.asarray(srp.acceleration(0.0, positions, velocities, 1000.0, jnp.asarray([1.5]), MU))

        assert np.linalg.norm(acceleration[0]) > 0
        np.testing.assert_array_equal(acceleration[1], 0.0)

    def test_rates(self, leo_state):
        """Averaged radiation pressure rates are finite and change the eccentricity."""
        srp = perturbations.SolarRadiationPressure(perturbations.KeplerianEphemeris.sun(), cross_section=10.0)
        rate = mean_rate(srp, leo_state)

        assert np.all(np.isfinite(rate))
        assert np.any(np.abs(rate[1:3]) > 0)

    def test_acceleration_magnitude(self, leo_orbit):
        """The lit acceleration is Cr A/m P at one astronomical unit."""
        srp = perturbations.SolarRadiationPressure(perturbations.KeplerianEphemeris.sun(), cross_section=10.0)
        sun_position = np.asarray(srp.sun.position(0.0))
        position = 7000e3 * sun_position / np.linalg.norm(sun_position)
        acceleration = np.asarray(srp.acceleration(
            0.0, jnp.asarray(position[None]), jnp.zeros((1, 3)), 1000.0, jnp.asarray([1.5]), MU
        ))[0]

        expected = 1.5 * 10.0 / 1000.0 * 4.56e-6 * (149597870000.0 / (np.linalg.norm(sun_position) - 7000e3)) ** 2
        assert np.linalg.norm(acceleration) == pytest.approx(expected, rel=1e-9)
        assert np.dot(acceleration, sun_position) < 0
