from __future__ import annotations
import enum
import logging
from typing import TYPE_CHECKING

import jax
import jax.numpy as jnp
import numpy as np

from .. import auxiliary, conversions, errors, parameters as parameters_, perturbations as perturbations_
from ..spacecraft import PropagationType, SpacecraftState
from . import base, sensitivity, synthesis

if TYPE_CHECKING:
    from .. import attitude, orbit
    from . import integrators


_log = logging.getLogger(__name__)


class PropagatorStatus(enum.Enum):
    r"""
    Life cycle of a :class:`SemiAnalyticalPropagator`.
    """

    UNINITIALIZED = "uninitialized"
    MEAN_INITIALIZED = "mean initialized"
    PROPAGATING = "propagating"
    COMPLETED = "completed"


class SemiAnalyticalPropagator(base.Propagator):
    r"""
    Propagator which integrates mean equinoctial elements and recovers osculating ones from short-period terms.

    The averaged equations of motion vary slowly, so the integrator can take steps of a fraction of a day instead of
    a fraction of an orbit. The rate of the mean elements is the sum of the
    :meth:`~danielsonpy.astro.perturbations.Perturbation.mean_element_rate()` of every perturbation, the point-mass
    attraction included, which alone gives Keplerian motion. When the propagation type is ``OSCULATING`` the
    short-period terms of all perturbations are added to the mean elements of the produced states, see
    :class:`~danielsonpy.astro.propagation.ShortPeriodSynthesizer`.

    The procedure for this style of propagation is as follows:

    1. :meth:`set_initial_state()` converts an osculating initial state to mean elements once.
    2. :meth:`propagate()` creates the short-period term sets at the initial mean state and integrates the mean
       element rates (and the variational equations if :meth:`setup_matrices_computation()` was called) up to the
       target epoch.
    3. The reached mean state becomes the initial state of the next call, so a sequence of forward and backward
       calls needs no further conversion.

    Parameters
    ----------
    integrator : :class:`~danielsonpy.astro.propagation.Integrator`
        Solver of the mean element equations.
    propagation_type : :class:`~danielsonpy.astro.PropagationType`
        Whether mean or osculating states are produced.
    attitude_provider : :class:`~danielsonpy.astro.attitude.AttitudeProvider`
        Attitude law applied to the produced states.
    epsilon : float
        Convergence threshold of the osculating to mean conversion.
    max_iterations : int
        Iteration budget of the osculating to mean conversion.

    Attributes
    ----------
    status : :class:`PropagatorStatus`
        Current stage of the life cycle.

    Notes
    -----
    The rates of the perturbations are summed in the order given by :meth:`get_perturbations()`. Results are equal
    for any other order within floating-point associativity only, they are not bit for bit reproducible.
    """

    def __init__(
            self,
            integrator: integrators.Integrator,
            propagation_type: PropagationType = PropagationType.OSCULATING,
            attitude_provider: attitude.AttitudeProvider = None,
            epsilon: float = 1e-13,
            max_iterations: int = 200,
    ):
        if epsilon <= 0:
            raise errors.ConfigurationError(f"conversion threshold must be positive, got {epsilon}")
        if max_iterations < 1:
            raise errors.ConfigurationError(f"conversion needs at least one iteration, got {max_iterations}")

        super().__init__(attitude_provider)

        self.integrator = integrator
        self.propagation_type = propagation_type
        self.epsilon = epsilon
        self.max_iterations = max_iterations
        self.status = PropagatorStatus.UNINITIALIZED

        self._initial_state: SpacecraftState | None = None
        self._synthesizer: synthesis.ShortPeriodSynthesizer | None = None
        self._harvester: sensitivity.MatricesHarvester | None = None
        self._selected_coefficients: set[str] | None = None
        self._parameter_selection: list[str] | None = None

    # ---------------
    # INITIAL STATES
    # ---------------
    def set_initial_state(self, state: SpacecraftState, state_type: PropagationType = PropagationType.OSCULATING):
        r"""
        Sets the state propagation starts from.

        Parameters
        ----------
        state : :class:`~danielsonpy.astro.SpacecraftState`
            Initial state.
        state_type : :class:`~danielsonpy.astro.PropagationType`
            Kind of elements held by ``state``. Osculating elements are converted to mean ones with
            :meth:`compute_mean_state()`.

        Raises
        ------
        UnknownParameterError
            If a name passed to :meth:`select_parameters()` matches no parameter of the perturbations.
        DimensionMismatchError
            If the initial parameter Jacobian given to :meth:`setup_matrices_computation()` does not have one column
            per selected parameter.
        ConvergenceError
            If the conversion to mean elements does not converge.
        """

        self._ensure_newtonian(state.orbit.grav_param)
        self._apply_parameter_selection()
        if self._harvester is not None:
            self._check_jacobian_columns(self._harvester)

        if state_type is PropagationType.OSCULATING:
            mean_state = self.compute_mean_state(
                state, None, self.get_perturbations(), self.epsilon, self.max_iterations
            )
        else:
            mean_state = state

        self.reset_initial_state(mean_state)

    def reset_initial_state(self, state: SpacecraftState):
        r"""
        Replaces the initial state with a mean state, discarding any short-period coefficient computed so far.
        """

        self._ensure_newtonian(state.orbit.grav_param)
        if self._synthesizer is not None:
            self._synthesizer.clear()
            self._synthesizer = None
        for perturbation in self.perturbations:
            perturbation.release_short_period_terms()

        if self._harvester is not None:
            state = self._harvester.attach(state, self._selected_count())

        self._initial_state = state
        self.status = PropagatorStatus.MEAN_INITIALIZED

    def get_initial_state(self) -> SpacecraftState:
        r"""
        Current initial mean state.

        Raises
        ------
        NotInitializedError
            If no initial state has been set.
        """

        if self._initial_state is None:
            raise errors.NotInitializedError("no initial state has been set")
        return self._initial_state

    # -----------------------------------
    # PARAMETERS AND SHORT-PERIOD OUTPUT
    # -----------------------------------
    def select_parameters(self, names: list[str]):
        r"""
        Flags parameters for the computation of the parameter Jacobian. Each call replaces the previous selection. Names
        are resolved when the initial state is set since the point-mass attraction may only be added then.
        """

        self._parameter_selection = list(names)
        if self._initial_state is not None:
            self._apply_parameter_selection()

    def _apply_parameter_selection(self):
        if self._parameter_selection is None:
            return

        drivers = [driver for perturbation in self.get_perturbations() for driver in perturbation.parameters]
        for driver in drivers:
            driver.selected = False
        for name in self._parameter_selection:
            parameters_.find_driver(drivers, name).selected = True

    def _selected_count(self) -> int:
        return sum(driver.selected for perturbation in self.perturbations for driver in perturbation.parameters)

    def set_selected_coefficients(self, names: set[str] | None):
        r"""
        Chooses the short-period coefficients attached to osculating states under the additional state
        ``"short period coefficients"``.

        Parameters
        ----------
        names : set[str] | None
            ``None`` attaches nothing, an empty set attaches every coefficient and a non-empty set the coefficients
            with matching names, e.g. ``"zonal-cos[1]"`` or ``"tesseral-sin[2,15]"``.
        """

        self._selected_coefficients = None if names is None else set(names)

    def get_selected_coefficients(self) -> set[str] | None:
        return None if self._selected_coefficients is None else set(self._selected_coefficients)

    # --------------------
    # MATRICES COMPUTATION
    # --------------------
    def setup_matrices_computation(
            self,
            stm_name: str = "stm",
            initial_stm: np.ndarray = None,
            initial_jacobian_columns: np.ndarray = None,
    ) -> sensitivity.MatricesHarvester:
        r"""
        Requests the state transition matrix and parameter Jacobian alongside the propagated states.

        Parameters
        ----------
        stm_name : str
            Name of the additional state holding the state transition matrix.
        initial_stm : np.ndarray
            (6, 6) initial state transition matrix, the identity by default.
        initial_jacobian_columns : np.ndarray
            (6, k) initial parameter Jacobian for the k selected parameters, zeros by default.

        Returns
        -------
        harvester : :class:`~danielsonpy.astro.propagation.MatricesHarvester`
            Accessor of the matrices attached to the propagated states.

        Raises
        ------
        DimensionMismatchError
            If an initial block has the wrong shape.
        """

        harvester = sensitivity.MatricesHarvester(stm_name, initial_stm, initial_jacobian_columns)

        if self._initial_state is not None:
            self._apply_parameter_selection()
            self._check_jacobian_columns(harvester)

            additional_states = self._initial_state.additional_states
            if self._harvester is not None:
                additional_states.pop(self._harvester.stm_name, None)
                additional_states.pop(self._harvester.JACOBIAN_NAME, None)
            state = SpacecraftState(
                self._initial_state.orbit, self._initial_state.mass, self._initial_state.attitude, additional_states
            )
            self._initial_state = harvester.attach(state, self._selected_count())

        self._harvester = harvester
        return harvester

    def _check_jacobian_columns(self, harvester: sensitivity.MatricesHarvester):
        columns = harvester.initial_jacobian_columns
        if columns is not None and columns.shape[1] != self._selected_count():
            raise errors.DimensionMismatchError(
                "initial parameter Jacobian", (6, self._selected_count()), columns.shape
            )

    # -----------
    # PROPAGATION
    # -----------
    def propagate(self, target: float) -> SpacecraftState:
        r"""
        Propagates the initial state to a target epoch.

        Parameters
        ----------
        target : float
            Epoch to reach, in seconds since the reference epoch. May precede the epoch of the initial state.

        Returns
        -------
        state : :class:`~danielsonpy.astro.SpacecraftState`
            Mean or osculating state at ``target`` depending on the propagation type. Carries the state transition
            matrix and parameter Jacobian if :meth:`setup_matrices_computation()` was called.

        Raises
        ------
        NotInitializedError
            If no initial state has been set.
        DimensionMismatchError
            If the parameter Jacobian of the initial state does not have one column per selected parameter.
        NumericalDomainError
            If the integration leaves the elliptic domain or the step size collapses.
        """

        if self._initial_state is None:
            raise errors.NotInitializedError("an initial state must be set before propagating")

        self.status = PropagatorStatus.PROPAGATING
        initial_state = self._initial_state
        self._ensure_newtonian(initial_state.orbit.grav_param)
        perturbations = self.get_perturbations()
        model = sensitivity.MeanElementModel(perturbations)
        parameter_values = model.parameter_values()

        aux = auxiliary.AuxiliaryElements.from_elements(
            initial_state.epoch, initial_state.elements, parameter_values[model.grav_param_index]
        )
        aux.check_domain()
        self._synthesizer = synthesis.ShortPeriodSynthesizer([
            perturbation.short_period_terms(aux, self.propagation_type, perturbation.parameter_values())
            for perturbation in perturbations
        ])
        for perturbation in perturbations:
            perturbation.init(initial_state)

        template = self._strip(initial_state)
        equations = None
        if self._harvester is None:
            y0 = initial_state.elements.copy()
            parameters = jnp.asarray(parameter_values)

            def derivatives(t, y):
                state = template.with_orbit(template.orbit.with_elements(y, epoch=t))
                return np.asarray(model.rate(state, jnp.asarray(y), parameters))
        else:
            equations = sensitivity.VariationalEquations(model, template)
            self._harvester.set_columns_names([model.drivers[index].name for index in equations.indices])
            initial_state = self._harvester.attach(initial_state, equations.column_count)
            y0 = np.concatenate((initial_state.elements, self._harvester.pack(initial_state, equations.column_count)))
            derivatives = equations.derivatives

        _log.debug(
            "propagating %s elements from t = %s s to t = %s s with %d perturbations",
            self.propagation_type.value, initial_state.epoch, target, len(perturbations),
        )

        recording = bool(self.loggers or self.step_handlers)
        if recording:
            self.setup_log(self._output_state(template))

        def step_handler(t, y):
            if recording:
                self.log(self._output_state(template.with_orbit(template.orbit.with_elements(y[:6], epoch=t))))

        t, y = self.integrator.integrate(derivatives, initial_state.epoch, y0, target, step_handler, controlled=6)

        mean_state = template.with_orbit(template.orbit.with_elements(y[:6], epoch=t))
        if equations is not None:
            stm, jacobian = self._harvester.unpack(y[6:], equations.column_count)
            mean_state = mean_state.add_additional_state(self._harvester.stm_name, stm)
            mean_state = mean_state.add_additional_state(self._harvester.JACOBIAN_NAME, jacobian)

        self._initial_state = mean_state
        self.status = PropagatorStatus.COMPLETED
        _log.debug("propagation completed at t = %s s", t)

        return self._output_state(mean_state, equations)

    def _strip(self, state: SpacecraftState) -> SpacecraftState:
        # Blocks and coefficients of the initial state do not hold at other epochs.
        additional_states = state.additional_states
        additional_states.pop(synthesis.SHORT_PERIOD_COEFFICIENTS, None)
        if self._harvester is not None:
            additional_states.pop(self._harvester.stm_name, None)
            additional_states.pop(self._harvester.JACOBIAN_NAME, None)
        return SpacecraftState(state.orbit, state.mass, state.attitude, additional_states)

    def _output_state(
            self,
            mean_state: SpacecraftState,
            equations: sensitivity.VariationalEquations = None,
    ) -> SpacecraftState:
        if self.propagation_type is PropagationType.MEAN:
            return self._apply_attitude(mean_state)

        self._synthesizer.update(mean_state)
        state = self._synthesizer.mean_to_osculating(mean_state)

        if self._selected_coefficients is not None:
            state = state.add_additional_state(
                synthesis.SHORT_PERIOD_COEFFICIENTS,
                self._synthesizer.coefficients(mean_state, self._selected_coefficients),
            )

        if equations is not None:
            stm, jacobian = equations.osculating_blocks(
                mean_state,
                self._harvester.get_state_transition_matrix(mean_state),
                self._harvester.get_parameters_jacobian(mean_state),
            )
            state = state.add_additional_state(self._harvester.stm_name, stm)
            state = state.add_additional_state(self._harvester.JACOBIAN_NAME, jacobian)

        return self._apply_attitude(state)

    # ---------------------
    # STATELESS CONVERSIONS
    # ---------------------
    @staticmethod
    def _conversion_synthesizer(
            state: SpacecraftState,
            perturbations: list[perturbations_.Perturbation],
    ) -> synthesis.ShortPeriodSynthesizer:
        grav_param = state.orbit.grav_param
        for perturbation in perturbations:
            if isinstance(perturbation, perturbations_.NewtonianAttraction):
                grav_param = perturbation.grav_param

        aux = auxiliary.AuxiliaryElements.from_elements(state.epoch, state.elements, grav_param)
        aux.check_domain()
        return synthesis.ShortPeriodSynthesizer([
            perturbation.short_period_terms(aux, PropagationType.OSCULATING, perturbation.parameter_values())
            for perturbation in perturbations
        ])

    @staticmethod
    def compute_mean_state(
            osculating: SpacecraftState,
            attitude_provider: attitude.AttitudeProvider = None,
            perturbations: list[perturbations_.Perturbation] = None,
            epsilon: float = 1e-13,
            max_iterations: int = 200,
    ) -> SpacecraftState:
        r"""
        Converts an osculating state to a mean state, outside of any propagation.

        Parameters
        ----------
        osculating : :class:`~danielsonpy.astro.SpacecraftState`
            State to convert.
        attitude_provider : :class:`~danielsonpy.astro.attitude.AttitudeProvider`
            Attitude law of the returned state, the attitude of ``osculating`` is kept if ``None``.
        perturbations : list[:class:`~danielsonpy.astro.perturbations.Perturbation`]
            Perturbations whose short-period terms separate mean from osculating elements.
        epsilon : float
            Convergence threshold.
        max_iterations : int
            Iteration budget.

        Raises
        ------
        ConvergenceError
            If the iteration budget is exhausted.
        """

        synthesizer = SemiAnalyticalPropagator._conversion_synthesizer(osculating, list(perturbations or []))
        mean_state = synthesizer.osculating_to_mean(osculating, epsilon, max_iterations)

        if attitude_provider is not None:
            mean_state = mean_state.with_orbit(mean_state.orbit, attitude_provider.get_attitude(mean_state.orbit))
        return mean_state

    @staticmethod
    def compute_osculating_state(
            mean: SpacecraftState,
            attitude_provider: attitude.AttitudeProvider = None,
            perturbations: list[perturbations_.Perturbation] = None,
    ) -> SpacecraftState:
        r"""
        Converts a mean state to an osculating state, outside of any propagation.
        """

        synthesizer = SemiAnalyticalPropagator._conversion_synthesizer(mean, list(perturbations or []))
        osculating = synthesizer.mean_to_osculating(mean)

        if attitude_provider is not None:
            osculating = osculating.with_orbit(osculating.orbit, attitude_provider.get_attitude(osculating.orbit))
        return osculating


def tolerances(position_accuracy: float, orbit: orbit.Orbit) -> tuple[np.ndarray, np.ndarray]:
    r"""
    Integrator tolerances on the equinoctial elements matching a position accuracy.

    The velocity accuracy is derived from the position one with the vis-viva energy,
    :math:`\delta v = \mu \, \delta p / (v r^2)`, and both are propagated to the elements through the Jacobian
    :math:`J` of the Cartesian to equinoctial conversion:

    .. math::

        \epsilon_{abs, i} = \sum_{j=1}^{3} |J_{ij}| \, \delta p + \sum_{j=4}^{6} |J_{ij}| \, \delta v,
        \qquad \epsilon_{rel} = \frac{\delta p}{r}

    Parameters
    ----------
    position_accuracy : float
        Desired position accuracy :math:`\delta p` in :math:`m`.
    orbit : :class:`~danielsonpy.astro.Orbit`
        Orbit defining the conversion Jacobian.

    Returns
    -------
    absolute : np.ndarray
        (6, ) absolute tolerances.
    relative : np.ndarray
        (6, ) relative tolerances.

    Raises
    ------
    NumericalDomainError
        If a tolerance is not finite.
    """

    position, velocity = orbit.state()
    radius = np.linalg.norm(position)
    speed = np.linalg.norm(velocity)
    velocity_accuracy = orbit.grav_param * position_accuracy / (speed * radius ** 2)

    jacobian_position, jacobian_velocity = jax.jacfwd(conversions.state_2_equinoctial, argnums=(0, 1))(
        jnp.asarray(position), jnp.asarray(velocity), orbit.grav_param
    )
    absolute = (
        np.abs(np.asarray(jacobian_position)) @ np.full(3, position_accuracy)
        + np.abs(np.asarray(jacobian_velocity)) @ np.full(3, velocity_accuracy)
    )
    relative = np.full(6, position_accuracy / radius)

    if not (np.all(np.isfinite(absolute)) and np.all(np.isfinite(relative))):
        raise errors.NumericalDomainError(f"non-finite tolerances for position accuracy {position_accuracy} m")
    return absolute, relative
