r"""
Partial derivatives of propagated states with respect to the initial state and to force model parameters.

The mean element rates of every perturbation are written with :mod:`jax.numpy`, so the Jacobians of the total rate
are obtained with :func:`jax.jacfwd` from exactly the code that drives the nominal propagation. They feed the
variational equations

.. math::

    \dot{\Phi} = A \Phi, \qquad \dot{\Psi} = A \Psi + B, \qquad
    A = \frac{\partial \dot{\vec{E}}}{\partial \vec{E}}, \qquad B = \frac{\partial \dot{\vec{E}}}{\partial \vec{p}}

integrated alongside the mean elements :math:`\vec{E}`, where :math:`\Phi` is the state transition matrix and
:math:`\Psi` the Jacobian with respect to the selected parameters :math:`\vec{p}`.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

import jax
import jax.numpy as jnp
import numpy as np

from .. import auxiliary, errors, perturbations as perturbations_

if TYPE_CHECKING:
    from .. import parameters, spacecraft


class MeanElementModel:
    r"""
    Total mean element rate and short-period correction of a set of perturbations, seen as functions of the
    elements and of the flattened vector of all their parameters.

    The value of the ``"central attraction coefficient"`` of the
    :class:`~danielsonpy.astro.perturbations.NewtonianAttraction` is the gravitational parameter handed to every
    perturbation, so derivatives with respect to it account for all of them.

    Parameters
    ----------
    perturbations : list[:class:`~danielsonpy.astro.perturbations.Perturbation`]
        Perturbations, one of which must be the point-mass attraction.

    Raises
    ------
    ConfigurationError
        If no point-mass attraction is part of ``perturbations``.
    """

    def __init__(self, perturbations: list[perturbations_.Perturbation]):
        self.perturbations = perturbations
        self.drivers: list[parameters.ParameterDriver] = []
        self._slices = []
        self.grav_param_index = None

        for perturbation in perturbations:
            start = len(self.drivers)
            if isinstance(perturbation, perturbations_.NewtonianAttraction):
                self.grav_param_index = start
            self.drivers.extend(perturbation.parameters)
            self._slices.append(slice(start, len(self.drivers)))

        if self.grav_param_index is None:
            raise errors.ConfigurationError("a point-mass attraction is needed to evaluate mean element rates")

    def parameter_values(self) -> np.ndarray:
        return np.array([driver.value for driver in self.drivers], dtype=float)

    def selected_indices(self) -> list[int]:
        return [index for index, driver in enumerate(self.drivers) if driver.selected]

    def auxiliary_elements(self, state, elements, parameters) -> auxiliary.AuxiliaryElements:
        return auxiliary.AuxiliaryElements.from_elements(state.epoch, elements, parameters[self.grav_param_index])

    def rate(self, state: spacecraft.SpacecraftState, elements, parameters) -> jnp.ndarray:
        r"""
        Sum of the mean element rates, the point-mass attraction included.
        """

        aux = self.auxiliary_elements(state, elements, parameters)
        total = jnp.zeros(6)
        for perturbation, indices in zip(self.perturbations, self._slices):
            total = total + perturbation.mean_element_rate(state, aux, parameters[indices])
        return total

    def short_period(self, state: spacecraft.SpacecraftState, elements, parameters) -> jnp.ndarray:
        r"""
        Sum of the short-period corrections, recomputed from scratch so that it can be differentiated.
        """

        aux = self.auxiliary_elements(state, elements, parameters)
        total = jnp.zeros(6)
        for perturbation, indices in zip(self.perturbations, self._slices):
            total = total + perturbation.short_period_variation(state, aux, parameters[indices])
        return total

    def _with_selected(self, nominal: np.ndarray, indices: list[int]):
        def parameters(selected_values):
            return jnp.asarray(nominal).at[jnp.asarray(indices, dtype=int)].set(selected_values)
        return parameters

    def rate_jacobians(self, state, elements, indices: list[int]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        r"""
        Total rate with its Jacobians wrt. the elements (6, 6) and wrt. the parameters at ``indices`` (6, k).
        """

        nominal = self.parameter_values()
        elements = jnp.asarray(elements, dtype=float)

        if not indices:
            def rate(values):
                value = self.rate(state, values, jnp.asarray(nominal))
                return value, value

            a_matrix, value = jax.jacfwd(rate, has_aux=True)(elements)
            return np.asarray(value), np.asarray(a_matrix), np.zeros((6, 0))

        parameters = self._with_selected(nominal, indices)

        def rate(values, selected_values):
            value = self.rate(state, values, parameters(selected_values))
            return value, value

        (a_matrix, b_matrix), value = jax.jacfwd(rate, argnums=(0, 1), has_aux=True)(
            elements, jnp.asarray(nominal[indices])
        )
        return np.asarray(value), np.asarray(a_matrix), np.asarray(b_matrix)

    def short_period_jacobians(self, state, indices: list[int]) -> tuple[np.ndarray, np.ndarray]:
        r"""
        Jacobians of the total short-period correction at a mean state wrt. the elements (6, 6) and wrt. the
        parameters at ``indices`` (6, k).
        """

        nominal = self.parameter_values()
        elements = jnp.asarray(state.elements, dtype=float)

        if not indices:
            d_elements = jax.jacfwd(lambda values: self.short_period(state, values, jnp.asarray(nominal)))(elements)
            return np.asarray(d_elements), np.zeros((6, 0))

        parameters = self._with_selected(nominal, indices)
        d_elements, d_parameters = jax.jacfwd(
            lambda values, selected_values: self.short_period(state, values, parameters(selected_values)),
            argnums=(0, 1),
        )(elements, jnp.asarray(nominal[indices]))
        return np.asarray(d_elements), np.asarray(d_parameters)


class MatricesHarvester:
    r"""
    Gives access to the state transition matrix and parameter Jacobian attached to propagated states.

    Created by :meth:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator.setup_matrices_computation()`. The
    blocks are stored as additional states of the :class:`~danielsonpy.astro.SpacecraftState`, under ``stm_name``
    for the (6, 6) matrix :math:`\partial \vec{E} / \partial \vec{E}_0` and under ``"dYdP"`` for the (6, k) matrix
    :math:`\partial \vec{E} / \partial \vec{p}` of the k selected parameters. Derivatives are taken wrt. the mean
    elements of the initial state. States produced by an osculating propagation carry the derivatives of the
    osculating elements.

    Parameters
    ----------
    stm_name : str
        Name of the additional state holding the state transition matrix.
    initial_stm : np.ndarray
        (6, 6) initial value of the state transition matrix, the identity if ``None``.
    initial_jacobian_columns : np.ndarray
        (6, k) initial value of the parameter Jacobian, zeros if ``None``.

    Raises
    ------
    DimensionMismatchError
        If an initial block has the wrong shape.
    """

    JACOBIAN_NAME = "dYdP"

    def __init__(self, stm_name: str = "stm", initial_stm: np.ndarray = None, initial_jacobian_columns: np.ndarray = None):
        if initial_stm is not None:
            initial_stm = np.asarray(initial_stm, dtype=float)
            if initial_stm.shape != (6, 6):
                raise errors.DimensionMismatchError("initial state transition matrix", (6, 6), initial_stm.shape)
        if initial_jacobian_columns is not None:
            initial_jacobian_columns = np.asarray(initial_jacobian_columns, dtype=float)
            if initial_jacobian_columns.ndim != 2 or initial_jacobian_columns.shape[0] != 6:
                raise errors.DimensionMismatchError(
                    "initial parameter Jacobian",
                    (6, initial_jacobian_columns.shape[-1] if initial_jacobian_columns.ndim else 0),
                    initial_jacobian_columns.shape,
                )

        self.stm_name = stm_name
        self.initial_stm = initial_stm
        self.initial_jacobian_columns = initial_jacobian_columns
        self._columns_names: list[str] = []

    def set_columns_names(self, names: list[str]):
        self._columns_names = list(names)

    def attach(self, state: spacecraft.SpacecraftState, column_count: int) -> spacecraft.SpacecraftState:
        r"""
        State with the initial blocks attached, unchanged if it already carries them.
        """

        if state.has_additional_state(self.stm_name):
            return state

        stm = np.eye(6) if self.initial_stm is None else self.initial_stm.copy()
        if self.initial_jacobian_columns is None:
            jacobian = np.zeros((6, column_count))
        else:
            jacobian = self.initial_jacobian_columns.copy()

        return state.add_additional_state(self.stm_name, stm).add_additional_state(self.JACOBIAN_NAME, jacobian)

    def pack(self, state: spacecraft.SpacecraftState, column_count: int) -> np.ndarray:
        r"""
        Row-major flattening of the blocks of ``state`` appended to the integrated vector.

        Raises
        ------
        DimensionMismatchError
            If the parameter Jacobian of ``state`` does not have one column per selected parameter.
        """

        stm = self.get_state_transition_matrix(state)
        jacobian = self.get_parameters_jacobian(state)
        if jacobian.shape != (6, column_count):
            raise errors.DimensionMismatchError("parameter Jacobian", (6, column_count), jacobian.shape)

        return np.concatenate((stm.ravel(), jacobian.ravel()))

    @staticmethod
    def unpack(vector: np.ndarray, column_count: int) -> tuple[np.ndarray, np.ndarray]:
        return vector[:36].reshape(6, 6), vector[36:36 + 6 * column_count].reshape(6, column_count)

    def get_state_transition_matrix(self, state: spacecraft.SpacecraftState) -> np.ndarray:
        r"""
        Raises
        ------
        NotInitializedError
            If no state transition matrix is attached to ``state``.
        """

        return np.asarray(state.get_additional_state(self.stm_name))

    def get_parameters_jacobian(self, state: spacecraft.SpacecraftState) -> np.ndarray:
        r"""
        Raises
        ------
        NotInitializedError
            If no parameter Jacobian is attached to ``state``.
        """

        return np.asarray(state.get_additional_state(self.JACOBIAN_NAME))

    def get_jacobians_columns_names(self) -> list[str]:
        r"""
        Names of the selected parameters, in the order of the columns of the parameter Jacobian.
        """

        return list(self._columns_names)


class VariationalEquations:
    r"""
    Right-hand side of the mean elements augmented with the state transition matrix and parameter Jacobian.

    Parameters
    ----------
    model : :class:`MeanElementModel`
        Perturbations whose rates are integrated.
    template_state : :class:`~danielsonpy.astro.SpacecraftState`
        State whose mass, attitude and central body are used for the intermediate states.
    """

    def __init__(self, model: MeanElementModel, template_state: spacecraft.SpacecraftState):
        self.model = model
        self.template_state = template_state
        self.indices = model.selected_indices()

    @property
    def column_count(self) -> int:
        return len(self.indices)

    def derivatives(self, t: float, y: np.ndarray) -> np.ndarray:
        elements = y[:6]
        stm, jacobian = MatricesHarvester.unpack(y[6:], self.column_count)

        state = self.template_state.with_orbit(self.template_state.orbit.with_elements(elements, epoch=t))
        rate, a_matrix, b_matrix = self.model.rate_jacobians(state, elements, self.indices)

        return np.concatenate((rate, (a_matrix @ stm).ravel(), (a_matrix @ jacobian + b_matrix).ravel()))

    def osculating_blocks(
            self,
            mean_state: spacecraft.SpacecraftState,
            stm: np.ndarray,
            jacobian: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        r"""
        Maps the mean element blocks onto the osculating elements of the same epoch.

        .. math::

            \frac{\partial \vec{E}_{osc}}{\partial \vec{E}_0} = \left(I + \frac{\partial \vec{\eta}}{\partial \vec{E}}
            \right) \Phi, \qquad
            \frac{\partial \vec{E}_{osc}}{\partial \vec{p}} = \left(I + \frac{\partial \vec{\eta}}{\partial \vec{E}}
            \right) \Psi + \frac{\partial \vec{\eta}}{\partial \vec{p}}
        """

        d_elements, d_parameters = self.model.short_period_jacobians(mean_state, self.indices)
        transform = np.eye(6) + d_elements
        return transform @ stm, transform @ jacobian + d_parameters
