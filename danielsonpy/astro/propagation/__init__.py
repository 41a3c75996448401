# Utility files.
from . import base
from .integrators import Integrator, DormandPrince853Integrator, ClassicalRungeKuttaIntegrator
from .synthesis import ShortPeriodSynthesizer, SHORT_PERIOD_COEFFICIENTS
from .sensitivity import MatricesHarvester, MeanElementModel, VariationalEquations

# Propagators.
from .semianalytical import SemiAnalyticalPropagator, PropagatorStatus, tolerances
from .cowell import CowellPropagator
