# Utility files.
from . import averaging
from .base import Perturbation, ConservativePerturbation, GaussianPerturbation, ShortPeriodTerms
from .averaging import Harmonics

# Perturbations.
from .geopotential import GravityField, NewtonianAttraction, ZonalHarmonics, J2SquaredClosedForm, TesseralHarmonics
from .third_body import KeplerianEphemeris, ThirdBodyAttraction
from .drag import ExponentialAtmosphere, AtmosphericDrag, LEO_ATMOSPHERE
from .radiation import SolarRadiationPressure
