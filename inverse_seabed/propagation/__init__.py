"""
Propagation module: the forward model Y of the inverse problem.

Y maps seabed parameters (rho, c, delta) and a measurement geometry
(range, depth, frequency) to a transmission loss in dB.
"""

from .environment import Environment, RayleighSeabed, PressureReleaseSurface, make_environment
from .reflection import rayleigh_reflection_coefficient, thorp_absorption
from .pekeris import Arrival, PekerisRayModel
from .operator import ForwardModel, transmission_loss, predict_transmission_loss

__all__ = [
    "Environment",
    "RayleighSeabed",
    "PressureReleaseSurface",
    "make_environment",
    "rayleigh_reflection_coefficient",
    "thorp_absorption",
    "Arrival",
    "PekerisRayModel",
    "ForwardModel",
    "transmission_loss",
    "predict_transmission_loss",
]
