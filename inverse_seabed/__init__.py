"""
InverseSeabed: Bayesian geoacoustic inversion

Infers seabed density ratio, sound-speed ratio and attenuation from
transmission-loss measurements in a shallow-water Pekeris waveguide.
"""

__version__ = "0.1.0"

from . import errors
from . import propagation
from . import inference
from . import validation
from . import tools as tl

from .propagation import ForwardModel, transmission_loss
from .inference import InversionProblem, fit_seabed_model

__all__ = [
    "errors",
    "propagation",
    "inference",
    "validation",
    "tl",
    "ForwardModel",
    "transmission_loss",
    "InversionProblem",
    "fit_seabed_model",
]
