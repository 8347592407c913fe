from .angles import wrap_delta_phi, wrap_doubled_angle, wrap_to_half_pi, wrap_to_pi, wrap_to_two_pi
from .vectors import FourVector, get_cst_lorentz, get_jet_lorentz, polar_angle, unit

__all__ = [
    "wrap_delta_phi",
    "wrap_doubled_angle",
    "wrap_to_half_pi",
    "wrap_to_pi",
    "wrap_to_two_pi",
    "FourVector",
    "get_cst_lorentz",
    "get_jet_lorentz",
    "polar_angle",
    "unit",
]
