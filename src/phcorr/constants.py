""" Constants shared by the binning, geometry and aggregation code """

import math

import numpy as np

__all__ = [
    "LOG_BASE",
    "PI",
    "HALF_PI",
    "THREE_HALF_PI",
    "TWO_PI",
    "NBINS_PER_SPIN",
    "DEGENERATE_TOL",
    "blue_beam",
    "yellow_beam",
    "spin_up",
    "spin_down",
    "spin_null",
]

# base of every log/exp used for logarithmic binning
LOG_BASE: float = 10.0

PI: float = math.pi
HALF_PI: float = 0.5 * math.pi
THREE_HALF_PI: float = 1.5 * math.pi
TWO_PI: float = 2.0 * math.pi

# histogram indices emitted per realised spin state
NBINS_PER_SPIN: int = 4

# plane normals shorter than this have no defined direction
DEGENERATE_TOL: float = 1e-12


# Vectors are returned fresh on every call so callers may scale them in place.
def blue_beam() -> np.ndarray:
    """Blue beam direction (+z)."""
    return np.array([0.0, 0.0, 1.0])


def yellow_beam() -> np.ndarray:
    """Yellow beam direction (-z)."""
    return np.array([0.0, 0.0, -1.0])


def spin_up() -> np.ndarray:
    return np.array([0.0, 1.0, 0.0])


def spin_down() -> np.ndarray:
    return np.array([0.0, -1.0, 0.0])


def spin_null() -> np.ndarray:
    return np.zeros(3)
