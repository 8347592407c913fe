"""
Momentum vectors of jets and constituents.

3-vectors are plain ``numpy`` arrays of shape ``(3,)``; :class:`FourVector`
adds an energy component, which for jets and constituents is set to the
3-momentum magnitude (massless approximation).
"""

import math

import numpy as np

from phcorr.errors import DegenerateGeometryError
from phcorr.types import Cst, Jet
from phcorr.util._type import FloatArray

__all__ = [
    "FourVector",
    "polar_angle",
    "get_jet_lorentz",
    "get_cst_lorentz",
    "unit",
]


class FourVector:
    """Energy-momentum vector ``(px, py, pz, e)``."""
    __slots__ = ("vect", "e")

    def __init__(self, px: float, py: float, pz: float, e: float) -> None:
        self.vect: FloatArray = np.array([px, py, pz], dtype=float)
        self.e = float(e)

    @classmethod
    def massless(cls, vect: FloatArray) -> "FourVector":
        """Four-vector with ``e = |vect|``."""
        return cls(vect[0], vect[1], vect[2], float(np.linalg.norm(vect)))

    @property
    def px(self) -> float:
        return float(self.vect[0])

    @property
    def py(self) -> float:
        return float(self.vect[1])

    @property
    def pz(self) -> float:
        return float(self.vect[2])

    @property
    def p(self) -> float:
        return float(np.linalg.norm(self.vect))

    @property
    def pt(self) -> float:
        return math.hypot(self.vect[0], self.vect[1])

    @property
    def et(self) -> float:
        """Transverse energy ``e * pt / p``."""
        p = self.p
        return self.e * self.pt / p if p > 0 else 0.0

    def __repr__(self) -> str:
        return f"FourVector(px={self.px:.4g}, py={self.py:.4g}, pz={self.pz:.4g}, e={self.e:.4g})"


def polar_angle(eta: float) -> float:
    """Polar angle from pseudorapidity: ``2 atan(exp(-eta))``."""
    return 2.0 * math.atan(math.exp(-eta))


def unit(vect: FloatArray) -> FloatArray:
    """Unit vector along ``vect``; raises :class:`DegenerateGeometryError` for a null vector."""
    mag = np.linalg.norm(vect)
    if mag == 0:
        raise DegenerateGeometryError(f"Cannot normalise a null vector {vect}")
    return vect / mag


def get_jet_lorentz(jet: Jet, norm: bool = False) -> FourVector:
    """
    Jet four-vector from ``(pt, eta, phi)``.

    If ``norm`` is true the 3-vector is scaled to unit length (and so is the
    energy).
    """
    th = polar_angle(jet.eta)
    p = jet.pt / math.sin(th)
    vect = np.array([
        jet.pt * math.cos(jet.phi),
        jet.pt * math.sin(jet.phi),
        p * math.cos(th),
    ])
    if norm:
        vect = unit(vect)
    return FourVector.massless(vect)


def get_cst_lorentz(cst: Cst, pt_jet: float, norm: bool = False) -> FourVector:
    """
    Constituent four-vector from ``(z, jt, eta, phi)`` and the jet pt.

    The total momentum is ``sqrt((z * pt_jet)**2 + jt**2)``, pointed along
    ``(eta, phi)``.
    """
    pt_cst = cst.z * pt_jet
    p_cst = math.hypot(pt_cst, cst.jt)

    th = polar_angle(cst.eta)
    vect = np.array([
        p_cst * math.sin(th) * math.cos(cst.phi),
        p_cst * math.sin(th) * math.sin(cst.phi),
        p_cst * math.cos(th),
    ])
    if norm:
        vect = unit(vect)
    return FourVector.massless(vect)


def get_weighted_avg_vector(va: FloatArray, vb: FloatArray, norm: bool = False) -> FloatArray:
    """
    Average of two 3-vectors weighted by their magnitudes.

    Only needed for the Collins convention (jet axis from the pair), which
    is reserved; not part of the public API.
    """
    mag_a = np.linalg.norm(va)
    mag_b = np.linalg.norm(vb)
    total = mag_a + mag_b
    if total == 0:
        raise DegenerateGeometryError("Cannot average two null vectors")
    avg = va * (mag_a / total) + vb * (mag_b / total)
    if norm:
        avg = unit(avg)
    return avg
