"""
Record types passed between the phcorr components.

:class:`Jet` and :class:`Cst` are the per-observation inputs, owned by the
caller. :class:`HistIndex` addresses one histogram set in the accumulation
sink, and :class:`HistContent` carries the quantities filled into it.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple

from phcorr.binning.bins import log_base

__all__ = ["Jet", "Cst", "HistIndex", "HistContent"]


@dataclass(frozen=True, slots=True)
class Jet:
    """
    Reconstructed jet.

    Attributes
    ----------
    pt, eta, phi : float
        Jet kinematics.
    cf : float
        Charge fraction.
    charge : float
        Net jet charge.
    pattern : int
        Raw beam spin-pattern tag of the event, see
        :class:`~phcorr.spin.SpinPattern`.
    """
    pt: float
    eta: float
    phi: float
    cf: float = 0.0
    charge: float = 0.0
    pattern: int = -1


@dataclass(frozen=True, slots=True)
class Cst:
    """
    Jet constituent, described relative to the jet.

    Attributes
    ----------
    z : float
        Longitudinal momentum fraction (``pt_cst / pt_jet``).
    jt : float
        Momentum transverse to the jet axis.
    eta, phi : float
        Constituent direction.
    """
    z: float
    jt: float
    eta: float
    phi: float


class HistIndex(NamedTuple):
    """Ordinals of one histogram set: (pt bin, cf bin, charge bin, spin state)."""
    pt: int = 0
    cf: int = 0
    chrg: int = 0
    spin: int = 0


@dataclass(frozen=True, slots=True)
class HistContent:
    """
    Quantities filled for one constituent pair.

    ``weight`` and ``dist`` are always set. The spin fields are only
    meaningful when spin sorting is on; a spin-relative angle of a beam
    without a spin direction is ``nan``.
    """
    weight: float
    dist: float
    phi_coll_blue: float = math.nan
    phi_coll_yellow: float = math.nan
    phi_boer_blue: float = math.nan
    phi_boer_yellow: float = math.nan
    spin_blue: float = 0.0
    spin_yellow: float = 0.0
    pattern: int = -1

    @property
    def log_dist(self) -> float:
        """Pair distance in :func:`~phcorr.binning.bins.log_base` (``-inf`` when collinear)."""
        return float(log_base(self.dist)) if self.dist > 0 else -math.inf
