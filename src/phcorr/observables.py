"""
Per-pair observables of the energy-energy correlator.

:class:`PairObservableCalculator` turns a jet and a pair of its constituents
into a :class:`~phcorr.types.HistContent`:

- ``dist``: the pair distance R_L, ``hypot(d_eta, d_phi)`` with ``d_phi``
  folded periodically (:func:`get_cst_dist`);
- ``weight``: the product of the two constituent weights
  ``(x_cst / x_jet) ** power`` times the event weight, with ``x`` the
  transverse momentum, transverse energy or energy (:class:`WeightType`);
- spin-relative angles (only when requested): for each beam, the azimuth of
  the beam spin around the beam axis, measured from the beam/pair plane,
  minus the azimuth of the pair opening vector around the pair axis
  (dihadron convention).

Degenerate geometries
---------------------
A plane angle needs two planes. If the pair axis is parallel to a beam, or
the two constituents have parallel momenta, a plane normal vanishes and
:class:`~phcorr.errors.DegenerateGeometryError` is raised. A beam without a
spin direction is not an error: its angle is ``nan``.
"""

import math
from enum import Enum

import numpy as np

from phcorr.constants import DEGENERATE_TOL, blue_beam, yellow_beam
from phcorr.errors import DegenerateGeometryError
from phcorr.geometry.angles import wrap_delta_phi, wrap_to_two_pi
from phcorr.geometry.vectors import FourVector, get_cst_lorentz, get_jet_lorentz, unit
from phcorr.spin import SpinPattern, get_spins
from phcorr.types import HistContent, Jet
from phcorr.util._type import CstPair, FloatArray

__all__ = [
    "WeightType",
    "AngleMode",
    "get_cst_dist",
    "plane_angle",
    "PairObservableCalculator",
]


class WeightType(Enum):
    """Quantity whose ratio to the jet's defines a constituent weight."""
    PT = "pt"
    ET = "et"
    E = "e"


class AngleMode(Enum):
    """
    Convention for the spin-relative angles.

    Only :attr:`DIHADRON` is implemented. :attr:`COLLINS` (spin vs.
    jet-beam plane, hadron vs. jet-hadron plane, with a doubled hadron
    angle for Boer-Mulders) is reserved until its definition is confirmed.
    """
    DIHADRON = "dihadron"
    COLLINS = "collins"


def get_cst_dist(csts: CstPair) -> float:
    """Pair distance R_L between two constituents."""
    first, second = csts
    return math.hypot(first.eta - second.eta, wrap_delta_phi(first.phi - second.phi))


def _plane_normal(axis: FloatArray, vect: FloatArray, what: str) -> FloatArray:
    normal = np.cross(axis, vect)
    mag = np.linalg.norm(normal)
    scale = np.linalg.norm(vect)
    if scale == 0 or mag <= DEGENERATE_TOL * scale:
        raise DegenerateGeometryError(f"{what} is (anti)parallel to the rotation axis {axis}")
    return normal / mag


def plane_angle(axis: FloatArray, u: FloatArray, v: FloatArray) -> float:
    """
    Signed angle in ``[0, 2pi)`` from the (axis, u) plane to the (axis, v) plane.

    The angle is ``atan2(|n_u x n_v|, n_u . n_v)`` between the unit plane
    normals ``n_u = axis x u`` and ``n_v = axis x v``; it is negated when
    ``(u x v) . axis <= 0`` and then folded into ``[0, 2pi)``.

    Raises
    ------
    DegenerateGeometryError
        If ``u`` or ``v`` is null or parallel to ``axis``.
    """
    n_u = _plane_normal(axis, u, "first vector")
    n_v = _plane_normal(axis, v, "second vector")

    cos_angle = float(np.dot(n_u, n_v))
    sin_mag = float(np.linalg.norm(np.cross(n_u, n_v)))
    angle = math.atan2(sin_mag, cos_angle)
    if float(np.dot(np.cross(u, v), axis)) <= 0.0:
        angle = -angle
    return wrap_to_two_pi(angle + 0.0)


class PairObservableCalculator:
    """
    Compute the observables of one constituent pair.

    Parameters
    ----------
    weight_type : WeightType, default ``WeightType.PT``
        Quantity used for the constituent weights.
    weight_power : float, default 1.0
        Exponent applied to the constituent and jet quantity.
    angle_mode : AngleMode, default ``AngleMode.DIHADRON``
        Convention of the spin-relative angles.
    """

    def __init__(
        self,
        weight_type: WeightType = WeightType.PT,
        weight_power: float = 1.0,
        angle_mode: AngleMode = AngleMode.DIHADRON,
    ) -> None:
        if angle_mode is not AngleMode.DIHADRON:
            raise NotImplementedError(f"Spin angle convention {angle_mode.value!r} is not available")
        self.weight_type = WeightType(weight_type)
        self.weight_power = float(weight_power)
        self.angle_mode = angle_mode

    def __repr__(self) -> str:
        return (
            f"PairObservableCalculator(weight_type={self.weight_type.name}, "
            f"weight_power={self.weight_power}, angle_mode={self.angle_mode.name})"
        )

    # ------------------- weights ------------------------------------------#

    def _weight_quantity(self, vec: FourVector) -> float:
        match self.weight_type:
            case WeightType.PT:
                return vec.pt
            case WeightType.ET:
                return vec.et
            case WeightType.E:
                return vec.e

    def get_cst_weight(self, cst: FourVector, jet: FourVector) -> float:
        """``(x_cst / x_jet) ** weight_power``."""
        numer = self._weight_quantity(cst) ** self.weight_power
        denom = self._weight_quantity(jet) ** self.weight_power
        return numer / denom

    # ------------------- spin angles --------------------------------------#

    @staticmethod
    def _spin_angle(beam: FloatArray, spin: FloatArray, pc: FloatArray, theta_rc: float) -> float:
        if not np.any(spin):
            return math.nan
        theta_spin = plane_angle(unit(beam), pc, spin)
        return wrap_to_two_pi(theta_spin - theta_rc)

    def get_spin_angles(self, pattern: SpinPattern, csts4: tuple[FourVector, FourVector]) -> tuple[float, float]:
        """
        Dihadron spin-relative angles ``(blue, yellow)`` in ``[0, 2pi)``.

        With ``P_C = p1 + p2`` and ``R_C = (p1 - p2) / 2``, the reference
        angle ``theta_RC`` is the azimuth of ``R_C`` around ``P_C`` measured
        from the (``P_C``, yellow beam) plane; each beam's angle is the
        azimuth of its spin around the beam axis, measured from the
        (beam, ``P_C``) plane, minus ``theta_RC``.
        """
        p1, p2 = csts4[0].vect, csts4[1].vect
        pc = p1 + p2
        rc = 0.5 * (p1 - p2)

        beam_b, beam_a = blue_beam(), yellow_beam()
        spin_b, spin_a = get_spins(pattern)
        if not np.any(spin_b) and not np.any(spin_a):
            return math.nan, math.nan

        try:
            pc_unit = unit(pc)
        except DegenerateGeometryError:
            raise DegenerateGeometryError("Pair momentum vanishes; pair axis is undefined") from None
        theta_rc = plane_angle(pc_unit, beam_a, rc)

        return (
            self._spin_angle(beam_b, spin_b, pc, theta_rc),
            self._spin_angle(beam_a, spin_a, pc, theta_rc),
        )

    # ------------------- full bundle --------------------------------------#

    def calc(
        self,
        jet: Jet,
        csts: CstPair,
        evt_weight: float = 1.0,
        with_spin: bool = False,
    ) -> HistContent:
        """
        Observables of one pair.

        Parameters
        ----------
        jet : Jet
            The jet both constituents belong to.
        csts : tuple[Cst, Cst]
            The constituent pair.
        evt_weight : float, default 1.0
            Event-level multiplier of the pair weight.
        with_spin : bool, default False
            Also compute the spin-relative angles and spin directions.

        Returns
        -------
        HistContent
            Weight, distance and (if requested) spin quantities.
        """
        jet4 = get_jet_lorentz(jet)
        csts4 = (get_cst_lorentz(csts[0], jet.pt), get_cst_lorentz(csts[1], jet.pt))

        weight = self.get_cst_weight(csts4[0], jet4) * self.get_cst_weight(csts4[1], jet4) * evt_weight
        dist = get_cst_dist(csts)
        if not with_spin:
            return HistContent(weight=weight, dist=dist, pattern=jet.pattern)

        pattern = SpinPattern.from_tag(jet.pattern)
        phi_blue, phi_yellow = self.get_spin_angles(pattern, csts4)
        spin_b, spin_a = get_spins(pattern)
        return HistContent(
            weight=weight,
            dist=dist,
            phi_coll_blue=phi_blue,
            phi_coll_yellow=phi_yellow,
            phi_boer_blue=0.0,
            phi_boer_yellow=0.0,
            spin_blue=float(spin_b[1]),
            spin_yellow=float(spin_a[1]),
            pattern=jet.pattern,
        )
