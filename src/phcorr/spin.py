"""
Beam spin patterns and the histogram spin states they populate.

:class:`SpinPattern` is the closed set of beam polarisation configurations
(plus :attr:`SpinPattern.UNKNOWN` for anything else). :class:`SpinState` is
the spin axis of the histogram index. The mapping between the two is done
with exhaustive ``match`` statements, so adding a pattern without handling it
is a type-check error rather than a silent fallback.
"""

from enum import IntEnum
from typing import assert_never

import numpy as np

from phcorr.constants import spin_down, spin_null, spin_up

__all__ = ["SpinPattern", "SpinState", "get_spins", "get_spin_states"]


class SpinPattern(IntEnum):
    """Beam spin pattern of an event: blue (B) and yellow (Y) beam, up (U) or down (D)."""
    UNKNOWN = -1
    PP_BU_YU = 0
    PP_BD_YU = 1
    PP_BU_YD = 2
    PP_BD_YD = 3
    PA_BU = 4
    PA_BD = 5

    @classmethod
    def from_tag(cls, tag: int) -> "SpinPattern":
        """Map a raw pattern tag to a pattern; unrecognised tags give :attr:`UNKNOWN`."""
        try:
            return cls(int(tag))
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_pp(self) -> bool:
        return self in (SpinPattern.PP_BU_YU, SpinPattern.PP_BD_YU, SpinPattern.PP_BU_YD, SpinPattern.PP_BD_YD)

    @property
    def is_pa(self) -> bool:
        return self in (SpinPattern.PA_BU, SpinPattern.PA_BD)


class SpinState(IntEnum):
    """Spin axis of a :class:`~phcorr.types.HistIndex`."""
    INT = 0
    BU = 1
    BD = 2
    YU = 3
    YD = 4
    BUYU = 5
    BUYD = 6
    BDYU = 7
    BDYD = 8

    @property
    def label(self) -> str:
        return "Int" if self is SpinState.INT else self.name


def get_spins(pattern: SpinPattern) -> tuple[np.ndarray, np.ndarray]:
    """
    Spin vectors ``(blue, yellow)`` for a pattern.

    Unpolarised beams (the yellow beam of pAu, everything for
    :attr:`SpinPattern.UNKNOWN`) get a null vector.
    """
    match pattern:
        case SpinPattern.PP_BU_YU:
            return spin_up(), spin_up()
        case SpinPattern.PP_BD_YU:
            return spin_down(), spin_up()
        case SpinPattern.PP_BU_YD:
            return spin_up(), spin_down()
        case SpinPattern.PP_BD_YD:
            return spin_down(), spin_down()
        case SpinPattern.PA_BU:
            return spin_up(), spin_null()
        case SpinPattern.PA_BD:
            return spin_down(), spin_null()
        case SpinPattern.UNKNOWN:
            return spin_null(), spin_null()
        case _:
            assert_never(pattern)


def get_spin_states(pattern: SpinPattern) -> list[SpinState]:
    """
    Spin states populated by a pattern, in block order.

    The spin-integrated state always comes first, then blue-only,
    yellow-only and blue-and-yellow where the pattern defines them:

    - pp patterns: 4 states, e.g. ``[INT, BU, YU, BUYU]``
    - pAu patterns: 2 states, e.g. ``[INT, BU]``
    - :attr:`SpinPattern.UNKNOWN`: ``[INT]``
    """
    match pattern:
        case SpinPattern.PP_BU_YU:
            return [SpinState.INT, SpinState.BU, SpinState.YU, SpinState.BUYU]
        case SpinPattern.PP_BD_YU:
            return [SpinState.INT, SpinState.BD, SpinState.YU, SpinState.BDYU]
        case SpinPattern.PP_BU_YD:
            return [SpinState.INT, SpinState.BU, SpinState.YD, SpinState.BUYD]
        case SpinPattern.PP_BD_YD:
            return [SpinState.INT, SpinState.BD, SpinState.YD, SpinState.BDYD]
        case SpinPattern.PA_BU:
            return [SpinState.INT, SpinState.BU]
        case SpinPattern.PA_BD:
            return [SpinState.INT, SpinState.BD]
        case SpinPattern.UNKNOWN:
            return [SpinState.INT]
        case _:
            assert_never(pattern)
