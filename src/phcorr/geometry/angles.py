"""
Folding of periodic angles into canonical ranges.

Each function applies at most one adjustment, so an input far outside the
expected domain is shifted once and not reduced further. The breakpoints are
part of the contract:

==========================  =====================================  ==================
function                    adjustment                             result
==========================  =====================================  ==================
:func:`wrap_to_half_pi`     ``a > pi/2``: ``-pi``                  ``(-pi/2, pi/2]``
:func:`wrap_doubled_angle`  ``(pi/2, 3pi/2]``: ``-pi``;            ``(-pi/2, pi/2]``
                            ``> 3pi/2``: ``-2pi``;
                            ``[-3pi/2, -pi/2)``: ``+pi``;
                            ``< -3pi/2``: ``+2pi``
:func:`wrap_to_pi`          ``a > pi``: ``-pi``; ``a < 0``: ``+pi``  ``[0, pi]``
:func:`wrap_to_two_pi`      ``a < 0``: ``+2pi``; ``a >= 2pi``: ``-2pi``  ``[0, 2pi)``
==========================  =====================================  ==================
"""

import math

from phcorr.constants import HALF_PI, PI, THREE_HALF_PI, TWO_PI

__all__ = [
    "wrap_to_half_pi",
    "wrap_doubled_angle",
    "wrap_to_pi",
    "wrap_to_two_pi",
    "wrap_delta_phi",
]


def wrap_to_half_pi(angle: float) -> float:
    """Fold a hadron angle in ``(0, pi)`` into ``(-pi/2, pi/2]``."""
    if angle > HALF_PI:
        angle -= PI
    return angle


def wrap_doubled_angle(angle: float) -> float:
    """Fold a doubled hadron angle into ``(-pi/2, pi/2]``."""
    if HALF_PI < angle <= THREE_HALF_PI:
        angle -= PI
    elif angle > THREE_HALF_PI:
        angle -= TWO_PI
    elif -THREE_HALF_PI <= angle < -HALF_PI:
        angle += PI
    elif angle < -THREE_HALF_PI:
        angle += TWO_PI
    return angle


def wrap_to_pi(angle: float) -> float:
    """Fold a spin-hadron angle into ``[0, pi]``; an angle and its pi-rotation are equivalent."""
    if angle > PI:
        angle -= PI
    elif angle < 0.0:
        angle += PI
    return angle


def wrap_to_two_pi(angle: float) -> float:
    """Fold an azimuthal angle into ``[0, 2pi)``."""
    if angle < 0.0:
        angle += TWO_PI
    elif angle >= TWO_PI:
        angle -= TWO_PI
    return angle


def wrap_delta_phi(dphi: float) -> float:
    """
    Azimuthal difference folded into ``[-pi, pi]``.

    Uses the IEEE remainder, so an exact ``pi`` separation stays ``pi``.
    """
    return math.remainder(dphi, TWO_PI)
