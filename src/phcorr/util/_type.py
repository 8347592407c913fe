""" Some type utilities for phcorr """

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Literal, TypeAlias

import numpy as np

if TYPE_CHECKING:
    from phcorr.calculate import Calculator
    from phcorr.types import Cst, Jet

__all__ = [
    "FloatArray",
    "BinRange",
    "BinRanges",
    "CstPair",
    "Observation",
    "CalculatorFactory",
    "AxisAlgorithmFunc",
    "RegistAxisString",
    "DegeneratePolicy",
]

FloatArray: TypeAlias = np.ndarray
"""A 1D float numpy array (bin edges, 3-vectors)."""

BinRange: TypeAlias = tuple[float, float]
"""Half-open ``[low, high)`` range of one jet bin."""

BinRanges: TypeAlias = Sequence[BinRange]
"""Ordered jet bins of one axis (pt, cf or charge)."""

CstPair: TypeAlias = tuple["Cst", "Cst"]
"""An (unordered) pair of constituents of the same jet."""

Observation: TypeAlias = tuple["Jet", CstPair, float]
"""``(jet, constituent pair, event weight)`` as consumed by :meth:`Calculator.run`."""

CalculatorFactory: TypeAlias = Callable[[], "Calculator"]
"""Zero-argument callable returning a new calculator (initialised or not)."""

AxisAlgorithmFunc: TypeAlias = Callable[[int, float, float], FloatArray]
"""Callable ``(num, start, stop) -> edges`` building ``num + 1`` bin edges."""

RegistAxisString: TypeAlias = str | Literal["norm", "lin", "log"]
"""Registry keys of the built-in edge algorithms."""

DegeneratePolicy: TypeAlias = Literal["raise", "count"]
"""What the calculator does with a pair whose spin angles are undefined."""
