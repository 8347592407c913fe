"""
Bin definitions for the histograms filled during correlator calculations.

This module provides three layers:

1. :func:`get_bin_edges`: divide a range into ``num`` bins, either linearly
   (``"norm"``) or logarithmically (``"log"``).
2. :class:`Binning`: an immutable bin definition, either uniform
   (``num``/``start``/``stop`` plus an axis algorithm) or built from explicit
   edges.
3. :class:`Bins`: a name -> :class:`Binning` registry that consumers receive
   explicitly. :func:`default_registry` builds one seeded with the standard
   axes.

Extensibility
-------------
Edge algorithms are looked up by name in a registry. New ones can be added
with the :meth:`Binning.axis_register` decorator:

>>> @Binning.axis_register(name="sqrt")
... def sqrt_edges(num, start, stop):
...     return np.sqrt(np.linspace(start**2, stop**2, num + 1))
>>> Binning.uniform(10, 0.0, 1.0, axis="sqrt").num
10

Error handling
--------------
- :class:`~phcorr.errors.InvalidRangeError` for ``num <= 0``, ``start > stop``
  or explicit edges that are not strictly increasing.
- :class:`~phcorr.errors.DomainError` for logarithmic edges with ``start <= 0``.
- :class:`~phcorr.errors.DuplicateNameError` /
  :class:`~phcorr.errors.UnknownNameError` for registry misuse.
"""

from collections.abc import Callable, Iterator, Sequence
from typing import overload

import numpy as np

from phcorr.constants import LOG_BASE, TWO_PI
from phcorr.errors import DomainError, DuplicateNameError, InvalidRangeError, UnknownNameError
from phcorr.util._type import AxisAlgorithmFunc, FloatArray, RegistAxisString

__all__ = [
    "log_base",
    "exponentiate",
    "get_bin_edges",
    "Binning",
    "Bins",
    "default_registry",
]


def log_base(arg: float | FloatArray) -> float | FloatArray:
    """Logarithm in base :data:`~phcorr.constants.LOG_BASE`."""
    return np.log10(arg) / np.log10(LOG_BASE)


def exponentiate(arg: float | FloatArray) -> float | FloatArray:
    """Inverse of :func:`log_base`: ``LOG_BASE ** arg``."""
    return np.power(LOG_BASE, arg)


def get_bin_edges(
    num: int,
    start: float,
    stop: float,
    axis: RegistAxisString | AxisAlgorithmFunc = "log",
) -> FloatArray:
    """
    Divide ``[start, stop]`` into ``num`` bins.

    Parameters
    ----------
    num : int
        Number of bins (> 0).
    start, stop : float
        Range to divide, ``start <= stop``.
    axis : str or callable, default ``"log"``
        Edge algorithm: a registry key (``"norm"``, ``"lin"``, ``"log"``) or a
        callable ``(num, start, stop) -> edges``.

    Returns
    -------
    numpy.ndarray
        ``num + 1`` edges, first ``start`` and last ``stop``.

    Raises
    ------
    InvalidRangeError
        If ``num <= 0`` or ``start > stop``.
    DomainError
        If a logarithmic axis is requested with ``start <= 0``.
    """
    if int(num) <= 0:
        raise InvalidRangeError(f"Number of bins must be positive, got {num}")
    if start > stop:
        raise InvalidRangeError(f"Bin range is reversed: start={start} > stop={stop}")

    if callable(axis):
        algorithm = axis
    else:
        try:
            algorithm = Binning._axis_registry[axis]
        except KeyError:
            raise ValueError(
                f"Invalid axis: {axis}, required callable or registry keys: {list(Binning._axis_registry)}"
            ) from None
    return np.asarray(algorithm(int(num), float(start), float(stop)), dtype=float)


class Binning:
    """
    Immutable bin definition.

    Use :meth:`uniform` for ``num`` bins over a range or :meth:`from_edges`
    for variable-width bins. A :class:`Binning` never changes once built;
    updating a registry entry replaces the whole object.

    Attributes
    ----------
    start, stop : float
        First and last edge.
    num : int
        Number of bins.
    axis : str or None
        Name of the edge algorithm for uniform binnings, ``None`` for
        explicit edges.
    bins : tuple[float, ...]
        The ``num + 1`` edges.
    """
    __slots__ = ("_start", "_stop", "_num", "_axis", "_bins")

    _axis_registry: dict[str, AxisAlgorithmFunc] = {}

    def __init__(self, edges: Sequence[float] | FloatArray, axis: str | None = None) -> None:
        arr = np.asarray(edges, dtype=float)
        if arr.ndim != 1 or arr.shape[0] < 2:
            raise InvalidRangeError("Explicit bin edges must be a 1D array of length >= 2")
        if not np.all(np.diff(arr) > 0):
            raise InvalidRangeError(f"Bin edges must be strictly increasing: {arr}")
        self._bins = tuple(float(e) for e in arr)
        self._num = len(self._bins) - 1
        self._start = self._bins[0]
        self._stop = self._bins[-1]
        self._axis = axis

    @classmethod
    def uniform(
        cls,
        num: int,
        start: float,
        stop: float,
        axis: RegistAxisString | AxisAlgorithmFunc = "norm",
    ) -> "Binning":
        """``num`` bins over ``[start, stop]`` using the ``axis`` algorithm."""
        edges = get_bin_edges(num, start, stop, axis)
        name = axis if isinstance(axis, str) else getattr(axis, "__name__", None)
        out = cls(edges, axis=name)
        # keep the requested limits exactly, not their exp(log()) round trip
        out._start = float(start)
        out._stop = float(stop)
        return out

    @classmethod
    def from_edges(cls, edges: Sequence[float] | FloatArray) -> "Binning":
        """Variable-width bins with ``num = len(edges) - 1``."""
        return cls(edges)

    @property
    def start(self) -> float:
        return self._start

    @property
    def stop(self) -> float:
        return self._stop

    @property
    def num(self) -> int:
        return self._num

    @property
    def axis(self) -> str | None:
        return self._axis

    @property
    def bins(self) -> tuple[float, ...]:
        return self._bins

    @property
    def edges(self) -> FloatArray:
        """Edges as a fresh numpy array (safe to modify)."""
        return np.array(self._bins, dtype=float)

    @property
    def centers(self) -> FloatArray:
        edges = self.edges
        return 0.5 * (edges[:-1] + edges[1:])

    def __len__(self) -> int:
        return self._num

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Binning):
            return NotImplemented
        return self._bins == other._bins and self._axis == other._axis

    def __hash__(self) -> int:
        return hash((self._bins, self._axis))

    def __repr__(self) -> str:
        if self._axis is None:
            return f"Binning(num={self._num}, edges=[{self._start:g} .. {self._stop:g}])"
        return f"Binning(num={self._num}, start={self._start:g}, stop={self._stop:g}, axis={self._axis!r})"

    # ------------------- registry helpers ---------------------------------#

    @classmethod
    @overload
    def axis_register(
        cls,
        fn: AxisAlgorithmFunc,
        name: str | None = None,
    ) -> AxisAlgorithmFunc: ...
    @classmethod
    @overload
    def axis_register(
        cls,
        fn: None = None,
        name: str | None = None,
    ) -> Callable[[AxisAlgorithmFunc], AxisAlgorithmFunc]: ...

    @classmethod
    def axis_register(
        cls,
        fn: AxisAlgorithmFunc | None = None,
        name: str | None = None
    ) -> AxisAlgorithmFunc | Callable[[AxisAlgorithmFunc], AxisAlgorithmFunc]:
        """
        Register a bin edge algorithm.

        Signature: ``(num: int, start: float, stop: float) -> edges`` with
        ``num + 1`` entries. Range validation (``num > 0``,
        ``start <= stop``) is done before the algorithm is called.

        Parameters
        ----------
        fn : callable, optional
            Function to register; omit to use as a decorator factory.
        name : str, optional
            Registry key. Defaults to ``fn.__name__``.
        """
        def decorator(func: AxisAlgorithmFunc) -> AxisAlgorithmFunc:
            cls._axis_registry[name or func.__name__] = func
            return func
        if fn is None:
            return decorator
        return decorator(fn)

    @classmethod
    def available_axes(cls) -> list[str]:
        return list(cls._axis_registry)


# ------------------- edge algorithms --------------------------------------#
@Binning.axis_register(name="norm")
def linear_axis(num: int, start: float, stop: float) -> FloatArray:
    """Equal-width edges: ``start + i * (stop - start) / num``."""
    return np.linspace(start, stop, num + 1)


Binning.axis_register(linear_axis, name="lin")


@Binning.axis_register(name="log")
def logarithmic_axis(num: int, start: float, stop: float) -> FloatArray:
    """
    Edges equally spaced in ``log_base``, mapped back through :func:`exponentiate`.

    Requires ``start > 0``.
    """
    if start <= 0:
        raise DomainError(f"Logarithmic bins require a positive start, got {start}")
    return exponentiate(np.linspace(log_base(start), log_base(stop), num + 1))


class Bins:
    """
    Registry of named :class:`Binning` definitions.

    There is no process-wide instance: build one (usually with
    :func:`default_registry`), adjust it during setup and pass it to the
    consumers. Mutation is not synchronised, so finish all :meth:`add` /
    :meth:`set` calls before sharing the registry between threads.
    """

    def __init__(self, binnings: dict[str, Binning] | None = None) -> None:
        self._bins: dict[str, Binning] = {}
        for name, binning in (binnings or {}).items():
            self.add(name, binning)

    def add(self, name: str, binning: Binning) -> None:
        """Insert a new binning; raises :class:`DuplicateNameError` if ``name`` exists."""
        if name in self._bins:
            raise DuplicateNameError(name)
        self._bins[name] = binning

    def set(self, name: str, binning: Binning) -> None:
        """Replace a binning; raises :class:`UnknownNameError` if ``name`` is absent."""
        if name not in self._bins:
            raise UnknownNameError(name)
        self._bins[name] = binning

    def get(self, name: str) -> Binning:
        """Return a binning; raises :class:`UnknownNameError` if ``name`` is absent."""
        try:
            return self._bins[name]
        except KeyError:
            raise UnknownNameError(name) from None

    def names(self) -> list[str]:
        return list(self._bins)

    def copy(self) -> "Bins":
        return Bins(dict(self._bins))

    def __getitem__(self, name: str) -> Binning:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._bins

    def __iter__(self) -> Iterator[str]:
        return iter(self._bins)

    def __len__(self) -> int:
        return len(self._bins)

    def __repr__(self) -> str:
        return f"Bins({', '.join(self._bins)})"


def default_registry() -> Bins:
    """
    Registry seeded with the standard correlator axes.

    ============  =====================================  ===========================
    name          binning                                used for
    ============  =====================================  ===========================
    ``energy``    202 linear bins over ``[-1, 100]``     energies / momenta
    ``side``      75 log bins over ``[1e-5, 1]``         pair distance R_L
    ``logside``   75 linear bins over ``[-5, 0]``        log10 of R_L
    ``angle``     180 linear bins over ``[0, 2 pi]``     spin-relative angles
    ============  =====================================  ===========================

    Every entry can be replaced with :meth:`Bins.set`.
    """
    bins = Bins()
    bins.add("energy", Binning.uniform(202, -1.0, 100.0))
    bins.add("side", Binning.uniform(75, 1e-5, 1.0, axis="log"))
    bins.add("logside", Binning.uniform(75, -5.0, 0.0))
    bins.add("angle", Binning.uniform(180, 0.0, TWO_PI))
    return bins
