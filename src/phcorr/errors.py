"""
Error kinds raised by phcorr.

All of these signal a local contract violation (bad configuration, misuse of
the binning registry, or a geometry that has no defined angle). They are
raised at the call that detects them and are never retried.
"""

__all__ = [
    "PHCorrError",
    "InvalidRangeError",
    "DomainError",
    "DuplicateNameError",
    "UnknownNameError",
    "DegenerateGeometryError",
    "ConfigurationLockedError",
]


class PHCorrError(Exception):
    """Base class of every phcorr error."""


class InvalidRangeError(PHCorrError, ValueError):
    """Malformed bin range: zero bins, reversed limits or unordered edges."""


class DomainError(PHCorrError, ValueError):
    """Non-positive value passed to a logarithmic operation."""


class DuplicateNameError(PHCorrError, KeyError):
    """A binning with this name is already registered."""

    def __str__(self):
        return f"binning {self.args[0]!r} already exists" if self.args else "duplicate binning"


class UnknownNameError(PHCorrError, KeyError):
    """No binning with this name is registered."""

    def __str__(self):
        return f"binning {self.args[0]!r} does not exist" if self.args else "unknown binning"


class DegenerateGeometryError(PHCorrError, ArithmeticError):
    """Two vectors entering a plane-angle calculation are (nearly) collinear."""


class ConfigurationLockedError(PHCorrError, RuntimeError):
    """A calculator was reconfigured after :meth:`~phcorr.calculate.Calculator.init`."""
