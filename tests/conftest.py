import pytest

from phcorr.binning import Binning, default_registry
from phcorr.constants import TWO_PI
from phcorr.types import Cst, Jet


@pytest.fixture
def registry():
    """
    Fresh default binning registry; tests are free to modify it.
    """
    return default_registry()


@pytest.fixture
def jet():
    return Jet(pt=10.0, eta=0.0, phi=0.0, cf=0.5, charge=0.0, pattern=0)


@pytest.fixture
def csts():
    return (
        Cst(z=0.3, jt=0.1, eta=0.1, phi=0.05),
        Cst(z=0.2, jt=0.1, eta=-0.1, phi=-0.05),
    )


@pytest.fixture
def observations():
    """
    A small event sample covering every spin pattern and several jet bins.
    """
    obs = []
    for i in range(24):
        jet = Jet(
            pt=3.0 + 0.9 * i,
            eta=-0.5 + 0.04 * i,
            phi=0.25 * i,
            cf=(i % 10) / 10.0,
            charge=float(i % 5 - 2),
            pattern=i % 7 - 1,
        )
        pair = (
            Cst(z=0.1 + 0.01 * i, jt=0.2, eta=jet.eta + 0.05, phi=jet.phi + 0.1),
            Cst(z=0.3, jt=0.15, eta=jet.eta - 0.08, phi=jet.phi - 0.02 * (i + 1)),
        )
        obs.append((jet, pair, 1.0 + 0.1 * i))
    return obs


@pytest.fixture
def small_registry():
    """
    Coarse binnings keeping fully booked spin-sorted managers small.
    """
    bins = default_registry()
    bins.set("side", Binning.uniform(20, 1e-5, 1.0, axis="log"))
    bins.set("logside", Binning.uniform(20, -5.0, 0.0))
    bins.set("angle", Binning.uniform(12, 0.0, TWO_PI))
    return bins
