import math

import numpy as np
import numpy.testing as npt
import pytest

from phcorr.errors import DegenerateGeometryError
from phcorr.geometry import (
    FourVector,
    get_cst_lorentz,
    get_jet_lorentz,
    polar_angle,
    unit,
)
from phcorr.geometry.vectors import get_weighted_avg_vector
from phcorr.types import Cst, Jet


def test_polar_angle():
    assert polar_angle(0.0) == pytest.approx(math.pi / 2)
    assert polar_angle(5.0) < 0.1
    assert polar_angle(-5.0) > math.pi - 0.1


def test_jet_lorentz():
    jet = Jet(pt=10.0, eta=0.5, phi=0.3)
    v = get_jet_lorentz(jet)
    assert v.pt == pytest.approx(10.0)
    assert v.pz == pytest.approx(10.0 * math.sinh(0.5))
    assert v.e == pytest.approx(v.p)
    assert math.atan2(v.py, v.px) == pytest.approx(0.3)
    assert np.linalg.norm(get_jet_lorentz(jet, norm=True).vect) == pytest.approx(1.0)


def test_cst_lorentz():
    cst = Cst(z=0.4, jt=0.3, eta=0.0, phi=-1.0)
    v = get_cst_lorentz(cst, pt_jet=10.0)
    assert v.p == pytest.approx(math.hypot(4.0, 0.3))
    assert v.pz == pytest.approx(0.0, abs=1e-12)
    assert v.et == pytest.approx(v.pt)


def test_unit_and_average():
    npt.assert_allclose(unit(np.array([3.0, 4.0, 0.0])), [0.6, 0.8, 0.0])
    with pytest.raises(DegenerateGeometryError):
        unit(np.zeros(3))

    avg = get_weighted_avg_vector(np.array([2.0, 0.0, 0.0]), np.array([0.0, 2.0, 0.0]))
    npt.assert_allclose(avg, [1.0, 1.0, 0.0])
    npt.assert_allclose(np.linalg.norm(get_weighted_avg_vector(avg, avg, norm=True)), 1.0)


def test_four_vector_massless():
    v = FourVector.massless(np.array([1.0, 2.0, 2.0]))
    assert v.e == pytest.approx(3.0)
    assert v.et == pytest.approx(math.sqrt(5.0))
