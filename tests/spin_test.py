import numpy.testing as npt
import pytest

from phcorr.spin import SpinPattern, SpinState, get_spin_states, get_spins


def test_from_tag():
    assert SpinPattern.from_tag(2) is SpinPattern.PP_BU_YD
    assert SpinPattern.from_tag(5) is SpinPattern.PA_BD
    assert SpinPattern.from_tag(99) is SpinPattern.UNKNOWN
    assert SpinPattern.from_tag(-1) is SpinPattern.UNKNOWN


@pytest.mark.parametrize("pattern", list(SpinPattern))
def test_states_match_spins(pattern):
    states = get_spin_states(pattern)
    blue, yellow = get_spins(pattern)
    assert states[0] is SpinState.INT
    assert len(states) == 1 + bool(blue.any()) + bool(yellow.any()) + bool(blue.any() and yellow.any())


def test_spin_vectors():
    blue, yellow = get_spins(SpinPattern.PP_BD_YU)
    npt.assert_array_equal(blue, [0.0, -1.0, 0.0])
    npt.assert_array_equal(yellow, [0.0, 1.0, 0.0])
    blue, yellow = get_spins(SpinPattern.PA_BU)
    npt.assert_array_equal(yellow, [0.0, 0.0, 0.0])
    assert SpinPattern.PA_BU.is_pa and not SpinPattern.PA_BU.is_pp


def test_state_labels():
    assert SpinState.INT.label == "Int"
    assert SpinState.BDYU.label == "BDYU"
