import math

import pytest

from phcorr.calculate import Calculator, CalculatorConfig
from phcorr.errors import ConfigurationLockedError, DegenerateGeometryError
from phcorr.hists import HistManager
from phcorr.observables import WeightType
from phcorr.spin import SpinState
from phcorr.types import HistIndex, Jet

PT_BINS = [(0.0, 5.0), (5.0, 10.0), (10.0, 20.0)]
CF_BINS = [(0.0, 0.5), (0.5, 1.0)]
CHARGE_BINS = [(-1.0, 0.0), (0.0, 1.0)]


@pytest.fixture
def calc(small_registry):
    calc = Calculator(WeightType.PT, 1.0, bins=small_registry)
    calc.set_pt_jet_bins(PT_BINS).set_cf_jet_bins(CF_BINS).set_charge_bins(CHARGE_BINS)
    calc.set_do_spin_bins(True)
    return calc.init()


def test_end_to_end(calc, jet, csts):
    content = calc.calc_eec(jet, csts, evt_weight=1.0)
    assert content is not None
    assert calc.n_pairs == 1

    filled = [index for index in calc.manager.indices()
              if calc.manager.get("EECStat", index).sum().value > 0]
    assert len(filled) == 16

    # pt=10 sits on a bin edge and belongs to the upper bin; cf=0.5 and charge=0 likewise
    for spin in (SpinState.INT, SpinState.BU, SpinState.YU, SpinState.BUYU):
        for index in (HistIndex(3, 1, 2, spin), HistIndex(2, 1, 2, spin),
                      HistIndex(3, 1, 1, spin), HistIndex(2, 1, 1, spin)):
            assert calc.manager.get("EECStat", index).sum().value == pytest.approx(content.weight)
            assert calc.manager.get("LogEECStat", index).sum().value == pytest.approx(content.weight)
            assert calc.manager.get("CollBlueVsR", index).sum().value == pytest.approx(content.weight)
            assert calc.manager.get("CollYellVsR", index).sum().value == pytest.approx(content.weight)

    assert calc.manager.get("EECStat", HistIndex(2, 1, 1, SpinState.BD)).sum(flow=True).value == 0


def test_histograms_prebooked(calc):
    assert len(calc.manager) == len(SpinState) * 2 * 4 * 3


def test_calc_before_init(jet, csts):
    calc = Calculator()
    with pytest.raises(RuntimeError):
        calc.calc_eec(jet, csts)
    with pytest.raises(RuntimeError):
        calc.manager


def test_config_locked_after_init(calc):
    with pytest.raises(ConfigurationLockedError):
        calc.set_pt_jet_bins([(0.0, 1.0)])
    with pytest.raises(ConfigurationLockedError):
        calc.set_weight_power(2.0)
    with pytest.raises(ConfigurationLockedError):
        calc.init()

    calc.reset()
    assert not calc.initialized
    calc.set_weight_power(2.0).init()
    assert calc.config().weight_power == 2.0


def test_from_config_roundtrip(small_registry):
    config = CalculatorConfig(
        weight_type=WeightType.E,
        weight_power=0.5,
        pt_jet_bins=tuple(PT_BINS),
        charge_bins=tuple(CHARGE_BINS),
        do_spin_bins=True,
        hist_tag="_cfg",
        degenerate_policy="count",
    )
    calc = Calculator.from_config(config, bins=small_registry)
    assert calc.config() == config
    calc.init()
    assert calc.manager.tag == "_cfg"


def test_invalid_degenerate_policy():
    with pytest.raises(ValueError):
        Calculator(degenerate_policy="ignore")


def test_degenerate_pair_raises(calc, jet, csts):
    with pytest.raises(DegenerateGeometryError):
        calc.calc_eec(jet, (csts[0], csts[0]))


def test_degenerate_pair_counted(small_registry, jet, csts):
    calc = Calculator(bins=small_registry, degenerate_policy="count").set_do_spin_bins(True).init()
    assert calc.calc_eec(jet, (csts[0], csts[0])) is None
    assert calc.n_degenerate == 1
    assert calc.n_pairs == 0
    assert all(h.sum(flow=True).value == 0 for _, h in calc.manager.items())

    calc.calc_eec(jet, csts)
    assert calc.n_pairs == 1


def test_no_eec_fills_nothing(small_registry, jet, csts):
    calc = Calculator(bins=small_registry).init(do_eec=False)
    assert calc.calc_eec(jet, csts) is not None
    assert len(calc.manager) == 0


def test_run_matches_calc_eec(small_registry, observations):
    one = Calculator(bins=small_registry).set_pt_jet_bins(PT_BINS).set_do_spin_bins(True).init()
    for jet, pair, weight in observations:
        one.calc_eec(jet, pair, weight)

    other = Calculator(bins=small_registry).set_pt_jet_bins(PT_BINS).set_do_spin_bins(True)
    other.enable_perf(time=True)
    other.init().run(observations)

    assert other.n_pairs == one.n_pairs == len(observations)
    for kind in HistManager.EEC_KINDS + HistManager.SPIN_KINDS:
        for index in one.manager.indices():
            assert other.manager.get(kind, index).sum().value == pytest.approx(
                one.manager.get(kind, index).sum().value)
    assert set(other._perf_stats.steps) == {"observables", "indices", "fill"}


def test_end_writes_archive(calc, jet, csts, small_registry, tmp_path):
    calc.calc_eec(jet, csts)
    path = tmp_path / "eec.npz"
    calc.end(path)
    loaded = HistManager.load(path, small_registry)
    index = HistIndex(2, 1, 1, SpinState.BUYU)
    assert loaded.get("EECStat", index).sum().value == pytest.approx(
        calc.manager.get("EECStat", index).sum().value)


def test_weight_power_applied(small_registry, jet, csts):
    lin = Calculator(bins=small_registry).init()
    sq = Calculator(bins=small_registry, weight_power=2.0).init()
    w1 = lin.calc_eec(jet, csts).weight
    w2 = sq.calc_eec(jet, csts).weight
    assert w2 == pytest.approx(w1**2)
    assert math.isnan(lin.calc_eec(Jet(10.0, 0.0, 0.0), csts).phi_coll_blue)


def test_run_counts_degenerate_pairs_and_continues(small_registry, jet, csts):
    observations = [(jet, csts, 1.0), (jet, (csts[1], csts[1]), 1.0), (jet, csts, 2.0)]

    strict = Calculator(bins=small_registry).set_do_spin_bins(True).init()
    with pytest.raises(DegenerateGeometryError):
        strict.run(observations)

    tolerant = Calculator(bins=small_registry, degenerate_policy="count").set_do_spin_bins(True).init()
    tolerant.run(observations)
    assert tolerant.n_pairs == 2
    assert tolerant.n_degenerate == 1
    index = HistIndex(0, 0, 0, SpinState.INT)
    weight = tolerant.calc_eec(jet, csts, evt_weight=1.0).weight
    # evt weights 1 and 2 from the run, plus the pair just added
    assert tolerant.manager.get("EECStat", index).sum().value == pytest.approx(4.0 * weight)
