import math

import hist
import numpy as np
import numpy.testing as npt
import pytest

from phcorr.binning import Binning, Bins
from phcorr.hists import HistManager, get_variance
from phcorr.spin import SpinState
from phcorr.types import HistContent, HistIndex


@pytest.fixture
def small_bins():
    return Bins({
        "side": Binning.from_edges([0.0, 0.1, 0.5, 1.0]),
        "logside": Binning.uniform(3, -3.0, 0.0),
        "angle": Binning.uniform(4, 0.0, 2 * np.pi),
    })


def test_variance():
    assert get_variance(2.0, 4.0) == pytest.approx(16.0)
    npt.assert_allclose(get_variance(np.array([1.0, 0.5]), np.array([2.0, 4.0])), [2.0, 1.0])


def test_hist_name():
    name = HistManager.hist_name("EECStat", HistIndex(1, 0, 2, SpinState.BU), "_run1")
    assert name == "hEECStat_ptJet1_cf0_chrg2_spinBU_run1"
    assert HistManager.hist_name("LogEECStat", HistIndex()) == "hLogEECStat_ptJet0_cf0_chrg0_spinInt"


def test_booked_hists_use_registry_edges(small_bins):
    manager = HistManager(small_bins, do_spin_bins=True)
    manager.book(HistIndex())
    eec = manager.get("EECStat", HistIndex())
    assert isinstance(eec, hist.Hist)
    npt.assert_allclose(eec.axes[0].edges, [0.0, 0.1, 0.5, 1.0])
    coll = manager.get("CollBlueVsR", HistIndex())
    assert coll.ndim == 2
    npt.assert_allclose(coll.axes["angle"].edges, small_bins.get("angle").edges)


def test_fill_flow_and_weights(small_bins):
    manager = HistManager(small_bins)
    index = HistIndex()
    for dist, weight in ((0.05, 2.0), (0.1, 1.0), (1.0, 3.0), (0.3, 0.5), (0.3, 0.5)):
        manager.fill_eec_hists(index, HistContent(weight=weight, dist=dist))

    eec = manager.get("EECStat", index)
    # 0.1 sits on an edge and belongs to the upper bin; 1.0 is overflow
    npt.assert_allclose(eec.values(), [2.0, 2.0, 0.0])
    npt.assert_allclose(eec.values(flow=True), [0.0, 2.0, 2.0, 0.0, 3.0])
    npt.assert_allclose(eec.variances(), [4.0, 1.5, 0.0])


def test_non_finite_values_are_skipped(small_bins):
    manager = HistManager(small_bins, do_spin_bins=True)
    manager.fill_eec_hists(HistIndex(), HistContent(weight=1.0, dist=0.0, phi_coll_blue=1.0))

    # R_L = 0 is filled at the first edge, its log is -inf and skipped
    assert manager.get("EECStat", HistIndex()).sum().value == pytest.approx(1.0)
    assert manager.get("LogEECStat", HistIndex()).sum(flow=True).value == 0.0
    assert manager.n_skipped["LogEECStat"] == 1
    # the yellow angle defaults to nan
    assert manager.n_skipped["CollYellVsR"] == 1
    assert manager.get("CollBlueVsR", HistIndex()).sum().value == pytest.approx(1.0)


def test_manager_fill(small_bins):
    manager = HistManager(small_bins, do_spin_bins=True)
    index = HistIndex(0, 0, 0, SpinState.BUYU)
    content = HistContent(weight=0.25, dist=0.05, phi_coll_blue=1.0, phi_coll_yellow=4.0)
    manager.fill_eec_hists(index, content)

    assert len(manager) == 1
    assert manager.indices() == [index]
    assert manager.get("EECStat", index).sum().value == pytest.approx(0.25)
    assert manager.get("LogEECStat", index).sum().value == pytest.approx(0.25)
    blue = manager.get("CollBlueVsR", index).values()
    assert blue[0, 0] == pytest.approx(0.25)
    yellow = manager.get("CollYellVsR", index).values()
    assert yellow[0, 2] == pytest.approx(0.25)


def test_without_spin_only_eec_kinds(small_bins):
    manager = HistManager(small_bins)
    manager.fill_eec_hists(HistIndex(), HistContent(weight=1.0, dist=0.2))
    assert manager.kinds == ("EECStat", "LogEECStat")
    assert len(list(manager.items())) == 2


def test_log_dist_follows_log_base(monkeypatch):
    import phcorr.binning.bins as bins

    content = HistContent(weight=1.0, dist=0.01)
    assert content.log_dist == pytest.approx(-2.0)
    monkeypatch.setattr(bins, "LOG_BASE", math.e)
    assert content.log_dist == pytest.approx(math.log(0.01))
    assert content.log_dist == pytest.approx(bins.log_base(0.01))
    assert HistContent(weight=1.0, dist=0.0).log_dist == -math.inf


def test_manager_merge(small_bins):
    a = HistManager(small_bins, do_spin_bins=True)
    b = HistManager(small_bins, do_spin_bins=True)
    content = HistContent(weight=1.0, dist=0.2, phi_coll_blue=0.5, phi_coll_yellow=0.5)
    a.fill_eec_hists(HistIndex(0, 0, 0, 0), content)
    b.fill_eec_hists(HistIndex(0, 0, 0, 0), content)
    b.fill_eec_hists(HistIndex(1, 0, 0, 0), content)

    assert a.merge(b) is a
    assert len(a) == 2
    assert a.get("EECStat", HistIndex(0, 0, 0, 0)).sum().value == pytest.approx(2.0)
    assert a.get("EECStat", HistIndex(0, 0, 0, 0)).sum().variance == pytest.approx(2.0)
    assert a.get("EECStat", HistIndex(1, 0, 0, 0)).sum().value == pytest.approx(1.0)
    # merged-in sets are copies
    b.fill_eec_hists(HistIndex(1, 0, 0, 0), content)
    assert a.get("EECStat", HistIndex(1, 0, 0, 0)).sum().value == pytest.approx(1.0)

    with pytest.raises(ValueError):
        a.merge(HistManager(small_bins))


def test_merge_rejects_other_binning(small_bins):
    other_bins = small_bins.copy()
    other_bins.set("side", Binning.from_edges([0.0, 0.5, 1.0]))
    a = HistManager(small_bins)
    b = HistManager(other_bins)
    a.book(HistIndex())
    b.book(HistIndex())
    with pytest.raises(ValueError):
        a.merge(b)


def test_manager_save_load(small_bins, tmp_path):
    manager = HistManager(small_bins, tag="_test", do_spin_bins=True)
    manager.generate_hists([HistIndex(0, 0, 0, 0), HistIndex(1, 0, 1, SpinState.YD)])
    manager.fill_eec_hists(
        HistIndex(1, 0, 1, SpinState.YD),
        HistContent(weight=0.5, dist=0.02, phi_coll_blue=3.0, phi_coll_yellow=math.nan),
    )
    manager.fill_eec_hists(HistIndex(1, 0, 1, SpinState.YD), HistContent(weight=2.0, dist=5.0))
    path = tmp_path / "hists.npz"
    manager.save(path)

    loaded = HistManager.load(path, small_bins)
    assert loaded.tag == "_test"
    assert loaded.do_spin_bins
    assert loaded.n_skipped == manager.n_skipped
    assert sorted(loaded.indices()) == sorted(manager.indices())
    for kind in manager.kinds:
        for index in manager.indices():
            npt.assert_array_equal(loaded.get(kind, index).values(flow=True),
                                   manager.get(kind, index).values(flow=True))
            npt.assert_array_equal(loaded.get(kind, index).variances(flow=True),
                                   manager.get(kind, index).variances(flow=True))

    other = small_bins.copy()
    other.set("side", Binning.uniform(5, 1e-3, 1.0, axis="log"))
    with pytest.raises(ValueError):
        HistManager.load(path, other)
