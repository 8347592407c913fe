"""
Histogram sets filled by the correlator calculator.

:class:`HistManager` is the accumulation sink of a
:class:`~phcorr.calculate.Calculator`. It keeps one set of
:class:`hist.Hist` histograms (weighted storage) per
:class:`~phcorr.types.HistIndex`, books them lazily on first fill (or up
front with :meth:`HistManager.generate_hists`), merges bin-wise with other
managers and persists everything to a ``.npz`` archive.

Histograms per index
--------------------
==============  ======================================  ============================
kind            axes (registry binning)                 filled with
==============  ======================================  ============================
``EECStat``     R_L (``side``)                          pair weight
``LogEECStat``  log R_L (``logside``)                   pair weight
``CollBlueVsR`` R_L (``side``) x angle (``angle``)      pair weight, spin sorting only
``CollYellVsR`` R_L (``side``) x angle (``angle``)      pair weight, spin sorting only
==============  ======================================  ============================

Bins are half-open ``[low, high)``; values below the first or at/above the
last edge go to the under/overflow bins (``flow=True`` views). Non-finite
values are not filled and are counted per kind in
:attr:`HistManager.n_skipped` instead.
"""

import json
import math
from collections.abc import Iterable, Iterator
from os import PathLike

import hist
import numpy as np

from phcorr.binning.bins import Bins
from phcorr.log import logger
from phcorr.spin import SpinState
from phcorr.types import HistContent, HistIndex
from phcorr.util._type import FloatArray

__all__ = ["get_variance", "HistManager"]


def get_variance(err: float | FloatArray, counts: float | FloatArray) -> float | FloatArray:
    """Variance of the entries of a bin from its standard error and count: ``(err * sqrt(n))**2``."""
    sqvar = err * np.sqrt(counts)
    return sqvar * sqvar


class HistManager:
    """
    Histogram sets keyed by :class:`~phcorr.types.HistIndex`.

    Parameters
    ----------
    bins : Bins
        Registry providing the ``side``, ``logside`` and ``angle`` binnings.
    tag : str, optional
        Suffix appended to every histogram name.
    do_spin_bins : bool, default False
        Also book the spin-angle histograms.

    Not thread-safe: use one manager per thread and :meth:`merge` them.
    """
    EEC_KINDS = ("EECStat", "LogEECStat")
    SPIN_KINDS = ("CollBlueVsR", "CollYellVsR")

    def __init__(self, bins: Bins, tag: str = "", do_spin_bins: bool = False) -> None:
        self.bins = bins
        self.tag = tag
        self.do_spin_bins = bool(do_spin_bins)
        self._hists: dict[str, dict[HistIndex, hist.Hist]] = {kind: {} for kind in self.kinds}
        self.n_skipped: dict[str, int] = dict.fromkeys(self.kinds, 0)

    @property
    def kinds(self) -> tuple[str, ...]:
        return self.EEC_KINDS + (self.SPIN_KINDS if self.do_spin_bins else ())

    def _axis(self, binning: str, name: str, label: str) -> hist.axis.Variable:
        return hist.axis.Variable(self.bins.get(binning).edges, name=name, label=label)

    def _make(self, kind: str) -> hist.Hist:
        if kind == "EECStat":
            axes = (self._axis("side", "dist", "R_L"),)
        elif kind == "LogEECStat":
            axes = (self._axis("logside", "logdist", "log R_L"),)
        elif kind in self.SPIN_KINDS:
            axes = (self._axis("side", "dist", "R_L"), self._axis("angle", "angle", "phi"))
        else:
            raise KeyError(kind)
        return hist.Hist(*axes, storage=hist.storage.Weight(), name=kind)

    def _binning_names(self) -> tuple[str, ...]:
        return ("side", "logside", "angle") if self.do_spin_bins else ("side", "logside")

    @staticmethod
    def hist_name(kind: str, index: HistIndex, tag: str = "") -> str:
        """Name of a histogram, e.g. ``hEECStat_ptJet1_cf0_chrg2_spinBU``."""
        spin = SpinState(index.spin).label
        return f"h{kind}_ptJet{index.pt}_cf{index.cf}_chrg{index.chrg}_spin{spin}{tag}"

    def book(self, index: HistIndex) -> None:
        """Create the histograms of ``index`` if they do not exist yet."""
        index = HistIndex(*index)
        for kind in self.kinds:
            if index not in self._hists[kind]:
                self._hists[kind][index] = self._make(kind)

    def generate_hists(self, indices: Iterable[HistIndex]) -> None:
        """Book every index up front."""
        for index in indices:
            self.book(index)
        logger.debug("booked %d histogram sets", len(self))

    def _fill(self, kind: str, index: HistIndex, weight: float, **values: float) -> None:
        if not all(math.isfinite(v) for v in values.values()):
            self.n_skipped[kind] += 1
            return
        self._hists[kind][index].fill(**{k: [v] for k, v in values.items()}, weight=[weight])

    def fill_eec_hists(self, index: HistIndex, content: HistContent) -> None:
        """Fill the histograms of ``index`` with one pair."""
        self.book(index)
        w = content.weight
        self._fill("EECStat", index, w, dist=content.dist)
        self._fill("LogEECStat", index, w, logdist=content.log_dist)
        if self.do_spin_bins:
            self._fill("CollBlueVsR", index, w, dist=content.dist, angle=content.phi_coll_blue)
            self._fill("CollYellVsR", index, w, dist=content.dist, angle=content.phi_coll_yellow)

    def get(self, kind: str, index: HistIndex) -> hist.Hist:
        return self._hists[kind][HistIndex(*index)]

    def indices(self) -> list[HistIndex]:
        return list(self._hists["EECStat"])

    def items(self) -> Iterator[tuple[str, hist.Hist]]:
        """``(name, histogram)`` pairs."""
        for kind, by_index in self._hists.items():
            for index, h in by_index.items():
                yield self.hist_name(kind, index, self.tag), h

    def __len__(self) -> int:
        return len(self._hists["EECStat"])

    def __repr__(self) -> str:
        return f"<HistManager tag={self.tag!r} sets={len(self)} spin={self.do_spin_bins}>"

    def merge(self, other: "HistManager") -> "HistManager":
        """
        Add ``other`` into this manager bin by bin and return ``self``.

        Summation is commutative and associative, so shards can be merged in
        any order.
        """
        if set(other.kinds) != set(self.kinds):
            raise ValueError("Cannot merge managers with different histogram kinds")
        for kind, by_index in other._hists.items():
            mine = self._hists[kind]
            for index, h in by_index.items():
                if index not in mine:
                    mine[index] = h.copy()
                    continue
                if mine[index].axes != h.axes:
                    raise ValueError(f"Cannot merge {kind} histograms with different binning")
                mine[index] += h
            self.n_skipped[kind] += other.n_skipped[kind]
        return self

    def save(self, path: str | PathLike) -> None:
        """Write all histograms (with flow bins) to a compressed ``.npz`` archive."""
        arrays: dict[str, np.ndarray] = {}
        meta = []
        for kind, by_index in self._hists.items():
            for index, h in by_index.items():
                name = self.hist_name(kind, index, self.tag)
                meta.append({"name": name, "kind": kind, "index": list(index)})
                view = h.view(flow=True)
                arrays[f"{name}.value"] = np.asarray(view["value"])
                arrays[f"{name}.variance"] = np.asarray(view["variance"])
        for name in self._binning_names():
            arrays[f"edges.{name}"] = self.bins.get(name).edges
        arrays["meta"] = np.array(json.dumps({
            "tag": self.tag,
            "spin": self.do_spin_bins,
            "skipped": self.n_skipped,
            "hists": meta,
        }))
        np.savez_compressed(path, **arrays)
        logger.info("saved %d histograms to %s", len(meta), path)

    @classmethod
    def load(cls, path: str | PathLike, bins: Bins) -> "HistManager":
        """Read an archive written by :meth:`save`; ``bins`` must match the saved edges."""
        with np.load(path) as data:
            meta = json.loads(str(data["meta"]))
            manager = cls(bins, tag=meta["tag"], do_spin_bins=meta["spin"])
            for name in manager._binning_names():
                if not np.array_equal(data[f"edges.{name}"], bins.get(name).edges):
                    raise ValueError(f"Binning {name!r} differs from the one saved in {path}")
            manager.n_skipped.update(meta["skipped"])
            for entry in meta["hists"]:
                h = manager._make(entry["kind"])
                view = h.view(flow=True)
                view["value"] = data[f"{entry['name']}.value"]
                view["variance"] = data[f"{entry['name']}.variance"]
                manager._hists[entry["kind"]][HistIndex(*entry["index"])] = h
        return manager
