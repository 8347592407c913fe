"""
Resolution of the histogram indices one jet contributes to.

A jet is sorted along four axes: jet pt, charge fraction (cf), jet charge and
spin state. For the pt and charge axes the histograms also exist
"integrated" over the axis; the integrated bin of an axis with ``n`` bins is
ordinal ``n``. The cf axis has no integrated bin.

For every spin state the jet populates, :class:`IndexResolver` emits one
:class:`IndexBlock` of four indices, always in the order

====  =====================  ===================
slot  pt                     charge
====  =====================  ===================
0     integrated             integrated
1     binned                 integrated
2     integrated             binned
3     binned                 binned
====  =====================  ===================

and blocks come in the order spin-integrated, blue, yellow, blue-and-yellow.
"""

from collections.abc import Iterator
from typing import NamedTuple

from phcorr.log import logger
from phcorr.spin import SpinPattern, SpinState, get_spin_states
from phcorr.types import HistIndex, Jet
from phcorr.util._type import BinRanges

__all__ = ["IndexBlock", "IndexResolver", "find_bin"]


class IndexBlock(NamedTuple):
    """The four histogram indices filled for one spin state."""
    integrated: HistIndex
    pt_binned: HistIndex
    charge_binned: HistIndex
    binned: HistIndex

    @property
    def spin(self) -> SpinState:
        return SpinState(self.integrated.spin)


def find_bin(value: float, bins: BinRanges) -> int | None:
    """Ordinal of the first ``[low, high)`` range containing ``value``, or ``None``."""
    for ibin, (low, high) in enumerate(bins):
        if low <= value < high:
            return ibin
    return None


class IndexResolver:
    """
    Map a jet to the histogram indices it must be filled into.

    Parameters
    ----------
    pt_bins, cf_bins, charge_bins : sequence of (low, high), optional
        Half-open jet bins of each axis. An empty sequence disables binning
        along that axis.
    do_spin_bins : bool, default False
        Sort by beam spin pattern.
    """

    def __init__(
        self,
        pt_bins: BinRanges = (),
        cf_bins: BinRanges = (),
        charge_bins: BinRanges = (),
        do_spin_bins: bool = False,
    ) -> None:
        self.pt_bins = tuple((float(lo), float(hi)) for lo, hi in pt_bins)
        self.cf_bins = tuple((float(lo), float(hi)) for lo, hi in cf_bins)
        self.charge_bins = tuple((float(lo), float(hi)) for lo, hi in charge_bins)
        self.do_spin_bins = bool(do_spin_bins)

    def __repr__(self) -> str:
        return (
            f"IndexResolver(n_pt={len(self.pt_bins)}, n_cf={len(self.cf_bins)}, "
            f"n_chrg={len(self.charge_bins)}, spin={self.do_spin_bins})"
        )

    @property
    def do_pt_bins(self) -> bool:
        return len(self.pt_bins) > 0

    @property
    def do_cf_bins(self) -> bool:
        return len(self.cf_bins) > 0

    @property
    def do_charge_bins(self) -> bool:
        return len(self.charge_bins) > 0

    @property
    def pt_integrated(self) -> int:
        return len(self.pt_bins)

    @property
    def charge_integrated(self) -> int:
        return len(self.charge_bins)

    def base_index(self, jet: Jet) -> HistIndex:
        """
        Bin ordinals of the jet on the pt, cf and charge axes.

        A jet outside every pt (charge) bin falls into the integrated bin. A
        jet outside every cf bin is put in cf bin 0.
        """
        ipt = find_bin(jet.pt, self.pt_bins) if self.do_pt_bins else None
        icf = find_bin(jet.cf, self.cf_bins) if self.do_cf_bins else None
        ich = find_bin(jet.charge, self.charge_bins) if self.do_charge_bins else None

        if icf is None and self.do_cf_bins:
            logger.debug("jet cf=%s outside all cf bins, using cf bin 0", jet.cf)

        return HistIndex(
            pt=self.pt_integrated if ipt is None else ipt,
            cf=0 if icf is None else icf,
            chrg=self.charge_integrated if ich is None else ich,
            spin=SpinState.INT,
        )

    def spin_states(self, jet: Jet) -> list[SpinState]:
        """Spin states populated by ``jet``; only the integrated one without spin sorting."""
        if not self.do_spin_bins:
            return [SpinState.INT]
        return get_spin_states(SpinPattern.from_tag(jet.pattern))

    def resolve(self, jet: Jet) -> list[IndexBlock]:
        """One :class:`IndexBlock` per populated spin state (1, 2 or 4 blocks)."""
        base = self.base_index(jet)
        pt_int = self.pt_integrated
        ch_int = self.charge_integrated

        blocks = []
        for spin in self.spin_states(jet):
            blocks.append(IndexBlock(
                integrated=HistIndex(pt_int, base.cf, ch_int, spin),
                pt_binned=HistIndex(base.pt, base.cf, ch_int, spin),
                charge_binned=HistIndex(pt_int, base.cf, base.chrg, spin),
                binned=HistIndex(base.pt, base.cf, base.chrg, spin),
            ))
        return blocks

    def resolve_flat(self, jet: Jet) -> list[HistIndex]:
        """:meth:`resolve` flattened: 4, 8 or 16 indices in block order."""
        return [index for block in self.resolve(jet) for index in block]

    def iter_all_indices(self) -> Iterator[HistIndex]:
        """Every index a jet could resolve to under this configuration."""
        spins = list(SpinState) if self.do_spin_bins else [SpinState.INT]
        n_cf = max(len(self.cf_bins), 1)
        for spin in spins:
            for icf in range(n_cf):
                for ipt in range(len(self.pt_bins) + 1):
                    for ich in range(len(self.charge_bins) + 1):
                        yield HistIndex(ipt, icf, ich, spin)
