"""

Driver of the energy-energy correlator (EEC) calculation.

:class:`Calculator` ties the pieces together. For every jet and constituent
pair it

1. computes the pair observables with
   :class:`~phcorr.observables.PairObservableCalculator`,
2. resolves the histogram indices of the jet with
   :class:`~phcorr.indices.IndexResolver`,
3. fills every resolved index of its :class:`~phcorr.hists.HistManager`.

Basic usage
-----------

.. code-block:: python

   from phcorr.calculate import Calculator
   from phcorr.types import Cst, Jet

   calc = Calculator()                       # pt weights, power 1
   calc.set_pt_jet_bins([(5, 10), (10, 20)])
   calc.set_charge_bins([(-5, 0), (0, 5)])
   calc.set_do_spin_bins(True)
   calc.init()

   jet = Jet(pt=12.0, eta=0.1, phi=1.0, cf=0.5, charge=1.0, pattern=0)
   calc.calc_eec(jet, (Cst(0.3, 0.1, 0.1, 1.05), Cst(0.2, 0.1, 0.0, 0.95)))

   calc.end("eec_hists.npz")

Configuration is frozen by :meth:`Calculator.init`; any setter called
afterwards raises :class:`~phcorr.errors.ConfigurationLockedError`. Use
:meth:`Calculator.reset` to start over with a new configuration (this
discards all filled histograms).

Errors from the observable calculation or the histograms propagate to the
caller. The one exception is opt-in: with ``degenerate_policy="count"`` a
pair whose spin angles are undefined is counted in
:attr:`Calculator.n_degenerate`, logged, and not filled.

Profiling
---------
:meth:`Calculator.enable_perf` turns on per-stage timing of :meth:`run`
(``observables``, ``indices``, ``fill``); the table is logged at the end of
the run.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from os import PathLike
from typing import Self

from phcorr.binning.bins import Bins, default_registry
from phcorr.errors import ConfigurationLockedError, DegenerateGeometryError
from phcorr.hists import HistManager
from phcorr.indices import IndexResolver
from phcorr.log import logger
from phcorr.observables import PairObservableCalculator, WeightType
from phcorr.types import HistContent, HistIndex, Jet
from phcorr.util._type import BinRanges, CstPair, DegeneratePolicy, Observation
from phcorr.util.perf import PerfStats

__all__ = ["CalculatorConfig", "Calculator"]


@dataclass(frozen=True)
class CalculatorConfig:
    """
    Complete configuration of a :class:`Calculator`.

    Attributes
    ----------
    weight_type : WeightType
        Quantity used for constituent weights.
    weight_power : float
        Exponent of the constituent weights.
    pt_jet_bins, cf_jet_bins, charge_bins : tuple of (low, high)
        Half-open jet bins; empty disables the axis.
    do_spin_bins : bool
        Sort by beam spin pattern.
    hist_tag : str
        Suffix of every histogram name.
    degenerate_policy : {"raise", "count"}
        Handling of pairs with undefined spin angles.
    """
    weight_type: WeightType = WeightType.PT
    weight_power: float = 1.0
    pt_jet_bins: tuple[tuple[float, float], ...] = ()
    cf_jet_bins: tuple[tuple[float, float], ...] = ()
    charge_bins: tuple[tuple[float, float], ...] = ()
    do_spin_bins: bool = False
    hist_tag: str = ""
    degenerate_policy: DegeneratePolicy = "raise"


class Calculator:
    """
    EEC calculator: observables, index resolution and histogram filling.

    Parameters
    ----------
    weight_type : WeightType, default ``WeightType.PT``
        Quantity used for constituent weights.
    weight_power : float, default 1.0
        Exponent of the constituent weights.
    bins : Bins, optional
        Binning registry for the histograms. Defaults to
        :func:`~phcorr.binning.bins.default_registry`.
    degenerate_policy : {"raise", "count"}, default ``"raise"``
        What to do with a pair whose spin angles are undefined. ``"raise"``
        stops :meth:`calc_eec` and :meth:`run` at the first such pair, which
        surfaces bad input (e.g. duplicated constituents) immediately. For
        production runs over large samples use ``"count"``: the pair is
        skipped, counted in :attr:`n_degenerate` and logged, and the run
        carries on.

    Notes
    -----
    A calculator processes observations one at a time and is not
    thread-safe. Run independent calculators on disjoint batches and merge
    their managers instead (see :mod:`phcorr.shard`).
    """

    def __init__(
        self,
        weight_type: WeightType = WeightType.PT,
        weight_power: float = 1.0,
        bins: Bins | None = None,
        degenerate_policy: DegeneratePolicy = "raise",
    ) -> None:
        self._weight_type = WeightType(weight_type)
        self._weight_power = float(weight_power)
        self._bins = bins if bins is not None else default_registry()
        self._hist_tag = ""
        self._pt_jet_bins: tuple[tuple[float, float], ...] = ()
        self._cf_jet_bins: tuple[tuple[float, float], ...] = ()
        self._charge_bins: tuple[tuple[float, float], ...] = ()
        self._do_spin_bins = False
        self._degenerate_policy: DegeneratePolicy = "raise"
        self._initialized = False
        self.set_degenerate_policy(degenerate_policy)

        self._perf_stats = PerfStats(time=False, memory=False)
        self._do_eec = False
        self._observables: PairObservableCalculator | None = None
        self._resolver: IndexResolver | None = None
        self._manager: HistManager | None = None
        self.n_pairs = 0
        self.n_degenerate = 0

    @classmethod
    def from_config(cls, config: CalculatorConfig, bins: Bins | None = None) -> "Calculator":
        """Build an (uninitialised) calculator from a :class:`CalculatorConfig`."""
        calc = cls(config.weight_type, config.weight_power, bins=bins,
                   degenerate_policy=config.degenerate_policy)
        calc.set_pt_jet_bins(config.pt_jet_bins)
        calc.set_cf_jet_bins(config.cf_jet_bins)
        calc.set_charge_bins(config.charge_bins)
        calc.set_do_spin_bins(config.do_spin_bins)
        calc.set_hist_tag(config.hist_tag)
        return calc

    def config(self) -> CalculatorConfig:
        """Current configuration as a :class:`CalculatorConfig`."""
        return CalculatorConfig(
            weight_type=self._weight_type,
            weight_power=self._weight_power,
            pt_jet_bins=self._pt_jet_bins,
            cf_jet_bins=self._cf_jet_bins,
            charge_bins=self._charge_bins,
            do_spin_bins=self._do_spin_bins,
            hist_tag=self._hist_tag,
            degenerate_policy=self._degenerate_policy,
        )

    def __repr__(self) -> str:
        state = "initialized" if self._initialized else "configuring"
        return (f"<Calculator {self._weight_type.name}^{self._weight_power:g} "
                f"pt={len(self._pt_jet_bins)} cf={len(self._cf_jet_bins)} "
                f"chrg={len(self._charge_bins)} spin={self._do_spin_bins} ({state})>")

    # ------------------- configuration ------------------------------------#

    def _check_unlocked(self) -> None:
        if self._initialized:
            raise ConfigurationLockedError(
                "Calculator is already initialized; call reset() before reconfiguring"
            )

    @staticmethod
    def _copy_bins(bins: BinRanges) -> tuple[tuple[float, float], ...]:
        return tuple((float(low), float(high)) for low, high in bins)

    def set_weight_type(self, weight_type: WeightType) -> Self:
        self._check_unlocked()
        self._weight_type = WeightType(weight_type)
        return self

    def set_weight_power(self, power: float) -> Self:
        self._check_unlocked()
        self._weight_power = float(power)
        return self

    def set_hist_tag(self, tag: str) -> Self:
        self._check_unlocked()
        self._hist_tag = tag
        return self

    def set_pt_jet_bins(self, bins: BinRanges) -> Self:
        """Half-open jet pt bins; an empty sequence turns pt binning off."""
        self._check_unlocked()
        self._pt_jet_bins = self._copy_bins(bins)
        return self

    def set_cf_jet_bins(self, bins: BinRanges) -> Self:
        """Half-open charge-fraction bins (there is no integrated cf bin)."""
        self._check_unlocked()
        self._cf_jet_bins = self._copy_bins(bins)
        return self

    def set_charge_bins(self, bins: BinRanges) -> Self:
        """Half-open jet charge bins; an empty sequence turns charge binning off."""
        self._check_unlocked()
        self._charge_bins = self._copy_bins(bins)
        return self

    def set_do_spin_bins(self, spin: bool) -> Self:
        self._check_unlocked()
        self._do_spin_bins = bool(spin)
        return self

    def set_degenerate_policy(self, policy: DegeneratePolicy) -> Self:
        self._check_unlocked()
        if policy not in ("raise", "count"):
            raise ValueError(f"Unknown degenerate policy {policy!r}, must be 'raise' or 'count'")
        self._degenerate_policy = policy
        return self

    def enable_perf(self, time: bool = True, memory: bool = False) -> Self:
        """Enable/disable per-stage profiling of :meth:`run`."""
        self._perf_stats = PerfStats(time=time, memory=memory)
        return self

    # ------------------- lifecycle ----------------------------------------#

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def do_spin_bins(self) -> bool:
        return self._do_spin_bins

    @property
    def manager(self) -> HistManager:
        if self._manager is None:
            raise RuntimeError("Calculator is not initialized; call init() first")
        return self._manager

    @property
    def resolver(self) -> IndexResolver:
        if self._resolver is None:
            raise RuntimeError("Calculator is not initialized; call init() first")
        return self._resolver

    def init(self, do_eec: bool = True) -> Self:
        """
        Freeze the configuration and book the histograms.

        Parameters
        ----------
        do_eec : bool, default True
            Fill the EEC histograms. With ``False`` observables are still
            computed (and degenerate pairs detected) but nothing is filled.
        """
        self._check_unlocked()
        self._do_eec = bool(do_eec)
        self._observables = PairObservableCalculator(self._weight_type, self._weight_power)
        self._resolver = IndexResolver(
            pt_bins=self._pt_jet_bins,
            cf_bins=self._cf_jet_bins,
            charge_bins=self._charge_bins,
            do_spin_bins=self._do_spin_bins,
        )
        self._manager = HistManager(self._bins, tag=self._hist_tag, do_spin_bins=self._do_spin_bins)
        if self._do_eec:
            self._manager.generate_hists(self._resolver.iter_all_indices())
        self._initialized = True
        logger.info("initialized %r with %r", self, self._resolver)
        return self

    def reset(self) -> Self:
        """Unlock the configuration and drop all histograms and counters."""
        self._initialized = False
        self._do_eec = False
        self._observables = None
        self._resolver = None
        self._manager = None
        self.n_pairs = 0
        self.n_degenerate = 0
        return self

    # ------------------- calculation --------------------------------------#

    def _observables_or_skip(self, jet: Jet, csts: CstPair, evt_weight: float) -> HistContent | None:
        assert self._observables is not None
        try:
            return self._observables.calc(jet, csts, evt_weight, with_spin=self._do_spin_bins)
        except DegenerateGeometryError as err:
            if self._degenerate_policy == "raise":
                raise
            self.n_degenerate += 1
            logger.warning("skipping pair with degenerate geometry: %s", err)
            return None

    def _fill(self, indices: Iterable[HistIndex], content: HistContent) -> None:
        assert self._manager is not None
        for index in indices:
            self._manager.fill_eec_hists(index, content)

    def calc_eec(self, jet: Jet, csts: CstPair, evt_weight: float = 1.0) -> HistContent | None:
        """
        Process one jet and constituent pair.

        Parameters
        ----------
        jet : Jet
            The jet.
        csts : tuple[Cst, Cst]
            Two constituents of ``jet``.
        evt_weight : float, default 1.0
            Event-level weight (e.g. cross-section or spin weights).

        Returns
        -------
        HistContent or None
            The filled observables, or ``None`` if the pair was skipped as
            degenerate.
        """
        if not self._initialized:
            raise RuntimeError("Calculator is not initialized; call init() first")

        content = self._observables_or_skip(jet, csts, evt_weight)
        if content is None:
            return None
        self.n_pairs += 1

        if self._do_eec:
            blocks = self.resolver.resolve(jet)
            logger.debug("pair R_L=%.4g weight=%.4g -> %d index blocks", content.dist, content.weight, len(blocks))
            for block in blocks:
                self._fill(block, content)
        return content

    def run(self, observations: Iterable[Observation]) -> Self:
        """
        Process a sequence of ``(jet, (cst, cst), evt_weight)`` observations.

        With profiling enabled (:meth:`enable_perf`) the time spent in each
        stage is accumulated and logged when the sequence is exhausted.
        """
        if not self._initialized:
            raise RuntimeError("Calculator is not initialized; call init() first")

        perf = self._perf_stats
        with perf:
            for jet, csts, evt_weight in observations:
                with perf.step("observables"):
                    content = self._observables_or_skip(jet, csts, evt_weight)
                if content is None:
                    continue
                self.n_pairs += 1
                if not self._do_eec:
                    continue
                with perf.step("indices"):
                    blocks = self.resolver.resolve(jet)
                with perf.step("fill"):
                    for block in blocks:
                        self._fill(block, content)
        perf.report(logger, title=repr(self))
        logger.debug("processed %d pairs (%d degenerate)", self.n_pairs, self.n_degenerate)
        return self

    def end(self, path: str | PathLike) -> None:
        """Save the histograms to ``path`` (a ``.npz`` archive)."""
        self.manager.save(path)
