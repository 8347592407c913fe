"""
Parallel filling over independent calculators.

A :class:`~phcorr.calculate.Calculator` is single-threaded. To use several
workers, split the observations into contiguous shards, give every shard its
own freshly initialised calculator, and merge the resulting
:class:`~phcorr.hists.HistManager` objects bin by bin. Because histogram
merging is plain summation, the result does not depend on the number of
shards or on the order in which they finish.

.. code-block:: python

   from phcorr.calculate import Calculator, CalculatorConfig
   from phcorr.shard import run_sharded

   config = CalculatorConfig(pt_jet_bins=((5, 10), (10, 20)))
   manager = run_sharded(lambda: Calculator.from_config(config).init(),
                         observations, n_shards=4)
"""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from phcorr.hists import HistManager
from phcorr.log import logger
from phcorr.util._type import CalculatorFactory, Observation

__all__ = ["split_shards", "run_sharded"]


def split_shards(observations: Sequence[Observation], n_shards: int) -> list[Sequence[Observation]]:
    """Split ``observations`` into at most ``n_shards`` contiguous, non-empty batches."""
    if n_shards <= 0:
        raise ValueError(f"n_shards must be positive, got {n_shards}")
    n_obs = len(observations)
    n_shards = min(n_shards, n_obs) or 1
    size, extra = divmod(n_obs, n_shards)
    shards = []
    start = 0
    for ishard in range(n_shards):
        stop = start + size + (1 if ishard < extra else 0)
        shards.append(observations[start:stop])
        start = stop
    return shards


def _run_shard(factory: CalculatorFactory, batch: Sequence[Observation]) -> HistManager:
    calc = factory()
    if not calc.initialized:
        calc.init()
    calc.run(batch)
    return calc.manager


def run_sharded(
    factory: CalculatorFactory,
    observations: Sequence[Observation],
    n_shards: int,
    max_workers: int | None = None,
) -> HistManager:
    """
    Fill histograms for ``observations`` with ``n_shards`` independent calculators.

    Parameters
    ----------
    factory : callable
        Returns a new, identically configured calculator on every call. An
        uninitialised calculator is initialised with the defaults.
    observations : sequence of (jet, (cst, cst), evt_weight)
        All observations to process.
    n_shards : int
        Number of batches; capped at the number of observations.
    max_workers : int, optional
        Thread pool size; defaults to ``n_shards``.

    Returns
    -------
    HistManager
        The merged histograms, identical to a single-calculator run over the
        same observations.
    """
    shards = split_shards(observations, n_shards)
    logger.debug("running %d observations in %d shards", len(observations), len(shards))

    with ThreadPoolExecutor(max_workers=max_workers or len(shards)) as executor:
        futures = [executor.submit(_run_shard, factory, batch) for batch in shards]
        managers = [future.result() for future in futures]

    merged = managers[0]
    for manager in managers[1:]:
        merged.merge(manager)
    return merged
