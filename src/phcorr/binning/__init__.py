from .bins import Binning, Bins, default_registry, exponentiate, get_bin_edges, log_base

__all__ = ["Binning", "Bins", "default_registry", "exponentiate", "get_bin_edges", "log_base"]
