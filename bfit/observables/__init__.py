from .aggregator import (
    BFitModel,
    trapped_rate,
    untrapped_rate,
    species_rate,
    total_rate,
)

__all__ = [
    "BFitModel",
    "trapped_rate",
    "untrapped_rate",
    "species_rate",
    "total_rate",
]
