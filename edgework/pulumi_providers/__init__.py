"""Pulumi dynamic providers for Edgework resources."""

from .distribution import (
    CdnDistribution,
    DistributionInputs,
    DistributionProvider,
)

__all__ = [
    "CdnDistribution",
    "DistributionInputs",
    "DistributionProvider",
]
