"""Oracles that verify authors out of band and co-sign their registration."""

from nsreg.oracle.github import GitHubOracle

__all__ = ["GitHubOracle"]
