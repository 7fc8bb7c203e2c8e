"""Tenancy dispute and enforcement order acquisition and enrichment pipeline."""

__version__ = "0.1.0"
