"""Temporal workflows for harvesting, enrichment and party maintenance."""

from .enrichment_workflow import EnrichmentBatchWorkflow
from .harvest_workflow import HarvestWorkflow
from .party_merge_workflow import PartyMergeWorkflow

__all__ = ["HarvestWorkflow", "EnrichmentBatchWorkflow", "PartyMergeWorkflow"]
