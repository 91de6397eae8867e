"""
Statement ledger: AI extraction and reconciliation of bank statements and invoices
"""

from .core import LedgerPipeline, PipelineConfig

__version__ = "0.1.0"

__all__ = ['LedgerPipeline', 'PipelineConfig']
