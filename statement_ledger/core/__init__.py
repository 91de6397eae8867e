"""
Core processing package
"""

from .retry import AIServiceError, ErrorKind, RetryOrchestrator, RetryPolicy, classify_error
from .gemini_client import GeminiClient, GeminiConfig
from .currency import CurrencyNormalizer, FXConfig, apply_conversion
from .layout_discovery import LayoutDiscovery
from .raw_table_extractor import RawTableExtractor, RawTableEvidence
from .harmonizer import StructuredHarmonizer
from .invoice_extractor import InvoiceExtractor
from .categorizer import TransactionCategorizer
from .pipeline import LedgerPipeline, PipelineConfig

__all__ = [
    'AIServiceError',
    'ErrorKind',
    'RetryOrchestrator',
    'RetryPolicy',
    'classify_error',
    'GeminiClient',
    'GeminiConfig',
    'CurrencyNormalizer',
    'FXConfig',
    'apply_conversion',
    'LayoutDiscovery',
    'RawTableExtractor',
    'RawTableEvidence',
    'StructuredHarmonizer',
    'InvoiceExtractor',
    'TransactionCategorizer',
    'LedgerPipeline',
    'PipelineConfig',
]
