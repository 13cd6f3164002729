"""Measure how much of the kernel's fs read-ahead is actually used."""

__version__ = "0.1.0"

from .errors import (
    AttachmentError,
    LoadError,
    ReadaheadError,
    ResourceLimitError,
    UnsupportedKernelError,
)
from .report import HistogramSnapshot
from .variants import AttachVariant, select_variant
