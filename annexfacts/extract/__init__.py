"""Schema-constrained extraction and scanner/extractor merge."""

from annexfacts.extract.extractor import ExtractionResult, SignalExtractor
from annexfacts.extract.merge import merge_signals

__all__ = ["ExtractionResult", "SignalExtractor", "merge_signals"]
