"""
Provider-neutral records produced by the provider adapters
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class CategorySignal:
    """
    What a provider observed for one category.

    Numeric categories carry ``score`` (0-1) and optionally the provider
    sub-scores it was composed from; ordinal categories carry ``likelihood``.
    ``explanation`` is free text the provider supplied itself.
    """
    score: Optional[float] = None
    likelihood: Optional[str] = None
    sub_scores: Dict[str, float] = field(default_factory=dict)
    explanation: Optional[str] = None

    @property
    def is_ordinal(self) -> bool:
        return self.likelihood is not None


@dataclass
class ImageAnalysis:
    signals: Dict[str, CategorySignal]
    # [{"description": str, "confidence": float}], None when not requested or unavailable
    logos: Optional[List[Dict]] = None
