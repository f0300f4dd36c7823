"""
Threshold decisions over provider signals.

Numeric categories flag when ``score >= threshold``. Ordinal categories
compare likelihood ranks (VERY_UNLIKELY=1 .. VERY_LIKELY=5) and report
``rank / 5`` as their score. The overall flag is the OR of every computed
category, and only enabled categories are computed.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from .signals import CategorySignal

LIKELIHOOD_RANKS = {
    'VERY_UNLIKELY': 1,
    'UNLIKELY': 2,
    'POSSIBLE': 3,
    'LIKELY': 4,
    'VERY_LIKELY': 5,
}
MAX_RANK = 5

# Phrases for provider sub-signals, in reporting order
SUB_SIGNAL_DESCRIPTIONS = {
    'harassment': 'Content may contain harassment.',
    'hate': 'Content may contain hate speech.',
    'self_harm': 'Content may reference self-harm.',
    'sexual': 'Content may contain sexual content.',
    'violence': 'Content may contain violent content.',
}

# Used when a flagged category has no more specific explanation
DEFAULT_EXPLANATIONS = {
    'bias': 'Content may contain biased language or perspectives.',
}


def likelihood_rank(label) -> int:
    """Rank of a likelihood label; unknown labels rank 0"""
    if label is None:
        return 0
    return LIKELIHOOD_RANKS.get(getattr(label, 'value', label), 0)


@dataclass
class CategoryResult:
    flagged: bool
    score: float
    likelihood: Optional[str] = None
    explanation: Optional[str] = None

    def to_dict(self):
        data = {'flagged': self.flagged, 'score': self.score}
        if self.likelihood is not None:
            data['likelihood'] = self.likelihood
        else:
            data['explanation'] = self.explanation
        return data


@dataclass
class ModerationDecision:
    results: Dict[str, CategoryResult] = field(default_factory=dict)

    @property
    def flagged(self) -> bool:
        return any(result.flagged for result in self.results.values())

    def results_dict(self):
        return {category: result.to_dict() for category, result in self.results.items()}


class DecisionEngine:
    """Turns provider signals plus user thresholds into flag decisions"""

    def decide(self, signals: Dict[str, CategorySignal], settings) -> ModerationDecision:
        decision = ModerationDecision()
        for category, signal in signals.items():
            if not settings.is_enabled(category):
                continue
            threshold = settings.threshold_for(category)
            if signal.is_ordinal:
                decision.results[category] = self.decide_ordinal(signal, threshold)
            elif signal.score is not None:
                decision.results[category] = self.decide_numeric(category, signal, threshold)
        return decision

    def decide_numeric(self, category: str, signal: CategorySignal, threshold: float) -> CategoryResult:
        score = float(signal.score)
        flagged = score >= threshold
        explanation = self._explain(category, signal, threshold) if flagged else None
        return CategoryResult(flagged=flagged, score=score, explanation=explanation)

    def decide_ordinal(self, signal: CategorySignal, threshold) -> CategoryResult:
        rank = likelihood_rank(signal.likelihood)
        flagged = rank > 0 and rank >= likelihood_rank(threshold)
        return CategoryResult(
            flagged=flagged,
            score=rank / MAX_RANK,
            likelihood=signal.likelihood
        )

    def _explain(self, category: str, signal: CategorySignal, threshold: float) -> Optional[str]:
        if signal.explanation:
            return signal.explanation

        phrases = [
            description for name, description in SUB_SIGNAL_DESCRIPTIONS.items()
            if signal.sub_scores.get(name, 0.0) >= threshold
        ]
        if phrases:
            return ' '.join(phrases)

        return DEFAULT_EXPLANATIONS.get(category)
