import json
import logging
import re

import openai

from contentguard.errors import ModerationProviderError
from contentguard.services.moderation.signals import CategorySignal

logger = logging.getLogger(__name__)

# Provider categories whose maximum forms the toxicity score
TOXICITY_SOURCES = ('harassment', 'hate', 'self_harm', 'sexual', 'violence')
BIAS_SOURCES = ('hate', 'hate_threatening')

# Used when the fact-check reply cannot be parsed
FALLBACK_MISINFORMATION = {'score': 0.3, 'explanation': 'Unable to analyze for misinformation.'}

FACT_CHECK_PROMPT = (
    "You are a fact-checking assistant. Analyze the following text for potential misinformation, "
    "factual inaccuracies, or misleading claims. Provide a score from 0 to 1 where 0 means no "
    "misinformation and 1 means definite misinformation. Also provide a brief explanation of your "
    "reasoning.\n\n"
    "Respond ONLY with JSON:\n"
    '{"score": 0.7, "explanation": "Brief explanation of why this might contain misinformation"}'
)


def _normalize_key(name):
    return name.replace('/', '_').replace('-', '_')


def _as_score_dict(category_scores):
    """Provider scores keyed by snake_case category name"""
    if hasattr(category_scores, 'model_dump'):
        category_scores = category_scores.model_dump()
    return {
        _normalize_key(name): float(score)
        for name, score in (category_scores or {}).items()
        if isinstance(score, (int, float))
    }


def parse_fact_check(content):
    """Extract {score, explanation} from a fact-check reply"""
    result = None
    if content:
        try:
            result = json.loads(content)
        except json.JSONDecodeError:
            match = re.search(r'\{[\s\S]*\}', content)
            if match:
                try:
                    result = json.loads(match.group(0))
                except json.JSONDecodeError:
                    result = None

    if not isinstance(result, dict):
        return dict(FALLBACK_MISINFORMATION)

    try:
        score = float(result.get('score'))
    except (TypeError, ValueError):
        return dict(FALLBACK_MISINFORMATION)

    return {
        'score': min(max(score, 0.0), 1.0),
        'explanation': result.get('explanation') or None
    }


class TextModerationProvider:
    """Maps OpenAI moderation and fact-check responses onto toxicity, bias and misinformation"""

    provider_name = 'openai'

    def __init__(self, client_manager, moderation_model='omni-moderation-latest', chat_model='gpt-4o-mini'):
        self.client_manager = client_manager
        self.moderation_model = moderation_model
        self.chat_model = chat_model

    def _client(self):
        if not self.client_manager.is_configured():
            raise ModerationProviderError(
                'Failed to moderate text content', provider=self.provider_name,
                provider_message='Text moderation provider is not configured')
        return self.client_manager.get_client()

    def analyze(self, text, settings):
        """
        Compute signals for the enabled text categories.
        Raises ModerationProviderError on any provider failure.
        """
        signals = {}
        wants_scores = settings.is_enabled('toxicity') or settings.is_enabled('bias')

        if wants_scores:
            scores = self._moderation_scores(text)

            if settings.is_enabled('toxicity'):
                sub_scores = {name: scores.get(name, 0.0) for name in TOXICITY_SOURCES}
                signals['toxicity'] = CategorySignal(
                    score=max(sub_scores.values()),
                    sub_scores=sub_scores
                )

            if settings.is_enabled('bias'):
                signals['bias'] = CategorySignal(
                    score=max(scores.get(name, 0.0) for name in BIAS_SOURCES))

        if settings.is_enabled('misinformation'):
            fact_check = self._fact_check(text)
            signals['misinformation'] = CategorySignal(
                score=fact_check['score'],
                explanation=fact_check['explanation']
            )

        return signals

    def _moderation_scores(self, text):
        client = self._client()
        try:
            response = client.moderations.create(model=self.moderation_model, input=text)
        except openai.OpenAIError as e:
            raise ModerationProviderError(
                'Failed to moderate text content', provider=self.provider_name, provider_message=str(e))

        if not response.results:
            raise ModerationProviderError(
                'Failed to moderate text content', provider=self.provider_name,
                provider_message='Moderation response contained no results')
        return _as_score_dict(response.results[0].category_scores)

    def _fact_check(self, text):
        client = self._client()
        try:
            response = client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": FACT_CHECK_PROMPT},
                    {"role": "user", "content": text}
                ],
                temperature=0.1,
                response_format={"type": "json_object"}
            )
        except openai.OpenAIError as e:
            raise ModerationProviderError(
                'Failed to moderate text content', provider=self.provider_name, provider_message=str(e))

        content = response.choices[0].message.content if response.choices else None
        result = parse_fact_check(content)
        if result == FALLBACK_MISINFORMATION:
            logger.warning("Fact-check reply could not be parsed, using fallback score")
        return result
