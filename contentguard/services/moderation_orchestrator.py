import logging
from typing import Any, Dict, Optional

from contentguard.schemas import ContentType, SettingsOverride

from .moderation.decision_engine import DecisionEngine
from .settings_store import apply_override

logger = logging.getLogger(__name__)


class ModerationOrchestrator:
    """Main coordinator for the moderation workflow: settings -> provider -> decision -> log"""

    def __init__(self, settings_store, text_provider, image_provider, log_writer,
                 image_storage=None, decision_engine=None):
        self.settings_store = settings_store
        self.text_provider = text_provider
        self.image_provider = image_provider
        self.log_writer = log_writer
        self.image_storage = image_storage
        self.decision_engine = decision_engine or DecisionEngine()

    async def _effective_settings(self, user_id: str, override: Optional[SettingsOverride]):
        stored = await self.settings_store.get(user_id)
        return apply_override(stored.value, override)

    async def moderate_text(self, user_id: str, text: str,
                            override: Optional[SettingsOverride] = None) -> Dict[str, Any]:
        settings = await self._effective_settings(user_id, override)

        signals = self.text_provider.analyze(text, settings)
        decision = self.decision_engine.decide(signals, settings)
        results = decision.results_dict()

        log = await self.log_writer.save(
            user_id, ContentType.TEXT.value, text, results, decision.flagged)
        if log.degraded:
            logger.warning(f"Text moderation log for {user_id} was not stored: {log.error}")

        return {
            'original_text': text,
            'moderation_results': results,
            'flagged': decision.flagged,
            'timestamp': log.value['created_at']
        }

    async def moderate_image(self, user_id: str, image_bytes: bytes, filename: Optional[str] = None,
                             content_type: Optional[str] = None,
                             override: Optional[SettingsOverride] = None) -> Dict[str, Any]:
        """Moderate uploaded bytes; flagged images are kept in object storage"""
        settings = await self._effective_settings(user_id, override)

        analysis = self.image_provider.analyze(image_bytes, settings)
        decision = self.decision_engine.decide(analysis.signals, settings)

        image_url = None
        if decision.flagged and self.image_storage is not None:
            image_url = self.image_storage.upload(user_id, image_bytes, filename, content_type)

        return await self._finish_image(user_id, decision, analysis, image_url)

    async def moderate_image_url(self, user_id: str, image_url: str,
                                 override: Optional[SettingsOverride] = None) -> Dict[str, Any]:
        """Moderate a remote image; the submitted URL is what gets recorded"""
        settings = await self._effective_settings(user_id, override)

        image_bytes = self.image_provider.fetch_image(image_url)
        analysis = self.image_provider.analyze(image_bytes, settings)
        decision = self.decision_engine.decide(analysis.signals, settings)

        return await self._finish_image(user_id, decision, analysis, image_url)

    async def _finish_image(self, user_id, decision, analysis, image_url):
        results = decision.results_dict()
        log = await self.log_writer.save(
            user_id, ContentType.IMAGE.value, image_url, results, decision.flagged,
            logo_detection=analysis.logos)
        if log.degraded:
            logger.warning(f"Image moderation log for {user_id} was not stored: {log.error}")

        return {
            'moderation_results': results,
            'logo_detection': analysis.logos,
            'flagged': decision.flagged,
            'image_url': image_url,
            'timestamp': log.value['created_at']
        }
