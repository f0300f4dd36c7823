import logging

import httpx
import openai

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Manages OpenAI client configuration and connection pooling"""

    _client = None
    _client_key = None

    def __init__(self, api_key=None, timeout=5.0):
        self.api_key = api_key or None
        self.timeout = timeout
        self.client = None
        if self.api_key:
            try:
                self.client = self._get_or_create_client(self.api_key, timeout)
            except (ValueError, TypeError) as e:
                logger.error(f"Failed to configure OpenAI: {str(e)}")
                self.client = None

    @classmethod
    def _get_or_create_client(cls, api_key, timeout):
        """Create or reuse the OpenAI client; every call is bounded by the provider timeout"""
        if cls._client is None or cls._client_key != (api_key, timeout):
            http_client = httpx.Client(
                timeout=httpx.Timeout(
                    timeout,
                    connect=min(3.0, timeout),
                    pool=2.0
                ),
                limits=httpx.Limits(
                    max_keepalive_connections=50,
                    max_connections=200,
                    keepalive_expiry=300.0
                ),
                http2=True
            )

            cls._client = openai.OpenAI(
                api_key=api_key,
                http_client=http_client,
                max_retries=0
            )
            cls._client_key = (api_key, timeout)

        return cls._client

    def is_configured(self):
        """Check if OpenAI client is properly configured"""
        return self.api_key is not None and self.client is not None

    def get_client(self):
        """Get the configured OpenAI client"""
        if not self.is_configured():
            raise RuntimeError("OpenAI client not configured - API key missing")
        return self.client
