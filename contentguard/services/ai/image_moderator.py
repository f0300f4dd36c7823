import base64
import logging
from urllib.parse import urlparse

import httpx

from contentguard.errors import ContentFetchError, ModerationProviderError, ValidationError
from contentguard.services.moderation.signals import CategorySignal, ImageAnalysis

logger = logging.getLogger(__name__)

# User category -> safeSearchAnnotation field
SAFE_SEARCH_FIELDS = {
    'adult': 'adult',
    'violence': 'violence',
    'medical': 'medical',
    'spoof': 'spoof',
}


class ImageModerationProvider:
    """Google Cloud Vision safe-search and logo detection over the REST API"""

    provider_name = 'google_vision'

    def __init__(self, api_key, api_url='https://vision.googleapis.com/v1/images:annotate',
                 timeout=5.0, max_image_bytes=5 * 1024 * 1024, http_client=None):
        self.api_key = api_key or None
        self.api_url = api_url
        self.timeout = timeout
        self.max_image_bytes = max_image_bytes
        self.http_client = http_client or httpx.Client(timeout=httpx.Timeout(timeout), follow_redirects=True)

    def is_configured(self):
        return self.api_key is not None

    def check_size(self, image_bytes):
        if not image_bytes:
            raise ValidationError('No image data provided')
        if len(image_bytes) > self.max_image_bytes:
            raise ValidationError(
                f'Image exceeds the maximum size of {self.max_image_bytes // (1024 * 1024)} MB',
                details={'max_bytes': self.max_image_bytes, 'size': len(image_bytes)}
            )

    def build_request(self, image_bytes, check_copyright):
        features = [{"type": "SAFE_SEARCH_DETECTION"}]
        if check_copyright:
            features.append({"type": "LOGO_DETECTION"})
        return {
            "requests": [{
                "image": {"content": base64.b64encode(image_bytes).decode('ascii')},
                "features": features
            }]
        }

    def analyze(self, image_bytes, settings):
        """
        Annotate one image and translate the response into signals for the
        enabled image categories, plus logos when copyright checks are on.
        """
        self.check_size(image_bytes)

        if not self.is_configured():
            raise ModerationProviderError(
                'Failed to moderate image', provider=self.provider_name,
                provider_message='Image moderation provider is not configured')

        payload = self.build_request(image_bytes, settings.check_copyright)
        try:
            response = self.http_client.post(
                self.api_url, params={'key': self.api_key}, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise ModerationProviderError(
                'Failed to moderate image', provider=self.provider_name,
                provider_message=f"Vision API returned {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise ModerationProviderError(
                'Failed to moderate image', provider=self.provider_name, provider_message=str(e))

        if isinstance(body, dict) and isinstance(body.get('responses') or [], list):
            annotation = (body.get('responses') or [{}])[0]
        else:
            annotation = None
        if not isinstance(annotation, dict):
            raise ModerationProviderError(
                'Failed to moderate image', provider=self.provider_name,
                provider_message='Vision API returned an unexpected response body')
        if annotation.get('error'):
            raise ModerationProviderError(
                'Failed to moderate image', provider=self.provider_name,
                provider_message=annotation['error'].get('message', 'Vision API error'))

        safe_search = annotation.get('safeSearchAnnotation') or {}
        signals = {
            category: CategorySignal(likelihood=safe_search.get(field, 'UNKNOWN'))
            for category, field in SAFE_SEARCH_FIELDS.items()
            if settings.is_enabled(category)
        }

        logos = None
        if settings.check_copyright:
            logos = [
                {'description': logo.get('description'), 'confidence': logo.get('score', 0.0)}
                for logo in annotation.get('logoAnnotations') or []
            ]

        return ImageAnalysis(signals=signals, logos=logos)

    def fetch_image(self, url):
        """Download an image for URL submissions; any failure is a ContentFetchError"""
        parsed = urlparse(url or '')
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ContentFetchError('Failed to fetch image from URL', url=url,
                                    provider_message='Only http(s) URLs are supported')

        try:
            with self.http_client.stream('GET', url, timeout=self.timeout) as response:
                if response.status_code >= 400:
                    raise ContentFetchError(
                        'Failed to fetch image from URL', url=url,
                        provider_message=f"Image host returned {response.status_code}")

                content = bytearray()
                for chunk in response.iter_bytes():
                    content.extend(chunk)
                    if len(content) > self.max_image_bytes:
                        raise ContentFetchError(
                            'Failed to fetch image from URL', url=url,
                            provider_message='Image exceeds the maximum allowed size')
        except httpx.HTTPError as e:
            raise ContentFetchError('Failed to fetch image from URL', url=url, provider_message=str(e))

        if not content:
            raise ContentFetchError('Failed to fetch image from URL', url=url,
                                    provider_message='Image host returned an empty body')
        logger.debug(f"Fetched {len(content)} bytes from {url}")
        return bytes(content)
