import json

import httpx
import pytest

from contentguard.errors import ContentFetchError, ModerationProviderError, ValidationError
from contentguard.schemas import ModerationSettings
from contentguard.services.ai.image_moderator import ImageModerationProvider

VISION_URL = 'https://vision.example.com/v1/images:annotate'


def make_provider(handler, max_image_bytes=1024):
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return ImageModerationProvider('vision-key', api_url=VISION_URL, timeout=1.0,
                                   max_image_bytes=max_image_bytes, http_client=http_client)


def vision_reply(safe_search=None, logos=None):
    response = {'safeSearchAnnotation': safe_search or {
        'adult': 'VERY_UNLIKELY', 'spoof': 'UNLIKELY', 'medical': 'POSSIBLE',
        'violence': 'LIKELY', 'racy': 'UNLIKELY'
    }}
    if logos is not None:
        response['logoAnnotations'] = logos
    return httpx.Response(200, json={'responses': [response]})


def test_safe_search_and_logo_request():
    captured = {}

    def handler(request):
        captured['params'] = dict(request.url.params)
        captured['body'] = json.loads(request.content)
        return vision_reply(logos=[{'description': 'Acme', 'score': 0.91}])

    analysis = make_provider(handler).analyze(b'png-bytes', ModerationSettings(check_copyright=True))

    features = captured['body']['requests'][0]['features']
    assert {'type': 'SAFE_SEARCH_DETECTION'} in features
    assert {'type': 'LOGO_DETECTION'} in features
    assert captured['params'] == {'key': 'vision-key'}

    assert set(analysis.signals) == {'adult', 'violence'}
    assert analysis.signals['violence'].likelihood == 'LIKELY'
    assert analysis.logos == [{'description': 'Acme', 'confidence': 0.91}]


def test_logo_detection_skipped_without_copyright_check():
    captured = {}

    def handler(request):
        captured['body'] = json.loads(request.content)
        return vision_reply()

    analysis = make_provider(handler).analyze(b'png-bytes', ModerationSettings(check_copyright=False))

    assert captured['body']['requests'][0]['features'] == [{'type': 'SAFE_SEARCH_DETECTION'}]
    assert analysis.logos is None


def test_missing_field_is_unknown():
    provider = make_provider(lambda request: vision_reply(safe_search={'adult': 'LIKELY'}))
    analysis = provider.analyze(b'x', ModerationSettings(enabled_categories=['adult', 'medical']))
    assert analysis.signals['medical'].likelihood == 'UNKNOWN'


def test_oversized_image_is_rejected_before_calling_provider():
    def handler(request):
        raise AssertionError('provider should not be called')

    with pytest.raises(ValidationError):
        make_provider(handler, max_image_bytes=10).analyze(b'x' * 11, ModerationSettings())


@pytest.mark.parametrize('response', [
    httpx.Response(403, json={'error': {'message': 'API key invalid'}}),
    httpx.Response(200, json={'responses': [{'error': {'code': 3, 'message': 'Bad image data'}}]}),
])
def test_provider_failures_raise(response):
    with pytest.raises(ModerationProviderError) as exc_info:
        make_provider(lambda request: response).analyze(b'x', ModerationSettings())
    assert exc_info.value.provider == 'google_vision'


def test_transport_timeout_raises_provider_error():
    def handler(request):
        raise httpx.ReadTimeout('timed out', request=request)

    with pytest.raises(ModerationProviderError):
        make_provider(handler).analyze(b'x', ModerationSettings())


def test_fetch_image_returns_body():
    provider = make_provider(lambda request: httpx.Response(200, content=b'remote-image'))
    assert provider.fetch_image('https://images.example.com/cat.png') == b'remote-image'


@pytest.mark.parametrize('url', ['ftp://images.example.com/cat.png', 'not a url'])
def test_fetch_image_rejects_non_http_urls(url):
    with pytest.raises(ContentFetchError):
        make_provider(lambda request: httpx.Response(200)).fetch_image(url)


def test_fetch_image_non_2xx():
    provider = make_provider(lambda request: httpx.Response(404))
    with pytest.raises(ContentFetchError) as exc_info:
        provider.fetch_image('https://images.example.com/missing.png')
    assert '404' in exc_info.value.provider_message


def test_fetch_image_oversize():
    provider = make_provider(lambda request: httpx.Response(200, content=b'x' * 2048), max_image_bytes=1024)
    with pytest.raises(ContentFetchError):
        provider.fetch_image('https://images.example.com/huge.png')


def test_unconfigured_provider_raises():
    provider = ImageModerationProvider(None, http_client=httpx.Client(
        transport=httpx.MockTransport(lambda request: vision_reply())))
    with pytest.raises(ModerationProviderError):
        provider.analyze(b'x', ModerationSettings())


@pytest.mark.parametrize('body', [[1, 2], 'annotated', {'responses': 'none'}, {'responses': [3]}])
def test_unexpected_response_body_raises_provider_error(body):
    provider = make_provider(lambda request: httpx.Response(200, json=body))

    with pytest.raises(ModerationProviderError) as exc_info:
        provider.analyze(b'x', ModerationSettings())
    assert exc_info.value.provider_message == 'Vision API returned an unexpected response body'
