from datetime import datetime, timedelta

import pytest

from contentguard import db
from contentguard.errors import StorageError
from contentguard.models import ModerationLog
from contentguard.schemas import HistoryQuery

RESULTS = {'toxicity': {'flagged': True, 'score': 0.9, 'explanation': 'Rude.'}}


@pytest.mark.asyncio
async def test_save_persists_log(app, services):
    with app.app_context():
        result = await services.log_writer.save('user-1', 'text', 'you are awful', RESULTS, True)
        assert db.session.get(ModerationLog, result.value['id']) is not None

    assert result.persisted is True
    assert result.value['flagged'] is True
    assert result.value['moderation_results'] == RESULTS
    assert result.value['created_at']


@pytest.mark.asyncio
async def test_save_without_table_synthesizes_record(bare_app):
    writer = bare_app.extensions['contentguard'].log_writer
    with bare_app.app_context():
        result = await writer.save('user-1', 'image', None, {}, False, logo_detection=[])

    assert result.persisted is False
    assert result.value['id'].startswith('temp-')
    assert result.value['content_type'] == 'image'
    assert result.value['logo_detection'] == []
    assert result.value['created_at']


def _seed(app, user_id, count, content_type='text', flagged_every=2):
    start = datetime.utcnow() - timedelta(days=count)
    with app.app_context():
        for i in range(count):
            db.session.add(ModerationLog(
                user_id=user_id,
                content_type=content_type,
                content=f'item {i}',
                moderation_results={},
                flagged=(i % flagged_every == 0),
                created_at=start + timedelta(days=i)
            ))
        db.session.commit()
    return start


@pytest.mark.asyncio
async def test_history_pagination_newest_first(app, services):
    _seed(app, 'user-1', 25)
    _seed(app, 'user-2', 3)
    _seed(app, 'user-1', 4, content_type='image')

    with app.app_context():
        page = await services.log_writer.history('user-1', 'text', HistoryQuery(page=3, pageSize=10))

    body = page.value
    assert body['pagination'] == {'total': 25, 'page': 3, 'pageSize': 10, 'totalPages': 3}
    assert [log['content'] for log in body['logs']] == [f'item {i}' for i in range(4, -1, -1)]


@pytest.mark.asyncio
async def test_history_filters(app, services):
    start = _seed(app, 'user-1', 10)

    with app.app_context():
        flagged = await services.log_writer.history('user-1', 'text', HistoryQuery(flagged=True))
        ranged = await services.log_writer.history('user-1', 'text', HistoryQuery(
            from_date=start + timedelta(days=2), to_date=start + timedelta(days=4)))

    assert flagged.value['pagination']['total'] == 5
    assert all(log['flagged'] for log in flagged.value['logs'])
    assert [log['content'] for log in ranged.value['logs']] == ['item 4', 'item 3', 'item 2']


@pytest.mark.asyncio
async def test_history_without_table_is_empty(bare_app):
    writer = bare_app.extensions['contentguard'].log_writer
    with bare_app.app_context():
        page = await writer.history('user-1', 'text', HistoryQuery())

    assert page.persisted is False
    assert page.value == {'logs': [], 'pagination': {'total': 0, 'page': 1, 'pageSize': 10, 'totalPages': 0}}


@pytest.mark.asyncio
async def test_save_storage_failure_keeps_observable_fields(app, services, monkeypatch):
    async def failing_run(operation_func, *args, **kwargs):
        raise StorageError('disk I/O error')

    monkeypatch.setattr(services.database, 'run', failing_run)
    with app.app_context():
        result = await services.log_writer.save('user-1', 'text', 'hello', RESULTS, True)

    assert result.persisted is False
    assert result.error == 'disk I/O error'
    assert result.value['id'].startswith('temp-')
    assert result.value['content_type'] == 'text'
    assert result.value['flagged'] is True
    assert result.value['moderation_results'] == RESULTS
    # A transient failure leaves the table in service
    assert services.database.is_available('moderation_logs') is True


@pytest.mark.asyncio
async def test_missing_table_at_runtime_stops_further_queries(app, services):
    with app.app_context():
        ModerationLog.__table__.drop(db.engine)
        saved = await services.log_writer.save('user-1', 'text', 'hello', RESULTS, True)
        page = await services.log_writer.history('user-1', 'text', HistoryQuery())

    assert saved.persisted is False
    assert 'no such table' in saved.error
    assert services.database.is_available('moderation_logs') is False
    assert page.value['logs'] == []
    assert page.error == 'moderation_logs table is not available'
