import pytest

from config.default_settings import DEFAULT_USER_SETTINGS
from contentguard import db
from contentguard.models import UserSettings
from contentguard.schemas import ModerationSettings, SettingsOverride
from contentguard.services.settings_store import apply_override, merge_settings


@pytest.mark.asyncio
async def test_defaults_when_no_row(app, services):
    with app.app_context():
        result = await services.settings_store.get('new-user')

    settings = result.value
    assert result.persisted is False
    assert result.degraded is False
    assert settings.user_id == 'new-user'
    for field, value in DEFAULT_USER_SETTINGS.items():
        assert settings.to_dict()[field] == value


@pytest.mark.asyncio
async def test_update_is_partial_upsert(app, services):
    with app.app_context():
        updated = await services.settings_store.update('user-1', {'toxicity_threshold': 0.2})
        again = await services.settings_store.update('user-1', {'theme': 'dark'})
        stored = await services.settings_store.get('user-1')

    assert updated.persisted is True
    assert again.value.toxicity_threshold == 0.2
    assert stored.persisted is True
    assert stored.value.toxicity_threshold == 0.2
    assert stored.value.theme.value == 'dark'
    assert stored.value.bias_threshold == DEFAULT_USER_SETTINGS['bias_threshold']
    assert stored.value.enabled_categories == DEFAULT_USER_SETTINGS['enabled_categories']


@pytest.mark.asyncio
async def test_users_are_isolated(app, services):
    with app.app_context():
        await services.settings_store.update('user-a', {'enabled_categories': ['adult']})
        other = await services.settings_store.get('user-b')

    assert other.value.enabled_categories == DEFAULT_USER_SETTINGS['enabled_categories']


@pytest.mark.asyncio
async def test_missing_table_returns_merged_unpersisted(bare_app):
    store = bare_app.extensions['contentguard'].settings_store
    with bare_app.app_context():
        fetched = await store.get('user-1')
        result = await store.update('user-1', {'adult_threshold': 'VERY_LIKELY'})

    assert fetched.value.adult_threshold.value == DEFAULT_USER_SETTINGS['adult_threshold']
    assert result.persisted is False
    assert result.degraded is True
    assert result.value.adult_threshold.value == 'VERY_LIKELY'
    assert result.value.toxicity_threshold == DEFAULT_USER_SETTINGS['toxicity_threshold']


def test_merge_ignores_none_values():
    base = ModerationSettings(toxicity_threshold=0.4)
    merged = merge_settings(base, {'toxicity_threshold': None, 'bias_threshold': 0.0})
    assert merged.toxicity_threshold == 0.4
    # zero is a real value, not "absent"
    assert merged.bias_threshold == 0.0


def test_override_wins_and_maps_categories():
    base = ModerationSettings(toxicity_threshold=0.7, enabled_categories=['toxicity', 'bias'])
    override = SettingsOverride(toxicity_threshold=0.1, categories=['toxicity'])

    effective = apply_override(base, override)

    assert effective.toxicity_threshold == 0.1
    assert effective.enabled_categories == ['toxicity']
    assert base.toxicity_threshold == 0.7


def test_no_override_keeps_settings():
    base = ModerationSettings()
    assert apply_override(base, None) is base


def test_unknown_category_rejected():
    with pytest.raises(ValueError):
        SettingsOverride(categories=['toxicity', 'sarcasm'])


def _store_row(app, user_id, **overrides):
    with app.app_context():
        db.session.add(UserSettings(user_id=user_id, **dict(DEFAULT_USER_SETTINGS, **overrides)))
        db.session.commit()


@pytest.mark.asyncio
async def test_retired_category_in_stored_row_is_dropped(app, services):
    _store_row(app, 'user-1', enabled_categories=['toxicity', 'sarcasm'])

    with app.app_context():
        fetched = await services.settings_store.get('user-1')
        updated = await services.settings_store.update('user-1', {'bias_threshold': 0.3})

    assert fetched.persisted is True
    assert fetched.value.enabled_categories == ['toxicity']
    assert updated.persisted is True
    assert updated.value.enabled_categories == ['toxicity']
    assert updated.value.bias_threshold == 0.3


@pytest.mark.asyncio
async def test_unreadable_stored_row_falls_back_to_defaults(app, services):
    _store_row(app, 'user-1', adult_threshold='SOMETIMES')

    with app.app_context():
        fetched = await services.settings_store.get('user-1')

    assert fetched.persisted is False
    assert fetched.degraded is True
    assert fetched.value.adult_threshold.value == DEFAULT_USER_SETTINGS['adult_threshold']


@pytest.mark.asyncio
async def test_concurrent_first_write_updates_the_existing_row(app, services, monkeypatch):
    store = services.settings_store
    new_row = store._new_row

    def racing_new_row(user_id):
        # Another request creates the row after our read but before our insert
        with db.engine.begin() as conn:
            conn.execute(UserSettings.__table__.insert().values(
                user_id=user_id, **dict(DEFAULT_USER_SETTINGS, theme='dark')))
        return new_row(user_id)

    monkeypatch.setattr(store, '_new_row', racing_new_row)
    with app.app_context():
        result = await store.update('user-1', {'toxicity_threshold': 0.2})
        rows = UserSettings.query.filter_by(user_id='user-1').all()

    assert result.persisted is True
    assert result.value.toxicity_threshold == 0.2
    assert result.value.theme.value == 'dark'
    assert len(rows) == 1
    assert rows[0].toxicity_threshold == 0.2


@pytest.mark.asyncio
async def test_table_dropped_after_startup_is_marked_unavailable(app, services):
    with app.app_context():
        UserSettings.__table__.drop(db.engine)
        first = await services.settings_store.get('user-1')
        second = await services.settings_store.get('user-1')

    assert first.degraded is True
    assert services.database.is_available('user_settings') is False
    assert second.persisted is False
    assert second.degraded is False
