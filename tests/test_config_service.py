import json
import logging

import pytest

from pricing.config_service import PriceConfigService, build_calculator
from pricing.rates import RateConfig
from pricing.types import PricingError


def stored_config(**overrides):
    data = RateConfig.default().to_dict()
    data.update(overrides)
    return data


def add_row(db, config_data, **fields):
    row = {'id': f"cfg-{len(db.tables['pricing_config']) + 1}", 'config_name': 'stored',
           'config_data': json.dumps(config_data), 'is_active': True,
           'valid_from': '2024-01-01T00:00:00', 'valid_until': None,
           'created_at': '2024-01-01T00:00:00'}
    row.update(fields)
    db.tables['pricing_config'].append(row)
    return row


class TestLoading:
    def test_falls_back_without_rows(self, fake_db, caplog):
        with caplog.at_level(logging.WARNING):
            config = PriceConfigService.get_config()
        assert config.config_name == 'fallback'
        assert config.room_rates['large'] == 20000
        assert 'using fallback' in caplog.text

    def test_loads_active_row(self, fake_db):
        rates = dict(RateConfig.default().room_rates, large=25000)
        add_row(fake_db, stored_config(room_rates=rates, config_name='summer'))
        config = PriceConfigService.get_config()
        assert config.config_name == 'summer'
        assert config.room_rates['large'] == 25000

    def test_expired_row_ignored(self, fake_db):
        add_row(fake_db, stored_config(config_name='old'), valid_until='2000-01-01T00:00:00')
        assert PriceConfigService.get_config().config_name == 'fallback'

    def test_database_error_falls_back(self, fake_db):
        fake_db.fail_on.add(('pricing_config', 'select'))
        assert PriceConfigService.get_config().config_name == 'fallback'

    def test_invalid_stored_row_falls_back(self, fake_db, caplog):
        data = stored_config(config_name='broken')
        data['season_periods'] = [{'name': 'Spring', 'start_date': 'March', 'end_date': '05-31'}]
        add_row(fake_db, data)
        with caplog.at_level(logging.WARNING):
            config = PriceConfigService.get_config()
        assert config.config_name == 'fallback'
        assert 'Invalid season period dates: Spring' in caplog.text

    def test_unreadable_stored_row_falls_back(self, fake_db):
        add_row(fake_db, {})
        fake_db.tables['pricing_config'][0]['config_data'] = '{not json'
        assert PriceConfigService.get_config().config_name == 'fallback'

    def test_cache_until_cleared(self, fake_db):
        row = add_row(fake_db, stored_config(config_name='first'))
        assert PriceConfigService.get_config().config_name == 'first'
        row['config_data'] = json.dumps(stored_config(config_name='second'))
        assert PriceConfigService.get_config().config_name == 'first'
        PriceConfigService.clear_cache()
        assert PriceConfigService.get_config().config_name == 'second'

    def test_missing_sections_use_defaults(self, fake_db):
        add_row(fake_db, {'config_name': 'partial', 'room_rates': {'large': 1, 'medium_a': 1,
                                                                   'medium_b': 1, 'small_a': 1,
                                                                   'small_b': 1, 'small_c': 1}})
        config = PriceConfigService.get_config()
        assert config.room_rates['large'] == 1
        assert config.personal_rates['shared']['adult']['weekday'] == 4800


class TestSaving:
    def test_update_rejects_invalid_config(self, fake_db):
        data = stored_config()
        data['personal_rates']['shared']['adult']['weekday'] = -1
        with pytest.raises(PricingError) as excinfo:
            PriceConfigService.update_editable_config(data)
        assert 'Negative weekday rate for shared/adult' in str(excinfo.value)
        assert fake_db.tables['pricing_config'] == []

    def test_update_replaces_active_row(self, fake_db):
        old = add_row(fake_db, stored_config(config_name='old'))
        PriceConfigService.get_config()

        data = stored_config(config_name='new')
        data['room_rates']['small_c'] = 5500
        config = PriceConfigService.update_editable_config(data)

        assert config.version.startswith('v')
        assert config.last_updated
        assert old['is_active'] is False
        active = [row for row in fake_db.tables['pricing_config'] if row['is_active']]
        assert len(active) == 1
        assert PriceConfigService.get_config().room_rates['small_c'] == 5500

    def test_restore_previous_version(self, fake_db):
        old = add_row(fake_db, stored_config(config_name='spring'), is_active=False)
        add_row(fake_db, stored_config(config_name='current'))
        PriceConfigService.restore_config(old['id'])
        assert PriceConfigService.get_config().config_name == 'spring'

    def test_restore_rejects_invalid_version(self, fake_db):
        data = stored_config(config_name='emptied')
        data['personal_rates'] = {'shared': {}, 'private': {}}
        row = add_row(fake_db, data, is_active=False)
        with pytest.raises(PricingError) as excinfo:
            PriceConfigService.restore_config(row['id'])
        assert 'Missing personal rates for shared/adult' in str(excinfo.value)
        assert len(fake_db.tables['pricing_config']) == 1

    def test_restore_unknown_version(self, fake_db):
        with pytest.raises(PricingError):
            PriceConfigService.restore_config('missing')

    def test_history_pages(self, fake_db):
        for index in range(3):
            add_row(fake_db, stored_config(version=f'v{index}'), created_at=f'2024-01-0{index + 1}')
        history, count = PriceConfigService.list_history(limit=2)
        assert count == 3
        assert [entry['version'] for entry in history] == ['v2', 'v1']


class TestValidation:
    def test_default_config_is_valid(self):
        assert RateConfig.default().validate() == []

    def test_emptied_rate_tables(self):
        config = RateConfig.from_dict({'personal_rates': {'shared': {}, 'private': {}}})
        errors = config.validate()
        for usage in ('shared', 'private'):
            for group in ('adult', 'student', 'child', 'infant'):
                assert f'Missing personal rates for {usage}/{group}' in errors
        assert not any('baby' in error or 'adult_leader' in error for error in errors)

    def test_bad_weekend_day_and_period(self):
        config = RateConfig.from_dict({'weekend_days': [7],
                                       'season_periods': [{'name': 'x', 'start_date': '13-01', 'end_date': '01-01'}]})
        errors = config.validate()
        assert 'Invalid weekend day: 7' in errors
        assert any('Invalid season period' in error for error in errors)


def test_add_on_rows_override_catalog(fake_db):
    fake_db.tables['add_ons'] = [
        {'id': 'breakfast', 'category': 'meal', 'name': 'Breakfast', 'unit': 'meal',
         'adult_fee': 900, 'student_fee': 900, 'child_fee': 900, 'infant_fee': 900, 'is_active': True},
        {'id': 'towel', 'category': 'equipment', 'name': 'Towel', 'unit': 'item',
         'adult_fee': 200, 'is_active': False},
    ]
    calculator = build_calculator()
    assert calculator.config.addon_rates['breakfast'].adult_fee == 900
    assert 'towel' not in calculator.config.addon_rates
