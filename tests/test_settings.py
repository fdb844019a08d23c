"""
Tests for settings loading
"""
import os
import yaml
import pytest

import settings
from constants import DEFAULT_SETTINGS


@pytest.fixture(autouse=True)
def reset_settings_cache():
    settings._cached_settings = None
    yield
    settings._cached_settings = None


class TestLoadSettings:

    def test_defaults_written_when_missing(self, tmp_path):
        config_file = str(tmp_path / 'config' / 'settings.yaml')

        loaded = settings.load_settings(config_file=config_file)

        assert loaded == DEFAULT_SETTINGS
        assert os.path.exists(config_file)

    def test_file_merged_over_defaults(self, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        config_file.write_text(yaml.dump({'addons': {'image_dedup_limit': 10}, 'site': {'root': '/stk/'}}))

        loaded = settings.load_settings(config_file=str(config_file))

        assert loaded['addons']['image_dedup_limit'] == 10
        assert loaded['site']['root'] == '/stk/'
        assert loaded['site']['download_location'] == DEFAULT_SETTINGS['site']['download_location']

    def test_cached_until_reload(self, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        config_file.write_text(yaml.dump({'addons': {'image_dedup_limit': 10}}))
        settings.load_settings(config_file=str(config_file))

        config_file.write_text(yaml.dump({'addons': {'image_dedup_limit': 20}}))
        assert settings.load_settings(config_file=str(config_file))['addons']['image_dedup_limit'] == 10
        assert settings.reload_conf(config_file=str(config_file))['addons']['image_dedup_limit'] == 20


class TestSetSettingsSection:

    def test_valid_section_saved(self, tmp_path):
        config_file = str(tmp_path / 'settings.yaml')

        success, errors = settings.set_settings_section('addons', {'image_dedup_limit': 5}, config_file=config_file)

        assert success and errors == []
        with open(config_file) as f:
            assert yaml.safe_load(f)['addons']['image_dedup_limit'] == 5

    @pytest.mark.parametrize('section,data', [
        ('addons', {'image_dedup_limit': 0}),
        ('storage', {'upload_dir': '/does/not/exist'}),
    ])
    def test_invalid_section_rejected(self, tmp_path, section, data):
        success, errors = settings.set_settings_section(section, data, config_file=str(tmp_path / 'settings.yaml'))

        assert not success
        assert len(errors) == 1

    def test_other_file_settings_not_copied(self, tmp_path):
        first_file = tmp_path / 'first.yaml'
        first_file.write_text(yaml.dump({'site': {'root': '/first/'}}))
        settings.load_settings(config_file=str(first_file))
        second_file = str(tmp_path / 'second.yaml')

        settings.set_settings_section('addons', {'image_dedup_limit': 5}, config_file=second_file)

        with open(second_file) as f:
            saved = yaml.safe_load(f)
        assert saved['addons']['image_dedup_limit'] == 5
        assert saved['site']['root'] == DEFAULT_SETTINGS['site']['root']
