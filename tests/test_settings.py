import runpy

import pytest
from decouple import UndefinedValueError

import config.settings as base_settings


class TestSecretKey:
    def test_settings_refuse_to_load_without_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(UndefinedValueError, match="SECRET_KEY"):
            runpy.run_path(base_settings.__file__)

    def test_secret_key_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "from-the-environment")
        namespace = runpy.run_path(base_settings.__file__)
        assert namespace["SECRET_KEY"] == "from-the-environment"
        assert namespace["SIMPLE_JWT"]["SIGNING_KEY"] == "from-the-environment"
