"""
Tests for settings validation
"""

import pytest
from pydantic import ValidationError

from dxrules.config import Settings


class TestSettings:
    """Test rule source settings"""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.rules_namespace == "core"
        assert s.rules_force_reload is False
        assert s.rules_source == "file"

    def test_base_url_trailing_slash_dropped(self):
        s = Settings(_env_file=None, rules_source="http", rules_base_url=" https://rules.example.org/dx/ ")
        assert s.rules_base_url == "https://rules.example.org/dx"

    def test_http_source_needs_base_url(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, rules_source="http", rules_base_url="")

    @pytest.mark.parametrize("namespace", ["../core", "a b", ""])
    def test_namespace_alphabet(self, namespace):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, rules_namespace=namespace)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RULES_NAMESPACE", "peds")
        monkeypatch.setenv("RULES_FORCE_RELOAD", "true")
        s = Settings(_env_file=None)
        assert s.rules_namespace == "peds"
        assert s.rules_force_reload is True
