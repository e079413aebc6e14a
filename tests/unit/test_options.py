"""
Unit tests for declarative build options.
"""

import pytest

from tsbundle.selection.options import (
    merge_option_sources,
    parse_bool,
    parse_define_tokens,
    read_declarative_options,
)
from tsbundle.utils.exceptions import ConfigErrorKind, ConfigurationError


class TestParseBool:
    """Test option value interpretation."""

    @pytest.mark.parametrize("value", [True, "true", "TRUE", "1", "yes", "on"])
    def test_true_values(self, value):
        assert parse_bool("c", value) is True

    @pytest.mark.parametrize("value", [False, "false", "0", "No", "off"])
    def test_false_values(self, value):
        assert parse_bool("c", value) is False

    def test_none_is_unspecified(self):
        assert parse_bool("c", None) is None

    @pytest.mark.parametrize("value", ["maybe", 3, [], ""])
    def test_invalid_values(self, value):
        """Non-boolean values are configuration errors naming the option."""
        with pytest.raises(ConfigurationError) as exc_info:
            parse_bool("c", value)
        assert exc_info.value.kind is ConfigErrorKind.INVALID_OPTION_VALUE
        assert exc_info.value.token == "c"


class TestReadDeclarativeOptions:
    """Test reading one option per registered module."""

    def test_empty_options(self, registry):
        """Every module is present and unspecified."""
        options = read_declarative_options(registry, {})
        assert set(options.modules) == set(registry.names())
        assert all(value is None for value in options.modules.values())
        assert options.all is None

    def test_explicit_values(self, registry):
        """Explicit values are kept per module."""
        options = read_declarative_options(registry, {"python": False, "zig": "true", "all": "yes"})
        assert options.get("python") is False
        assert options.get("zig") is True
        assert options.get("c") is None
        assert options.all is True

    def test_unknown_option(self, registry):
        """Option names outside the registry are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            read_declarative_options(registry, {"cobol": True})
        assert exc_info.value.kind is ConfigErrorKind.UNKNOWN_OPTION
        assert exc_info.value.token == "cobol"

    def test_options_are_read_only(self, registry):
        """The per-module mapping cannot be mutated."""
        options = read_declarative_options(registry, {})
        with pytest.raises(TypeError):
            options.modules["c"] = True


class TestDefineTokens:
    """Test -D token parsing and merging."""

    def test_parse_define_tokens(self):
        """NAME=VALUE, bare NAME and -D prefixes are accepted."""
        values = parse_define_tokens(["python=false", "rust", "-Dall=true"])
        assert values == {"python": "false", "rust": True, "all": "true"}

    def test_malformed_define(self):
        """A define without a name is rejected."""
        with pytest.raises(ConfigurationError):
            parse_define_tokens(["=true"])

    def test_merge_later_sources_win(self):
        """Command-line defines override config-file options."""
        merged = merge_option_sources({"python": True, "c": False}, {"python": "false"})
        assert merged == {"python": "false", "c": False}

    def test_merge_skips_none(self):
        """None never overrides an earlier value."""
        assert merge_option_sources({"c": True}, {"c": None}) == {"c": True}
