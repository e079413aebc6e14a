"""
Unit tests for build configuration loading.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from tsbundle.utils.config import BuildConfig, Optimize, load_config
from tsbundle.utils.exceptions import ConfigErrorKind, ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("CC", "AR", "TSBUNDLE_JOBS", "TSBUNDLE_CACHE_DIR", "TSBUNDLE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestOptimize:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Debug", Optimize.DEBUG),
            ("ReleaseFast", Optimize.RELEASE_FAST),
            ("release_small", Optimize.RELEASE_SMALL),
            ("RELEASE_SAFE", Optimize.RELEASE_SAFE),
        ],
    )
    def test_parse(self, value, expected):
        assert Optimize.parse(value) is expected

    def test_parse_invalid(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Optimize.parse("Fastest")
        assert exc_info.value.kind == ConfigErrorKind.INVALID_CONFIG
        assert exc_info.value.token == "Fastest"

    def test_cflags(self):
        assert Optimize.DEBUG.cflags == ["-O0", "-g"]
        assert Optimize.RELEASE_SMALL.cflags == ["-Os", "-DNDEBUG"]


class TestBuildConfig:
    """Test configuration sources."""

    def test_defaults(self):
        config = BuildConfig()
        assert config.config_file is None
        assert config.toolchain.cc == "cc"
        assert config.generator.executable == "tree-sitter"
        assert config.fetch.manifest == "tsbundle.deps.yaml"
        assert config.output.bundle_name == "tsbundle"
        assert config.build.optimize is Optimize.DEBUG
        assert config.options == {}
        assert config.extra_modules == []
        assert config.cache_dir() == Path("build") / "deps"

    def test_yaml_file(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            "toolchain:\n"
            "  cc: clang\n"
            "  extra_cflags: [-Wall]\n"
            "build:\n"
            "  optimize: ReleaseFast\n"
            "  target: aarch64-linux-gnu\n"
            "  jobs: 3\n"
            "output:\n"
            "  bundle_name: grammars\n"
            "options:\n"
            "  python: false\n"
            "registry:\n"
            "  extra_modules:\n"
            "    - name: nix\n"
        )
        config = load_config(str(config_file))
        assert config.toolchain.cc == "clang"
        assert config.toolchain.extra_cflags == ["-Wall"]
        assert config.build.optimize is Optimize.RELEASE_FAST
        assert config.build.target == "aarch64-linux-gnu"
        assert config.effective_jobs() == 3
        assert config.output.bundle_name == "grammars"
        assert config.options == {"python": False}
        assert config.extra_modules == [{"name": "nix"}]

    def test_json_file(self, tmp_path):
        config_file = tmp_path / "custom.json"
        config_file.write_text(json.dumps({"fetch": {"cache_dir": "/var/cache/ts"}}))
        config = BuildConfig(str(config_file))
        assert config.cache_dir() == Path("/var/cache/ts")

    def test_default_file_discovered(self, tmp_path):
        (tmp_path / "tsbundle.yaml").write_text("output:\n  prefix: out\n")
        assert BuildConfig().output.prefix == "out"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            BuildConfig(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("toolchain: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to load configuration"):
            BuildConfig(str(config_file))

    def test_non_mapping_section(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("toolchain: clang\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            BuildConfig(str(config_file))

    def test_environment_overrides(self, tmp_path, monkeypatch):
        (tmp_path / "tsbundle.yaml").write_text("toolchain:\n  cc: gcc\nbuild:\n  jobs: 2\n")
        monkeypatch.setenv("CC", "clang")
        monkeypatch.setenv("AR", "llvm-ar")
        monkeypatch.setenv("TSBUNDLE_JOBS", "7")
        monkeypatch.setenv("TSBUNDLE_CACHE_DIR", str(tmp_path / "cache"))
        monkeypatch.setenv("TSBUNDLE_LOG_LEVEL", "DEBUG")

        config = BuildConfig()

        assert config.toolchain.cc == "clang"
        assert config.toolchain.ar == "llvm-ar"
        assert config.build.jobs == 7
        assert config.cache_dir() == tmp_path / "cache"
        assert config.logging.level == "DEBUG"

    def test_invalid_jobs(self, monkeypatch):
        monkeypatch.setenv("TSBUNDLE_JOBS", "many")
        with pytest.raises(ConfigurationError, match="Invalid value for 'build.jobs'"):
            BuildConfig()

    @pytest.mark.parametrize("section", ["toolchain", "generator", "fetch"])
    def test_invalid_timeout(self, tmp_path, section):
        """Non-numeric timeouts are rejected while loading, not when a tool runs."""
        config_file = tmp_path / "cfg.yaml"
        config_file.write_text(f"{section}:\n  timeout_seconds: soon\n")

        with pytest.raises(ConfigurationError) as exc_info:
            BuildConfig(str(config_file))

        assert exc_info.value.kind == ConfigErrorKind.INVALID_CONFIG
        assert exc_info.value.token == f"{section}.timeout_seconds"
        assert "'soon'" in str(exc_info.value)

    def test_numeric_string_timeout(self, tmp_path):
        config_file = tmp_path / "cfg.yaml"
        config_file.write_text("toolchain:\n  timeout_seconds: '45'\n")
        assert BuildConfig(str(config_file)).toolchain.timeout_seconds == 45

    @pytest.mark.parametrize("name", ["my-bundle", "2fast", "with space", ""])
    def test_invalid_bundle_name(self, tmp_path, name):
        """Bundle names must be usable as C macro prefixes."""
        config_file = tmp_path / "cfg.json"
        config_file.write_text(json.dumps({"output": {"bundle_name": name}}))

        with pytest.raises(ConfigurationError) as exc_info:
            BuildConfig(str(config_file))

        assert exc_info.value.kind == ConfigErrorKind.INVALID_CONFIG
        assert exc_info.value.token == name

    def test_valid_bundle_name(self, tmp_path):
        config_file = tmp_path / "cfg.json"
        config_file.write_text(json.dumps({"output": {"bundle_name": "my_bundle2"}}))
        assert BuildConfig(str(config_file)).output.bundle_name == "my_bundle2"

    @patch("tsbundle.utils.config.psutil.cpu_count", return_value=12)
    def test_jobs_default_to_cpu_count(self, _cpu_count):
        assert BuildConfig().effective_jobs() == 12
