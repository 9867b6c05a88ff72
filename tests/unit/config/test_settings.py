"""
Unit tests for Groovy compiler settings.
"""

from pathlib import Path

import pytest

from gbuild.config.settings import DEFAULT_MAIN_CLASS, GroovySettings, SettingsError


class TestGroovySettings:
    """Test suite for GroovySettings loading."""

    @pytest.fixture
    def tmp_ini_path(self, tmp_path):
        """Fixture to provide a temporary INI file path."""
        return tmp_path / "gbuild.ini"

    @pytest.fixture
    def full_config(self, tmp_ini_path):
        """Create a config setting every option."""
        content = """
[groovyc]
heap_size = 1024
invoke_dynamic = true
in_process = yes
optimize_threshold = 3
stub_excludes =
    src/legacy/*.groovy
    */Generated.groovy
runtime_support = rt/groovy-rt.jar
bootstrap_classpath =
    lib/util.jar
    lib/trove.jar
main_class = org.example.Runner
in_process_runner = tools.runner:run
java_home = /opt/jdk
host_runtime_version = 11
grape_root = /var/grapes
encoding = ISO-8859-1
"""
        tmp_ini_path.write_text(content)
        return tmp_ini_path

    def test_defaults(self):
        """Test defaults without a file or environment."""
        settings = GroovySettings.load(environ={})

        assert settings.heap_size == 400
        assert settings.invoke_dynamic is False
        assert settings.in_process is False
        assert settings.optimize_threshold == 10
        assert settings.stub_excludes == []
        assert settings.main_class == DEFAULT_MAIN_CLASS
        assert settings.in_process_runner is None
        assert settings.java_home is None
        assert settings.host_runtime_version == "1.8"
        assert settings.grape_root is None

    def test_full_config(self, full_config, tmp_path):
        """Test reading every option from the [groovyc] section."""
        settings = GroovySettings.load(full_config, environ={})

        assert settings.heap_size == 1024
        assert settings.invoke_dynamic is True
        assert settings.in_process is True
        assert settings.optimize_threshold == 3
        assert settings.stub_excludes == ["src/legacy/*.groovy", "*/Generated.groovy"]
        assert settings.runtime_support == tmp_path / "rt" / "groovy-rt.jar"
        assert settings.bootstrap_classpath == [tmp_path / "lib" / "util.jar", tmp_path / "lib" / "trove.jar"]
        assert settings.main_class == "org.example.Runner"
        assert settings.in_process_runner == "tools.runner:run"
        assert settings.java_home == Path("/opt/jdk")
        assert settings.host_runtime_version == "11"
        assert settings.grape_root == "/var/grapes"
        assert settings.encoding == "ISO-8859-1"

    def test_missing_section_uses_defaults(self, tmp_ini_path):
        """Test a file without [groovyc]."""
        tmp_ini_path.write_text("[other]\nkey = value\n")

        settings = GroovySettings.load(tmp_ini_path, environ={})

        assert settings.heap_size == 400

    def test_missing_file(self, tmp_path):
        """Test error on a missing config file."""
        with pytest.raises(SettingsError, match="not found"):
            GroovySettings.load(tmp_path / "nope.ini", environ={})

    def test_invalid_integer(self, tmp_ini_path):
        """Test error on a non-numeric heap size."""
        tmp_ini_path.write_text("[groovyc]\nheap_size = lots\n")

        with pytest.raises(SettingsError, match="Invalid value"):
            GroovySettings.load(tmp_ini_path, environ={})

    def test_non_positive_heap(self, tmp_ini_path):
        """Test error on a zero heap size."""
        tmp_ini_path.write_text("[groovyc]\nheap_size = 0\n")

        with pytest.raises(SettingsError, match="heap_size must be positive"):
            GroovySettings.load(tmp_ini_path, environ={})

    def test_negative_threshold(self, tmp_ini_path):
        """Test error on a negative optimization threshold."""
        tmp_ini_path.write_text("[groovyc]\noptimize_threshold = -1\n")

        with pytest.raises(SettingsError, match="must not be negative"):
            GroovySettings.load(tmp_ini_path, environ={})

    def test_environment_overrides_file(self, full_config):
        """Test that environment variables win over the file."""
        env = {
            "GROOVYC_IN_PROCESS": "false",
            "GROOVYC_OPTIMIZED_CLASS_LOADING_THRESHOLD": "0",
        }

        settings = GroovySettings.load(full_config, environ=env)

        assert settings.in_process is False
        assert settings.optimize_threshold == 0

    def test_environment_defaults(self):
        """Test JAVA_HOME and GRAPE_ROOT from the environment."""
        env = {"JAVA_HOME": "/usr/lib/jvm/java-17", "GRAPE_ROOT": "/home/me/.groovy/grapes"}

        settings = GroovySettings.load(environ=env)

        assert settings.java_home == Path("/usr/lib/jvm/java-17")
        assert settings.grape_root == "/home/me/.groovy/grapes"

    def test_invalid_threshold_environment(self):
        """Test error on a non-numeric threshold override."""
        with pytest.raises(SettingsError, match="must be an integer"):
            GroovySettings.load(environ={"GROOVYC_OPTIMIZED_CLASS_LOADING_THRESHOLD": "many"})

    def test_negative_threshold_environment(self):
        """Test error on a negative threshold override."""
        with pytest.raises(SettingsError, match="must not be negative"):
            GroovySettings.load(environ={"GROOVYC_OPTIMIZED_CLASS_LOADING_THRESHOLD": "-5"})


class TestStubExclusion:
    """Test stub generation exclusion patterns."""

    def test_matches_relative_pattern(self):
        settings = GroovySettings(stub_excludes=["src/legacy/*.groovy"])

        assert settings.is_excluded_from_stub_generation(Path("/work/src/legacy/Old.groovy"))
        assert not settings.is_excluded_from_stub_generation(Path("/work/src/main/New.groovy"))

    def test_no_patterns(self):
        assert not GroovySettings().is_excluded_from_stub_generation(Path("/work/A.groovy"))
