"""Tests for viewengine.config module."""

import os
from pathlib import Path

import pytest

from viewengine.config import (
    CONFIG_FILENAME,
    ENV_TEMPLATE_DIRS,
    ViewEngineConfig,
    config_to_dict,
    create_default_config,
    find_config_file,
    load_config,
)
from viewengine.tokens import ViewEngineError


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Keep the caller's environment out of config loading."""
    monkeypatch.delenv(ENV_TEMPLATE_DIRS, raising=False)


class TestFindConfigFile:
    """Tests for find_config_file function."""

    def test_finds_config_in_current_dir(self, tmp_path):
        """Test finding config in current directory."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("namespaces: []")

        assert find_config_file(tmp_path) == config_path

    def test_finds_config_in_parent_dir(self, tmp_path):
        """Test finding config by traversing up."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("namespaces: []")

        subdir = tmp_path / "sub" / "deep"
        subdir.mkdir(parents=True)

        assert find_config_file(subdir) == config_path

    def test_returns_none_when_not_found(self, tmp_path):
        assert find_config_file(tmp_path) is None

    def test_starts_from_file_path(self, tmp_path):
        """Test starting from a file path uses parent directory."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("namespaces: []")

        file_path = tmp_path / "index.html"
        file_path.write_text("<html></html>")

        assert find_config_file(file_path) == config_path


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_from_file(self, tmp_path):
        """Test loading config from file."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("""
template_dirs:
  - "templates"
  - "/srv/shared/templates"
extensions: [".html", ".jinja"]
namespaces:
  - "Foo"
  - "Bar"
exclude:
  - "*/legacy/*"
profiles:
  "*/admin/*": "admin"
facilities:
  template: true
  memory: false
facilities_dir: "plugins"
""")

        config = load_config(config_path=config_path)

        assert config.template_dirs == [
            tmp_path / "templates",
            Path("/srv/shared/templates"),
        ]
        assert config.extensions == [".html", ".jinja"]
        assert config.namespaces == ["Foo", "Bar"]
        assert config.exclude == ["*/legacy/*"]
        assert config.profiles == {"*/admin/*": "admin"}
        assert config.facilities == {"template": True, "memory": False}
        assert config.facilities_dir == tmp_path / "plugins"
        assert config.config_path == config_path

    def test_single_string_becomes_list(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('template_dirs: "views"')

        config = load_config(config_path=config_path)
        assert config.template_dirs == [tmp_path / "views"]

    def test_empty_facilities_section_kept(self, tmp_path):
        """An explicit empty section is distinct from an absent one."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("facilities: {}")

        assert load_config(config_path=config_path).facilities == {}

    def test_env_override(self, tmp_path, monkeypatch):
        """Test environment variables override config file."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('template_dirs: ["from-file"]')

        monkeypatch.setenv(ENV_TEMPLATE_DIRS, os.pathsep.join(["env-a", "env-b"]))

        config = load_config(config_path=config_path)
        assert config.template_dirs == [Path("env-a"), Path("env-b")]

    def test_arg_overrides_env(self, tmp_path, monkeypatch):
        """Test function argument overrides environment."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('template_dirs: ["from-file"]')

        monkeypatch.setenv(ENV_TEMPLATE_DIRS, "from-env")

        config = load_config(
            config_path=config_path, template_dirs_override=[Path("from-arg")]
        )
        assert config.template_dirs == [Path("from-arg")]

    def test_searches_from_start_path(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('namespaces: ["Found"]')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        config = load_config(start_path=nested)
        assert config.namespaces == ["Found"]
        assert config.config_path == config_path

    def test_missing_explicit_config_fails(self, tmp_path):
        with pytest.raises(ViewEngineError, match="not found"):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_invalid_yaml_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("invalid: yaml: syntax:")

        with pytest.raises(ViewEngineError, match="Invalid YAML"):
            load_config(config_path=config_path)

    def test_non_mapping_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("- just\n- a list\n")

        with pytest.raises(ViewEngineError, match="must contain a mapping"):
            load_config(config_path=config_path)

    def test_non_list_value_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("exclude:\n  pattern: 1\n")

        with pytest.raises(ViewEngineError, match="'exclude' must be a list"):
            load_config(config_path=config_path)

    @pytest.mark.parametrize("key", ["profiles", "facilities"])
    def test_non_mapping_value_fails(self, tmp_path, key):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text(f"{key}:\n  - template\n")

        with pytest.raises(ViewEngineError, match=f"'{key}' must be a mapping"):
            load_config(config_path=config_path)

    def test_null_profile_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('profiles:\n  "*/admin/*":\n')

        with pytest.raises(ViewEngineError, match="Invalid profile rule"):
            load_config(config_path=config_path)

    def test_invalid_extension_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('extensions: ["html"]')

        with pytest.raises(ViewEngineError, match="Invalid template extension"):
            load_config(config_path=config_path)

    def test_empty_exclude_pattern_fails(self, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text('exclude: [""]')

        with pytest.raises(ViewEngineError, match="non-empty"):
            load_config(config_path=config_path)

    def test_defaults_without_file(self):
        """Test loading defaults when no config file exists."""
        config = load_config(start_path="/nonexistent/path")

        assert config.template_dirs == []
        assert config.extensions == [".html", ".htm"]
        assert config.namespaces == []
        assert config.exclude == []
        assert config.profiles == {}
        assert config.facilities is None
        assert config.facilities_dir is None
        assert config.config_path is None


class TestValidate:
    """Tests for ViewEngineConfig.validate."""

    def test_default_config_is_valid(self):
        ViewEngineConfig().validate()

    def test_empty_profile_fails(self):
        config = ViewEngineConfig(profiles={"*/admin/*": ""})
        with pytest.raises(ViewEngineError, match="Invalid profile rule"):
            config.validate()

    def test_empty_namespace_fails(self):
        config = ViewEngineConfig(namespaces=["ok", ""])
        with pytest.raises(ViewEngineError, match="Namespaces"):
            config.validate()


class TestCreateDefaultConfig:
    """Tests for create_default_config function."""

    def test_creates_config_file(self, tmp_path):
        config_path = create_default_config(tmp_path)

        assert config_path.exists()
        assert config_path.name == CONFIG_FILENAME

        content = config_path.read_text()
        assert "template_dirs:" in content
        assert "extensions:" in content
        assert "# exclude:" in content

    def test_generated_config_loads(self, tmp_path):
        create_default_config(tmp_path)

        config = load_config(config_path=tmp_path / CONFIG_FILENAME)
        assert config.template_dirs == [tmp_path / "templates"]
        assert config.extensions == [".html", ".htm"]

    def test_fails_if_exists(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("existing")

        with pytest.raises(ViewEngineError, match="already exists"):
            create_default_config(tmp_path)


class TestConfigToDict:
    """Tests for config_to_dict function."""

    def test_defaults(self):
        data = config_to_dict(ViewEngineConfig())
        assert data == {
            "template_dirs": [],
            "extensions": [".html", ".htm"],
            "namespaces": [],
            "exclude": [],
            "profiles": {},
            "facilities": None,
            "facilities_dir": None,
            "config_path": None,
        }

    def test_paths_are_strings(self, tmp_path):
        config = ViewEngineConfig(
            template_dirs=[tmp_path / "t"],
            facilities_dir=tmp_path / "f",
            config_path=tmp_path / CONFIG_FILENAME,
        )
        data = config_to_dict(config)
        assert data["template_dirs"] == [str(tmp_path / "t")]
        assert data["facilities_dir"] == str(tmp_path / "f")
        assert data["config_path"] == str(tmp_path / CONFIG_FILENAME)
