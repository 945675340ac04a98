"""
Tests for package manifest, Brewfile and environment file loading.
"""

import textwrap
from pathlib import Path

import pytest

from macsetup.config import SetupConfig, load_config
from macsetup.errors import ManifestError
from macsetup.lib.brew import option_flags
from macsetup.lib.manifests import brewfile_to_mapping, load_environment, specs_from_mapping
from macsetup.models import PackageKind


class TestYamlManifest:
    def test_sections_map_to_kinds(self, tmp_path: Path):
        p = tmp_path / "config.yml"
        p.write_text(
            textwrap.dedent(
                """\
                # comments are fine
                taps: [buo/cask-upgrade]
                tools: [fd, ripgrep]
                apps:
                  - iterm2
                  - name: docker
                    options:
                      appdir: /Applications
                fonts: [font-fira-code]
                default_env_name: work
                """
            ),
            encoding="utf-8",
        )
        cfg = load_config(str(p))

        assert [s.name for s in cfg.tools] == ["fd", "ripgrep"]
        assert all(s.kind is PackageKind.FORMULA for s in cfg.tools)
        assert [s.name for s in cfg.taps] == ["buo/cask-upgrade"]
        assert [s.kind for s in cfg.fonts] == [PackageKind.FONT]
        assert cfg.default_env_name == "work"

        docker = [s for s in cfg.apps if s.name == "docker"][0]
        assert docker.options == {"no_quarantine": "true", "appdir": "/Applications"}

    def test_missing_file_is_empty_config(self, tmp_path: Path):
        cfg = load_config(str(tmp_path / "nope.yml"))
        assert cfg.packages == []
        assert cfg.default_env_name is None

    def test_duplicates_are_dropped(self):
        specs = specs_from_mapping({"tools": ["fd", "fd", {"name": "fd"}], "apps": ["fd"]})
        assert [(s.name, s.kind) for s in specs] == [("fd", PackageKind.FORMULA), ("fd", PackageKind.CASK)]

    def test_inline_options_and_booleans(self):
        specs = specs_from_mapping({"apps": [{"name": "chrome", "auto_updates": True, "greedy": False}]})
        assert specs[0].options == {"auto_updates": "true", "greedy": "false"}

    def test_entry_without_name_is_rejected(self):
        with pytest.raises(ManifestError):
            specs_from_mapping({"tools": [{"options": {}}]})

    def test_section_must_be_list(self):
        with pytest.raises(ManifestError):
            specs_from_mapping({"tools": "fd"})

    def test_cask_defaults_can_be_disabled(self):
        cfg = SetupConfig(raw={"apps": ["iterm2"], "cask_defaults": {}})
        assert cfg.apps[0].options == {}

    def test_python_tools_default(self):
        tools = SetupConfig(raw={}).python_tools
        assert [(s.name, s.kind) for s in tools] == [("miniforge", PackageKind.CASK), ("uv", PackageKind.FORMULA)]

    def test_greedy_casks(self):
        assert SetupConfig(raw={"apps": [{"name": "chrome", "auto_updates": True}]}).greedy_casks
        assert not SetupConfig(raw={"apps": ["iterm2"]}).greedy_casks

    def test_duplicates_warned_once(self, caplog):
        cfg = SetupConfig(raw={"tools": ["fd", "fd"], "apps": [{"name": "chrome", "greedy": True}]})
        assert cfg.tools and cfg.apps and cfg.greedy_casks and cfg.packages
        warnings = [r for r in caplog.records if "Duplicate" in r.getMessage()]
        assert len(warnings) == 1


class TestBrewfile:
    BREWFILE = textwrap.dedent(
        """\
        # Taps
        tap "homebrew/bundle"
        tap "acme/tools", "https://example.com/acme.git"

        brew "fd"
        brew "neovim", args: ["HEAD"]  # nightly
        cask "visual-studio-code", args: { appdir: "~/Applications" }
        cask "google-chrome", greedy: true
        cask "font-jetbrains-mono"
        mas "Xcode", id: 497799835
        """
    )

    def test_parse(self):
        raw = brewfile_to_mapping(self.BREWFILE)
        specs = specs_from_mapping(raw)
        by_name = {s.name: s for s in specs}

        assert by_name["homebrew/bundle"].kind is PackageKind.TAP
        assert by_name["acme/tools"].options == {"url": "https://example.com/acme.git"}
        assert by_name["neovim"].options == {"HEAD": "true"}
        assert by_name["visual-studio-code"].options == {"appdir": "~/Applications"}
        assert by_name["google-chrome"].options == {"greedy": "true"}
        assert by_name["font-jetbrains-mono"].kind is PackageKind.FONT
        assert "Xcode" not in by_name

    def test_load_config_detects_brewfile(self, tmp_path: Path):
        p = tmp_path / "Brewfile"
        p.write_text(self.BREWFILE, encoding="utf-8")
        cfg = load_config(str(p))
        assert [s.name for s in cfg.tools] == ["fd", "neovim"]

    def test_garbage_line(self):
        with pytest.raises(ManifestError):
            brewfile_to_mapping("this is not a directive\n")

    def test_list_options_other_than_args_are_not_flags(self):
        raw = brewfile_to_mapping('brew "mysql@5.7", conflicts_with: ["mysql"], link: false\n')
        spec = specs_from_mapping(raw)[0]
        assert spec.options == {"conflicts_with": "mysql", "link": "false"}
        assert option_flags(spec.options) == []

    def test_single_quoted_names(self):
        raw = brewfile_to_mapping(
            textwrap.dedent(
                """\
                tap 'acme/tools', 'https://example.com/acme.git'
                brew 'fd'
                brew 'neovim', args: ['HEAD']
                cask 'iterm2', args: { appdir: '~/Apps' }  # 'quoted' comment
                """
            )
        )
        by_name = {s.name: s for s in specs_from_mapping(raw)}
        assert by_name["acme/tools"].options == {"url": "https://example.com/acme.git"}
        assert by_name["fd"].kind is PackageKind.FORMULA
        assert by_name["neovim"].options == {"HEAD": "true"}
        assert by_name["iterm2"].options == {"appdir": "~/Apps"}

    def test_cask_args_apply_to_every_cask(self, tmp_path: Path):
        p = tmp_path / "Brewfile"
        p.write_text(
            'cask_args appdir: "~/Applications"\ncask "iterm2"\ncask "docker", appdir: "/Applications"\n',
            encoding="utf-8",
        )
        cfg = load_config(str(p))
        apps = {s.name: s.options for s in cfg.apps}

        assert cfg.cask_defaults == {"no_quarantine": "true", "appdir": "~/Applications"}
        assert apps["iterm2"] == {"no_quarantine": "true", "appdir": "~/Applications"}
        assert apps["docker"]["appdir"] == "/Applications"


class TestEnvironmentFile:
    def test_load(self, tmp_path: Path):
        p = tmp_path / "environment.yml"
        p.write_text(
            textwrap.dedent(
                """\
                name: datasci
                channels: [conda-forge]
                dependencies:
                  - python=3.12
                  - conda-forge::numpy>=1.26
                  - pip
                  - pip:
                      - black==24.1.0
                """
            ),
            encoding="utf-8",
        )
        spec = load_environment(str(p))
        assert spec.name == "datasci"
        assert spec.channels == ["conda-forge"]
        assert spec.dependency_names("conda") == ["python", "numpy", "pip"]
        assert spec.dependency_names("pip") == ["black"]
        assert spec.path == str(p)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ManifestError):
            load_environment(str(tmp_path / "missing.yml"))

    def test_not_a_mapping(self, tmp_path: Path):
        p = tmp_path / "environment.yml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ManifestError):
            load_environment(str(p))

    def test_pip_section_must_be_a_list(self, tmp_path: Path):
        p = tmp_path / "environment.yml"
        p.write_text("dependencies:\n  - python\n  - pip: black\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="pip dependencies must be a list"):
            load_environment(str(p))
