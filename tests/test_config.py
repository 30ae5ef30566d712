"""Tests for bangtag.config project settings loading."""

from pathlib import Path

import pytest

from bangtag.config import (
    CONFIG_NAME,
    DEFAULT_EXCLUDE,
    DEFAULT_FAIL_ON,
    ConfigError,
    config_from_dict,
    load_config,
)
from bangtag.model import DiagnosticKind
from bangtag.profiles import CommentProfile


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path)
        assert cfg.root == tmp_path.resolve()
        assert cfg.source is None
        assert cfg.include == ["**/*"]
        assert cfg.exclude == DEFAULT_EXCLUDE
        assert cfg.jobs == 4
        assert cfg.fail_on == DEFAULT_FAIL_ON
        assert cfg.report_unrecognized is False
        assert cfg.languages == {}
        assert cfg.profiles == {}

    def test_reads_bangtag_toml(self, tmp_path: Path) -> None:
        _write(
            tmp_path / CONFIG_NAME,
            'include = ["src/**/*.py"]\n'
            "jobs = 2\n"
            'fail_on = ["UnclosedBlock", "MALFORMED_VALUE"]\n'
            "report_unrecognized = true\n"
            "\n"
            "[languages]\n"
            '".inc" = "c"\n'
            "\n"
            "[profiles.jinja]\n"
            'block = [["{#", "#}"]]\n',
        )
        cfg = load_config(tmp_path)
        assert cfg.source == (tmp_path / CONFIG_NAME).resolve()
        assert cfg.include == ["src/**/*.py"]
        assert cfg.jobs == 2
        assert cfg.fail_on == [DiagnosticKind.UNCLOSED_BLOCK, DiagnosticKind.MALFORMED_VALUE]
        assert cfg.report_unrecognized is True
        assert cfg.languages == {".inc": "c"}
        assert cfg.profiles == {"jinja": CommentProfile("jinja", (), (("{#", "#}"),))}

    def test_reads_pyproject_tool_table(self, tmp_path: Path) -> None:
        _write(
            tmp_path / "pyproject.toml",
            '[project]\nname = "demo"\n\n[tool.bangtag]\nexclude = ["vendor"]\n',
        )
        cfg = load_config(tmp_path)
        assert cfg.exclude == ["vendor"]
        assert cfg.source == (tmp_path / "pyproject.toml").resolve()

    def test_pyproject_without_table_is_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path / CONFIG_NAME, "jobs = 3\n")
        _write(tmp_path / "pkg" / "pyproject.toml", '[project]\nname = "demo"\n')
        cfg = load_config(tmp_path / "pkg")
        assert cfg.jobs == 3
        assert cfg.root == tmp_path.resolve()

    def test_walks_up_from_subdirectory(self, tmp_path: Path) -> None:
        _write(tmp_path / CONFIG_NAME, "jobs = 6\n")
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)
        cfg = load_config(sub)
        assert cfg.jobs == 6
        assert cfg.root == tmp_path.resolve()

    def test_bangtag_toml_wins_over_pyproject(self, tmp_path: Path) -> None:
        _write(tmp_path / CONFIG_NAME, "jobs = 5\n")
        _write(tmp_path / "pyproject.toml", "[tool.bangtag]\njobs = 9\n")
        assert load_config(tmp_path).jobs == 5

    def test_uses_cwd_by_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / CONFIG_NAME, "jobs = 7\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().jobs == 7

    def test_invalid_toml(self, tmp_path: Path) -> None:
        _write(tmp_path / CONFIG_NAME, "jobs = = 1\n")
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_config(tmp_path)


class TestConfigFromDict:
    @pytest.mark.parametrize(
        ("raw", "message"),
        [
            ({"jobs": 0}, "jobs"),
            ({"jobs": True}, "jobs"),
            ({"jobs": "4"}, "jobs"),
            ({"include": "src"}, "include"),
            ({"exclude": [1]}, "exclude"),
            ({"report_unrecognized": "yes"}, "report_unrecognized"),
            ({"fail_on": ["Nope"]}, "fail_on"),
            ({"languages": {".inc": 1}}, "languages"),
            ({"profiles": []}, "profiles"),
            ({"profiles": {"x": {"line": [""]}}}, "profiles.x.line"),
            ({"profiles": {"x": {"block": [["{#"]]}}}, "profiles.x.block"),
        ],
    )
    def test_rejects_bad_values(self, tmp_path: Path, raw: dict, message: str) -> None:
        with pytest.raises(ConfigError, match=message):
            config_from_dict(raw, tmp_path)

    def test_empty_fail_on_list(self, tmp_path: Path) -> None:
        assert config_from_dict({"fail_on": []}, tmp_path).fail_on == []

    def test_profile_names_are_lowercased(self, tmp_path: Path) -> None:
        cfg = config_from_dict({"profiles": {"Jinja": {"line": ["##"]}}}, tmp_path)
        assert cfg.profiles["jinja"].line_prefixes == ("##",)
