import textwrap
from pathlib import Path

import pytest

from modubuild.config import BuildConfig, CliOverrides, load_config, merge_config


def _write_config(root: Path, body: str) -> None:
    (root / "modubuild.toml").write_text(textwrap.dedent(body), encoding="utf-8")


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path)
    assert config.root == tmp_path.resolve()
    assert config.entry == "src/game.ts"
    assert config.outfile_path == tmp_path.resolve() / "dist" / "game.js"
    assert config.html_path == tmp_path.resolve() / "dist" / "index.html"
    assert config.source_root == tmp_path.resolve() / "src"
    assert config.global_name == "SnakeGame"
    assert config.port == 8081
    assert config.esbuild_command == ("npx", "esbuild")
    assert dict(config.define) == {"process.env.NODE_ENV": '"development"'}


def test_config_file_overrides_defaults(tmp_path):
    _write_config(
        tmp_path,
        """
        [build]
        entry = "app/main.ts"
        global_name = "Pong"
        sourcemap = false
        esbuild_command = ["esbuild"]
        excluded_dirs = ["vendor"]

        [build.define]
        "process.env.NODE_ENV" = '"production"'

        [engine]
        global = "globalThis.Modu"

        [serve]
        port = 9000
        poll_interval = 1
        """,
    )
    config = load_config(tmp_path)
    assert config.entry == "app/main.ts"
    assert config.global_name == "Pong"
    assert config.sourcemap is False
    assert config.esbuild_command == ("esbuild",)
    assert config.excluded_dirs == ("vendor",)
    assert config.define == (("process.env.NODE_ENV", '"production"'),)
    assert config.engine_global == "globalThis.Modu"
    assert config.port == 9000
    assert config.poll_interval == 1.0


def test_cli_overrides_win(tmp_path):
    _write_config(tmp_path, "[serve]\nport = 9000\n")
    config = load_config(tmp_path, overrides=CliOverrides(port=9100, log_level="silent"))
    assert config.port == 9100
    assert config.log_level == "silent"


def test_explicit_config_path_must_exist(tmp_path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_config(tmp_path, config_path=tmp_path / "nope.toml")


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"build": "x"}, "Config section 'build' must be a table"),
        ({"build": {"entry": 3}}, "build.entry"),
        ({"build": {"sourcemap": "yes"}}, "build.sourcemap"),
        ({"build": {"esbuild_command": []}}, "must not be empty"),
        ({"build": {"excluded_dirs": [1]}}, "only strings"),
        ({"serve": {"port": 70000}}, "serve.port"),
        ({"serve": {"port": True}}, "serve.port"),
        ({"serve": {"poll_interval": 0}}, "serve.poll_interval"),
    ],
)
def test_invalid_config_values_are_rejected(tmp_path, payload, message):
    with pytest.raises(ValueError, match=message):
        merge_config(BuildConfig(root=tmp_path), payload, CliOverrides())
