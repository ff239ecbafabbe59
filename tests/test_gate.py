from pathlib import Path

from modubuild.gate import is_eligible


def test_game_sources_are_eligible():
    assert is_eligible("/work/snake/src/game.ts")
    assert is_eligible("src/systems/physics.js")


def test_vendored_dependencies_are_excluded():
    assert not is_eligible("/work/snake/node_modules/lodash/index.js")
    assert not is_eligible("/work/snake/node_modules/.pnpm/a/b.js")


def test_engine_directories_are_excluded_by_containment():
    assert not is_eligible("/work/snake/src/engine/rng.ts")
    assert not is_eligible("/work/modu-engine/src/math.ts", "/work/snake")
    assert not is_eligible("/work/snake/src/game-engine-core/loop.ts")


def test_only_directories_are_inspected():
    assert is_eligible("/work/snake/src/engine.ts")


def test_directories_above_root_are_ignored():
    root = Path("/home/dev/engine-projects/snake")
    assert is_eligible(root / "src" / "game.ts", root)
    assert not is_eligible(root / "src" / "game.ts")


def test_custom_markers():
    assert not is_eligible("src/vendor/x.js", excluded=("vendor",))
    assert is_eligible("src/engine/x.js", excluded=("vendor",))
