import textwrap

import pytest

from modubuild.errors import ImportReconcileError, TransformError
from modubuild.imports import find_engine_import, reconcile


def test_reconcile_with_no_needed_symbols_is_identity():
    source = "import { dSqrt from 'modu-engine';\nMath.random();\n"
    assert reconcile(source, ()) == source
    assert reconcile(source, []) == source


def test_reconcile_prepends_import_when_missing():
    assert (
        reconcile("dSqrt(dx*dx+dy*dy)", ("dSqrt",))
        == "import { dSqrt } from 'modu-engine';\ndSqrt(dx*dx+dy*dy)"
    )


def test_reconcile_merges_into_existing_import():
    source = "import { dSqrt } from 'modu-engine';\nconst r = dRandom();\n"
    assert reconcile(source, ("dRandom",)) == (
        "import { dSqrt, dRandom } from 'modu-engine';\nconst r = dRandom();\n"
    )


def test_reconcile_strips_trailing_comma_and_normalizes_quotes():
    source = textwrap.dedent(
        """\
        import { Game, World, } from "modu-engine";
        dSqrt(2);
        """
    )
    result = reconcile(source, ("dSqrt",))
    assert result.splitlines()[0] == "import { Game, World, dSqrt } from 'modu-engine';"
    assert result.count("modu-engine") == 1


def test_reconcile_merges_multiline_import_in_place():
    source = textwrap.dedent(
        """\
        // header
        import {
            Game,
            Entity,
        } from 'modu-engine';
        import { helper } from './helper';
        dRandom();
        """
    )
    result = reconcile(source, ("dRandom",))
    assert result.startswith("// header\nimport {")
    assert result.count("from 'modu-engine'") == 1
    block = find_engine_import(result)
    assert block is not None
    assert block.symbols == ("Game", "Entity", "dRandom")
    assert "import { helper } from './helper';" in result


def test_reconcile_does_not_duplicate_symbols():
    source = "import { dSqrt } from 'modu-engine';\n"
    assert reconcile(source, ("dSqrt",)) == source
    result = reconcile(source, ("dRandom", "dRandom", "dSqrt"))
    assert result == "import { dSqrt, dRandom } from 'modu-engine';\n"


def test_reconcile_handles_empty_brace_list():
    source = "import {  } from 'modu-engine';\ndSqrt(1);\n"
    assert reconcile(source, ("dSqrt",)).startswith("import { dSqrt } from 'modu-engine';")


def test_reconcile_leaves_other_modules_alone():
    source = "import { dSqrt } from 'other-engine';\ndSqrt(1);\n"
    result = reconcile(source, ("dSqrt",))
    assert result == "import { dSqrt } from 'modu-engine';\n" + source


def test_reconcile_rejects_unbalanced_braces():
    source = "const a = 1;\nimport { dSqrt from 'modu-engine';\ndRandom();\n"
    with pytest.raises(ImportReconcileError, match="unbalanced braces") as excinfo:
        reconcile(source, ("dRandom",))
    assert "Location: line 2, column 1" in str(excinfo.value)
    assert "Code: import { dSqrt from 'modu-engine';" in str(excinfo.value)
    assert isinstance(excinfo.value, TransformError)


def test_reconcile_rejects_nested_brace_in_symbol_list():
    source = "import { a, { b } from 'modu-engine';\ndSqrt(1);\n"
    with pytest.raises(ImportReconcileError):
        reconcile(source, ("dSqrt",))


def test_default_import_of_engine_is_a_known_duplication_case():
    source = "import Modu from 'modu-engine';\ndSqrt(4);\n"
    result = reconcile(source, ("dSqrt",))
    assert result == "import { dSqrt } from 'modu-engine';\n" + source


def test_find_engine_import_returns_none_without_import():
    assert find_engine_import("const x = 1;") is None


def test_type_only_import_of_engine_gets_a_separate_import():
    source = "import type { Vec2 } from 'modu-engine';\nconst r = dRandom();\n"
    result = reconcile(source, ("dRandom",))
    assert result == "import { dRandom } from 'modu-engine';\n" + source


def test_default_plus_named_import_gets_a_separate_import():
    source = "import Modu, { Game } from 'modu-engine';\ndSqrt(4);\n"
    result = reconcile(source, ("dSqrt",))
    assert result == "import { dSqrt } from 'modu-engine';\n" + source


def test_inline_type_modifier_in_brace_list_is_merged():
    source = "import { type Vec2 } from 'modu-engine';\ndSqrt(4);\n"
    result = reconcile(source, ("dSqrt",))
    assert result.splitlines()[0] == "import { type Vec2, dSqrt } from 'modu-engine';"
