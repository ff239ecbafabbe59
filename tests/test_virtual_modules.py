import pytest

from modubuild.virtual_modules import EngineResolver, ResolvedRef, VirtualModule


def test_resolve_engine_name_into_virtual_namespace():
    resolver = EngineResolver()
    first = resolver.resolve("modu-engine")
    second = resolver.resolve("modu-engine")
    assert first == ResolvedRef(path="modu-engine", namespace="cdn-global")
    assert second == first


@pytest.mark.parametrize(
    "name",
    ["modu-engine/sub", "./modu-engine", "modu-engine-extra", "lodash", "MODU-ENGINE"],
)
def test_resolve_passes_through_other_names(name):
    assert EngineResolver().resolve(name) is None


def test_load_reexports_binding():
    module = EngineResolver().load(ResolvedRef(path="anything", namespace="cdn-global"))
    assert module == VirtualModule(
        requested_name="anything",
        synthetic_contents="module.exports = window.Modu;",
    )


def test_binding_is_injected():
    resolver = EngineResolver("globalThis.__engine", module_name="my-engine")
    ref = resolver.resolve("my-engine")
    assert ref is not None
    assert resolver.resolve("modu-engine") is None
    assert resolver.load(ref).synthetic_contents == "module.exports = globalThis.__engine;"


def test_load_rejects_foreign_namespace():
    with pytest.raises(ValueError, match="namespace"):
        EngineResolver().load(ResolvedRef(path="modu-engine", namespace="file"))


def test_empty_binding_is_rejected():
    with pytest.raises(ValueError):
        EngineResolver("  ")
