"""Resolve the engine dependency to a module backed by a runtime binding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from modubuild.constants import ENGINE_GLOBAL, ENGINE_MODULE_NAME, VIRTUAL_NAMESPACE


@dataclass(frozen=True)
class ResolvedRef:
    path: str
    namespace: str


@dataclass(frozen=True)
class VirtualModule:
    requested_name: str
    synthetic_contents: str


class EngineResolver:
    """Maps ``module_name`` onto whatever ``binding`` evaluates to at runtime.

    The binding is an expression supplied by the host page (``window.Modu`` by
    default). It is not checked at build time: a missing global only shows up
    as a reference error when the bundle runs.
    """

    def __init__(
        self,
        binding: str = ENGINE_GLOBAL,
        *,
        module_name: str = ENGINE_MODULE_NAME,
        namespace: str = VIRTUAL_NAMESPACE,
    ):
        if not binding.strip():
            raise ValueError("Engine binding must be a non-empty expression.")
        self.binding = binding
        self.module_name = module_name
        self.namespace = namespace

    def resolve(self, requested_name: str) -> Optional[ResolvedRef]:
        if requested_name != self.module_name:
            return None
        return ResolvedRef(path=requested_name, namespace=self.namespace)

    def load(self, ref: ResolvedRef) -> VirtualModule:
        if ref.namespace != self.namespace:
            raise ValueError(
                f"Reference '{ref.path}' is not in the '{self.namespace}' namespace."
            )
        return VirtualModule(
            requested_name=ref.path,
            synthetic_contents=f"module.exports = {self.binding};",
        )
