"""Per-declaration relationship scanning.

Produces raw :class:`~typegraph_cli.models.Relation` tuples; repeats are
left in place for the assembler to collapse.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .models import Relation, ScanResult
from .resolution import IdentifierResolver, Resolution
from .syntax import TypeDeclaration, TypeExpr

logger = logging.getLogger(__name__)


def base_relation(kind: str, index: int) -> Optional[str]:
    """Relation for the base-list entry at ``index``.

    Classes and records follow the single-inheritance convention: the
    first entry is the parent, the rest are interfaces.  Struct bases are
    all implemented, interface bases all inherited, enums have none.
    """
    if kind in ("class", "record"):
        return "inherits" if index == 0 else "implements"
    if kind == "struct":
        return "implements"
    if kind == "interface":
        return "inherits"
    return None


class RelationshipResolver:
    """Applies base-list and member-type rules through one resolver."""

    def __init__(self, resolver: IdentifierResolver, include_method_signatures: bool = False) -> None:
        self.resolver = resolver
        self.include_method_signatures = include_method_signatures

    def scan_all(self, occurrences: Iterable[Tuple[str, TypeDeclaration]]) -> ScanResult:
        result = ScanResult()
        for type_id, decl in occurrences:
            result.extend(self.scan(type_id, decl))
        logger.debug(
            "Scanned relationships (%s): %d raw relations, %d external references",
            self.resolver.mode.value, len(result.relations), len(result.externals),
        )
        return result

    def scan(self, type_id: str, decl: TypeDeclaration) -> ScanResult:
        """Relations of one declaration; nested declarations are not visited."""
        result = ScanResult()
        self._scan_bases(type_id, decl, result)
        self._scan_members(type_id, decl, result)
        return result

    def _scan_bases(self, type_id: str, decl: TypeDeclaration, result: ScanResult) -> None:
        for index, base in enumerate(decl.base_types):
            rel = base_relation(decl.kind, index)
            if rel is None:
                continue
            resolution = self.resolver.resolve_base(base, decl)
            if resolution.target:
                result.relations.append(Relation(type_id, resolution.target, rel))
            if resolution.external:
                result.externals.append(resolution.external)

    def _scan_members(self, type_id: str, decl: TypeDeclaration, result: ScanResult) -> None:
        for fld in decl.fields:
            for resolution in self.resolver.resolve_member_type(fld.type, decl):
                self._record(result, type_id, resolution, "field", fld.names)

        for prop in decl.properties:
            for resolution in self.resolver.resolve_member_type(prop.type, decl):
                self._record(result, type_id, resolution, "property", [prop.name])

        if not self.include_method_signatures:
            return

        for method in decl.methods:
            returns: Optional[TypeExpr] = method.return_type
            if returns is not None and not returns.is_void:
                for resolution in self.resolver.resolve_member_type(returns, decl, method):
                    self._record(result, type_id, resolution, "return", [method.name])
            for param in method.parameters:
                for resolution in self.resolver.resolve_member_type(param.type, decl, method):
                    self._record(result, type_id, resolution, "param", [param.name])

    @staticmethod
    def _record(
        result: ScanResult,
        type_id: str,
        resolution: Resolution,
        via: str,
        members: List[str],
    ) -> None:
        if resolution.target:
            for member in members:
                result.relations.append(Relation(type_id, resolution.target, via, member))
        if resolution.external:
            result.externals.append(resolution.external)
