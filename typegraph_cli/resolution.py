"""Identifier resolution: is a written type reference internal or external?

Two strategies share one interface and are selected once per run:

* :class:`SyntacticResolver` - name heuristics over the declared ids only.
  Exact id match first, then a unique simple-name match; anything else
  keeps the bare simple name.  Base-list entries always produce a target.
* :class:`SemanticResolver` - asks the :class:`~typegraph_cli.compilation.Compilation`
  what the reference binds to.  Only symbols declared in the analyzed
  sources become targets; everything else is reported as external.

Both apply the same shape unwrapping first: arrays, pointers and
nullable wrappers are peeled off, a generic container is replaced by its
type arguments, and predefined or tuple types produce nothing.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .compilation import (
    ArrayTypeSymbol,
    Compilation,
    ConstructedTypeSymbol,
    NamedTypeSymbol,
    PointerTypeSymbol,
    TupleTypeSymbol,
    TypeParameterSymbol,
    TypeSymbol,
    canonical_id,
)
from .syntax import (
    ALIAS_QUALIFIED,
    GENERIC,
    NAME,
    QUALIFIED,
    WRAPPER_KINDS,
    MethodDecl,
    TypeDeclaration,
    TypeExpr,
)

logger = logging.getLogger(__name__)


class ResolutionMode(str, Enum):
    SYNTACTIC = "syntactic"
    SEMANTIC = "semantic"


@dataclass(frozen=True)
class Resolution:
    """Outcome for one candidate reference.

    ``target`` is the id an edge should point at; ``external`` is the name
    to tally as an external reference.  Syntactic resolution of an unknown
    base type sets both, and tallies the dotted name as written, the same
    key a member reference to that type produces.
    """
    target: Optional[str] = None
    external: Optional[str] = None


# ===================================================================
# Shape unwrapping
# ===================================================================

def unwrap_type(expr: TypeExpr) -> List[TypeExpr]:
    """Candidate names hidden inside a written type.

    ``List<Foo>``, ``Foo?``, ``Foo[]`` and ``Foo*`` all yield ``[Foo]``;
    ``Dictionary<string, Bar[]>`` yields ``[Bar]``; ``int`` and
    ``(Foo, Bar)`` yield nothing.
    """
    if expr.kind in WRAPPER_KINDS:
        return unwrap_type(expr.element) if expr.element is not None else []
    if expr.kind == GENERIC:
        return [leaf for arg in expr.arguments for leaf in unwrap_type(arg)]
    if expr.kind in (QUALIFIED, ALIAS_QUALIFIED):
        if expr.element is not None and expr.element.kind == GENERIC:
            return unwrap_type(expr.element)
        return [expr]
    if expr.kind == NAME:
        return [expr]
    return []


def unwrap_symbol(symbol: TypeSymbol) -> List[TypeSymbol]:
    """The same unwrapping rules applied to a bound type.

    Needed when an alias stands for a shaped type, e.g.
    ``using Orders = System.Collections.Generic.List<Order>;``.
    """
    if isinstance(symbol, (ArrayTypeSymbol, PointerTypeSymbol)):
        return unwrap_symbol(symbol.element)
    if isinstance(symbol, ConstructedTypeSymbol):
        return [leaf for arg in symbol.type_arguments for leaf in unwrap_symbol(arg)]
    if isinstance(symbol, (TupleTypeSymbol, TypeParameterSymbol)):
        return []
    if isinstance(symbol, NamedTypeSymbol) and symbol.is_predefined:
        return []
    return [symbol]


def simple_name(name: str) -> str:
    return name.rpartition(".")[2]


# ===================================================================
# Resolver interface
# ===================================================================

class IdentifierResolver(ABC):
    """Classifies raw type references for one run."""

    mode: ResolutionMode

    @abstractmethod
    def resolve_base(self, expr: TypeExpr, decl: TypeDeclaration) -> Resolution:
        """Resolve one base-list entry (the named type itself, never its arguments)."""
        ...

    @abstractmethod
    def resolve_member_type(
        self,
        expr: TypeExpr,
        decl: TypeDeclaration,
        method: Optional[MethodDecl] = None,
    ) -> List[Resolution]:
        """Resolve every candidate inside a member's declared type."""
        ...


class SyntacticResolver(IdentifierResolver):
    """Name heuristic over the declared ids.

    Ambiguity is lossy by construction: a simple name shared by two
    namespaces resolves to the bare simple name, not to either id.
    """

    mode = ResolutionMode.SYNTACTIC

    def __init__(self, declared_ids: Iterable[str]) -> None:
        self._ids = set(declared_ids)
        self._by_name: Dict[str, List[str]] = {}
        for type_id in sorted(self._ids):
            self._by_name.setdefault(simple_name(type_id), []).append(type_id)

    def resolve_name(self, name: str) -> str:
        if name in self._ids:
            return name
        simple = simple_name(name)
        matches = self._by_name.get(simple, [])
        if len(matches) == 1:
            return matches[0]
        return simple

    def is_internal(self, name: str) -> bool:
        return name in self._ids or simple_name(name) in self._by_name

    def resolve_base(self, expr: TypeExpr, decl: TypeDeclaration) -> Resolution:
        name = expr.dotted_name()
        target = self.resolve_name(name)
        if self.is_internal(name):
            return Resolution(target=target)
        return Resolution(target=target, external=name)

    def resolve_member_type(
        self,
        expr: TypeExpr,
        decl: TypeDeclaration,
        method: Optional[MethodDecl] = None,
    ) -> List[Resolution]:
        type_params = set(decl.type_parameters)
        if method is not None:
            type_params.update(method.type_parameters)

        results: List[Resolution] = []
        for leaf in unwrap_type(expr):
            name = leaf.dotted_name()
            if self.is_internal(name):
                results.append(Resolution(target=self.resolve_name(name)))
            elif not (leaf.kind == NAME and name in type_params):
                results.append(Resolution(external=name))
        return results


class SemanticResolver(IdentifierResolver):
    """Symbol-aware resolution through the shared compilation."""

    mode = ResolutionMode.SEMANTIC

    def __init__(self, compilation: Compilation) -> None:
        self.compilation = compilation

    def resolve_base(self, expr: TypeExpr, decl: TypeDeclaration) -> Resolution:
        symbol = self.compilation.type_of(expr, Compilation.context_for(decl))
        return self._classify(symbol)

    def resolve_member_type(
        self,
        expr: TypeExpr,
        decl: TypeDeclaration,
        method: Optional[MethodDecl] = None,
    ) -> List[Resolution]:
        context = Compilation.context_for(decl, method)
        results: List[Resolution] = []
        for leaf in unwrap_type(expr):
            for symbol in unwrap_symbol(self.compilation.type_of(leaf, context)):
                resolution = self._classify(symbol)
                if resolution.target or resolution.external:
                    results.append(resolution)
        return results

    def _classify(self, symbol: TypeSymbol) -> Resolution:
        if isinstance(symbol, TypeParameterSymbol):
            return Resolution()
        if self.compilation.is_declared_in_analyzed_set(symbol):
            return Resolution(target=canonical_id(symbol))
        return Resolution(external=canonical_id(symbol))


def create_resolver(
    mode: ResolutionMode,
    declared_ids: Iterable[str],
    compilation: Optional[Compilation] = None,
) -> IdentifierResolver:
    mode = ResolutionMode(mode)
    if mode is ResolutionMode.SEMANTIC:
        if compilation is None:
            raise ValueError("Semantic resolution needs a compilation")
        return SemanticResolver(compilation)
    return SyntacticResolver(declared_ids)
