"""Core data models shared by the resolution layers and the exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

TypeKind = Literal["class", "struct", "interface", "enum", "record"]
UsageVia = Literal["field", "property", "return", "param"]
RelKind = Literal["inherits", "implements", "field", "property", "return", "param"]

USAGE_RELS = ("field", "property", "return", "param")


@dataclass(frozen=True)
class UsageRef:
    """One member of a type pointing at another type."""
    target: str
    via: UsageVia
    member: str

    def sort_key(self) -> Tuple[str, str, str]:
        return (self.target, self.via, self.member)

    def to_dict(self) -> Dict[str, str]:
        return {"target": self.target, "via": self.via, "member": self.member}


@dataclass(frozen=True)
class Edge:
    src: str
    dst: str
    rel: RelKind

    def sort_key(self) -> Tuple[str, str, str]:
        return (self.src, self.dst, self.rel)

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.src, "to": self.dst, "rel": self.rel}


@dataclass(frozen=True)
class Relation:
    """A raw relation tuple as produced by relationship scanning.

    ``member`` is ``None`` for base-list relations and carries the
    field, property, method or parameter name for usage relations.
    """
    src: str
    dst: str
    rel: RelKind
    member: Optional[str] = None

    @property
    def edge(self) -> Edge:
        return Edge(src=self.src, dst=self.dst, rel=self.rel)


@dataclass(frozen=True)
class TypeNode:
    id: str
    name: str
    namespace: str
    kind: TypeKind
    source_file: str
    inherits: Tuple[str, ...] = ()
    implements: Tuple[str, ...] = ()
    uses: Tuple[UsageRef, ...] = ()
    used_by: Tuple[str, ...] = ()

    def sort_key(self) -> Tuple[str, str]:
        return (self.namespace, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "namespace": self.namespace,
            "kind": self.kind,
            "file": self.source_file,
            "inherits": list(self.inherits),
            "implements": list(self.implements),
            "uses": [u.to_dict() for u in self.uses],
            "usedBy": list(self.used_by),
        }


@dataclass(frozen=True)
class Graph:
    """Immutable result of one analysis run."""
    types: Tuple[TypeNode, ...] = ()
    edges: Tuple[Edge, ...] = ()
    external_ref_count: int = 0

    def get(self, type_id: str) -> Optional[TypeNode]:
        for node in self.types:
            if node.id == type_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": [t.to_dict() for t in self.types],
            "edges": [e.to_dict() for e in self.edges],
            "externalRefCount": self.external_ref_count,
        }


@dataclass
class ScanResult:
    """Relations and external names collected from one or more declarations."""
    relations: List[Relation] = field(default_factory=list)
    externals: List[str] = field(default_factory=list)

    def extend(self, other: "ScanResult") -> None:
        self.relations.extend(other.relations)
        self.externals.extend(other.externals)
