"""Fold raw relations into the canonical, sorted :class:`Graph` value."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Mapping, Set

from .models import Edge, Graph, ScanResult, TypeNode, UsageRef, USAGE_RELS

logger = logging.getLogger(__name__)


class GraphAssembler:
    """Deduplicates, folds and orders one run's relations.

    All ordering is plain ``str`` comparison (code-point order), so the
    same input always produces the same bytes.
    """

    def assemble(self, nodes: Mapping[str, TypeNode], scan: ScanResult) -> Graph:
        edges = sorted({r.edge for r in scan.relations}, key=Edge.sort_key)

        inherits: Dict[str, Set[str]] = {}
        implements: Dict[str, Set[str]] = {}
        uses: Dict[str, Set[UsageRef]] = {}
        used_by: Dict[str, Set[str]] = {}

        for relation in scan.relations:
            if relation.rel == "inherits":
                inherits.setdefault(relation.src, set()).add(relation.dst)
            elif relation.rel == "implements":
                implements.setdefault(relation.src, set()).add(relation.dst)
            elif relation.rel in USAGE_RELS:
                uses.setdefault(relation.src, set()).add(
                    UsageRef(target=relation.dst, via=relation.rel, member=relation.member or "")
                )

        for edge in edges:
            if edge.dst in nodes:
                used_by.setdefault(edge.dst, set()).add(edge.src)

        types = sorted(
            (
                replace(
                    seed,
                    inherits=tuple(sorted(inherits.get(type_id, ()))),
                    implements=tuple(sorted(implements.get(type_id, ()))),
                    uses=tuple(sorted(uses.get(type_id, ()), key=UsageRef.sort_key)),
                    used_by=tuple(sorted(used_by.get(type_id, ()))),
                )
                for type_id, seed in nodes.items()
            ),
            key=TypeNode.sort_key,
        )

        graph = Graph(
            types=tuple(types),
            edges=tuple(edges),
            external_ref_count=len(set(scan.externals)),
        )
        logger.debug(
            "Assembled graph: %d types, %d edges, %d external references",
            len(graph.types), len(graph.edges), graph.external_ref_count,
        )
        return graph
