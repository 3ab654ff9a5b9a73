"""Collect top-level type declarations and assign canonical ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, Iterable, List, Tuple

from .errors import DeclarationConflictError
from .models import TypeNode
from .syntax import SyntaxTree, TypeDeclaration

logger = logging.getLogger(__name__)


def declaration_id(decl: TypeDeclaration) -> str:
    return f"{decl.namespace}.{decl.name}" if decl.namespace else decl.name


@dataclass
class CollectedDeclarations:
    """Node seeds keyed by id plus every occurrence to scan.

    ``types`` keeps first-occurrence order; ``occurrences`` holds each
    declaration (partial parts included) paired with its id.
    """
    types: Dict[str, TypeNode] = field(default_factory=dict)
    occurrences: List[Tuple[str, TypeDeclaration]] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return list(self.types)


class DeclarationCollector:
    """Extracts node seeds from parsed trees.

    Nested declarations never become nodes.  Declarations sharing an id
    merge: the first one's name, kind and file win.  A later declaration
    with the same id but a different kind or generic arity is not a
    partial part; ``strict`` turns that into a
    :class:`~typegraph_cli.errors.DeclarationConflictError`.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def collect(self, trees: Iterable[SyntaxTree]) -> CollectedDeclarations:
        collected = CollectedDeclarations()
        first_seen: Dict[str, TypeDeclaration] = {}

        for tree in trees:
            for decl in tree.type_declarations():
                if not decl.name:
                    continue
                type_id = declaration_id(decl)
                first = first_seen.get(type_id)
                if first is None:
                    first_seen[type_id] = decl
                    collected.types[type_id] = TypeNode(
                        id=type_id,
                        name=decl.name,
                        namespace=decl.namespace,
                        kind=decl.kind,
                        source_file=PurePath(decl.file_path).name,
                    )
                elif first.kind != decl.kind or first.arity != decl.arity:
                    first_desc = _describe(first)
                    second_desc = _describe(decl)
                    if self.strict:
                        raise DeclarationConflictError(type_id, first_desc, second_desc)
                    logger.warning(
                        "Type '%s' declared as %s and as %s; keeping the first",
                        type_id, first_desc, second_desc,
                    )
                else:
                    logger.debug("Merging another declaration of %s from %s", type_id, decl.file_path)
                collected.occurrences.append((type_id, decl))

        logger.debug(
            "Collected %d types from %d declarations",
            len(collected.types), len(collected.occurrences),
        )
        return collected


def _describe(decl: TypeDeclaration) -> str:
    arity = f"<{','.join(decl.type_parameters)}>" if decl.type_parameters else ""
    return f"{decl.kind} {decl.name}{arity} ({PurePath(decl.file_path).name}:{decl.line})"
