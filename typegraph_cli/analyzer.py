"""Pipeline entry points: sources in, :class:`Graph` out."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from .assembler import GraphAssembler
from .collector import DeclarationCollector
from .errors import InputError
from .models import Graph, TypeNode
from .parser import CSharpParser
from .relationships import RelationshipResolver
from .resolution import ResolutionMode, create_resolver
from .sources import SourceFile, load_sources

logger = logging.getLogger(__name__)


def analyze_sources(
    sources: Sequence[SourceFile],
    mode: Union[ResolutionMode, str] = ResolutionMode.SYNTACTIC,
    include_method_signatures: bool = False,
    strict: bool = False,
    lenient: bool = False,
) -> Graph:
    """Run the full extraction over an in-memory source set.

    Every file is parsed before any relationship is resolved, so a single
    unparsable file aborts the run without producing a partial graph.
    """
    if not sources:
        raise InputError("No C# sources to analyze")

    mode = ResolutionMode(mode)
    compilation = CSharpParser(lenient=lenient).parse_all(sources)
    collected = DeclarationCollector(strict=strict).collect(compilation.trees)

    resolver = create_resolver(mode, collected.ids, compilation)
    scan = RelationshipResolver(resolver, include_method_signatures).scan_all(collected.occurrences)
    graph = GraphAssembler().assemble(collected.types, scan)

    logger.info(
        "Analyzed %d files (%s): %d types, %d edges, %d external references",
        len(sources), mode.value, len(graph.types), len(graph.edges), graph.external_ref_count,
    )
    return graph


def analyze_paths(paths: Iterable[Union[str, Path]], **options) -> Graph:
    """Collect ``.cs`` files, directories and archives, then analyze them."""
    with load_sources(paths) as sources:
        return analyze_sources(sources, **options)


def scan_types(
    sources: Sequence[SourceFile],
    strict: bool = False,
    lenient: bool = False,
) -> List[TypeNode]:
    """Declarations only, without relationship scanning."""
    if not sources:
        raise InputError("No C# sources to analyze")
    parser = CSharpParser(lenient=lenient)
    trees = [parser.parse(source.text, str(source.path)) for source in sources]
    collected = DeclarationCollector(strict=strict).collect(trees)
    return sorted(collected.types.values(), key=TypeNode.sort_key)
