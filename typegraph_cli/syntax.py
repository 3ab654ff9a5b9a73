"""Language-neutral syntax model produced by the C# parser.

The parser turns Tree-sitter concrete syntax trees into these small
objects so that the resolution layers never touch parser nodes directly.
Scopes and declarations keep parent links, which is what name lookup in
:mod:`typegraph_cli.compilation` walks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

# TypeExpr kinds
NAME = "name"
GENERIC = "generic"
QUALIFIED = "qualified"
ALIAS_QUALIFIED = "alias_qualified"
ARRAY = "array"
POINTER = "pointer"
NULLABLE = "nullable"
TUPLE = "tuple"
PREDEFINED = "predefined"
OTHER = "other"

SIMPLE_NAME_KINDS = (NAME, GENERIC)
WRAPPER_KINDS = (ARRAY, POINTER, NULLABLE)


@dataclass(frozen=True)
class TypeExpr:
    """A type as written in source.

    * ``name`` / ``generic``: ``name`` is the identifier, ``arguments``
      holds the type arguments of a generic name.
    * ``qualified``: ``qualifier`` is the left part, ``element`` the
      right-most simple name.
    * ``alias_qualified``: ``name`` is the alias (``global``),
      ``element`` the simple name after ``::``.
    * ``array`` / ``pointer`` / ``nullable``: ``element`` is the wrapped type.
    * ``tuple``: ``arguments`` are the element types.
    * ``predefined``: keyword types such as ``int`` or ``void``.
    """
    kind: str
    text: str
    name: str = ""
    arguments: Tuple["TypeExpr", ...] = ()
    element: Optional["TypeExpr"] = None
    qualifier: Optional["TypeExpr"] = None

    @property
    def arity(self) -> int:
        return len(self.arguments) if self.kind == GENERIC else 0

    @property
    def is_void(self) -> bool:
        return self.kind == PREDEFINED and self.name == "void"

    def dotted_name(self) -> str:
        """Dotted form of a name with type arguments stripped.

        ``Ns.Repo<Order>`` becomes ``Ns.Repo`` and ``global::Foo``
        becomes ``Foo``.
        """
        if self.kind in SIMPLE_NAME_KINDS:
            return self.name
        if self.kind == QUALIFIED and self.qualifier is not None and self.element is not None:
            return f"{self.qualifier.dotted_name()}.{self.element.dotted_name()}"
        if self.kind == ALIAS_QUALIFIED and self.element is not None:
            return self.element.dotted_name()
        return self.text


@dataclass(frozen=True)
class UsingDirective:
    target: TypeExpr
    alias: Optional[str] = None
    is_static: bool = False
    is_global: bool = False


@dataclass(frozen=True)
class ParameterDecl:
    name: str
    type: TypeExpr


@dataclass(eq=False)
class FieldDecl:
    type: TypeExpr
    names: List[str]


@dataclass(eq=False)
class PropertyDecl:
    type: TypeExpr
    name: str


@dataclass(eq=False)
class MethodDecl:
    name: str
    return_type: Optional[TypeExpr]
    parameters: List[ParameterDecl] = field(default_factory=list)
    type_parameters: List[str] = field(default_factory=list)


@dataclass(eq=False)
class NamespaceScope:
    """A namespace declaration block, or the compilation unit itself.

    ``name`` is the full dotted namespace the block declares into
    (``""`` for the compilation unit).
    """
    name: str
    file_path: str
    parent: Optional["NamespaceScope"] = None
    usings: List[UsingDirective] = field(default_factory=list)
    types: List["TypeDeclaration"] = field(default_factory=list)
    namespaces: List["NamespaceScope"] = field(default_factory=list)

    def chain(self) -> Iterator["NamespaceScope"]:
        scope: Optional[NamespaceScope] = self
        while scope is not None:
            yield scope
            scope = scope.parent


@dataclass(eq=False)
class TypeDeclaration:
    name: str
    kind: str
    file_path: str
    scope: NamespaceScope
    line: int = 0
    parent: Optional["TypeDeclaration"] = None
    type_parameters: List[str] = field(default_factory=list)
    base_types: List[TypeExpr] = field(default_factory=list)
    fields: List[FieldDecl] = field(default_factory=list)
    properties: List[PropertyDecl] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)
    nested: List["TypeDeclaration"] = field(default_factory=list)
    is_record_struct: bool = False

    @property
    def namespace(self) -> str:
        return self.scope.name

    @property
    def is_nested(self) -> bool:
        return self.parent is not None

    @property
    def arity(self) -> int:
        return len(self.type_parameters)

    def enclosing_types(self) -> Iterator["TypeDeclaration"]:
        """This declaration followed by its containing declarations."""
        decl: Optional[TypeDeclaration] = self
        while decl is not None:
            yield decl
            decl = decl.parent


@dataclass(eq=False)
class SyntaxTree:
    path: str
    root: NamespaceScope
    error_locations: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.error_locations)

    def all_scopes(self) -> Iterator[NamespaceScope]:
        stack = [self.root]
        while stack:
            scope = stack.pop(0)
            yield scope
            stack[0:0] = scope.namespaces

    def type_declarations(self, include_nested: bool = False) -> Iterator[TypeDeclaration]:
        """Declarations in source order; nested ones only on request."""
        top_level = [decl for scope in self.all_scopes() for decl in scope.types]
        top_level.sort(key=lambda decl: decl.line)
        for decl in top_level:
            yield decl
            if include_nested:
                yield from _walk_nested(decl)


def _walk_nested(decl: TypeDeclaration) -> Iterator[TypeDeclaration]:
    for inner in decl.nested:
        yield inner
        yield from _walk_nested(inner)
