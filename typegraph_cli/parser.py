"""C# front end built on Tree-sitter.

Turns source text into the :mod:`typegraph_cli.syntax` model:
namespace scopes, using directives, type declarations with their base
lists and members, and type expressions as small trees.  Tree-sitter is
error tolerant, so syntax errors are collected from ``ERROR`` / missing
nodes and turned into a :class:`~typegraph_cli.errors.ParseFailure`
unless the parser runs in lenient mode.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Tuple

import tree_sitter_c_sharp
from tree_sitter import Language, Parser as TSParser

from .compilation import Compilation
from .errors import ParseFailure
from .sources import SourceFile
from .syntax import (
    ALIAS_QUALIFIED,
    ARRAY,
    GENERIC,
    NAME,
    NULLABLE,
    OTHER,
    POINTER,
    PREDEFINED,
    QUALIFIED,
    TUPLE,
    FieldDecl,
    MethodDecl,
    NamespaceScope,
    ParameterDecl,
    PropertyDecl,
    SyntaxTree,
    TypeDeclaration,
    TypeExpr,
    UsingDirective,
)

logger = logging.getLogger(__name__)

# Declaration node type -> TypeNode kind
TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "struct_declaration": "struct",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "record_struct_declaration": "record",
}

_PREPROC_CONTAINERS = ("preproc_if", "preproc_elif", "preproc_else", "preproc_region")

# Wrappers that do not change the shape of the type they wrap
_TRANSPARENT_TYPES = ("ref_type", "scoped_type", "type")


class CSharpParser:
    """Parser collaborator: ``parse(text, path)`` and ``parse_all(sources)``."""

    def __init__(self, lenient: bool = False) -> None:
        self.lenient = lenient
        self._parser = TSParser(Language(tree_sitter_c_sharp.language()))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str, path: str) -> SyntaxTree:
        tree = self._parser.parse(text.encode("utf-8"))
        errors = _syntax_errors(tree.root_node)
        if errors:
            if not self.lenient:
                raise ParseFailure(path, errors)
            logger.warning(
                "Syntax errors in %s at %s; continuing with recovered tree",
                path, ", ".join(f"{line}:{col}" for line, col in errors[:5]),
            )

        root = NamespaceScope(name="", file_path=path)
        self._walk_scope(tree.root_node, root, path)
        syntax_tree = SyntaxTree(path=path, root=root, error_locations=errors)
        logger.debug(
            "Parsed %s: %d top-level type declarations",
            path, sum(1 for _ in syntax_tree.type_declarations()),
        )
        return syntax_tree

    def parse_all(self, sources: Iterable[SourceFile]) -> Compilation:
        """Parse every source and bind them into one shared compilation.

        The first file that fails to parse aborts the whole batch.
        """
        trees = [self.parse(source.text, str(source.path)) for source in sources]
        return Compilation(trees)

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    def _walk_scope(self, ts_node: Any, scope: NamespaceScope, path: str) -> None:
        current = scope
        for child in ts_node.named_children:
            kind = child.type
            if kind == "using_directive":
                current.usings.append(self._using(child))
            elif kind == "namespace_declaration":
                ns = NamespaceScope(
                    name=_join(current.name, _compact(child.child_by_field_name("name"))),
                    file_path=path,
                    parent=current,
                )
                current.namespaces.append(ns)
                body = child.child_by_field_name("body") or _first_of_type(child, "declaration_list")
                if body is not None:
                    self._walk_scope(body, ns, path)
            elif kind == "file_scoped_namespace_declaration":
                ns = NamespaceScope(
                    name=_join(scope.name, _compact(child.child_by_field_name("name"))),
                    file_path=path,
                    parent=scope,
                )
                scope.namespaces.append(ns)
                # older grammars nest the members, newer ones make them siblings
                self._walk_scope(child, ns, path)
                current = ns
            elif kind in TYPE_DECLARATIONS:
                current.types.append(self._type_declaration(child, current, None, path))
            elif kind in _PREPROC_CONTAINERS:
                self._walk_scope(child, current, path)

    def _using(self, node: Any) -> UsingDirective:
        tokens = [c.type for c in node.children if not c.is_named]
        named = [c for c in node.named_children if c.type != "comment"]
        alias: Optional[str] = None

        name_equals = _first_of_type(node, "name_equals")
        if name_equals is not None:
            alias = _compact(_first_of_type(name_equals, "identifier") or name_equals)
            named = [c for c in named if c.id != name_equals.id]
        elif "=" in tokens:
            alias_node = node.child_by_field_name("name") or named[0]
            alias = _compact(alias_node)
            named = [c for c in named if c.id != alias_node.id]

        return UsingDirective(
            target=self._type_expr(named[-1]),
            alias=alias,
            is_static="static" in tokens,
            is_global="global" in tokens,
        )

    # ------------------------------------------------------------------
    # Type declarations
    # ------------------------------------------------------------------

    def _type_declaration(
        self,
        node: Any,
        scope: NamespaceScope,
        parent: Optional[TypeDeclaration],
        path: str,
    ) -> TypeDeclaration:
        decl = TypeDeclaration(
            name=_compact(node.child_by_field_name("name")),
            kind=TYPE_DECLARATIONS[node.type],
            file_path=path,
            scope=scope,
            line=node.start_point[0] + 1,
            parent=parent,
            is_record_struct=(
                node.type == "record_struct_declaration"
                or (
                    node.type == "record_declaration"
                    and any(c.type == "struct" for c in node.children if not c.is_named)
                )
            ),
        )

        body = None
        for child in node.named_children:
            if child.type == "type_parameter_list":
                decl.type_parameters = _type_parameter_names(child)
            elif child.type == "base_list":
                decl.base_types = self._base_list(child)
            elif child.type in ("declaration_list", "enum_member_declaration_list"):
                body = child

        if body is not None and decl.kind != "enum":
            self._members(body, decl, path)
        return decl

    def _base_list(self, node: Any) -> List[TypeExpr]:
        bases: List[TypeExpr] = []
        for child in node.named_children:
            if child.type in ("argument_list", "comment"):
                continue
            if child.type == "primary_constructor_base_type":
                inner = child.child_by_field_name("type") or child.named_children[0]
                bases.append(self._type_expr(inner))
            else:
                bases.append(self._type_expr(child))
        return bases

    def _members(self, body: Any, decl: TypeDeclaration, path: str) -> None:
        for child in body.named_children:
            kind = child.type
            if kind == "field_declaration":
                var_decl = _first_of_type(child, "variable_declaration")
                if var_decl is None:
                    continue
                type_node = var_decl.child_by_field_name("type") or var_decl.named_children[0]
                names = [
                    _declarator_name(d)
                    for d in var_decl.named_children
                    if d.type == "variable_declarator"
                ]
                decl.fields.append(FieldDecl(
                    type=self._type_expr(type_node),
                    names=[n for n in names if n],
                ))
            elif kind == "property_declaration":
                type_node = child.child_by_field_name("type")
                name_node = child.child_by_field_name("name")
                if type_node is None or name_node is None:
                    continue
                decl.properties.append(PropertyDecl(
                    type=self._type_expr(type_node),
                    name=_compact(name_node),
                ))
            elif kind in ("method_declaration", "constructor_declaration"):
                method = self._method(child, kind == "constructor_declaration")
                if method is not None:
                    decl.methods.append(method)
            elif kind in TYPE_DECLARATIONS:
                decl.nested.append(self._type_declaration(child, decl.scope, decl, path))
            elif kind in _PREPROC_CONTAINERS:
                self._members(child, decl, path)

    def _method(self, node: Any, is_constructor: bool) -> Optional[MethodDecl]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None

        return_type: Optional[TypeExpr] = None
        if not is_constructor:
            returns = node.child_by_field_name("returns") or node.child_by_field_name("type")
            if returns is not None:
                return_type = self._type_expr(returns)

        params = node.child_by_field_name("parameters") or _first_of_type(node, "parameter_list")
        type_params = _first_of_type(node, "type_parameter_list")
        return MethodDecl(
            name=_compact(name_node),
            return_type=return_type,
            parameters=self._parameters(params) if params is not None else [],
            type_parameters=_type_parameter_names(type_params) if type_params is not None else [],
        )

    def _parameters(self, node: Any) -> List[ParameterDecl]:
        """Parameters of a ``parameter_list``.

        Older grammars wrap ``params T[] name`` in a ``parameter_array``
        node; newer ones leave a bare ``params`` token followed by the type
        and the identifier directly in the list.
        """
        result: List[ParameterDecl] = []
        params_type: Optional[Any] = None
        after_params = False
        for param in node.children:
            if param.type == "params":
                after_params = True
                continue
            if after_params:
                if param.type == "attribute_list":
                    continue
                if params_type is None:
                    params_type = param
                    continue
                if param.type == "identifier":
                    result.append(ParameterDecl(name=_compact(param), type=self._type_expr(params_type)))
                after_params = False
                params_type = None
                continue
            if not param.is_named:
                continue

            if param.type == "parameter":
                type_node = param.child_by_field_name("type")
                name_node = param.child_by_field_name("name")
            elif param.type == "parameter_array":
                type_node = next(
                    (c for c in param.named_children if c.type not in ("attribute_list", "identifier")),
                    None,
                )
                idents = [c for c in param.named_children if c.type == "identifier"]
                name_node = idents[-1] if idents else None
            else:
                continue
            if type_node is None or name_node is None:
                continue
            result.append(ParameterDecl(name=_compact(name_node), type=self._type_expr(type_node)))
        return result

    # ------------------------------------------------------------------
    # Type expressions
    # ------------------------------------------------------------------

    def _type_expr(self, node: Any) -> TypeExpr:
        kind = node.type
        text = _compact(node)

        if kind == "identifier":
            return TypeExpr(kind=NAME, text=text, name=text)

        if kind == "generic_name":
            ident = node.child_by_field_name("name") or _first_of_type(node, "identifier")
            args_node = _first_of_type(node, "type_argument_list")
            args: Tuple[TypeExpr, ...] = ()
            if args_node is not None:
                args = tuple(self._type_expr(a) for a in args_node.named_children if a.type != "comment")
            return TypeExpr(kind=GENERIC, text=text, name=_compact(ident) if ident else text, arguments=args)

        if kind == "qualified_name":
            named = node.named_children
            qualifier = node.child_by_field_name("qualifier") or named[0]
            right = node.child_by_field_name("name") or named[-1]
            return TypeExpr(
                kind=QUALIFIED, text=text,
                qualifier=self._type_expr(qualifier),
                element=self._type_expr(right),
            )

        if kind == "alias_qualified_name":
            named = node.named_children
            alias = node.child_by_field_name("alias") or named[0]
            right = node.child_by_field_name("name") or named[-1]
            return TypeExpr(
                kind=ALIAS_QUALIFIED, text=text,
                name=_compact(alias),
                element=self._type_expr(right),
            )

        if kind in ("array_type", "nullable_type", "pointer_type"):
            inner = node.child_by_field_name("type") or node.named_children[0]
            shape = {"array_type": ARRAY, "nullable_type": NULLABLE, "pointer_type": POINTER}[kind]
            return TypeExpr(kind=shape, text=text, element=self._type_expr(inner))

        if kind == "tuple_type":
            elements = []
            for element in node.named_children:
                if element.type != "tuple_element":
                    continue
                inner = element.child_by_field_name("type") or element.named_children[0]
                elements.append(self._type_expr(inner))
            return TypeExpr(kind=TUPLE, text=text, arguments=tuple(elements))

        if kind in ("predefined_type", "void_keyword"):
            return TypeExpr(kind=PREDEFINED, text=text, name=text)

        if kind in _TRANSPARENT_TYPES:
            inner = node.child_by_field_name("type")
            if inner is None and node.named_child_count == 1:
                inner = node.named_children[0]
            if inner is not None:
                return self._type_expr(inner)

        return TypeExpr(kind=OTHER, text=text)


# ===================================================================
# Node helpers
# ===================================================================

def _compact(node: Any) -> str:
    """Node text with all whitespace removed (``Dictionary<string,Foo>``)."""
    if node is None:
        return ""
    return "".join(node.text.decode("utf-8").split())


def _join(outer: str, inner: str) -> str:
    return f"{outer}.{inner}" if outer else inner


def _first_of_type(node: Any, node_type: str) -> Optional[Any]:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _declarator_name(node: Any) -> str:
    name = node.child_by_field_name("name") or _first_of_type(node, "identifier")
    return _compact(name)


def _type_parameter_names(node: Any) -> List[str]:
    names: List[str] = []
    for param in node.named_children:
        if param.type != "type_parameter":
            continue
        ident = param.child_by_field_name("name") or _first_of_type(param, "identifier")
        if ident is not None:
            names.append(_compact(ident))
    return names


def _syntax_errors(root: Any) -> List[Tuple[int, int]]:
    """1-based (line, column) of every ``ERROR`` or missing node."""
    if not root.has_error:
        return []
    found: List[Tuple[int, int]] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            found.append((node.start_point[0] + 1, node.start_point[1] + 1))
            continue
        stack.extend(c for c in node.children if c.has_error or c.is_missing)
    return sorted(found)
