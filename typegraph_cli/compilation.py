"""Semantic model shared by every file of one analysis run.

A :class:`Compilation` binds all syntax trees into one symbol table:
namespaces, source type symbols (partial declarations merged, nested
types kept under their containing type) and a fixed reference set of
well-known .NET library types.  It answers the three questions semantic
resolution needs:

* :meth:`Compilation.declared_symbol_of` - the symbol a declaration declares
* :meth:`Compilation.type_of` - the type a type expression denotes in a context
* :meth:`Compilation.is_declared_in_analyzed_set` - whether a symbol is internal

Names that cannot be bound, or that are ambiguous between imported
namespaces, come back as :class:`ErrorTypeSymbol`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .syntax import (
    ALIAS_QUALIFIED,
    ARRAY,
    GENERIC,
    NAME,
    NULLABLE,
    POINTER,
    PREDEFINED,
    QUALIFIED,
    TUPLE,
    MethodDecl,
    NamespaceScope,
    SyntaxTree,
    TypeDeclaration,
    TypeExpr,
    UsingDirective,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Reference set: namespace -> type names, generic arity after a backtick
# ---------------------------------------------------------------------------
REFERENCE_TYPES: Dict[str, Tuple[str, ...]] = {
    "System": (
        "Object", "String", "Boolean", "Byte", "SByte", "Char", "Decimal",
        "Double", "Single", "Int16", "Int32", "Int64", "UInt16", "UInt32",
        "UInt64", "IntPtr", "UIntPtr", "Void", "Enum", "ValueType", "Array",
        "Delegate", "Type", "Exception", "ArgumentException",
        "ArgumentNullException", "InvalidOperationException",
        "NotSupportedException", "NotImplementedException", "Attribute",
        "EventArgs", "EventHandler", "EventHandler`1", "IDisposable",
        "IAsyncDisposable", "ICloneable", "IComparable", "IComparable`1",
        "IEquatable`1", "IFormattable", "IServiceProvider", "Nullable`1",
        "Lazy`1", "Action", "Action`1", "Action`2", "Action`3", "Func`1",
        "Func`2", "Func`3", "Func`4", "Tuple`2", "Tuple`3", "ValueTuple`2",
        "ValueTuple`3", "Guid", "DateTime", "DateTimeOffset", "TimeSpan",
        "Uri", "Random", "Math", "Console", "Version",
    ),
    "System.Collections": (
        "IEnumerable", "IEnumerator", "ICollection", "IList", "IDictionary",
        "ArrayList", "Hashtable",
    ),
    "System.Collections.Generic": (
        "List`1", "IList`1", "ICollection`1", "IEnumerable`1", "IEnumerator`1",
        "IReadOnlyList`1", "IReadOnlyCollection`1", "Dictionary`2",
        "IDictionary`2", "IReadOnlyDictionary`2", "HashSet`1", "ISet`1",
        "Queue`1", "Stack`1", "LinkedList`1", "SortedDictionary`2",
        "SortedList`2", "SortedSet`1", "KeyValuePair`2", "IComparer`1",
        "IEqualityComparer`1",
    ),
    "System.Collections.Concurrent": (
        "ConcurrentDictionary`2", "ConcurrentQueue`1", "ConcurrentStack`1",
        "ConcurrentBag`1", "BlockingCollection`1",
    ),
    "System.Collections.ObjectModel": (
        "Collection`1", "ReadOnlyCollection`1", "ObservableCollection`1",
    ),
    "System.ComponentModel": (
        "INotifyPropertyChanged", "PropertyChangedEventArgs",
        "PropertyChangedEventHandler",
    ),
    "System.IO": (
        "Stream", "MemoryStream", "FileStream", "TextReader", "TextWriter",
        "StreamReader", "StreamWriter", "FileInfo", "DirectoryInfo", "Path",
        "File", "Directory",
    ),
    "System.Linq": ("Enumerable", "IQueryable`1", "IGrouping`2", "IOrderedEnumerable`1"),
    "System.Text": ("StringBuilder", "Encoding"),
    "System.Threading": (
        "CancellationToken", "CancellationTokenSource", "Thread", "Monitor",
        "SemaphoreSlim", "Timer",
    ),
    "System.Threading.Tasks": ("Task", "Task`1", "ValueTask", "ValueTask`1"),
}

# Reference types that are value types (matters for ``T?``)
REFERENCE_STRUCTS = frozenset({
    "System.Boolean", "System.Byte", "System.SByte", "System.Char",
    "System.Decimal", "System.Double", "System.Single", "System.Int16",
    "System.Int32", "System.Int64", "System.UInt16", "System.UInt32",
    "System.UInt64", "System.IntPtr", "System.UIntPtr", "System.Guid",
    "System.DateTime", "System.DateTimeOffset", "System.TimeSpan",
    "System.Nullable", "System.ValueTuple",
    "System.Collections.Generic.KeyValuePair",
    "System.Threading.CancellationToken", "System.Threading.Tasks.ValueTask",
})

PREDEFINED_TYPES: Dict[str, str] = {
    "bool": "Boolean", "byte": "Byte", "sbyte": "SByte", "char": "Char",
    "decimal": "Decimal", "double": "Double", "float": "Single",
    "short": "Int16", "int": "Int32", "long": "Int64", "ushort": "UInt16",
    "uint": "UInt32", "ulong": "UInt64", "nint": "IntPtr", "nuint": "UIntPtr",
    "object": "Object", "string": "String", "void": "Void", "dynamic": "Object",
}


# ===================================================================
# Symbols
# ===================================================================

@dataclass(eq=False)
class NamespaceSymbol:
    name: str
    types: Dict[Tuple[str, int], "NamedTypeSymbol"] = field(default_factory=dict)


@dataclass(eq=False)
class NamedTypeSymbol:
    name: str
    arity: int
    kind: str
    namespace: str
    in_source: bool
    containing_type: Optional["NamedTypeSymbol"] = None
    declarations: List[TypeDeclaration] = field(default_factory=list)
    nested: Dict[Tuple[str, int], "NamedTypeSymbol"] = field(default_factory=dict)
    is_predefined: bool = False

    @property
    def full_name(self) -> str:
        """``Namespace.Outer.Inner``, the canonical id of a source type."""
        if self.containing_type is not None:
            return f"{self.containing_type.full_name}.{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def is_value_type(self) -> bool:
        return self.kind in ("struct", "enum") or self.full_name in REFERENCE_STRUCTS


@dataclass(frozen=True)
class ConstructedTypeSymbol:
    definition: NamedTypeSymbol
    type_arguments: Tuple["TypeSymbol", ...]


@dataclass(frozen=True)
class ArrayTypeSymbol:
    element: "TypeSymbol"


@dataclass(frozen=True)
class PointerTypeSymbol:
    element: "TypeSymbol"


@dataclass(frozen=True)
class TupleTypeSymbol:
    elements: Tuple["TypeSymbol", ...]


@dataclass(frozen=True)
class TypeParameterSymbol:
    name: str


@dataclass(frozen=True)
class ErrorTypeSymbol:
    name: str


TypeSymbol = Union[
    NamedTypeSymbol,
    ConstructedTypeSymbol,
    ArrayTypeSymbol,
    PointerTypeSymbol,
    TupleTypeSymbol,
    TypeParameterSymbol,
    ErrorTypeSymbol,
]
Container = Union[NamespaceSymbol, NamedTypeSymbol]


@dataclass(frozen=True)
class LookupContext:
    """Where a type expression is written.

    ``types`` lists the enclosing declarations innermost first.
    ``skip_usings`` names a block whose using directives must be ignored,
    which is how alias targets are bound.
    """
    scope: NamespaceScope
    types: Tuple[TypeDeclaration, ...] = ()
    method: Optional[MethodDecl] = None
    skip_usings: Optional[NamespaceScope] = None


# ===================================================================
# Compilation
# ===================================================================

class Compilation:
    """Symbol table and binder over one immutable set of syntax trees."""

    def __init__(self, trees: Iterable[SyntaxTree]) -> None:
        self.trees: List[SyntaxTree] = list(trees)
        self._namespaces: Dict[str, NamespaceSymbol] = {"": NamespaceSymbol(name="")}
        self._by_declaration: Dict[TypeDeclaration, NamedTypeSymbol] = {}
        self._global_usings: List[UsingDirective] = []

        self._add_reference_types()
        for tree in self.trees:
            for scope in tree.all_scopes():
                self._ensure_namespace(scope.name)
            self._global_usings.extend(u for u in tree.root.usings if u.is_global)
            for decl in tree.type_declarations():
                self._declare(decl, self._namespaces[decl.namespace], None)

        logger.debug(
            "Compilation bound %d trees, %d source type symbols",
            len(self.trees), len(set(self._by_declaration.values())),
        )

    # ------------------------------------------------------------------
    # Collaborator contract
    # ------------------------------------------------------------------

    def declared_symbol_of(self, decl: TypeDeclaration) -> Optional[NamedTypeSymbol]:
        return self._by_declaration.get(decl)

    def type_of(self, expr: TypeExpr, context: LookupContext) -> TypeSymbol:
        kind = expr.kind
        if kind == PREDEFINED:
            return self._predefined(expr.name) or ErrorTypeSymbol(expr.text)
        if kind in (NAME, GENERIC):
            found = self._lookup_simple(expr.name, expr.arity, context)
            if found is None:
                return ErrorTypeSymbol(expr.text)
            return self._construct(found, expr, context)
        if kind == QUALIFIED:
            return self._bind_qualified(expr, context)
        if kind == ALIAS_QUALIFIED:
            return self._bind_member(self._alias_root(expr.name, context), expr.element, expr, context)
        if kind == ARRAY:
            return ArrayTypeSymbol(self.type_of(expr.element, context))
        if kind == POINTER:
            return PointerTypeSymbol(self.type_of(expr.element, context))
        if kind == NULLABLE:
            inner = self.type_of(expr.element, context)
            nullable = self._reference_type("System", "Nullable", 1)
            if isinstance(inner, NamedTypeSymbol) and inner.is_value_type and nullable is not None:
                return ConstructedTypeSymbol(nullable, (inner,))
            return inner
        if kind == TUPLE:
            return TupleTypeSymbol(tuple(self.type_of(a, context) for a in expr.arguments))
        return ErrorTypeSymbol(expr.text)

    @staticmethod
    def is_declared_in_analyzed_set(symbol: TypeSymbol) -> bool:
        if isinstance(symbol, ConstructedTypeSymbol):
            symbol = symbol.definition
        return isinstance(symbol, NamedTypeSymbol) and symbol.in_source

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    @staticmethod
    def context_for(decl: TypeDeclaration, method: Optional[MethodDecl] = None) -> LookupContext:
        return LookupContext(scope=decl.scope, types=tuple(decl.enclosing_types()), method=method)

    # ------------------------------------------------------------------
    # Symbol table construction
    # ------------------------------------------------------------------

    def _add_reference_types(self) -> None:
        for ns_name, names in REFERENCE_TYPES.items():
            ns = self._ensure_namespace(ns_name)
            for entry in names:
                name, _, arity = entry.partition("`")
                symbol = NamedTypeSymbol(
                    name=name,
                    arity=int(arity or 0),
                    kind="class",
                    namespace=ns_name,
                    in_source=False,
                )
                ns.types[(symbol.name, symbol.arity)] = symbol
        for name in PREDEFINED_TYPES.values():
            symbol = self._reference_type("System", name, 0)
            if symbol is not None:
                symbol.is_predefined = True

    def _ensure_namespace(self, name: str) -> NamespaceSymbol:
        parts = name.split(".") if name else []
        for i in range(1, len(parts) + 1):
            prefix = ".".join(parts[:i])
            if prefix not in self._namespaces:
                self._namespaces[prefix] = NamespaceSymbol(name=prefix)
        return self._namespaces[name]

    def _declare(
        self,
        decl: TypeDeclaration,
        ns: NamespaceSymbol,
        containing: Optional[NamedTypeSymbol],
    ) -> None:
        key = (decl.name, decl.arity)
        table = containing.nested if containing is not None else ns.types
        symbol = table.get(key)
        if symbol is None or not symbol.in_source:
            symbol = NamedTypeSymbol(
                name=decl.name,
                arity=decl.arity,
                kind="struct" if decl.is_record_struct else decl.kind,
                namespace=ns.name,
                in_source=True,
                containing_type=containing,
            )
            table[key] = symbol
        symbol.declarations.append(decl)
        self._by_declaration[decl] = symbol
        for inner in decl.nested:
            self._declare(inner, ns, symbol)

    def _reference_type(self, namespace: str, name: str, arity: int) -> Optional[NamedTypeSymbol]:
        ns = self._namespaces.get(namespace)
        return ns.types.get((name, arity)) if ns is not None else None

    def _predefined(self, keyword: str) -> Optional[NamedTypeSymbol]:
        name = PREDEFINED_TYPES.get(keyword)
        return self._reference_type("System", name, 0) if name else None

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _construct(self, found: TypeSymbol, expr: TypeExpr, context: LookupContext) -> TypeSymbol:
        if isinstance(found, NamedTypeSymbol) and expr.kind == GENERIC:
            args = tuple(self.type_of(a, context) for a in expr.arguments)
            return ConstructedTypeSymbol(found, args)
        return found

    def _lookup_simple(self, name: str, arity: int, context: LookupContext) -> Optional[TypeSymbol]:
        if arity == 0 and context.method is not None and name in context.method.type_parameters:
            return TypeParameterSymbol(name)

        for decl in context.types:
            if arity == 0 and name in decl.type_parameters:
                return TypeParameterSymbol(name)
            symbol = self._by_declaration.get(decl)
            if symbol is not None and (name, arity) in symbol.nested:
                return symbol.nested[(name, arity)]

        for block in context.scope.chain():
            for ns_name in _namespace_prefixes(block):
                ns = self._namespaces.get(ns_name)
                if ns is not None and (name, arity) in ns.types:
                    return ns.types[(name, arity)]
            if block is context.skip_usings:
                continue
            found = self._lookup_in_usings(name, arity, block)
            if found is not None:
                return found
        return None

    def _usings_of(self, block: NamespaceScope) -> List[UsingDirective]:
        if block.parent is None:
            return [u for u in block.usings if not u.is_global] + self._global_usings
        return list(block.usings)

    def _lookup_in_usings(self, name: str, arity: int, block: NamespaceScope) -> Optional[TypeSymbol]:
        usings = self._usings_of(block)

        if arity == 0:
            for using in usings:
                if using.alias == name:
                    return self.type_of(using.target, self._alias_context(block))

        candidates: List[NamedTypeSymbol] = []
        for using in usings:
            if using.alias is not None:
                continue
            if using.is_static:
                container = self._resolve_container(using.target, self._alias_context(block))
                if isinstance(container, NamedTypeSymbol):
                    found = container.nested.get((name, arity))
                    if found is not None:
                        candidates.append(found)
                continue
            ns = self._find_namespace(using.target.dotted_name(), block)
            if ns is not None and (name, arity) in ns.types:
                candidates.append(ns.types[(name, arity)])

        unique = list(dict.fromkeys(candidates))
        if len(unique) == 1:
            return unique[0]
        if len(unique) > 1:
            logger.debug(
                "Ambiguous reference '%s' between %s",
                name, ", ".join(s.full_name for s in unique),
            )
            return ErrorTypeSymbol(name)
        return None

    def _alias_context(self, block: NamespaceScope) -> LookupContext:
        return LookupContext(scope=block, skip_usings=block)

    def _find_namespace(self, dotted: str, block: NamespaceScope) -> Optional[NamespaceSymbol]:
        for scope in block.chain():
            if scope.name:
                candidate = self._namespaces.get(f"{scope.name}.{dotted}")
                if candidate is not None:
                    return candidate
        return self._namespaces.get(dotted)

    def _bind_qualified(self, expr: TypeExpr, context: LookupContext) -> TypeSymbol:
        container = self._resolve_container(expr.qualifier, context)
        return self._bind_member(container, expr.element, expr, context)

    def _bind_member(
        self,
        container: Optional[Container],
        right: Optional[TypeExpr],
        whole: TypeExpr,
        context: LookupContext,
    ) -> TypeSymbol:
        if container is None or right is None:
            return ErrorTypeSymbol(whole.text)
        key = (right.name, right.arity)
        if isinstance(container, NamespaceSymbol):
            found = container.types.get(key)
        else:
            found = container.nested.get(key)
        if found is None:
            return ErrorTypeSymbol(whole.text)
        return self._construct(found, right, context)

    def _resolve_container(self, expr: Optional[TypeExpr], context: LookupContext) -> Optional[Container]:
        """Bind the left side of a qualified name to a namespace or type."""
        if expr is None:
            return None
        if expr.kind in (NAME, GENERIC):
            found = self._lookup_simple(expr.name, expr.arity, context)
            if isinstance(found, ConstructedTypeSymbol):
                return found.definition
            if isinstance(found, NamedTypeSymbol):
                return found
            if expr.kind == NAME:
                aliased = self._namespace_alias(expr.name, context)
                if aliased is not None:
                    return aliased
                return self._find_namespace(expr.name, context.scope)
            return None
        if expr.kind == QUALIFIED:
            outer = self._resolve_container(expr.qualifier, context)
            return self._member_container(outer, expr.element)
        if expr.kind == ALIAS_QUALIFIED:
            return self._member_container(self._alias_root(expr.name, context), expr.element)
        return None

    def _member_container(self, outer: Optional[Container], right: Optional[TypeExpr]) -> Optional[Container]:
        if outer is None or right is None:
            return None
        key = (right.name, right.arity)
        if isinstance(outer, NamespaceSymbol):
            if right.arity == 0:
                child = self._namespaces.get(f"{outer.name}.{right.name}" if outer.name else right.name)
                if child is not None:
                    return child
            return outer.types.get(key)
        return outer.nested.get(key)

    def _alias_root(self, alias: str, context: LookupContext) -> Optional[NamespaceSymbol]:
        if alias == "global":
            return self._namespaces[""]
        return self._namespace_alias(alias, context)

    def _namespace_alias(self, alias: str, context: LookupContext) -> Optional[NamespaceSymbol]:
        for block in context.scope.chain():
            if block is context.skip_usings:
                continue
            for using in self._usings_of(block):
                if using.alias == alias:
                    return self._find_namespace(using.target.dotted_name(), block)
        return None


def _namespace_prefixes(block: NamespaceScope) -> List[str]:
    """Namespaces a block declares into, innermost first.

    ``namespace A.B { }`` directly inside a file yields ``["A.B", "A"]``;
    the compilation unit yields the global namespace ``[""]``.
    """
    if block.parent is None:
        return [""]
    stop = block.parent.name
    prefixes: List[str] = []
    current = block.name
    while current and current != stop:
        prefixes.append(current)
        current = current.rpartition(".")[0]
    return prefixes


def canonical_id(symbol: TypeSymbol) -> str:
    if isinstance(symbol, ConstructedTypeSymbol):
        symbol = symbol.definition
    if isinstance(symbol, NamedTypeSymbol):
        return symbol.full_name
    return getattr(symbol, "name", str(symbol))
