"""End-to-end graph extraction tests over in-memory C# sources."""

import pytest

from typegraph_cli.analyzer import analyze_sources, scan_types
from typegraph_cli.assembler import GraphAssembler
from typegraph_cli.collector import DeclarationCollector
from typegraph_cli.errors import DeclarationConflictError, InputError, ParseFailure
from typegraph_cli.graph_export import graph_to_json
from typegraph_cli.models import Edge, Relation, ScanResult, TypeNode, UsageRef
from typegraph_cli.parser import CSharpParser
from typegraph_cli.relationships import base_relation

MODES = ["syntactic", "semantic"]


def _edges(graph):
    return [(e.src, e.dst, e.rel) for e in graph.edges]


# ===================================================================
# Base-list rules
# ===================================================================

@pytest.mark.parametrize(
    "kind,index,expected",
    [
        ("class", 0, "inherits"),
        ("class", 1, "implements"),
        ("record", 0, "inherits"),
        ("record", 2, "implements"),
        ("struct", 0, "implements"),
        ("interface", 0, "inherits"),
        ("interface", 1, "inherits"),
        ("enum", 0, None),
    ],
)
def test_base_relation(kind, index, expected):
    assert base_relation(kind, index) == expected


@pytest.mark.parametrize("mode", MODES)
def test_class_inherits_base(make_sources, mode):
    graph = analyze_sources(make_sources({"A.cs": "class A : B { }", "B.cs": "class B { }"}), mode=mode)
    assert graph.get("A").inherits == ("B",)
    assert graph.get("B").used_by == ("A",)
    assert _edges(graph) == [("A", "B", "inherits")]


@pytest.mark.parametrize("mode", MODES)
def test_interface_inherits_interface(make_sources, mode):
    graph = analyze_sources(
        make_sources({"I.cs": "interface IFoo { }\ninterface IBar : IFoo { }"}), mode=mode
    )
    assert graph.get("IBar").inherits == ("IFoo",)
    assert graph.get("IFoo").used_by == ("IBar",)


@pytest.mark.parametrize("mode", MODES)
def test_class_base_list_first_inherits_rest_implement(make_sources, mode):
    text = "class X { }\ninterface IY { }\ninterface IZ { }\nclass C : X, IZ, IY { }"
    node = analyze_sources(make_sources({"C.cs": text}), mode=mode).get("C")
    assert node.inherits == ("X",)
    assert node.implements == ("IY", "IZ")


@pytest.mark.parametrize("mode", MODES)
def test_struct_base_list_all_implement(make_sources, mode):
    text = "interface IX { }\ninterface IY { }\nstruct S : IX, IY { }"
    node = analyze_sources(make_sources({"S.cs": text}), mode=mode).get("S")
    assert node.inherits == ()
    assert node.implements == ("IX", "IY")


def test_generic_base_names_container(make_sources):
    text = "class Repo<T> { }\nclass Order { }\nclass Orders : Repo<Order> { }"
    graph = analyze_sources(make_sources({"R.cs": text}))
    assert graph.get("Orders").inherits == ("Repo",)
    assert graph.get("Order").used_by == ()


def test_enum_has_no_relations(make_sources):
    graph = analyze_sources(make_sources({"E.cs": "enum Color : byte { Red, Green }"}))
    assert graph.get("Color").kind == "enum"
    assert graph.edges == ()


# ===================================================================
# Mode divergence
# ===================================================================

def test_external_base_syntactic_keeps_edge(make_sources):
    graph = analyze_sources(make_sources({"A.cs": "class A : ExternalBase { }"}), mode="syntactic")
    assert graph.get("A").inherits == ("ExternalBase",)
    assert _edges(graph) == [("A", "ExternalBase", "inherits")]
    assert graph.external_ref_count == 1


def test_external_base_semantic_counts_only(make_sources):
    graph = analyze_sources(make_sources({"A.cs": "class A : ExternalBase { }"}), mode="semantic")
    assert graph.get("A").inherits == ()
    assert graph.edges == ()
    assert graph.external_ref_count == 1


@pytest.mark.parametrize("mode", MODES)
def test_external_base_and_member_count_once(make_sources, mode):
    graph = analyze_sources(make_sources({"A.cs": "class A : Ext.Thing { Ext.Thing t; }"}), mode=mode)
    assert graph.external_ref_count == 1


def test_external_count_is_distinct(make_sources):
    text = "using System;\nclass A : IDisposable { Guid a; Guid b; }\nclass B : IDisposable { }"
    assert analyze_sources(make_sources({"A.cs": text}), mode="semantic").external_ref_count == 2
    assert analyze_sources(make_sources({"A.cs": text}), mode="syntactic").external_ref_count == 2


# ===================================================================
# Member usages
# ===================================================================

@pytest.mark.parametrize("mode", MODES)
def test_field_usage(make_sources, mode):
    graph = analyze_sources(make_sources({"C.cs": "class C { public D d; }\nclass D { }"}), mode=mode)
    assert graph.get("C").uses == (UsageRef(target="D", via="field", member="d"),)
    assert _edges(graph).count(("C", "D", "field")) == 1
    assert graph.get("D").used_by == ("C",)


@pytest.mark.parametrize("mode", MODES)
@pytest.mark.parametrize("written", ["List<Foo>", "Foo?", "Foo[]", "Foo*"])
def test_shapes_unwrap_to_one_usage(make_sources, mode, written):
    text = (
        "using System.Collections.Generic;\n"
        "struct Foo { }\n"
        f"unsafe class C {{ public {written} Item {{ get; set; }} }}"
    )
    graph = analyze_sources(make_sources({"C.cs": text}), mode=mode)
    assert graph.get("C").uses == (UsageRef(target="Foo", via="property", member="Item"),)
    assert _edges(graph) == [("C", "Foo", "property")]


@pytest.mark.parametrize("mode", MODES)
def test_co_typed_field_declarators(make_sources, mode):
    graph = analyze_sources(make_sources({"C.cs": "class D { }\nclass C { D first, second; }"}), mode=mode)
    assert [u.member for u in graph.get("C").uses] == ["first", "second"]
    assert _edges(graph) == [("C", "D", "field")]


@pytest.mark.parametrize("mode", MODES)
def test_predefined_and_tuple_members_ignored(make_sources, mode):
    text = "class D { }\nclass C { int a; string b; (D, D) pair; }"
    graph = analyze_sources(make_sources({"C.cs": text}), mode=mode)
    assert graph.get("C").uses == ()
    assert graph.external_ref_count == 0


def test_syntactic_ambiguous_name_stays_bare(make_sources):
    graph = analyze_sources(make_sources({
        "A.cs": "namespace A { class Node { } }",
        "B.cs": "namespace B { class Node { } }",
        "C.cs": "namespace App { class Holder { Node node; } }",
    }), mode="syntactic")
    assert graph.get("App.Holder").uses == (UsageRef(target="Node", via="field", member="node"),)
    assert ("App.Holder", "Node", "field") in _edges(graph)
    assert graph.get("A.Node").used_by == ()


def test_semantic_qualifies_through_usings(make_sources):
    graph = analyze_sources(make_sources({
        "A.cs": "namespace A { class Node { } }",
        "B.cs": "namespace B { class Node { } }",
        "C.cs": "using B;\nnamespace App { class Holder { Node node; } }",
    }), mode="semantic")
    assert graph.get("App.Holder").uses == (UsageRef(target="B.Node", via="field", member="node"),)
    assert graph.get("B.Node").used_by == ("App.Holder",)


# ===================================================================
# Method signatures
# ===================================================================

METHOD_SOURCE = """
class Order { }
class Customer { }
class Service
{
    public Service(Customer owner) { }
    public Order Place(Customer customer, int count) { return null; }
    public void Run(Order order) { }
    public T Echo<T>(T value) { return value; }
}
"""


@pytest.mark.parametrize("mode", MODES)
def test_method_signatures_off_by_default(make_sources, mode):
    graph = analyze_sources(make_sources({"S.cs": METHOD_SOURCE}), mode=mode)
    assert graph.get("Service").uses == ()


@pytest.mark.parametrize("mode", MODES)
def test_method_signatures_included(make_sources, mode):
    graph = analyze_sources(
        make_sources({"S.cs": METHOD_SOURCE}), mode=mode, include_method_signatures=True
    )
    assert graph.get("Service").uses == (
        UsageRef(target="Customer", via="param", member="customer"),
        UsageRef(target="Customer", via="param", member="owner"),
        UsageRef(target="Order", via="param", member="order"),
        UsageRef(target="Order", via="return", member="Place"),
    )
    assert graph.external_ref_count == 0


@pytest.mark.parametrize("mode", MODES)
def test_params_array_parameter_is_scanned(make_sources, mode):
    text = "class Foo { }\nclass C { void M(params Foo[] rest) { } }"
    graph = analyze_sources(make_sources({"C.cs": text}), mode=mode, include_method_signatures=True)
    assert graph.get("C").uses == (UsageRef(target="Foo", via="param", member="rest"),)
    assert _edges(graph) == [("C", "Foo", "param")]


# ===================================================================
# Collection, merging and failures)
# ===================================================================

@pytest.mark.parametrize("mode", MODES)
def test_partial_declarations_merge(make_sources, mode):
    graph = analyze_sources(make_sources({
        "A1.cs": "namespace N { partial class A : B { B first; } }",
        "A2.cs": "namespace N { partial class A { B second; } class B { } }",
    }), mode=mode)
    node = graph.get("N.A")
    assert node.source_file == "A1.cs"
    assert [u.member for u in node.uses] == ["first", "second"]
    assert _edges(graph) == [("N.A", "N.B", "field"), ("N.A", "N.B", "inherits")]
    assert [t.id for t in graph.types] == ["N.A", "N.B"]


def test_nested_types_not_nodes(make_sources):
    text = "class Outer { class Inner { Outer back; } Inner inner; }"
    graph = analyze_sources(make_sources({"O.cs": text}), mode="syntactic")
    assert [t.id for t in graph.types] == ["Outer"]
    assert graph.get("Outer").uses == ()
    assert graph.external_ref_count == 1


def test_conflicting_kinds_first_wins(make_sources, caplog):
    graph = analyze_sources(make_sources({
        "A.cs": "namespace N { class Thing { } }",
        "B.cs": "namespace N { interface Thing { } }",
    }))
    assert graph.get("N.Thing").kind == "class"
    assert "keeping the first" in caplog.text


def test_conflicting_kinds_strict_raises(make_sources):
    with pytest.raises(DeclarationConflictError):
        analyze_sources(make_sources({
            "A.cs": "namespace N { class Thing { } }",
            "B.cs": "namespace N { struct Thing { } }",
        }), strict=True)


def test_parse_failure_aborts_run(make_sources):
    with pytest.raises(ParseFailure):
        analyze_sources(make_sources({"Good.cs": "class Good { }", "Bad.cs": "class Bad {"}))


def test_empty_input_rejected():
    with pytest.raises(InputError):
        analyze_sources([])


# ===================================================================
# Ordering, determinism and assembly
# ===================================================================

def test_nodes_sorted_by_namespace_then_name(make_sources):
    graph = analyze_sources(make_sources({
        "Z.cs": "namespace Zed { class Alpha { } }",
        "A.cs": "namespace Acme { class beta { } class Beta { } }",
        "G.cs": "class Global { }",
    }))
    assert [t.id for t in graph.types] == ["Global", "Acme.Beta", "Acme.beta", "Zed.Alpha"]


@pytest.mark.parametrize("mode", MODES)
def test_output_is_deterministic(make_sources, mode):
    files = {
        "B.cs": "namespace N { class B : A, IX { A a; IX x; } }",
        "A.cs": "namespace N { class A { B b; } interface IX { } }",
    }
    first = graph_to_json(analyze_sources(make_sources(files), mode=mode))
    reordered = dict(reversed(list(files.items())))
    second = graph_to_json(analyze_sources(make_sources(reordered), mode=mode))
    assert first == second


def test_uses_and_used_by_are_consistent(make_sources):
    graph = analyze_sources(make_sources({
        "M.cs": "class A { B b; C c; }\nclass B { A a; }\nclass C : B { }",
    }))
    for edge in graph.edges:
        if edge.rel in ("field", "property", "return", "param"):
            assert edge.src in graph.get(edge.dst).used_by
            assert any(u.target == edge.dst and u.via == edge.rel for u in graph.get(edge.src).uses)


def test_assembler_collapses_repeated_relations():
    nodes = {
        "A": TypeNode(id="A", name="A", namespace="", kind="class", source_file="A.cs"),
        "B": TypeNode(id="B", name="B", namespace="", kind="class", source_file="B.cs"),
    }
    scan = ScanResult(
        relations=[
            Relation("A", "B", "field", "x"),
            Relation("A", "B", "field", "x"),
            Relation("A", "B", "field", "y"),
            Relation("A", "B", "inherits"),
            Relation("A", "B", "inherits"),
        ],
        externals=["Ext", "Ext"],
    )
    graph = GraphAssembler().assemble(nodes, scan)
    assert graph.edges == (Edge("A", "B", "field"), Edge("A", "B", "inherits"))
    assert [u.member for u in graph.get("A").uses] == ["x", "y"]
    assert graph.get("B").used_by == ("A",)
    assert graph.external_ref_count == 1


def test_collector_assigns_ids():
    parser = CSharpParser()
    trees = [
        parser.parse("namespace Acme.Core { class Widget { } }", "src/Widget.cs"),
        parser.parse("class Loose { }", "Loose.cs"),
    ]
    collected = DeclarationCollector().collect(trees)
    assert collected.ids == ["Acme.Core.Widget", "Loose"]
    assert collected.types["Acme.Core.Widget"].source_file == "Widget.cs"


def test_scan_types_lists_declarations(make_sources):
    nodes = scan_types(make_sources({"T.cs": "namespace B { class Y { } }\nnamespace A { enum X { } }"}))
    assert [(n.id, n.kind) for n in nodes] == [("A.X", "enum"), ("B.Y", "class")]
    assert all(n.uses == () for n in nodes)
