"""Tests for the flowchart tokenizer and emitter"""

import pytest

from flowchat.dsl.grammar import (
    MermaidSyntaxError,
    format_statement,
    has_connector,
    is_directive_line,
    match_header,
    parse_flowchart,
    parse_line,
)


@pytest.mark.parametrize(
    "line, expected",
    [
        ("flowchart TD", ("TD", "")),
        ("graph LR;", ("LR", "")),
        ("FLOWCHART td", ("TD", "")),
        ("flowchart", ("TD", "")),
        ("graph TB A-->B", ("TB", "A-->B")),
        ("graph --> B", None),
        ("graphics TD", None),
        ("A --> B", None),
    ],
)
def test_match_header(line, expected):
    assert match_header(line) == expected


def test_has_connector():
    assert has_connector("A --> B")
    assert has_connector("A --- B")
    assert has_connector("A -.-> B")
    assert has_connector("A ==> B")
    assert not has_connector("A[Start] B[End]")
    assert not has_connector("fetch-data")


def test_directive_lines():
    assert is_directive_line("subgraph Backend")
    assert is_directive_line("end")
    assert is_directive_line("end;")
    assert is_directive_line("classDef hot fill:#f96")
    assert is_directive_line("%% a comment")
    assert not is_directive_line("class --> B")
    assert not is_directive_line("A --> B")


def test_parse_node_declaration():
    [statement] = parse_line('A["User clicks"];')
    assert not statement.is_edge
    assert statement.terminated
    [node] = list(statement.nodes())
    assert (node.id, node.label, node.shape, node.quoted) == ("A", "User clicks", ("[", "]"), True)


def test_parse_edge_chain_with_labels():
    [statement] = parse_line("A -- yes --> B -->|no| C{Retry?}")
    assert [n.id for n in statement.nodes()] == ["A", "B", "C"]
    assert [(l.arrow, l.text, l.inline) for l in statement.links] == [
        ("-->", "yes", True),
        ("-->", "no", False),
    ]
    assert statement.groups[2][0].shape == ("{", "}")


def test_parse_groups_expand_to_edges():
    [statement] = parse_line("A & B --> C & D")
    pairs = [(s.id, t.id) for s, _, t in statement.edges()]
    assert pairs == [("A", "C"), ("A", "D"), ("B", "C"), ("B", "D")]


def test_nested_brackets_in_label():
    [statement] = parse_line("A(Fetch (GET)) --> B")
    assert statement.groups[0][0].label == "Fetch (GET)"


def test_unbalanced_label_uses_first_closer():
    [statement] = parse_line("A(Fetch (GET) --> B")
    assert statement.groups[0][0].label == "Fetch (GET"
    assert statement.groups[1][0].id == "B"


def test_unterminated_label_takes_rest_of_line():
    [statement] = parse_line("A[Start here;")
    assert statement.groups[0][0].label == "Start here"


def test_escaped_quotes_in_quoted_label():
    [statement] = parse_line('A["He said \\"hi\\""]')
    assert statement.groups[0][0].label == 'He said "hi"'


def test_multiple_statements_per_line():
    statements = parse_line("A --> B; B --> C;;")
    assert len(statements) == 2
    assert all(s.terminated for s in statements)


@pytest.mark.parametrize("line", ["A --> B C", "A -->", "--> B", "A[x] B[y]"])
def test_parse_line_rejects_bad_statements(line):
    with pytest.raises(MermaidSyntaxError):
        parse_line(line)


def test_format_statement():
    [edge] = parse_line("A-- text -->B")
    [decl] = parse_line("A(Round);")
    assert format_statement(edge) == "A -- text --> B;"
    assert format_statement(decl) == "A(Round)"


def test_parse_flowchart_collects_directives():
    document = parse_flowchart(
        "flowchart LR\nsubgraph Web\nA[Page] --> B\nend\nstyle A fill:#fff"
    )
    assert document.direction == "LR"
    assert document.directives == ["subgraph Web", "end", "style A fill:#fff"]
    assert len(document.statements) == 1


def test_parse_flowchart_reports_line_numbers():
    with pytest.raises(MermaidSyntaxError) as exc:
        parse_flowchart("flowchart TD\nA --> B\n\nA --> B C")
    assert exc.value.line == 4
    assert str(exc.value).startswith("Parse error on line 4:")


def test_parse_flowchart_requires_header():
    with pytest.raises(MermaidSyntaxError) as exc:
        parse_flowchart("A --> B")
    assert exc.value.line == 1


def test_parse_flowchart_rejects_empty_text():
    with pytest.raises(MermaidSyntaxError):
        parse_flowchart("  \n ")
