"""
Mermaid flowchart grammar.

Tokenizes flowchart text into statements and emits it back. Covers the
subset the assistant is asked to produce:

    A[Label]              node declaration (also (), {}, [[ ]], [( )], ...)
    A --> B --> C         edge chain
    A -- text --> B       edge with an inline label
    A -->|text| B         edge with a pipe label
    A & B --> C           node groups
    A:::hot               class suffix

Keyword lines (subgraph, end, style, ...) and %% comments are not tokenized,
they are carried through as directives.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


CANONICAL_DIRECTION = "TD"

HEADER_RE = re.compile(
    r"^(flowchart|graph)(?=\s|;|$)"
    r"(?:\s+(TD|TB|BT|RL|LR)(?=\s|;|$))?"
    r"\s*;?\s*(.*)$",
    re.IGNORECASE,
)

CONNECTOR_TOKEN_RE = re.compile(r"-{2,}>|-{3,}|-\.+-?>|={2,}>")

DIRECTIVE_KEYWORDS = {
    "subgraph",
    "direction",
    "classDef",
    "class",
    "style",
    "linkStyle",
    "click",
}

# (opener, closer), longest openers first
SHAPES: List[Tuple[str, str]] = [
    ("([", "])"),
    ("[[", "]]"),
    ("[(", ")]"),
    ("((", "))"),
    ("{{", "}}"),
    ("[", "]"),
    ("(", ")"),
    ("{", "}"),
]

_ID_STOP_CHARS = set('[](){}"|;&')

_PLAIN_LINKS = [
    (re.compile(r"-{2,}>"), "-->"),
    (re.compile(r"-\.+->"), "-.->"),
    (re.compile(r"={2,}>"), "==>"),
    (re.compile(r"-{3,}"), "---"),
]

_INLINE_LINKS = [
    (re.compile(r"--(?!-)\s*(?P<text>[^>\s-].*?)\s*-{2,}>"), "-->"),
    (re.compile(r"--(?!-)\s*(?P<text>[^>\s-].*?)\s*-{3,}"), "---"),
    (re.compile(r"-\.\s*(?P<text>[^\s.>-].*?)\s*\.+->"), "-.->"),
    (re.compile(r"==(?!=)\s*(?P<text>[^>\s=].*?)\s*={2,}>"), "==>"),
]

_PIPE_LABEL_RE = re.compile(r"\s*\|(?P<text>[^|]*)\|")
_CLASS_SUFFIX_RE = re.compile(r":::([\w-]+)")


class MermaidSyntaxError(ValueError):
    """Raised when flowchart text cannot be tokenized."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is not None:
            return f"Parse error on line {self.line}: {self.message}"
        return self.message


@dataclass
class FlowNode:
    id: str
    label: Optional[str] = None
    shape: Optional[Tuple[str, str]] = None
    quoted: bool = False
    css_class: Optional[str] = None

    @property
    def is_declaration(self) -> bool:
        return self.label is not None


@dataclass
class FlowLink:
    arrow: str
    text: Optional[str] = None
    inline: bool = False


@dataclass
class Statement:
    groups: List[List[FlowNode]]
    links: List[FlowLink] = field(default_factory=list)
    terminated: bool = False

    @property
    def is_edge(self) -> bool:
        return bool(self.links)

    def nodes(self) -> Iterator[FlowNode]:
        for group in self.groups:
            yield from group

    def edges(self) -> Iterator[Tuple[FlowNode, FlowLink, FlowNode]]:
        for index, link in enumerate(self.links):
            for source in self.groups[index]:
                for target in self.groups[index + 1]:
                    yield source, link, target


@dataclass
class FlowchartDocument:
    direction: str
    statements: List[Statement] = field(default_factory=list)
    directives: List[str] = field(default_factory=list)

    def nodes(self) -> Iterator[FlowNode]:
        for statement in self.statements:
            yield from statement.nodes()

    def edges(self) -> Iterator[Tuple[FlowNode, FlowLink, FlowNode]]:
        for statement in self.statements:
            yield from statement.edges()


# ----------------------------
# Line classification
# ----------------------------

def match_header(line: str) -> Optional[Tuple[str, str]]:
    """
    Returns (direction, trailing text) when the line is a flowchart header.

    A bare keyword counts as a header; a keyword followed by other text only
    counts when a direction is present, so a node named "graph" is not
    mistaken for one.
    """
    match = HEADER_RE.match(line.strip())
    if not match:
        return None

    direction, rest = match.group(2), match.group(3).strip()
    if direction is None and rest:
        return None

    return (direction or CANONICAL_DIRECTION).upper(), rest


def has_connector(text: str) -> bool:
    return bool(CONNECTOR_TOKEN_RE.search(text))


def is_directive_line(line: str) -> bool:
    stripped = line.strip()
    if stripped.startswith("%%"):
        return True
    if stripped.rstrip(";").strip() == "end":
        return True

    keyword = stripped.split(None, 1)[0] if stripped else ""
    return keyword in DIRECTIVE_KEYWORDS and not has_connector(stripped)


# ----------------------------
# Tokenizer
# ----------------------------

def _skip_ws(line: str, i: int) -> int:
    while i < len(line) and line[i].isspace():
        i += 1
    return i


def _at_id_stop(line: str, i: int) -> bool:
    c = line[i]
    if c.isspace() or c in _ID_STOP_CHARS:
        return True
    if line.startswith(":::", i):
        return True
    return line.startswith(("--", "-.", "=="), i)


def _read_quoted(line: str, i: int) -> Optional[Tuple[str, int]]:
    """Reads a double-quoted string starting at line[i]. Handles \\" escapes."""
    chars = []
    j = i + 1
    while j < len(line):
        c = line[j]
        if c == "\\" and j + 1 < len(line) and line[j + 1] == '"':
            chars.append('"')
            j += 2
            continue
        if c == '"':
            return "".join(chars), j + 1
        chars.append(c)
        j += 1
    return None


def _find_closer(line: str, start: int, opener: str, closer: str) -> int:
    """Index of the closer for a label starting at `start`, or -1."""
    if len(opener) == 1:
        depth = 1
        for k in range(start, len(line)):
            if line[k] == opener:
                depth += 1
            elif line[k] == closer:
                depth -= 1
                if depth == 0:
                    return k
    return line.find(closer, start)


def _read_label(
    line: str, i: int, opener: str, closer: str
) -> Optional[Tuple[str, bool, int]]:
    start = i + len(opener)

    j = _skip_ws(line, start)
    if j < len(line) and line[j] == '"':
        quoted = _read_quoted(line, j)
        if quoted is not None:
            text, end = quoted
            end = _skip_ws(line, end)
            if line.startswith(closer, end):
                return text, True, end + len(closer)

    k = _find_closer(line, start, opener, closer)
    if k < 0:
        return None
    return line[start:k].strip(), False, k + len(closer)


def _read_shape(line: str, i: int) -> Tuple[str, Tuple[str, str], bool, int]:
    candidates = [(o, c) for o, c in SHAPES if line.startswith(o, i)]

    for opener, closer in candidates:
        result = _read_label(line, i, opener, closer)
        if result is not None:
            text, quoted, end = result
            return text, (opener, closer), quoted, end

    # Unterminated: the rest of the line is the label
    opener, closer = candidates[-1]
    text = line[i + len(opener):].strip().rstrip(";").strip()
    return text, (opener, closer), False, len(line)


def _read_node(line: str, i: int) -> Tuple[FlowNode, int]:
    j = i
    while j < len(line) and not _at_id_stop(line, j):
        j += 1
    node = FlowNode(id=line[i:j])

    if j < len(line) and line[j] in "[({":
        node.label, node.shape, node.quoted, j = _read_shape(line, j)
    elif j < len(line) and line[j] == '"' and not node.id:
        quoted = _read_quoted(line, j)
        if quoted is None:
            raise MermaidSyntaxError("Unterminated string", column=j)
        node.label, j = quoted
        node.shape, node.quoted = ("[", "]"), True

    if not node.id and node.label is None:
        found = repr(line[j:j + 10]) if j < len(line) else "end of line"
        raise MermaidSyntaxError(f"Expected a node, got {found}", column=j)

    suffix = _CLASS_SUFFIX_RE.match(line, j)
    if suffix:
        node.css_class = suffix.group(1)
        j = suffix.end()

    return node, j


def _read_group(line: str, i: int) -> Tuple[List[FlowNode], int]:
    node, i = _read_node(line, i)
    group = [node]
    while True:
        j = _skip_ws(line, i)
        if j >= len(line) or line[j] != "&":
            return group, i
        node, i = _read_node(line, _skip_ws(line, j + 1))
        group.append(node)


def _read_link(line: str, i: int) -> Optional[Tuple[FlowLink, int]]:
    for pattern, arrow in _PLAIN_LINKS:
        match = pattern.match(line, i)
        if match:
            end = match.end()
            pipe = _PIPE_LABEL_RE.match(line, end)
            if pipe and pipe.group("text").strip():
                return FlowLink(arrow, pipe.group("text").strip()), pipe.end()
            if pipe:
                end = pipe.end()
            return FlowLink(arrow), end

    for pattern, arrow in _INLINE_LINKS:
        match = pattern.match(line, i)
        if match:
            return FlowLink(arrow, match.group("text").strip(), inline=True), match.end()

    return None


def _read_statement(line: str, i: int) -> Tuple[Statement, int]:
    group, i = _read_group(line, i)
    statement = Statement(groups=[group])

    while True:
        i = _skip_ws(line, i)
        if i >= len(line):
            return statement, i
        if line[i] == ";":
            statement.terminated = True
            return statement, i + 1

        link = _read_link(line, i)
        if link is None:
            raise MermaidSyntaxError(f"Unexpected {line[i:i + 10]!r}", column=i)

        statement.links.append(link[0])
        group, i = _read_group(line, _skip_ws(line, link[1]))
        statement.groups.append(group)


def parse_line(line: str) -> List[Statement]:
    """Tokenizes one line of flowchart text. Raises MermaidSyntaxError."""
    statements = []
    i = 0
    while True:
        i = _skip_ws(line, i)
        if i >= len(line):
            return statements
        if line[i] == ";":
            i += 1
            continue
        statement, i = _read_statement(line, i)
        statements.append(statement)


def parse_flowchart(text: str) -> FlowchartDocument:
    """
    Strict parse of a whole flowchart definition.

    The first non-blank line must be a header. Raises MermaidSyntaxError
    carrying the 1-based line number of the first offending line.
    """
    numbered = [(n, l.strip()) for n, l in enumerate(text.splitlines(), start=1) if l.strip()]
    if not numbered:
        raise MermaidSyntaxError("Empty flowchart definition", line=1)

    first_no, first = numbered[0]
    header = match_header(first)
    if header is None:
        raise MermaidSyntaxError(
            f"Expected 'flowchart <direction>' header, got {first[:30]!r}",
            line=first_no,
        )

    direction, rest = header
    document = FlowchartDocument(direction=direction)
    body = ([(first_no, rest)] if rest else []) + numbered[1:]

    for line_no, line in body:
        if is_directive_line(line):
            document.directives.append(line)
            continue
        try:
            document.statements.extend(parse_line(line))
        except MermaidSyntaxError as e:
            raise MermaidSyntaxError(e.message, line=line_no, column=e.column) from e

    return document


# ----------------------------
# Emitter
# ----------------------------

def format_node(node: FlowNode) -> str:
    text = node.id
    if node.label is not None:
        opener, closer = node.shape or ("[", "]")
        label = f'"{node.label}"' if node.quoted else node.label
        text = f"{text}{opener}{label}{closer}"
    if node.css_class:
        text = f"{text}:::{node.css_class}"
    return text


def format_link(link: FlowLink) -> str:
    if not link.text:
        return f" {link.arrow} "
    if not link.inline:
        return f" {link.arrow}|{link.text}| "
    return {
        "-->": f" -- {link.text} --> ",
        "---": f" -- {link.text} --- ",
        "-.->": f" -. {link.text} .-> ",
        "==>": f" == {link.text} ==> ",
    }[link.arrow]


def format_statement(statement: Statement) -> str:
    """Emits a statement; edges end with one ';', declarations with none."""
    parts = [" & ".join(format_node(n) for n in statement.groups[0])]
    for link, group in zip(statement.links, statement.groups[1:]):
        parts.append(format_link(link))
        parts.append(" & ".join(format_node(n) for n in group))

    text = "".join(parts)
    return f"{text};" if statement.is_edge else text
