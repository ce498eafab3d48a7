import re
import unicodedata
from typing import List

from flowchat.dsl.grammar import (
    CANONICAL_DIRECTION,
    FlowLink,
    FlowNode,
    MermaidSyntaxError,
    Statement,
    format_node,
    format_statement,
    has_connector,
    is_directive_line,
    match_header,
    parse_line,
)
from flowchat.logger import get_logger

logger = get_logger(__name__)


CANONICAL_HEADER = f"flowchart {CANONICAL_DIRECTION}"

FALLBACK_DIAGRAM = CANONICAL_HEADER + '\nerror_node["Unable to generate a flowchart"]'

MAX_LABEL_LENGTH = 100

# Characters that force a label into double quotes (whitespace also does)
LABEL_QUOTE_CHARS = set("\"()[]{},;<>|#&'")

# Edge text may contain spaces, these force quotes
LINK_QUOTE_CHARS = set("\"()[]{};<>|#&")

RESERVED_IDS = {"end", "subgraph"}

QUOTE_ENTITY = "#quot;"

_FENCE_OPEN_RE = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```$")

# ID followed by a single-bracket label, for lines the grammar rejects
_NODE_TOKEN_RE = re.compile(
    r"(?<![\w.])(?P<id>[A-Za-z0-9_]+(?:[.\-][A-Za-z0-9_]+)*)"
    r"(?P<open>[\[({])(?P<label>[^\[\](){}\"|]*)(?P<close>[\])}])"
)
_BRACKET_PAIRS = {"[": "]", "(": ")", "{": "}"}

_TYPOGRAPHIC = str.maketrans({
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "–": "-",
    "—": "-",
    "…": "...",
    " ": " ",
})


def _strip_fences(code: str) -> str:
    code = code.strip()
    code = _FENCE_OPEN_RE.sub("", code, count=1)
    code = _FENCE_CLOSE_RE.sub("", code, count=1)
    return code.strip()


def _to_ascii(text: str) -> str:
    text = text.translate(_TYPOGRAPHIC)
    return unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")


def safe_id(raw: str) -> str:
    node_id = re.sub(r"[^A-Za-z0-9_]", "_", raw)
    if node_id in RESERVED_IDS:
        node_id = f"{node_id}_"
    return node_id


def _id_from_label(label: str) -> str:
    node_id = re.sub(r"[^A-Za-z0-9_]+", "_", _to_ascii(label)).strip("_")[:40]
    return safe_id(node_id or "node")


def needs_quotes(label: str) -> bool:
    return any(c.isspace() or c in LABEL_QUOTE_CHARS for c in label)


def normalize_label(node: FlowNode) -> None:
    text = _to_ascii(node.label or "").strip()

    # A quoted label holding raw quotes falls back to an unquoted parse
    if not node.quoted and len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1].strip()

    text = text.replace("&quot;", '"').replace('"', QUOTE_ENTITY)
    if len(text) > MAX_LABEL_LENGTH:
        # don't leave half an entity behind
        text = re.sub(r"#\w*$", "", text[:MAX_LABEL_LENGTH]).rstrip()

    if not text:
        text = node.id

    node.label = text
    node.quoted = node.quoted or needs_quotes(text)


def normalize_node(node: FlowNode) -> None:
    if node.id:
        node.id = safe_id(node.id)
    else:
        node.id = _id_from_label(node.label or "")

    if node.label is not None:
        normalize_label(node)

    if node.css_class:
        node.css_class = safe_id(node.css_class)


def normalize_link(link: FlowLink) -> None:
    if link.text is None:
        return

    text = _to_ascii(link.text).strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1].strip()
    text = text.replace("&quot;", '"').replace('"', QUOTE_ENTITY)

    if not text:
        link.text = None
    elif any(c in LINK_QUOTE_CHARS for c in text):
        link.text = f'"{text}"'
    else:
        link.text = text


def normalize_statement(statement: Statement) -> str:
    for node in statement.nodes():
        normalize_node(node)
    for link in statement.links:
        normalize_link(link)
    return format_statement(statement)


def _repair_node_token(match: "re.Match") -> str:
    opener, closer = match.group("open"), match.group("close")
    if _BRACKET_PAIRS[opener] != closer:
        return match.group(0)

    node = FlowNode(id=match.group("id"), label=match.group("label"), shape=(opener, closer))
    normalize_node(node)
    return format_node(node)


def _patch_unparsed_line(line: str) -> str:
    line = _NODE_TOKEN_RE.sub(_repair_node_token, line)
    if has_connector(line):
        return line if line.endswith(";") else f"{line};"
    return re.sub(r"([\]\)\}])\s*;+$", r"\1", line)


def normalize_line(line: str) -> List[str]:
    """Returns zero or more normalized lines for one line of body text."""
    line = line.strip()
    if not line:
        return []

    if is_directive_line(line):
        return ["end"] if line.rstrip(";").strip() == "end" else [line]

    try:
        statements = parse_line(line)
    except MermaidSyntaxError as e:
        logger.warning("Keeping unparseable flowchart line %r (%s)", line, e.message)
        return [_patch_unparsed_line(line)]

    return [normalize_statement(s) for s in statements]


def is_fallback(code: str) -> bool:
    return code.strip() == FALLBACK_DIAGRAM


def normalize_mermaid(code: str) -> str:
    """
    Best-effort repair of LLM generated flowchart text.

    Never raises. Text that has neither a header nor a single edge connector
    cannot be recognized as a flowchart and yields FALLBACK_DIAGRAM.
    Applying it twice gives the same result as applying it once.
    """
    if not code or not isinstance(code, str):
        return FALLBACK_DIAGRAM

    code = _strip_fences(code)
    lines = [l.strip() for l in code.splitlines() if l.strip()]
    if not lines:
        return FALLBACK_DIAGRAM

    header_index = next(
        (i for i, l in enumerate(lines) if match_header(l) is not None),
        None,
    )

    if header_index is None:
        if not has_connector(code):
            logger.info("No flowchart header or edges found, using fallback diagram")
            return FALLBACK_DIAGRAM
        logger.debug("Prepending missing flowchart header")
        header = CANONICAL_HEADER
        body = lines
    else:
        if header_index > 0:
            logger.debug("Dropping %d line(s) before the flowchart header", header_index)
        direction, rest = match_header(lines[header_index])
        header = f"flowchart {direction}"
        body = ([rest] if rest else []) + lines[header_index + 1:]

    normalized = [header]
    for line in body:
        normalized.extend(normalize_line(line))

    return "\n".join(normalized)
