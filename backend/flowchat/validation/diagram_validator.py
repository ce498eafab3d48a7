"""
Diagram Validator - Checks a flowchart definition before it is rendered.

Grammar checking is delegated to a parser collaborator (the strict flowchart
parser by default). On top of a successful parse it reports issues such as:
- Orphaned nodes (declared but never connected)
- References to nodes that are never declared
- Conflicting labels for the same node ID
- Self loops and duplicate edges
- Identifiers the renderer treats as keywords
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from flowchat.dsl.grammar import FlowchartDocument, MermaidSyntaxError, parse_flowchart
from flowchat.dsl.mermaid import RESERVED_IDS, is_fallback
from flowchat.logger import get_logger

logger = get_logger(__name__)


class ValidationSeverity(Enum):
    ERROR = "error"      # Diagram will not render
    WARNING = "warning"  # Diagram renders but has issues
    INFO = "info"        # Suggestions for improvement


@dataclass
class ValidationIssue:
    """A single validation issue found in the diagram"""
    severity: ValidationSeverity
    code: str           # Machine-readable issue code
    message: str        # Human-readable description
    node_id: Optional[str] = None
    line: Optional[int] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "line": self.line,
            "suggestion": self.suggestion,
        }


@dataclass
class DiagramValidationResult:
    """Result of diagram validation"""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    @property
    def error_message(self) -> Optional[str]:
        """Display-ready message for the first error, None when valid."""
        if self.is_valid or not self.errors:
            return None
        return f"Invalid flowchart syntax: {self.errors[0].message}"

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error_message": self.error_message,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
            "stats": self.stats,
        }

    def get_summary(self) -> str:
        status = "valid" if self.is_valid else "invalid"
        return f"{status} | errors: {len(self.errors)}, warnings: {len(self.warnings)}"


ParserFn = Callable[[str], FlowchartDocument]


class DiagramValidator:
    """
    Validates flowchart definitions.

    Usage:
        validator = DiagramValidator()
        result = validator.validate(definition)

        if not result.is_valid:
            show_banner(result.error_message)
    """

    def __init__(self, parser: ParserFn = parse_flowchart, strict_mode: bool = False):
        self.parser = parser
        self.strict_mode = strict_mode

    def validate(self, definition: str) -> DiagramValidationResult:
        """Validate a definition. Never raises."""
        if not definition or not definition.strip():
            return self._failed(
                "EMPTY_DIAGRAM",
                "The flowchart definition is empty",
                suggestion="Ask the assistant to generate the flowchart again",
            )

        if is_fallback(definition):
            return self._failed(
                "FALLBACK_DIAGRAM",
                "The assistant did not produce a recognizable flowchart",
                suggestion="Rephrase the last answer or add more detail",
            )

        try:
            document = self.parser(definition)
        except MermaidSyntaxError as e:
            return self._failed("SYNTAX_ERROR", str(e), line=e.line)
        except Exception as e:
            logger.error("Flowchart parser failed unexpectedly", exc_info=True)
            return self._failed("PARSER_FAILURE", f"Could not parse the flowchart ({e})")

        issues: List[ValidationIssue] = []
        issues.extend(self._check_empty(document))
        issues.extend(self._check_reserved_ids(document))
        issues.extend(self._check_conflicting_labels(document))
        issues.extend(self._check_undeclared_nodes(document))
        issues.extend(self._check_orphaned_nodes(document))
        issues.extend(self._check_self_loops(document))
        issues.extend(self._check_duplicate_edges(document))

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        has_warnings = any(i.severity == ValidationSeverity.WARNING for i in issues)

        is_valid = not has_errors
        if self.strict_mode:
            is_valid = not has_errors and not has_warnings

        return DiagramValidationResult(
            is_valid=is_valid,
            issues=issues,
            stats=self._calculate_stats(document),
        )

    def _failed(
        self,
        code: str,
        message: str,
        line: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> DiagramValidationResult:
        return DiagramValidationResult(
            is_valid=False,
            issues=[ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code=code,
                message=message,
                line=line,
                suggestion=suggestion,
            )],
            stats={"nodes": 0, "edges": 0},
        )

    def _check_empty(self, document: FlowchartDocument) -> List[ValidationIssue]:
        if any(True for _ in document.nodes()):
            return []
        return [ValidationIssue(
            severity=ValidationSeverity.ERROR,
            code="NO_NODES",
            message="Flowchart has no nodes",
            suggestion="Describe at least one step of the flow",
        )]

    def _check_reserved_ids(self, document: FlowchartDocument) -> List[ValidationIssue]:
        issues = []
        seen = set()
        for node in document.nodes():
            if node.id in RESERVED_IDS and node.id not in seen:
                seen.add(node.id)
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="RESERVED_NODE_ID",
                    message=f"Node ID '{node.id}' is a flowchart keyword",
                    node_id=node.id,
                    suggestion="Capitalize it or add a suffix",
                ))
        return issues

    def _check_conflicting_labels(self, document: FlowchartDocument) -> List[ValidationIssue]:
        issues = []
        labels: Dict[str, str] = {}
        for node in document.nodes():
            if not node.is_declaration:
                continue
            previous = labels.setdefault(node.id, node.label)
            if previous != node.label:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="CONFLICTING_LABEL",
                    message=f"Node '{node.id}' is declared as '{previous}' and '{node.label}'",
                    node_id=node.id,
                    suggestion="The last declaration wins when rendered",
                ))
        return issues

    def _check_undeclared_nodes(self, document: FlowchartDocument) -> List[ValidationIssue]:
        declared = {n.id for n in document.nodes() if n.is_declaration}
        if not declared:
            return []

        issues = []
        reported = set()
        for node in document.nodes():
            if node.id in declared or node.id in reported:
                continue
            reported.add(node.id)
            issues.append(ValidationIssue(
                severity=ValidationSeverity.INFO,
                code="UNDECLARED_NODE",
                message=f"Node '{node.id}' is used without a label",
                node_id=node.id,
                suggestion="It will be drawn with its ID as the label",
            ))
        return issues

    def _check_orphaned_nodes(self, document: FlowchartDocument) -> List[ValidationIssue]:
        connected = set()
        for source, _, target in document.edges():
            connected.update((source.id, target.id))
        if not connected:
            return []

        issues = []
        reported = set()
        for node in document.nodes():
            if node.id in connected or node.id in reported:
                continue
            reported.add(node.id)
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                code="ORPHANED_NODE",
                message=f"Node '{node.id}' has no connections",
                node_id=node.id,
                suggestion="Connect it to the flow or remove it",
            ))
        return issues

    def _check_self_loops(self, document: FlowchartDocument) -> List[ValidationIssue]:
        issues = []
        for source, link, target in document.edges():
            if source.id == target.id:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.INFO,
                    code="SELF_LOOP",
                    message=f"Node '{source.id}' links to itself",
                    node_id=source.id,
                ))
        return issues

    def _check_duplicate_edges(self, document: FlowchartDocument) -> List[ValidationIssue]:
        issues = []
        seen: Dict[tuple, int] = defaultdict(int)
        for source, link, target in document.edges():
            seen[(source.id, target.id, link.text)] += 1

        for (source_id, target_id, text), count in seen.items():
            if count > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="DUPLICATE_EDGE",
                    message=f"Edge {source_id} -> {target_id} appears {count} times",
                    node_id=source_id,
                    suggestion="Remove the repeated link",
                ))
        return issues

    def _calculate_stats(self, document: FlowchartDocument) -> Dict[str, int]:
        node_ids = {n.id for n in document.nodes()}
        edges = list(document.edges())
        return {
            "nodes": len(node_ids),
            "edges": len(edges),
            "decisions": len({
                n.id for n in document.nodes()
                if n.shape == ("{", "}")
            }),
            "directives": len(document.directives),
        }


def validate_diagram(definition: str, parser: Optional[ParserFn] = None) -> DiagramValidationResult:
    """Convenience function to validate a flowchart definition"""
    validator = DiagramValidator(parser=parser) if parser else DiagramValidator()
    return validator.validate(definition)
