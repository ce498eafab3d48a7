"""
Validation module for flowchart definitions.
"""

from flowchat.validation.diagram_validator import (
    DiagramValidator,
    DiagramValidationResult,
    ValidationIssue,
    ValidationSeverity,
    validate_diagram,
)
