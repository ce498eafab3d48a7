"""
Flowchart text: grammar and normalization.
"""

from flowchat.dsl.grammar import MermaidSyntaxError, parse_flowchart
from flowchat.dsl.mermaid import FALLBACK_DIAGRAM, is_fallback, normalize_mermaid
