from dataclasses import dataclass
from typing import Optional

from flowchat.conversation.errors import CollaboratorError
from flowchat.dsl.mermaid import is_fallback, normalize_mermaid
from flowchat.inference.base import LLMClient
from flowchat.inference.prompt import FLOWCHART_GENERATOR_PROMPT
from flowchat.logger import get_logger
from flowchat.schemas import FlowchartRequest
from flowchat.validation.diagram_validator import DiagramValidationResult, DiagramValidator

logger = get_logger(__name__)


@dataclass
class GeneratedFlowchart:
    definition: str
    raw: str
    validation: DiagramValidationResult

    @property
    def recognized(self) -> bool:
        return not is_fallback(self.definition)


class FlowchartGenerator:
    """Single-shot variant: five structured answers in, one flowchart out."""

    def __init__(self, client: LLMClient, validator: Optional[DiagramValidator] = None):
        self.client = client
        self.validator = validator or DiagramValidator()

    def build_prompt(self, request: FlowchartRequest) -> str:
        return FLOWCHART_GENERATOR_PROMPT.format(**request.model_dump())

    def generate(self, request: FlowchartRequest) -> GeneratedFlowchart:
        messages = [{"role": "user", "content": self.build_prompt(request)}]
        raw = self.client.generate(messages)

        if not raw or not raw.strip():
            raise CollaboratorError("The assistant returned an empty flowchart")

        definition = normalize_mermaid(raw)
        validation = self.validator.validate(definition)
        logger.info("Generated flowchart: %s", validation.get_summary())

        return GeneratedFlowchart(definition=definition, raw=raw, validation=validation)
