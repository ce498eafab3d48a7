import base64
import itertools
from dataclasses import dataclass
from typing import Optional

import requests

from flowchat.config import MERMAID_RENDER_URL, RENDER_TIMEOUT
from flowchat.logger import get_logger

logger = get_logger(__name__)


class DiagramIdGenerator:
    """Per-session counter for chart element IDs."""

    def __init__(self, prefix: str = "mermaid-chart"):
        self.prefix = prefix
        self._counter = itertools.count()

    def next_id(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


@dataclass
class RenderResult:
    diagram_id: str
    svg: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.svg is not None

    def to_dict(self) -> dict:
        return {"diagram_id": self.diagram_id, "svg": self.svg, "error": self.error}


class MermaidInkRenderer:
    """
    Renders flowchart definitions to SVG through a mermaid.ink compatible
    service: GET {base_url}/svg/<urlsafe base64 of the definition>.
    """

    def __init__(
        self,
        base_url: str = MERMAID_RENDER_URL,
        timeout: float = RENDER_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def svg_url(self, definition: str) -> str:
        encoded = base64.urlsafe_b64encode(definition.encode("utf-8")).decode("ascii")
        return f"{self.base_url}/svg/{encoded}"

    def render(self, definition: str, diagram_id: str) -> RenderResult:
        try:
            response = self.session.get(self.svg_url(definition), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Render request for %s failed: %s", diagram_id, e)
            return RenderResult(diagram_id, error=f"Error rendering flowchart: {e}")

        if response.status_code != 200:
            detail = response.text.strip()[:300] or f"HTTP {response.status_code}"
            logger.warning("Renderer rejected %s: %s", diagram_id, detail)
            return RenderResult(diagram_id, error=f"Error rendering flowchart: {detail}")

        if "<svg" not in response.text:
            return RenderResult(diagram_id, error="Error rendering flowchart: no SVG in response")

        return RenderResult(diagram_id, svg=response.text)
