from pydantic import BaseModel, Field, model_validator
from typing import Optional, Dict, Any, List, Literal


class MessageRequest(BaseModel):
    content: str


class ConverseRequest(BaseModel):
    """Stateless turn: the client sends the whole transcript"""
    # Checked by validate_transcript so a bad shape becomes an error reply
    messages: Any = None


class FlowchartRequest(BaseModel):
    """Single-shot generation from the stepped form"""
    user_flow_description: str = Field(min_length=10)
    api_or_server_side: Literal["api", "ssr"] = "api"
    loaders_or_skeletons: Literal["loaders", "skeletons", "none"] = "skeletons"
    api_request_parameters: Optional[str] = None
    backend_database_connection: str = Field(min_length=5)

    @model_validator(mode="after")
    def _parameters_only_for_api(self) -> "FlowchartRequest":
        if self.api_or_server_side == "ssr" or not (self.api_request_parameters or "").strip():
            self.api_request_parameters = "N/A"
        return self


class DefinitionRequest(BaseModel):
    definition: str


class RenderRequest(BaseModel):
    definition: str
    session_id: Optional[str] = None  # IDs come from the session's counter when given


class ReplyResponse(BaseModel):
    type: str
    content: str


class SessionResponse(BaseModel):
    session_id: str
    state: str
    is_complete: bool
    messages: List[Dict[str, str]]
    diagram: Optional[str] = None
    diagram_error: Optional[str] = None
    validation: Optional[Dict[str, Any]] = None


class DiagramResponse(BaseModel):
    status: str
    definition: str
    error_message: Optional[str] = None
    validation: Dict[str, Any]


class RenderResponse(BaseModel):
    diagram_id: str
    svg: Optional[str] = None
    error: Optional[str] = None
