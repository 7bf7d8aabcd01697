"""
Wire models for the OpenAI vector store and Responses APIs.

Remote payloads are validated here, at the client boundary, into tagged
variants keyed by their ``type`` field. Item types this module does not
know about (reasoning items, tool calls other than file search, ...) are
dropped before validation rather than failing the whole payload.
"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vectorlink.exceptions import NetworkError

logger = logging.getLogger(__name__)


def _known_items(items: Any, known: set[str], where: str) -> Any:
    """Filter a raw list down to entries whose ``type`` is in ``known``."""
    if not isinstance(items, list):
        return items
    kept = []
    for item in items:
        item_type = item.get("type") if isinstance(item, dict) else None
        if item_type in known:
            kept.append(item)
        else:
            logger.debug(f"Skipping unsupported {where} item type: {item_type}")
    return kept


class WireModel(BaseModel):
    """Base for remote payloads: unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


def parse_payload(model: type[WireModel], data: Any) -> Any:
    """Validate a decoded JSON payload into ``model``.

    Raises:
        NetworkError: If the payload does not match the expected shape
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise NetworkError(f"Malformed {model.__name__} payload: {e}") from e


# =============================================================================
# Vector store files and uploads
# =============================================================================


class VectorStoreFile(WireModel):
    """A file attached to a vector store (one record in the remote index)."""

    id: str
    status: str = "in_progress"
    created_at: Optional[int] = None
    vector_store_id: Optional[str] = None
    attributes: Optional[Dict[str, Union[str, float, int, bool]]] = None


class VectorStoreFileList(WireModel):
    """One page of ``GET /vector_stores/{id}/files``."""

    data: List[VectorStoreFile] = Field(default_factory=list)
    first_id: Optional[str] = None
    last_id: Optional[str] = None
    has_more: bool = False


class FileObject(WireModel):
    """An uploaded file (``POST /files``)."""

    id: str
    filename: Optional[str] = None
    purpose: Optional[str] = None


class DeletionStatus(WireModel):
    """Result of a ``DELETE`` call."""

    id: str
    deleted: bool = False


# =============================================================================
# Citations (output_text annotations)
# =============================================================================


class FileCitation(WireModel):
    type: Literal["file_citation"] = "file_citation"
    file_id: str
    filename: Optional[str] = None
    index: int = 0


class URLCitation(WireModel):
    type: Literal["url_citation"] = "url_citation"
    url: str
    title: Optional[str] = None
    start_index: int = 0
    end_index: int = 0


class ContainerFileCitation(WireModel):
    type: Literal["container_file_citation"] = "container_file_citation"
    container_id: str
    file_id: str
    filename: Optional[str] = None
    start_index: int = 0
    end_index: int = 0


class FilePath(WireModel):
    type: Literal["file_path"] = "file_path"
    file_id: str
    index: int = 0


Citation = Annotated[
    Union[FileCitation, URLCitation, ContainerFileCitation, FilePath],
    Field(discriminator="type"),
]
CITATION_TYPES = {"file_citation", "url_citation", "container_file_citation", "file_path"}


# =============================================================================
# Response output items
# =============================================================================


class OutputText(WireModel):
    """A run of assistant text with its citations."""

    type: Literal["output_text"] = "output_text"
    text: str = ""
    annotations: List[Citation] = Field(default_factory=list)

    @field_validator("annotations", mode="before")
    @classmethod
    def _drop_unknown_annotations(cls, value: Any) -> Any:
        return _known_items(value, CITATION_TYPES, "annotation")


class Refusal(WireModel):
    type: Literal["refusal"] = "refusal"
    refusal: str = ""


OutputContent = Annotated[Union[OutputText, Refusal], Field(discriminator="type")]


class OutputMessage(WireModel):
    """An assistant message in a response's output."""

    type: Literal["message"] = "message"
    id: Optional[str] = None
    role: str = "assistant"
    content: List[OutputContent] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _drop_unknown_content(cls, value: Any) -> Any:
        return _known_items(value, {"output_text", "refusal"}, "output content")


class FileSearchResult(WireModel):
    """One chunk returned by the file search tool."""

    file_id: Optional[str] = None
    filename: Optional[str] = None
    score: Optional[float] = None
    text: Optional[str] = None
    attributes: Optional[Dict[str, Union[str, float, int, bool]]] = None


class FileSearchCall(WireModel):
    """A file search tool call, with results when they were requested."""

    type: Literal["file_search_call"] = "file_search_call"
    id: Optional[str] = None
    status: Optional[str] = None
    queries: List[str] = Field(default_factory=list)
    results: Optional[List[FileSearchResult]] = None


OutputItem = Annotated[
    Union[OutputMessage, FileSearchCall], Field(discriminator="type")
]


class ResponseObject(WireModel):
    """``GET /responses/{id}``: one turn of a conversation."""

    id: str
    previous_response_id: Optional[str] = None
    output: List[OutputItem] = Field(default_factory=list)

    @field_validator("output", mode="before")
    @classmethod
    def _drop_unknown_output(cls, value: Any) -> Any:
        return _known_items(value, {"message", "file_search_call"}, "output")

    @property
    def output_text(self) -> str:
        """Concatenated text of all output_text parts."""
        return "".join(
            part.text
            for item in self.output
            if isinstance(item, OutputMessage)
            for part in item.content
            if isinstance(part, OutputText)
        )

    def first_message(self) -> Optional[OutputMessage]:
        for item in self.output:
            if isinstance(item, OutputMessage):
                return item
        return None

    def file_search_results(self) -> Optional[List[FileSearchResult]]:
        for item in self.output:
            if isinstance(item, FileSearchCall):
                return item.results
        return None


# =============================================================================
# Response input items
# =============================================================================


class InputText(WireModel):
    type: Literal["input_text"] = "input_text"
    text: str = ""


InputContent = Annotated[Union[InputText, OutputText], Field(discriminator="type")]


class InputMessageItem(WireModel):
    """A message that was sent as input to a response."""

    type: Literal["message"] = "message"
    id: Optional[str] = None
    role: str = "user"
    content: List[InputContent] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _drop_unknown_content(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [{"type": "input_text", "text": value}]
        return _known_items(value, {"input_text", "output_text"}, "input content")

    @property
    def text(self) -> str:
        """Text of the first input_text part, as the chat view shows it."""
        for part in self.content:
            if isinstance(part, InputText):
                return part.text
        return ""


class InputItemList(WireModel):
    """``GET /responses/{id}/input_items``."""

    data: List[InputMessageItem] = Field(default_factory=list)
    has_more: bool = False
    first_id: Optional[str] = None
    last_id: Optional[str] = None

    @field_validator("data", mode="before")
    @classmethod
    def _drop_unknown_items(cls, value: Any) -> Any:
        return _known_items(value, {"message"}, "input")
