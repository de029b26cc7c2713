"""Assistant-function schemas (admin and public views)."""
from typing import Literal, Optional

from pydantic import ConfigDict, Field

from apps.console.schemas.base import Number, WireModel

PromptType = Literal["local", "openai_prompt", "openai_assistant"]
ResponseFormat = Literal["text", "json", "auto"]
TranslatableField = Literal["name", "description", "invitation"]


class AssistantPrompt(WireModel):
    type: PromptType = "local"
    local_prompt_id: Optional[str] = None
    open_ai_prompt_id: Optional[str] = None
    open_ai_assistant_id: Optional[str] = None
    version_tag: Optional[str] = None


class AssistantMetadata(WireModel):
    """Per-locale translations of the user-visible texts. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    name_translations: dict[str, str] = Field(default_factory=dict)
    description_translations: dict[str, str] = Field(default_factory=dict)
    invitation_translations: dict[str, str] = Field(default_factory=dict)


class AssistantFunctionConfig(WireModel):
    id: str
    name: str
    description: str = ""
    provider: str = "openai"
    model_config_id: str = "gpt35"
    api_key_name: Optional[str] = None
    prompt: AssistantPrompt = Field(default_factory=AssistantPrompt)
    temperature: Optional[Number] = None
    top_p: Optional[Number] = None
    max_tokens: Optional[Number] = None
    response_format: ResponseFormat = "text"
    is_enabled: bool = True
    tags: Optional[list[str]] = None
    metadata: Optional[AssistantMetadata] = None
    invitation_message: Optional[str] = None


class PublicAssistantFunctionConfig(WireModel):
    """What anonymous callers may see: no key names, only whether a hosted prompt is wired."""

    id: str
    name: str
    description: str = ""
    provider: str = "openai"
    model_config_id: str = "gpt35"
    prompt: AssistantPrompt = Field(default_factory=AssistantPrompt)
    temperature: Optional[Number] = None
    top_p: Optional[Number] = None
    max_tokens: Optional[Number] = None
    response_format: ResponseFormat = "text"
    tags: Optional[list[str]] = None
    metadata: Optional[AssistantMetadata] = None
    invitation_message: Optional[str] = None
    has_open_ai_reference: bool = False
