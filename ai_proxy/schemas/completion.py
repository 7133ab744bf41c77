"""Pydantic schemas for the completion proxy endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CompletionRequest(BaseModel):
    """Client payload. Only the two prompt fields are accepted.

    Model, token budget and provider are server-side settings; unknown
    fields such as ``model`` are ignored. The prompt fields are not typed
    here: presence, type and length are checked by the completion service,
    in order, so each gets its own error code.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    system_prompt: Any = Field(
        default=None,
        alias="systemPrompt",
        description="Instructions for the model.",
    )
    user_message: Any = Field(
        default=None,
        alias="userMessage",
        description="The end user's message.",
    )


class CompletionResponse(BaseModel):
    """Only the reply text is returned; usage, ids and model info are dropped."""

    text: str = Field(..., description="Text of the model's reply.")
