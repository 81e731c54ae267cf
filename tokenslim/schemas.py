"""Pydantic schemas for OpenRouter chat completion payloads"""
from pydantic import BaseModel, Field
from typing import List, Optional


class ChatMessage(BaseModel):
    """A single chat message"""
    role: str
    content: Optional[str] = None


class ChatChoice(BaseModel):
    """One completion choice"""
    message: ChatMessage


class ApiError(BaseModel):
    """Error object embedded in a 200 response"""
    message: str = ""


class ChatResponse(BaseModel):
    """Schema for a chat completion response"""
    choices: Optional[List[ChatChoice]] = None
    error: Optional[ApiError] = None


class ChangeDescription(BaseModel):
    """One change reported by the explain call"""
    description: str = Field(..., min_length=1, description="What was changed and where")
    tokens_saved: int = Field(0, description="Approximate tokens saved by this change")


class ExplainResult(BaseModel):
    """Schema for the explain call's structured output"""
    changes: List[ChangeDescription] = Field(default_factory=list)


def explain_schema() -> dict:
    """JSON schema sent as response_format for the explain call"""
    return {
        "type": "object",
        "properties": {
            "changes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "description": {"type": "string", "description": "What was changed and where"},
                        "tokens_saved": {"type": "integer", "description": "Number of tokens saved by this change"},
                    },
                    "required": ["description", "tokens_saved"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["changes"],
        "additionalProperties": False,
    }
