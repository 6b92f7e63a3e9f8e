"""Data models for the message-processing pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MessageEvent:
    """One sender/text pair extracted from a webhook delivery."""

    sender_id: str
    text: str
    source: str = "instagram"


@dataclass(frozen=True)
class SearchResult:
    title: str
    snippet: str


@dataclass(frozen=True)
class AugmentedPrompt:
    """Prompt handed to the generation stage."""

    prompt: str
    used_search: bool


@dataclass(frozen=True)
class FallbackModel:
    name: str
    priority: int  # lower is tried first


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    model_name: str
    max_output_tokens: int
    temperature: float
    top_p: float
    timeout: float

    def to_payload(self) -> dict[str, object]:
        return {
            "contents": [{"parts": [{"text": self.prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.max_output_tokens,
                "temperature": self.temperature,
                "topP": self.top_p,
            },
        }


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a single generation attempt: text on success, reason on failure."""

    model_name: str
    text: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def success(cls, model_name: str, text: str) -> GenerationResult:
        return cls(model_name=model_name, text=text)

    @classmethod
    def failure(cls, model_name: str, reason: str) -> GenerationResult:
        return cls(model_name=model_name, reason=reason)
