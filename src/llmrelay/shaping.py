"""Inbound request models and upstream payload shaping.

The models validate relay request bodies and turn them into the exact
OpenAI chat completion payload sent upstream. Unknown inbound keys are
dropped, never forwarded.

Secondary sampling parameters use pydantic's fields-set tracking as their
presence flags: a parameter is forwarded if and only if the caller sent the
key, so 0, "" and null are forwarded like any other value.

Scalar fields are strict. A value of the wrong type is rejected, never coerced,
so whatever is forwarded is exactly what the caller sent. Message items are
not inspected.
"""

from __future__ import annotations

import copy
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError

from llmrelay.config import RelayConfig
from llmrelay.errors import InvalidRequest

DEFAULT_TEMPERATURE = 0.7

FAQ_TEMPERATURE = 0.2
FAQ_SYSTEM_PROMPT = "You are a concise, helpful cybersecurity assistant for anti-scam FAQs."
FAQ_DEFAULT_QUESTION = "Hướng dẫn an toàn tài khoản ngân hàng?"

SAMPLING_FIELDS = (
    "max_tokens",
    "top_p",
    "presence_penalty",
    "frequency_penalty",
    "stop",
)

# Ints stay ints and floats stay floats; bools and numeric strings are rejected
Number = Union[StrictInt, StrictFloat]


class SamplingOptions(BaseModel):
    """Optional sampling parameters, each with an implicit presence flag."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    max_tokens: StrictInt | None = None
    top_p: Number | None = None
    presence_penalty: Number | None = None
    frequency_penalty: Number | None = None
    stop: StrictStr | list[StrictStr] | None = None

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set

    def to_payload(self) -> dict[str, Any]:
        """Only the parameters the caller supplied, in a stable order."""
        return {name: getattr(self, name) for name in SAMPLING_FIELDS if self.is_set(name)}


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    messages: list[Any]
    model: StrictStr | None = None
    temperature: Number | None = None
    options: SamplingOptions = SamplingOptions()

    @classmethod
    def from_body(cls, body: Any) -> ChatRequest:
        """Validate a decoded JSON body.

        Raises:
            InvalidRequest: If the body is not an object or fails validation.
        """
        if not isinstance(body, dict):
            raise InvalidRequest("Request body must be a JSON object")
        data = {k: v for k, v in body.items() if k in ("messages", "model", "temperature")}
        data["options"] = {name: body[name] for name in SAMPLING_FIELDS if name in body}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidRequest(_describe(e)) from e

    def to_payload(self, config: RelayConfig) -> dict[str, Any]:
        """Build the upstream chat completion body."""
        payload: dict[str, Any] = {
            "model": self.model if self.model is not None else config.default_model,
            "messages": copy.deepcopy(self.messages),
            "temperature": (
                self.temperature if self.temperature is not None else DEFAULT_TEMPERATURE
            ),
        }
        payload.update(self.options.to_payload())
        return payload


class FaqRequest(BaseModel):
    """Body of POST /api/ai-faq."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    question: StrictStr | None = None
    model: StrictStr | None = None

    @classmethod
    def from_body(cls, body: Any) -> FaqRequest:
        if body is None:
            return cls()
        if not isinstance(body, dict):
            raise InvalidRequest("Request body must be a JSON object")
        try:
            return cls.model_validate(body)
        except ValidationError as e:
            raise InvalidRequest(_describe(e)) from e

    def to_payload(self, config: RelayConfig) -> dict[str, Any]:
        # Temperature is fixed on this route
        return {
            "model": self.model or config.default_model,
            "messages": [
                {"role": "system", "content": FAQ_SYSTEM_PROMPT},
                {"role": "user", "content": self.question or FAQ_DEFAULT_QUESTION},
            ],
            "temperature": FAQ_TEMPERATURE,
        }


def _describe(error: ValidationError) -> str:
    """Compact, caller-facing summary of a pydantic error."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"] if p != "options")
        parts.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return "Invalid request: " + "; ".join(parts)
