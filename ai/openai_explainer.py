import os
from typing import Any, Dict, List, Optional

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field


# Structured Outputs requires "additionalProperties": false on every object
# schema, so every model here forbids extra keys.


class ErrorExplanation(BaseModel):
    """Structured reply returned by the model.

    - explanation: one or two sentences saying why the device rejected the command
    - suggestion: optional corrected command line
    """

    model_config = ConfigDict(extra="forbid")

    explanation: str = Field(..., description="Why the device rejected the command, in plain words.")
    suggestion: Optional[str] = Field(
        default=None,
        description="A corrected command line the student could type instead, if one exists.",
    )


SYSTEM_PROMPT = """\
You are a Cisco IOS lab tutor embedded in a network simulator.

You will receive a command a student typed and the exact error the simulated
device printed. The error is final; do not contradict it.

Explain in at most two short sentences why the device rejected the command
(wrong mode, misspelled keyword, missing argument, invalid address or mask,
business rule of the device). If a corrected command is obvious, return it in
'suggestion', otherwise leave it null.

Always return JSON matching the ErrorExplanation schema (no extra keys).\
"""


class OpenAIExplainer:
    """Explainer backed by the OpenAI Responses API.

    Satisfies ``labsim.explain.Explainer``; the simulator core never imports
    this module.
    """

    def __init__(self, model: Optional[str] = None, client: Optional[Any] = None):
        # Set OPENAI_API_KEY in the environment (do NOT hardcode it).
        self._client = client
        self.model = model or os.getenv("LABSIM_AI_MODEL", "gpt-4o-2024-08-06")

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY is not set")
            self._client = OpenAI(api_key=api_key)
        return self._client

    def explain(self, command: str, error: str) -> str:
        input_messages: List[Dict[str, Any]] = [
            {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": f"COMMAND:\n{command}"},
                    {"type": "input_text", "text": f"DEVICE_ERROR:\n{error}"},
                ],
            },
        ]
        resp = self.client.responses.parse(
            model=self.model,
            input=input_messages,
            text_format=ErrorExplanation,
        )
        parsed: ErrorExplanation = resp.output_parsed
        if parsed is None:
            return ""
        if parsed.suggestion:
            return f"{parsed.explanation}\nTry: {parsed.suggestion}"
        return parsed.explanation
