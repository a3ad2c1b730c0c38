from __future__ import annotations

import json
import logging
import re
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ValidationError

from opsroom.config import get_settings
from opsroom.errors import ExtractionFailure
from opsroom.models.llm_model import ExtractionRequest, ExtractionResult, SummaryRequest, SummaryResult
from opsroom.utils.auth_aws import bedrock_runtime_client

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

EXTRACTION_SYSTEM_PROMPT = (
    "You are the facilitator of a stand-up style meeting. Read one participant's spoken update "
    "and turn it into structured notes.\n"
    "\n"
    "Extract:\n"
    "1. summary: one or two sentences describing the update\n"
    "2. risks: blockers or risks, including ones that are only implied\n"
    "3. gaps: open questions, missing information or uncertainty\n"
    "4. proposedActions: follow-up work. Be proactive. Capture anything the speaker commits to "
    "(\"I'll...\", \"I need to...\"), work assigned to others (\"we should...\", \"someone has to...\"), "
    "unfinished work (\"still working on...\") and any implied follow-up.\n"
    "\n"
    "Owner of each action: the person named with the task if there is one, otherwise the speaker, "
    "otherwise \"Team\" for group work.\n"
    "\n"
    "Reply with a single JSON object and nothing else:\n"
    "{\n"
    '  "summary": "...",\n'
    '  "risks": ["..."],\n'
    '  "gaps": ["..."],\n'
    '  "proposedActions": [{"task": "...", "owner": "..."}],\n'
    '  "agentResponse": "..."\n'
    "}\n"
    "\n"
    "agentResponse is what the facilitator says next, conversationally: acknowledge the update and ask "
    "a follow-up question, confirm the key points, or ask for clarification when the update was unclear."
)

SUMMARY_SYSTEM_PROMPT = (
    "You write the closing summary of a facilitated meeting from its transcript, the per-speaker "
    "updates and the recorded action items.\n"
    "\n"
    "Produce:\n"
    "1. overview: two or three short paragraphs on what was discussed and achieved\n"
    "2. decisions: decisions the meeting actually made\n"
    "3. risks: risks and concerns that were raised\n"
    "4. nextSteps: concrete follow-ups\n"
    "\n"
    "Only include items that were really discussed. Reply with a single JSON object and nothing else:\n"
    '{"overview": "...", "decisions": ["..."], "risks": ["..."], "nextSteps": ["..."]}'
)


def _bedrock_client(client: Any | None = None):
    if client:
        return client
    return bedrock_runtime_client()


def _load_json_body(response: dict[str, Any]) -> Any:
    body = response.get("body")
    if hasattr(body, "read"):
        raw = body.read()
    elif isinstance(body, (bytes, bytearray)):
        raw = body
    elif body is None:
        return {}
    else:
        raw = str(body).encode("utf-8")
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {"outputText": text}


def _model_uses_messages(model_id: str) -> bool:
    return "claude-3" in (model_id or "").lower()


def _invoke_text_model(
    prompt: str,
    system_prompt: str,
    max_tokens: int,
    client: Any | None = None,
) -> Any:
    settings = get_settings()
    model_id = settings.bedrock_model_id
    if _model_uses_messages(model_id):
        payload = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens,
            "temperature": settings.llm_temperature,
            "system": system_prompt,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}],
                }
            ],
        }
    else:
        payload = {
            "prompt": f"{system_prompt}\n\n{prompt}",
            "maxTokens": max_tokens,
            "temperature": settings.llm_temperature,
        }

    response = _bedrock_client(client).invoke_model(
        modelId=model_id,
        contentType="application/json",
        accept="application/json",
        body=json.dumps(payload).encode("utf-8"),
    )
    return _load_json_body(response)


def _extract_text_from_content(content: dict[str, Any]) -> str:
    for key in ("outputText", "completion", "response"):
        value = content.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    message_content = content.get("content")
    if isinstance(message_content, list):
        pieces: list[str] = []
        for item in message_content:
            if not isinstance(item, dict):
                continue
            text = item.get("text")
            if isinstance(text, str) and text.strip():
                pieces.append(text.strip())
        if pieces:
            return "\n".join(pieces)
    return ""


def _parse_reply(content: Any, model: type[BaseModel]) -> Any:
    if not isinstance(content, dict):
        logger.warning("Bedrock body is not a JSON object: %.200r", content)
        raise ExtractionFailure("Invalid response format from LLM")
    raw = _extract_text_from_content(content)
    if not raw:
        raise ExtractionFailure("No response from LLM")
    fenced = _FENCE_RE.match(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        return model.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        logger.warning("LLM reply is not JSON: %.200s", raw)
        raise ExtractionFailure("Invalid response format from LLM") from exc
    except ValidationError as exc:
        logger.warning("LLM reply does not match %s: %s", model.__name__, exc)
        raise ExtractionFailure(f"LLM reply does not match {model.__name__}") from exc


def _call(prompt: str, system_prompt: str, max_tokens: int, model: type[BaseModel], client: Any | None) -> Any:
    try:
        content = _invoke_text_model(prompt, system_prompt, max_tokens, client=client)
    except (BotoCoreError, ClientError) as exc:
        logger.warning("Bedrock call failed: %s", exc)
        raise ExtractionFailure(f"LLM call failed: {exc}") from exc
    return _parse_reply(content, model)


def build_extraction_prompt(request: ExtractionRequest) -> str:
    return (
        f"Meeting Context: {request.room_context or 'Not provided'}\n"
        f"Meeting Goal: {request.room_goal or 'General discussion'}\n"
        "\n"
        f"Speaker: {request.speaker_name}\n"
        "Transcript:\n"
        f"\"{request.utterance_text}\"\n"
        "\n"
        "Analyse this update and return the structured notes."
    )


def build_summary_prompt(request: SummaryRequest) -> str:
    transcript_text = "\n".join(f'{turn.speaker_name}: "{turn.text}"' for turn in request.turns)
    updates_text = "\n\n".join(
        f"{update.speaker_name}:\n"
        f"  Summary: {update.summary}\n"
        f"  Risks: {', '.join(update.risks) or 'None'}\n"
        f"  Gaps: {', '.join(update.gaps) or 'None'}\n"
        f"  Proposed Actions: {', '.join(update.proposed_actions) or 'None'}"
        for update in request.speaker_updates
    )
    actions_text = "\n".join(
        f"- [{item.status}] {item.task} (Owner: {item.owner})" for item in request.action_items
    )
    return (
        f"Meeting Goal: {request.room_goal or 'General discussion'}\n"
        "\n"
        f"Meeting Context: {request.room_context or 'Not provided'}\n"
        "\n"
        "Transcripts:\n"
        f"{transcript_text or 'No transcripts available'}\n"
        "\n"
        "Speaker Updates:\n"
        f"{updates_text or 'No speaker updates available'}\n"
        "\n"
        "Action Items:\n"
        f"{actions_text or 'No action items recorded'}\n"
        "\n"
        "Write the meeting summary."
    )


def extract_turn(request: ExtractionRequest, client: Any | None = None) -> ExtractionResult:
    """Structured notes for one utterance; raises ExtractionFailure on any bad call or reply."""
    settings = get_settings()
    return _call(
        build_extraction_prompt(request),
        EXTRACTION_SYSTEM_PROMPT,
        settings.extraction_max_tokens,
        ExtractionResult,
        client,
    )


def summarize_meeting(request: SummaryRequest, client: Any | None = None) -> SummaryResult:
    settings = get_settings()
    return _call(
        build_summary_prompt(request),
        SUMMARY_SYSTEM_PROMPT,
        settings.summary_max_tokens,
        SummaryResult,
        client,
    )
