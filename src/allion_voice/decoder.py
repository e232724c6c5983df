"""
Message decoder: recovers {voice, text} from a raw chat message.

Three wire shapes, first match wins:
- JSON envelope: {"voice_output": "...", "text_output": {"content": "...", ...}}
- Legacy inline: VOICE:<voice>|||TEXT:<text>
- Anything else: plain text, spoken and shown verbatim
"""

import json
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from allion_voice.models.message import (
    DecodedMessage,
    LegacyDelimited,
    PlainText,
    StructuredEnvelope,
    StructuredMessage,
    TextPayload,
)

logger = logging.getLogger(__name__)

TEXT_MARKER = "|||TEXT:"

# Greedy voice capture: split on the last marker so any text part free of the
# marker comes back unchanged.
LEGACY_PATTERN = re.compile(r"VOICE:(.*)\|\|\|TEXT:(.*)", re.DOTALL)


def parse_envelope(raw: str) -> Optional[StructuredEnvelope]:
    """Parse a JSON envelope. Returns None if `raw` is not one."""
    try:
        data: Any = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    voice = data.get("voice_output")
    text = data.get("text_output")
    if not isinstance(voice, str) or not voice or not isinstance(text, dict):
        return None
    try:
        return StructuredEnvelope(voice=voice, text=TextPayload.model_validate(text))
    except ValidationError:
        logger.debug("text_output failed schema check, trying legacy format")
        return None


def parse_legacy(raw: str) -> Optional[LegacyDelimited]:
    match = LEGACY_PATTERN.fullmatch(raw)
    if match is None:
        return None
    return LegacyDelimited(voice=match.group(1), content=match.group(2))


def decode_variant(raw: str) -> DecodedMessage:
    """Decode `raw` into the tagged variant matching its shape. Never raises."""
    envelope = parse_envelope(raw)
    if envelope is not None:
        return envelope
    legacy = parse_legacy(raw)
    if legacy is not None:
        return legacy
    return PlainText(raw=raw)


def decode(raw: str) -> StructuredMessage:
    return decode_variant(raw).to_message()
