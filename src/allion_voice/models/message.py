"""
Message models: the dual-channel protocol (spoken utterance + text report).

Wire names are snake_case and map 1:1 onto these fields.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class WebSource(BaseModel):
    url: str
    title: str


class YouTubeVideo(BaseModel):
    url: str
    title: str
    thumbnail: Optional[str] = None
    video_id: Optional[str] = None


class TextPayload(BaseModel):
    """Rich-text report. `content` is lightweight markup, never pre-rendered HTML."""
    content: str
    web_sources: list[WebSource] = Field(default_factory=list)
    youtube_videos: list[YouTubeVideo] = Field(default_factory=list)
    has_external_sources: bool = False

    @property
    def has_structured_videos(self) -> bool:
        return len(self.youtube_videos) > 0


class StructuredMessage(BaseModel):
    voice: str
    text: TextPayload
    is_structured: bool


# Tagged variants, one per recognized wire shape.

class StructuredEnvelope(BaseModel):
    """JSON envelope: {"voice_output": ..., "text_output": {...}}"""
    kind: Literal["envelope"] = "envelope"
    voice: str
    text: TextPayload

    def to_message(self) -> StructuredMessage:
        return StructuredMessage(voice=self.voice, text=self.text, is_structured=True)


class LegacyDelimited(BaseModel):
    """Inline form: VOICE:<voice>|||TEXT:<content>"""
    kind: Literal["legacy"] = "legacy"
    voice: str
    content: str

    def to_message(self) -> StructuredMessage:
        return StructuredMessage(voice=self.voice, text=TextPayload(content=self.content), is_structured=True)


class PlainText(BaseModel):
    kind: Literal["plain"] = "plain"
    raw: str

    def to_message(self) -> StructuredMessage:
        return StructuredMessage(voice=self.raw, text=TextPayload(content=self.raw), is_structured=False)


DecodedMessage = Union[StructuredEnvelope, LegacyDelimited, PlainText]
