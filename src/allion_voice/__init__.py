"""
allion-voice: message decoding, report rendering and asset serving for the
Allion voice agent front end.

Decodes the backend's dual-channel (voice + text report) messages, renders
reports to safe HTML, tracks the diagnostic side channel and serves the images
reports reference.
"""

from allion_voice.assets import AssetResolver, ResolvedAsset
from allion_voice.config import DeploymentContext, Settings
from allion_voice.decoder import decode, decode_variant
from allion_voice.diagnostics import DiagnosticChannelConsumer, DiagnosticState
from allion_voice.errors import (
    AllionError,
    AssetNotFound,
    ChannelDecodeError,
    ConfigError,
    ConnectionError,
    InvalidReference,
    UnexpectedIOError,
)
from allion_voice.models.events import Topic
from allion_voice.models.message import StructuredMessage, TextPayload, WebSource, YouTubeVideo
from allion_voice.renderer import RenderContext, format_chat, render, render_content

__version__ = "0.1.0"
__all__ = [
    "AssetResolver",
    "ResolvedAsset",
    "DeploymentContext",
    "Settings",
    "decode",
    "decode_variant",
    "DiagnosticChannelConsumer",
    "DiagnosticState",
    "AllionError",
    "AssetNotFound",
    "ChannelDecodeError",
    "ConfigError",
    "ConnectionError",
    "InvalidReference",
    "UnexpectedIOError",
    "Topic",
    "StructuredMessage",
    "TextPayload",
    "WebSource",
    "YouTubeVideo",
    "RenderContext",
    "format_chat",
    "render",
    "render_content",
]
