"""
Remote app config: per-sandbox overrides of the front-end defaults.

The sandbox endpoint returns {key: {"type": "string"|"number"|"boolean", "value": ...} | null}.
An entry overrides a default only when the key exists and both the declared
type and the value's type match the default. Fetched per request; any failure
falls back to the defaults.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from allion_voice.errors import AllionError, ConfigError
from allion_voice.transport.http import HttpClient

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    page_title: str = "Allion.ai Voice Agent"
    page_description: str = "Mechanics Trusted Co-pilot"
    company_name: str = "Bosch Invented for Life"

    supports_chat_input: bool = True
    supports_video_input: bool = True
    supports_screen_share: bool = True
    is_pre_connect_buffer_enabled: bool = True

    logo: str = "/bosch_logo_embedded.svg"
    start_button_text: str = "Start call"
    accent: Optional[str] = "#002cf2"
    logo_dark: Optional[str] = "/bosch_logo_embedded.svg"
    accent_dark: Optional[str] = "#1fd5f9"


# Remote keys are camelCase
REMOTE_KEYS = {
    "pageTitle": "page_title",
    "pageDescription": "page_description",
    "companyName": "company_name",
    "supportsChatInput": "supports_chat_input",
    "supportsVideoInput": "supports_video_input",
    "supportsScreenShare": "supports_screen_share",
    "isPreConnectBufferEnabled": "is_pre_connect_buffer_enabled",
    "logo": "logo",
    "startButtonText": "start_button_text",
    "accent": "accent",
    "logoDark": "logo_dark",
    "accentDark": "accent_dark",
}

_TYPE_NAMES = {str: "string", bool: "boolean", int: "number", float: "number"}


def _type_name(value: Any) -> Optional[str]:
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    return _TYPE_NAMES.get(type(value))


def merge_remote(remote: Any, defaults: Optional[AppConfig] = None) -> AppConfig:
    base = defaults or AppConfig()
    if not isinstance(remote, dict):
        raise ConfigError("Sandbox config must be a JSON object")
    updates: dict[str, Any] = {}
    for key, entry in remote.items():
        if entry is None or not isinstance(entry, dict):
            continue
        field = REMOTE_KEYS.get(key)
        if field is None:
            continue
        current = getattr(base, field)
        expected = _type_name(current)
        value = entry.get("value")
        if expected is not None and entry.get("type") == expected and _type_name(value) == expected:
            updates[field] = value
    return base.model_copy(update=updates)


async def fetch_app_config(http: HttpClient, endpoint: Optional[str], sandbox_id: Optional[str]) -> AppConfig:
    if not endpoint:
        return AppConfig()
    try:
        if not sandbox_id:
            raise ConfigError("Sandbox ID is required")
        remote = await http.get(endpoint, headers={"X-Sandbox-ID": sandbox_id})
        return merge_remote(remote)
    except (AllionError, httpx.HTTPError, ValueError) as e:
        logger.error(f"Failed to load app config from {endpoint}: {e}")
    return AppConfig()
