"""Remote app config tests."""

import httpx
import pytest

from allion_voice.app_config import AppConfig, fetch_app_config, merge_remote
from allion_voice.errors import AllionError, ConfigError
from allion_voice.transport.http import HttpClient

ENDPOINT = "https://config.example/api/sandbox"


class TestMergeRemote:
    def test_matching_entries_apply(self):
        config = merge_remote({
            "pageTitle": {"type": "string", "value": "Shop"},
            "supportsVideoInput": {"type": "boolean", "value": False},
            "accentDark": {"type": "string", "value": "#ffffff"},
        })
        assert config.page_title == "Shop"
        assert config.supports_video_input is False
        assert config.accent_dark == "#ffffff"
        assert config.company_name == AppConfig().company_name

    @pytest.mark.parametrize("entry", [
        {"type": "boolean", "value": True},
        {"type": "string", "value": 5},
        {"type": "number", "value": 5},
        {"value": "no type"},
        None,
        "not an entry",
    ])
    def test_mismatched_entries_ignored(self, entry):
        assert merge_remote({"pageTitle": entry}).page_title == "Allion.ai Voice Agent"

    def test_number_is_not_a_boolean(self):
        config = merge_remote({"supportsChatInput": {"type": "boolean", "value": 0}})
        assert config.supports_chat_input is True

    def test_unknown_keys_ignored(self):
        assert merge_remote({"somethingNew": {"type": "string", "value": "x"}}) == AppConfig()

    def test_custom_defaults(self):
        defaults = AppConfig(page_title="Base")
        assert merge_remote({}, defaults).page_title == "Base"

    def test_non_object_rejected(self):
        with pytest.raises(ConfigError):
            merge_remote(["pageTitle"])


class TestFetch:
    @pytest.mark.asyncio
    async def test_no_endpoint(self):
        async with HttpClient() as http:
            assert await fetch_app_config(http, None, "sb") == AppConfig()

    @pytest.mark.asyncio
    async def test_fetch_with_sandbox_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["sandbox"] = request.headers["x-sandbox-id"]
            return httpx.Response(200, json={"startButtonText": {"type": "string", "value": "Begin"}})

        async with HttpClient(transport=httpx.MockTransport(handler)) as http:
            config = await fetch_app_config(http, ENDPOINT, "sb-7")
        assert seen == {"url": ENDPOINT, "sandbox": "sb-7"}
        assert config.start_button_text == "Begin"

    @pytest.mark.asyncio
    async def test_missing_sandbox_falls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected without a sandbox id")

        async with HttpClient(transport=httpx.MockTransport(handler)) as http:
            assert await fetch_app_config(http, ENDPOINT, None) == AppConfig()

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ])
    @pytest.mark.asyncio
    async def test_bad_responses_fall_back(self, response):
        async with HttpClient(transport=httpx.MockTransport(lambda request: response)) as http:
            assert await fetch_app_config(http, ENDPOINT, "sb") == AppConfig()

    @pytest.mark.asyncio
    async def test_network_error_falls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with HttpClient(transport=httpx.MockTransport(handler)) as http:
            assert await fetch_app_config(http, ENDPOINT, "sb") == AppConfig()


class TestHttpClient:
    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="missing"))
        async with HttpClient(transport=transport) as http:
            with pytest.raises(AllionError) as exc_info:
                await http.get(ENDPOINT)
        assert exc_info.value.code == "http_error"
        assert "404" in str(exc_info.value)
