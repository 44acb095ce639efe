import asyncio
import unittest
from typing import Any, Optional

from aiohttp import web
from aiohttp.test_utils import TestServer

from bitcli.config import AppConfig
from bitcli.core import ProviderError
from bitcli.provider import BitlyClient


class BitlyClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.requests: list[tuple[str, Optional[dict[str, Any]], Optional[str]]] = []
        self.user_payload: dict[str, Any] = {"is_active": True, "default_group_guid": "Bg-user"}
        self.shorten_status = 201
        self.shorten_payload: Any = {"link": "https://bit.ly/3xyz", "id": "bit.ly/3xyz"}
        self.shorten_delay = 0.0

        app = web.Application()
        app.router.add_get("/v4/user", self._handle_user)
        app.router.add_post("/v4/shorten", self._handle_shorten)
        self.server = TestServer(app)
        await self.server.start_server()

    async def asyncTearDown(self) -> None:
        await self.server.close()

    async def _handle_user(self, request: web.Request) -> web.Response:
        self.requests.append(("user", None, request.headers.get("Authorization")))
        return web.json_response(self.user_payload)

    async def _handle_shorten(self, request: web.Request) -> web.Response:
        self.requests.append(("shorten", await request.json(), request.headers.get("Authorization")))
        if self.shorten_delay:
            await asyncio.sleep(self.shorten_delay)
        if isinstance(self.shorten_payload, str):
            return web.Response(status=self.shorten_status, text=self.shorten_payload)
        return web.json_response(self.shorten_payload, status=self.shorten_status)

    def _client(self, **overrides: Any) -> BitlyClient:
        values: dict[str, Any] = {
            "api_token": "secret-token",
            "api_url": f"http://{self.server.host}:{self.server.port}/",
        }
        values.update(overrides)
        return BitlyClient(config=AppConfig.model_validate(values))

    async def test_shorten_with_configured_group(self) -> None:
        async with self._client() as client:
            link = await client.create_short_link(
                "https://example.com/long", domain="bit.ly", group_guid="Bg-config"
            )

        self.assertEqual(link.link, "https://bit.ly/3xyz")
        self.assertEqual(link.id, "bit.ly/3xyz")
        self.assertEqual(len(self.requests), 1)
        kind, body, auth = self.requests[0]
        self.assertEqual(kind, "shorten")
        self.assertEqual(body, {"long_url": "https://example.com/long", "group_guid": "Bg-config", "domain": "bit.ly"})
        self.assertEqual(auth, "Bearer secret-token")

    async def test_domain_is_omitted_when_unset(self) -> None:
        async with self._client() as client:
            await client.create_short_link("https://example.com/", group_guid="Bg-config")

        self.assertNotIn("domain", self.requests[0][1])

    async def test_group_guid_is_fetched_once(self) -> None:
        async with self._client() as client:
            await asyncio.gather(
                client.create_short_link("https://example.com/a"),
                client.create_short_link("https://example.com/b"),
            )

        kinds = [kind for kind, _, _ in self.requests]
        self.assertEqual(kinds.count("user"), 1)
        self.assertEqual(kinds.count("shorten"), 2)
        for kind, body, _ in self.requests:
            if kind == "shorten":
                self.assertEqual(body["group_guid"], "Bg-user")

    async def test_default_group_guid_from_config_skips_user_lookup(self) -> None:
        async with self._client(default_group_guid="Bg-default") as client:
            await client.create_short_link("https://example.com/")

        self.assertEqual([kind for kind, _, _ in self.requests], ["shorten"])
        self.assertEqual(self.requests[0][1]["group_guid"], "Bg-default")

    async def test_inactive_user_is_an_error(self) -> None:
        self.user_payload = {"is_active": False, "default_group_guid": "Bg-user"}

        async with self._client() as client:
            with self.assertRaises(ProviderError):
                await client.create_short_link("https://example.com/")

        self.assertEqual([kind for kind, _, _ in self.requests], ["user"])

    async def test_error_body_is_surfaced(self) -> None:
        self.shorten_status = 429
        self.shorten_payload = {
            "message": "RATE_LIMIT_EXCEEDED",
            "description": "You have exceeded your hourly rate limit.",
            "resource": "bitlinks",
        }

        async with self._client() as client:
            with self.assertRaises(ProviderError) as ctx:
                await client.create_short_link("https://example.com/", group_guid="g")

        self.assertEqual(ctx.exception.status, 429)
        self.assertEqual(ctx.exception.message, "RATE_LIMIT_EXCEEDED")
        self.assertEqual(ctx.exception.resource, "bitlinks")
        self.assertIn("hourly rate limit", str(ctx.exception))

    async def test_auth_failure_is_distinguishable(self) -> None:
        self.shorten_status = 403
        self.shorten_payload = {"message": "FORBIDDEN"}

        async with self._client() as client:
            with self.assertRaises(ProviderError) as ctx:
                await client.create_short_link("https://example.com/", group_guid="g")

        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(ctx.exception.message, "FORBIDDEN")

    async def test_non_json_error_uses_reason(self) -> None:
        self.shorten_status = 503
        self.shorten_payload = "upstream unavailable"

        async with self._client() as client:
            with self.assertRaises(ProviderError) as ctx:
                await client.create_short_link("https://example.com/", group_guid="g")

        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(ctx.exception.message, "Service Unavailable")

    async def test_malformed_success_body(self) -> None:
        self.shorten_payload = {"id": "bit.ly/3xyz"}

        async with self._client() as client:
            with self.assertRaises(ProviderError):
                await client.create_short_link("https://example.com/", group_guid="g")

    async def test_timeout_is_a_provider_error(self) -> None:
        self.shorten_delay = 0.5

        async with self._client(request_timeout_seconds=0.1) as client:
            with self.assertRaises(ProviderError) as ctx:
                await client.create_short_link("https://example.com/", group_guid="g")

        self.assertIsNone(ctx.exception.status)

    async def test_unreachable_server_is_a_provider_error(self) -> None:
        unused = TestServer(web.Application())
        await unused.start_server()
        url = f"http://{unused.host}:{unused.port}"
        await unused.close()

        async with self._client(api_url=url) as client:
            with self.assertRaises(ProviderError) as ctx:
                await client.create_short_link("https://example.com/", group_guid="g")

        self.assertIsNone(ctx.exception.status)


if __name__ == "__main__":
    unittest.main()
