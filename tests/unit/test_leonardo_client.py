"""Unit tests for imagerelay.core.leonardo_client.

The upstream service is replaced by :class:`httpx.MockTransport` driven by
the ``FakeUpstream`` fixture, so no network access happens.
"""

from __future__ import annotations

import httpx
import pytest

from imagerelay.core.errors import MalformedUpstreamResponse, UpstreamServiceError
from imagerelay.core.leonardo_client import LeonardoClient, extract_credit_cost

pytestmark = pytest.mark.anyio


@pytest.fixture
def client(test_config, upstream) -> LeonardoClient:
    return LeonardoClient.from_config(test_config, transport=httpx.MockTransport(upstream))


class TestCreateGeneration:
    async def test_returns_job(self, client, upstream):
        upstream.add(
            "POST",
            "/generations",
            body={"sdGenerationJob": {"generationId": "gen-1", "apiCreditCost": 12}},
        )
        async with client:
            job = await client.create_generation({"prompt": "x", "modelId": "m"})

        assert job.generation_id == "gen-1"
        assert job.credit_cost == 12
        assert upstream.sent_json() == {"prompt": "x", "modelId": "m"}

    async def test_sends_bearer_token(self, client, upstream):
        upstream.add("POST", "/generations", body={"sdGenerationJob": {"generationId": "g"}})
        async with client:
            await client.create_generation({})
        assert upstream.requests[0].headers["Authorization"] == "Bearer test-key"

    async def test_missing_generation_id(self, client, upstream):
        upstream.add("POST", "/generations", body={"sdGenerationJob": {}})
        async with client:
            with pytest.raises(MalformedUpstreamResponse) as exc_info:
                await client.create_generation({})
        assert exc_info.value.message == "No generation ID received"
        assert exc_info.value.status_code == 500

    async def test_upstream_error_text_passed_through(self, client, upstream):
        upstream.add("POST", "/generations", status=402, body={"error": "Not enough credits"})
        async with client:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await client.create_generation({})
        assert exc_info.value.status_code == 402
        assert exc_info.value.message == "Not enough credits"
        assert exc_info.value.details == {"error": "Not enough credits"}

    async def test_upstream_error_without_text_uses_generic_message(self, client, upstream):
        upstream.add("POST", "/generations", status=500, body={"code": "boom"})
        async with client:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await client.create_generation({})
        assert exc_info.value.message == "Failed to generate image"

    async def test_transport_failure(self, test_config):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with LeonardoClient.from_config(
            test_config, transport=httpx.MockTransport(refuse)
        ) as client:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await client.create_generation({})
        assert exc_info.value.status_code == 502
        assert "connection refused" in exc_info.value.message


class TestStatus:
    async def test_status_summary_has_no_backend_id(self, client, upstream):
        upstream.add(
            "GET",
            "/generations/gen-1",
            body={
                "generations_by_pk": {
                    "status": "PENDING",
                    "modelId": "secret-backend-id",
                    "prompt": "x",
                    "createdAt": "2024-01-01",
                    "generated_images": [],
                }
            },
        )
        async with client:
            status = await client.get_status("gen-1")
        assert status["status"] == "PENDING"
        assert "secret-backend-id" not in str(status)

    async def test_unknown_generation_is_404(self, client, upstream):
        upstream.add("GET", "/generations/gen-x", body={"generations_by_pk": None})
        async with client:
            with pytest.raises(MalformedUpstreamResponse) as exc_info:
                await client.get_status("gen-x")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Generation not found"


class TestWaitForGeneration:
    async def test_polls_until_complete(self, client, upstream):
        upstream.add_sequence(
            "GET",
            "/generations/gen-1",
            [
                {"generations_by_pk": {"status": "PENDING"}},
                {"generations_by_pk": {"status": "PENDING"}},
                {
                    "generations_by_pk": {
                        "status": "COMPLETE",
                        "generated_images": [{"id": "i", "url": "https://cdn.test/i.png"}],
                    }
                },
            ],
        )
        async with client:
            status = await client.wait_for_generation("gen-1", interval=0)

        assert status["status"] == "COMPLETE"
        assert status["images"][0]["url"] == "https://cdn.test/i.png"
        assert len(upstream.requests) == 3

    async def test_stops_on_failure(self, client, upstream):
        upstream.add("GET", "/generations/gen-1", body={"generations_by_pk": {"status": "FAILED"}})
        async with client:
            status = await client.wait_for_generation("gen-1", interval=0)
        assert status["status"] == "FAILED"
        assert len(upstream.requests) == 1

    async def test_timeout(self, client, upstream):
        upstream.add("GET", "/generations/gen-1", body={"generations_by_pk": {"status": "PENDING"}})
        async with client:
            with pytest.raises(TimeoutError):
                await client.wait_for_generation("gen-1", interval=0, timeout=0)

    async def test_interval_from_config(self, test_config, upstream):
        upstream.add_sequence(
            "GET",
            "/generations/gen-1",
            [{"generations_by_pk": {"status": "PENDING"}}, {"generations_by_pk": {"status": "COMPLETE"}}],
        )
        test_config.poll_interval = 0
        async with LeonardoClient.from_config(
            test_config, transport=httpx.MockTransport(upstream)
        ) as client:
            assert client.poll_interval == 0
            status = await client.wait_for_generation("gen-1")
        assert status["status"] == "COMPLETE"

    async def test_poll_error_is_not_retried(self, client, upstream):
        upstream.add("GET", "/generations/gen-1", status=503, body={"error": "busy"})
        async with client:
            with pytest.raises(UpstreamServiceError):
                await client.wait_for_generation("gen-1", interval=0)
        assert len(upstream.requests) == 1


class TestHistoryAndUser:
    async def test_list_generations_strips_backend_ids(self, client, upstream):
        upstream.add(
            "GET",
            "/generations/user/user-123",
            body={"generations": [{"id": "g1", "modelId": "secret"}, {"id": "g2"}]},
        )
        async with client:
            generations = await client.list_generations("user-123", offset=5, limit=2)

        assert generations == [{"id": "g1"}, {"id": "g2"}]
        assert upstream.requests[0].url.params["offset"] == "5"
        assert upstream.requests[0].url.params["limit"] == "2"

    async def test_list_generations_rejects_non_object_body(self, client, upstream):
        upstream.add("GET", "/generations/user/user-123", body=[{"id": "g1"}])
        async with client:
            with pytest.raises(MalformedUpstreamResponse) as exc_info:
                await client.list_generations("user-123")
        assert exc_info.value.status_code == 500

    async def test_user_details_unwrapped(self, client, upstream):
        upstream.add("GET", "/me", body={"user_details": [{"user": {"id": "u"}}]})
        async with client:
            assert await client.get_user() == {"user": {"id": "u"}}

    async def test_user_raw_body_when_no_details(self, client, upstream):
        upstream.add("GET", "/me", body={"id": "u"})
        async with client:
            assert await client.get_user() == {"id": "u"}


class TestCreditCost:
    @pytest.mark.parametrize(
        "data, expected",
        [
            ({"sdGenerationJob": {"apiCreditCost": 7}, "cost": 9}, 7),
            ({"sdGenerationJob": {}, "cost": 9}, 9),
            ({"apiCreditCost": 4}, 4),
            ({"sdGenerationJob": {"cost": 2}}, 2),
            ({"sdGenerationJob": {"generationId": "g"}}, None),
        ],
    )
    def test_first_present_location(self, data, expected):
        assert extract_credit_cost(data) == expected
