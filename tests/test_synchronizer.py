"""
Tests for ResourceSynchronizer.

Tests cover:
- Index and template URL shapes, headers and bodies
- Validation of entries without a name or file
- Idempotent handling of resource_already_exists_exception (indices only)
- Propagation of every other failure
- Concurrent fan-out within a collection, ordering across collections
"""

import asyncio
from typing import Any, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from es_sync.exceptions import (
    RemoteConflictError,
    RemoteError,
    ResourceFileError,
    ResourceValidationError,
)
from es_sync.http_client import ElasticsearchClient
from es_sync.models import (
    IndexRef,
    RequestOptions,
    ResolvedConfig,
    ResourceResult,
    SyncOutcome,
    TemplateRef,
)
from es_sync.synchronizer import ResourceSynchronizer, collect_outcomes, validate_resource
from tests.helpers import already_exists_body, load_fixture

ENDPOINT = "https://search.example.com"
INDEX_1 = "./fixtures/TestIndices1.json"
INDEX_2 = "./fixtures/TestIndices2.json"
TEMPLATE_1 = "./fixtures/TestTemplate1.json"
TEMPLATE_2 = "./fixtures/TestTemplate2.json"


@pytest.fixture
def synchronizer(es_transport, fixtures_cwd):
    return ResourceSynchronizer(ElasticsearchClient(transport=es_transport))


class TestValidateResource:
    def test_index_without_name(self) -> None:
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_resource(IndexRef(file=INDEX_1))
        assert str(exc_info.value) == "Index does not have a name."

    def test_index_without_file(self) -> None:
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_resource(IndexRef(name="Index1"))
        assert str(exc_info.value) == "Index does not have a file location."

    def test_template_without_name(self) -> None:
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_resource(TemplateRef(file=TEMPLATE_1))
        assert str(exc_info.value) == "Template does not have a name."

    def test_template_without_file(self) -> None:
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_resource(TemplateRef(name="TestTemplate1"))
        assert str(exc_info.value) == "Template does not have a file location."

    def test_valid_entry_returns_name_and_file(self) -> None:
        assert validate_resource(IndexRef(name="Index1", file=INDEX_1)) == ("Index1", INDEX_1)


class TestCollectOutcomes:
    def test_exceptions_become_failed_results(self) -> None:
        applied = ResourceResult(kind="Index", name="Index1")
        error = RemoteError("PUT failed", status_code=500)

        results = collect_outcomes(
            [IndexRef(name="Index1"), IndexRef(name="Index2")], [applied, error]
        )

        assert results[0] is applied
        assert results[1].outcome is SyncOutcome.FAILED
        assert results[1].name == "Index2"
        assert results[1].kind == "Index"
        assert results[1].error is error

    def test_invalid_entry_keeps_missing_name(self) -> None:
        error = ResourceValidationError("Template does not have a name.")

        results = collect_outcomes([TemplateRef(file=TEMPLATE_1)], [error])

        assert results[0].outcome is SyncOutcome.FAILED
        assert results[0].name is None


class TestSetupIndices:
    @pytest.mark.asyncio
    async def test_single_index_is_sent(self, synchronizer, es_transport) -> None:
        results = await synchronizer.setup_indices(
            ENDPOINT, [IndexRef(name="Index1", file=INDEX_1)]
        )

        assert es_transport.urls == [f"{ENDPOINT}/Index1"]
        request = es_transport.requests[0]
        assert request.method == "PUT"
        assert request.headers["Content-Type"] == "application/json"
        assert es_transport.body_for(f"{ENDPOINT}/Index1") == load_fixture("TestIndices1.json")
        assert results[0].outcome is SyncOutcome.APPLIED

    @pytest.mark.asyncio
    async def test_multiple_indices_are_sent_once_each(self, synchronizer, es_transport) -> None:
        await synchronizer.setup_indices(
            ENDPOINT,
            [IndexRef(name="Index1", file=INDEX_1), IndexRef(name="Index2", file=INDEX_2)],
        )

        assert sorted(es_transport.urls) == [f"{ENDPOINT}/Index1", f"{ENDPOINT}/Index2"]
        assert es_transport.body_for(f"{ENDPOINT}/Index1") == load_fixture("TestIndices1.json")
        assert es_transport.body_for(f"{ENDPOINT}/Index2") == load_fixture("TestIndices2.json")

    @pytest.mark.asyncio
    async def test_index_without_name_is_not_sent(self, synchronizer, es_transport) -> None:
        with pytest.raises(ResourceValidationError, match="Index does not have a name."):
            await synchronizer.setup_indices(ENDPOINT, [IndexRef(name=None, file=INDEX_1)])

        assert es_transport.requests == []

    @pytest.mark.asyncio
    async def test_index_without_file_is_not_sent(self, synchronizer, es_transport) -> None:
        with pytest.raises(
            ResourceValidationError, match="Index does not have a file location."
        ):
            await synchronizer.setup_indices(ENDPOINT, [IndexRef(name="Index1", file=None)])

        assert es_transport.requests == []

    @pytest.mark.asyncio
    async def test_invalid_entry_does_not_stop_siblings(self, synchronizer, es_transport) -> None:
        indices = [
            IndexRef(name="Index1", file=INDEX_1),
            IndexRef(name=None, file=INDEX_1),
            IndexRef(name="Index2", file=INDEX_2),
        ]

        with pytest.raises(ResourceValidationError):
            await synchronizer.setup_indices(ENDPOINT, indices)

        assert sorted(es_transport.urls) == [f"{ENDPOINT}/Index1", f"{ENDPOINT}/Index2"]

    @pytest.mark.asyncio
    async def test_already_exists_is_left_alone(self, synchronizer, es_transport) -> None:
        es_transport.respond(f"{ENDPOINT}/Index1", 400, already_exists_body("Index1"))

        results = await synchronizer.setup_indices(
            ENDPOINT, [IndexRef(name="Index1", file=INDEX_1)]
        )

        assert es_transport.urls == [f"{ENDPOINT}/Index1"]
        assert results[0].outcome is SyncOutcome.SUPPRESSED_CONFLICT
        assert isinstance(results[0].error, RemoteConflictError)

    @pytest.mark.asyncio
    async def test_any_other_error_is_thrown(self, synchronizer, es_transport) -> None:
        es_transport.respond(
            f"{ENDPOINT}/Index1",
            400,
            {"error": {"type": "Some random error", "reason": "bad mapping"}, "status": 400},
        )

        with pytest.raises(RemoteError) as exc_info:
            await synchronizer.setup_indices(ENDPOINT, [IndexRef(name="Index1", file=INDEX_1)])

        assert not isinstance(exc_info.value, RemoteConflictError)
        assert exc_info.value.error_type == "Some random error"
        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_network_error_is_thrown(self, synchronizer, es_transport) -> None:
        es_transport.fail(f"{ENDPOINT}/Index1", httpx.ConnectError("connection refused"))

        with pytest.raises(RemoteError) as exc_info:
            await synchronizer.setup_indices(ENDPOINT, [IndexRef(name="Index1", file=INDEX_1)])

        assert exc_info.value.error_type is None
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_unreadable_file_is_thrown(self, synchronizer, es_transport) -> None:
        with pytest.raises(ResourceFileError):
            await synchronizer.setup_indices(
                ENDPOINT, [IndexRef(name="Index1", file="./fixtures/Missing.json")]
            )

        assert es_transport.requests == []

    @pytest.mark.asyncio
    async def test_no_indices(self, synchronizer, es_transport) -> None:
        assert await synchronizer.setup_indices(ENDPOINT, None) == []
        assert es_transport.requests == []


class TestSetupTemplates:
    @pytest.mark.asyncio
    async def test_single_template_is_sent(self, synchronizer, es_transport) -> None:
        await synchronizer.setup_templates(
            ENDPOINT, [TemplateRef(name="TestTemplate1", file=TEMPLATE_1)]
        )

        url = f"{ENDPOINT}/_template/TestTemplate1"
        assert es_transport.urls == [url]
        assert es_transport.request_for(url).headers["Content-Type"] == "application/json"
        assert es_transport.body_for(url) == load_fixture("TestTemplate1.json")

    @pytest.mark.asyncio
    async def test_multiple_templates_are_sent(self, synchronizer, es_transport) -> None:
        await synchronizer.setup_templates(
            ENDPOINT,
            [
                TemplateRef(name="TestTemplate1", file=TEMPLATE_1),
                TemplateRef(name="TestTemplate2", file=TEMPLATE_2),
            ],
        )

        assert sorted(es_transport.urls) == [
            f"{ENDPOINT}/_template/TestTemplate1",
            f"{ENDPOINT}/_template/TestTemplate2",
        ]
        assert es_transport.body_for(f"{ENDPOINT}/_template/TestTemplate2") == load_fixture(
            "TestTemplate2.json"
        )

    @pytest.mark.asyncio
    async def test_template_without_name_throws(self, synchronizer, es_transport) -> None:
        with pytest.raises(ResourceValidationError, match="Template does not have a name."):
            await synchronizer.setup_templates(ENDPOINT, [TemplateRef(file=TEMPLATE_1)])

        assert es_transport.requests == []

    @pytest.mark.asyncio
    async def test_template_without_file_throws(self, synchronizer, es_transport) -> None:
        with pytest.raises(
            ResourceValidationError, match="Template does not have a file location."
        ):
            await synchronizer.setup_templates(ENDPOINT, [TemplateRef(name="TestTemplate1")])

    @pytest.mark.asyncio
    async def test_already_exists_is_thrown_for_templates(
        self, synchronizer, es_transport
    ) -> None:
        url = f"{ENDPOINT}/_template/TestTemplate1"
        es_transport.respond(url, 400, already_exists_body("TestTemplate1"))

        with pytest.raises(RemoteError) as exc_info:
            await synchronizer.setup_templates(
                ENDPOINT, [TemplateRef(name="TestTemplate1", file=TEMPLATE_1)]
            )

        assert type(exc_info.value) is RemoteError
        assert exc_info.value.error_type == "resource_already_exists_exception"


class _BarrierClient:
    """Fake client whose PUTs only complete once ``expected`` PUTs are in flight."""

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.in_flight: List[str] = []
        self.calls: List[str] = []
        self._all_started = asyncio.Event()

    async def put(self, url: str, body: Any, options: Optional[RequestOptions] = None) -> Any:
        self.calls.append(url)
        self.in_flight.append(url)
        if len(self.in_flight) >= self.expected:
            self._all_started.set()
        await self._all_started.wait()
        self.in_flight.remove(url)
        return {"acknowledged": True}


@pytest.mark.asyncio
async def test_collection_entries_are_dispatched_concurrently() -> None:
    client = _BarrierClient(expected=2)
    synchronizer = ResourceSynchronizer(client, load_body=lambda path: {"file": path})

    results = await asyncio.wait_for(
        synchronizer.setup_indices(
            ENDPOINT,
            [IndexRef(name="Index1", file="a.json"), IndexRef(name="Index2", file="b.json")],
        ),
        timeout=5,
    )

    assert [result.name for result in results] == ["Index1", "Index2"]


@pytest.mark.asyncio
async def test_sync_orders_collections() -> None:
    events: List[str] = []

    class _OrderedClient:
        async def put(self, url, body, options=None):
            events.append(url)
            await asyncio.sleep(0)
            return None

    async def repository_setup(base_url, sts_client, repos, request_options, client):
        events.append("repositories")
        return []

    synchronizer = ResourceSynchronizer(
        _OrderedClient(),
        load_body=lambda path: {},
        repository_setup=repository_setup,
    )
    config = ResolvedConfig.model_validate(
        {
            "endpoint": ENDPOINT,
            "indices": [{"name": "Index1", "file": "i1.json"}, {"name": "Index2", "file": "i2.json"}],
            "templates": [{"name": "T1", "file": "t1.json"}, {"name": "T2", "file": "t2.json"}],
        }
    )

    results = await synchronizer.sync(config)

    assert set(events[:2]) == {f"{ENDPOINT}/_template/T1", f"{ENDPOINT}/_template/T2"}
    assert set(events[2:4]) == {f"{ENDPOINT}/Index1", f"{ENDPOINT}/Index2"}
    assert events[4] == "repositories"
    assert len(results) == 4


@pytest.mark.asyncio
async def test_sync_hands_repositories_to_setup_unchanged() -> None:
    repository_setup = AsyncMock(
        return_value=[ResourceResult(kind="Repository", name="backups")]
    )
    client = AsyncMock()
    options = RequestOptions()
    synchronizer = ResourceSynchronizer(
        client, sts_client="sts", repository_setup=repository_setup
    )
    config = ResolvedConfig.model_validate(
        {
            "endpoint": ENDPOINT,
            "repositories": [{"name": "backups", "settings": {"bucket": "b"}, "extra": 1}],
        }
    )

    results = await synchronizer.sync(config, options)

    repository_setup.assert_awaited_once_with(
        ENDPOINT, "sts", config.repositories, options, client
    )
    assert results[0].name == "backups"
    client.put.assert_not_called()


@pytest.mark.asyncio
async def test_failed_template_stops_before_indices() -> None:
    client = AsyncMock()
    client.put.side_effect = RemoteError("boom", status_code=500, body={"error": {"type": "x"}})
    repository_setup = AsyncMock(return_value=[])
    synchronizer = ResourceSynchronizer(
        client, load_body=lambda path: {}, repository_setup=repository_setup
    )
    config = ResolvedConfig.model_validate(
        {
            "endpoint": ENDPOINT,
            "templates": [{"name": "T1", "file": "t1.json"}],
            "indices": [{"name": "Index1", "file": "i1.json"}],
        }
    )

    with pytest.raises(RemoteError):
        await synchronizer.sync(config)

    client.put.assert_awaited_once()
    repository_setup.assert_not_awaited()
