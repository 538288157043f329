"""Tests for UpdateCoordinator — the optimistic-concurrency update protocol."""

import logging
import threading
from unittest.mock import MagicMock

import pytest
from routedoc.content.coordinator import (
    MISSING_ROUTE_MESSAGE,
    UpdateCoordinator,
    replace_record,
)
from routedoc.content.markdown import MarkdownProcessor
from routedoc.content.models import ContentCollection, ContentRecord
from routedoc.content.repository import ContentRepository
from routedoc.errors import ErrorCode
from routedoc.store import MemoryStore

HELLO = "---\nroute: hello world\n---\n# Hi"


def _doc(route: str = "hello world", body: str = "# Hi") -> str:
    return f"---\nroute: {route}\n---\n{body}"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store: MemoryStore) -> ContentRepository:
    return ContentRepository(store)


@pytest.fixture
def coordinator(repository: ContentRepository) -> UpdateCoordinator:
    return UpdateCoordinator(repository)


class InterleavingStore(MemoryStore):
    """Runs ``competitor`` inside the first mutator call, forcing a retry."""

    def __init__(self) -> None:
        super().__init__()
        self.competitor = None
        self.mutator_calls = 0

    def update(self, key, mutator):
        def wrapped(value):
            self.mutator_calls += 1
            if self.competitor is not None:
                competitor, self.competitor = self.competitor, None
                competitor()
            return mutator(value)

        return super().update(key, wrapped)


class TestCreate:
    def test_scenario_hello_world(self, coordinator, repository, store):
        assert coordinator.update(HELLO) is None
        assert list(store.get("content")) == ["hello-world"]
        record = repository.find_by_route("hello world")
        assert record.raw == HELLO
        assert '<h1 id="hi">' in record.rendered
        assert 'href="#hi"' in record.rendered

    def test_rendered_matches_processor(self, coordinator, repository):
        coordinator.update(HELLO)
        assert repository.find_by_route("hello-world") == MarkdownProcessor().parse(HELLO)

    def test_lookup_by_any_equivalent_route(self, coordinator, repository):
        coordinator.update(_doc("My First Post"))
        for spelling in ("My First Post", "my-first-post", "MY   FIRST\tPOST"):
            assert repository.find_by_route(spelling).raw == _doc("My First Post")

    def test_create_with_expectation_fails(self, coordinator, store):
        error = coordinator.update(HELLO, expected_prior_raw="anything")
        assert error is not None
        assert error.code == ErrorCode.CONTENT_HAS_CHANGED
        assert error.message == 'Content at route: "hello-world" has been modified since reading'
        assert store.get("content") == {}


class TestMissingRoute:
    def test_rejected(self, coordinator):
        error = coordinator.update("---\ntitle: No route\n---\n# Hi")
        assert error is not None
        assert error.type == "error"
        assert error.code == ErrorCode.CONTENT_MISSING_FIELD
        assert error.message == MISSING_ROUTE_MESSAGE

    def test_no_frontmatter_rejected(self, coordinator):
        assert coordinator.update("# Hi").code == ErrorCode.CONTENT_MISSING_FIELD

    def test_collection_unchanged(self, coordinator, store):
        coordinator.update(HELLO)
        before = store.get("content")
        coordinator.update("---\ntitle: No route\n---\n# Other")
        assert store.get("content") == before

    def test_checked_inside_mutation(self):
        record = ContentRecord(raw="x", attributes={"title": "t"})
        result = replace_record(record, None, None)(ContentCollection())
        assert result.code == ErrorCode.CONTENT_MISSING_FIELD

    def test_stores_under_given_key(self):
        record = ContentRecord(raw="x", attributes={"route": "Hello World"})
        result = replace_record(record, "hello-world", None)(ContentCollection())
        assert list(result.records) == ["hello-world"]


class TestOptimisticConcurrency:
    def test_matching_expectation_overwrites(self, coordinator, repository):
        coordinator.update(_doc(body="v1"))
        assert coordinator.update(_doc(body="v2"), expected_prior_raw=_doc(body="v1")) is None
        assert repository.find_by_route("hello world").raw == _doc(body="v2")

    def test_stale_expectation_rejected_second_time(self, coordinator, repository):
        coordinator.update(_doc(body="v1"))
        assert coordinator.update(_doc(body="v2"), expected_prior_raw=_doc(body="v1")) is None
        error = coordinator.update(_doc(body="v2"), expected_prior_raw=_doc(body="v1"))
        assert error is not None
        assert error.code == ErrorCode.CONTENT_HAS_CHANGED

    def test_mismatch_leaves_record_unchanged(self, coordinator, repository):
        coordinator.update(_doc(body="A"))
        error = coordinator.update(_doc(body="C"), expected_prior_raw=_doc(body="B"))
        assert error.code == ErrorCode.CONTENT_HAS_CHANGED
        assert repository.find_by_route("hello world").raw == _doc(body="A")

    def test_none_expectation_always_overwrites(self, coordinator, repository):
        coordinator.update(_doc(body="A"))
        assert coordinator.update(_doc(body="B"), expected_prior_raw=None) is None
        assert coordinator.update(_doc(body="C")) is None
        assert repository.find_by_route("hello world").raw == _doc(body="C")

    def test_full_replacement(self, coordinator, repository):
        coordinator.update("---\nroute: a\ntitle: Old\n---\nold")
        coordinator.update("---\nroute: a\n---\nnew")
        assert repository.find_by_route("a").attributes == {"route": "a"}

    def test_other_routes_untouched(self, coordinator, repository):
        coordinator.update(_doc("one", "first"))
        coordinator.update(_doc("two", "second"))
        assert repository.find_by_route("one").raw == _doc("one", "first")
        assert len(repository.load()) == 2

    def test_interleaved_writer_causes_conflict(self):
        store = InterleavingStore()
        repository = ContentRepository(store)
        coordinator = UpdateCoordinator(repository)
        coordinator.update(_doc(body="A"))

        store.competitor = lambda: coordinator.update(_doc(body="C"))
        error = coordinator.update(_doc(body="B"), expected_prior_raw=_doc(body="A"))

        assert error is not None
        assert error.code == ErrorCode.CONTENT_HAS_CHANGED
        assert repository.find_by_route("hello world").raw == _doc(body="C")

    def test_interleaved_writer_without_expectation_retries_and_wins(self):
        store = InterleavingStore()
        repository = ContentRepository(store)
        coordinator = UpdateCoordinator(repository)
        coordinator.update(_doc("other"))

        store.competitor = lambda: coordinator.update(_doc("third"))
        store.mutator_calls = 0
        assert coordinator.update(_doc(body="B")) is None

        # first attempt + competitor + re-run of the losing mutation
        assert store.mutator_calls == 3
        assert {m["route"] for m in repository.list_meta()} == {"other", "third", "hello world"}

    def test_racing_updates_one_wins(self, coordinator, repository):
        coordinator.update(_doc(body="A"))
        barrier = threading.Barrier(6)
        errors = []

        def worker(i: int) -> None:
            barrier.wait()
            errors.append(coordinator.update(_doc(body=f"writer {i}"), expected_prior_raw=_doc(body="A")))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = [e for e in errors if e is None]
        assert len(successes) == 1
        assert all(e.code == ErrorCode.CONTENT_HAS_CHANGED for e in errors if e is not None)
        assert repository.find_by_route("hello world").raw != _doc(body="A")


class TestPipelineFailures:
    def test_malformed_frontmatter(self, coordinator, store):
        error = coordinator.update("---\nroute: [oops\n---\n# Hi")
        assert error.code == ErrorCode.MALFORMED_CONTENT
        assert store.get("content") is None

    def test_frontmatter_without_json_form(self, coordinator, store):
        error = coordinator.update("---\nroute: x\nblob: !!binary /w==\n---\n# Hi")
        assert error is not None
        assert error.code == ErrorCode.MALFORMED_CONTENT
        assert store.get("content") is None

    def test_render_failure(self, repository, store):
        broken = MagicMock()
        broken.parse.side_effect = RuntimeError("renderer exploded")
        coordinator = UpdateCoordinator(repository, MarkdownProcessor(renderer=broken))
        error = coordinator.update(HELLO)
        assert error.code == ErrorCode.RENDER_FAILURE
        assert store.get("content") is None


class TestUnknownError:
    def test_store_failure_becomes_unknown_error(self, coordinator, store, monkeypatch):
        coordinator.update(HELLO)

        def explode(key, mutator):
            raise OSError("disk on fire")

        monkeypatch.setattr(store, "update", explode)
        error = coordinator.update(_doc(body="new"))
        assert error.code == ErrorCode.UNKNOWN_ERROR
        assert error.message == "disk on fire"


class TestLogging:
    def test_success_logs_normalized_key(self, coordinator, caplog):
        with caplog.at_level(logging.DEBUG, logger="routedoc.content.coordinator"):
            assert coordinator.update(_doc(route="Hello  World")) is None
        assert "'hello-world'" in caplog.text
