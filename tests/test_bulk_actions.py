import asyncio

import pytest

from dal.record_source import AuthorizationError
from services.bulk_actions import BulkActionExecutor, summarize
from services.operation_guard import OperationGuard
from tests.factories import FakeRecordSource, make_record


def _source(**kwargs):
    return FakeRecordSource([make_record(1), make_record(2), make_record(3)], **kwargs)


def test_batch_failure_falls_back_to_single_updates():
    source = _source()
    source.failing_ids = {2}

    result = asyncio.run(BulkActionExecutor(source).execute("verify", [1, 2, 3]))

    assert (result.success_count, result.failure_count) == (2, 1)
    assert result.success
    assert result.message == "Verified 2 images. Failed to verify 1 images."
    assert source.records[1].verified and source.records[3].verified
    assert not source.records[2].verified
    assert source.calls[0] == ("bulk_update", [1, 2, 3], {"is_verified": True})


def test_successful_batch_is_a_single_request():
    source = _source()
    result = asyncio.run(BulkActionExecutor(source).execute("verify", [1, 3]))

    assert result.message == "Successfully verified 2 images"
    assert [call[0] for call in source.calls] == ["bulk_update"]


def test_sources_without_batching_update_each_id():
    source = _source(supports_bulk_update=False)
    source.records[2] = make_record(2, verified=True)

    result = asyncio.run(BulkActionExecutor(source, max_concurrency=3).execute("unverify", [2, 3]))

    assert result.success_count == 2
    assert {call[0] for call in source.calls} == {"update_record"}
    assert not source.records[2].verified


def test_delete_runs_per_item_and_isolates_failures():
    source = _source()
    source.failing_ids = {1, 3}

    result = asyncio.run(BulkActionExecutor(source).execute("delete", [1, 2, 3]))

    assert (result.success_count, result.failure_count) == (1, 2)
    assert set(source.records) == {1, 3}


def test_all_failures_report_total_failure():
    source = _source()
    source.failing_ids = {1, 2}

    result = asyncio.run(BulkActionExecutor(source).execute("delete", [1, 2]))

    assert not result.success
    assert result.message == "Failed to delete all 2 images."


def test_empty_selection_short_circuits():
    source = _source()
    result = asyncio.run(BulkActionExecutor(source).execute("unverify", []))

    assert result.status == "empty"
    assert result.message == "No images selected. Select an image to unverify."
    assert source.calls == []


def test_second_run_of_same_action_is_rejected_while_first_is_running():
    source = _source()
    guard = OperationGuard()
    executor = BulkActionExecutor(source, guard)

    async def run():
        async with guard.hold("verify"):
            busy = await executor.execute("verify", [1])
            other = await executor.execute("delete", [1])
        return busy, other

    busy, other = asyncio.run(run())

    assert busy.status == "busy"
    assert other.status == "completed"
    assert not guard.is_running("verify")


def test_authorization_error_is_not_counted_as_item_failure():
    class Rejecting(FakeRecordSource):
        async def delete_record(self, image_id):
            raise AuthorizationError("expired")

    with pytest.raises(AuthorizationError):
        asyncio.run(BulkActionExecutor(Rejecting([make_record(1)])).execute("delete", [1]))


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(BulkActionExecutor(_source()).execute("archive", [1]))


def test_summary_messages():
    assert summarize("delete", 4, 0) == "Successfully deleted 4 images"
    assert summarize("unverify", 1, 2) == "Unverified 1 images. Failed to unverify 2 images."


def test_authorization_error_stops_concurrent_deletes_before_releasing_the_action():
    class SlowRejecting(FakeRecordSource):
        def __init__(self, records):
            super().__init__(records)
            self.in_flight = 0
            self.deleted = []

        async def delete_record(self, image_id):
            if image_id == 1:
                raise AuthorizationError("expired")
            self.in_flight += 1
            try:
                await asyncio.sleep(0.05)
                self.deleted.append(image_id)
            finally:
                self.in_flight -= 1

    source = SlowRejecting([make_record(i) for i in range(1, 5)])
    executor = BulkActionExecutor(source, max_concurrency=4)

    async def run():
        with pytest.raises(AuthorizationError):
            await executor.execute("delete", [1, 2, 3, 4])
        return executor.is_running("delete"), source.in_flight, list(source.deleted)

    running, in_flight, deleted = asyncio.run(run())

    assert not running
    assert in_flight == 0
    assert deleted == []
