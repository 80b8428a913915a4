from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

import httpx
import psycopg
import pytest

from pdbsync.domain.models import InternetExchange, Network, NetworkIXLan
from pdbsync.errors import (
    InsertConflictError,
    PayloadDecodeError,
    SyncRunError,
    TransportError,
    UnexpectedStatusError,
)
from pdbsync.sync.applier import ConflictPolicy
from pdbsync.sync.driver import RunState, SyncDriver
from pdbsync.sync.envelope import Envelope
from pdbsync.sync.fetcher import CollectionFetcher
from tests.fakes import BASE_URL

ALL_TYPES = (InternetExchange, Network, NetworkIXLan)


@pytest.fixture
def fetcher(http_client) -> CollectionFetcher:
    return CollectionFetcher(http_client, BASE_URL)


def _requested(routes) -> List[str]:
    return [request.url.path.rsplit("/", 1)[-1] for request in routes.requests]


def test_end_to_end_insert_and_soft_delete(fetcher, routes, fake_conn) -> None:
    routes.ok(
        "ix",
        [
            {"id": 1, "status": "ok", "name": "AMS-IX"},
            {"id": 2, "status": "deleted", "name": "X"},
        ],
    )

    report = SyncDriver(fetcher, fake_conn, record_types=[InternetExchange]).run()

    assert list(fake_conn.tables["ix"]) == [1]
    assert fake_conn.tables["ix"][1]["name"] == "AMS-IX"
    assert fake_conn.commits == 1
    assert fake_conn.rollbacks == 0
    assert (report.inserted, report.deleted) == (1, 1)


def test_types_processed_in_configured_order_with_one_commit(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [{"id": 1, "status": "ok"}], generated="1609459300.0")
    routes.ok("net", [{"id": 10, "status": "ok", "asn": 46489}], generated="1609459200.0")
    routes.ok("netixlan", [{"id": 100, "status": "ok", "ix_id": 1, "net_id": 10}])

    driver = SyncDriver(fetcher, fake_conn, record_types=[Network, InternetExchange, NetworkIXLan])
    report = driver.run(since=1609459000)

    assert _requested(routes) == ["net", "ix", "netixlan"]
    assert all(r.url.params["since"] == "1609459000" for r in routes.requests)
    tables = [text.split('"')[1] for text, _ in fake_conn.statements("INSERT")]
    assert tables == ["networks", "ix", "network_ix_lans"]
    assert fake_conn.commits == 1
    assert driver.state is RunState.DONE
    assert [c.collection for c in report.collections] == ["net", "ix", "netixlan"]
    assert report.earliest_generated == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_earliest_generated_ignores_missing_timestamps(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [], generated="1609459300.0")
    routes.ok("net", [], generated="1609459200.0")

    report = SyncDriver(fetcher, fake_conn, record_types=[InternetExchange, Network]).run()

    assert report.earliest_generated == datetime(2021, 1, 1, tzinfo=timezone.utc)


def test_fetch_failure_aborts_before_apply_and_rolls_back(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [{"id": 1, "status": "ok", "name": "AMS-IX"}])
    routes.status("net", 500)
    routes.ok("netixlan", [{"id": 100, "status": "ok"}])

    driver = SyncDriver(fetcher, fake_conn, record_types=ALL_TYPES)
    with pytest.raises(SyncRunError) as excinfo:
        driver.run()

    err = excinfo.value
    assert err.collection == "net"
    assert isinstance(err.__cause__, UnexpectedStatusError)
    assert "net" in str(err)
    # "ix" was applied inside the transaction, then rolled back; "net" never applied.
    assert fake_conn.statements('INSERT INTO "networks"') == []
    assert fake_conn.tables.get("ix", {}) == {}
    assert _requested(routes) == ["ix", "net"]
    assert (fake_conn.commits, fake_conn.rollbacks) == (0, 1)
    assert driver.state is RunState.ABORTED


def test_redirect_loop_aborts_run_as_sync_error(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [{"id": 1, "status": "ok"}])
    routes.responses["net"] = httpx.TooManyRedirects("Exceeded maximum allowed redirects.")

    with pytest.raises(SyncRunError) as excinfo:
        SyncDriver(fetcher, fake_conn, record_types=[InternetExchange, Network]).run()

    assert excinfo.value.collection == "net"
    assert isinstance(excinfo.value.__cause__, TransportError)
    assert fake_conn.tables.get("ix", {}) == {}


def test_apply_failure_aborts_remaining_types(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [{"id": "bogus"}])
    routes.ok("net", [{"id": 10, "status": "ok"}])

    with pytest.raises(SyncRunError) as excinfo:
        SyncDriver(fetcher, fake_conn, record_types=[InternetExchange, Network]).run()

    assert excinfo.value.collection == "ix"
    assert isinstance(excinfo.value.__cause__, PayloadDecodeError)
    assert _requested(routes) == ["ix"]
    assert fake_conn.rollbacks == 1


def test_conflict_under_error_policy_rolls_back_whole_run(fetcher, routes, fake_conn) -> None:
    fake_conn.tables["networks"] = {10: {"id": 10}}
    routes.ok("ix", [{"id": 1, "status": "ok"}])
    routes.ok("net", [{"id": 10, "status": "ok"}])

    driver = SyncDriver(
        fetcher,
        fake_conn,
        record_types=[InternetExchange, Network],
        conflict_policy=ConflictPolicy.ERROR,
    )
    with pytest.raises(SyncRunError) as excinfo:
        driver.run()

    assert isinstance(excinfo.value.__cause__, InsertConflictError)
    assert "ix" not in fake_conn.tables or fake_conn.tables["ix"] == {}
    assert fake_conn.tables["networks"] == {10: {"id": 10}}


def test_second_run_over_same_records_succeeds_with_upsert(fetcher, routes, fake_conn) -> None:
    routes.ok("ix", [{"id": 1, "status": "ok", "name": "AMS-IX"}])
    driver = SyncDriver(fetcher, fake_conn, record_types=[InternetExchange])

    driver.run()
    driver.run()

    assert fake_conn.commits == 2
    assert list(fake_conn.tables["ix"]) == [1]


def test_driver_tracks_state_through_the_run(fake_conn) -> None:
    class _RecordingFetcher:
        def __init__(self) -> None:
            self.driver: Optional[SyncDriver] = None
            self.seen: List[tuple] = []

        def fetch(self, collection, since=None) -> Envelope:
            self.seen.append((self.driver.state, self.driver.current))
            return Envelope(data=[])

    fetcher = _RecordingFetcher()
    driver = SyncDriver(fetcher, fake_conn, record_types=[InternetExchange])
    fetcher.driver = driver

    assert driver.state is RunState.IDLE
    driver.run()

    assert fetcher.seen == [(RunState.FETCHING, "ix")]
    assert driver.state is RunState.DONE


def test_commit_failure_is_reported(fetcher, routes, fake_conn, monkeypatch) -> None:
    @contextmanager
    def failing_transaction():
        yield fake_conn
        raise psycopg.OperationalError("server closed the connection")

    monkeypatch.setattr(fake_conn, "transaction", failing_transaction)
    routes.ok("ix", [])

    driver = SyncDriver(fetcher, fake_conn, record_types=[InternetExchange])
    with pytest.raises(SyncRunError) as excinfo:
        driver.run()

    assert excinfo.value.collection is None
    assert "transaction" in str(excinfo.value)
    assert driver.state is RunState.ABORTED


def test_driver_requires_record_types(fetcher, fake_conn) -> None:
    with pytest.raises(ValueError):
        SyncDriver(fetcher, fake_conn, record_types=[])
