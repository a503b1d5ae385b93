from __future__ import annotations

from pathlib import Path

import fakeredis
import pytest

from request_labeler.celery_app import celery, parse_cron
from request_labeler.errors import FileAccessDenied
from request_labeler.recorder import record_dependency_snapshot, record_if_absent
from request_labeler.schemas.request import RequestContext
from request_labeler.store import SharedStore
from request_labeler.workers import maintenance


def _store(monkeypatch) -> SharedStore:
    store = SharedStore(fakeredis.FakeRedis(decode_responses=True))
    monkeypatch.setattr(maintenance, "get_store", lambda: store)
    return store


def test_run_archive_drains_table(tmp_path: Path, monkeypatch) -> None:
    store = _store(monkeypatch)
    record_if_absent(store, "a" * 32, RequestContext(entry_point="/index.php"))
    target = tmp_path / "archive.log"

    assert maintenance.run_archive(str(target)) == 1
    assert target.read_text(encoding="utf-8").startswith("Hash: " + "a" * 32)


def test_run_archive_reraises_file_errors(tmp_path: Path, monkeypatch) -> None:
    store = _store(monkeypatch)
    record_if_absent(store, "a" * 32, RequestContext(entry_point="/index.php"))

    with pytest.raises(FileAccessDenied):
        maintenance.run_archive(str(tmp_path / "missing" / "archive.log"))


def test_run_dependency_noise_filter(tmp_path: Path, monkeypatch) -> None:
    store = _store(monkeypatch)
    record_dependency_snapshot(store, ["/srv/app.py"])
    log = tmp_path / "noise.log"
    log.write_text("/srv/app.py\nkeep\n", encoding="utf-8")

    assert maintenance.run_dependency_noise_filter(str(log)) == 1
    assert log.read_text(encoding="utf-8") == "keep"


def test_beat_schedules_daily_archive() -> None:
    entry = celery.conf.beat_schedule["archive-requests-daily"]
    assert entry["task"] == maintenance.run_archive.name


def test_parse_cron_rejects_wrong_field_count() -> None:
    assert parse_cron("5 0 * * *") is not None
    with pytest.raises(ValueError):
        parse_cron("5 0 *")
