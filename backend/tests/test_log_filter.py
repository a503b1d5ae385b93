from __future__ import annotations

import os
from pathlib import Path

import fakeredis

from request_labeler.log_filter import delete_matching_lines, load_snapshots, remove_dependency_noise
from request_labeler.recorder import record_dependency_snapshot
from request_labeler.store import SharedStore

DEPENDENCIES = "included_files"


def _write(tmp_path: Path, lines: list[str], name: str = "test.log") -> Path:
    path = tmp_path / name
    path.write_text("".join(lines), encoding="utf-8")
    return path


def test_delete_existing_line(tmp_path: Path) -> None:
    path = _write(tmp_path, ["Line 1\n", "Line 2\n", "Line to be deleted\n", "Line 3\n", "Line 4\n"])

    assert delete_matching_lines(path, "Line to be deleted") == 1
    assert path.read_text(encoding="utf-8") == "Line 1\nLine 2\nLine 3\nLine 4"


def test_delete_multiple_instances_of_line(tmp_path: Path) -> None:
    path = _write(tmp_path, ["Line 1\n", "Line 2\n", "DEL\n", "DEL\n", "Line 3\n"])

    assert delete_matching_lines(path, "DEL") == 2
    assert path.read_text(encoding="utf-8").split("\n") == ["Line 1", "Line 2", "Line 3"]


def test_delete_matches_trimmed_content(tmp_path: Path) -> None:
    path = _write(tmp_path, ["keep\n", "   DEL  \n", "\tDEL\n", "DEL-not\n"])

    assert delete_matching_lines(path, "DEL") == 2
    assert path.read_text(encoding="utf-8") == "keep\nDEL-not"


def test_delete_line_with_special_characters(tmp_path: Path) -> None:
    lines = [
        "Line 1\n",
        "Line with special characters: !@#$%^&*()\n",
        "Line with utf-8 characters: äöüß\n",
        "Line to be deleted\n",
        "Final line\n",
    ]
    path = _write(tmp_path, lines)

    delete_matching_lines(path, "Line to be deleted")
    assert path.read_text(encoding="utf-8") == (
        "Line 1\nLine with special characters: !@#$%^&*()\nLine with utf-8 characters: äöüß\nFinal line"
    )


def test_delete_line_from_nonexistent_file(tmp_path: Path) -> None:
    path = tmp_path / "nope" / "file.txt"

    assert delete_matching_lines(path, "anything") == 0
    assert not path.exists()
    assert not path.parent.exists()


def test_delete_line_from_empty_file(tmp_path: Path) -> None:
    path = _write(tmp_path, [])

    assert delete_matching_lines(path, "Line to be deleted") == 0
    assert path.read_text(encoding="utf-8") == ""


def test_delete_line_without_match_does_not_rewrite(tmp_path: Path) -> None:
    path = _write(tmp_path, ["Line 1\n", "Line 2\n"])

    assert delete_matching_lines(path, "absent") == 0
    assert path.read_text(encoding="utf-8") == "Line 1\nLine 2\n"


def test_delete_line_keeps_bytes_that_are_not_utf8(tmp_path: Path) -> None:
    path = tmp_path / "test.log"
    path.write_bytes(b"keep \xff\xfe\nDEL\n")

    assert delete_matching_lines(path, "DEL") == 1
    assert path.read_bytes() == b"keep \xff\xfe"


def test_delete_line_splits_on_newline_only(tmp_path: Path) -> None:
    path = tmp_path / "test.log"
    path.write_bytes(
        "{\"msg\": \"a\u2028b\"}\npage\x0cbreak\r\nDEL\r\n\nDEL\ntail\n".encode("utf-8")
    )

    assert delete_matching_lines(path, "DEL") == 2
    assert path.read_bytes() == "{\"msg\": \"a\u2028b\"}\npage\x0cbreak\r\n\ntail".encode("utf-8")


def test_delete_line_with_permission_issues_is_noop(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path, ["Line 1\n", "Line to be deleted\n"])
    monkeypatch.setattr(os, "access", lambda *args, **kwargs: False)

    assert delete_matching_lines(path, "Line to be deleted") == 0
    assert path.read_text(encoding="utf-8") == "Line 1\nLine to be deleted\n"


def test_delete_line_keeps_file_mode(tmp_path: Path) -> None:
    path = _write(tmp_path, ["a\n", "b\n"])
    path.chmod(0o640)

    delete_matching_lines(path, "a")
    assert path.stat().st_mode & 0o777 == 0o640
    assert [p.name for p in tmp_path.iterdir()] == ["test.log"]


def _store() -> SharedStore:
    return SharedStore(fakeredis.FakeRedis(decode_responses=True))


def test_remove_dependency_noise_strips_snapshot_paths(tmp_path: Path) -> None:
    store = _store()
    record_dependency_snapshot(store, ["/app/a.py", "/app/b.py"], table=DEPENDENCIES)
    path = _write(tmp_path, ["/app/a.py\n", "real warning\n", "/app/b.py\n", "/app/a.py\n", "tail\n"])

    assert remove_dependency_noise(store, path, table=DEPENDENCIES) == 3
    assert path.read_text(encoding="utf-8") == "real warning\ntail"


def test_remove_dependency_noise_skips_malformed_snapshots(tmp_path: Path) -> None:
    store = _store()
    digest = record_dependency_snapshot(store, ["/app/a.py"], table=DEPENDENCIES)
    store.write_field(DEPENDENCIES, "0" * 32, "not json")
    store.write_field(DEPENDENCIES, "1" * 32, '{"files": "/app/b.py"}')
    path = _write(tmp_path, ["/app/a.py\n", "keep\n"])

    assert [s.digest for s in load_snapshots(store, table=DEPENDENCIES)] == [digest]
    assert remove_dependency_noise(store, path, table=DEPENDENCIES) == 1
    assert path.read_text(encoding="utf-8") == "keep"


def test_remove_dependency_noise_uses_smallest_digest(tmp_path: Path) -> None:
    store = _store()
    first = record_dependency_snapshot(store, ["/app/a.py"], table=DEPENDENCIES)
    second = record_dependency_snapshot(store, ["/app/b.py"], table=DEPENDENCIES)
    chosen = "/app/a.py" if first < second else "/app/b.py"
    path = _write(tmp_path, ["/app/a.py\n", "/app/b.py\n"])

    assert remove_dependency_noise(store, path, table=DEPENDENCIES) == 1
    assert chosen not in path.read_text(encoding="utf-8")


def test_remove_dependency_noise_without_snapshots(tmp_path: Path) -> None:
    path = _write(tmp_path, ["/app/a.py\n"])

    assert remove_dependency_noise(_store(), path, table=DEPENDENCIES) == 0
    assert path.read_text(encoding="utf-8") == "/app/a.py\n"
