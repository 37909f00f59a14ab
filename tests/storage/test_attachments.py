from __future__ import annotations

from pathlib import Path

from bill_digest.storage.attachments import cleanup, persist


def test_persist_creates_nested_directory(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"

    path = persist(b"%PDF", target, "x.pdf")

    assert path == target / "x.pdf"
    assert path.read_bytes() == b"%PDF"


def test_persist_is_idempotent_on_existing_directory(tmp_path: Path) -> None:
    persist(b"1", tmp_path, "one.pdf")
    persist(b"2", tmp_path, "two.pdf")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["one.pdf", "two.pdf"]


def test_cleanup_removes_files_only(tmp_path: Path) -> None:
    persist(b"1", tmp_path, "one.pdf")
    persist(b"2", tmp_path, "two.pdf")
    (tmp_path / "keep").mkdir()

    assert cleanup(tmp_path) == 2
    assert [p.name for p in tmp_path.iterdir()] == ["keep"]


def test_cleanup_tolerates_missing_and_empty_directory(tmp_path: Path) -> None:
    assert cleanup(tmp_path / "missing") == 0
    assert cleanup(tmp_path) == 0
