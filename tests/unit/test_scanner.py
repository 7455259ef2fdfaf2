"""Unit tests for the corpus scanner, text extraction and knowledge sync."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docrag.errors import ExtractionError
from docrag.ingestion.hashing import file_hash
from docrag.ingestion.knowledge import sync_knowledge
from docrag.ingestion.loader import TextExtractor
from docrag.ingestion.models import FileIndexStatus
from docrag.ingestion.scanner import CorpusScanner


def _touch(root: Path, relative: str, content: str = "content") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def corpus(tmp_path: Path) -> Path:
    for relative in [
        "guide.md",
        "Notes.TXT",
        "noext",
        "docs/a.md",
        "docs/drafts/wip.md",
        "other/drafts/keep.md",
        "node_modules/pkg/readme.md",
        "docs/~$lock.docx",
        "docs/cache.tmp",
    ]:
        _touch(tmp_path, relative)
    return tmp_path


# ── CorpusScanner ───────────────────────────────────────────────────────


class TestCorpusScanner:
    def test_lists_every_file_sorted(self, corpus: Path) -> None:
        result = CorpusScanner(corpus).scan()
        assert [c.relative_path for c in result.candidates] == [
            "Notes.TXT",
            "guide.md",
            "noext",
            "docs/a.md",
            "docs/cache.tmp",
            "docs/~$lock.docx",
            "docs/drafts/wip.md",
            "node_modules/pkg/readme.md",
            "other/drafts/keep.md",
        ]
        assert result.excluded == []
        assert result.total == result.total_files_found == 9

    def test_extension_is_lowercased(self, corpus: Path) -> None:
        by_path = {c.relative_path: c for c in CorpusScanner(corpus).scan().candidates}
        assert by_path["Notes.TXT"].extension == "txt"
        assert by_path["noext"].extension is None
        assert Path(by_path["guide.md"].absolute_path).is_absolute()

    def test_directory_name_excluded_anywhere(self, corpus: Path) -> None:
        result = CorpusScanner(corpus, excluded_dirs=["node_modules", "drafts"]).scan()
        paths = {c.relative_path for c in result.candidates}
        assert "node_modules/pkg/readme.md" not in paths
        assert "docs/drafts/wip.md" not in paths
        assert "other/drafts/keep.md" not in paths

    def test_directory_prefix_excluded_only_there(self, corpus: Path) -> None:
        result = CorpusScanner(corpus, excluded_dirs=["docs/drafts"]).scan()
        paths = {c.relative_path for c in result.candidates}
        assert "docs/drafts/wip.md" not in paths
        assert "other/drafts/keep.md" in paths

    def test_name_patterns(self, corpus: Path) -> None:
        result = CorpusScanner(corpus, excluded_name_patterns=["*.tmp", "~$*"]).scan()
        excluded = {r.relative_path for r in result.excluded}
        assert excluded == {"docs/~$lock.docx", "docs/cache.tmp"}
        assert all(r.status is FileIndexStatus.SKIPPED_EXCLUDED for r in result.excluded)
        assert result.total_files_found == 9

    def test_path_filters(self, corpus: Path) -> None:
        result = CorpusScanner(corpus, path_filters=["docs/", "guide.md"]).scan()
        paths = {c.relative_path for c in result.candidates}
        assert paths == {"guide.md", "docs/a.md", "docs/drafts/wip.md", "docs/~$lock.docx", "docs/cache.tmp"}

    def test_path_filter_is_a_segment_prefix(self, corpus: Path) -> None:
        result = CorpusScanner(corpus, path_filters=["doc"]).scan()
        assert result.candidates == []

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            CorpusScanner(tmp_path / "missing").scan()

    def test_order_is_stable(self, corpus: Path) -> None:
        first = [c.relative_path for c in CorpusScanner(corpus).scan().candidates]
        second = [c.relative_path for c in CorpusScanner(corpus).scan().candidates]
        assert first == second


# ── Hashing ─────────────────────────────────────────────────────────────


class TestFileHash:
    def test_same_content_same_hash(self, tmp_path: Path) -> None:
        a = _touch(tmp_path, "a.txt", "hello")
        b = _touch(tmp_path, "b.txt", "hello")
        assert file_hash(a) == file_hash(b)

    def test_content_change_changes_hash(self, tmp_path: Path) -> None:
        path = _touch(tmp_path, "a.txt", "hello")
        before = file_hash(path)
        path.write_text("hello!", encoding="utf-8")
        assert file_hash(path) != before


# ── TextExtractor ───────────────────────────────────────────────────────


class TestTextExtractor:
    def test_reads_markdown(self, tmp_path: Path) -> None:
        path = _touch(tmp_path, "doc.md", "# Title\n\nBody text.")
        assert TextExtractor().extract(path) == "# Title\n\nBody text."

    def test_unsupported_extension_returns_none(self, tmp_path: Path) -> None:
        path = _touch(tmp_path, "image.png", "binary")
        assert TextExtractor().extract(path) is None

    def test_loader_failure_raises_extraction_error(self, tmp_path: Path) -> None:
        failing = MagicMock()
        failing.return_value.load.side_effect = RuntimeError("corrupt file")
        extractor = TextExtractor({"pdf": failing})

        with pytest.raises(ExtractionError, match="corrupt file"):
            extractor.extract(tmp_path / "broken.pdf")

    def test_pages_joined_with_blank_line(self, tmp_path: Path) -> None:
        loader = MagicMock()
        loader.return_value.load.return_value = [
            MagicMock(page_content="page one"),
            MagicMock(page_content=""),
            MagicMock(page_content="page two"),
        ]
        extractor = TextExtractor({"pdf": loader})
        assert extractor.extract(tmp_path / "x.PDF") == "page one\n\npage two"


# ── sync_knowledge ──────────────────────────────────────────────────────


class TestSyncKnowledge:
    def test_copies_dirs_and_files(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "docs/a.md", "A")
        single = _touch(tmp_path, "README.md", "R")
        target = tmp_path / "knowledge"

        report = sync_knowledge([tmp_path / "src", single, tmp_path / "missing"], target)

        assert (target / "docs" / "a.md").read_text(encoding="utf-8") == "A"
        assert (target / "README.md").read_text(encoding="utf-8") == "R"
        assert len(report.copied) == 2
        assert report.missing == [str(tmp_path / "missing")]

    def test_existing_files_are_kept(self, tmp_path: Path) -> None:
        target = tmp_path / "knowledge"
        _touch(target, "old.md", "old")
        _touch(tmp_path / "src", "new.md", "new")

        sync_knowledge([tmp_path / "src"], target)

        assert (target / "old.md").exists()
        assert (target / "new.md").exists()
