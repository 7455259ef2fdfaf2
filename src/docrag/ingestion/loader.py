"""Plain-text extraction — thin wrappers around LangChain document loaders."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_community.document_loaders import (
    BSHTMLLoader,
    Docx2txtLoader,
    PyPDFLoader,
    TextLoader,
)

from docrag.errors import ExtractionError

if TYPE_CHECKING:
    from langchain_core.document_loaders import BaseLoader

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset({"txt", "md", "markdown", "rst", "csv", "json", "yaml", "yml", "log", "ini"})


def _text_loader(path: str) -> BaseLoader:
    return TextLoader(path, encoding="utf-8", autodetect_encoding=True)


def _html_loader(path: str) -> BaseLoader:
    return BSHTMLLoader(path, open_encoding="utf-8")


_LOADERS: dict[str, Callable[[str], BaseLoader]] = {
    **{ext: _text_loader for ext in TEXT_EXTENSIONS},
    "html": _html_loader,
    "htm": _html_loader,
    "pdf": PyPDFLoader,
    "docx": Docx2txtLoader,
}


class TextExtractor:
    """Turn a file into plain text.

    :meth:`extract` returns ``None`` for unsupported extensions and raises
    :class:`ExtractionError` when a supported file cannot be read.
    """

    def __init__(self, loaders: dict[str, Callable[[str], BaseLoader]] | None = None) -> None:
        self._loaders = dict(_LOADERS if loaders is None else loaders)

    def extract(self, path: str | Path) -> str | None:
        factory = self._loaders.get(Path(path).suffix[1:].lower())
        if factory is None:
            return None
        try:
            documents = factory(str(path)).load()
        except Exception as exc:  # loaders raise anything from OSError to parser errors
            raise ExtractionError(str(path), str(exc) or type(exc).__name__) from exc
        return "\n\n".join(doc.page_content for doc in documents if doc.page_content)
