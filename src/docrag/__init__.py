"""docrag — a document retrieval-augmented-generation engine.

Sub-packages
------------
- :mod:`docrag.ingestion` — corpus scanning, text extraction, chunking, indexing.
- :mod:`docrag.backends` — embedding / chat providers behind one interface.
- :mod:`docrag.retrieval` — the top-K similarity query contract.
- :mod:`docrag.answering` — question answering over retrieved context.
- :mod:`docrag.profiles` — switchable RAG configuration bundles.
- :mod:`docrag.storage` — SQL persistence of files and chunks.
- :mod:`docrag.serving` — FastAPI surface.
"""

__version__ = "0.1.0"
