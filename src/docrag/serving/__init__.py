"""HTTP serving — FastAPI app over :class:`docrag.engine.RagEngine`."""
