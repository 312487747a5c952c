"""
stock_ingestion -- Collaborator boundary between store documents and engines.

Maps loosely-shaped store documents (dicts read from JSON exports or a
document store) into the kernel DTOs, once, so the engines never see
untyped data.  Also adapts externally produced suggestion results into
the canonical replenishment result shape.

Architecture:
    stock_ingestion/ is a top-level package. Nothing in stock_kernel/ or
    stock_engines/ imports from ingestion.
"""
