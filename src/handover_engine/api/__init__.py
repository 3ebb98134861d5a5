"""HTTP surface for the handover engine (FastAPI)."""
