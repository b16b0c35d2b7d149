"""
App assembly entry point.

Re-exports the FastAPI `app` from `garden.api.main` so `uvicorn app:app`
works from the repository root.
"""

from garden.api.main import app  # noqa: F401
