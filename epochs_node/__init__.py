"""
Epochs Node package initializer

Keep this module lightweight. Do not import the API or storage backends here,
so the deterministic runtime can be imported without FastAPI/uvicorn.
"""

__all__ = []
