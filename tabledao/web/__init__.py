"""
Optional FastAPI integration.
"""

from .dependencies import ListQuery, build_list_query, list_query, register_exception_handlers

__all__ = ["ListQuery", "build_list_query", "list_query", "register_exception_handlers"]
