"""
FastAPI helpers for list endpoints.

`list_query` turns the request's query string into filters, order and
paging:

    @router.get("/users")
    async def list_users(query: ListQuery = Depends(list_query)) -> dict:
        rows = await get_dao().select(User, query.to_query(User.table_name))
        return {"users": [row.attrs for row in rows]}

    GET /users?s_gte_age=18&s_l_name=%25ada%25&order=name,desc&pn=2&pc=20

Filter values stay text here. DAO operations convert them to the declared
column types of the schema they run against (`age` -> 18), and a value that
does not convert becomes a ValidationError (400 with the handlers below).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tabledao.core.errors import AmbiguitySelectorError, ConfigError, ValidationError
from tabledao.query.builder import Order, ScopedQuery
from tabledao.query.conditions import (
    QUERY_ORDER_BY,
    QUERY_PAGE_COUNT,
    QUERY_PAGE_NUMBER,
    append_limit,
    page_bounds,
    parse_order,
    to_conditions,
)


class ListQuery(BaseModel):
    conditions: list[tuple[str, str, Any]] = Field(default_factory=list)
    # None when the request did not ask for an order.
    order: list[dict[str, str]] | None = None
    pn: int = Field(default=1, ge=1)
    pc: int | None = None

    def page_options(self) -> dict[str, int | None]:
        return {QUERY_PAGE_NUMBER: self.pn, QUERY_PAGE_COUNT: self.pc}

    def to_query(self, table_name: str) -> ScopedQuery:
        query = ScopedQuery(table_name).where_all(self.conditions)
        for clause in self.order or []:
            query = query.order_by(clause["column"], clause.get("direction") or "asc")
        return append_limit(query, self.pn, self.pc)


def build_list_query(params: Mapping[str, Any]) -> ListQuery:
    """
    Build a ListQuery from raw parameters; bad input becomes a 400.
    """
    try:
        raw_order = params.get(QUERY_ORDER_BY)
        order = parse_order(raw_order) if raw_order else None
        for clause in order or []:
            Order(clause.get("column", ""), clause.get("direction") or "asc")

        bounds = page_bounds(params.get(QUERY_PAGE_NUMBER), params.get(QUERY_PAGE_COUNT))
        pn = int(params.get(QUERY_PAGE_NUMBER) or 1)
        return ListQuery(
            conditions=to_conditions(params),
            order=order,
            pn=pn,
            pc=bounds[0] if bounds else None,
        )
    except ConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


async def list_query(request: Request) -> ListQuery:
    return build_list_query(dict(request.query_params))


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map DAO errors raised inside route handlers to JSON error responses.
    """

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=exc.code, content={"detail": exc.messages})

    @app.exception_handler(ConfigError)
    async def _config_error(_: Request, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(AmbiguitySelectorError)
    async def _ambiguity_error(_: Request, exc: AmbiguitySelectorError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})
