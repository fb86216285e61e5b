"""GraphQL endpoint for the pgql API."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.requests import ClientDisconnect

from ...core.logging import get_logger
from ..dependencies import GraphQLEngineDep

logger = get_logger(__name__)


class GraphQLRequest(BaseModel):
    """Body of a GraphQL POST request."""

    query: str
    variables: dict[str, Any] | None = None
    operation_name: str | None = Field(default=None, alias="operationName")


def create_graphql_router(path: str) -> APIRouter:
    """Router serving GraphQL requests at ``path``."""
    router = APIRouter()

    @router.post(path)
    async def graphql_endpoint(request: Request, engine: GraphQLEngineDep) -> JSONResponse:
        """Execute a GraphQL request.

        Returns 400 when the body cannot be read or when execution produced
        no data at all; otherwise 200 with the standard GraphQL response,
        which may still carry field errors.
        """
        try:
            payload = GraphQLRequest.model_validate_json(await request.body())
        except (ValidationError, ClientDisconnect) as e:
            logger.warning("Unreadable GraphQL request body", error=str(e))
            return JSONResponse(status_code=400, content={"detail": "can't read body"})

        result = await engine.execute(
            payload.query,
            variables=payload.variables,
            operation_name=payload.operation_name,
        )

        if result.data is None and result.errors:
            return JSONResponse(
                status_code=400,
                content={
                    "detail": "can't process request",
                    "errors": [error.formatted for error in result.errors],
                },
            )

        return JSONResponse(content=result.formatted)

    return router
