"""Chain execution routes - run a chain and stream its results."""

import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from apichain.config import Settings, get_settings
from apichain.schemas.chain import (
    ChainResponse,
    ExecuteChainRequest,
    ExecuteChainResponse,
    PathListRequest,
    PathListResponse,
)
from apichain.services.api_testing import ChainExecutor
from apichain.services.api_testing.engine import ChainDefinitionError, summarize
from apichain.services.api_testing.json_paths import list_paths

router = APIRouter()
logger = logging.getLogger(__name__)


def get_executor_factory(settings: Settings = Depends(get_settings)):
    """Each run gets its own executor; runs never share runtime variables."""
    def factory() -> ChainExecutor:
        return ChainExecutor(settings=settings)
    return factory


def _dump(response: ChainResponse) -> dict:
    return response.model_dump(mode="json", by_alias=True)


@router.post("/execute", response_model=ExecuteChainResponse, response_model_by_alias=True)
async def execute_chain(
    data: ExecuteChainRequest,
    executor_factory=Depends(get_executor_factory),
):
    """Execute a chain and return every step's result."""
    executor = executor_factory()
    try:
        results = await executor.execute_chain(data.requests)
    except ChainDefinitionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    finally:
        await executor.close()

    return ExecuteChainResponse(results=results, summary=summarize(results))


@router.post("/paths", response_model=PathListResponse)
async def get_paths(data: PathListRequest):
    """List extraction paths available in a JSON document."""
    return PathListResponse(paths=list(list_paths(data.data)))


@router.websocket("/ws")
async def execute_websocket(
    websocket: WebSocket,
    executor_factory=Depends(get_executor_factory),
):
    """Execute a chain with WebSocket streaming of each step's result."""
    await websocket.accept()

    try:
        # Wait for start command
        start_data = await websocket.receive_json()
        if start_data.get("type") != "start":
            await websocket.send_json({"type": "error", "data": {"message": "Expected start command"}})
            await websocket.close()
            return

        try:
            request = ExecuteChainRequest.model_validate({"requests": start_data.get("requests", [])})
        except ValidationError as e:
            await websocket.send_json({"type": "error", "data": {"message": str(e)}})
            await websocket.close()
            return

        executor = executor_factory()
        await websocket.send_json({"type": "status", "data": {"status": "running"}})
        try:
            async for response in executor.iter_chain(request.requests):
                await websocket.send_json({"type": "response", "data": _dump(response)})
        except ChainDefinitionError as e:
            await websocket.send_json({"type": "error", "data": {"message": str(e)}})
            await websocket.close()
            return
        finally:
            await executor.close()

        await websocket.send_json({
            "type": "completed",
            "data": {
                "results": [_dump(r) for r in executor.results],
                "summary": summarize(executor.results).model_dump(by_alias=True),
            },
        })
        await websocket.close()

    except WebSocketDisconnect:
        logger.info("Chain WebSocket client disconnected")
