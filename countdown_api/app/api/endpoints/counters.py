"""
Counter endpoints.

CRUD over the counter collection.  Handlers hold no state of their
own: every request goes to the ``CounterStore`` attached to the
application at startup.  Store calls do blocking file I/O and take the
store's lock, so they run in a worker thread via ``asyncio.to_thread``.

Request bodies are decoded into ``CounterPayload``; malformed JSON and
schema violations are turned into HTTP 400 by the handler registered in
``main.create_app``.
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from countdown_api.app.core.exceptions import InvalidInput, NotFound, PersistenceError
from countdown_api.app.schemas.counter import Counter, CounterPayload
from countdown_api.app.services.counter_service import CounterStore

router = APIRouter()


def get_store(request: Request) -> CounterStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Counter store not loaded")
    return store


def _internal_error(exc: PersistenceError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=List[Counter])
async def list_counters(store: CounterStore = Depends(get_store)) -> List[Counter]:
    """Return every counter in creation order."""
    return store.list()


@router.post("", response_model=Counter, status_code=status.HTTP_201_CREATED)
async def create_counter(
    payload: CounterPayload,
    store: CounterStore = Depends(get_store),
) -> Counter:
    """Create a counter and return it with its assigned id."""
    try:
        return await asyncio.to_thread(store.create, payload.title, payload.target)
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except PersistenceError as e:
        raise _internal_error(e) from e


@router.get("/{counter_id}", response_model=Counter)
async def get_counter(counter_id: str, store: CounterStore = Depends(get_store)) -> Counter:
    try:
        return store.get(counter_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{counter_id}", response_model=Counter)
async def update_counter(
    counter_id: str,
    payload: CounterPayload,
    store: CounterStore = Depends(get_store),
) -> Counter:
    """Replace a counter's title and target.  The id is preserved."""
    try:
        return await asyncio.to_thread(store.update, counter_id, payload.title, payload.target)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except PersistenceError as e:
        raise _internal_error(e) from e


@router.delete("/{counter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_counter(counter_id: str, store: CounterStore = Depends(get_store)) -> Response:
    try:
        await asyncio.to_thread(store.delete, counter_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PersistenceError as e:
        raise _internal_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
