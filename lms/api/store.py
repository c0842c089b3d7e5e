"""On-demand store refresh.

Clients that just wrote through another replica (or a script) can call
this instead of waiting for the periodic refresher.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lms.api.dependencies import get_actor, get_store
from lms.models.actor import Actor
from lms.store.entity_store import EntityStore

router = APIRouter(prefix="/v1/store", tags=["store"])


class RefreshOut(BaseModel):
    changed: list[str]


@router.post("/refresh", response_model=RefreshOut)
def refresh_store(
    _actor: Annotated[Actor, Depends(get_actor)],
    store: Annotated[EntityStore, Depends(get_store)],
) -> RefreshOut:
    changed = store.refresh()
    return RefreshOut(changed=sorted(kind.value for kind in changed))
