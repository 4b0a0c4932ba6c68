# backend/sentinel/api/v1/routes_events.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sentinel.api.deps import get_event_store, verify_token
from sentinel.schemas.events import Event, EventListResponse
from sentinel.services.events.event_store_service import EventStoreService

router = APIRouter(
    prefix="/events",
    tags=["events"],
    dependencies=[Depends(verify_token)],
)


@router.get("", response_model=EventListResponse, summary="List ingested events")
def list_events(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    event_type: Optional[str] = None,
    actor: Optional[str] = None,
    events: EventStoreService = Depends(get_event_store),
) -> EventListResponse:
    items = events.list_events(limit=limit, offset=offset, event_type=event_type, actor=actor)
    return EventListResponse(events=items, count=len(items))


@router.get("/{event_id}", response_model=Event, summary="Get a single ingested event")
def get_event(
    event_id: str,
    events: EventStoreService = Depends(get_event_store),
) -> Event:
    try:
        return events.get_event(event_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
