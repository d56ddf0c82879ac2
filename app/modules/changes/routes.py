from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_events
from app.core.events import ChangeBus
from app.modules.changes.schemas import ChangeFeedResponse, ChangeEventResponse
from typing import Optional

router = APIRouter(prefix="/changes", tags=["changes"])


@router.get("", response_model=ChangeFeedResponse)
async def poll_changes(
    since: int = Query(0, ge=0),
    topic: Optional[str] = None,
    events: ChangeBus = Depends(get_events)
):
    """Polling fallback for the change feed: every retained event after `since`.

    Clients keep the returned `latest` and pass it back as `since`. Events
    that fell out of the bounded log are not replayed; a client that sees
    `latest` jump past its last event should refetch the whole view.
    """
    latest = events.latest_seq
    return ChangeFeedResponse(
        latest=latest,
        events=[ChangeEventResponse(**e.to_dict()) for e in events.events_since(since, topic) if e.seq <= latest],
    )
