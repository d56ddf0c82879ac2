"""
Seed Demo Competitions Script
Creates a handful of demo competitions owned by one organizer. Every row goes
through CompetitionService, so the same validation and ownership rules apply
as for competitions created from the dashboard.

Usage: python -m app.scripts.seed_competitions <organizer-user-id>
"""

import sys
import logging

from app.config import settings
from app.core.events import ChangeBus
from app.core.identity import SessionUser
from app.database.supabase_client import SupabaseClient, create_store
from app.modules.competitions.schemas import CompetitionCreate
from app.modules.competitions.service import CompetitionService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_COMPETITIONS = [
    {"name": "Spring City Marathon", "event_date": "2026-04-12", "venue": "Riverside Park", "sport": "Running"},
    {"name": "Harbour Open Water Swim", "event_date": "2026-06-20", "venue": "North Harbour", "sport": "Swimming"},
    {"name": "Summer Club Tennis Cup", "event_date": "2026-07-04", "venue": "Central Courts", "sport": "Tennis"},
    {"name": "Hill Climb Challenge", "event_date": "2026-08-15", "venue": "Ridge Road", "sport": "Cycling"},
    {"name": "Five-a-Side Autumn League", "event_date": "2026-09-26", "venue": "Westside Pitches", "sport": "Football"},
    {"name": "3x3 Street Basketball", "event_date": "2026-10-10", "venue": "Market Square", "sport": "Basketball"},
]


def seed_competitions(store, organizer: SessionUser, events: ChangeBus = None) -> int:
    """Create the demo competitions for organizer; returns how many were created"""
    service = CompetitionService(store, events or ChangeBus(log_size=settings.change_log_size))
    created_count = 0

    for competition in DEMO_COMPETITIONS:
        outcome = service.create_competition(organizer, CompetitionCreate(**competition))
        if outcome.ok:
            created_count += 1
            logger.debug(f"Created competition: {competition['name']}")
        else:
            logger.error(f"Could not create {competition['name']}: {outcome.error}")

    return created_count


def main():
    """Seed the configured backend for the organizer id given on the command line"""
    if len(sys.argv) != 2:
        logger.error("Usage: python -m app.scripts.seed_competitions <organizer-user-id>")
        sys.exit(2)

    try:
        # Writes bypass RLS on the hosted project; the memory store only lives for this process
        store = create_store() if settings.is_memory_backend else SupabaseClient.get_service_client()

        logger.info("Starting demo competition seeding...")
        count = seed_competitions(store, SessionUser(id=sys.argv[1]))
        logger.info(f"Seeding completed: {count} of {len(DEMO_COMPETITIONS)} competitions created")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
