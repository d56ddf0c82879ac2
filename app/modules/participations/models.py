# Supabase table: competition_participants
# This file documents the expected database schema
# Actual operations are handled via the store in service.py

"""
Expected Supabase table structure:

competition_participants:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- competition_id: uuid (foreign key to competitions.id, not null)
- joined_at: timestamp (default: now())

Unique constraint on (user_id, competition_id). An insert that violates it
fails with code 23505 and is reported as "already registered".
Rows are never updated; there is no leave action.
"""
