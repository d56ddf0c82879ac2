# Supabase table: competitions
# This file documents the expected database schema
# Actual operations are handled via the store in service.py

"""
Expected Supabase table structure:

competitions:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable) - defaults to "<sport> competition" on create
- event_date: date (not null) - passed through as a date-only string
- venue: text (not null)
- sport: text (not null)
- created_by: uuid (foreign key to users.id, not null) - owner, never changes
- is_visible: boolean (default: true)
- registration_open: boolean (default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Only the row whose created_by equals the caller may be updated or deleted;
every write filters on both id and created_by.
"""
