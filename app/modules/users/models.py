# Supabase tables: users, auth.users
# This file documents the expected database schema
# Actual operations are handled via the store in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- full_name: text (nullable)
- role: text (not null) - values: participant, event_manager
- created_at: timestamp (default: now())

Rows are written by a trigger on auth.users at sign-up time, copying
full_name and role from the sign-up metadata. The application only reads
this table; role is never updated by the backend.
"""
