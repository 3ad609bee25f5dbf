# Supabase tables: super_admins (plus auth.users via the admin API)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

super_admins:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, unique, not null)
- granted_by: uuid (foreign key to auth.users.id, nullable)
- created_at: timestamp (default: now())

All /admin operations run with the service_role client (bypasses RLS).
Project deletion removes child rows table by table, in this order:
pile_activities, piles, preliminary_production, pile_lookup_data,
weather_data, project_invitations, user_projects, then projects.
There is no transaction; a failed child delete is logged and skipped.
"""
