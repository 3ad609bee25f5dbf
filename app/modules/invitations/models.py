# Supabase table: project_invitations
# This file documents the expected database schema

"""
Expected Supabase table structure:

project_invitations:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- email: text (not null, stored lowercase)
- role: text (not null) - one of MEMBERSHIP_ROLES
- token: text (unique, not null) - 64 hex chars
- status: text (default: 'pending') - values: pending, accepted, revoked
- invited_by: uuid (foreign key to auth.users.id)
- expires_at: timestamp (not null)
- accepted_at: timestamp (nullable)
- accepted_by: uuid (nullable)
- created_at: timestamp (default: now())

Relationships:
- Accepting creates the user_projects row for (accepted_by, project_id, role)
"""
