# Supabase tables: projects, user_projects
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

projects:
- id: uuid (primary key)
- project_name: text (not null)
- name: text (nullable) - legacy copy of project_name
- project_location: text (not null)
- total_project_piles: integer (default: 0)
- tracker_system: text - values: software, spreadsheet, manual, none
- geotech_company: text (default: '')
- role: text - job role of the creator, e.g. project_manager (free text)
- embedment_tolerance: numeric (default: 1) - feet below design still accepted
- location_lat: numeric (nullable)
- location_lng: numeric (nullable)
- coordinate_system: text (nullable) - EPSG code of pile northing/easting, e.g. EPSG:2278
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_projects:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- project_id: uuid (foreign key to projects.id, not null)
- role: text - membership role (admin, manager, engineer, viewer, owner_rep) or setup job role
- is_owner: boolean (default: false)
- created_at: timestamp (default: now())
- unique constraint on (user_id, project_id)
"""
