# Supabase tables: piles, pile_activities
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

piles:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- pile_id: text (nullable) - tag from the pile plan, e.g. A1-101
- pile_number: text (not null)
- pile_location: text (nullable)
- block: text (nullable)
- pile_type: text (nullable)
- pile_size: text (nullable)
- pile_color: text (nullable)
- pile_status: text (default: 'pending') - values: pending, accepted, tolerance, refusal
  (a value other than pending overrides the status derived from embedment)
- zone: text (nullable)
- installation_date: date (nullable)
- start_date: date (nullable)
- start_time: text (nullable)
- stop_time: text (nullable)
- duration: text (nullable) - usually H:MM:SS
- start_z: numeric (nullable)
- end_z: numeric (nullable)
- embedment: numeric (nullable) - feet; start_z - end_z when not measured directly
- design_embedment: numeric (nullable)
- gain_per_30_seconds: numeric (nullable)
- machine: integer (nullable)
- inspector_name: text (nullable)
- notes: text (nullable)
- published: boolean (default: false) - visible to owner accounts when true
- northing: numeric (nullable) - State Plane Y, US survey feet
- easting: numeric (nullable) - State Plane X, US survey feet
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

pile_activities:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id)
- pile_id: uuid (foreign key to piles.id)
- created_at: timestamp (default: now())
"""
