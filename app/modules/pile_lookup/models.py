# Supabase table: pile_lookup_data
# This file documents the expected database schema

"""
Expected Supabase table structure:

pile_lookup_data (the "pile plot": design data per pile tag, used to autofill field entry):
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- pile_tag: text (not null)
- block: text (nullable)
- pile_type: text (nullable)
- design_embedment: numeric (nullable)
- northing: numeric (nullable)
- easting: numeric (nullable)
- pile_size: text (nullable)
- created_at: timestamp (default: now())

Index: (project_id, pile_tag)
An upload replaces every row for the project.
"""
