# Supabase table: preliminary_production
# This file documents the expected database schema

"""
Expected Supabase table structure:

preliminary_production (machine productivity uploaded before engineer data exists;
kept apart from piles and never shown in dashboard, pile list, blocks or zones):
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- machine: text (not null)
- pile_id: text (nullable) - PRELIM-<n> when the sheet has no pile id column
- pile_number: text (nullable)
- block: text (nullable)
- start_date: text (nullable)
- start_time: text (nullable)
- stop_time: text (nullable)
- duration: text (nullable) - H:MM:SS
- created_at: timestamp (default: now())
"""
