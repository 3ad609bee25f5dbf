# Supabase table: weather_data
# This file documents the expected database schema

"""
Expected Supabase table structure:

weather_data (daily Open-Meteo cache per project):
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- date: date (not null)
- temperature_max: numeric - degrees F
- temperature_min: numeric
- temperature_avg: numeric
- weather_code: integer - WMO code
- condition_text: text
- precipitation_sum: numeric - inches
- precipitation_hours: numeric
- wind_speed_max: numeric - mph
- wind_gusts_max: numeric
- wind_direction: numeric - degrees
- humidity_avg: numeric - percent
- cloud_cover_avg: numeric - percent
- data_source: text (default: 'open-meteo')
- created_at: timestamp (default: now())

Unique: (project_id, date)
"""
