# Supabase table: users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

users:
- id: bigint generated always as identity (primary key)
- name: text (not null)
- email: text (unique, not null) - stored lower-cased
- password_hash: text (not null) - bcrypt
- created_at: timestamptz (default: now())

Rows are created by password registration and never updated or deleted.
biometric_credentials.user_id references users.id.
"""
