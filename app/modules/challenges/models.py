# Supabase table: webauthn_challenges
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

webauthn_challenges:
- id: text (primary key) - opaque binding token handed to the client in a cookie
- user_id: bigint (not null) - identity the challenge was issued to
- challenge: text (not null) - 32 random bytes, base64url without padding
- operation: text (not null) - 'create' (registration) or 'get' (assertion)
- issued_at: timestamptz (not null)

A row lives for at most challenge_ttl_seconds. It is deleted by the first
verification attempt (DELETE ... RETURNING), so a binding can be consumed
once only. Rows that are never presented are purged lazily when new
challenges are issued.
"""
