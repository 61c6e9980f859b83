# Supabase table: biometric_credentials
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

biometric_credentials:
- id: text (primary key) - credential id as issued by the authenticator (base64url)
- user_id: bigint (not null, references users.id)
- credential_data: text (not null) - JSON of StoredCredential
- created_at: timestamptz (default: now())

Index: biometric_credentials(user_id)

credential_data never holds private key material: only the public
identifiers, transports and the attestation response returned at
registration time. Rows are never updated.
"""
