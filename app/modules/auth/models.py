# Sessions
# No session table is kept - sessions are stateless JWTs signed with
# settings.session_secret_key (python-jose, settings.session_algorithm).

"""
Access token claims:
- sub: str(users.id)
- name: display name
- email: user email
- amr: ["pwd"] for password logins, ["hwk", "user"] for biometric logins
- iat / exp: issued-at and expiry (settings.session_ttl_minutes)

Identities live in the users table (see app/modules/users/models.py);
passwords are stored there as bcrypt hashes.
"""
