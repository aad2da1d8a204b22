# Supabase Auth
# This module uses Supabase's built-in authentication system (Google OAuth or email sign-in)
# No custom tables are required - Supabase Auth handles:
# - Sign-in and session management
# - JWT token generation and validation

"""
Supabase Auth provides:
- auth.get_user() - Verify a bearer token and return the signed-in user
- auth.sign_out() - Logout users

The portal identity is the verified email plus display name and avatar taken from
user_metadata (full_name/name, avatar_url/picture). Roles, approval and page
permissions live in the `users` table, see app/modules/users/models.py.
"""
