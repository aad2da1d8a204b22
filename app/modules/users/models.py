# Supabase tables: users, account_bootstrap
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in store.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

users:
- id: uuid (primary key)
- email: text (unique, not null) - always stored lowercased
- display_name: text (not null, default 'User')
- avatar_url: text (nullable)
- role: text (not null, default 'user') - one of superadmin | admin | user
- approved: boolean (not null, default false)
- permission_grants: jsonb (not null, default '[]')
    [{"resource_id": "tickets", "actions": ["view", "edit"]}, ...]
    at most one entry per resource_id
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

account_bootstrap:
- id: text (primary key) - single sentinel row with id 'superadmin'
- email: text (not null) - the account that claimed the bootstrap slot
- created_at: timestamp (default: now())

The sentinel row is inserted once, by whichever first-ever sign-in wins the
primary key; every later claim fails with a unique violation.
"""
