# Supabase Auth
# Accounts and sessions live in the identity provider, not in our tables:
# - auth.sign_up() registers the account; a database trigger copies
#   full_name, email and role from the sign-up metadata into public.users
# - auth.sign_in_with_password() issues the access/refresh token pair
# - auth.get_user() / auth.refresh_session() resolve and rotate sessions
# - auth.reset_password_for_email() / auth.update_user() reset passwords

"""
Session cookies written by the backend:

- sb-access-token: short-lived access token (settings.access_cookie_name)
- sb-refresh-token: single-use refresh token (settings.refresh_cookie_name)

Both are httponly, path "/", SameSite=Lax. Any code path that resolves a
session may rotate them; the new values must reach the outgoing response.
"""
