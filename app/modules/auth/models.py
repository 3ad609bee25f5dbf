# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - User login and session management
# - JWT token generation and validation
# - Password reset emails

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.reset_password_for_email() - Send password reset link

User metadata stored on sign up:
- first_name: text
- last_name: text
- account_type: text - values: epc, owner (epc may edit pile data)

Project setup is considered complete once the user has a row in user_projects.
"""
