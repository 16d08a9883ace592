"""
Authentication application.

Email-based User model and the Profile carrying name, phone and
marketplace role (tenant, owner, management company, admin).

Usage:
    from authentication.models import User, Profile, UserRole
"""
