"""
Rentals application.

Property listings, rental applications, rental agreements and the
email verification a tenant completes before paying.

Usage:
    from rentals.models import Property, RentalApplication, RentalAgreement
    from rentals.services import RentalStateService, EmailVerificationService
"""
