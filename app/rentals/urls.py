"""
URL configuration for the rentals app.

All routes are prefixed with /api/v1/rentals/ when included in the main URLconf.
"""

from django.urls import path

from rentals.views import EndAgreementView, SendEmailVerificationView, VerifyEmailCodeView

app_name = "rentals"

urlpatterns = [
    path(
        "applications/<uuid:application_id>/email-verification/",
        SendEmailVerificationView.as_view(),
        name="send_email_verification",
    ),
    path(
        "email-verification/verify/",
        VerifyEmailCodeView.as_view(),
        name="verify_email_code",
    ),
    path(
        "agreements/<uuid:agreement_id>/end/",
        EndAgreementView.as_view(),
        name="end_agreement",
    ),
]
