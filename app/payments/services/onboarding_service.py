"""
Stripe Connect onboarding for payout recipients.

Owners and management companies need an Express connected account before
settlement can transfer their share automatically. This service creates
the account, hands out onboarding links and keeps the local
ConnectedAccount flags in step with Stripe.

Usage:
    from payments.services import ConnectOnboardingService

    link = ConnectOnboardingService().start_onboarding(request.user)
    link.onboarding_url
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction

from authentication.models import UserRole
from core.exceptions import PermissionDeniedError
from core.services import BaseService

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.models import ConnectedAccount
from payments.state_machines import OnboardingStatus

if TYPE_CHECKING:
    from authentication.models import User

PAYOUT_ROLES = (UserRole.OWNER, UserRole.MANAGEMENT)


@dataclass
class OnboardingLink:
    account_id: str
    onboarding_url: str | None
    already_onboarded: bool


class ConnectOnboardingService(BaseService):
    """Connected account lifecycle. The Stripe adapter is injected for tests."""

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter

    def start_onboarding(self, user: User) -> OnboardingLink:
        """
        Create the user's connected account if needed and return an onboarding link.

        Raises:
            PermissionDeniedError: User is not an owner or management company
            StripeError: Stripe rejected the account or link creation
        """
        profile = user.profile
        if profile.role not in PAYOUT_ROLES:
            raise PermissionDeniedError(
                "Only owners and management companies can receive payouts",
                error_code="NOT_PAYOUT_RECIPIENT",
            )

        account = ConnectedAccount.objects.filter(profile=profile).first()
        if account is not None and account.onboarding_complete:
            return OnboardingLink(
                account_id=account.stripe_account_id,
                onboarding_url=None,
                already_onboarded=True,
            )

        if account is None:
            account = self._create_account(user)

        link = self.stripe.create_account_link(account.stripe_account_id)
        return OnboardingLink(
            account_id=account.stripe_account_id,
            onboarding_url=link.url,
            already_onboarded=False,
        )

    def _create_account(self, user: User) -> ConnectedAccount:
        result = self.stripe.create_connect_account(
            email=user.email,
            idempotency_key=IdempotencyKeyGenerator.generate("create_account", user.pk),
            metadata={"user_id": str(user.pk), "created_via": "rental_platform"},
        )
        try:
            with transaction.atomic():
                account = ConnectedAccount.objects.create(
                    profile=user.profile,
                    stripe_account_id=result.id,
                    onboarding_status=OnboardingStatus.IN_PROGRESS,
                )
        except IntegrityError:
            # Same idempotency key, so a concurrent request got the same account
            return ConnectedAccount.objects.get(profile=user.profile)

        self.get_logger().info(
            "Connected account created",
            extra={"user_id": str(user.pk), "stripe_account_id": result.id},
        )
        return account

    def account_status(self, user: User) -> dict[str, Any]:
        """
        Live account status, refreshing the local flags from Stripe.

        Raises:
            StripeError: Stripe could not be reached
        """
        account = ConnectedAccount.objects.filter(profile__user=user).first()
        if account is None:
            return {
                "has_account": False,
                "onboarding_complete": False,
                "can_receive_transfers": False,
            }

        live = self.stripe.retrieve_connected_account(account.stripe_account_id)
        account.apply_stripe_account(live.raw_response)
        account.save()

        return {
            "has_account": True,
            "account_id": account.stripe_account_id,
            "onboarding_complete": account.onboarding_complete,
            "can_receive_transfers": account.can_receive_transfers,
            "charges_enabled": account.charges_enabled,
            "payouts_enabled": account.payouts_enabled,
            "details_submitted": account.details_submitted,
            "requirements": live.raw_response.get("requirements") or {},
        }

    @classmethod
    def sync_account(cls, stripe_account: dict[str, Any]) -> ConnectedAccount | None:
        """
        Apply an ``account.updated`` payload to the matching local account.

        Returns:
            The updated account, or None if the account is not ours
        """
        account = ConnectedAccount.objects.filter(
            stripe_account_id=stripe_account.get("id")
        ).first()
        if account is None:
            cls.get_logger().info(
                "Ignoring update for unknown connected account",
                extra={"stripe_account_id": stripe_account.get("id")},
            )
            return None

        account.apply_stripe_account(stripe_account)
        account.save()
        cls.get_logger().info(
            "Connected account synced",
            extra={
                "stripe_account_id": account.stripe_account_id,
                "onboarding_status": account.onboarding_status,
                "can_receive_transfers": account.can_receive_transfers,
            },
        )
        return account
