"""
Typed metadata attached to Stripe objects.

Stripe metadata is a flat string-to-string map. These dataclasses are
the only place that map is built or read, so a missing key shows up as
a construction error here rather than a KeyError deep in settlement.

Usage:
    from payments.metadata import SettlementMetadata

    metadata = SettlementMetadata.from_stripe(intent.metadata)
    metadata.application_id  # UUID
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from payments.exceptions import PaymentError


class InvalidMetadataError(PaymentError):
    default_error_code: str = "INVALID_PROCESSOR_METADATA"
    http_status: int = 409


@dataclass(frozen=True)
class SettlementMetadata:
    """
    Identifiers carried on a PaymentIntent from creation to settlement.

    Attributes:
        application_id: RentalApplication being paid for
        property_id: Property the application is for
        tenant_id: Paying user
        owner_id: User receiving the owner share
        platform_fee_cents: Aggregate platform fee (audit only)
        owner_net_cents: Aggregate owner net (audit only)
        email_verified: Whether the payer's email was verified
    """

    application_id: uuid.UUID
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    owner_id: uuid.UUID
    platform_fee_cents: int = 0
    owner_net_cents: int = 0
    email_verified: bool = False

    def to_stripe(self) -> dict[str, str]:
        return {
            "application_id": str(self.application_id),
            "property_id": str(self.property_id),
            "tenant_id": str(self.tenant_id),
            "owner_id": str(self.owner_id),
            "platform_fee_cents": str(self.platform_fee_cents),
            "owner_net_cents": str(self.owner_net_cents),
            "email_verified": "true" if self.email_verified else "false",
        }

    @classmethod
    def from_stripe(cls, metadata) -> SettlementMetadata:
        """
        Parse metadata read back from a Stripe object.

        Raises:
            InvalidMetadataError: If an identifier is missing or malformed
        """
        metadata = dict(metadata or {})
        try:
            return cls(
                application_id=uuid.UUID(metadata["application_id"]),
                property_id=uuid.UUID(metadata["property_id"]),
                tenant_id=uuid.UUID(metadata["tenant_id"]),
                owner_id=uuid.UUID(metadata["owner_id"]),
                platform_fee_cents=int(metadata.get("platform_fee_cents") or 0),
                owner_net_cents=int(metadata.get("owner_net_cents") or 0),
                email_verified=metadata.get("email_verified") == "true",
            )
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidMetadataError(
                "Payment intent metadata is missing settlement identifiers",
                details={"metadata_keys": sorted(metadata)},
            ) from e

    @staticmethod
    def application_id_from(metadata) -> uuid.UUID | None:
        """Lenient lookup of just the application id (None if absent or malformed)."""
        value = (metadata or {}).get("application_id")
        try:
            return uuid.UUID(str(value)) if value else None
        except ValueError:
            return None


@dataclass(frozen=True)
class TransferMetadata:
    """Identifiers attached to every outbound transfer for audit."""

    application_id: uuid.UUID
    payment_intent_id: str
    property_id: uuid.UUID
    recipient_id: uuid.UUID
    distribution_id: uuid.UUID
    recipient_type: str

    def to_stripe(self) -> dict[str, str]:
        return {
            "application_id": str(self.application_id),
            "payment_intent_id": self.payment_intent_id,
            "property_id": str(self.property_id),
            "recipient_id": str(self.recipient_id),
            "distribution_id": str(self.distribution_id),
            "recipient_type": self.recipient_type,
        }
