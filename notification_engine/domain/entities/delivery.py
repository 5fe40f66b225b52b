"""Domain entities describing the outcome of delivery attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .enums import DeliveryErrorKind, DeliveryMethod


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt for one recipient on one channel."""

    method: DeliveryMethod
    success: bool
    timestamp: datetime
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error_kind: DeliveryErrorKind | None = None

    @classmethod
    def succeeded(
        cls, method: DeliveryMethod, **metadata: Any
    ) -> "DeliveryResult":
        return cls(
            method=method,
            success=True,
            timestamp=datetime.now(tz=timezone.utc),
            metadata=metadata,
        )

    @classmethod
    def failed(
        cls,
        method: DeliveryMethod,
        error: str,
        *,
        kind: DeliveryErrorKind = DeliveryErrorKind.TRANSPORT,
        **metadata: Any,
    ) -> "DeliveryResult":
        return cls(
            method=method,
            success=False,
            timestamp=datetime.now(tz=timezone.utc),
            error=error,
            metadata=metadata,
            error_kind=kind,
        )


@dataclass(frozen=True)
class ChannelRecipient:
    """A user paired with the address a channel should deliver to."""

    user_id: str
    address: str | None = None


@dataclass(frozen=True)
class BulkRecipient:
    """Recipient of a bulk notification with optional contact hints."""

    user_id: str
    email: str | None = None
    phone_number: str | None = None


@dataclass
class RecipientDeliveryResult:
    """Per-channel results gathered for one bulk recipient."""

    user_id: str
    delivery_results: dict[DeliveryMethod, DeliveryResult] = field(default_factory=dict)
    suppressed: bool = False
    # Set when preferences could not be evaluated for this recipient.
    error: str | None = None

    @property
    def successful(self) -> bool:
        """A recipient is reached when at least one channel succeeded."""

        return any(result.success for result in self.delivery_results.values())


@dataclass
class BulkDeliverySummary:
    """Aggregate returned by a bulk send."""

    successful: int = 0
    failed: int = 0
    results: list[RecipientDeliveryResult] = field(default_factory=list)


__all__ = [
    "BulkDeliverySummary",
    "BulkRecipient",
    "ChannelRecipient",
    "DeliveryResult",
    "RecipientDeliveryResult",
]
