"""
Notification Service
Runs best-effort side effects (confirmation and approval emails) and records
the outcome of every attempt as a DeliveryAttempt row
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import DeliveryAttempt, Slot, User

logger = logging.getLogger(__name__)

KIND_MEETING_LINK = "meeting_link"
KIND_SLOT_CONFIRMATION = "slot_confirmation"
KIND_APPROVAL_EMAIL = "approval_email"


def record_attempt(
    db: Session,
    kind: str,
    succeeded: bool,
    slot_id: Optional[int] = None,
    user_id: Optional[int] = None,
    recipient: Optional[str] = None,
    error: Optional[str] = None,
) -> DeliveryAttempt:
    """Add a DeliveryAttempt to the session; the caller commits"""
    attempt = DeliveryAttempt(
        kind=kind,
        slot_id=slot_id,
        user_id=user_id,
        recipient=recipient,
        succeeded=succeeded,
        error=error,
    )
    db.add(attempt)
    return attempt


def attempt_to_dict(attempt: DeliveryAttempt) -> dict:
    return {
        "kind": attempt.kind,
        "recipient": attempt.recipient,
        "userId": attempt.user_id,
        "succeeded": attempt.succeeded,
        "error": attempt.error,
    }


async def send_slot_confirmations(db: Session, slot: Slot, notifier) -> list[DeliveryAttempt]:
    """
    Send the confirmation email to every user registered in a slot.

    One failed recipient never stops the others; each outcome is recorded.

    Returns:
        The DeliveryAttempt rows, in registration order
    """
    attempts = []

    for registration in slot.registrations:
        user = registration.user
        if not user or not user.email:
            continue

        try:
            logger.info(f"📧 Sending slot confirmation to {user.email} (slot {slot.id})")
            await notifier.send_slot_confirmation(user, slot)
            attempts.append(
                record_attempt(
                    db, KIND_SLOT_CONFIRMATION, True, slot_id=slot.id, user_id=user.id, recipient=user.email
                )
            )
            logger.info(f"✅ Slot confirmation sent to {user.email}")
        except Exception as e:
            logger.error(f"❌ Failed to send slot confirmation to {user.email}: {e}")
            attempts.append(
                record_attempt(
                    db,
                    KIND_SLOT_CONFIRMATION,
                    False,
                    slot_id=slot.id,
                    user_id=user.id,
                    recipient=user.email,
                    error=str(e),
                )
            )

    db.commit()
    sent = sum(1 for a in attempts if a.succeeded)
    logger.info(f"📧 Slot {slot.id} confirmations: {sent}/{len(attempts)} sent")
    return attempts


async def send_approval_notification(db: Session, user: User, notifier) -> DeliveryAttempt:
    """Send the approval email and flag the user when it goes out"""
    try:
        logger.info(f"📧 Sending approval email to {user.email}")
        await notifier.send_approval(user)
        user.approval_email_sent = True
        attempt = record_attempt(db, KIND_APPROVAL_EMAIL, True, user_id=user.id, recipient=user.email)
        logger.info(f"✅ Approval email sent to {user.email}")
    except Exception as e:
        logger.error(f"❌ Failed to send approval email to {user.email}: {e}")
        attempt = record_attempt(
            db, KIND_APPROVAL_EMAIL, False, user_id=user.id, recipient=user.email, error=str(e)
        )

    db.commit()
    return attempt
