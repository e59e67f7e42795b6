import logging
import stripe
from stripe import SignatureVerificationError
from typing import Any, Dict, Optional
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.exam_purchase import ExamPurchase
from app.schemas.exam_purchase import PaymentConfirmation
from app.services.exam_purchase import exam_purchase_service

stripe.api_key = settings.STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)

PAYMENT_CONFIRMED_EVENTS = ("checkout.session.completed", "payment_intent.succeeded")


class StripeService:
    """Consumes payment processor events; payment intents are created client-side."""

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        try:
            return stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        except ValueError as e:
            raise ValidationError(f"Invalid payload: {e}")
        except SignatureVerificationError as e:
            raise ValidationError(f"Invalid signature: {e}")

    def _confirmation_from_event(self, event: Dict[str, Any]) -> PaymentConfirmation:
        obj = event["data"]["object"]
        if event["type"] == "checkout.session.completed" and obj.get("payment_status") != "paid":
            raise ValidationError("Checkout session is not paid.")
        metadata = obj.get("metadata") or {}
        payment_id = obj.get("payment_intent") or obj.get("id")
        try:
            return PaymentConfirmation(
                exam_id=metadata.get("exam_id"),
                academy_id=metadata.get("academy_id"),
                quantity=metadata.get("quantity", 1),
                payment_id=payment_id,
            )
        except PydanticValidationError:
            raise ValidationError("Payment metadata must carry exam_id, academy_id and quantity.")

    def handle_payment_confirmed_event(self, db: Session, event: Dict[str, Any]) -> ExamPurchase:
        confirmation = self._confirmation_from_event(event)
        logger.info(
            f"Payment {confirmation.payment_id} confirmed: academy {confirmation.academy_id}, "
            f"exam {confirmation.exam_id}, quantity {confirmation.quantity}"
        )
        return exam_purchase_service.record_payment(db, confirmation)

    def handle_event(self, db: Session, event: Dict[str, Any]) -> Optional[ExamPurchase]:
        if event["type"] in PAYMENT_CONFIRMED_EVENTS:
            return self.handle_payment_confirmed_event(db, event)
        logger.info(f"Unhandled event type {event['type']}")
        return None


stripe_service = StripeService()
