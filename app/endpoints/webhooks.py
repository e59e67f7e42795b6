from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from app.utils import deps
from app.services.stripe import stripe_service

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(deps.get_transactional_db)):
    payload = await request.body()
    sig_header = request.headers.get('stripe-signature')

    event = stripe_service.construct_event(payload, sig_header)
    purchase = stripe_service.handle_event(db, event)

    response = {"status": "success"}
    if purchase is not None:
        response["purchase_id"] = purchase.id
    return response
