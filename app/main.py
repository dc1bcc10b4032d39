import logging

from fastapi import FastAPI, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db, Base, engine
from . import dispatcher, schemas, models

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Task Webhook", version="1.0.0")

async def _read_envelope(request: Request) -> schemas.WebhookRequest:
    try:
        payload = await request.json()
        return schemas.WebhookRequest.model_validate(payload if isinstance(payload, dict) else {})
    except (ValueError, ValidationError) as e:
        logger.warning(f"Unreadable webhook body, treating as empty: {e}")
        return schemas.WebhookRequest()

@app.get("/health")
def health_check():
    return {"status": "ok"}

@app.get("/api/webhook", response_class=PlainTextResponse)
def webhook_alive():
    return "OK /api/webhook"

@app.post("/api/webhook", response_model=schemas.WebhookResponse)
async def webhook(request: Request, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    body = await _read_envelope(request)
    try:
        text = await run_in_threadpool(dispatcher.dispatch, body, db, settings)
    except Exception:
        # Upstream expects a 200 envelope no matter what; details stay in the log.
        logger.exception(f"Webhook error for intent '{body.intent_name}'")
        text = dispatcher.ERROR_REPLY
    return schemas.WebhookResponse(fulfillmentText=text)
