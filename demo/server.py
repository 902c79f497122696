"""Mock paid resource for trying the demo client locally.

Run with:

    uvicorn demo.server:app --port 4021

``GET /weather`` answers 402 with x402 v1 payment requirements until a
request carries an ``x-payment`` header with a signed ``exact``
authorization. Signatures are not verified on chain.
"""

import logging
import os
import time

from dotenv import load_dotenv
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse

from multisig_x402.envelope import decode_payment
from multisig_x402.errors import FormatError

load_dotenv()

logger = logging.getLogger("demo.server")

PORT = int(os.getenv("PORT", "4021"))
PAY_TO_ADDRESS = os.getenv("PAY_TO_ADDRESS", "0x2f795904540BE35c3B66A9643F58DAC14E8fA30B")
ASSET = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

app = FastAPI()


def payment_requirements() -> dict:
    return {
        "scheme": "exact",
        "network": "base-sepolia",
        "maxAmountRequired": "1000",
        "resource": f"http://localhost:{PORT}/weather",
        "description": "Weather API Access",
        "mimeType": "application/json",
        "payTo": PAY_TO_ADDRESS,
        "maxTimeoutSeconds": 3600,
        "asset": ASSET,
        "extra": {"name": "USDC", "version": "2"},
    }


def _payment_required(error: str) -> JSONResponse:
    return JSONResponse(
        status_code=402,
        content={"x402Version": 1, "error": error, "accepts": [payment_requirements()]},
    )


def check_payment(header: str) -> str:
    """Return an error message for ``header``, or an empty string if it is acceptable."""
    try:
        payment = decode_payment(header)
    except FormatError as exc:
        return str(exc)

    required = payment_requirements()
    payload = payment.get("payload") or {}
    authorization = payload.get("authorization") or {}
    if payment.get("scheme") != required["scheme"] or payment.get("network") != required["network"]:
        return "scheme or network mismatch"
    if not str(payload.get("signature") or "").startswith("0x"):
        return "missing signature"
    if str(authorization.get("to", "")).lower() != PAY_TO_ADDRESS.lower():
        return "payment recipient mismatch"
    if int(authorization.get("value", 0)) < int(required["maxAmountRequired"]):
        return "insufficient amount"
    now = int(time.time())
    if not int(authorization.get("validAfter", 0)) <= now < int(authorization.get("validBefore", 0)):
        return "authorization outside its validity window"
    return ""


@app.get("/weather")
async def weather(x_payment: str = Header(default="")):
    if not x_payment:
        return _payment_required("X-PAYMENT header is required")
    error = check_payment(x_payment)
    if error:
        logger.info("Rejected payment: %s", error)
        return _payment_required(error)
    return {
        "report": {"weather": "sunny", "temperature": 70},
        "paymentVerified": True,
        "timestamp": int(time.time() * 1000),
    }


@app.get("/health")
async def health():
    return {"status": "ok"}
