import asyncio
import json
import os

from dotenv import load_dotenv

from multisig_x402 import X402MultiSig
from multisig_x402.logging_config import configure_logging

load_dotenv()
configure_logging()

CANISTER_ID = os.getenv("X402_CANISTER_ID")
if not CANISTER_ID:
    raise SystemExit("X402_CANISTER_ID env var is required")

VAULT_ID = int(os.getenv("VAULT_ID", "1"))
FROM_ADDRESS = os.getenv("FROM_ADDRESS")
if not FROM_ADDRESS or not FROM_ADDRESS.startswith("0x"):
    raise SystemExit("FROM_ADDRESS env var must be set to the multisig wallet address")

PAY_TO_ADDRESS = os.getenv("PAY_TO_ADDRESS", "0x2f795904540BE35c3B66A9643F58DAC14E8fA30B")
API_URL = os.getenv("API_URL", "http://localhost:4021")
ENDPOINT = f"{API_URL}/weather"

payment_requirements = {
    "scheme": "exact",
    "network": "base-sepolia",
    "maxAmountRequired": "1000",
    "resource": ENDPOINT,
    "description": "Weather API Access",
    "mimeType": "application/json",
    "payTo": PAY_TO_ADDRESS,
    "maxTimeoutSeconds": 3600,
    "asset": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    "domainChainId": "0x14a34",
    "extra": {"name": "USDC", "version": "2"},
}


async def main() -> None:
    bot = await X402MultiSig.create(
        {
            "x402_canister_id": CANISTER_ID,
            "display_name": "X402 Payment Bot",
            "username": os.getenv("X402_USERNAME", "payment_bot"),
        }
    )
    print("Principal:", bot.principal_id)

    body = await bot.call_paid_service(
        vault_id=VAULT_ID,
        from_address=FROM_ADDRESS,
        payment_requirements=payment_requirements,
        api_url=ENDPOINT,
    )
    print("Response:", json.dumps(body, indent=2))


asyncio.run(main())
