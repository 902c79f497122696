"""Command line access to identities, signature requests and paid resources.

Connection settings come from ``X402_*`` environment variables (a ``.env``
file is honoured) and can be overridden per invocation::

    multisig-x402 identity list
    multisig-x402 sign --vault-id 1 --to 0x... --value 0x3e8 --chain base-sepolia --token USDC
    multisig-x402 wait 42 --max-attempts 20
    multisig-x402 pay --vault-id 1 --from-address 0x... --requirements req.json --url http://...
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .client import X402MultiSig
from .config import X402MultiSigOptions
from .constants import DEFAULT_IDENTITY_DIR, DEFAULT_IDENTITY_NAME
from .errors import MultiSigX402Error
from .hex import generate_nonce
from .identity import INTEGRITY_FAIL, IdentityStore
from .logging_config import configure_logging
from .models import PollingConfig

DEFAULT_VALIDITY_SECONDS = 3600


def pretty_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True, default=str)


def _options(args: argparse.Namespace) -> X402MultiSigOptions:
    return X402MultiSigOptions.from_env(
        dotenv=False,
        x402_canister_id=args.canister_id,
        identity_name=args.identity,
        identity_dir=args.identity_dir,
        network=args.network,
        host=args.host,
        integrity_policy=args.integrity_policy,
    )


def _store(args: argparse.Namespace) -> IdentityStore:
    identity_dir = (
        args.identity_dir
        or os.getenv("X402_IDENTITY_DIR")
        or str(Path.cwd() / DEFAULT_IDENTITY_DIR)
    )
    policy = args.integrity_policy or os.getenv("X402_INTEGRITY_POLICY") or INTEGRITY_FAIL
    store = IdentityStore(identity_dir, policy)
    store.initialize()
    return store


def _polling(args: argparse.Namespace) -> PollingConfig:
    return PollingConfig.from_value({"max_attempts": args.max_attempts, "interval": args.interval})


def _signature_dict(result: Any) -> Dict[str, Any]:
    return {
        "status": result.status,
        "requestId": result.request_id,
        "createdAt": result.created_at,
        "signature": result.signature,
        "executedAt": result.executed_at,
    }


# ---------------------------------------------------------------------------
# Identity commands
# ---------------------------------------------------------------------------


def run_identity_list(args: argparse.Namespace) -> None:
    for name in _store(args).list():
        print(name)


def run_identity_show(args: argparse.Namespace) -> None:
    handle = _store(args).load(args.name)
    print(
        pretty_json(
            {
                "name": handle.name,
                "principal": handle.principal,
                "username": handle.username,
                "displayName": handle.display_name,
                "createdAt": handle.created_at,
                "updatedAt": handle.updated_at,
            }
        )
    )


def run_identity_export(args: argparse.Namespace) -> None:
    print(_store(args).export(args.name))


def run_identity_delete(args: argparse.Namespace) -> None:
    _store(args).delete(args.name)
    print(f"Deleted identity {args.name}")


def run_identity_import_pem(args: argparse.Namespace) -> None:
    pem = Path(args.pem_file).read_text(encoding="utf-8")
    handle = _store(args).import_pem(
        args.name, pem, overwrite=args.overwrite, username=args.username
    )
    print(f"Imported identity {handle.name} with principal {handle.principal}")


# ---------------------------------------------------------------------------
# Canister commands
# ---------------------------------------------------------------------------


async def _sign(args: argparse.Namespace) -> int:
    client = await X402MultiSig.create(_options(args))
    now = int(time.time())
    valid_after = args.valid_after or hex(now - 600)
    valid_before = args.valid_before or hex(now + DEFAULT_VALIDITY_SECONDS)
    return await client.create_sign_request_simple(
        vault_id=args.vault_id,
        to=args.to,
        value=args.value,
        valid_after=valid_after,
        valid_before=valid_before,
        nonce=args.nonce or generate_nonce(),
        network=args.chain,
        token=args.token,
        domain_version=args.domain_version,
    )


def run_sign(args: argparse.Namespace) -> None:
    request_id = asyncio.run(_sign(args))
    print(pretty_json({"requestId": request_id}))


async def _status(args: argparse.Namespace) -> Any:
    client = await X402MultiSig.create(_options(args))
    return await client.get_signature(args.request_id)


def run_status(args: argparse.Namespace) -> None:
    print(pretty_json(_signature_dict(asyncio.run(_status(args)))))


async def _wait(args: argparse.Namespace) -> Any:
    client = await X402MultiSig.create(_options(args))
    return await client.wait_for_signature(args.request_id, _polling(args))


def run_wait(args: argparse.Namespace) -> None:
    print(pretty_json(_signature_dict(asyncio.run(_wait(args)))))


async def _pay(args: argparse.Namespace) -> Any:
    requirements = json.loads(Path(args.requirements).read_text(encoding="utf-8"))
    client = await X402MultiSig.create(_options(args))
    return await client.call_paid_service(
        vault_id=args.vault_id,
        from_address=args.from_address,
        payment_requirements=requirements,
        api_url=args.url,
        polling=_polling(args),
    )


def run_pay(args: argparse.Namespace) -> None:
    print(pretty_json(asyncio.run(_pay(args))))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_polling_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Maximum number of polls after the first read (default: 120).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls (default: 3).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multisig-x402",
        description="Pay for x402 resources with signatures from an ICP multisig wallet.",
    )
    parser.add_argument("--canister-id", help="Multisig canister id (env: X402_CANISTER_ID).")
    parser.add_argument("--identity", help=f"Identity name (default: {DEFAULT_IDENTITY_NAME}).")
    parser.add_argument("--identity-dir", help="Identity storage directory.")
    parser.add_argument("--network", choices=("mainnet", "local"), help="IC network.")
    parser.add_argument("--host", help="IC host URL, overrides --network.")
    parser.add_argument(
        "--integrity-policy",
        choices=("fail", "warn"),
        help="What to do when a stored principal does not match its key (default: fail).",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: %(default)s).")

    subparsers = parser.add_subparsers(dest="command", required=True)

    identity_parser = subparsers.add_parser("identity", help="Manage stored identities.")
    identity_sub = identity_parser.add_subparsers(dest="identity_command", required=True)

    list_parser = identity_sub.add_parser("list", help="List identity names.")
    list_parser.set_defaults(handler=run_identity_list)

    show_parser = identity_sub.add_parser("show", help="Show an identity's principal and metadata.")
    show_parser.add_argument("name")
    show_parser.set_defaults(handler=run_identity_show)

    export_parser = identity_sub.add_parser("export", help="Print the stored key data as JSON.")
    export_parser.add_argument("name")
    export_parser.set_defaults(handler=run_identity_export)

    delete_parser = identity_sub.add_parser("delete", help="Delete a stored identity.")
    delete_parser.add_argument("name")
    delete_parser.set_defaults(handler=run_identity_delete)

    pem_parser = identity_sub.add_parser("import-pem", help="Import an Ed25519 PKCS#8 PEM key.")
    pem_parser.add_argument("name")
    pem_parser.add_argument("pem_file")
    pem_parser.add_argument("--username")
    pem_parser.add_argument("--overwrite", action="store_true")
    pem_parser.set_defaults(handler=run_identity_import_pem)

    sign_parser = subparsers.add_parser("sign", help="Submit a transferWithAuthorization request.")
    sign_parser.add_argument("--vault-id", type=int, required=True)
    sign_parser.add_argument("--to", required=True, help="Recipient address.")
    sign_parser.add_argument("--value", required=True, help="Amount in smallest units, hex.")
    sign_parser.add_argument("--chain", required=True, help="base, base-sepolia or solana.")
    sign_parser.add_argument("--token", required=True, help="Token symbol, e.g. USDC.")
    sign_parser.add_argument("--valid-after", help="Hex timestamp (default: now - 600).")
    sign_parser.add_argument("--valid-before", help="Hex timestamp (default: now + 3600).")
    sign_parser.add_argument("--nonce", help="Hex nonce (default: generated).")
    sign_parser.add_argument("--domain-version", default="2")
    sign_parser.set_defaults(handler=run_sign)

    status_parser = subparsers.add_parser("status", help="Read a request's status once.")
    status_parser.add_argument("request_id", type=int)
    status_parser.set_defaults(handler=run_status)

    wait_parser = subparsers.add_parser("wait", help="Poll a request until it is executed.")
    wait_parser.add_argument("request_id", type=int)
    _add_polling_arguments(wait_parser)
    wait_parser.set_defaults(handler=run_wait)

    pay_parser = subparsers.add_parser("pay", help="Pay for and fetch an x402 resource.")
    pay_parser.add_argument("--vault-id", type=int, required=True)
    pay_parser.add_argument("--from-address", required=True, help="Multisig wallet address.")
    pay_parser.add_argument(
        "--requirements", required=True, help="Path to a JSON file with payment requirements."
    )
    pay_parser.add_argument("--url", required=True, help="URL of the paid resource.")
    _add_polling_arguments(pay_parser)
    pay_parser.set_defaults(handler=run_pay)

    return parser


def main(argv: Optional[list] = None) -> None:
    load_dotenv(find_dotenv(usecwd=True))
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        args.handler(args)
    except MultiSigX402Error as err:
        raise SystemExit(f"error: {err}") from err
    except (OSError, ValueError) as err:
        raise SystemExit(f"error: {err}") from err


if __name__ == "__main__":
    main()
