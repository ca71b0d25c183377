#!/usr/bin/env python3
"""
Route Integrity Registry Command Line Interface

Usage:
    routeintegrity commit --route-hash <hex> --rules-hash <hex> --solver-hash <hex> [--expiry <ts>]
    routeintegrity get --route-hash <hex>
    routeintegrity has --route-hash <hex>
    routeintegrity verify --route-hash <hex> --rules-hash <hex> --solver-hash <hex>
    routeintegrity hash [--manifest <file>] [--rules <file>] [--solver-version <str>]
    routeintegrity keygen --output <file>
    routeintegrity serve [--host <host>] [--port <port>]
"""

import argparse
import json
import sys
from typing import List, Optional

from . import config


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def print_json(data: dict):
    print(json.dumps(data, indent=2, sort_keys=True))


def open_registry(args):
    from .bootstrap import build_registry

    sinks = None
    if args.sinks is not None:
        sinks = [s.strip() for s in args.sinks.split(",") if s.strip()]
    return build_registry(
        db_path=args.db,
        committer_mode=args.mode,
        key_path=args.key,
        sink_names=sinks,
    )


def open_reader(args):
    from .bootstrap import build_reader

    return build_reader(args.db)


def cmd_commit(args):
    """Commit a route to the registry."""
    from .errors import RegistryError

    registry = open_registry(args)
    try:
        commitment = registry.commit_route(
            args.route_hash,
            args.rules_hash,
            args.solver_hash,
            expiry=args.expiry,
            caller=args.caller,
        )
    except RegistryError as e:
        print(f"✗ {e.kind.value} (code {e.code}): {e.message}", file=sys.stderr)
        return 1

    print_json(commitment.to_dict())
    print(f"\n✓ Committed at {commitment.timestamp}", file=sys.stderr)
    return 0


def cmd_get(args):
    """Print a stored commitment."""
    from .errors import CommitmentNotFoundError

    registry = open_reader(args)
    try:
        commitment = registry.get_commit(args.route_hash)
    except CommitmentNotFoundError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1

    print_json(commitment.to_dict())
    return 0


def cmd_has(args):
    """Check whether a route hash is committed."""
    registry = open_reader(args)
    found = registry.has_commit(args.route_hash)
    print_json({"exists": found})
    return 0 if found else 1


def cmd_verify(args):
    """Verify a commitment against expected hashes."""
    registry = open_reader(args)
    if registry.verify_commit(args.route_hash, args.rules_hash, args.solver_hash):
        commitment = registry.get_commit(args.route_hash)
        print_json({
            "verified": True,
            "timestamp": commitment.timestamp,
            "expiry": commitment.expiry,
            "committer": commitment.committer,
        })
        print("✓ VERIFIED", file=sys.stderr)
        return 0

    print_json({"verified": False})
    print("✗ NOT VERIFIED", file=sys.stderr)
    return 1


def cmd_hash(args):
    """Compute commitment digests from source material."""
    from .hashing import hash_route_manifest, hash_rules_config, hash_solver_version

    out = {}
    if args.manifest:
        out["route_hash"] = hash_route_manifest(load_json(args.manifest)).hex()
    if args.rules:
        out["rules_hash"] = hash_rules_config(load_json(args.rules)).hex()
    if args.solver_version is not None:
        out["solver_version_hash"] = hash_solver_version(args.solver_version).hex()

    if not out:
        print("✗ Nothing to hash: pass --manifest, --rules or --solver-version", file=sys.stderr)
        return 1

    print_json(out)
    return 0


def cmd_keygen(args):
    """Generate the registry's Ed25519 identity key."""
    from .keys import RegistryKey

    key = RegistryKey.generate(kid=args.kid)
    key.save(args.output)
    print_json({"kid": key.kid, "identity": key.identity, "public_key_b64": key.public_key_b64})
    print(f"\nKey saved to: {args.output}", file=sys.stderr)
    return 0


def cmd_serve(args):
    """Run the HTTP service."""
    import uvicorn
    from .service.main import create_app

    app = create_app(registry=open_registry(args))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def add_registry_args(p: argparse.ArgumentParser):
    p.add_argument("--db", default=config.DB_PATH, help="SQLite database path")
    p.add_argument("--key", default=config.IDENTITY_KEY_PATH, help="Registry identity key file")
    p.add_argument("--mode", choices=["registry", "caller"], default=config.COMMITTER_MODE,
                   help="Committer mode")
    p.add_argument("--sinks", help="Comma separated event sinks (default from config)")


def add_reader_args(p: argparse.ArgumentParser):
    p.add_argument("--db", default=config.DB_PATH, help="SQLite database path")


def add_hash_args(p: argparse.ArgumentParser):
    p.add_argument("-r", "--route-hash", required=True, help="Route hash (64 hex)")
    p.add_argument("--rules-hash", required=True, help="Rules hash (64 hex)")
    p.add_argument("--solver-hash", required=True, help="Solver version hash (64 hex)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="routeintegrity",
        description="Route Integrity Registry CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  routeintegrity hash --manifest route.json --rules rules.json --solver-version solver-v1.0.0
  routeintegrity commit -r <hex> --rules-hash <hex> --solver-hash <hex> --expiry 1700086400
  routeintegrity verify -r <hex> --rules-hash <hex> --solver-hash <hex>
  routeintegrity serve --port 8000
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # commit
    commit_parser = subparsers.add_parser("commit", help="Commit a route")
    add_registry_args(commit_parser)
    add_hash_args(commit_parser)
    commit_parser.add_argument("-e", "--expiry", type=int, default=0, help="Expiry unix timestamp (0 = none)")
    commit_parser.add_argument("--caller", help="Caller identity (caller mode only)")

    # get
    get_parser = subparsers.add_parser("get", help="Show a commitment")
    add_reader_args(get_parser)
    get_parser.add_argument("-r", "--route-hash", required=True, help="Route hash (64 hex)")

    # has
    has_parser = subparsers.add_parser("has", help="Check if a route hash is committed")
    add_reader_args(has_parser)
    has_parser.add_argument("-r", "--route-hash", required=True, help="Route hash (64 hex)")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify a commitment")
    add_reader_args(verify_parser)
    add_hash_args(verify_parser)

    # hash
    hash_parser = subparsers.add_parser("hash", help="Compute commitment digests")
    hash_parser.add_argument("-m", "--manifest", help="Route manifest JSON file")
    hash_parser.add_argument("--rules", help="Rules configuration JSON file")
    hash_parser.add_argument("-s", "--solver-version", help="Solver version string")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate registry identity key")
    keygen_parser.add_argument("-o", "--output", default=config.IDENTITY_KEY_PATH, help="Key file")
    keygen_parser.add_argument("-k", "--kid", default=config.IDENTITY_KID, help="Key identifier")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    add_registry_args(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


COMMANDS = {
    "commit": cmd_commit,
    "get": cmd_get,
    "has": cmd_has,
    "verify": cmd_verify,
    "hash": cmd_hash,
    "keygen": cmd_keygen,
    "serve": cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except ValueError as e:
        # Malformed digests or expiry
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
