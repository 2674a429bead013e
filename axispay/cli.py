#!/usr/bin/env python3
"""
axispay Command Line Interface

Usage:
    axispay checksum <file> [--inject]
    axispay verify-checksum <file>
    axispay seal <file>
    axispay open <file>
    axispay keygen --output-dir <dir> [--password <pw>] [--key-size <bits>]
    axispay callback <file> [--mode cbc|ecb] [--key-hex <hex>]
"""

import argparse
import json
import sys
from typing import List, Optional

from .errors import AxisPayError


def load_json(path: str):
    """Load JSON from file, keeping field order."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read().strip()


def _checksum_target(body):
    # Bodies may be given wrapped in Data or bare
    from .payloads import unwrap_data
    return unwrap_data(body)


def cmd_checksum(args):
    """Print the checksum of a body, or the body with the checksum set."""
    from . import checksum

    body = load_json(args.file)
    target = _checksum_target(body)

    if args.inject:
        stamped = checksum.with_checksum(target)
        if target is not body:
            body = dict(body)
            key = "Data" if "Data" in body else "data"
            body[key] = stamped
        else:
            body = stamped
        print(json.dumps(body, indent=2, ensure_ascii=False))
    else:
        print(checksum.digest(target))
    return 0


def cmd_verify_checksum(args):
    """Verify the checksum embedded in a body."""
    from . import checksum

    target = _checksum_target(load_json(args.file))
    if checksum.verify(target):
        print("✓ checksum valid")
        return 0
    print("✗ checksum mismatch", file=sys.stderr)
    return 1


def cmd_seal(args):
    """Encrypt and sign a body with the configured keys."""
    from .envelope import seal_and_sign

    print(seal_and_sign(load_json(args.file)))
    return 0


def cmd_open(args):
    """Verify and decrypt a token with the configured keys."""
    from .envelope import verify_and_open

    body = verify_and_open(load_text(args.file))
    print(json.dumps(body, indent=2, ensure_ascii=False))
    return 0


def cmd_keygen(args):
    """Generate sandbox client and bank key material."""
    from .keygen import generate_sandbox_material

    material = generate_sandbox_material(
        args.output_dir,
        password=args.password or "",
        key_size=args.key_size,
    )
    print(f"Client store:       {material.client_p12_path}")
    print(f"Client certificate: {material.client_cert_path}")
    print(f"Client key:         {material.client_key_path}")
    print(f"Bank key:           {material.bank_key_path}")
    print(f"Bank certificate:   {material.bank_cert_path}")
    print("\nSandbox material only. Never use it against the bank.", file=sys.stderr)
    return 0


def cmd_callback(args):
    """Decrypt a legacy AES callback."""
    from .callback import open_callback
    from .config import load_settings

    key_hex = args.key_hex or load_settings().callback_aes_key_hex
    body = open_callback(load_text(args.file), key_hex, mode=args.mode, verify=not args.no_verify)
    print(json.dumps(body, indent=2, ensure_ascii=False))
    return 0


COMMANDS = {
    "checksum": cmd_checksum,
    "verify-checksum": cmd_verify_checksum,
    "seal": cmd_seal,
    "open": cmd_open,
    "keygen": cmd_keygen,
    "callback": cmd_callback,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="axispay",
        description="axispay envelope and checksum tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  axispay checksum body.json              Print the checksum of a body
  axispay checksum body.json --inject     Print the body with its checksum set
  axispay seal body.json > token.txt      Encrypt and sign with configured keys
  axispay open token.txt                  Verify and decrypt a bank response
  axispay keygen --output-dir sandbox     Generate sandbox key material
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # checksum
    checksum_parser = subparsers.add_parser("checksum", help="Compute a body checksum")
    checksum_parser.add_argument("file", help="JSON body file (bare or wrapped in Data)")
    checksum_parser.add_argument("--inject", action="store_true", help="Print the body with checksum set")

    # verify-checksum
    verify_parser = subparsers.add_parser("verify-checksum", help="Verify an embedded checksum")
    verify_parser.add_argument("file", help="JSON body file")

    # seal
    seal_parser = subparsers.add_parser("seal", help="Encrypt and sign a body")
    seal_parser.add_argument("file", help="JSON body file")

    # open
    open_parser = subparsers.add_parser("open", help="Verify and decrypt a token")
    open_parser.add_argument("file", help="File holding a compact token")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate sandbox key material")
    keygen_parser.add_argument("-o", "--output-dir", required=True, help="Directory for generated files")
    keygen_parser.add_argument("-p", "--password", help="Password for the client store and key")
    keygen_parser.add_argument("-k", "--key-size", type=int, default=2048, help="RSA key size in bits")

    # callback
    callback_parser = subparsers.add_parser("callback", help="Decrypt a legacy AES callback")
    callback_parser.add_argument("file", help="File holding the hex ciphertext")
    callback_parser.add_argument("-m", "--mode", choices=("cbc", "ecb"), default="cbc", help="Cipher mode")
    callback_parser.add_argument("--key-hex", help="AES-128 key as 32 hex chars (default: from settings)")
    callback_parser.add_argument("--no-verify", action="store_true", help="Skip checksum verification")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        return command(args)
    except AxisPayError as e:
        print(f"✗ {e.kind}: {e.message}", file=sys.stderr)
        return 1
    except (OSError, ValueError, TypeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
