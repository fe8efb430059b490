#!/usr/bin/env python3
"""CA tool: create a CA, issue server certificates, list and check them.

Usage:
    ca-tool create-ca <output-dir> [org-name]
    ca-tool create-cert <ca-dir> <server-name> [days]
    ca-tool list <ca-dir>
    ca-tool check <cert-file>
"""

import argparse
import sys
from collections.abc import Callable

from ca_tool.lib.ca_store import CAStore
from ca_tool.lib.config import CAConfig
from ca_tool.lib.errors import CAToolError, InvalidInputError
from ca_tool.lib.inspector import Inspector
from ca_tool.lib.issuer import CertificateIssuer, render_tls_snippet
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CertificateSummary

USAGE = """
CA Tool - Certificate Authority and Certificate Management

Usage:
  ca-tool <command> [arguments]

Commands:
  create-ca <output-dir> [org-name]            Create a new Certificate Authority
  create-cert <ca-dir> <server-name> [days]    Create a server certificate (default validity: 730 days)
  list <ca-dir>                                List all certificates in the CA
  check <cert-file>                            Display information about a certificate

Examples:
  ca-tool create-ca ./ca "My Organization"
  ca-tool create-cert ./ca server1
  ca-tool list ./ca
  ca-tool check ./ca/servers/server1/server1.crt
"""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad arguments as InvalidInputError instead of exiting."""

    def error(self, message: str):  # type: ignore[override]
        raise InvalidInputError(message)


def _build_parser() -> argparse.ArgumentParser:
    """Build the positional parser.

    Every positional is optional so that the library reports missing values.
    """
    parser = _ArgumentParser(prog="ca-tool", add_help=False)
    subparsers = parser.add_subparsers(dest="command")

    create_ca = subparsers.add_parser("create-ca")
    create_ca.add_argument("output_dir", nargs="?", default="")
    create_ca.add_argument("org_name", nargs="?", default=None)

    create_cert = subparsers.add_parser("create-cert")
    create_cert.add_argument("ca_dir", nargs="?", default="")
    create_cert.add_argument("server_name", nargs="?", default="")
    create_cert.add_argument("days", nargs="?", type=int, default=None)

    list_cmd = subparsers.add_parser("list")
    list_cmd.add_argument("ca_dir", nargs="?", default="")

    check = subparsers.add_parser("check")
    check.add_argument("cert_file", nargs="?", default="")

    return parser


def _print_summary(summary: CertificateSummary, indent: str = "    ") -> None:
    print(f"{indent}Subject: {summary.subject}")
    print(f"{indent}Issuer: {summary.issuer}")
    print(f"{indent}Serial: {summary.serial}")
    print(f"{indent}Not Before: {summary.not_before:%Y-%m-%d %H:%M:%S} UTC")
    print(f"{indent}Not After : {summary.not_after:%Y-%m-%d %H:%M:%S} UTC")


def create_ca(args: argparse.Namespace, config: CAConfig) -> int:
    """Create a CA Directory and print where its key and certificate live.

    Args:
        args: Parsed arguments with output_dir and optional org_name
        config: Tool configuration

    Returns:
        Exit code (always 0; failures raise)
    """
    result = CAStore(config).create_ca(args.output_dir, args.org_name)

    print("\nCA successfully created!")
    print("CA Certificate:", result.paths.cert_path)
    print("CA Private Key:", result.paths.key_path)
    print("\nIMPORTANT: Keep the CA private key (ca.key) secure and never share it!")
    print("The security of your entire certificate infrastructure depends on this key.")
    if not result.permissions_restricted:
        print("WARNING: the CA private key could not be made owner-read-only.")
    print("\nCA Certificate Information:")
    _print_summary(result.summary)
    return 0


def create_cert(args: argparse.Namespace, config: CAConfig) -> int:
    """Issue a server certificate and print a TLS configuration snippet for it.

    Returns:
        Exit code (always 0; failures raise)
    """
    result = CertificateIssuer(config).issue_server_certificate(
        args.ca_dir, args.server_name, args.days
    )

    print(f"\nServer certificate for {result.subject_name} created successfully!")
    print("Private Key:", result.paths.key_path)
    print("Certificate:", result.paths.cert_path)
    print("CA Certificate:", result.ca_cert_path)
    print("\nCertificate Information:")
    _print_summary(result.summary)
    print("\nTo use this certificate in a TLS-enabled service:\n")
    print(render_tls_snippet(result))
    return 0


def list_certificates(args: argparse.Namespace, config: CAConfig) -> int:
    """Print the CA certificate and every server certificate under servers/."""
    listing = Inspector(config).list_certificates(args.ca_dir)

    print("Certificate Authority:")
    if listing.ca_summary is not None:
        _print_summary(listing.ca_summary)
    else:
        print("CA certificate not found!")

    if not listing.servers:
        print("\nNo server certificates found.")
        return 0

    print("\nServer Certificates:")
    for entry in listing.servers:
        print(f"\n{entry.name}:")
        if entry.summary is not None:
            _print_summary(entry.summary)
        else:
            print(f"  Error reading certificate: {entry.error}")
    return 0


def check_certificate(args: argparse.Namespace, config: CAConfig) -> int:
    """Decode a certificate and verify it against the CA two levels up, if present.

    The report is printed in full even when verification fails.

    Returns:
        Exit code (1 if chain verification failed, otherwise 0)
    """
    result = Inspector(config).check_certificate(args.cert_file)

    print(f"Certificate Information for: {result.cert_path}")
    print(result.text)
    if result.verification is not None:
        print("\nVerifying certificate against CA:")
        if result.verification.ok:
            print(result.verification.detail)
        else:
            print(f"{result.cert_path}: verification failed: {result.verification.detail}")
            LOGGER.error("Certificate verification failed: %s", result.cert_path)
            return 1
    return 0


COMMANDS: dict[str, Callable[[argparse.Namespace, CAConfig], int]] = {
    "create-ca": create_ca,
    "create-cert": create_cert,
    "list": list_certificates,
    "check": check_certificate,
}


def main(argv: list[str] | None = None) -> int:
    """Dispatch a ca-tool command.

    No command prints usage and succeeds; an unknown command prints an error
    plus usage and fails.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(USAGE)
        return 0

    command = argv[0].lower()
    handler = COMMANDS.get(command)
    if handler is None:
        LOGGER.error("Unknown command: %s", argv[0])
        print(USAGE)
        return 1

    try:
        config = CAConfig.from_env()
        args = _build_parser().parse_args([command, *argv[1:]])
        return handler(args, config)

    except (CAToolError, OSError, ValueError) as e:
        LOGGER.error("%s failed: %s", command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
