"""
CLI interface for the Armis Centrix client.

Provides command-line access to the API for manual checks and for cleaning
up resources left behind by test runs. Output is JSON on stdout; failures
are rendered as diagnostics on stderr.

Usage:
    armis-centrix auth-check
    armis-centrix policies list
    armis-centrix search 'in:alerts status:Open' --include-sample
    armis-centrix sweep-policies --prefix tf-acc- --dry-run
"""

import argparse
import json
import sys
from collections.abc import Sequence

from armis_centrix.boundaries import BoundaryService
from armis_centrix.client import ArmisClient
from armis_centrix.config import get_settings
from armis_centrix.diagnostics import render_error
from armis_centrix.errors import ArmisError, ValidationError
from armis_centrix.logging_config import get_logger, log_with_context, setup_logging
from armis_centrix.policies import PolicyService
from armis_centrix.search import SearchService

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every subcommand registered."""
    parser = argparse.ArgumentParser(
        prog="armis-centrix",
        description="Armis Centrix API client",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    _ = subparsers.add_parser(
        "auth-check",
        help="Authenticate and report the token expiry",
    )

    # policies list|get|delete
    policies_parser = subparsers.add_parser("policies", help="Read or delete policies")
    policy_actions = policies_parser.add_subparsers(dest="action", help="Policy action")
    _ = policy_actions.add_parser("list", help="List all policies")
    get_policy = policy_actions.add_parser("get", help="Show one policy")
    _ = get_policy.add_argument("id", help="Policy ID")
    delete_policy = policy_actions.add_parser("delete", help="Delete one policy")
    _ = delete_policy.add_argument("id", help="Policy ID")

    # boundaries list|get
    boundaries_parser = subparsers.add_parser("boundaries", help="Read boundaries")
    boundary_actions = boundaries_parser.add_subparsers(dest="action", help="Boundary action")
    _ = boundary_actions.add_parser("list", help="List all boundaries")
    get_boundary = boundary_actions.add_parser("get", help="Show one boundary")
    _ = get_boundary.add_argument("id", help="Boundary ID")

    search_parser = subparsers.add_parser("search", help="Run an AQL query")
    _ = search_parser.add_argument("aql", help="Armis Query Language expression")
    _ = search_parser.add_argument(
        "--include-sample",
        action="store_true",
        help="Ask Armis to include sample records",
    )
    _ = search_parser.add_argument(
        "--no-total",
        action="store_true",
        help="Skip counting all matches",
    )

    sweep_parser = subparsers.add_parser(
        "sweep-policies",
        help="Delete policies whose name starts with a prefix",
    )
    _ = sweep_parser.add_argument(
        "--prefix",
        type=str,
        required=True,
        help="Name prefix of the policies to delete (e.g. tf-acc-)",
    )
    _ = sweep_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the policies that would be deleted",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the armis-centrix command line.

    Args:
        argv: Arguments without the program name (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    command: str | None = str(args.command) if args.command else None
    if not command:
        parser.print_help()
        return 1

    try:
        settings = get_settings()
    except ArmisError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level)

    try:
        with ArmisClient.from_settings(settings) as client:
            if command == "auth-check":
                return cmd_auth_check(args, client)
            if command == "policies":
                return cmd_policies(args, client)
            if command == "boundaries":
                return cmd_boundaries(args, client)
            if command == "search":
                return cmd_search(args, client)
            if command == "sweep-policies":
                return cmd_sweep_policies(args, client)
            print(f"Unknown command: {command}", file=sys.stderr)
            return 1

    except ArmisError as e:
        log_with_context(
            logger,
            "error",
            "Command failed",
            command=command,
            error=str(e),
            error_type=type(e).__name__,
        )
        print(render_error(f"armis-centrix {command} failed", e), file=sys.stderr)
        return 1


def cmd_auth_check(args: argparse.Namespace, client: ArmisClient) -> int:
    """
    Authenticate and print the session details.

    Args:
        args: Command arguments
        client: Configured client

    Returns:
        Exit code
    """
    _ = args
    _ = client.authenticate()
    expiry = client.sessions.token_expiry
    _print_json(
        {
            "base_url": client.base_url,
            "user_id": client.user_id,
            "token_expiry": expiry.isoformat() if expiry else None,
        }
    )
    return 0


def cmd_policies(args: argparse.Namespace, client: ArmisClient) -> int:
    """
    Run a policy action.

    Args:
        args: Command arguments (action, id)
        client: Configured client

    Returns:
        Exit code
    """
    service = PolicyService(client)
    action: str | None = getattr(args, "action", None)

    if action == "list":
        _print_json([policy.to_payload() for policy in service.list_all()])
        return 0
    if action == "get":
        _print_json(service.get(str(args.id)).to_payload())
        return 0
    if action == "delete":
        if service.delete(str(args.id)):
            print(f"Deleted policy {args.id}")
            return 0
        print(f"Armis did not confirm deletion of policy {args.id}", file=sys.stderr)
        return 1

    print("Missing policy action: list, get or delete", file=sys.stderr)
    return 1


def cmd_boundaries(args: argparse.Namespace, client: ArmisClient) -> int:
    """
    Run a boundary action.

    Args:
        args: Command arguments (action, id)
        client: Configured client

    Returns:
        Exit code
    """
    service = BoundaryService(client)
    action: str | None = getattr(args, "action", None)

    if action == "list":
        _print_json([boundary.to_payload() for boundary in service.list()])
        return 0
    if action == "get":
        _print_json(service.get(str(args.id)).to_payload())
        return 0

    print("Missing boundary action: list or get", file=sys.stderr)
    return 1


def cmd_search(args: argparse.Namespace, client: ArmisClient) -> int:
    data = SearchService(client).search(
        str(args.aql),
        include_sample=bool(args.include_sample),
        include_total=not args.no_total,
    )
    _print_json(data.to_payload())
    return 0


def cmd_sweep_policies(args: argparse.Namespace, client: ArmisClient) -> int:
    """
    Delete every policy whose name starts with the given prefix.

    Used to clean up policies left behind by acceptance test runs. Keeps
    going when a single delete fails and reports the failures at the end.

    Args:
        args: Command arguments (prefix, dry_run)
        client: Configured client

    Returns:
        Exit code (1 if any delete failed)
    """
    prefix = str(args.prefix)
    if not prefix.strip():
        # An empty prefix would match every policy
        raise ValidationError("sweep prefix cannot be empty")

    service = PolicyService(client)
    matches = [policy for policy in service.list_all() if policy.name.startswith(prefix)]

    log_with_context(
        logger,
        "info",
        "Sweeping policies",
        prefix=prefix,
        matched=len(matches),
        dry_run=bool(args.dry_run),
    )

    if args.dry_run:
        for policy in matches:
            print(f"Would delete policy {policy.id} ({policy.name})")
        return 0

    failed = 0
    for policy in matches:
        try:
            if service.delete(policy.id):
                print(f"Deleted policy {policy.id} ({policy.name})")
                continue
            print(f"Armis did not confirm deletion of policy {policy.id}", file=sys.stderr)
        except ArmisError as e:
            print(render_error(f"Unable to delete policy {policy.id}", e), file=sys.stderr)
        failed += 1

    print(f"Swept {len(matches) - failed} of {len(matches)} policies")
    return 1 if failed else 0


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    sys.exit(main())
