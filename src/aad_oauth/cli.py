"""Command line entry point for the OAuth2 flows.

Prints the result as JSON on stdout. Exits 1 when no trusted result came
back, when the provider reported an error, or when the flow failed, and 2
on invalid arguments or settings.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from aad_oauth.models.config import AuthSettings
from aad_oauth.models.errors import OAuth2Error
from aad_oauth.models.flow import DEFAULT_TENANT, OOB_REDIRECT_URI, Prompt
from aad_oauth.oauth_client import AzureOAuth2Client

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--client-id", required=True, help="Application (client) ID")
    parser.add_argument(
        "--tenant-id",
        default=DEFAULT_TENANT,
        help=f"Tenant ID or domain (default: {DEFAULT_TENANT})",
    )
    parser.add_argument(
        "--redirect-uri",
        default=OOB_REDIRECT_URI,
        help=f"Registered redirect URI (default: {OOB_REDIRECT_URI})",
    )
    parser.add_argument(
        "--v2",
        action="store_true",
        help="Use the v2.0 endpoints instead of v1",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aad-oauth",
        description="OAuth2 authorization code, client credentials and admin "
        "consent flows for the Microsoft identity platform",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  aad-oauth code --client-id <id> --scope openid --scope offline_access --v2
  aad-oauth token --client-id <id> --client-secret <secret> --resource https://graph.microsoft.com
  aad-oauth token --client-id <id> --code <code> --scope openid --v2
  aad-oauth admin-consent --client-id <id> --tenant-id contoso.onmicrosoft.com
""",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    code = subparsers.add_parser("code", help="Request an authorization code")
    _add_common_arguments(code)
    code.add_argument(
        "--scope",
        action="append",
        default=[],
        help="Scope to request (repeatable)",
    )
    code.add_argument(
        "--prompt",
        choices=[prompt.value for prompt in Prompt],
        default=Prompt.LOGIN.value,
        help="Login prompt behavior (default: login)",
    )

    token = subparsers.add_parser(
        "token", help="Redeem a code, or use client credentials"
    )
    _add_common_arguments(token)
    token.add_argument(
        "--client-secret",
        default=None,
        help="Client secret (default: $AAD_OAUTH_CLIENT_SECRET)",
    )
    token.add_argument("--resource", default=None, help="Resource URI (v1)")
    token.add_argument(
        "--scope",
        action="append",
        default=[],
        help="Scope to request (repeatable, v2)",
    )
    token.add_argument(
        "--code",
        default=None,
        help="Authorization code; client credentials are used if omitted",
    )

    consent = subparsers.add_parser(
        "admin-consent", help="Grant tenant-wide admin consent"
    )
    _add_common_arguments(consent)

    return parser


def run(args: argparse.Namespace, client: AzureOAuth2Client) -> int:
    if args.command == "code":
        result = client.get_authorization_code(
            args.client_id,
            tenant_id=args.tenant_id,
            redirect_uri=args.redirect_uri,
            scopes=args.scope,
            prompt=Prompt(args.prompt),
            api_v2=args.v2,
        )
    elif args.command == "admin-consent":
        result = client.grant_admin_consent(
            args.client_id,
            tenant_id=args.tenant_id,
            redirect_uri=args.redirect_uri,
            api_v2=args.v2,
        )
    else:
        bundle = client.get_token(
            args.client_id,
            client_secret=args.client_secret or os.getenv("AAD_OAUTH_CLIENT_SECRET"),
            tenant_id=args.tenant_id,
            redirect_uri=args.redirect_uri,
            resource_uri=args.resource,
            scopes=args.scope,
            authorization_code=args.code,
            api_v2=args.v2,
        )
        print(json.dumps(bundle.to_dict(), indent=2))
        return 0

    if result is None:
        logger.error("No trusted authorization response received")
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.is_error() else 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        with AzureOAuth2Client(settings=AuthSettings.from_env()) as client:
            return run(args, client)
    except OAuth2Error as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except ValueError as e:
        # Invalid arguments or settings
        parser.error(str(e))


if __name__ == "__main__":
    sys.exit(main())
