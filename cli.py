"""CLI entry point for simple-oauth-mcp.

  serve     Run the OAuth-protected MCP server
  connect   Log in through the browser and call helloTool
"""
import argparse
import asyncio
import sys

from config import ConfigError, load_config
from logging_config import setup_logging
from oauth.browser import open_browser
from oauth.errors import OAuthError

VERSION = "1.0.0"


def _result_text(result) -> str:
    """Flatten an MCP tool result to printable text."""
    content = getattr(result, "content", None)
    if not content:
        return str(result)
    return "\n".join(getattr(block, "text", str(block)) for block in content)


def _open_and_print(url: str) -> bool:
    print("Opening browser for authorization...")
    print(f"If browser doesn't open, visit:\n  {url}\n")
    return open_browser(url)


# ============== CLI Commands ==============

def cmd_serve(args):
    """Start the MCP server in the foreground."""
    from main import run_server

    config = load_config()
    setup_logging(config.log_level, config.log_json)
    if args.port:
        config.data["MCP_PORT"] = str(args.port)

    try:
        run_server(config)
    except (ConfigError, OAuthError) as e:
        print(f"\n[X] Server startup failed: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_connect(args):
    """Authenticate against the MCP server and call helloTool."""
    from client import AuthenticatedMCPClient

    config = load_config()
    setup_logging(config.log_level, config.log_json)

    try:
        client = AuthenticatedMCPClient(
            mcp_server_url=args.server_url or config.mcp_server_url,
            client_name=config.client_name,
            redirect_port=args.redirect_port or config.redirect_port,
            scope=config.scope,
            callback_timeout=config.callback_timeout,
            open_url=_open_and_print,
        )
        client.authenticate_and_connect()
        print("[OK] Access token obtained")
    except KeyboardInterrupt:
        print("\n[X] Cancelled.", file=sys.stderr)
        sys.exit(130)
    except (ConfigError, OAuthError, ValueError) as e:
        print(f"\n[X] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        result = asyncio.run(client.call_tool("helloTool", {"name": args.name}))
    except KeyboardInterrupt:
        print("\n[X] Cancelled.", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        # httpx transport and MCP protocol errors surface here after login
        print(f"\n[X] Tool call failed: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    print(_result_text(result))


def cmd_version(args):
    print(f"simple-oauth-mcp {VERSION}")


def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="simple-oauth-mcp",
        description="Hello World MCP server and client secured with OAuth 2.0",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  AUTH_ISSUER=https://auth.example.com simple-oauth-mcp serve
  simple-oauth-mcp connect --name Alice
"""
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the OAuth-protected MCP server")
    serve.add_argument("--port", type=int, help="Port to listen on (default: MCP_PORT or 4111)")
    serve.set_defaults(func=cmd_serve)

    connect = subparsers.add_parser("connect", help="Log in and call helloTool")
    connect.add_argument("--name", default="Alice", help="Name to greet")
    connect.add_argument("--server-url", help="MCP server URL (default: MCP_SERVER_URL)")
    connect.add_argument("--redirect-port", type=int, help="Local callback port (default: 7080)")
    connect.set_defaults(func=cmd_connect)

    args = parser.parse_args(argv)

    if args.version:
        cmd_version(args)
    elif args.command:
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
