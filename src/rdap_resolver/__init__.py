"""
RDAP Resolver

Resolves domains, IP addresses and AS numbers to their authoritative RDAP
servers via the IANA bootstrap registries, and fetches the registration data.
"""

__version__ = "0.1.0"


def main():
    """Main entry point for the CLI."""
    import sys

    # Handle CLI arguments before importing heavy dependencies
    if "--help" in sys.argv or "-h" in sys.argv:
        print_help()
        sys.exit(0)

    if "--version" in sys.argv or "-V" in sys.argv:
        print(f"rdap-resolver {__version__}")
        sys.exit(0)

    if "--show-config" in sys.argv:
        show_config()
        sys.exit(0)

    if "--lookup" in sys.argv:
        index = sys.argv.index("--lookup")
        if index + 1 >= len(sys.argv):
            print("Error: --lookup requires a query", file=sys.stderr)
            sys.exit(2)
        sys.exit(run_lookup(sys.argv[index + 1]))

    # Default: run the MCP server
    from .server import mcp
    mcp.run()


def print_help():
    """Print help message."""
    print(f"""rdap-resolver {__version__}

Resolve domains, IP addresses and AS numbers to RDAP registration data.

Usage:
    rdap-resolver                   Run the MCP server
    rdap-resolver --lookup QUERY    Look up a single query and print JSON
    rdap-resolver --show-config     Show current configuration
    rdap-resolver --version         Show version
    rdap-resolver --help            Show this help

Configuration (environment variables override the config file):
    RDAP_RESOLVER_RATE_LIMIT        Requests per client per window (default 30)
    RDAP_RESOLVER_RATE_WINDOW       Window length in seconds (default 60)
    RDAP_RESOLVER_RESPONSE_TTL      Response cache TTL in seconds (default 21600)
    RDAP_RESOLVER_BOOTSTRAP_TTL     Bootstrap cache TTL in seconds (default 86400)
    RDAP_RESOLVER_HTTP_TIMEOUT      Upstream timeout in seconds (default: httpx default)
    RDAP_RESOLVER_DEBUG=1           Verbose HTTP logging

MCP client setup:
    Add to your client configuration:
    {{
      "mcpServers": {{
        "rdap-resolver": {{
          "command": "uvx",
          "args": ["rdap-resolver"]
        }}
      }}
    }}
""")


def show_config():
    """Show current configuration."""
    from .config import get_config_file, load_settings

    print("Configuration")
    print("=" * 50)
    print()

    config_file = get_config_file()
    print(f"Config file: {config_file}")
    print(f"  Exists: {config_file.exists()}")
    print()

    for name, value in load_settings().to_dict().items():
        print(f"{name}: {value if value is not None else 'default'}")


def run_lookup(query: str) -> int:
    """Run one lookup and print the result. Returns the process exit code."""
    import json
    import logging

    from .errors import RdapError
    from .lookup import get_default_service

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        result = get_default_service().lookup_sync(query)
    except RdapError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1

    print(json.dumps(result.payload, indent=2))
    return 0
