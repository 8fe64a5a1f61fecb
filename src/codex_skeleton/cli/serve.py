import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.", no_args_is_help=True)
console = Console(stderr=True)


@serve_app.command("mcp")
def mcp(
    transport: str = "stdio",
) -> None:
    """Start the MCP server."""
    from codex_skeleton.mcp.server import create_mcp_server

    server = create_mcp_server()
    console.print(f"[green]Starting MCP server (transport: {transport})[/green]")
    server.run(transport=transport)  # type: ignore[arg-type]
