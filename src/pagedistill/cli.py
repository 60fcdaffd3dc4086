"""Command-line interface for pagedistill."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from . import __version__
from .core import Distiller, create_provider
from .errors import DistillError
from .logging_config import setup_logging
from .models.config import DistillConfig
from .models.events import DistillEvent, DistillStage

STAGE_MESSAGES = {
    DistillStage.SESSION_ACQUIRED: "Browser session acquired",
    DistillStage.PAGE_OPENED: "Loading page...",
    DistillStage.NAVIGATED: "Extracting content...",
    DistillStage.EXTRACTED: "Converting to Markdown...",
}


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="pagedistill",
        description="Extract the readable content of a web page as HTML or Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Article HTML through the remote browser service
  pagedistill https://example.com/post --endpoint https://browser.example.com

  # Markdown with a locally launched Chromium
  pagedistill https://example.com/post --markdown --local

  # Use DOM Distiller instead of Readability
  pagedistill https://example.com/post --dom-distiller --config distill.yaml

  # Run the HTTP service
  pagedistill --serve --port 8787 --api-key '$SERVICE_API_KEY'
        """,
    )

    parser.add_argument(
        "url",
        nargs="?",
        help="URL of the page to distill",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="YAML configuration file",
    )

    # Output
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "--markdown",
        "-m",
        action="store_true",
        help="Convert the extracted content to Markdown",
    )
    output_group.add_argument(
        "--dom-distiller",
        action="store_true",
        help="Extract with DOM Distiller instead of Readability",
    )
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the result to a file instead of stdout",
    )

    # Browser settings
    browser_group = parser.add_argument_group("browser settings")
    browser_group.add_argument(
        "--local",
        action="store_true",
        help="Launch a local Chromium instead of using the remote service",
    )
    browser_group.add_argument(
        "--endpoint",
        type=str,
        metavar="URL",
        help="Remote browser service base URL",
    )
    browser_group.add_argument(
        "--api-token",
        type=str,
        help="Bearer token for the remote browser service (supports $VAR)",
    )
    browser_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Navigation timeout in seconds",
    )
    browser_group.add_argument(
        "--domdistiller-script",
        type=str,
        metavar="SOURCE",
        help="URL or path of the DOM Distiller bundle",
    )

    # Service
    server_group = parser.add_argument_group("service")
    server_group.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP distill service",
    )
    server_group.add_argument("--host", type=str, default=None, help="Bind address")
    server_group.add_argument("--port", type=int, default=None, help="Bind port")
    server_group.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Bearer key required by the service (supports $VAR)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress progress output",
    )

    return parser


def build_config(args: argparse.Namespace) -> DistillConfig:
    """Merge the config file (if any) with command-line overrides."""
    data: dict[str, Any] = {}
    if args.config:
        data = DistillConfig.from_yaml_file(args.config).model_dump(exclude_none=True)

    browser = data.setdefault("browser", {})
    if args.local:
        browser["provider"] = "local"
    if args.endpoint:
        browser["endpoint"] = args.endpoint
    if args.api_token:
        browser["api_token"] = args.api_token
    if args.timeout is not None:
        browser["navigation_timeout"] = args.timeout

    if args.domdistiller_script:
        data.setdefault("extraction", {})["domdistiller_script"] = args.domdistiller_script

    server = data.setdefault("server", {})
    if args.host:
        server["host"] = args.host
    if args.port is not None:
        server["port"] = args.port
    if args.api_key:
        server["api_key"] = args.api_key

    if args.verbose:
        data["log_level"] = "DEBUG"
    elif args.quiet:
        data["log_level"] = "ERROR"

    return DistillConfig.model_validate(data)


def run_distill(args: argparse.Namespace, config: DistillConfig) -> int:
    """Distill a single URL and print or save the result."""
    console = Console(stderr=True)

    if not args.url:
        console.print("[red]Error:[/red] Please provide a URL to distill")
        return 1

    async def run() -> int:
        async with create_provider(config.browser) as provider:
            distiller = Distiller(provider, config)

            capacity = await distiller.capacity()
            if not capacity.available:
                console.print(
                    f"[yellow]The browser worker is busy.[/yellow] Retry in {capacity.retry_after:.0f}s"
                )
                return 2

            if args.quiet:
                text = await distiller.distill(args.url, args.markdown, not args.dom_distiller)
            else:
                with console.status(f"[cyan]Distilling {args.url}") as status:

                    def on_event(event: DistillEvent) -> None:
                        message = STAGE_MESSAGES.get(event.stage)
                        if message:
                            status.update(f"[cyan]{message}")

                    text = await distiller.distill(
                        args.url,
                        args.markdown,
                        not args.dom_distiller,
                        emit=on_event,
                    )

        if args.output:
            args.output.write_text(text, encoding="utf-8")
            if not args.quiet:
                console.print(f"[green]Saved[/green] {len(text)} characters to {args.output}")
        else:
            sys.stdout.write(text)
            if not text.endswith("\n"):
                sys.stdout.write("\n")
        return 0

    try:
        return asyncio.run(run())
    except DistillError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except Exception as e:
        Console(stderr=True).print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(
        config.log_level,
        log_file=str(config.log_file) if config.log_file else None,
    )

    if args.serve:
        from .server import run_server

        run_server(config)
        return 0

    return run_distill(args, config)


if __name__ == "__main__":
    sys.exit(main())
