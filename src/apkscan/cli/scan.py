"""AsyncClick CLI for scanning package files.

Provides user-facing commands:
- scan: Scan one or more package files and print a findings tree
"""

import os

import asyncclick as click
import structlog
from rich.console import Console

from apkscan.core.config import Config, load_config
from apkscan.core.log import configure_logging
from apkscan.core.reporting import FindingsTree, TreeRenderer
from apkscan.tools import GrypeTool, ToolStatus

logger = structlog.get_logger()


def _make_console(config: Config) -> Console:
    """Console bound to the current stdout; plain text when not a terminal.

    When hyperlinks are on the console is forced into terminal mode, since
    rich only writes OSC 8 links when it emits styling.
    """
    return Console(
        highlight=False,
        emoji=False,
        soft_wrap=True,
        force_terminal=config.hyperlinks or None,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug events to stderr")
@click.pass_context
async def cli(ctx, verbose: bool):
    """apkscan - vulnerability findings for package files"""
    ctx.ensure_object(dict)
    configure_logging(verbose)


@cli.command()
@click.argument("paths", nargs=-1, required=True, metavar="<path/to/package.apk> ...")
@click.option("--require-zero", is_flag=True, help="exit 1 if any vulnerabilities are found")
@click.option("--no-hyperlinks", is_flag=True, help="Never emit terminal hyperlinks")
@click.pass_context
async def scan(ctx, paths: tuple[str, ...], require_zero: bool, no_hyperlinks: bool):
    """Scan package files for vulnerabilities.

    Files are scanned one at a time, in the order given.

    Examples:
        apkscan scan busybox-1.36.1-r0.apk
        apkscan scan --require-zero packages/*.apk
    """
    config = load_config(hyperlinks=False) if no_hyperlinks else load_config()

    tool = GrypeTool(binary_name=config.grype_binary, timeout=config.scan_timeout)
    renderer = TreeRenderer(hyperlinks=config.hyperlinks)
    console = _make_console(config)

    for path in paths:
        log = logger.bind(path=path)

        try:
            with open(path, "rb"):
                pass
        except OSError as e:
            log.error("open_failed", error=str(e))
            click.echo(f"[-] failed to open apk file: {e}", err=True)
            ctx.exit(1)

        click.echo(os.path.basename(path))

        result = await tool.run(path)
        if result.status != ToolStatus.SUCCESS:
            click.echo(f"[-] Scan failed: {result.error}", err=True)
            ctx.exit(1)

        findings = result.data.get("findings", [])
        log.debug("scan_complete", findings=len(findings))

        if not findings:
            click.echo("✅ No vulnerabilities found")
        else:
            tree = FindingsTree.from_findings(findings)
            console.print(renderer.render(tree))

        if require_zero and findings:
            click.echo("[-] more than 0 vulnerabilities found", err=True)
            ctx.exit(1)


if __name__ == "__main__":
    cli()
