"""
Evigraph CLI - build evidence graphs from the terminal.

Examples:
    evigraph ask "How do mRNA vaccines work?"
    evigraph ask "Compare solar and wind power" --density high --json
    evigraph density "What are the types of renewable energy?" --blocks 6
    evigraph serve --port 8000
"""

import asyncio
import json
import sys
import uuid

import click

from evigraph import __version__
from evigraph.cli.colors import (
    console,
    print_density_table,
    print_error,
    print_graph_stats,
    print_header,
    print_info,
    print_key_value,
    print_success,
    print_warning,
    truncate_text,
)
from evigraph.config import configure_logging, load_config
from evigraph.core.density import DensityLevel, get_density_config, infer_density_level
from evigraph.core.errors import EvigraphError

DENSITY_CHOICES = [level.value for level in DensityLevel] + ["auto"]


@click.group()
@click.version_option(version=__version__, prog_name="Evigraph")
@click.option("--log-level", default=None, help="Logging level (default from EVIGRAPH_LOG_LEVEL)")
@click.pass_context
def cli(ctx, log_level):
    """
    Evigraph - evidence graphs for answered questions.
    """
    config = load_config()
    configure_logging(log_level or config.log_level)
    ctx.obj = config


@cli.command()
@click.argument("question")
@click.option("--density", "-d", type=click.Choice(DENSITY_CHOICES), default=None, help="Graph density level")
@click.option("--json", "json_output", is_flag=True, help="Output the full result as JSON")
@click.pass_obj
def ask(config, question: str, density: str, json_output: bool):
    """Answer QUESTION and build its evidence graph."""
    from evigraph.core.progress import ProgressTracker
    from evigraph.providers import create_collaborators
    from evigraph.services import GraphAssembler

    tracker = ProgressTracker()
    assembler = GraphAssembler(create_collaborators(config), tracker, config.pipeline.max_concurrent_calls)
    job_id = str(uuid.uuid4())

    try:
        if json_output:
            result = asyncio.run(assembler.build(question, job_id, density or config.pipeline.default_density))
        else:
            with console.status("[cyan]Building evidence graph...[/cyan]"):
                result = asyncio.run(assembler.build(question, job_id, density or config.pipeline.default_density))
    except EvigraphError as e:
        print_error(e.message)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    print_header("Answer")
    for block in result.answer.blocks:
        cites = ", ".join(block.source_ids) or "no sources"
        prefix = "- " if block.type == "bullet" else ""
        console.print(f"{prefix}{block.text} [dim]({cites})[/dim]")

    print_header("Sources")
    for source in result.sources:
        if result.graph.has_node(source.id):
            console.print(f"[cyan]{source.id}[/cyan] {truncate_text(source.title, 70)} [dim]{source.url}[/dim]")

    print_header("Evidence graph")
    print_key_value("Density", result.density_level.value)
    print_key_value("Time", f"{result.timings.get('total', 0)}ms")
    print_graph_stats(result.graph.stats())
    for warning in result.warnings:
        print_warning(warning)
    print_success("Graph ready")


@cli.command()
@click.argument("question")
@click.option("--blocks", "-b", type=int, default=None, help="Number of answer blocks, if known")
def density(question: str, blocks: int):
    """Show the density level inferred for QUESTION and its configuration."""
    level = infer_density_level(question, blocks)
    print_header(f"Density: {level.value}")
    print_density_table(get_density_config(level).to_dict())


@cli.command()
@click.option("--host", default=None, help="Bind host (default from EVIGRAPH_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Bind port (default from EVIGRAPH_PORT)")
@click.pass_obj
def serve(config, host: str, port: int):
    """Run the HTTP API."""
    from evigraph.api import create_app

    app = create_app(config)
    host = host or config.api.host
    port = port or config.api.port
    print_info(f"Serving Evigraph API on http://{host}:{port}/api")
    try:
        app.run(host=host, port=port, debug=config.debug, threaded=True, use_reloader=False)
    finally:
        app.extensions["evigraph"].tracker.shutdown()


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
