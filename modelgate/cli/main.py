"""Main CLI entry point for modelgate."""

import typer
from rich.console import Console

from modelgate.cli.presenters.providers import ProviderSummaryPresenter

app = typer.Typer(
    name="modelgate",
    help="modelgate CLI - route chat completions across LLM providers",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")


@app.command()
def version() -> None:
    """Show version information."""
    from modelgate import __version__

    console = Console()
    console.print(f"[bold cyan]modelgate[/bold cyan] version [green]{__version__}[/green]")


@app.command()
def start(
    host: str = typer.Option(None, "--host", help="Override host"),
    port: int = typer.Option(None, "--port", help="Override port"),
) -> None:
    """Start the gateway server."""
    import uvicorn

    from modelgate.core.config import config
    from modelgate.core.logging import configure_root_logging
    from modelgate.main import create_app

    log_level = configure_root_logging(config.log_level)
    ProviderSummaryPresenter().present_load_results(config.provider_load_results)
    uvicorn.run(
        create_app(config),
        host=host or config.host,
        port=port or config.port,
        log_level=log_level.lower(),
    )


@app.command()
def providers() -> None:
    """Load the providers file and show which providers registered."""
    from modelgate.core.config import config

    ProviderSummaryPresenter().present_load_results(config.provider_load_results)


@app.command()
def models() -> None:
    """List every model id the gateway can route."""
    from modelgate.core.config import config

    ProviderSummaryPresenter().present_models(config.provider_registry.get_available_models())


@config_app.command("validate")
def validate() -> None:
    """Validate environment configuration."""
    from modelgate.core.config import validate_all

    console = Console()
    errors = validate_all()
    if errors:
        for error in errors:
            console.print(f"[red]Configuration error:[/red] {error}")
        raise typer.Exit(code=1)
    console.print("[green]Configuration is valid[/green]")


@config_app.command("docs")
def docs() -> None:
    """Print Markdown documentation of all environment variables."""
    from modelgate.core.config import ConfigSchema

    typer.echo(ConfigSchema.generate_markdown_docs())


if __name__ == "__main__":
    app()
