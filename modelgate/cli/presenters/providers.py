"""Presenters for provider and model display in the CLI."""

from rich.console import Console
from rich.table import Table

from modelgate.core.provider.provider_config_loader import ProviderLoadResult


class ProviderSummaryPresenter:
    """Renders provider load results and model listings with Rich."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def present_load_results(self, results: list[ProviderLoadResult]) -> None:
        if not results:
            self.console.print("[yellow]No providers configured[/yellow]")
            return

        table = Table(title="Active Providers")
        table.add_column("Status")
        table.add_column("SHA256", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Keys", justify="right")
        table.add_column("Strategy")
        table.add_column("Base URL / Error")

        for result in results:
            if result.status == "success":
                table.add_row(
                    "[green]ok[/green]",
                    result.api_key_hash or "",
                    result.name,
                    str(result.key_count),
                    result.strategy or "",
                    result.base_url or "",
                )
            else:
                table.add_row("[red]error[/red]", "", result.name, "", "", result.message or "")

        self.console.print(table)
        ready = sum(1 for r in results if r.status == "success")
        self.console.print(f"\n{ready} provider{'s' if ready != 1 else ''} ready for requests")

    def present_models(self, listing: dict) -> None:  # type: ignore[type-arg]
        table = Table(title="Available Models")
        table.add_column("Model", style="cyan")
        table.add_column("Provider", style="green")
        for entry in listing.get("data", []):
            table.add_row(entry["id"], entry["provider"])
        self.console.print(table)
