"""Progress notifications emitted while the agent runs."""

from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel


class StreamingHandler:
    """Receives progress events from the agent loop.

    Every hook is a no-op here; subclasses override the ones they care about.
    """

    def on_iteration_start(self, iteration: int) -> None:
        pass

    def on_llm_response(self, response: str) -> None:
        pass

    def on_tool_about_to_execute(self, tool: str, action: str, parameters: Any) -> None:
        pass

    def on_tool_executed(self, tool: str, action: str, result: str, success: bool) -> None:
        pass

    def on_iteration_end(self, iteration: int, result: str) -> None:
        pass


class NullStreamingHandler(StreamingHandler):
    """Discards every event."""


class ConsoleStreamingHandler(StreamingHandler):
    """Renders agent progress on a rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def on_iteration_start(self, iteration: int) -> None:
        if iteration > 1:
            self.console.print(f"\n[bold blue]🔄 Starting iteration {iteration} of the chain...[/bold blue]\n")

    def on_llm_response(self, response: str) -> None:
        self.console.print(
            Panel(
                Markdown(response),
                title="[bold green]🤖 AI Response[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def on_tool_about_to_execute(self, tool: str, action: str, parameters: Any) -> None:
        self.console.print(f"[yellow]⚡ Executing tool: {tool} -> {action}[/yellow]")

    def on_tool_executed(self, tool: str, action: str, result: str, success: bool) -> None:
        status = "[green]✅[/green]" if success else "[red]❌[/red]"
        self.console.print(f"{status} Tool result for {tool} -> {action}:")
        if result:
            self.console.print(result, markup=False, highlight=False)
            self.console.print()

    def on_iteration_end(self, iteration: int, result: str) -> None:
        self.console.print(f"[dim]✨ Iteration {iteration} completed.[/dim]\n")
