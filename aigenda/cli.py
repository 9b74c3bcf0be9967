"""Command implementations for the aigenda CLI."""

from collections.abc import Callable
from datetime import date

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from aigenda.agent.confirmation import AutoApprove, ConsoleConfirmation, PermissionGate
from aigenda.agent.core import Agent, ChatClient
from aigenda.agent.executor import ToolExecutor
from aigenda.agent.streaming import ConsoleStreamingHandler
from aigenda.clients.anthropic import get_anthropic_client
from aigenda.config import Settings
from aigenda.exceptions import AigendaError, ConfigurationError
from aigenda.models.notes import DayLog, Note
from aigenda.services.memory import ConversationMemory
from aigenda.services.storage import Storage
from aigenda.tools.registry import ToolsRegistry, build_default_registry
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

EXAMPLE_PROMPTS = (
    "add a note about today's meeting",
    "show me my notes from yesterday",
    "update my note from today",
)


class NotesApp:
    """Runs CLI commands against a storage backend."""

    def __init__(
        self,
        settings: Settings,
        storage: Storage,
        console: Console | None = None,
        client_factory: Callable[[], ChatClient] = get_anthropic_client,
    ):
        """Initialize the app.

        Args:
            settings: Resolved runtime settings
            storage: Note storage backend
            console: Console all output is written to
            client_factory: Builds the model client; raises ConfigurationError without credentials
        """
        self.settings = settings
        self.storage = storage
        self.console = console or Console()
        self.client_factory = client_factory
        self._registry: ToolsRegistry | None = None

    @property
    def registry(self) -> ToolsRegistry:
        if self._registry is None:
            self._registry = build_default_registry(
                self.storage, enable_example_tool=self.settings.enable_example_tool
            )
        return self._registry

    def _print(self, text: str = "") -> None:
        self.console.print(text, markup=False, highlight=False)

    # Notes

    def add_note(self, words: list[str]) -> int:
        """Append a note to today's log."""
        text = " ".join(words).strip()
        if not text:
            self.console.print("[red]❌ Nothing to add: note text is empty[/red]")
            return 1

        note = Note.now(text)
        day_log = self.storage.load_day(note.when.date())
        day_log.add_note(note)
        self.storage.save_day(day_log)
        self._print(f"Added note to {day_log.date.isoformat()}.")
        return 0

    def list_notes(self, all_days: bool = False, day: str | None = None) -> int:
        """Print today's notes, one day's notes, or every stored day."""
        if all_days:
            for day_log in self.storage.iter_days():
                self._print_day(day_log)
            return 0

        if day is not None:
            try:
                target = date.fromisoformat(day)
            except ValueError:
                self.console.print(f"[red]❌ Invalid date: {day!r} (expected YYYY-MM-DD)[/red]")
                return 1
        else:
            target = date.today()

        self._print_day(self.storage.load_day(target))
        return 0

    def _print_day(self, day_log: DayLog) -> None:
        if not day_log.notes:
            self._print(f"(no notes) {day_log.date.isoformat()}")
            return
        self._print(f"# {day_log.date.isoformat()}")
        for i, note in enumerate(day_log.notes, start=1):
            self._print(f"- [{i:02}] {note.text}")
        self._print()

    # Agent

    def build_agent(self, client: ChatClient | None, auto_approve: bool = False) -> Agent:
        """Assemble an agent over this app's storage with memory loaded from disk."""
        memory = ConversationMemory.load(
            self.settings.memory_path, self.settings.max_messages, self.settings.max_tokens
        )
        gate: PermissionGate = (
            AutoApprove() if auto_approve or self.settings.auto_approve else ConsoleConfirmation(self.console)
        )
        executor = ToolExecutor(gate=gate, console=self.console)
        return Agent(
            registry=self.registry,
            memory=memory,
            client=client,
            memory_path=self.settings.memory_path,
            executor=executor,
            max_iterations=self.settings.max_iterations,
        )

    def _make_client(self) -> ChatClient | None:
        try:
            return self.client_factory()
        except ConfigurationError as e:
            logger.debug(f"Model client unavailable: {e}")
            return None

    async def ai(self, words: list[str], auto_approve: bool = False) -> int:
        """Run a natural-language command through the agent."""
        user_input = " ".join(words)
        if not user_input.strip():
            self._print("Usage: aigenda ai <your natural language command>")
            for example in EXAMPLE_PROMPTS[:2]:
                self._print(f'Example: aigenda ai "{example}"')
            return 0

        client = self._make_client()
        if client is None:
            self._print("⚠️  Claude API key not found. Set ANTHROPIC_API_KEY environment variable.")
            self._print("   For now, showing available tools:\n")
            self._print_tools()
            self._print("\n💡 Once you set your API key, you can use natural language commands like:")
            for example in EXAMPLE_PROMPTS:
                self._print(f'   aigenda ai "{example}"')
            return 0

        agent = self.build_agent(client, auto_approve=auto_approve)
        self._print("🤖 Processing your request...")
        try:
            await agent.execute_command(user_input, ConsoleStreamingHandler(self.console))
        except AigendaError as e:
            logger.error(f"Command failed: {e}")
            self.console.print(f"[red]❌ Error executing command: {e}[/red]")
            self._print()
            self._print_tools()
            return 1

        self._print("\n✅ Command completed successfully!")
        return 0

    async def chat(self, auto_approve: bool = False) -> int:
        """Start an interactive session with the agent."""
        client = self._make_client()
        if client is None:
            self.console.print("[red]❌ Claude API key not found. Set ANTHROPIC_API_KEY environment variable.[/red]")
            return 1
        session = ChatSession(self.build_agent(client, auto_approve=auto_approve), self.console)
        await session.start()
        return 0

    # Introspection

    def tools(self, schemas: bool = False) -> int:
        """List the registered tools, or print their full documentation."""
        if schemas:
            self.console.print(Markdown(self.registry.render_documentation()))
        else:
            self._print_tools()
        return 0

    def _print_tools(self) -> None:
        self._print("📋 Available tools:")
        for name in self.registry.list():
            self._print(f"  • {name}")

    def memory(self, action: str) -> int:
        """Show statistics or history for the persisted memory, or clear it.

        Works on the memory file alone; no tools are loaded.
        """
        memory = ConversationMemory.load(
            self.settings.memory_path, self.settings.max_messages, self.settings.max_tokens
        )

        match action:
            case "stats":
                self._print(f"Messages: {memory.message_count}")
                self._print(f"Estimated tokens: {memory.token_estimate}")
                self._print(f"Limits: {self.settings.max_messages} messages, {self.settings.max_tokens} tokens")
                self._print(f"File: {self.settings.memory_path}")
            case "history":
                history = memory.context(include_header=False)
                self._print(history if history else "(no conversation history)")
            case "clear":
                memory.clear()
                memory.save(self.settings.memory_path)
                self.console.print("[yellow]🔄 Conversation memory cleared[/yellow]")
            case _:
                self.console.print(f"[red]❌ Unknown memory action: {action}[/red]")
                return 1
        return 0


class ChatSession:
    """Interactive chat loop around an agent."""

    def __init__(self, agent: Agent, console: Console | None = None):
        """Initialize chat session."""
        self.agent = agent
        self.console = console or Console()

    async def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]📓 aigenda - Interactive Chat[/bold blue]\n"
                "Type your requests to manage your notes with the AI assistant.\n"
                "Commands: /help, /clear, /history, /tools, /quit",
                border_style="blue",
            )
        )

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]", console=self.console)
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/clear":
                    self.agent.clear_memory()
                    self.agent.memory.save(self.agent.memory_path)
                    self.console.print("[yellow]🔄 Conversation memory cleared[/yellow]")
                    continue
                elif command == "/history":
                    history = self.agent.conversation_history()
                    self.console.print(history or "[dim](no conversation history)[/dim]", markup=not history)
                    continue
                elif command == "/tools":
                    self.console.print(", ".join(self.agent.list_available_tools()), markup=False)
                    continue
                elif command == "":
                    continue

                await self._send_message(user_input)

        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")

    async def _send_message(self, message: str) -> None:
        """Run one request through the agent, reporting failures inline."""
        try:
            await self.agent.execute_command(message, ConsoleStreamingHandler(self.console))
        except AigendaError as e:
            logger.error(f"Chat request failed: {e}")
            self.console.print(f"[red]❌ Error: {e}[/red]")

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Forget the conversation so far
• /history - Show the remembered conversation
• /tools - List available tools
• /quit or /exit - Exit the chat

[bold]Example Requests:[/bold]
1. "Add a note that the release went out"
2. "What did I write down yesterday?"
3. "Change my second note from today to say the meeting moved to 3pm"

[bold]Tips:[/bold]
• Every tool call is shown to you for approval before it runs
• Dates are written as YYYY-MM-DD
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))
