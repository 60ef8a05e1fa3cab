"""Interactive terminal chat running the assistant in-process."""

import asyncio
import sys

from cuid2 import cuid_wrapper
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from scout.config import Settings
from scout.errors import HistorySchemaError
from scout.models.conversation import HistoryEntry
from scout.models.history import trim_history
from scout.services.conversation import APOLOGY_TEMPLATE, ConversationService, build_conversation_service
from scout.services.history_store import ConversationStore
from scout.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)

cuid = cuid_wrapper()


class ChatCLI:
    """Interactive chat interface for the assistant."""

    def __init__(self, service: ConversationService, store: ConversationStore, history_depth: int = 20):
        """Initialize chat CLI.

        Args:
            service: Conversation service answering messages
            store: Where conversations are saved
            history_depth: Most recent messages kept as context
        """
        self.service = service
        self.store = store
        self.history_depth = history_depth
        self.console = Console()
        self.conversation_id = cuid()
        self.history: list[HistoryEntry] = []

    async def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Scout Chat[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /help, /new, /history, /open <id>, /clear-all, /quit",
                border_style="blue",
            )
        )

        try:
            while True:
                user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/new":
                    self._new_conversation()
                    continue
                elif command == "/history":
                    self._show_history()
                    continue
                elif command.startswith("/open "):
                    self._open_conversation(user_input.strip()[len("/open ") :].strip())
                    continue
                elif command == "/clear-all":
                    self.store.clear_all()
                    self._new_conversation()
                    self.console.print("[yellow]All saved conversations deleted[/yellow]")
                    continue
                elif command == "":
                    continue

                await self._send_message(user_input)

        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")

    async def _send_message(self, message: str) -> str:
        """Stream the assistant's answer and record both turns."""
        context = trim_history(self.history, self.history_depth - 1) if self.history_depth > 0 else []

        self.console.print("\n[bold green]Assistant[/bold green]")
        parts: list[str] = []
        try:
            async for fragment in self.service.stream_reply(message, context):
                if fragment.kind == "status":
                    self.console.print(f"[dim]{escape(fragment.content)}[/dim]")
                    continue
                parts.append(fragment.content)
                self.console.print(fragment.content, end="", markup=False, highlight=False)
            self.console.print()
            answer = "".join(parts)
        except Exception as e:
            logger.error(f"Error answering message: {e}", exc_info=True)
            answer = APOLOGY_TEMPLATE.format(error=e)
            self.console.print()
            self.console.print(answer, style="red", markup=False, highlight=False)

        self._record("user", message)
        self._record("assistant", answer)
        return answer

    def _record(self, role: str, content: str) -> None:
        self.history.append(HistoryEntry(role=role, content=content))
        self.history = trim_history(self.history, self.history_depth)
        self.store.append_message(self.conversation_id, role, content)

    def _new_conversation(self) -> None:
        self.conversation_id = cuid()
        self.history = []
        self.console.print("[yellow]Started a new conversation[/yellow]")

    def _open_conversation(self, conversation_id: str) -> None:
        record = self.store.get(conversation_id)
        if record is None:
            self.console.print(f"[red]No saved conversation {escape(conversation_id)}[/red]")
            return

        self.conversation_id = record.id
        self.history = trim_history(
            [HistoryEntry(role=m.role, content=m.content) for m in record.messages], self.history_depth
        )
        last_answer = next((m.content for m in reversed(record.messages) if m.role == "assistant"), None)
        self.console.print(f"[yellow]Resumed conversation {record.id} ({len(record.messages)} messages)[/yellow]")
        if last_answer:
            self.console.print(Panel(Markdown(last_answer), title="Last answer", border_style="green"))

    def _show_history(self) -> None:
        conversations = self.store.list_conversations()
        if not conversations:
            self.console.print("[dim]No saved conversations[/dim]")
            return

        lines = [f"• {c.id}  {c.updated_at:%Y-%m-%d %H:%M}  {c.preview}" for c in conversations]
        self.console.print(Panel("\n".join(lines), title="[cyan]Saved conversations[/cyan]", border_style="cyan"))

    def _show_help(self) -> None:
        help_text = f"""
[bold]Available Commands:[/bold]
• /help - Show this help message
• /new - Start a new conversation
• /history - List saved conversations
• /open <id> - Continue a saved conversation
• /clear-all - Delete every saved conversation
• /quit or /exit - Exit the chat

[bold]Tips:[/bold]
• Ask about current events and the assistant will search the web
• Only the last {self.history_depth} messages are sent as context
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main() -> None:
    """Main entry point for the chat CLI."""
    settings = Settings.from_env()
    setup_logging(LogConfig(level="WARNING", stream="stderr"))

    try:
        service = build_conversation_service(settings)
        store = ConversationStore(settings.history_file)
        store.load()
    except (ValueError, HistorySchemaError) as e:
        Console(stderr=True).print(f"[red]{e}[/red]")
        sys.exit(1)

    asyncio.run(ChatCLI(service, store, history_depth=settings.agent.history_depth).start())


if __name__ == "__main__":
    main()
