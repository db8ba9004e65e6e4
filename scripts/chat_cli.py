#!/usr/bin/env python3
"""Interactive chat CLI for the human-in-the-loop chat agent."""

import json
import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from app.models.stream import (
    ErrorEvent,
    FinishEvent,
    TextChunkEvent,
    ToolCallEvent,
    ToolResultEvent,
    parse_stream_part,
)


class ChatCLI:
    """Interactive chat interface with approve/deny prompts for sensitive tools."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.conversation_id: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)
        self.confirmation_tools: set[str] = set()

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🤖 HITL Chat Agent - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the AI assistant.\n"
                "Commands: /help, /clear, /quit (and /sys: commands for the agent)",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print("[red]❌ Cannot connect to the service. Make sure it's running.[/red]")
            return

        self.console.print("[green]✅ Connected to chat agent service[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self._clear_conversation()
                    continue
                elif user_input.strip() == "":
                    continue

                payload: dict | None = {"content": user_input}
                while payload:
                    pending = self._send(payload)
                    payload = self._ask_for_decisions(pending) if pending else None

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service and load the confirmation tool list."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            if response.status_code != 200:
                return False
            self._load_confirmation_tools()
            return True
        except httpx.HTTPError:
            return False

    def _load_confirmation_tools(self) -> None:
        """Fetch the tools that need approval, per conversation once one exists."""
        url = f"{self.base_url}/tools/confirmation"
        if self.conversation_id:
            url = f"{self.base_url}/conversation/{self.conversation_id}/tools/confirmation"
        self.confirmation_tools = set(self.client.get(url).json().get("tools", []))

    def _send(self, payload: dict) -> list[ToolCallEvent]:
        """Send a submission, render the streamed turn and return calls awaiting a decision."""
        if self.conversation_id:
            payload["conversation_id"] = self.conversation_id

        calls: dict[str, ToolCallEvent] = {}
        text = ""

        try:
            with self.client.stream("POST", f"{self.base_url}/conversation", json=payload) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return []

                conversation_id = response.headers.get("x-conversation-id", self.conversation_id)
                if conversation_id != self.conversation_id:
                    self.conversation_id = conversation_id
                    self._load_confirmation_tools()

                for line in response.iter_lines():
                    if not line:
                        continue
                    event = parse_stream_part(line)

                    if isinstance(event, TextChunkEvent):
                        text += event.text
                        self.console.print(event.text, end="", markup=False, highlight=False)
                    elif isinstance(event, ToolCallEvent):
                        calls[event.tool_call_id] = event
                        self.console.print(
                            f"\n[magenta]🔧 {event.tool_name}[/magenta] [dim]{json.dumps(event.args)}[/dim]"
                        )
                    elif isinstance(event, ToolResultEvent):
                        calls.pop(event.tool_call_id, None)
                        self.console.print(f"[dim]   ↳ {json.dumps(event.result, ensure_ascii=False)}[/dim]")
                    elif isinstance(event, ErrorEvent):
                        self.console.print(f"\n[red]❌ {event.message}[/red]")
                    elif isinstance(event, FinishEvent):
                        self.console.print(f"\n[dim]({event.finish_reason})[/dim]")

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return []

        if text:
            self.console.print(
                Panel(
                    Markdown(text),
                    title="[bold green]🤖 Assistant[/bold green]",
                    border_style="green",
                    padding=(1, 2),
                )
            )

        return [call for call in calls.values() if call.tool_name in self.confirmation_tools]

    def _ask_for_decisions(self, pending: list[ToolCallEvent]) -> dict:
        """Prompt for approval of every pending call."""
        responses = []
        for call in pending:
            approved = Confirm.ask(
                f"[bold yellow]Run {call.tool_name}[/bold yellow] with {json.dumps(call.args, ensure_ascii=False)}?"
            )
            responses.append({"tool_call_id": call.tool_call_id, "approved": approved})
        return {"tool_responses": responses}

    def _clear_conversation(self) -> None:
        if self.conversation_id:
            self.client.delete(f"{self.base_url}/conversation/{self.conversation_id}")
        self.conversation_id = None
        self.console.print("[yellow]🔄 Conversation cleared[/yellow]")

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Delete the conversation and start over
• /quit or /exit - Exit the chat

[bold]Agent Commands:[/bold]
• /sys:help - List prompt presets
• /sys:<preset> - Switch preset (clears history)
• /sys:+<feature> / /sys:-<feature> - Add or remove a prompt feature

[bold]Example Conversation:[/bold]
1. "What's the weather in Paris?" (you will be asked to approve the lookup)
2. "What time is it in Tokyo?"
3. "Remind me to stretch in 30 seconds"
4. "Which tasks are scheduled?"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
