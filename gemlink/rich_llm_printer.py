"""
Rich console rendering for generate results and stream events.
"""
from typing import Dict, Any, AsyncIterator, List, Optional
from rich.console import Console
from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.panel import Panel
from rich.live import Live
from rich.console import Group
from rich.text import Text
import json


def _metadata_panel(meta: Dict[str, Any]) -> Panel:
    metadata_display = Syntax(
        json.dumps(meta, indent=2, default=str),
        "json",
        theme="lightbulb",
        background_color="default"
    )
    return Panel(metadata_display, title="[bold]Metadata[/bold]", border_style="dim")


class RichStreamPrinter:
    """
    Live display of a gemlink event stream.

    Text deltas are rendered as markdown as they arrive; tool calls and
    sources are listed under the text, and the ``finish`` event's usage and
    finish reason are shown as metadata.

    Attributes:
        title: Title for the display panel
        show_metadata: Whether to show metadata at the end
        code_theme: Theme for code blocks
        refresh_rate: Refresh rate for Live display
        border_style: Border style while streaming
    """

    def __init__(
        self,
        title: str = "Streaming Response",
        show_metadata: bool = True,
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        refresh_rate: int = 30,
        border_style: str = "blue",
        console: Optional[Console] = None,
    ):
        self.title = title
        self.show_metadata = show_metadata
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.refresh_rate = refresh_rate
        self.border_style = border_style
        self.console = console or Console()
        self._full_text = ""
        self._tool_calls: List[Dict[str, Any]] = []
        self._sources: List[Dict[str, Any]] = []
        self._errors: List[str] = []
        self._final_event: Optional[Dict[str, Any]] = None

    async def print_stream(self, event_stream: AsyncIterator[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Consume and display a stream.

        Args:
            event_stream: A ``StreamResult`` or any async iterator of stream events.

        Returns:
            The ``finish`` event with ``full_text`` added, or {} if the stream
            ended without one.
        """
        self._full_text = ""
        self._tool_calls = []
        self._sources = []
        self._errors = []
        self._final_event = None

        panel = Panel("", border_style=self.border_style)
        with Live(panel, refresh_per_second=self.refresh_rate, console=self.console) as live:
            async for event in event_stream:
                self._process_event(event)
                self._update_display(live, is_final=self._final_event is not None)

        return self._final_event or {}

    def _process_event(self, event: Dict[str, Any]) -> None:
        event_type = event["type"]
        if event_type == "text-delta":
            self._full_text += event["text_delta"]
        elif event_type == "tool-call":
            self._tool_calls.append(event)
        elif event_type == "source":
            self._sources.append(event["source"])
        elif event_type == "error":
            self._errors.append(str(event["error"]))
        elif event_type == "finish":
            self._final_event = {**event, "full_text": self._full_text}

    def _update_display(self, live: Live, is_final: bool = False) -> None:
        title = "[bold]Final Response[/bold]" if is_final else f"[bold]{self.title}[/bold]"
        live.update(
            Panel(
                self._build_content(is_final),
                title=title,
                border_style="green" if is_final else self.border_style,
                padding=(1, 2)
            )
        )

    def _build_content(self, is_final: bool) -> Any:
        renderables: List[Any] = []
        if self._full_text.strip():
            renderables.append(
                Markdown(self._full_text, code_theme=self.code_theme, inline_code_theme=self.inline_code_theme)
            )
        for call in self._tool_calls:
            renderables.append(Text(f"tool call: {call['tool_name']}({call['args']})", style="yellow"))
        for source in self._sources:
            renderables.append(Text(f"source: {source.get('title')} <{source.get('url')}>", style="cyan"))
        for error in self._errors:
            renderables.append(Text(f"error: {error}", style="red"))

        if not renderables:
            return Text("(waiting for response...)", style="dim italic")

        if is_final and self.show_metadata and self._final_event:
            renderables.append(_metadata_panel({
                "finish_reason": self._final_event.get("finish_reason"),
                "usage": self._final_event.get("usage"),
            }))

        return Group(*renderables)

    def get_full_text(self) -> str:
        """Get the full assembled text."""
        return self._full_text

    def get_final_event(self) -> Optional[Dict[str, Any]]:
        """Get the finish event if available."""
        return self._final_event


class RichPrinter:
    """
    Display a non-streaming ``generate`` result.
    """

    def __init__(
        self,
        title: str = "Response",
        show_metadata: bool = True,
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        border_style: str = "green",
        console: Optional[Console] = None,
    ):
        self.title = title
        self.show_metadata = show_metadata
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.border_style = border_style
        self.console = console or Console()
        self._result: Optional[Dict[str, Any]] = None

    def print_generate(self, result: Dict[str, Any]) -> Dict[str, Any]:
        """
        Print a result from ``GoogleGenerativeAILanguageModel.generate``.

        Args:
            result: The generate result dictionary.

        Returns:
            The same result dictionary for chaining
        """
        self._result = result
        self.console.print(
            Panel(
                self._build_content(result),
                title=f"[bold]{self.title}[/bold]",
                border_style=self.border_style,
                padding=(1, 2)
            )
        )
        return result

    def _build_content(self, result: Dict[str, Any]) -> Any:
        text = result.get("text") or ""
        renderables: List[Any] = []
        if text.strip():
            renderables.append(Markdown(text, code_theme=self.code_theme, inline_code_theme=self.inline_code_theme))
        for call in result.get("tool_calls") or []:
            renderables.append(Text(f"tool call: {call['tool_name']}({call['args']})", style="yellow"))
        if not renderables:
            renderables.append(Text("(empty response)", style="dim italic"))

        if self.show_metadata:
            renderables.append(_metadata_panel({
                "finish_reason": result.get("finish_reason"),
                "usage": result.get("usage"),
                "sources": result.get("sources"),
                "warnings": result.get("warnings"),
            }))

        return Group(*renderables)

    def get_text(self) -> str:
        """Get the text from the last printed result."""
        if self._result:
            return self._result.get("text") or ""
        return ""
