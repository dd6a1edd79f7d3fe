"""
Rich printers for displaying fan-out results in the terminal.
"""
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from .streaming import StreamCollector
from .types import DispatchResult

console = Console()


class RichPrinter:
    """
    A class for displaying a batched result set using rich.

    Designed to work with the output of ``Dispatcher.dispatch``: one panel
    per provider, green for successes and red for failures.

    Attributes:
        show_metadata: Whether to show model and latency in the title
        code_theme: Theme for code blocks
        inline_code_theme: Theme for inline code
    """

    def __init__(
        self,
        show_metadata: bool = True,
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        output: Optional[Console] = None,
    ):
        self.show_metadata = show_metadata
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.console = output if output is not None else console
        self._results: List[DispatchResult] = []

    def print_results(self, results: Iterable[DispatchResult]) -> List[DispatchResult]:
        """
        Display every result as its own panel.

        Returns:
            The same results as a list for chaining
        """
        self._results = list(results)
        for result in self._results:
            self.console.print(self.build_panel(result))
        return self._results

    def build_panel(self, result: DispatchResult, waiting: bool = False) -> Panel:
        """Build the panel for one provider's result."""
        if waiting:
            border = "blue"
        else:
            border = "green" if result.get("ok") else "red"
        return Panel(
            self._build_content(result, waiting),
            title=self._build_title(result),
            border_style=border,
            padding=(1, 2),
        )

    def _build_title(self, result: DispatchResult) -> str:
        title_parts = [f"[bold]{result.get('provider', '?')}[/bold]"]
        if self.show_metadata:
            if result.get("model"):
                title_parts.append(f"[dim]{result['model']}[/dim]")
            if not result.get("partial"):
                title_parts.append(f"[dim]{result.get('ms', 0)} ms[/dim]")
        return " ".join(title_parts)

    def _build_content(self, result: DispatchResult, waiting: bool) -> Any:
        if waiting:
            return Text("(waiting for response...)", style="dim italic")
        if not result.get("ok"):
            return Text(result.get("error") or "Unknown error", style="red")

        text = result.get("text", "")
        if not text.strip():
            return Text("(empty response)", style="dim italic")
        return Markdown(text, code_theme=self.code_theme, inline_code_theme=self.inline_code_theme)

    def get_results(self) -> List[DispatchResult]:
        """Get the last printed results."""
        return self._results


class RichStreamPrinter(RichPrinter):
    """
    Live display of a frame stream from ``StreamingRelay``.

    Partial frames show a waiting panel that is replaced once the
    provider's terminal frame arrives.
    """

    def __init__(self, refresh_rate: int = 10, **kwargs):
        super().__init__(**kwargs)
        self.refresh_rate = refresh_rate
        self._collector = StreamCollector()

    async def print_stream(
        self,
        frames: AsyncIterator[Dict[str, Any]],
        expected: Iterable[str] = (),
    ) -> List[DispatchResult]:
        """
        Consume frames and keep the display current.

        Args:
            frames: Async iterator of ``{"type": "result", ...}`` frames
            expected: Provider ids that were enabled, for "No response" reporting

        Returns:
            The final result list
        """
        self._collector = StreamCollector()
        expected = list(expected)

        with Live(Group(), refresh_per_second=self.refresh_rate, console=self.console) as live:
            async for frame in frames:
                self._collector.add(frame)
                live.update(self._render())
            self._results = self._collector.results(expected)
            live.update(Group(*(self.build_panel(r) for r in self._results)))

        return self._results

    def _render(self) -> Group:
        panels = []
        for result in self._collector.results():
            latest = self._collector.latest(result["provider"]) or result
            panels.append(self.build_panel(latest, waiting=bool(latest.get("partial"))))
        return Group(*panels)
