import pytest
from rich.console import Console

from llmfanout.rich_llm_printer import RichPrinter, RichStreamPrinter
from llmfanout.streaming import make_frame


def recording_console():
    return Console(record=True, width=100, force_terminal=False)


async def frames_from(results):
    for result in results:
        yield make_frame(result)


class TestRichPrinter:

    def test_panels_for_success_and_failure(self):
        out = recording_console()
        printer = RichPrinter(output=out)

        results = printer.print_results([
            {"ok": True, "provider": "openai", "model": "gpt-4o", "text": "**4**", "ms": 120},
            {"ok": False, "provider": "anthropic", "model": "claude-3-5-sonnet-20240620", "error": "invalid x-api-key", "ms": 80},
        ])

        text = out.export_text()
        assert len(results) == 2
        assert printer.get_results() == results
        assert "openai" in text and "gpt-4o" in text and "120 ms" in text
        assert "invalid x-api-key" in text

    def test_empty_response_placeholder(self):
        out = recording_console()
        RichPrinter(output=out).print_results([{"ok": True, "provider": "xai", "model": "grok-2", "text": "  ", "ms": 1}])
        assert "(empty response)" in out.export_text()

    def test_metadata_hidden(self):
        out = recording_console()
        RichPrinter(show_metadata=False, output=out).print_results(
            [{"ok": True, "provider": "google", "model": "gemini-1.5-pro", "text": "hi", "ms": 7}]
        )
        assert "gemini-1.5-pro" not in out.export_text()


class TestRichStreamPrinter:

    @pytest.mark.asyncio
    async def test_final_view_reports_silent_providers(self):
        printer = RichStreamPrinter(output=recording_console())

        results = await printer.print_stream(
            frames_from([
                {"ok": True, "provider": "openai", "model": "gpt-4o", "text": "", "ms": 0, "partial": True},
                {"ok": True, "provider": "openai", "model": "gpt-4o", "text": "done", "ms": 30},
                {"ok": True, "provider": "google", "model": "g", "text": "", "ms": 0, "partial": True},
            ]),
            expected=["openai", "google", "xai"],
        )

        by_name = {r["provider"]: r for r in results}
        assert by_name["openai"]["text"] == "done"
        assert by_name["google"]["error"] == "No response"
        assert by_name["xai"]["error"] == "No response"
