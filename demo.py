"""
Fan one prompt out to every provider that has a key in .env.

    python demo.py "What is the capital of France?"
    python demo.py --stream "Explain asyncio in one paragraph."
"""
import asyncio
import sys

import dotenv

from llmfanout import (
    ConfigurationError, Dispatcher, RichPrinter, RichStreamPrinter, StreamingRelay,
    configure_logging, load_settings,
)

ENV_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
    "xai": "XAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


async def main(prompt: str, stream: bool):
    settings = load_settings()
    configure_logging(settings.log_level)
    dispatcher = Dispatcher(settings=settings)

    providers = {}
    for name, env_key in ENV_KEYS.items():
        api_key = dotenv.get_key(".env", env_key)
        if api_key:
            providers[name] = {"apiKey": api_key}

    messages = [
        {"role": "system", "content": "You are a concise assistant."},
        {"role": "user", "content": prompt},
    ]

    if not providers:
        raise ConfigurationError("No provider keys found in .env")

    if stream:
        frames = StreamingRelay(dispatcher).open(messages, providers)
        await RichStreamPrinter().print_stream(frames, expected=providers)
    else:
        results = await dispatcher.dispatch(messages, providers)
        RichPrinter().print_results(results)


if __name__ == "__main__":
    args = sys.argv[1:]
    use_stream = "--stream" in args
    args = [a for a in args if a != "--stream"]
    asyncio.run(main(" ".join(args) or "introduce yourself in one sentence using markdown syntax.", use_stream))
