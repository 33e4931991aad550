"""Terminal entry point.

Runs an interactive chat against the Ollama server named by OLLAMA_HOST.
Environment variables are loaded from .env file.
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

from knot.client import ChatSession, ClientConfig, KnotError, OllamaClient, get_client_config  # noqa: E402
from knot.models import Attachment, UpdateEvent  # noqa: E402

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /models         list local models
  /model NAME     switch model
  /attach PATH    attach a file to the next message
  /pull NAME      download a model
  /delete NAME    delete a local model
  /history        show the conversation
  /clear          start a new conversation
  /quit           exit"""


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


async def _pick_model(client: OllamaClient, config: ClientConfig) -> str | None:
    if config.default_model:
        return config.default_model
    models = await client.list_models()
    return models[0].name if models else None


async def _stream_reply(session: ChatSession, text: str, model: str) -> None:
    async with session.send_message(text, model) as turn:
        async for event in turn:
            if isinstance(event, UpdateEvent):
                print(event.content, end="", flush=True)
            elif event.implicit:
                print("\n[stream ended without a completion record]", flush=True)
    print()


async def _pull(client: OllamaClient, name: str) -> None:
    last_status = None
    async for record in client.pull_model(name):
        if record.percent is not None:
            print(f"\r{record.status}: {record.percent:5.1f}%", end="", flush=True)
        elif record.status != last_status:
            print(f"\n{record.status}", end="", flush=True)
        last_status = record.status
    print()


async def _handle_command(line: str, session: ChatSession, model: str | None) -> tuple[bool, str | None]:
    """Run one slash command. Returns (keep_running, model)."""
    command, _, argument = line.partition(" ")
    argument = argument.strip()
    client = session.client

    if command == "/quit":
        return False, model
    if command == "/models":
        for info in await client.list_models():
            marker = "*" if info.name == model else " "
            print(f"{marker} {info.name}")
    elif command == "/model" and argument:
        model = argument
        print(f"Using {model}")
    elif command == "/attach" and argument:
        try:
            attachment = Attachment.from_path(argument)
        except OSError as e:
            print(f"Cannot read {argument}: {e}")
        else:
            session.set_attachment(attachment)
            note = "" if attachment.is_image else " (not an image, will not be sent to the model)"
            print(f"Attached {attachment.name}{note}")
    elif command == "/pull" and argument:
        await _pull(client, argument)
    elif command == "/delete" and argument:
        await client.delete_model(argument)
        print(f"Deleted {argument}")
    elif command == "/history":
        for message in session.history:
            images = f" [+{len(message.images)} image]" if message.images else ""
            print(f"{message.role}: {message.content}{images}")
    elif command == "/clear":
        session.clear_chat()
        print("Started a new conversation")
    else:
        print(HELP_TEXT)
    return True, model


async def run_chat(config: ClientConfig | None = None) -> None:
    """Interactive read-send-print loop until /quit or end of input."""
    config = config or get_client_config()

    async with OllamaClient(config) as client:
        session = ChatSession(client)
        try:
            model = await _pick_model(client, config)
        except KnotError as e:
            print(f"Error: {e}")
            model = None

        print(f"Connected to {config.host}. Model: {model or '(none, use /model NAME)'}")
        print("Type /help for commands.")

        running = True
        while running:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break

            line = line.strip()
            try:
                if line.startswith("/"):
                    running, model = await _handle_command(line, session, model)
                elif line or session.attachment is not None:
                    await _stream_reply(session, line, model or "")
            except KnotError as e:
                print(f"\nError: {e}")


def main() -> None:
    """Application entry point."""
    configure_logging()
    logger.info("Starting knot")
    try:
        asyncio.run(run_chat())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
