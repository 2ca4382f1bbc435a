"""Main entry point for the Memora CLI.

Handles provider selection, store and tool setup, and the interactive loop.
"""

import argparse
import asyncio
import sys

import yaml

from .clients.factory import create_client, create_embedding_client, get_available_providers
from .config import Settings, get_settings
from .exceptions import (
    AuthenticationError,
    ClientError,
    MemoraError,
    ProviderUnavailableError,
    RateLimitError,
    StorageError,
)
from .logging import get_logger, setup_logging
from .sessions import SessionManager
from .storage.database import Database, get_database
from .tools import create_default_registry

logger = get_logger(__name__)


def load_yaml_config(path: str = "config.yaml") -> dict:
    """Load configuration from config.yaml if it exists."""
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}


def get_provider_and_model(
    args: argparse.Namespace,
    yaml_config: dict,
    settings: Settings,
) -> tuple[str | None, str | None]:
    """Determine the provider and model to use.

    Priority order:
    1. CLI arguments
    2. Config file (config.yaml)
    3. Environment variables (via pydantic settings)
    4. Auto-detection based on available API keys
    """
    llm_config = yaml_config.get("llm", {})

    provider = args.provider or llm_config.get("provider") or settings.detect_provider()
    model = args.model or llm_config.get("model") or settings.llm_model

    return provider, model


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Memora: an assistant that remembers")
    parser.add_argument(
        "--provider",
        choices=get_available_providers(),
        help="LLM provider to use (overrides config and auto-detection)",
    )
    parser.add_argument(
        "--model",
        help="LLM model to use (overrides config)",
    )
    parser.add_argument(
        "--session",
        help="Session id to resume (a new session is started if omitted)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        help="Model calls allowed per message (default: 10)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (also settable via MEMORA_LOG_LEVEL env var)",
    )
    return parser


def _print_status(status: str) -> None:
    print(f"  [{status}]")


async def _show_sessions(manager: SessionManager) -> None:
    sessions = await manager.list_sessions()
    if not sessions:
        print("No saved sessions.")
        return
    for session in sessions:
        print(f"  {session.id}  {session.title or '(untitled)'}  updated {session.updated_at}")


async def _show_memories(database: Database) -> None:
    facts = await database.list_memories()
    if not facts:
        print("Memory is empty.")
        return
    for fact in facts:
        print(f"  [{fact.key}] {fact.content}")


async def run_repl(manager: SessionManager, session_id: str | None = None) -> None:
    """Run the interactive REPL loop.

    Args:
        manager: Opens the session and provides store access.
        session_id: Session to resume, or None for a new one.
    """
    session, agent = await manager.open_session(session_id)
    agent.on_status = _print_status

    print(f"Memora ready (session {session.id}). Type 'exit' to quit.")
    print("Commands: /clear, /sessions, /memories")
    print("-" * 50)

    while True:
        try:
            user_input = await asyncio.to_thread(input, "You: ")
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        command = user_input.strip().lower()
        if command in ("exit", "quit"):
            print("Goodbye!")
            break
        if not command:
            continue
        if command == "/clear":
            agent.clear_history()
            print("Conversation cleared (stored messages are kept).")
            continue
        if command == "/sessions":
            await _show_sessions(manager)
            continue
        if command == "/memories":
            await _show_memories(manager.database)
            continue

        try:
            answer = await agent.process(user_input)
        except AuthenticationError as e:
            print(f"Authentication error: {e}")
            print("Something went wrong, please check your credentials.")
            continue
        except RateLimitError as e:
            print(f"Rate limit exceeded: {e}")
            print("Please wait a moment and try again.")
            continue
        except ProviderUnavailableError as e:
            print(f"Provider unavailable: {e}")
            print("Please try again later.")
            continue
        except ClientError as e:
            print(f"Something went wrong, please check your credentials: {e}")
            continue
        except StorageError as e:
            print(f"Storage error: {e}")
            continue

        if answer:
            print(f"Memora: {answer}")
        else:
            print("Memora: (no answer within the iteration limit)")


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    yaml_config = load_yaml_config()
    provider, model = get_provider_and_model(args, yaml_config, settings)

    if not provider:
        print("Error: No LLM provider specified and no API keys found.")
        print("Please set one of the following:")
        print("  - LLM_PROVIDER environment variable")
        print("  - provider in config.yaml")
        print("  - OPENAI_API_KEY or ANTHROPIC_API_KEY")
        return 1

    if args.max_iterations is not None:
        settings = settings.model_copy(update={"max_iterations": max(1, args.max_iterations)})

    print(f"Using provider: {provider}")
    if model:
        print(f"Using model: {model}")

    llm_config = yaml_config.get("llm", {})
    client_config = {k: v for k, v in llm_config.items() if k not in ["provider", "model"]}

    try:
        client = create_client(
            provider,
            model,
            client_config,
            api_key=settings.get_api_key_for_provider(provider),
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    embedder = None
    if settings.openai_api_key:
        embedder = create_embedding_client(
            "openai",
            settings.embedding_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    else:
        logger.warning("OPENAI_API_KEY not set: semantic memory search is disabled")

    database = get_database()
    registry = create_default_registry(database, embedder, settings)
    manager = SessionManager(client, database, registry, embedder, settings)

    try:
        await database.init()
        await run_repl(manager, args.session)
    except MemoraError as e:
        print(f"Error: {e}")
        return 1
    finally:
        await database.close()
    return 0


def main() -> None:
    """Main entry point for the Memora CLI."""
    args = build_parser().parse_args()

    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
