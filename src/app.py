"""Application entry point for the switchboard bot."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from art import tprint
from telethon import events

import settings
from adapters.jira_client import DryRunIssueTracker, JiraClient
from adapters.knowledge_loader import register_knowledge
from adapters.ollama_client import OllamaClient
from adapters.telegram_mapper import ChannelResolver, build_message
from adapters.telegram_replier import TelegramReplier, TelegramThreadReader
from client import connect_bot
from commands import register_builtin_commands
from core.config import DispatchConfig, KnowledgeConfig
from core.dispatcher import Dispatcher, check_examples
from core.ports import CommandContext, IssueTrackerPort, LanguageModelPort
from core.rules import RuleRegistry
from logs import setup_logging

NAME = "SWITCHBOARD"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging(level_override: Optional[str] = None) -> None:
    setup_logging(settings.LOGGING, settings.PROJECT_ROOT, level_override)


def _build_registry() -> RuleRegistry:
    # Commands first: registration order decides which rule wins.
    registry = RuleRegistry()
    commands = register_builtin_commands(registry)
    knowledge = register_knowledge(
        registry,
        KnowledgeConfig(root=settings.KNOWLEDGE_PATH, extensions=settings.KNOWLEDGE_EXTENSIONS),
    )
    logging.getLogger(__name__).info("%s commands and %s knowledge rules are loaded", commands, knowledge)
    return registry


def _build_issue_tracker() -> Optional[IssueTrackerPort]:
    if settings.JIRA_TEST_MODE_ENABLED:
        return DryRunIssueTracker()
    if not settings.JIRA_BASE_URL or not settings.JIRA_TOKEN:
        logging.getLogger(__name__).info("Jira is not configured; jira commands will report an error")
        return None
    return JiraClient(settings.JIRA_BASE_URL, settings.JIRA_TOKEN)


def _build_language_model() -> Optional[LanguageModelPort]:
    if not settings.OLLAMA_ENDPOINT:
        logging.getLogger(__name__).info("OLLAMA_ENDPOINT is not set; thread summaries are disabled")
        return None
    return OllamaClient(settings.OLLAMA_ENDPOINT, settings.OLLAMA_MODEL)


def _run(log_level: Optional[str]) -> None:
    _print_banner()
    _configure_logging(log_level)
    logger = logging.getLogger(__name__)

    logger.info("Starting switchboard")
    registry = _build_registry()

    client, bot_mention = connect_bot()

    context = CommandContext(
        registry=registry,
        bot_mention=bot_mention,
        issue_tracker=_build_issue_tracker(),
        language_model=_build_language_model(),
        thread_reader=TelegramThreadReader(client),
        jira_project=settings.JIRA_PROJECT,
    )
    if not settings.ALLOWED_USERS:
        logger.info(
            "Disabling user enforcement. Configure ALLOWED_USERS to restrict commands to known users."
        )
    dispatcher = Dispatcher(
        registry=registry,
        replier=TelegramReplier(client, settings.REPLY_FORMAT),
        config=DispatchConfig(allowed_users=settings.ALLOWED_USERS, bot_mention=bot_mention),
        context=context,
    )
    channel_resolver = ChannelResolver(client)

    # Single handler keeps Telethon integration minimal and defers all matching
    # to the dispatcher for consistency and testability.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            sender = await event.get_sender()
            message = await build_message(event.message, channel_resolver, sender)
            await dispatcher.handle(message)
        except Exception:
            logger.exception("Error while processing message")

    logger.info("Client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def _check(log_level: Optional[str]) -> int:
    _configure_logging(log_level or "WARNING")
    registry = _build_registry()
    failures = check_examples(registry, bot_mention="@switchboard")
    for failure in failures:
        print(f"FAIL {failure}")
    print(f"{len(registry)} rules checked, {len(failures)} example(s) failed")
    return 1 if failures else 0


def _tester(log_level: Optional[str]) -> None:
    _print_banner()
    _configure_logging(log_level or "WARNING")
    from frontend.app import RuleTesterApp

    RuleTesterApp(_build_registry(), bot_mention="@switchboard", allowed_users=settings.ALLOWED_USERS).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="switchboard")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (debug, info, warning, error); overrides config.json",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("check", help="Verify every rule against its example messages")
    subparsers.add_parser("tester", help="Launch the rule tester TUI")

    args = parser.parse_args(argv)
    if args.command == "check":
        sys.exit(_check(args.log_level))
    if args.command == "tester":
        _tester(args.log_level)
        return
    _run(args.log_level)


if __name__ == "__main__":
    main()
