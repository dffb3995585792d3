"""Static configuration for switchboard.

Non-secret settings (knowledge location, reply format, logging) live in a
single JSON file for quick edits without touching Python. Credentials and
deployment values come from the environment (.env supported).
"""

import json
import os

from dotenv import load_dotenv

from core.config import parse_id_list

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

load_dotenv()


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Knowledge rules are read from a YAML tree. PROMPT_PATH wins over config.json
# so container deployments can mount the tree anywhere.
_knowledge = _CONFIG.get("knowledge", {})
KNOWLEDGE_PATH = _resolve_path(os.getenv("PROMPT_PATH") or _knowledge.get("path", "knowledge_prompts"))
KNOWLEDGE_EXTENSIONS = tuple(_knowledge.get("extensions", [".yaml", ".yml"]))

# Comma-separated sender ids allowed to run restricted commands. Empty means
# no restriction.
ALLOWED_USERS = parse_id_list(os.getenv("ALLOWED_USERS", ""))

# Reply formatting used by the Telegram replier: "markdown" or "html".
_replies = _CONFIG.get("replies", {})
REPLY_FORMAT = _replies.get("format", "markdown")

# Issue tracker settings. Test mode avoids filing real issues while developing.
_commands = _CONFIG.get("commands", {})
JIRA_PROJECT = _commands.get("jira_project", "SPLAT")
JIRA_BASE_URL = os.getenv("JIRA_BASE_URL", "")
JIRA_TOKEN = os.getenv("JIRA_PERSONAL_ACCESS_TOKEN", "")
JIRA_TEST_MODE_ENABLED = _env_flag("JIRA_TEST_MODE_ENABLED")

# Language model used by the thread summary command.
_llm = _CONFIG.get("llm", {})
OLLAMA_ENDPOINT = os.getenv("OLLAMA_ENDPOINT", "")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL") or _llm.get("model", "llama2")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
