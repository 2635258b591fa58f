#!/usr/bin/env python3
"""
QuizCraft - Main Entry Point

Runs the QuizCraft question server, or plays a quiz against a running server
from the terminal.

Usage:
    python main.py serve
    python main.py list
    python main.py take [--set "Part 1.json"]

Configuration:
    Settings are read from config.json in the working directory when it
    exists; defaults are used otherwise. Sections: server {host, port},
    quiz {question_directories, session_size}, client {base_url, timeout},
    storage {results_file} and logging {level, log_directory}.

Environment Variables:
    QUIZCRAFT_HOST, QUIZCRAFT_PORT: Server bind address (override config.json)
    QUIZCRAFT_BASE_URL: Server URL used by list/take (overrides config.json)
    PING_MESSAGE: Message returned by /api/ping
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from quizcraft.config_manager import ConfigManager
from quizcraft.console import ConsoleQuiz
from quizcraft.registry import QuestionSetRegistry
from quizcraft.result_store import JsonFileBackend, ResultStore
from quizcraft.server import create_app, run_server


def load_config(config_path: Path = Path("config.json")) -> dict:
    """Load configuration from config.json, or return an empty config if it is absent."""
    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in {config_path}: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading {config_path}: {e}")
        sys.exit(1)

    if not isinstance(config, dict):
        print(f"❌ Error: {config_path} must contain a JSON object")
        sys.exit(1)
    return config


def setup_logging_from_config(config: dict) -> None:
    """Set up logging based on configuration."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))

    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "quizcraft.log", encoding='utf-8')
        ]
    )

    # Reduce aiohttp noise
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.client').setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QuizCraft question server and terminal quiz")
    parser.add_argument("--config", default="config.json", help="Path to config.json")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("serve", help="Run the question server")
    subcommands.add_parser("list", help="List question sets with the last attempt of each")
    take = subcommands.add_parser("take", help="Take a quiz in the terminal")
    take.add_argument("--set", dest="set_filename", default=None,
                      help="Question set file name; omit to go through every set in sessions")
    return parser


async def run_command(args: argparse.Namespace, config_manager: ConfigManager) -> int:
    """Run the selected command with the effective settings."""
    settings = config_manager.get_settings()

    if args.command == "serve":
        registry = QuestionSetRegistry(settings.question_directories)
        await run_server(create_app(registry), settings.host, settings.port)
        return 0

    store = ResultStore(JsonFileBackend(settings.results_file))
    quiz = ConsoleQuiz(settings, store)
    if args.command == "list":
        await quiz.list_sets()
        return 0

    await quiz.run(args.set_filename)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(Path(args.config))
    setup_logging_from_config(config)

    config_manager = ConfigManager()
    for message in config_manager.apply_config(config):
        print(message)

    return asyncio.run(run_command(args, config_manager))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n👋 QuizCraft stopped by user")
    except Exception as e:
        print(f"❌ QuizCraft failed: {e}")
        sys.exit(1)
