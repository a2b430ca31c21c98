# src/main.py v2
"""CLI entry point: complete, vision, chat, compare commands.

Usage:
    secureproxy complete "<prompt>" [--model MODEL]
    secureproxy vision "<prompt>" <image-url-or-file> [--model MODEL]
    secureproxy chat [--system PROMPT]
    secureproxy compare "<prompt>" -m gpt-4o -m claude-3-5-sonnet-20241022

Credentials come from SECUREPROXY_PROXY_KEY / SECUREPROXY_SECRET_KEY (or .env).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from pydantic import ValidationError

from secureproxy.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from secureproxy.config.settings import ConfigurationError, load_settings
    from secureproxy.llm.errors import InvalidProxyKey, SecureProxyError

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    _setup_logging(args.verbose, settings)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except InvalidProxyKey as exc:
        print(f"{exc}. Set SECUREPROXY_PROXY_KEY.", file=sys.stderr)
        return EXIT_CONFIG
    except SecureProxyError as exc:
        print(f"Error ({exc.kind}): {exc}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="secureproxy",
        description=f"secureproxy v{__version__}: chat with LLMs through SecureProxy",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- complete ---
    p_complete = subparsers.add_parser("complete", help="Single prompt completion")
    p_complete.add_argument("prompt", help="Prompt text")
    p_complete.add_argument("--model", default=None, help="Model id (default from settings)")
    p_complete.add_argument("--max-tokens", type=int, default=None)
    p_complete.add_argument("--temperature", type=float, default=None)
    p_complete.set_defaults(func=_cmd_complete)

    # --- vision ---
    p_vision = subparsers.add_parser("vision", help="Ask a question about an image")
    p_vision.add_argument("prompt", help="Prompt text")
    p_vision.add_argument("image", help="Image URL or local file path")
    p_vision.add_argument("--model", default=None, help="Model id (default from settings)")
    p_vision.set_defaults(func=_cmd_vision)

    # --- chat ---
    p_chat = subparsers.add_parser("chat", help="Interactive multi-turn chat")
    p_chat.add_argument("--model", default=None, help="Model id (default from settings)")
    p_chat.add_argument("--system", default=None, help="System prompt")
    p_chat.set_defaults(func=_cmd_chat)

    # --- compare ---
    p_compare = subparsers.add_parser("compare", help="Compare models on one prompt")
    p_compare.add_argument("prompt", help="Prompt text")
    p_compare.add_argument(
        "-m", "--model", dest="models", action="append", required=True,
        help="Model id (repeatable)",
    )
    p_compare.set_defaults(func=_cmd_compare)

    return parser


async def _run(args: argparse.Namespace, settings) -> int:  # type: ignore[no-untyped-def]
    from secureproxy.client.proxy_client import SecureProxyClient

    async with SecureProxyClient.from_settings(settings) as client:
        model = getattr(args, "model", None) or settings.default_model
        return await args.func(args, client, model)


async def _cmd_complete(args: argparse.Namespace, client, model: str) -> int:  # type: ignore[no-untyped-def]
    from secureproxy.llm.errors import retry_on_token_expired
    from secureproxy.llm.models import Message

    if args.max_tokens is None and args.temperature is None:
        text = await retry_on_token_expired(client.complete, args.prompt, model=model)
    else:
        response = await retry_on_token_expired(
            client.chat_completion,
            model,
            [Message.text("user", args.prompt)],
            max_tokens=args.max_tokens,
            temperature=args.temperature,
        )
        text = response.first_text or ""
    print(text)
    return EXIT_OK


async def _cmd_vision(args: argparse.Namespace, client, model: str) -> int:  # type: ignore[no-untyped-def]
    from secureproxy.llm.errors import retry_on_token_expired

    image_ref = _resolve_image_ref(args.image)
    text = await retry_on_token_expired(client.vision, args.prompt, image_ref, model=model)
    print(text)
    return EXIT_OK


async def _cmd_chat(args: argparse.Namespace, client, model: str) -> int:  # type: ignore[no-untyped-def]
    from secureproxy.session.conversation import ConversationSession

    session = ConversationSession(
        client, system_prompt=args.system, retry_on_token_expired=True,
    )
    print(f"Chatting with {model}. /clear resets, /quit or Ctrl-D exits.")
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            print()
            return EXIT_OK

        line = line.strip()
        if not line:
            continue
        if line in ("/quit", "/exit"):
            return EXIT_OK
        if line == "/clear":
            session.clear_conversation()
            print("(conversation cleared)")
            continue

        reply = await session.send_message(line, model=model)
        if reply is None and session.last_error is not None:
            print(f"[{session.last_error.kind}] {session.last_error}", file=sys.stderr)
            session.clear_error()
        else:
            print(reply)


async def _cmd_compare(args: argparse.Namespace, client, model: str) -> int:  # type: ignore[no-untyped-def]
    from secureproxy.session.comparison import compare_models

    results = await compare_models(client, args.prompt, args.models)
    for r in results:
        print(f"=== {r.model} ({r.latency_ms} ms)")
        print(r.text if r.ok else f"Error: {r.error}")
        print()
    return EXIT_OK if all(r.ok for r in results) else EXIT_ERROR


def _resolve_image_ref(value: str) -> str:
    """Pass URLs through; inline local files as data URLs."""
    from secureproxy.llm.models import ImagePart

    if value.startswith(("http://", "https://", "data:")):
        return value
    path = Path(value).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {value}")
    media_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    return ImagePart.from_bytes(path.read_bytes(), media_type).url


def _setup_logging(verbose: bool, settings) -> None:  # type: ignore[no-untyped-def]
    """Configure logging for CLI usage."""
    from secureproxy.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        secrets=[s for s in (settings.proxy_key, settings.secret_key) if s],
    )


if __name__ == "__main__":
    sys.exit(main())
