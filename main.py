from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import List, Optional

from dotenv import load_dotenv

from chatrouter.config import AppConfig, load_app_config
from chatrouter.core.catalog import AUTO_MODES, get_model_short_name, provider_for
from chatrouter.core.router import ResponseRouter
from chatrouter.models.base import CancellationError, GenerationResult, Message, ProviderError

# Seconds to wait for a cancelled request to wind down after Ctrl+C.
CANCEL_GRACE_SECONDS = 5.0


# --------------------------------------------------------------------------------------
# Terminal output
# --------------------------------------------------------------------------------------


class StreamPrinter:
    """
    Writes streamed text to stdout.

    A terminal cannot take back text that was already printed, so a
    reset after partial output is shown as a marker line instead.
    """

    def __init__(self) -> None:
        self.printed = False

    def on_chunk(self, text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()
        self.printed = True

    def on_reset_content(self) -> None:
        if self.printed:
            sys.stdout.write("\n[previous attempt discarded, retrying]\n")
            sys.stdout.flush()
            self.printed = False


def run_request(
    router: ResponseRouter, messages: List[Message], model: str
) -> Optional[GenerationResult]:
    """
    Generate one response in a worker thread so that Ctrl+C can cancel it.

    Returns None when the request failed or was cancelled.
    """
    cancel = threading.Event()
    printer = StreamPrinter()
    outcome: dict = {}

    def worker() -> None:
        try:
            outcome["result"] = router.generate(
                messages,
                model,
                on_chunk=printer.on_chunk,
                on_reset_content=printer.on_reset_content,
                signal=cancel,
            )
        except Exception as exc:  # reported by the main thread
            outcome["error"] = exc

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    try:
        while thread.is_alive():
            thread.join(0.1)
    except KeyboardInterrupt:
        cancel.set()
        thread.join(CANCEL_GRACE_SECONDS)

    print()
    error = outcome.get("error")
    if isinstance(error, CancellationError):
        print("[request cancelled]", file=sys.stderr)
        return None
    if isinstance(error, ProviderError):
        print(f"[error] {error}", file=sys.stderr)
        return None
    if error is not None:
        raise error

    result: Optional[GenerationResult] = outcome.get("result")
    if result is None:
        print("[request did not stop in time]", file=sys.stderr)
        return None
    for image in result.images:
        print(f"[image: {len(image)} chars of data-URI]")
    if result.truncated:
        print("[response was cut short]", file=sys.stderr)
    return result


# --------------------------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------------------------


def interactive_chat(router: ResponseRouter, model: str) -> None:
    """
    Simple terminal chat loop.

    The conversation history is sent with every request. The session
    keeps running until the user types /exit or /quit, or presses
    Ctrl+C at the prompt.
    """
    history: List[Message] = []

    print("\n[Interactive chat started]")
    print(f"Model: {get_model_short_name(model)} ({provider_for(model)})")
    print("Type /exit to end the session. Ctrl+C cancels a running answer.\n")

    while True:
        try:
            user_input = input("You> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n[Session ended]")
            break

        if not user_input:
            continue
        if user_input.lower() in {"/exit", "/quit"}:
            print("Bye 👋")
            break

        history.append(Message(role="user", content=user_input))
        sys.stdout.write("Assistant> ")
        result = run_request(router, history, model)
        if result is None:
            # Keep user/assistant alternation intact for the next turn.
            history.pop()
            continue
        history.append(
            Message(role="assistant", content=result.text, images=tuple(result.images), model=model)
        )


def list_models(config: AppConfig) -> None:
    print("Auto modes:")
    for key, mode in AUTO_MODES.items():
        print(f"  {key:<20} {mode.label} · {mode.description}")
    print("Google:")
    for name in config.google_models:
        print(f"  {name}")
    print("OpenRouter:")
    for name in config.openrouter_models:
        print(f"  {name}")
    print("SambaNova:")
    for name in config.samba_models:
        print(f"  {name}")


# --------------------------------------------------------------------------------------
# CLI
# --------------------------------------------------------------------------------------


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Chat with Gemini, OpenRouter and SambaNova models, with key rotation and auto-fallback."
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to config.yaml file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print routing and fallback log messages to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Single question.")
    ask_parser.add_argument(
        "--model",
        default="auto-gemini-flash",
        help="Model id or auto mode (e.g., auto-gemini-flash, auto-search, gemini-2.5-pro).",
    )
    ask_parser.add_argument("question", help="User question to send to the model.")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat session.")
    chat_parser.add_argument(
        "--model",
        default="auto-gemini-flash",
        help="Model id or auto mode (e.g., auto-gemini-flash, auto-search, gemini-2.5-pro).",
    )

    subparsers.add_parser("models", help="List auto modes and configured models.")

    return parser.parse_args(argv)


def main() -> None:
    # Load environment variables from .env (if present)
    load_dotenv()

    args = parse_args(sys.argv[1:])

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    config = load_app_config(args.config)

    if args.command == "models":
        list_models(config)
        return

    router = ResponseRouter(config)

    if args.command == "chat":
        interactive_chat(router, args.model)
        return

    if args.command == "ask":
        result = run_request(router, [Message(role="user", content=args.question)], args.model)
        if result is None:
            raise SystemExit(1)
        return

    # Should never reach here
    raise SystemExit(f"Unknown command: {args.command!r}")


if __name__ == "__main__":
    main()
