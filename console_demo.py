"""
Console chat against a live store, using the real pipeline and integrations.

Each line you type is one chat turn: classifier, tool dispatch, responder.
Debug metadata (intent, function calls, timings, cost) is printed dimmed.

Usage:
    python console_demo.py <store_id>
    python console_demo.py <store_id> --model openai/gpt-4o-mini
"""

import argparse
import asyncio
from typing import Optional

from storechat.api.app import build_orchestrator
from storechat.config import require_credentials, settings
from storechat.integrations.http import create_http_client
from storechat.logging_context import new_request_id, set_request_id
from storechat.pipeline.orchestrator import ChatOrchestrator, StoreNotFoundError
from storechat.schemas.conversation_schema import ChatMessage, ChatRequest, ChatResponse

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

MAX_INPUT_LENGTH = 1000


class ConsoleSession:
    """Keeps the transcript and prints each turn's reply and debug data."""

    def __init__(self, orchestrator: ChatOrchestrator, store_id: str, model: Optional[str]) -> None:
        self.orchestrator = orchestrator
        self.store_id = store_id
        self.model = model
        self.messages: list[ChatMessage] = []

    def assistant_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show(self, response: ChatResponse) -> None:
        self.assistant_say(response.text)
        if response.rich_content:
            self.system_log(f"Rich content: {response.rich_content.get('type')}")
        if response.suggestions:
            self.system_log(f"Suggestions: {' | '.join(response.suggestions)}")
        debug = response.debug
        if debug:
            self.system_log(
                f"Intent: {debug.intent.get('intent')} ({debug.intent.get('confidence')}) "
                f"-> {debug.intent.get('functionToCall')}"
            )
            for call in debug.function_calls:
                self.system_log(
                    f"Call: {call.name}({call.arguments}) success={call.result.get('success')} "
                    f"in {call.duration_ms:.0f}ms"
                )
            self.system_log(f"Timings: {debug.timings} Cost: ${debug.cost.get('total', 0):.6f}")

    async def turn(self, text: str) -> None:
        set_request_id(new_request_id())
        self.messages.append(ChatMessage(role="user", content=text))
        request = ChatRequest(messages=self.messages, storeId=self.store_id, model=self.model)
        response = await self.orchestrator.handle_chat(request)
        self.messages.append(ChatMessage(role="assistant", content=response.text))
        self.show(response)

    async def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  STORE CHAT - Console{RESET}")
        print(f"{BOLD}  Store: {self.store_id}{RESET}")
        print(f"{BOLD}  Type 'quit' to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[You] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > MAX_INPUT_LENGTH:
                self.assistant_say("That was quite long. Could you keep it brief for me?")
                continue
            try:
                await self.turn(user_input)
            except StoreNotFoundError:
                print(f"{RED}Store '{self.store_id}' does not exist.{RESET}")
                return


async def run_console(store_id: str, model: Optional[str] = None) -> None:
    require_credentials(settings)
    async with create_http_client(settings.external_timeout_sec) as client:
        session = ConsoleSession(build_orchestrator(settings, client), store_id, model)
        await session.run()


def main() -> None:
    parser = argparse.ArgumentParser(description="Console chat against a store")
    parser.add_argument("store_id", help="Store to chat with")
    parser.add_argument("--model", default=None, help="Override the configured LLM model")
    args = parser.parse_args()
    asyncio.run(run_console(args.store_id, args.model))


if __name__ == "__main__":
    main()
