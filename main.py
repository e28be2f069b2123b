import asyncio
import json

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from orchestrator.agent_loop import AgentLoop
from orchestrator.agent_types import AgentEvent
from orchestrator.deep_search import create_agent_loop
from utils.logger import LoggerConfig
from utils.token_tracker import TokenTracker


def print_event(event: AgentEvent) -> None:
    """Show tool activity while the agent works; the answer is printed once at the end."""
    if event.type == "tool-call":
        try:
            arguments = json.loads(event.data.get("arguments") or "{}")
        except ValueError:
            arguments = event.data.get("arguments")
        print(f"\033[93m  -> {event.data['toolName']} {arguments}\033[0m")
    elif event.type == "tool-result" and not event.data.get("ok"):
        print(f"\033[91m  !! {event.data['toolName']}: {event.data['result'].get('error')}\033[0m")


async def chat(loop: AgentLoop, token_tracker: TokenTracker) -> None:
    conversation: list[dict] = []

    print("\n=== Deep Search ===")
    print("Type 'exit' to quit, 'stats' to see token usage, 'new' to start over, or 'help' for commands\n")

    while True:
        user_input = (await asyncio.to_thread(input, "You: ")).strip()

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit"):
            print("\nGoodbye!")
            break

        if user_input.lower() == "stats":
            print("\n=== Token Usage ===")
            print(token_tracker.format_summary())
            print(f"Last updated: {token_tracker.get_summary()['timestamp']}\n")
            continue

        if user_input.lower() == "new":
            conversation.clear()
            print("Started a new conversation.\n")
            continue

        if user_input.lower() == "help":
            print("\n=== Available Commands ===")
            print("help      - Show this help message")
            print("stats     - Show token usage statistics")
            print("new       - Forget the conversation so far")
            print("exit/quit - Exit the program\n")
            continue

        conversation.append({"role": "user", "content": user_input})
        try:
            result = await loop.run(conversation, on_event=print_event)
        except Exception as e:
            conversation.pop()
            print(f"\nError: {str(e)}")
            continue

        token_tracker.update(result)
        conversation.append({"role": "assistant", "content": result.text})
        print(f"\nAI: {result.text}")
        suffix = " (step limit reached)" if result.budget_exhausted else ""
        print(f"[Steps: {result.step_count}{suffix} | Tokens used: {result.usage.total_tokens}]\n")


async def run() -> None:
    token_tracker = TokenTracker()
    config = Config()
    if not config.validate():
        print("Configuration is incomplete; set OPENAI_API_KEY and SERPER_API_KEY in .env")
        return

    loop = create_agent_loop(config)
    print(f"Initialized agent: {config.get_model_info()}")
    try:
        await chat(loop, token_tracker)
    finally:
        await loop.engine.aclose()
        await loop.tools.aclose()
        if token_tracker.requests > 0:
            print("\n=== Final Token Usage ===")
            print(token_tracker.format_summary())


def main():
    LoggerConfig.setup_logging()
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, EOFError):
        print("\nExiting...")


if __name__ == "__main__":
    main()
