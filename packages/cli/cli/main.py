"""Interactive command-line tutor backed by the provider router."""

import asyncio
import logging
import os
import time
from pathlib import Path

from dotenv import load_dotenv  # type: ignore

from gateway.config_store import ProviderConfigStore # type: ignore
from gateway.errors import NotConfiguredError, QuotaExceededError, UpstreamError # type: ignore
from gateway.models import ( # type: ignore
    ChatMessage,
    DirectKeyConfig,
    ProviderConfig,
    ProxiedWorkerConfig,
    TrialConfig,
)
from gateway.prompts import ( # type: ignore
    EXERCISE_MAX_TOKENS,
    HINT_MAX_TOKENS,
    LESSON_MAX_TOKENS,
    REVIEW_MAX_TOKENS,
    build_code_review_prompt,
    build_exercise_prompt,
    build_hint_prompt,
    build_lesson_prompt,
    get_system_prompt,
)
from gateway.ProviderRouter import ProviderRouter # type: ignore
from gateway.settings import GatewaySettings # type: ignore

HELP_TEXT = (
    "Commands:\n"
    "  :quota                       show free trial requests left\n"
    "  :lesson <phase> <topic>      generate a lesson\n"
    "  :exercise <level> <concept>  generate an easy, medium or hard exercise\n"
    "  :hint <exercise>             ask for a hint on the last code you reviewed\n"
    "  :review <file>               review a Python file\n"
    "  :provider <name>             switch to direct-key, trial or worker\n"
    "  quit / exit                  leave"
)


def config_from_env(provider: str, settings: GatewaySettings) -> ProviderConfig:
    """Build a provider config by name, taking credentials from settings.

    Raises:
        ValueError: If ``provider`` is not a known provider name.
    """
    if provider == "direct-key":
        return DirectKeyConfig(secret_key=settings.anthropic_api_key or "")
    if provider == "trial":
        return TrialConfig()
    if provider == "worker":
        return ProxiedWorkerConfig(
            endpoint_url=settings.worker_url,
            worker_api_key=settings.worker_api_key,
        )
    raise ValueError(f"Unknown provider: {provider!r}")


def describe_error(error: Exception) -> str:
    """Turn a gateway failure into a message for the learner."""
    if isinstance(error, NotConfiguredError):
        return (
            "No AI provider is configured. Use ':provider trial' for the free "
            "trial, or set ANTHROPIC_API_KEY and use ':provider direct-key'."
        )
    if isinstance(error, QuotaExceededError):
        return (
            f"{error}\nTip: add your own Anthropic key with "
            "':provider direct-key' to keep going."
        )
    if isinstance(error, UpstreamError):
        return f"AI service error ({error.status}): {error.body}"
    return f"Error: {error}"


class TutorSession:
    """A conversation with the tutor, seeded with the system prompt."""

    def __init__(self, router: ProviderRouter) -> None:
        self.router = router
        self.messages: list[ChatMessage] = [
            ChatMessage(role="system", content=get_system_prompt())
        ]
        self.last_code: str | None = None
        self.hint_attempts = 0
        self.completed_lessons: list[str] = []

    async def ask(self, text: str, max_tokens: int | None = None) -> str:
        """Send a user turn and record the reply.

        A failed turn is removed again so the history stays alternating.
        """
        self.messages.append(ChatMessage(role="user", content=text))
        try:
            reply = await self.router.chat(self.messages, max_tokens=max_tokens)
        except Exception:
            self.messages.pop()
            raise
        self.messages.append(ChatMessage(role="assistant", content=reply))
        return reply


def build_turn(session: TutorSession, line: str) -> tuple[str, int | None]:
    """Turn a REPL line into a prompt and its reply budget.

    Plain text is sent as-is with the provider's default budget.

    Raises:
        ValueError: If a command's arguments are malformed.
        OSError: If ``:review`` cannot read its file.
    """
    command, _, argument = line.partition(" ")
    argument = argument.strip()

    if command == ":lesson":
        phase, _, topic = argument.partition(" ")
        if not phase.isdigit() or not topic.strip():
            raise ValueError("Usage: :lesson <phase> <topic>")
        prompt = build_lesson_prompt(
            int(phase), topic.strip(), completed_lessons=session.completed_lessons
        )
        return prompt, LESSON_MAX_TOKENS
    if command == ":exercise":
        difficulty, _, concept = argument.partition(" ")
        if not concept.strip():
            raise ValueError("Usage: :exercise <easy|medium|hard> <concept>")
        return build_exercise_prompt(concept.strip(), difficulty), EXERCISE_MAX_TOKENS
    if command == ":review":
        path = Path(argument)
        session.last_code = path.read_text(encoding="utf-8")
        session.hint_attempts = 0
        return build_code_review_prompt(session.last_code, path.name), REVIEW_MAX_TOKENS
    if command == ":hint":
        session.hint_attempts += 1
        prompt = build_hint_prompt(argument, session.last_code or "", session.hint_attempts)
        return prompt, HINT_MAX_TOKENS
    return line, None


def quota_line(router: ProviderRouter) -> str:
    status = router.get_quota_status()
    if status.remaining is None:
        return "Quota applies only to the free trial provider."
    countdown = status.time_until_reset(int(time.time() * 1000))
    line = f"Free trial: {status.remaining} requests remaining"
    if countdown:
        line += f" (resets in {countdown})"
    return line


def initial_config(store: ProviderConfigStore, settings: GatewaySettings) -> ProviderConfig:
    """The saved provider, else ``AI_PROVIDER``, else the free trial."""
    config = store.load()
    if config is not None:
        return config
    provider = os.environ.get("AI_PROVIDER", "trial")
    try:
        return config_from_env(provider, settings)
    except ValueError as e:
        print(f"{e}; using the free trial instead.")
        return TrialConfig()


async def run(router: ProviderRouter, store: ProviderConfigStore, settings: GatewaySettings) -> None:
    session = TutorSession(router)

    print("Python Tutor (type ':help' for commands, 'quit' to stop)")
    print("-" * 56)

    while True:
        try:
            # Read off the event loop so pending client work keeps running.
            user_input = (await asyncio.to_thread(input, "\nYou: ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        command, _, argument = user_input.partition(" ")
        argument = argument.strip()

        if command == ":help":
            print(HELP_TEXT)
            continue
        if command == ":quota":
            print(quota_line(router))
            continue
        if command == ":provider":
            try:
                config = config_from_env(argument, settings)
            except ValueError as e:
                print(e)
                continue
            await router.reconfigure(config)
            store.save(config)
            print(f"Switched to {argument} (ready: {router.is_ready()})")
            continue

        try:
            prompt, max_tokens = build_turn(session, user_input)
        except OSError as e:
            print(f"Could not read {argument}: {e}")
            continue
        except ValueError as e:
            print(e)
            continue

        print("\nThinking...")
        try:
            reply = await session.ask(prompt, max_tokens=max_tokens)
        except Exception as e:  # noqa: BLE001
            print(f"\n{describe_error(e)}")
            continue
        if command == ":lesson":
            session.completed_lessons.append(argument)
        print(f"\nTutor: {reply}")

    await router.aclose()


def main():
    """Run the interactive tutor REPL.

    Loads environment configuration, restores the last selected provider
    (falling back to ``AI_PROVIDER``), then enters a read-eval-print loop.
    """
    load_dotenv()
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"))

    settings = GatewaySettings.from_env()
    store = ProviderConfigStore()
    router = ProviderRouter(settings)
    router.configure(initial_config(store, settings))

    asyncio.run(run(router, store, settings))


if __name__ == "__main__":
    main()
