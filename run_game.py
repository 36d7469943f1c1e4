"""CLI helper for running a Whitefire game from a YAML config file."""

import sys

from whitefire.config import API_KEY_ENV_VARS
from whitefire.config_loader import load_config_file
from whitefire.exceptions import ConfigurationError
from whitefire.interaction import CLIInteraction, OperatorConsole
from whitefire.session import GameSession


def main() -> None:
    """Run a game with the provider named in the config file."""
    if len(sys.argv) < 2:
        print("Usage: python run_game.py <config-file>")
        print("Example: python run_game.py config-example.yaml")
        print()
        print("Set the API key for your provider, for example:")
        print("  export GEMINI_API_KEY='your-api-key-here'")
        sys.exit(1)

    config_path = sys.argv[1]

    try:
        setup_config = load_config_file(config_path)
    except (FileNotFoundError, ConfigurationError) as exc:
        print(f"Error loading config file: {exc}")
        sys.exit(1)

    provider = setup_config.provider
    if not provider.resolved_api_key():
        print(f"ERROR: no API key configured for {provider.api_type}")
        print()
        print("Set it in the config file or export it:")
        print(f"  export {API_KEY_ENV_VARS[provider.api_type]}='your-api-key-here'")
        sys.exit(1)

    agent_count = sum(1 for reg in setup_config.registrations if reg.player_type.value == "agent")
    human_count = len(setup_config.registrations) - agent_count

    print("\n=== Whitefire ===")
    print(f"Configuration: {config_path}")
    print(f"Players: {human_count} human, {agent_count} agent")
    print(f"Provider: {provider.api_type} ({provider.resolved_model()})")
    print(f"Secret meetings: {setup_config.game_config.meeting_policy.value}")
    if setup_config.log_enabled:
        print(f"Transcript logging enabled under {setup_config.log_directory}/")
    print()

    backend = CLIInteraction()

    def ask_human(context, prompt: str) -> str:
        backend.write(f"\n--- {context.name}, it is your turn ---\n{prompt}")
        return backend.read(f"{context.name} > ")

    session = GameSession.from_setup_config(setup_config, human_input=ask_human)
    try:
        OperatorConsole(session, backend).loop()
    except KeyboardInterrupt:
        print("\n\nGame interrupted by user")
        sys.exit(0)

    if session.state.winner is not None:
        print(f"\nWinner: {session.state.winner.value}")


if __name__ == "__main__":
    main()
