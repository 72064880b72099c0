import sys
import signal
import argparse
import logging
from pathlib import Path
from typing import Optional, List, NoReturn

from src.utils.config import Config, ConfigurationError
from src.utils.colors import Colors
from src.utils.validators import check_default_credentials
from src.modules.gmail_client import MailProviderError
from src.modules.rule_store import RuleStoreError
from src.rules_cli import RulesCommand, build_rules_parser


class AppRunner:
    """Startup, configuration checks and execution of the Admission Mail Tracker."""

    def __init__(self, args: Optional[List[str]] = None) -> None:
        """
        Initialize the runner with CLI arguments.

        Args:
            args: Command line arguments without the program name (defaults to sys.argv[1:])
        """
        argv = sys.argv[1:] if args is None else args
        if argv and argv[0] == "rules":
            self.command = "rules"
            self.options = build_rules_parser().parse_args(argv[1:])
            self.config_file = self.options.env_file
            return

        parser = argparse.ArgumentParser(
            prog="admission-mail-tracker",
            description="Classify admission emails into interview/test/call letter/shortlist tasks. "
                        "Run 'admission-mail-tracker rules --help' to manage rules.",
        )
        parser.add_argument("config_file", nargs="?", default=".env",
                            help="Path to the .env configuration file (default: .env)")
        parser.add_argument("--watch", action="store_true",
                            help="Keep fetching every CHECK_INTERVAL seconds")
        self.command = "run"
        self.options = parser.parse_args(argv)
        self.config_file = self.options.config_file

    def run(self) -> int:
        """Execute the main application flow; returns the process exit code."""
        if self.command == "rules":
            return self.run_rules_command()

        self.setup_signal_handlers()
        self.print_banner()

        if not self.ensure_config_exists():
            return 1
        if not self.validate_config():
            return 1
        return self.start_pipeline()

    def setup_signal_handlers(self) -> None:
        """Register handlers for graceful shutdown."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    @staticmethod
    def _signal_handler(signum, frame) -> NoReturn:
        print("\nReceived shutdown signal, stopping gracefully...")
        raise KeyboardInterrupt

    def print_banner(self) -> None:
        print(Colors.colorize("=" * 80, Colors.CYAN))
        print(Colors.colorize("Admission Mail Tracker", Colors.BOLD + Colors.CYAN))
        print(Colors.colorize("Interviews, tests, call letters and shortlists from your inbox", Colors.GREY))
        print(Colors.colorize("=" * 80, Colors.CYAN))
        print()

    def ensure_config_exists(self) -> bool:
        """Check that the configuration file exists."""
        if Path(self.config_file).exists():
            return True

        print(f"Error: Configuration file '{self.config_file}' not found")
        print("Please create a .env file based on .env.example")
        print("You can run: cp .env.example .env")
        return False

    def validate_config(self) -> bool:
        """Reject configurations that still carry placeholder credentials."""
        config = Config(self.config_file)
        errors = check_default_credentials(config)
        if not errors:
            print(Colors.success("Configuration OK"))
            return True

        print(f"\n{Colors.RED}Configuration Error{Colors.RESET}")
        print(f"{Colors.GREY}The following issues must be resolved in your .env file before starting:{Colors.RESET}\n")
        for error in errors:
            print(f"  - {Colors.YELLOW}{error}{Colors.RESET}")
        print(f"\nPlease edit {Colors.BOLD}{self.config_file}{Colors.RESET} with your actual credentials.")
        return False

    def run_rules_command(self) -> int:
        """Run a `rules` subcommand against the configured rule file."""
        try:
            return RulesCommand(self.options).run()
        except RuleStoreError as e:
            print(Colors.error(f"Error: {e}"))
            return 1

    def start_pipeline(self) -> int:
        """Instantiate and start the main pipeline."""
        from src.main import AdmissionMailPipeline

        logger = logging.getLogger("AppRunner")
        try:
            pipeline = AdmissionMailPipeline(self.config_file)
            pipeline.start(watch=self.options.watch)
        except KeyboardInterrupt:
            logger.info("Received shutdown signal")
            return 0
        except (ConfigurationError, MailProviderError, RuleStoreError) as e:
            logger.error(f"Fatal error: {e}")
            print(Colors.error(f"Error: {e}"))
            return 1
        except Exception as e:
            logger.error(f"Fatal error: {e}", exc_info=True)
            print(Colors.error(f"Unexpected error: {e}"))
            return 1
        return 0
