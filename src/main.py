#!/usr/bin/env python3
"""
Admission Mail Tracker
Pipeline orchestrator: fetch, parse, sort, exclude and tag task emails
"""

import sys
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.utils.config import Config
from src.utils.colors import Colors
from src.utils.logging_formatter import ColoredFormatter
from src.utils.metrics import Metrics
from src.utils.sanitization import html_to_text, sanitize_for_logging
from src.utils.structured_logging import JSONFormatter
from src.modules.gmail_client import AuthenticationExpiredError, GmailClient, MailProviderError
from src.modules.mail_data import ParsedEmail, TaskType
from src.modules.mail_parser import MailParser
from src.modules.rule_store import JSONKeyValueStore, RuleStore
from src.modules.rules import Rule, apply_exclusions, count_tags


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class TypeSummary:
    """Headline counts shown above the task list"""
    total: int = 0
    interviews: int = 0
    tests: int = 0
    shortlists: int = 0

    @classmethod
    def from_emails(cls, emails: List[ParsedEmail]) -> "TypeSummary":
        return cls(
            total=len(emails),
            interviews=sum(1 for e in emails if e.type is TaskType.INTERVIEW),
            tests=sum(1 for e in emails if e.type is TaskType.TEST),
            # Call letters are counted with shortlists
            shortlists=sum(
                1 for e in emails
                if e.type in (TaskType.CALL_LETTER, TaskType.SHORTLIST)
            ),
        )


@dataclass
class TaskReport:
    """Result of one fetch cycle"""
    emails: List[ParsedEmail]
    excluded: List[ParsedEmail] = field(default_factory=list)
    summary: TypeSummary = field(default_factory=TypeSummary)
    tag_counts: Dict[str, int] = field(default_factory=dict)


def sort_newest_first(emails: List[ParsedEmail]) -> List[ParsedEmail]:
    """Sort by received date, newest first; undated emails go last"""
    return sorted(emails, key=lambda e: e.date or _OLDEST, reverse=True)


def build_report(emails: List[ParsedEmail], rules: List[Rule]) -> TaskReport:
    """
    Sort, exclude and tag already-parsed emails

    The headline summary covers everything fetched; exclusion only
    affects the visible list and its tag counts.
    """
    ordered = sort_newest_first(emails)
    kept, excluded = apply_exclusions(ordered, rules)
    return TaskReport(
        emails=kept,
        excluded=excluded,
        summary=TypeSummary.from_emails(ordered),
        tag_counts=count_tags(kept, rules),
    )


class AdmissionMailPipeline:
    """Main pipeline orchestrator"""

    def __init__(
        self,
        config_file: str = ".env",
        client: Optional[GmailClient] = None,
        rule_store: Optional[RuleStore] = None,
        setup_logging: bool = True,
    ):
        """
        Initialize pipeline

        Args:
            config_file: Path to configuration file
            client: Optional mail client (defaults to GmailClient from config)
            rule_store: Optional rule store (defaults to the configured JSON file)
            setup_logging: Configure root logging handlers from config
        """
        self.config = Config(config_file)

        if setup_logging:
            self._setup_logging()

        self.logger = logging.getLogger("AdmissionMailPipeline")
        self.logger.info("Initializing Admission Mail Tracker")

        self.metrics = Metrics()
        self.client = client or GmailClient(self.config.gmail)
        self.rule_store = rule_store or RuleStore(
            JSONKeyValueStore(self.config.rules.rules_file)
        )
        self.parser = MailParser(
            missing_date_fallback_to_now=self.config.parsing.missing_date_fallback_to_now,
            metrics=self.metrics,
        )
        self.running = False

    def _setup_logging(self):
        """Setup logging configuration"""
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        log_path = Path(self.config.system.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        level_name = str(self.config.system.log_level).upper()
        level = logging._nameToLevel.get(level_name, logging.INFO)

        file_handler = logging.FileHandler(self.config.system.log_file)
        console_handler = logging.StreamHandler(sys.stdout)

        if self.config.system.log_format == "json":
            file_handler.setFormatter(JSONFormatter())
            console_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(log_format))
            console_handler.setFormatter(ColoredFormatter(log_format))

        logging.basicConfig(level=level, handlers=[file_handler, console_handler], force=True)

        if level_name not in logging._nameToLevel:
            logging.getLogger("AdmissionMailPipeline").warning(
                "Invalid log level '%s'; defaulting to INFO",
                self.config.system.log_level
            )

    def run_cycle(self) -> TaskReport:
        """
        Run one fetch/parse/filter/tag cycle

        Raises:
            AuthenticationExpiredError: The access token was rejected
            MailProviderError: The message list could not be fetched
        """
        started = time.monotonic()

        stubs = self.client.list_messages(
            self.config.gmail.query, self.config.gmail.max_results
        )
        emails = self._fetch_and_parse(stubs)
        rules = self.rule_store.load()
        report = build_report(emails, rules)

        if report.excluded:
            self.metrics.record_excluded(len(report.excluded))
            self.logger.info(f"Excluded {len(report.excluded)} emails by sender/content rules")

        elapsed_ms = (time.monotonic() - started) * 1000
        self.metrics.record_cycle_time(elapsed_ms)
        self.logger.info(
            f"Cycle complete: {len(report.emails)} tasks, "
            f"{report.summary.interviews} interviews, {report.summary.tests} tests, "
            f"{report.summary.shortlists} shortlists ({elapsed_ms:.0f} ms)"
        )
        return report

    def _fetch_and_parse(self, stubs: List[Dict]) -> List[ParsedEmail]:
        """
        Fetch full messages concurrently and parse each one

        Single-message failures are logged and skipped; a rejected token
        aborts the whole cycle.
        """
        message_ids = [str(stub.get("id")) for stub in stubs if isinstance(stub, dict) and stub.get("id")]
        if not message_ids:
            self.logger.info("No matching messages")
            return []

        workers = max(1, min(self.config.system.max_workers, len(message_ids)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._fetch_one, mid) for mid in message_ids]
            try:
                results = [future.result() for future in futures]
            except AuthenticationExpiredError:
                # Remaining fetches would fail with the same token
                executor.shutdown(cancel_futures=True)
                raise

        return [email for email in results if email is not None]

    def _fetch_one(self, message_id: str) -> Optional[ParsedEmail]:
        try:
            raw = self.client.get_message(message_id)
        except AuthenticationExpiredError:
            self.metrics.record_error("auth")
            raise
        except MailProviderError as e:
            self.metrics.record_error("fetch")
            self.logger.error(
                f"Failed to fetch message {sanitize_for_logging(message_id)}: {e}",
                extra={"extra_fields": {"email_id": message_id, "status_code": e.status_code}},
            )
            return None

        self.metrics.record_fetched()
        return self.parser.parse_message(raw)

    def start(self, watch: bool = False):
        """
        Run one cycle, or keep running every CHECK_INTERVAL seconds

        Args:
            watch: Loop until interrupted instead of running once
        """
        self.config.validate()
        self.running = True
        iteration = 0

        try:
            while self.running:
                iteration += 1
                self.logger.info(f"=== Fetch Cycle {iteration} ===")
                try:
                    report = self.run_cycle()
                    print_report(report)
                except AuthenticationExpiredError:
                    self.logger.error("Access token expired or revoked; refresh GMAIL_ACCESS_TOKEN")
                    raise
                except MailProviderError as e:
                    if not watch:
                        raise
                    self.logger.error(f"Error in fetch cycle: {e}")

                if not watch:
                    break

                self.logger.info(
                    f"Waiting {self.config.system.check_interval} seconds until next fetch..."
                )
                time.sleep(self.config.system.check_interval)
        finally:
            self.stop()

    def stop(self):
        """Stop the pipeline"""
        self.running = False
        self.logger.debug(f"Metrics: {self.metrics.get_summary()}")
        self.client.close()
        self.logger.info("Pipeline stopped")


def print_report(report: TaskReport):
    """Print the task list and headline summary"""
    summary = report.summary
    print(Colors.header("\nTask Summary"))
    print(
        f"  Total: {summary.total}   Interviews: {summary.interviews}   "
        f"Tests: {summary.tests}   Shortlists: {summary.shortlists}"
    )

    if report.tag_counts:
        tags = ", ".join(f"{tag.replace('_', ' ')}: {count}" for tag, count in report.tag_counts.items())
        print(Colors.colorize(f"  Tags: {tags}", Colors.GREY))

    if report.excluded:
        print(Colors.warning(f"  {len(report.excluded)} emails hidden by exclusion rules"))

    print(Colors.header("\nTask List"))
    if not report.emails:
        print("  No updates found recently.")
        return

    for email in report.emails:
        color = Colors.get_task_color(email.type.value)
        received = email.date.strftime("%d %b %Y") if email.date else "unknown date"
        event = f"  event {email.event_date.strftime('%d %b %Y')}" if email.event_date else ""
        print(
            f"  {Colors.colorize(email.type.value.replace('_', ' ').upper().ljust(11), color + Colors.BOLD)} "
            f"{sanitize_for_logging(email.subject, 80)}"
        )
        print(Colors.colorize(
            f"              {sanitize_for_logging(email.institution, 60)} - {received}{event}",
            Colors.GREY,
        ))
        preview = html_to_text(email.body, 100)
        if preview:
            print(Colors.colorize(f"              {sanitize_for_logging(preview, 100)}", Colors.GREY))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    from src.app_runner import AppRunner
    return AppRunner(argv).run()


if __name__ == "__main__":
    sys.exit(main())
