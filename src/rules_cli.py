"""
Rules command
Lists and edits the stored tagging/exclusion rules from the command line.

    admission-mail-tracker rules list
    admission-mail-tracker rules add --tag spam --exclude-from noreply@spam.com
    admission-mail-tracker rules disable 3
"""

import argparse
from typing import List, Optional

from src.utils.colors import Colors
from src.utils.config import Config
from src.modules.rule_store import JSONKeyValueStore, RuleStore
from src.modules.rules import Rule, RuleCriteria


def build_rules_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="admission-mail-tracker rules",
        description="Manage tagging and exclusion rules.",
    )
    parser.add_argument("--env-file", default=".env",
                        help="Path to the .env file that sets RULES_FILE (default: .env)")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="Show all rules")
    list_cmd.add_argument("--active", action="store_true", help="Only active rules")

    for name, help_text in (
        ("show", "Show one rule"),
        ("enable", "Turn a rule on"),
        ("disable", "Turn a rule off"),
        ("delete", "Remove a rule"),
    ):
        cmd = commands.add_parser(name, help=help_text)
        cmd.add_argument("rule_id")

    add = commands.add_parser("add", help="Add a rule, or replace the rule with the same --id")
    add.add_argument("--id", dest="rule_id", help="Rule id (default: next free number)")
    add.add_argument("--tag", required=True)
    add.add_argument("--description", default="")
    add.add_argument("--color", default="")
    add.add_argument("--from", dest="from_", help="Sender contains")
    add.add_argument("--to", help="Recipient contains")
    add.add_argument("--subject", help='Subject contains; "A OR B" matches either')
    add.add_argument("--includes", help="Subject or body contains")
    add.add_argument("--excludes", help="Hide emails whose subject or body contains this")
    add.add_argument("--exclude-from", help="Hide emails whose sender contains this")
    attachment = add.add_mutually_exclusive_group()
    attachment.add_argument("--has-attachment", dest="has_attachment", action="store_true", default=None)
    attachment.add_argument("--no-attachment", dest="has_attachment", action="store_false")
    add.add_argument("--inactive", action="store_true", help="Store the rule switched off")

    commands.add_parser("reset", help="Restore the default rules")
    return parser


def format_rule(rule: Rule) -> str:
    state = Colors.success("on ") if rule.is_active else Colors.colorize("off", Colors.GREY)
    criteria = ", ".join(f"{key}={value!r}" for key, value in rule.criteria.to_dict().items())
    line = f"  {rule.id:>3}  {state}  {Colors.colorize(rule.tag, Colors.BOLD)}"
    if rule.description:
        line += f"  {rule.description}"
    return line + "\n" + Colors.colorize(f"            {criteria or 'matches everything'}", Colors.GREY)


class RulesCommand:
    """Runs one `rules` subcommand against the configured rule file"""

    def __init__(self, options: argparse.Namespace, store: Optional[RuleStore] = None):
        self.options = options
        if store is None:
            rules_file = Config(options.env_file).rules.rules_file
            store = RuleStore(JSONKeyValueStore(rules_file))
        self.store = store

    def run(self) -> int:
        handler = getattr(self, f"_cmd_{self.options.command}")
        return handler()

    def _print_rules(self, rules: List[Rule]) -> None:
        if not rules:
            print("  No rules.")
        for rule in rules:
            print(format_rule(rule))

    def _not_found(self) -> int:
        print(Colors.error(f"No rule with id {self.options.rule_id!r}"))
        return 1

    def _cmd_list(self) -> int:
        rules = self.store.active() if self.options.active else self.store.load()
        self._print_rules(rules)
        return 0

    def _cmd_show(self) -> int:
        rule = self.store.get(self.options.rule_id)
        if rule is None:
            return self._not_found()
        print(format_rule(rule))
        return 0

    def _cmd_add(self) -> int:
        opts = self.options
        rule = Rule(
            id=opts.rule_id or self.store.next_id(),
            tag=opts.tag,
            description=opts.description,
            color=opts.color,
            is_active=not opts.inactive,
            criteria=RuleCriteria.from_dict({
                "from": opts.from_,
                "to": opts.to,
                "subject": opts.subject,
                "includes": opts.includes,
                "excludes": opts.excludes,
                "excludeFrom": opts.exclude_from,
                "hasAttachment": opts.has_attachment,
            }),
        )
        self.store.upsert(rule)
        print(Colors.success(f"Saved rule {rule.id}"))
        print(format_rule(rule))
        return 0

    def _set_active(self, active: bool) -> int:
        rule = self.store.set_active(self.options.rule_id, active)
        if rule is None:
            return self._not_found()
        print(format_rule(rule))
        return 0

    def _cmd_enable(self) -> int:
        return self._set_active(True)

    def _cmd_disable(self) -> int:
        return self._set_active(False)

    def _cmd_delete(self) -> int:
        if not self.store.delete(self.options.rule_id):
            return self._not_found()
        print(Colors.success(f"Deleted rule {self.options.rule_id}"))
        return 0

    def _cmd_reset(self) -> int:
        self.store.reset()
        self._print_rules(self.store.load())
        return 0
