"""
Tests for rule criteria, matching, exclusion and tag counting
"""

import pytest

from factories import make_email
from src.modules.rules import (
    DEFAULT_RULES,
    AttachmentIs,
    Contains,
    ContainsAny,
    Rule,
    RuleCriteria,
    apply_exclusions,
    compile_criteria,
    count_tags,
    is_excluded,
    matches,
)


def rule(tag="tag", active=True, **criteria):
    return Rule(id=tag, tag=tag, is_active=active, criteria=RuleCriteria(**criteria))


class TestCompileCriteria:

    def test_empty_criteria(self):
        assert compile_criteria(RuleCriteria()) == ()

    def test_clause_order(self):
        clauses = compile_criteria(RuleCriteria(
            has_attachment=True, includes="x", subject="y", to="z", from_="w",
        ))
        assert clauses == (
            Contains("sender", "w"),
            Contains("recipient", "z"),
            Contains("subject", "y"),
            Contains("subject_body", "x"),
            AttachmentIs(True),
        )

    def test_or_subject_becomes_alternatives(self):
        (clause,) = compile_criteria(RuleCriteria(subject="Call Letter OR Admit Card"))
        assert clause == ContainsAny("subject", ("call letter", "admit card"))

    def test_exclusion_fields_produce_no_clauses(self):
        assert compile_criteria(RuleCriteria(excludes="x", exclude_from="y")) == ()


class TestMatches:

    def test_empty_criteria_matches_everything(self):
        assert matches(make_email(subject="anything"), rule())

    def test_from_substring_case_insensitive(self):
        email = make_email(sender="Admissions <ADMIT@IIMA.AC.IN>")
        assert matches(email, rule(from_="iima.ac.in"))
        assert not matches(email, rule(from_="isb.edu"))

    def test_to(self):
        email = make_email(recipient="me@example.com")
        assert matches(email, rule(to="me@"))
        assert not matches(email, rule(to="you@"))

    def test_subject_or_alternatives(self):
        criteria = {"subject": "call letter OR admit card"}
        assert matches(make_email(subject="Download your Admit Card"), rule(**criteria))
        assert matches(make_email(subject="Call letter inside"), rule(**criteria))
        assert not matches(make_email(subject="Results"), rule(**criteria))

    def test_or_hit_settles_the_rule(self):
        # includes would fail, but the alternatives clause decides first
        r = rule(subject="test OR assessment", includes="never-present")
        assert matches(make_email(subject="Online assessment", body="x"), r)

    def test_or_miss_fails_the_rule(self):
        r = rule(subject="test OR assessment")
        assert not matches(make_email(subject="Interview"), r)

    def test_earlier_clause_still_required_before_or(self):
        r = rule(from_="iima", subject="test OR assessment")
        assert not matches(make_email(sender="isb.edu", subject="test"), r)
        assert matches(make_email(sender="iima.ac.in", subject="test"), r)

    def test_single_subject_is_not_decisive(self):
        r = rule(subject="shortlist", includes="round 2")
        assert not matches(make_email(subject="Shortlist", body="round 1"), r)
        assert matches(make_email(subject="Shortlist", body="Round 2 details"), r)

    def test_includes_checks_subject_and_body(self):
        r = rule(includes="interview")
        assert matches(make_email(subject="Interview invite", body="x"), r)
        assert matches(make_email(subject="Update", body="Your INTERVIEW slot"), r)
        assert not matches(make_email(subject="Update", body="nothing"), r)

    def test_has_attachment(self):
        assert matches(make_email(has_attachments=True), rule(has_attachment=True))
        assert not matches(make_email(has_attachments=False), rule(has_attachment=True))
        assert matches(make_email(has_attachments=False), rule(has_attachment=False))

    def test_exclusion_fields_do_not_affect_matching(self):
        email = make_email(sender="noreply@spam.com", subject="Interview")
        assert matches(email, rule(includes="interview", exclude_from="spam.com"))


class TestExclusion:

    def test_exclude_from_checks_sender(self):
        r = rule(exclude_from="noreply@spam.com")
        assert is_excluded(make_email(sender="NoReply@Spam.com"), r)
        assert not is_excluded(make_email(sender="admissions@iima.ac.in"), r)

    def test_excludes_checks_subject_and_body(self):
        r = rule(excludes="webinar")
        assert is_excluded(make_email(subject="Join our webinar"), r)
        assert is_excluded(make_email(subject="Interview", body="free Webinar too"), r)

    def test_exclude_from_ignores_other_criteria(self):
        r = rule(exclude_from="noreply@spam.com", subject="interview", includes="admit card")
        email = make_email(sender="noreply@spam.com", subject="Weekly newsletter", body="sale")
        assert not matches(email, r)
        assert is_excluded(email, r)

    def test_inactive_rule_never_excludes(self):
        r = rule(active=False, exclude_from="spam.com")
        assert not is_excluded(make_email(sender="a@spam.com"), r)

    def test_rule_without_exclusion_fields(self):
        assert not is_excluded(make_email(subject="x"), rule(subject="x"))

    def test_apply_exclusions_preserves_order(self):
        emails = [
            make_email(email_id="1", sender="a@iima.ac.in"),
            make_email(email_id="2", sender="noreply@spam.com"),
            make_email(email_id="3", sender="b@isb.edu"),
        ]
        kept, excluded = apply_exclusions(emails, [rule(exclude_from="spam.com")])
        assert [e.id for e in kept] == ["1", "3"]
        assert [e.id for e in excluded] == ["2"]

    def test_apply_exclusions_without_rules(self):
        emails = [make_email(email_id="1")]
        assert apply_exclusions(emails, []) == (emails, [])


class TestCountTags:

    def test_counts_active_rules_in_order(self):
        emails = [
            make_email(subject="Interview call"),
            make_email(subject="Admit card released"),
            make_email(subject="Interview and test"),
        ]
        counts = count_tags(emails, list(DEFAULT_RULES))
        assert list(counts) == ["interview", "call_letter", "test", "shortlist"]
        assert counts == {"interview": 2, "call_letter": 1, "test": 1, "shortlist": 0}

    def test_inactive_and_pure_exclusion_rules_skipped(self):
        rules = [
            rule(tag="off", active=False, subject="x"),
            rule(tag="spam", exclude_from="spam.com"),
            rule(tag="x", subject="x"),
        ]
        assert count_tags([make_email(subject="x")], rules) == {"x": 1}

    def test_shared_tags_add_up(self):
        rules = [
            Rule(id="a", tag="exam", criteria=RuleCriteria(subject="test")),
            Rule(id="b", tag="exam", criteria=RuleCriteria(subject="assessment")),
        ]
        emails = [make_email(subject="test"), make_email(subject="assessment")]
        assert count_tags(emails, rules) == {"exam": 2}


class TestRuleSerialisation:

    def test_round_trip_through_storage_form(self):
        original = DEFAULT_RULES[1]
        assert Rule.from_dict(original.to_dict()) == original

    def test_from_dict_storage_keys(self):
        r = Rule.from_dict({
            "id": "9",
            "tag": "spam",
            "criteria": {
                "from": "a@b.c",
                "excludeFrom": "noreply@spam.com",
                "hasAttachment": True,
                "subject": "   ",
            },
        })
        assert r.is_active is True
        assert r.criteria.from_ == "a@b.c"
        assert r.criteria.exclude_from == "noreply@spam.com"
        assert r.criteria.has_attachment is True
        assert r.criteria.subject is None

    def test_from_dict_ignores_non_bool_attachment(self):
        r = Rule.from_dict({"id": "1", "tag": "t", "criteria": {"hasAttachment": "yes"}})
        assert r.criteria.has_attachment is None

    def test_to_dict_omits_absent_criteria(self):
        data = rule(tag="t", includes="interview").to_dict()
        assert data["criteria"] == {"includes": "interview"}
        assert data["isActive"] is True

    @pytest.mark.parametrize("index,tag", [(0, "interview"), (1, "call_letter"), (2, "test"), (3, "shortlist")])
    def test_default_rules(self, index, tag):
        assert DEFAULT_RULES[index].id == str(index + 1)
        assert DEFAULT_RULES[index].tag == tag
        assert DEFAULT_RULES[index].is_active
