"""
Tests for structured logging functionality
"""

import unittest
import json
import logging
import sys

from src.utils.structured_logging import JSONFormatter


def make_record(msg="Test message", level=logging.INFO, **kwargs):
    return logging.LogRecord(
        name="GmailClient",
        level=level,
        pathname="gmail_client.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=kwargs.get("exc_info"),
        func="list_messages",
    )


class TestJSONFormatter(unittest.TestCase):
    """Test cases for JSONFormatter"""

    def setUp(self):
        self.formatter = JSONFormatter()

    def test_basic_json_format(self):
        """Logs are formatted as one valid JSON object"""
        data = json.loads(self.formatter.format(make_record()))

        self.assertIn("timestamp", data)
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "GmailClient")
        self.assertEqual(data["message"], "Test message")
        self.assertEqual(data["module"], "gmail_client")
        self.assertEqual(data["function"], "list_messages")
        self.assertEqual(data["line"], 42)

    def test_extra_fields(self):
        record = make_record()
        record.extra_fields = {"email_id": "m1", "task_type": "interview"}

        data = json.loads(self.formatter.format(record))

        self.assertEqual(data["email_id"], "m1")
        self.assertEqual(data["task_type"], "interview")

    def test_sensitive_fields_redacted(self):
        record = make_record()
        record.extra_fields = {
            "access_token": "ya29.secret",
            "Authorization": "Bearer ya29.secret",
            "gmail_token": "x",
            "count": 3,
        }

        data = json.loads(self.formatter.format(record))

        self.assertEqual(data["access_token"], "[REDACTED]")
        self.assertEqual(data["Authorization"], "[REDACTED]")
        self.assertEqual(data["gmail_token"], "[REDACTED]")
        self.assertEqual(data["count"], 3)

    def test_exception_info(self):
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(self.formatter.format(record))

        self.assertIn("exception", data)
        self.assertIn("ValueError: bad payload", data["exception"])

    def test_non_serialisable_values_stringified(self):
        record = make_record()
        record.extra_fields = {"path": object()}
        data = json.loads(self.formatter.format(record))
        self.assertIsInstance(data["path"], str)


if __name__ == "__main__":
    unittest.main()
