"""
Gmail Client Module
Lists and fetches raw messages from the Gmail REST API

Only transport lives here. Messages are returned exactly as the provider
sends them; MailParser turns them into ParsedEmail records.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..utils.config import GmailConfig
from ..utils.sanitization import sanitize_for_logging


class MailProviderError(Exception):
    """Raised when the provider returns an error or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationExpiredError(MailProviderError):
    """HTTP 401: the access token is missing, revoked or expired"""


class GmailClient:
    """Thin wrapper around users.messages.list / users.messages.get"""

    def __init__(self, config: GmailConfig, session: Optional[requests.Session] = None):
        """
        Initialize Gmail client

        Args:
            config: Mail provider configuration (token, base URL, timeout)
            session: Optional pre-built session (tests inject a mock)
        """
        self.config = config
        self.session = session or requests.Session()
        if config.access_token:
            self.session.headers.update({"Authorization": f"Bearer {config.access_token}"})
        self.session.headers.update({"Accept": "application/json"})
        self.logger = logging.getLogger("GmailClient")

    def list_messages(self, query: str, max_results: int = 15) -> List[Dict[str, Any]]:
        """
        List message stubs matching a Gmail search query

        Returns:
            List of {"id", "threadId"} stubs; empty when nothing matched
        """
        self.logger.info(f"Listing up to {max_results} messages")
        data = self._get("users/me/messages", params={"q": query, "maxResults": max_results})
        messages = data.get("messages") or []
        self.logger.info(f"Provider returned {len(messages)} message ids")
        return messages

    def get_message(self, message_id: str) -> Dict[str, Any]:
        """Fetch one full message (headers, snippet, payload tree)"""
        return self._get(f"users/me/messages/{message_id}", params={"format": "full"})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.config.api_base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise MailProviderError(f"Request to provider failed: {type(exc).__name__}") from exc

        if response.status_code == 401:
            raise AuthenticationExpiredError("Access token rejected (401)", status_code=401)

        if not 200 <= response.status_code < 300:
            raise MailProviderError(
                f"Provider error {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MailProviderError("Provider returned invalid JSON",
                                    status_code=response.status_code) from exc

        if not isinstance(data, dict):
            raise MailProviderError("Provider returned an unexpected JSON shape",
                                    status_code=response.status_code)
        return data

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            message = response.json().get("error", {}).get("message", "")
        except (ValueError, AttributeError):
            message = ""
        return sanitize_for_logging(message or response.reason or "unknown error", 200)

    def close(self):
        self.session.close()
