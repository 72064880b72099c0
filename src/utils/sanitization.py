"""
Sanitization Utility Module
Makes untrusted mail text safe for log lines and terminal output.
"""

import re
import unicodedata

from bs4 import BeautifulSoup, Comment

ANSI_ESCAPE_PATTERN = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')
WHITESPACE_PATTERN = re.compile(r'\s+')


def sanitize_for_logging(text: str, max_length: int = 255) -> str:
    """
    Sanitize text for safe logging to prevent Log Injection (CRLF) and terminal manipulation.

    Args:
        text: The input string to sanitize (subjects, senders, message ids).
        max_length: Maximum allowed length for the log entry (truncates if longer).

    Returns:
        Sanitized string safe for logging.
    """
    if not text:
        return ""

    text = unicodedata.normalize('NFKC', str(text))

    # Newlines would let a sender forge extra log records
    text = text.replace('\n', '\\n').replace('\r', '\\r')

    text = ANSI_ESCAPE_PATTERN.sub('', text)
    text = "".join(ch for ch in text if ch == '\t' or ord(ch) >= 32)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def html_to_text(body: str, max_length: int = 4000) -> str:
    """
    Reduce an HTML (or plain) body to a single line of readable text.

    Drops <script>/<style> blocks and HTML comments, then joins the
    remaining text nodes. Used for console previews of decoded bodies.

    Args:
        body: Decoded message body
        max_length: Maximum characters kept

    Returns:
        Plain text preview
    """
    if not body:
        return ""

    soup = BeautifulSoup(body, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    text = soup.get_text(separator=" ", strip=True)
    text = WHITESPACE_PATTERN.sub(' ', text).strip()
    return text[:max_length]
