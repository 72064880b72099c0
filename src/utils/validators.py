from typing import List
from src.utils.config import Config

# Placeholder values shipped in .env.example
DEFAULT_ACCESS_TOKENS = [
    "your-gmail-access-token-here",
    "ya29.your-token",
]


def check_default_credentials(config: Config) -> List[str]:
    """
    Check if the configuration still uses example values.
    Returns a list of error messages.
    """
    errors = []

    if not config.gmail.access_token:
        errors.append("GMAIL_ACCESS_TOKEN is empty")
    elif config.gmail.access_token in DEFAULT_ACCESS_TOKENS:
        errors.append("GMAIL_ACCESS_TOKEN still uses the example placeholder")

    if not config.gmail.api_base_url.startswith("https://"):
        errors.append(f"GMAIL_API_BASE_URL must use https: {config.gmail.api_base_url}")

    return errors
