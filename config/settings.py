# config/settings.py
import os

from dotenv import load_dotenv

# Load environment variables from a .env file, if available
load_dotenv(override=False)

REQUIRED_KEYS = (
    "SLACK_API_TOKEN",
    "SLACK_CHANNEL_ID",
    "NOTION_API_KEY",
    "NOTION_TOPICS_PAGE_ID",
    "NOTION_CHANGELOG_PAGE_ID",
    "OPENAI_API_KEY",
)


class Settings:
    # Slack settings
    SLACK_API_TOKEN = os.getenv("SLACK_API_TOKEN")
    SLACK_CHANNEL_ID = os.getenv("SLACK_CHANNEL_ID")
    SLACK_BASE_URL = os.getenv("SLACK_BASE_URL", "https://slack.com/api")
    SLACK_PAGE_SIZE = int(os.getenv("SLACK_PAGE_SIZE", 200))

    # Notion settings
    NOTION_API_KEY = os.getenv("NOTION_API_KEY")
    NOTION_TOPICS_PAGE_ID = os.getenv("NOTION_TOPICS_PAGE_ID")
    NOTION_CHANGELOG_PAGE_ID = os.getenv("NOTION_CHANGELOG_PAGE_ID")
    NOTION_BASE_URL = os.getenv("NOTION_BASE_URL", "https://api.notion.com/v1")
    NOTION_VERSION = os.getenv("NOTION_VERSION", "2022-06-28")

    # OpenAI settings
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4")
    OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", 0.3))

    HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 30))

    # Checkpoint settings
    CHECKPOINT_BACKEND = os.getenv("CHECKPOINT_BACKEND", "file")
    CHECKPOINT_PATH = os.getenv("CHECKPOINT_PATH", "last_processed.txt")
    CHECKPOINT_KEY = os.getenv("CHECKPOINT_KEY", "digest:last_processed")
    CHECKPOINT_LOOKBACK_DAYS = int(os.getenv("CHECKPOINT_LOOKBACK_DAYS", 14))

    # Redis settings (only used by the redis checkpoint backend)
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = os.getenv("REDIS_PORT", 6379)
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
    REDIS_TIMEOUT = os.getenv("REDIS_TIMEOUT", 5)

    RUN_INTERVAL = int(os.getenv("RUN_INTERVAL", 3600))
    ONE_DAY = 86400

    def missing(self) -> list[str]:
        """Names of required settings that are unset or blank."""
        return [key for key in REQUIRED_KEYS if not getattr(self, key)]


# Initialize settings instance
settings = Settings()
