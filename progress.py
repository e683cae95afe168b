# Filename: progress.py

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import requests

logger = logging.getLogger("progress")


class LoadStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressUpdate:
    status: LoadStatus
    progress: int
    max_progress: int
    text: str


ProgressSink = Callable[[ProgressUpdate], None]


class LoggingProgressSink:
    def __call__(self, update: ProgressUpdate):
        logger.info(f"[{update.status.value.upper()} {update.progress}/{update.max_progress}] {update.text}")


class TelegramProgressSink:
    """
    Forwards progress updates to a Telegram chat.
    Delivery failures are logged and never interrupt the scan.
    """

    def __init__(self, bot_token: str = None, chat_id: str = None, timeout: float = 5):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN", "")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID", "")
        self.timeout = timeout

        if not self.bot_token or not self.chat_id:
            logger.error("[Telegram] Missing bot token or chat ID!")

    def __call__(self, update: ProgressUpdate):
        self.send_markdown(f"*{update.status.value.capitalize()}* ({update.progress}/{update.max_progress})\n{update.text}")

    def send_markdown(self, text: str):
        if not self.bot_token or not self.chat_id:
            return

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True
        }

        try:
            response = requests.post(url, data=payload, timeout=self.timeout)
            if response.status_code != 200:
                logger.error(f"[Telegram] Failed: {response.status_code} - {response.text}")
            else:
                logger.debug("[Telegram] Message sent.")
        except requests.RequestException as e:
            logger.error(f"[Telegram] Request exception: {e}")
