import os
from pathlib import Path

LOG_DIR = Path(os.environ.get("ESP_IMAGE_TOOL_LOG_DIR", Path(__file__).parent / "logs"))

LOG_FILE = LOG_DIR / "session.jsonl"
APP_NAME = "ESP Image CLI"
