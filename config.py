import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# Telegram
BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()

# Файлы
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
FONTS_DIR = Path(os.getenv("FONTS_DIR", str(BASE_DIR / "fonts")))

# Логи
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Веб-превью ценника (необязательно)
PREVIEW_BASE_URL = os.getenv("PREVIEW_BASE_URL", "").strip()

# Лимит на загружаемые файлы
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", 10))
MAX_UPLOAD_SIZE = MAX_UPLOAD_MB * 1024 * 1024
