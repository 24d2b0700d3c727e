import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=(Path(__file__).parent / ".env"))

# Persistence
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./minigantt.db")
AUTOSAVE_NAME = os.getenv("AUTOSAVE_NAME", "mini_gantt_autosave_v2")

# CORS settings
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")

# Timeline defaults ("auto" or a day count such as "30")
DEFAULT_RANGE_MODE = os.getenv("DEFAULT_RANGE_MODE", "auto")
DEFAULT_DAY_WIDTH = int(os.getenv("DEFAULT_DAY_WIDTH", "28"))

# Row/canvas geometry in pixels
ROW_HEIGHT = int(os.getenv("ROW_HEIGHT", "44"))
HEADER_HEIGHT = int(os.getenv("HEADER_HEIGHT", "34"))
LEFT_PAD = int(os.getenv("LEFT_PAD", "10"))
TOP_PAD = int(os.getenv("TOP_PAD", "10"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Uvicorn server settings
UVICORN_HOST = os.getenv("UVICORN_HOST", "0.0.0.0")
UVICORN_PORT = int(os.getenv("UVICORN_PORT", "8000"))
