import os

from dotenv import load_dotenv

load_dotenv(os.getenv("ENV_FILE"), override=True)

# General
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # text | json
LOG_FILE = os.getenv("LOG_FILE") or None

# Compilation
INPUT_DIR = os.getenv("INPUT_DIR", "./examples/md")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "./output")
STRICT = os.getenv("LESSON_STRICT", "false").lower() in ("1", "true", "yes")
