import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# OPTICAL_SHOP_DB points the app at another database file (e.g. a shop copy)
DB_PATH = Path(os.environ.get("OPTICAL_SHOP_DB") or (DATA_PATH / DB_FILE_NAME))
