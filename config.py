import os
from pathlib import Path

# === Path Settings ===
BASE_DIR = Path(__file__).parent.absolute()
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))

# === Database Settings ===
# Any SQLAlchemy async URL works, e.g. mssql+aioodbc:///?odbc_connect=...
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{DATA_DIR / 'facetrack.db'}")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "0") == "1"

# === Inference Settings ===
DEVICE = os.getenv("INFERENCE_DEVICE", "cpu")  # 'cpu' or 'cuda'
FACE_MODEL_NAME = os.getenv("FACE_MODEL_NAME", "buffalo_l")
DETECTION_SIZE = (640, 640)

# === Device Binding ===
DEVICE_ID_LENGTH = 6

# === Face Matching ===
UNKNOWN_LABEL = "unknown"
MATCH_THRESHOLD = 0.6  # Max Euclidean distance

# === API & Logging ===
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEFAULT_ERROR_MESSAGE = "Something went wrong!"
