import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ============================================================================#
# ENVIRONMENT / SERVICES
# ============================================================================#
PLANT_ID_API_KEY = os.getenv("PLANT_ID_API_KEY")
PLANTNET_API_KEY = os.getenv("PLANTNET_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Provider endpoints
PLANT_ID_API_URL = os.getenv("PLANT_ID_API_URL", "https://api.plant.id/v3")
PLANTNET_API_URL = os.getenv("PLANTNET_API_URL", "https://my-api.plantnet.org/v2/identify/all")

# Provider selection: "plant_id" | "plantnet" for identification,
# "plant_id" | "none" for the separate health call
IDENTIFY_PROVIDER = os.getenv("IDENTIFY_PROVIDER", "plant_id")
HEALTH_PROVIDER = os.getenv("HEALTH_PROVIDER", "plant_id")

# Upstream timeouts (seconds)
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "30"))
API_CONNECT_TIMEOUT = float(os.getenv("API_CONNECT_TIMEOUT", "10"))

# ============================================================================#
# QUOTA
# ============================================================================#
DAILY_SCAN_LIMIT = int(os.getenv("DAILY_SCAN_LIMIT", "20"))  # scans per calendar day
QUOTA_COOKIE_NAME = "plant_id_usage"
QUOTA_COOKIE_MAX_AGE = 60 * 60 * 24  # 1 day

# Per-IP burst limit (slowapi), separate from the daily cookie quota
IP_RATE_LIMIT = os.getenv("IP_RATE_LIMIT", "10/minute")
IP_RATE_LIMIT_ENABLED = os.getenv("IP_RATE_LIMIT_ENABLED", "1") == "1"

# ============================================================================#
# UPLOADS
# ============================================================================#
MAX_IMAGES = int(os.getenv("MAX_IMAGES", "5"))
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(4 * 1024 * 1024)))

# ============================================================================#
# RESULT SHAPING
# ============================================================================#
MAX_MATCHES = 3
MAX_SIMILAR_IMAGES = 2
MAX_DIAGNOSES = 5
MIN_DIAGNOSIS_CONFIDENCE = 0.01  # diagnoses at or below this are dropped

DEFAULT_LIGHT = "Bright indirect light"
DEFAULT_WATER = "Water when top soil is dry"
DEFAULT_SOIL = "Well-drained potting mix"

# Static cross-reference catalog (scientific name -> reference page)
GCI_PAGES_PATH = os.getenv(
    "GCI_PAGES_PATH",
    os.path.join(os.path.dirname(__file__), "data", "gci_pages.json"),
)

# History
HISTORY_TABLE = "identification_history"
HISTORY_PAGE_SIZE = 50
