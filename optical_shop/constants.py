APP_NAME = "Optical Shop"

DATA_DIR = "data"
DB_FILE_NAME = "optical_shop.db"

# ---- search ----
SEARCH_DEBOUNCE_MS = 300
SUGGESTION_LIMIT = 5

# ---- order status ----
ORDER_STATUSES = ("Processing", "Ready", "Delivered", "Cancelled")
DEFAULT_ORDER_STATUS = "Processing"

# ---- prescription defaults ----
DEFAULT_TITLE = "Mr."
DEFAULT_GENDER = "Male"
DISTANCE_VN_DEFAULT = "6/"
NEAR_VN_DEFAULT = "N"

# Remark flag -> remark_type stored in prescription_remarks
REMARK_TYPES = {
    "for_constant_use": "for_constant_use",
    "for_distance_vision_only": "for_distance_vision_only",
    "for_near_vision_only": "for_near_vision_only",
    "separate_glasses": "separate_glasses",
    "bifocal_lenses": "bifocal_lenses",
    "progressive_lenses": "progressive_lenses",
    "anti_reflection_lenses": "anti_reflection_lenses",
    "anti_radiation_lenses": "anti_radiation_lenses",
    "under_corrected": "under_corrected",
}

# ---- line items ----
DEFAULT_UNIT = "PCS"
ITEM_KINDS = ("Frames", "Sun Glasses", "Lens", "Contact Lens")
ITEM_CODE_PREFIXES = {
    "Frames": "FRM",
    "Sun Glasses": "SUN",
    "Lens": "LEN",
    "Contact Lens": "CL",
}
DEFAULT_ITEM_CODE_PREFIX = "ITM"

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

# ---- schema ----
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"
