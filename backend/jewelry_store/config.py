"""
Central configuration module for the jewelry storefront backend.

Loads environment variables, defines paging constants, image limits
and the product enumerations shared by the admin validators and the
storefront filters.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")

# "supabase" in production, "memory" for local runs against a JSON seed file
STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase")
SEED_CATALOG_PATH = os.getenv("SEED_CATALOG_PATH", "")

CF_ACCOUNT_ID = os.getenv("CF_ACCOUNT_ID", "")
R2_ACCESS_KEY = os.getenv("R2_ACCESS_KEY", "")
R2_SECRET_KEY = os.getenv("R2_SECRET_KEY", "")
R2_BUCKET = os.getenv("R2_BUCKET", "jewelry-images")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Listing / paging
# ---------------------------------------------------------------------------
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "12"))
MAX_PAGE_LIMIT = 100
DEFAULT_SORT = "price-asc"

# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
SEARCH_PAGE_LIMIT = 20
# Rows read from each collection before hits are merged and paged
SEARCH_FETCH_LIMIT = int(os.getenv("SEARCH_FETCH_LIMIT", "200"))
SUGGESTION_LIMIT = 10
SUGGESTION_MIN_LENGTH = 2
PLACEHOLDER_IMAGE = "/images/engagement-section.png"

# ---------------------------------------------------------------------------
# Image uploads
# ---------------------------------------------------------------------------
ALLOWED_IMAGE_TYPES: list[str] = ["image/jpeg", "image/png", "image/webp"]
MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10 MB
MAX_IMAGE_SIDE: int = 1600

# ---------------------------------------------------------------------------
# Ring enumerations (settings, wedding and engagement rings)
# ---------------------------------------------------------------------------
METAL_KARATS: list[str] = ["14K", "18K"]

METAL_COLORS: list[str] = [
    "Rose Gold",
    "Two Tone Gold",
    "White Gold",
    "Yellow Gold",
    "Platinum",
    "Palladium",
]

# Metals that are never suffixed with " Gold" when parsed from a URL segment
NON_GOLD_METALS: set[str] = {"Platinum", "Palladium"}

FINISH_TYPES: list[str] = ["Polished", "Matte", "Brushed", "Hammered"]
DEFAULT_FINISH = "Polished"

RING_STYLES: list[str] = [
    "Vintage",
    "Nature Inspired",
    "Floral",
    "Classic",
    "Celtic",
    "Branch",
    "Two Tone",
    "Modern",
    "Traditional",
    "Art Deco",
]

RING_TYPES: list[str] = [
    "Bridal Set",
    "Halo",
    "Side Stone",
    "Solitaire",
    "Three-Stone",
    "Two-Tone",
    "Eternity",
    "Band",
    "Anniversary",
    "Promise",
]

WEDDING_SUBCATEGORIES: list[str] = [
    "Women's Wedding Rings",
    "Men's Wedding Rings",
    "His & Her Matching Sets",
    "Anniversary Rings",
]

# ---------------------------------------------------------------------------
# Loose stone enumerations
# ---------------------------------------------------------------------------
GEMSTONE_TYPES: list[str] = [
    "Ruby",
    "Emerald",
    "Sapphire",
    "Amethyst",
    "Aquamarine",
    "Topaz",
    "Opal",
    "Garnet",
    "Peridot",
    "Tanzanite",
    "Tourmaline",
    "Citrine",
    "Morganite",
]

GEMSTONE_SOURCES: list[str] = ["natural", "lab"]

DIAMOND_TYPES: list[str] = ["natural", "lab"]

STONE_SHAPES: list[str] = [
    "Round",
    "Princess",
    "Cushion",
    "Emerald",
    "Oval",
    "Radiant",
    "Pear",
    "Heart",
    "Marquise",
    "Asscher",
    "Trillion",
    "Baguette",
    "Cabochon",
]
