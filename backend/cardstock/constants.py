"""
Enumerations shared by models, services and routes.

All stored enum values are the lowercase/kebab-case strings the frontend
already speaks, so they are kept verbatim rather than mapped.
"""

# =============================================================================
# USER ROLES
# =============================================================================

ROLE_EMPLOYEE = "employee"
ROLE_STORE_MANAGER = "store-manager"
ROLE_PARTNER = "partner"

USER_ROLES = (ROLE_EMPLOYEE, ROLE_STORE_MANAGER, ROLE_PARTNER)


# =============================================================================
# INVENTORY
# =============================================================================

LOCATION_FLOOR = "floor"
LOCATION_BACK = "back"

LOCATIONS = (LOCATION_FLOOR, LOCATION_BACK)

CONTAINER_DISPLAY_CASE = "display-case"
CONTAINER_BULK_BOX = "bulk-box"
CONTAINER_BULK_BIN = "bulk-bin"

CONTAINER_TYPES = (CONTAINER_DISPLAY_CASE, CONTAINER_BULK_BOX, CONTAINER_BULK_BIN)


def other_location(location: str) -> str:
    return LOCATION_BACK if location == LOCATION_FLOOR else LOCATION_FLOOR


# =============================================================================
# PRODUCTS
# =============================================================================

PRODUCT_SINGLE_CARD = "singleCard"

PRODUCT_TYPES = (
    PRODUCT_SINGLE_CARD,
    "boosterPack",
    "collectorBooster",
    "deck",
    "deckBox",
    "dice",
    "sleeves",
    "playmat",
    "binder",
    "other",
)

CARD_CONDITIONS = (
    "mint",
    "near-mint",
    "lightly-played",
    "moderately-played",
    "heavily-played",
    "damaged",
)

CARD_FINISHES = ("non-foil", "foil", "etched", "holo", "reverse-holo")

CARD_DETAIL_FIELDS = ("set", "card_number", "rarity", "condition", "finish")


# =============================================================================
# TRANSFER REQUESTS
# =============================================================================

TRANSFER_STATUS_OPEN = "open"
TRANSFER_STATUS_REQUESTED = "requested"
TRANSFER_STATUS_SENT = "sent"
TRANSFER_STATUS_COMPLETE = "complete"
TRANSFER_STATUS_CLOSED = "closed"

TRANSFER_STATUSES = (
    TRANSFER_STATUS_OPEN,
    TRANSFER_STATUS_REQUESTED,
    TRANSFER_STATUS_SENT,
    TRANSFER_STATUS_COMPLETE,
    TRANSFER_STATUS_CLOSED,
)

REQUEST_NUMBER_PREFIX = "TR"

MAX_CLOSE_REASON_LENGTH = 500
MAX_TRANSFER_NOTES_LENGTH = 1000
