"""WhatsApp contact-flow field names and confirmation token format."""

CONTACTS_PATH = "/contacts"
ACCESS_TOKEN_HEADER = "X-ACCESS-TOKEN"

# Contact fields set before the dispatch flow runs
FIELD_COURIER_NAME = "couriername"
FIELD_TRACKING_NUMBER = "trackingnumbercourier"

# Contact fields set before the confirmation flow runs
FIELD_ORDER_ID = "order_main_id"
FIELD_FULL_NAME = "full_name"
FIELD_ORDER_ITEMS = "order items"
FIELD_CONFIRM_URL = "confirmation_url"
FIELD_CANCEL_URL = "cancellation_url"

TOKEN_PREFIX = "whatsapp"
TOKEN_RANDOM_BYTES = 16

CONFIRMED = "confirmed"
CANCELLED = "cancelled"

EVENT_ORDER_CONFIRMATION_SENT = "order.confirmation_sent"
