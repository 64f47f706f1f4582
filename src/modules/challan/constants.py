"""Delivery challan numbering and event types."""

CHALLAN_NUMBER_PREFIX = "DC"

# Item quantity printed on every challan; one challan covers one gift
CHALLAN_QUANTITY = 1

BULK_DOWNLOAD_FILENAME = "delivery-challans.pdf"

# Domain event type strings
EVENT_CHALLAN_CREATED = "delivery_challan.created"
