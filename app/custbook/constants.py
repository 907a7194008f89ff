"""
Central constants for the customer book.
"""
from __future__ import annotations

# Listing page size is fixed by policy, not by the client.
PAGE_SIZE = 10

# Record field names
ID_FIELD = "id"
IMAGE_URL_FIELD = "imageUrl"

# Multipart field carrying the optional customer image
IMAGE_FORM_FIELD = "image"

# Uploaded images live under this object-storage prefix
UPLOAD_PREFIX = "customers"

# Per-image limit (5MB); request bodies are capped separately via MAX_CONTENT_LENGTH
MAX_IMAGE_BYTES = 5 * 1024 * 1024

# Salt for signed pagination tokens
PAGE_TOKEN_SALT = "custbook.page-token"
