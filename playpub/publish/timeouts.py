from __future__ import annotations

# Idempotent backend call retry policy (assign_track, release_notes)
BACKEND_RETRY_DELAY_SECONDS = 2.0
TRANSIENT_HTTP_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

# Resumable bundle upload chunk size (must be a multiple of 256 KiB)
UPLOAD_CHUNK_SIZE = 8 * 1024 * 1024

# Socket timeout for every API request
HTTP_TIMEOUT_SECONDS = 120.0
