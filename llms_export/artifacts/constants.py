"""Constants for the artifact upload layer."""

HTTP_STATUS_OK = 200

# Upper bound on a single upload request (seconds)
MAX_UPLOAD_TIMEOUT_SECONDS = 30.0

# Pause between sequential uploads in a batch (seconds)
BATCH_UPLOAD_DELAY_SECONDS = 0.1

# Multipart field names of the upload contract
FILE_FIELD = "file"
TENANT_FIELD = "site_id"
ARTIFACT_CONTENT_TYPE = "text/plain"

# Response bodies longer than this are cut in error messages
MAX_ERROR_BODY_CHARS = 200

USER_AGENT = "llms-export/0.1.0"
